"""Repayment schedule generation for member credits"""

from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import List

from coop_ledger.domain.exceptions import ValidationError
from coop_ledger.domain.models import Installment
from coop_ledger.utils.date_utils import add_months


def round_minor(value: Decimal) -> int:
    """Round to the nearest minor unit, halves away from zero"""
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def monthly_rate(interest_rate: float | Decimal) -> Decimal:
    """Annual percent -> monthly fraction (12% -> 0.01)"""
    return Decimal(str(interest_rate)) / Decimal(100) / Decimal(12)


def annuity_payment(principal: int, interest_rate: float | Decimal, duration: int) -> Decimal:
    """
    Unrounded monthly installment.

    r = rate/100/12
    r > 0:  principal * r(1+r)^n / ((1+r)^n - 1)
    r == 0: principal / n
    """
    r = monthly_rate(interest_rate)
    if r == 0:
        return Decimal(principal) / Decimal(duration)
    growth = (1 + r) ** duration
    return Decimal(principal) * r * growth / (growth - 1)


def validate_credit_terms(principal: int, interest_rate: float | Decimal, duration: int) -> None:
    errors = []
    if isinstance(principal, bool) or not isinstance(principal, int) or principal <= 0:
        errors.append("amount must be a positive integer")
    if interest_rate is None or Decimal(str(interest_rate)) < 0:
        errors.append("interest rate cannot be negative")
    if isinstance(duration, bool) or not isinstance(duration, int) or duration < 1:
        errors.append("duration must be at least one month")
    if errors:
        raise ValidationError(errors)


def generate_repayment_schedule(
    principal: int,
    interest_rate: float | Decimal,
    duration: int,
    start_date: date,
) -> List[Installment]:
    """
    Generate the monthly repayment schedule for a credit.

    Requirements:
    - exactly `duration` installments
    - due dates on successive month boundaries after start_date
    - every installment carries the same rounded amount, the last one
      absorbs the rounding remainder so the schedule sums to the rounded
      total owed (principal when the rate is 0)

    Example:
        100,000 at 0% over 10 months -> 10 x 10,000
        120,000 at 12% over 12 months -> 11 x 10,662 + 10,660 (total 127,942)
    """
    validate_credit_terms(principal, interest_rate, duration)

    payment = annuity_payment(principal, interest_rate, duration)
    if monthly_rate(interest_rate) == 0:
        total = principal
        base_amount = principal // duration
    else:
        total = round_minor(payment * duration)
        base_amount = round_minor(payment)

    installments = []
    for i in range(duration):
        due_date = add_months(start_date, i + 1)

        # Last installment absorbs remainder to ensure exact total
        if i == duration - 1:
            amount = total - base_amount * (duration - 1)
        else:
            amount = base_amount

        installments.append(Installment(due_date=due_date, amount=amount))

    return installments
