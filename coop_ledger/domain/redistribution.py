"""Collective payment split - gross/fee/net per member with exact totals"""

from decimal import Decimal
from typing import List, Mapping

from coop_ledger.domain.amortization import round_minor
from coop_ledger.domain.exceptions import ConsistencyError, ValidationError
from coop_ledger.domain.models import ContributionSet, DistributionPlan, MemberShare, PaymentMethod


def fee_rate_for(method: PaymentMethod, fee_rates: Mapping[str, float]) -> Decimal:
    """Look up the configured fee percentage for a payout method"""
    key = PaymentMethod(method).value
    if key not in fee_rates:
        raise ValidationError(f"no fee rate configured for payment method '{key}'")
    rate = Decimal(str(fee_rates[key]))
    if rate < 0 or rate >= 100:
        raise ValidationError(f"fee rate for '{key}' must be in [0, 100)")
    return rate


def compute_distribution_plan(
    payment_id: str,
    payment_amount: int,
    contributions: ContributionSet,
    method: PaymentMethod,
    fee_rate: Decimal,
) -> DistributionPlan:
    """
    Split a collective payment among contributing members.

    Rounding policy:
    - gross = round(amount * percentage / 100) for every member but the last,
      the last member takes amount - sum(previous grosses)
    - fee = round(gross * fee_rate / 100) likewise, the last member takes
      round(amount * fee_rate / 100) - sum(previous fees)
    - net = gross - fee

    So sum(gross) == amount and sum(net) == amount - sum(fee) exactly.

    Example (12,500,000 at 1.5%, 50/30/20):
        gross 6,250,000 / 3,750,000 / 2,500,000
        fee      93,750 /    56,250 /    37,500
        net   6,156,250 / 3,693,750 / 2,462,500

    Raises:
        ValidationError: if any member's net payout rounds to zero
        ConsistencyError: if the remainder absorbed by the last member exceeds
            one minor unit per member, or any amount would go negative
    """
    if isinstance(payment_amount, bool) or not isinstance(payment_amount, int) or payment_amount <= 0:
        raise ValidationError("payment amount must be a positive integer")

    members = list(contributions)
    member_count = len(members)
    amount = Decimal(payment_amount)
    total_fee = round_minor(amount * fee_rate / 100)

    shares: List[MemberShare] = []
    gross_so_far = 0
    fee_so_far = 0

    for index, contribution in enumerate(members):
        exact_gross = amount * contribution.percentage / 100
        if index == member_count - 1:
            gross = payment_amount - gross_so_far
            fee = total_fee - fee_so_far
            if abs(Decimal(gross) - exact_gross) > member_count or abs(
                Decimal(fee) - Decimal(gross) * fee_rate / 100
            ) > member_count:
                raise ConsistencyError(
                    f"rounding remainder for payment {payment_id} exceeds {member_count} minor units"
                )
        else:
            gross = round_minor(exact_gross)
            fee = round_minor(Decimal(gross) * fee_rate / 100)

        net = gross - fee
        if gross < 0 or fee < 0 or net < 0:
            raise ConsistencyError(f"negative amount for member '{contribution.member_id}' on payment {payment_id}")
        if net == 0:
            # Nothing to pay out; the split must be corrected before confirmation
            raise ValidationError(
                f"share of member '{contribution.member_id}' on payment {payment_id} rounds to a zero payout"
            )

        gross_so_far += gross
        fee_so_far += fee
        shares.append(
            MemberShare(
                member_id=contribution.member_id,
                member_name=contribution.member_name,
                percentage=contribution.percentage,
                quantity=contribution.quantity,
                product_id=contribution.product_id,
                recipient_ref=contribution.recipient_ref,
                gross_amount=gross,
                fee=fee,
                net_amount=net,
            )
        )

    plan = DistributionPlan(
        payment_id=payment_id,
        payment_amount=payment_amount,
        payment_method=PaymentMethod(method),
        fee_rate=fee_rate,
        shares=shares,
        total_fees=sum(s.fee for s in shares),
        net_total=sum(s.net_amount for s in shares),
    )
    check_plan_reconciles(plan)
    return plan


def check_plan_reconciles(plan: DistributionPlan) -> None:
    """Fail loudly if a plan does not add up to its payment"""
    gross_total = sum(s.gross_amount for s in plan.shares)
    if gross_total != plan.payment_amount:
        raise ConsistencyError(
            f"distributed gross {gross_total} does not match payment amount {plan.payment_amount}"
        )
    fee_total = sum(s.fee for s in plan.shares)
    net_total = sum(s.net_amount for s in plan.shares)
    if net_total != plan.payment_amount - fee_total or net_total != plan.net_total or fee_total != plan.total_fees:
        raise ConsistencyError(
            f"distributed net {net_total} does not match payment amount minus fees {plan.payment_amount - fee_total}"
        )
