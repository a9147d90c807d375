"""Budget status derivation"""

from datetime import date

from coop_ledger.domain.models import BudgetStatus


def derive_budget_status(allocated_amount: int, spent_amount: int, end_date: date, today: date) -> BudgetStatus:
    """
    Status is never set by callers; it follows from the amounts and the calendar.

    over_budget iff spent > allocated, else active until end_date passes, then completed.
    """
    if spent_amount > allocated_amount:
        return BudgetStatus.OVER_BUDGET
    if today > end_date:
        return BudgetStatus.COMPLETED
    return BudgetStatus.ACTIVE


def budget_remaining(allocated_amount: int, spent_amount: int) -> int:
    """Negative when over budget; reported as-is"""
    return allocated_amount - spent_amount
