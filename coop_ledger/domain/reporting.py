"""Read-only aggregation over ledger records - the numbers behind summaries and monthly reports"""

from decimal import Decimal
from typing import Dict, Iterable, List

from coop_ledger.domain.amortization import round_minor
from coop_ledger.domain.models import (
    BenefitShare,
    CategoryTotals,
    CreditStatus,
    FinancialSummary,
    InstallmentStatus,
    MonthlyReport,
    SubsidyStatus,
    TransactionKind,
    TransactionStatus,
)
from coop_ledger.utils.date_utils import month_bounds


def completed_only(transactions: Iterable) -> List:
    """Pending and cancelled transactions never count toward aggregates"""
    return [t for t in transactions if t.status == TransactionStatus.COMPLETED]


def build_financial_summary(transactions: Iterable, budgets: Iterable, subsidies: Iterable, credits: Iterable) -> FinancialSummary:
    """
    Cooperative-wide totals.

    - income/expenses: completed transactions only
    - budgets: allocated vs spent over all budgets
    - approved subsidies: approved or disbursed grants
    - active credits: principal of disbursed credits
    - credit outstanding: unpaid installments of disbursed credits
    """
    completed = completed_only(transactions)
    income = sum(t.amount for t in completed if t.kind == TransactionKind.INCOME)
    expenses = sum(t.amount for t in completed if t.kind == TransactionKind.EXPENSE)

    budgets = list(budgets)
    total_budget = sum(b.allocated_amount for b in budgets)
    budget_utilization = sum(b.spent_amount for b in budgets)

    approved_subsidies = sum(
        s.amount for s in subsidies if s.status in (SubsidyStatus.APPROVED, SubsidyStatus.DISBURSED)
    )

    disbursed = [c for c in credits if c.status == CreditStatus.DISBURSED]
    active_credits = sum(c.amount for c in disbursed)
    credit_outstanding = sum(
        inst.amount
        for c in disbursed
        for inst in c.installments
        if inst.status != InstallmentStatus.PAID
    )

    return FinancialSummary(
        income=income,
        expenses=expenses,
        net=income - expenses,
        total_budget=total_budget,
        budget_utilization=budget_utilization,
        budget_remaining=total_budget - budget_utilization,
        approved_subsidies=approved_subsidies,
        active_credits=active_credits,
        credit_outstanding=credit_outstanding,
        cash_flow=income - expenses,
    )


def build_monthly_report(transactions: Iterable, year: int, month: int) -> MonthlyReport:
    """Income/expense/net and per-category breakdown for completed transactions dated in the month"""
    start, end = month_bounds(year, month)
    in_month = [t for t in completed_only(transactions) if start <= t.date <= end]

    by_category: Dict[str, CategoryTotals] = {}
    for t in in_month:
        totals = by_category.setdefault(t.category, CategoryTotals())
        if t.kind == TransactionKind.INCOME:
            totals.income += t.amount
        else:
            totals.expense += t.amount

    income = sum(t.amount for t in in_month if t.kind == TransactionKind.INCOME)
    expenses = sum(t.amount for t in in_month if t.kind == TransactionKind.EXPENSE)

    return MonthlyReport(
        period=f"{year}-{month:02d}",
        income=income,
        expenses=expenses,
        net=income - expenses,
        transactions=len(in_month),
        by_category=by_category,
    )


def split_benefits(contributions_by_member: Dict[str, int], total_profit: int) -> List[BenefitShare]:
    """Share a profit proportionally to each member's contributions; last member absorbs rounding"""
    members = [(m, amount) for m, amount in contributions_by_member.items() if amount > 0]
    grand_total = sum(amount for _, amount in members)
    if grand_total == 0:
        return []

    shares = []
    allocated = 0
    for index, (member_id, amount) in enumerate(members):
        if index == len(members) - 1:
            share = total_profit - allocated
        else:
            share = round_minor(Decimal(amount) * Decimal(total_profit) / Decimal(grand_total))
        allocated += share
        shares.append(BenefitShare(member_id=member_id, contribution=amount, share=share))
    return shares
