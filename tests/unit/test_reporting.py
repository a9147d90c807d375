"""Unit tests for report aggregation"""

from datetime import date
from types import SimpleNamespace

from coop_ledger.domain.reporting import (
    build_financial_summary,
    build_monthly_report,
    completed_only,
    split_benefits,
)


def _txn(kind, amount, on, category="misc", status="completed"):
    return SimpleNamespace(kind=kind, amount=amount, date=on, category=category, status=status)


def _credit(status, amount, installments):
    return SimpleNamespace(
        status=status,
        amount=amount,
        installments=[SimpleNamespace(amount=a, status=s) for a, s in installments],
    )


def test_completed_only_drops_pending_and_cancelled():
    transactions = [
        _txn("income", 100, date(2024, 3, 1)),
        _txn("income", 200, date(2024, 3, 1), status="pending"),
        _txn("income", 300, date(2024, 3, 1), status="cancelled"),
    ]
    assert [t.amount for t in completed_only(transactions)] == [100]


def test_financial_summary():
    transactions = [
        _txn("income", 500000, date(2024, 3, 1)),
        _txn("expense", 120000, date(2024, 3, 2)),
        _txn("expense", 999999, date(2024, 3, 3), status="pending"),
    ]
    budgets = [
        SimpleNamespace(allocated_amount=200000, spent_amount=120000),
        SimpleNamespace(allocated_amount=50000, spent_amount=60000),
    ]
    subsidies = [
        SimpleNamespace(status="approved", amount=1000000),
        SimpleNamespace(status="disbursed", amount=250000),
        SimpleNamespace(status="applied", amount=777),
        SimpleNamespace(status="rejected", amount=888),
    ]
    credits = [
        _credit("disbursed", 100000, [(50000, "paid"), (50000, "pending")]),
        _credit("approved", 40000, [(40000, "pending")]),
        _credit("repaid", 30000, [(30000, "paid")]),
    ]

    summary = build_financial_summary(transactions, budgets, subsidies, credits)

    assert summary.income == 500000
    assert summary.expenses == 120000
    assert summary.net == 380000
    assert summary.cash_flow == 380000
    assert summary.total_budget == 250000
    assert summary.budget_utilization == 180000
    assert summary.budget_remaining == 70000
    assert summary.approved_subsidies == 1250000
    assert summary.active_credits == 100000
    assert summary.credit_outstanding == 50000


def test_monthly_report_by_category():
    transactions = [
        _txn("income", 300000, date(2024, 2, 29), category="sales"),
        _txn("income", 100000, date(2024, 3, 1), category="sales"),
        _txn("expense", 40000, date(2024, 3, 15), category="seeds"),
        _txn("expense", 10000, date(2024, 3, 31), category="transport"),
        _txn("expense", 5000, date(2024, 3, 20), category="seeds", status="cancelled"),
        _txn("income", 70000, date(2024, 4, 1), category="sales"),
    ]

    report = build_monthly_report(transactions, 2024, 3)

    assert report.period == "2024-03"
    assert report.income == 100000
    assert report.expenses == 50000
    assert report.net == 50000
    assert report.transactions == 3
    assert report.by_category["sales"].income == 100000
    assert report.by_category["seeds"].expense == 40000
    assert report.by_category["transport"].expense == 10000


def test_monthly_report_empty_month():
    report = build_monthly_report([], 2024, 1)

    assert report.income == report.expenses == report.net == 0
    assert report.by_category == {}


def test_split_benefits_proportional():
    shares = split_benefits({"m1": 60000, "m2": 30000, "m3": 10000}, 50000)

    assert [(s.member_id, s.share) for s in shares] == [("m1", 30000), ("m2", 15000), ("m3", 5000)]


def test_split_benefits_last_absorbs_remainder():
    shares = split_benefits({"m1": 1, "m2": 1, "m3": 1}, 100)

    assert [s.share for s in shares] == [33, 33, 34]
    assert sum(s.share for s in shares) == 100


def test_split_benefits_without_contributions():
    assert split_benefits({}, 100000) == []
