"""Service tests for reporting over the committed ledger"""

import pytest
from datetime import date

from coop_ledger.domain.exceptions import ValidationError

ACTOR = "treasurer_1"


def test_summary_reflects_latest_writes(ledger, budgets, reporting):
    assert reporting.financial_summary().income == 0

    budgets.create_budget(ACTOR, "seeds", 100000, "monthly", date(2024, 3, 1), date(2024, 3, 31))
    ledger.record_member_contribution(ACTOR, "m_awa", 60000, "cash")
    row = ledger.create_transaction(
        ACTOR, kind="expense", category="seeds", description="Seeds", amount=25000,
        date=date(2024, 3, 12), payment_method="cash",
    )

    summary = reporting.financial_summary()
    assert summary.income == 60000
    assert summary.expenses == 0
    assert summary.budget_utilization == 0

    ledger.complete_transaction(ACTOR, row.id)
    summary = reporting.financial_summary()
    assert summary.expenses == 25000
    assert summary.net == 35000
    assert summary.total_budget == 100000
    assert summary.budget_utilization == 25000
    assert summary.budget_remaining == 75000


def test_summary_counts_subsidies_and_credits(subsidies, credits, reporting):
    grant = subsidies.create_subsidy(ACTOR, name="Grant", amount=500000, provider="FAO")
    subsidies.update_subsidy_status(ACTOR, grant.id, "approved")
    subsidies.create_subsidy(ACTOR, name="Pending grant", amount=90000, provider="FAO")

    credit = credits.create_credit(ACTOR, "m_awa", 40000, 0, 4, "Pump")
    credits.update_credit_status(ACTOR, credit.id, "approved")
    credits.update_credit_status(ACTOR, credit.id, "disbursed")
    credits.record_repayment(ACTOR, credit.id, 0)

    summary = reporting.financial_summary()
    assert summary.approved_subsidies == 500000
    assert summary.active_credits == 40000
    assert summary.credit_outstanding == 30000
    assert summary.income == 10000
    assert summary.expenses == 40000


def test_monthly_report(ledger, reporting):
    ledger.record_member_contribution(ACTOR, "m_awa", 60000, "cash", on=date(2024, 3, 2))
    ledger.record_supplier_payment(ACTOR, "sup_1", 20000, "cash", "Bags", on=date(2024, 3, 9))
    ledger.record_supplier_payment(ACTOR, "sup_1", 99999, "cash", "Bags", on=date(2024, 4, 1))

    report = reporting.monthly_report(2024, 3)
    assert report.period == "2024-03"
    assert report.income == 60000
    assert report.expenses == 20000
    assert report.transactions == 2
    assert report.by_category["supplier_payment"].expense == 20000


def test_monthly_report_rejects_bad_month(reporting):
    with pytest.raises(ValidationError):
        reporting.monthly_report(2024, 13)


def test_benefit_distribution(ledger, reporting):
    ledger.record_member_contribution(ACTOR, "m_awa", 60000, "cash", on=date(2024, 1, 5))
    ledger.record_member_contribution(ACTOR, "m_moussa", 30000, "cash", on=date(2024, 1, 6))
    ledger.record_member_contribution(ACTOR, "m_awa", 10000, "cash", on=date(2024, 2, 5))

    shares = {s.member_id: s for s in reporting.benefit_distribution(100001)}

    assert shares["m_awa"].contribution == 70000
    assert shares["m_moussa"].contribution == 30000
    assert shares["m_awa"].share + shares["m_moussa"].share == 100001


def test_benefit_distribution_requires_positive_profit(reporting):
    with pytest.raises(ValidationError):
        reporting.benefit_distribution(0)
