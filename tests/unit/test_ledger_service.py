"""Service tests for the ledger store"""

import pytest
from datetime import date, datetime

from coop_ledger.domain.exceptions import InvalidTransitionError, NotFoundError, ValidationError
from coop_ledger.services.ledger import CSV_HEADERS, LedgerService

ACTOR = "treasurer_1"


def _expense(ledger, amount=45000, status="pending", category="seeds", on=date(2024, 3, 10), **kwargs):
    return ledger.create_transaction(
        ACTOR,
        kind="expense",
        category=category,
        description="Millet seed purchase",
        amount=amount,
        date=on,
        payment_method="mobile_money",
        status=status,
        **kwargs,
    )


@pytest.fixture
def seeds_budget(budgets):
    return budgets.create_budget(ACTOR, "seeds", 100000, "monthly", date(2024, 3, 1), date(2024, 3, 31))


def test_create_transaction_stamps_audit_fields(ledger):
    row = _expense(ledger, reference="INV-7", receipts=["r1.jpg"])

    assert row.id == "txn_0001"
    assert row.status == "pending"
    assert row.created_by == ACTOR
    assert row.created_at == row.updated_at
    assert row.receipts == ["r1.jpg"]
    assert row.cooperative_id == "coop_kaolack"


def test_create_transaction_rejects_invalid_input(ledger):
    with pytest.raises(ValidationError) as exc_info:
        ledger.create_transaction(
            ACTOR, kind="expense", category="", description="ab", amount=0,
            date=None, payment_method="mobile_money",
        )
    assert len(exc_info.value.errors) == 4
    assert ledger.list_transactions() == []


def test_completed_expense_applies_to_covering_budget(ledger, budgets, seeds_budget):
    _expense(ledger, amount=30000, status="completed")
    _expense(ledger, amount=5000, status="completed", on=date(2024, 4, 2))
    _expense(ledger, amount=7000, status="completed", category="fertilizer")
    _expense(ledger, amount=9000, status="pending")

    budget = budgets.get_budget(seeds_budget.id)
    assert budget.spent_amount == 30000
    assert budget.status == "active"


def test_completing_a_pending_expense_updates_budget(ledger, budgets, seeds_budget):
    row = _expense(ledger, amount=120000)
    ledger.complete_transaction(ACTOR, row.id)

    budget = budgets.get_budget(seeds_budget.id)
    assert budget.spent_amount == 120000
    assert budget.status == "over_budget"
    assert budgets.remaining(budget) == -20000


def test_cancelling_completed_expense_releases_budget(ledger, budgets, seeds_budget):
    row = _expense(ledger, amount=120000, status="completed")
    ledger.cancel_transaction(ACTOR, row.id)

    budget = budgets.get_budget(seeds_budget.id)
    assert budget.spent_amount == 0
    assert budget.status == "active"
    assert ledger.get_transaction(row.id).status == "cancelled"


def test_income_never_touches_budgets(ledger, budgets, seeds_budget):
    ledger.create_transaction(
        ACTOR, kind="income", category="seeds", description="Seed resale",
        amount=10000, date=date(2024, 3, 5), payment_method="cash", status="completed",
    )
    assert budgets.get_budget(seeds_budget.id).spent_amount == 0


def test_cancelled_transaction_is_immutable(ledger):
    row = _expense(ledger)
    ledger.cancel_transaction(ACTOR, row.id)

    with pytest.raises(InvalidTransitionError):
        ledger.update_transaction(ACTOR, row.id, notes="too late")
    with pytest.raises(InvalidTransitionError):
        ledger.complete_transaction(ACTOR, row.id)


def test_completed_transaction_allows_annotations_only(ledger):
    row = _expense(ledger, status="completed")

    updated = ledger.update_transaction(ACTOR, row.id, notes="receipt scanned", reference="INV-9")
    assert updated.notes == "receipt scanned"
    assert updated.reference == "INV-9"

    with pytest.raises(ValidationError):
        ledger.update_transaction(ACTOR, row.id, amount=1)


def test_pending_transaction_monetary_edit(ledger):
    row = _expense(ledger)
    updated = ledger.update_transaction(ACTOR, row.id, amount=50000, category="fertilizer")

    assert updated.amount == 50000
    assert updated.category == "fertilizer"
    assert updated.created_by == ACTOR


def test_update_rejects_audit_fields_and_bad_values(ledger):
    row = _expense(ledger)

    with pytest.raises(ValidationError):
        ledger.update_transaction(ACTOR, row.id, created_by="someone_else")
    with pytest.raises(ValidationError):
        ledger.update_transaction(ACTOR, row.id, amount=-5)
    assert ledger.get_transaction(row.id).amount == 45000


def test_update_stamps_updated_at(db, locks, ids):
    times = iter([datetime(2024, 3, 1, 8, 0), datetime(2024, 3, 2, 8, 0)])
    ledger = LedgerService(db, "coop_kaolack", locks, clock=lambda: next(times), id_factory=ids)
    row = _expense(ledger)
    updated = ledger.update_transaction(ACTOR, row.id, notes="checked")

    assert updated.created_at.day == 1
    assert updated.updated_at.day == 2


def test_delete_only_pending(ledger):
    pending = _expense(ledger)
    completed = _expense(ledger, status="completed")

    ledger.delete_transaction(ACTOR, pending.id)
    with pytest.raises(NotFoundError):
        ledger.get_transaction(pending.id)

    with pytest.raises(InvalidTransitionError):
        ledger.delete_transaction(ACTOR, completed.id)


def test_list_filters(ledger):
    _expense(ledger, status="completed")
    _expense(ledger, category="transport", on=date(2024, 2, 1))
    ledger.record_member_contribution(ACTOR, "m_awa", 25000, "cash", on=date(2024, 3, 3))

    assert len(ledger.list_transactions()) == 3
    assert len(ledger.list_transactions(kind="income")) == 1
    assert len(ledger.list_transactions(status="completed")) == 2
    assert len(ledger.list_transactions(category="transport")) == 1
    assert len(ledger.list_transactions(member_id="m_awa")) == 1
    assert len(ledger.list_transactions(date_from=date(2024, 3, 1), date_to=date(2024, 3, 31))) == 2


def test_transactions_are_scoped_to_cooperative(ledger, db, locks, ids):
    row = _expense(ledger)
    other = LedgerService(db, "coop_thies", locks, id_factory=ids)

    assert other.list_transactions() == []
    with pytest.raises(NotFoundError):
        other.get_transaction(row.id)


def test_member_contribution_and_supplier_payment(ledger):
    contribution = ledger.record_member_contribution(ACTOR, "m_awa", 25000, "mobile_money")
    payment = ledger.record_supplier_payment(ACTOR, "sup_agri", 80000, "bank_transfer", "Fertilizer delivery")

    assert contribution.kind == "income"
    assert contribution.category == "member_contribution"
    assert contribution.status == "completed"
    assert contribution.date == date(2024, 3, 15)
    assert payment.kind == "expense"
    assert payment.category == "supplier_payment"
    assert payment.supplier_id == "sup_agri"


def test_validate_transaction_dry_run(ledger):
    assert ledger.validate_transaction({"amount": 5}) != []
    assert ledger.list_transactions() == []


def test_export_csv(ledger):
    _expense(ledger, reference="INV-7", notes="paid by Awa")
    lines = ledger.export_csv().split("\n")

    assert lines[0] == ",".join(CSV_HEADERS)
    assert lines[1] == (
        "txn_0001,expense,seeds,Millet seed purchase,45000,2024-03-10,INV-7,pending,mobile_money,treasurer_1,paid by Awa"
    )
