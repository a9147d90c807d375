"""Ledger store - the single write path for financial transactions"""

from datetime import date
from typing import Any, Dict, List, Optional

from coop_ledger.domain.exceptions import InvalidTransitionError, ValidationError
from coop_ledger.domain.lifecycle import check_transaction_transition
from coop_ledger.domain.models import (
    CATEGORY_MEMBER_CONTRIBUTION,
    CATEGORY_SUPPLIER_PAYMENT,
    TransactionKind,
    TransactionStatus,
)
from coop_ledger.domain.validation import require_valid_transaction, validate_transaction
from coop_ledger.infrastructure.database.models import FinancialTransactionRow
from coop_ledger.infrastructure.database.repositories import TransactionRepository
from coop_ledger.infrastructure.observability.logging import log_transaction, log_transition
from coop_ledger.infrastructure.observability.metrics import record_transaction
from coop_ledger.services.base import CooperativeService
from coop_ledger.services.budgets import BudgetService

CSV_HEADERS = [
    "ID", "Type", "Category", "Description", "Amount", "Date",
    "Reference", "Status", "PaymentMethod", "CreatedBy", "Notes",
]

# Editable at any non-cancelled status
ANNOTATION_FIELDS = {"description", "reference", "notes", "receipts"}
# Editable only while pending
MONETARY_FIELDS = {"kind", "category", "amount", "date", "payment_method", "member_id", "supplier_id"}


def _plain(value: Any) -> Any:
    return value.value if hasattr(value, "value") else value


class LedgerService(CooperativeService):
    """
    Create, edit, cancel, delete and list transactions for one cooperative.

    Completed expenses are pushed into every matching budget in the same
    unit of work, so budgets and reports see them as soon as the write
    commits.
    """

    @property
    def repo(self) -> TransactionRepository:
        return TransactionRepository(self.db, self.cooperative_id)

    @property
    def budgets(self) -> BudgetService:
        return BudgetService(self.db, self.cooperative_id, self.locks, self.clock, self.id_factory)

    def validate_transaction(self, transaction: Dict[str, Any]) -> List[str]:
        return validate_transaction(transaction)

    def create_transaction(
        self,
        actor: str,
        kind: str,
        category: str,
        description: str,
        amount: int,
        date: date,
        payment_method: str,
        status: str = TransactionStatus.PENDING,
        reference: Optional[str] = None,
        member_id: Optional[str] = None,
        supplier_id: Optional[str] = None,
        receipts: Optional[List[str]] = None,
        notes: Optional[str] = None,
    ) -> FinancialTransactionRow:
        """Validate and store a transaction; a completed expense is applied to its budgets"""
        data = {
            "kind": _plain(kind),
            "category": category,
            "description": description,
            "amount": amount,
            "date": date,
            "payment_method": _plain(payment_method),
            "status": _plain(status),
            "reference": reference,
            "member_id": member_id,
            "supplier_id": supplier_id,
            "receipts": list(receipts or []),
            "notes": notes,
        }
        require_valid_transaction(data)
        data["category"] = category.strip()
        data["description"] = description.strip()

        with self.write():
            now = self.now()
            row = FinancialTransactionRow(
                id=self.id_factory("txn"),
                created_by=actor,
                created_at=now,
                updated_at=now,
                **data,
            )
            self.repo.add(row)
            if row.status == TransactionStatus.COMPLETED:
                self._apply_to_budgets(row, row.amount)

        record_transaction(row.kind, row.status)
        log_transaction(self.cooperative_id, row.id, row.kind, row.category, row.amount, row.status)
        return row

    def update_transaction(self, actor: str, transaction_id: str, **changes) -> FinancialTransactionRow:
        """
        Edit a transaction.

        - cancelled transactions are immutable
        - monetary fields only change while pending
        - status follows pending -> completed/cancelled, completed -> cancelled
        - created_at / created_by never change; updated_at is stamped
        """
        allowed = ANNOTATION_FIELDS | MONETARY_FIELDS | {"status"}
        unknown = set(changes) - allowed
        if unknown:
            raise ValidationError([f"field '{name}' cannot be edited" for name in sorted(unknown)])
        changes = {name: _plain(value) for name, value in changes.items()}

        with self.write():
            row = self.repo.get(transaction_id)
            old_status = row.status
            new_status = changes.get("status", old_status)

            if old_status == TransactionStatus.CANCELLED:
                raise InvalidTransitionError("transaction", old_status, new_status)
            if new_status != old_status:
                check_transaction_transition(old_status, new_status)

            monetary = {name for name in changes if name in MONETARY_FIELDS and changes[name] != getattr(row, name)}
            if monetary and old_status != TransactionStatus.PENDING:
                raise ValidationError(
                    [f"field '{name}' can only change while the transaction is pending" for name in sorted(monetary)]
                )

            merged = {name: getattr(row, name) for name in allowed}
            merged.update(changes)
            require_valid_transaction(merged)

            for name, value in changes.items():
                setattr(row, name, value)
            row.updated_at = self.now()

            if new_status != old_status:
                if new_status == TransactionStatus.COMPLETED:
                    self._apply_to_budgets(row, row.amount)
                elif old_status == TransactionStatus.COMPLETED:
                    self._apply_to_budgets(row, -row.amount)
                log_transition(self.cooperative_id, "transaction", row.id, old_status, new_status)

        if new_status != old_status:
            record_transaction(row.kind, row.status)
        return row

    def complete_transaction(self, actor: str, transaction_id: str) -> FinancialTransactionRow:
        return self.update_transaction(actor, transaction_id, status=TransactionStatus.COMPLETED)

    def cancel_transaction(self, actor: str, transaction_id: str) -> FinancialTransactionRow:
        """Soft-cancel; the row stays for the audit trail"""
        return self.update_transaction(actor, transaction_id, status=TransactionStatus.CANCELLED)

    def delete_transaction(self, actor: str, transaction_id: str) -> None:
        """Physically remove a transaction; only allowed while pending"""
        with self.write():
            row = self.repo.get(transaction_id)
            if row.status != TransactionStatus.PENDING:
                raise InvalidTransitionError("transaction", row.status, "deleted")
            self.repo.delete(row)

    def get_transaction(self, transaction_id: str) -> FinancialTransactionRow:
        return self.repo.get(transaction_id)

    def list_transactions(self, **filters) -> List[FinancialTransactionRow]:
        return self.repo.list(**filters)

    def record_member_contribution(
        self,
        actor: str,
        member_id: str,
        amount: int,
        payment_method: str,
        on: Optional[date] = None,
        reference: Optional[str] = None,
    ) -> FinancialTransactionRow:
        """A member paying into the cooperative"""
        return self.create_transaction(
            actor,
            kind=TransactionKind.INCOME,
            category=CATEGORY_MEMBER_CONTRIBUTION,
            description=f"Contribution from member {member_id}",
            amount=amount,
            date=on or self.today(),
            payment_method=payment_method,
            status=TransactionStatus.COMPLETED,
            reference=reference,
            member_id=member_id,
        )

    def record_supplier_payment(
        self,
        actor: str,
        supplier_id: str,
        amount: int,
        payment_method: str,
        description: str,
        on: Optional[date] = None,
        reference: Optional[str] = None,
    ) -> FinancialTransactionRow:
        """The cooperative paying a supplier"""
        return self.create_transaction(
            actor,
            kind=TransactionKind.EXPENSE,
            category=CATEGORY_SUPPLIER_PAYMENT,
            description=description,
            amount=amount,
            date=on or self.today(),
            payment_method=payment_method,
            status=TransactionStatus.COMPLETED,
            reference=reference,
            supplier_id=supplier_id,
        )

    def export_csv(self) -> str:
        """
        One row per transaction, header first.

        Values are comma-joined without quoting; callers sanitize embedded commas.
        """
        rows = [CSV_HEADERS]
        for t in self.repo.list():
            rows.append([
                t.id,
                t.kind,
                t.category,
                t.description,
                str(t.amount),
                t.date.isoformat(),
                t.reference or "",
                t.status,
                t.payment_method,
                t.created_by,
                t.notes or "",
            ])
        return "\n".join(",".join(row) for row in rows)

    def _apply_to_budgets(self, row: FinancialTransactionRow, amount: int) -> None:
        if row.kind == TransactionKind.EXPENSE:
            self.budgets.apply_to_covering(row.category, row.date, amount)
