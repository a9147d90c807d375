"""Data access layer - every query is scoped to one cooperative"""

from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from coop_ledger.domain.exceptions import NotFoundError
from coop_ledger.infrastructure.database.models import (
    BudgetRow,
    CollectivePaymentRow,
    CreditRow,
    FinancialTransactionRow,
    SubsidyRow,
)


class _CooperativeRepository:
    """Shared plumbing for repositories keyed by cooperative id"""

    model = None
    entity = ""

    def __init__(self, db: Session, cooperative_id: str):
        self.db = db
        self.cooperative_id = cooperative_id

    def _query(self):
        return self.db.query(self.model).filter(self.model.cooperative_id == self.cooperative_id)

    def add(self, row):
        row.cooperative_id = self.cooperative_id
        self.db.add(row)
        self.db.flush()  # Surface constraint errors before commit
        return row

    def find(self, entity_id: str):
        return self._query().filter(self.model.id == entity_id).first()

    def get(self, entity_id: str):
        """Fetch by id or raise NotFoundError"""
        row = self.find(entity_id)
        if row is None:
            raise NotFoundError(self.entity, entity_id)
        return row


class TransactionRepository(_CooperativeRepository):
    """Repository for financial transactions"""

    model = FinancialTransactionRow
    entity = "transaction"

    def list(
        self,
        kind: Optional[str] = None,
        status: Optional[str] = None,
        category: Optional[str] = None,
        member_id: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> List[FinancialTransactionRow]:
        """Newest first, optionally filtered"""
        query = self._query()
        if kind:
            query = query.filter(FinancialTransactionRow.kind == kind)
        if status:
            query = query.filter(FinancialTransactionRow.status == status)
        if category:
            query = query.filter(FinancialTransactionRow.category == category)
        if member_id:
            query = query.filter(FinancialTransactionRow.member_id == member_id)
        if date_from:
            query = query.filter(FinancialTransactionRow.date >= date_from)
        if date_to:
            query = query.filter(FinancialTransactionRow.date <= date_to)
        return query.order_by(FinancialTransactionRow.date.desc(), FinancialTransactionRow.created_at.desc()).all()

    def delete(self, row: FinancialTransactionRow) -> None:
        self.db.delete(row)
        self.db.flush()


class BudgetRepository(_CooperativeRepository):
    """Repository for budgets"""

    model = BudgetRow
    entity = "budget"

    def list(self, category: Optional[str] = None) -> List[BudgetRow]:
        query = self._query()
        if category:
            query = query.filter(BudgetRow.category == category)
        return query.order_by(BudgetRow.start_date).all()

    def covering(self, category: str, on: date) -> List[BudgetRow]:
        """Budgets of a category whose period contains the given date"""
        return (
            self._query()
            .filter(BudgetRow.category == category)
            .filter(BudgetRow.start_date <= on)
            .filter(BudgetRow.end_date >= on)
            .all()
        )


class SubsidyRepository(_CooperativeRepository):
    """Repository for subsidies"""

    model = SubsidyRow
    entity = "subsidy"

    def list(self, status: Optional[str] = None) -> List[SubsidyRow]:
        query = self._query()
        if status:
            query = query.filter(SubsidyRow.status == status)
        return query.order_by(SubsidyRow.application_date).all()


class CreditRepository(_CooperativeRepository):
    """Repository for credits and their installments"""

    model = CreditRow
    entity = "credit"

    def list(self, member_id: Optional[str] = None, status: Optional[str] = None) -> List[CreditRow]:
        query = self._query()
        if member_id:
            query = query.filter(CreditRow.member_id == member_id)
        if status:
            query = query.filter(CreditRow.status == status)
        return query.order_by(CreditRow.application_date).all()


class CollectivePaymentRepository(_CooperativeRepository):
    """Repository for collective payments, their line items and distributions"""

    model = CollectivePaymentRow
    entity = "collective payment"

    def list(self, status: Optional[str] = None) -> List[CollectivePaymentRow]:
        query = self._query()
        if status:
            query = query.filter(CollectivePaymentRow.status == status)
        return query.order_by(CollectivePaymentRow.created_at.desc()).all()
