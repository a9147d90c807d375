"""Budget tracker - allocations and the spending recorded against them"""

from datetime import date
from typing import List, Optional

from coop_ledger.domain.budgets import budget_remaining, derive_budget_status
from coop_ledger.domain.exceptions import ValidationError
from coop_ledger.domain.models import BudgetPeriod
from coop_ledger.domain.validation import require_positive
from coop_ledger.infrastructure.database.models import BudgetRow
from coop_ledger.infrastructure.database.repositories import BudgetRepository
from coop_ledger.infrastructure.observability.logging import log_transition
from coop_ledger.services.base import CooperativeService

EDITABLE_FIELDS = {"description", "allocated_amount", "period", "start_date", "end_date"}


class BudgetService(CooperativeService):

    @property
    def repo(self) -> BudgetRepository:
        return BudgetRepository(self.db, self.cooperative_id)

    def create_budget(
        self,
        actor: str,
        category: str,
        allocated_amount: int,
        period: str,
        start_date: date,
        end_date: date,
        description: str = "",
    ) -> BudgetRow:
        """Open a spending envelope; spent starts at 0 and status is derived"""
        if not category or not category.strip():
            raise ValidationError("category is required")
        require_positive("allocated_amount", allocated_amount)
        period = self._parse_period(period)
        self._check_dates(start_date, end_date)

        with self.write():
            budget = BudgetRow(
                id=self.id_factory("budget"),
                category=category.strip(),
                description=description,
                allocated_amount=allocated_amount,
                spent_amount=0,
                period=period.value,
                start_date=start_date,
                end_date=end_date,
            )
            budget.status = derive_budget_status(allocated_amount, 0, end_date, self.today()).value
            self.repo.add(budget)
        return budget

    def get_budget(self, budget_id: str) -> BudgetRow:
        budget = self.repo.get(budget_id)
        self._refresh_stale([budget])
        return budget

    def list_budgets(self, category: Optional[str] = None) -> List[BudgetRow]:
        budgets = self.repo.list(category=category)
        self._refresh_stale(budgets)
        return budgets

    def remaining(self, budget: BudgetRow) -> int:
        return budget_remaining(budget.allocated_amount, budget.spent_amount)

    def apply_expense(self, budget_id: str, amount: int) -> BudgetRow:
        """Add a completed expense to a budget and re-derive its status"""
        require_positive("amount", amount)
        with self.write():
            budget = self.repo.get(budget_id)
            self._adjust_spent(budget, amount)
        return budget

    def release_expense(self, budget_id: str, amount: int) -> BudgetRow:
        """Take a cancelled expense back out of a budget"""
        require_positive("amount", amount)
        with self.write():
            budget = self.repo.get(budget_id)
            self._adjust_spent(budget, -amount)
        return budget

    def apply_to_covering(self, category: str, on: date, amount: int) -> List[BudgetRow]:
        """Apply (or release, when negative) an expense on every budget of the category covering the date"""
        with self.write():
            budgets = self.repo.covering(category, on)
            for budget in budgets:
                self._adjust_spent(budget, amount)
        return budgets

    def update_budget(self, budget_id: str, **changes) -> BudgetRow:
        """Edit non-derived fields; spent amount and status are never set directly"""
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError([f"field '{name}' cannot be edited" for name in sorted(unknown)])
        if "allocated_amount" in changes:
            require_positive("allocated_amount", changes["allocated_amount"])
        if "period" in changes:
            changes["period"] = self._parse_period(changes["period"]).value

        with self.write():
            budget = self.repo.get(budget_id)
            self._check_dates(changes.get("start_date", budget.start_date), changes.get("end_date", budget.end_date))
            for name, value in changes.items():
                setattr(budget, name, value)
            self._refresh_status(budget)
        return budget

    def close_expired(self) -> List[BudgetRow]:
        """Re-derive every budget's status against today's date (ended periods become completed)"""
        with self.write():
            budgets = self.repo.list()
            for budget in budgets:
                self._refresh_status(budget)
        return budgets

    def _refresh_stale(self, budgets: List[BudgetRow]) -> None:
        """Reads report the status as of today, persisting it when the calendar moved on"""
        stale = [b for b in budgets if self._current_status(b) != b.status]
        if stale:
            with self.write():
                for budget in stale:
                    self._refresh_status(budget)

    def _current_status(self, budget: BudgetRow) -> str:
        return derive_budget_status(
            budget.allocated_amount, budget.spent_amount, budget.end_date, self.today()
        ).value

    def _adjust_spent(self, budget: BudgetRow, delta: int) -> None:
        budget.spent_amount += delta
        self._refresh_status(budget)

    def _refresh_status(self, budget: BudgetRow) -> None:
        new_status = self._current_status(budget)
        if new_status != budget.status:
            log_transition(self.cooperative_id, "budget", budget.id, budget.status, new_status)
            budget.status = new_status

    @staticmethod
    def _parse_period(period) -> BudgetPeriod:
        try:
            return BudgetPeriod(getattr(period, "value", period))
        except ValueError:
            raise ValidationError(f"unknown budget period: {period}") from None

    @staticmethod
    def _check_dates(start_date: date, end_date: date) -> None:
        if start_date is None or end_date is None:
            raise ValidationError("start_date and end_date are required")
        if end_date < start_date:
            raise ValidationError("end_date cannot be before start_date")
