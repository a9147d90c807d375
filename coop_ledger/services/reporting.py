"""Reporting - read-only views over the ledger store"""

from collections import defaultdict
from typing import Dict, List

from coop_ledger.domain.models import (
    CATEGORY_MEMBER_CONTRIBUTION,
    BenefitShare,
    FinancialSummary,
    MonthlyReport,
    TransactionKind,
    TransactionStatus,
)
from coop_ledger.domain.reporting import build_financial_summary, build_monthly_report, split_benefits
from coop_ledger.domain.validation import require_positive
from coop_ledger.domain.exceptions import ValidationError
from coop_ledger.infrastructure.database.repositories import (
    BudgetRepository,
    CreditRepository,
    SubsidyRepository,
    TransactionRepository,
)
from coop_ledger.services.base import CooperativeService


class ReportingService(CooperativeService):
    """Every call reads the committed state at call time; nothing here writes"""

    def financial_summary(self) -> FinancialSummary:
        return build_financial_summary(
            TransactionRepository(self.db, self.cooperative_id).list(status=TransactionStatus.COMPLETED.value),
            BudgetRepository(self.db, self.cooperative_id).list(),
            SubsidyRepository(self.db, self.cooperative_id).list(),
            CreditRepository(self.db, self.cooperative_id).list(),
        )

    def monthly_report(self, year: int, month: int) -> MonthlyReport:
        if not 1 <= month <= 12:
            raise ValidationError("month must be between 1 and 12")
        return build_monthly_report(
            TransactionRepository(self.db, self.cooperative_id).list(status=TransactionStatus.COMPLETED.value),
            year,
            month,
        )

    def benefit_distribution(self, total_profit: int) -> List[BenefitShare]:
        """Split a profit by each member's completed contributions"""
        require_positive("total_profit", total_profit)
        totals: Dict[str, int] = defaultdict(int)
        contributions = TransactionRepository(self.db, self.cooperative_id).list(
            kind=TransactionKind.INCOME.value,
            status=TransactionStatus.COMPLETED.value,
            category=CATEGORY_MEMBER_CONTRIBUTION,
        )
        # Oldest first so the remainder lands on the latest contributor
        for t in reversed(contributions):
            if t.member_id:
                totals[t.member_id] += t.amount
        return split_benefits(dict(totals), total_profit)
