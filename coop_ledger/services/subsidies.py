"""Subsidy lifecycle - grant applications from application to disbursement"""

from datetime import date
from typing import Iterable, List, Optional

from coop_ledger.domain.exceptions import ValidationError
from coop_ledger.domain.lifecycle import check_subsidy_transition
from coop_ledger.domain.models import SubsidyStatus
from coop_ledger.domain.validation import parse_status, require_positive
from coop_ledger.infrastructure.database.models import SubsidyRow
from coop_ledger.infrastructure.database.repositories import SubsidyRepository
from coop_ledger.infrastructure.observability.logging import log_transition
from coop_ledger.services.base import CooperativeService


class SubsidyService(CooperativeService):
    """
    Tracks grants through applied -> approved -> disbursed, or applied -> rejected.

    This service never writes the ledger. Whoever disburses a subsidy must
    also record the matching income transaction (category "subsidy").
    """

    @property
    def repo(self) -> SubsidyRepository:
        return SubsidyRepository(self.db, self.cooperative_id)

    def create_subsidy(
        self,
        actor: str,
        name: str,
        amount: int,
        provider: str,
        description: str = "",
        requirements: Iterable[str] = (),
        documents: Iterable[str] = (),
        beneficiaries: Iterable[str] = (),
        conditions: Optional[str] = None,
        application_date: Optional[date] = None,
    ) -> SubsidyRow:
        errors = []
        if not name or not name.strip():
            errors.append("name is required")
        if not provider or not provider.strip():
            errors.append("provider is required")
        if errors:
            raise ValidationError(errors)
        require_positive("amount", amount)

        with self.write():
            subsidy = SubsidyRow(
                id=self.id_factory("subsidy"),
                name=name.strip(),
                description=description,
                amount=amount,
                provider=provider.strip(),
                application_date=application_date or self.today(),
                status=SubsidyStatus.APPLIED.value,
                requirements=list(requirements),
                documents=list(documents),
                # Member ids form a set; keep first-seen order
                beneficiaries=list(dict.fromkeys(beneficiaries)),
                conditions=conditions,
            )
            self.repo.add(subsidy)
        return subsidy

    def get_subsidy(self, subsidy_id: str) -> SubsidyRow:
        return self.repo.get(subsidy_id)

    def list_subsidies(self, status: Optional[str] = None) -> List[SubsidyRow]:
        return self.repo.list(status=status)

    def update_subsidy_status(
        self, actor: str, subsidy_id: str, new_status: str, on: Optional[date] = None
    ) -> SubsidyRow:
        """Forward-only transition; stamps approval or disbursement date"""
        new_status = parse_status(SubsidyStatus, new_status)
        on = on or self.today()

        with self.write():
            subsidy = self.repo.get(subsidy_id)
            old_status = subsidy.status
            check_subsidy_transition(old_status, new_status)
            subsidy.status = new_status.value
            if new_status == SubsidyStatus.APPROVED:
                subsidy.approval_date = on
            elif new_status == SubsidyStatus.DISBURSED:
                subsidy.disbursement_date = on

        log_transition(self.cooperative_id, "subsidy", subsidy.id, old_status, subsidy.status)
        return subsidy
