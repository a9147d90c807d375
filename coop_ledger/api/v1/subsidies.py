"""Subsidy lifecycle endpoints"""

from typing import List, Optional

from fastapi import APIRouter, Depends

from coop_ledger.api.dependencies import get_acting_user, get_ledger_service, get_subsidy_service
from coop_ledger.api.v1.schemas import SubsidyCreate, SubsidyResponse, SubsidyStatusUpdate
from coop_ledger.domain.models import (
    CATEGORY_SUBSIDY,
    SubsidyStatus,
    TransactionKind,
    TransactionStatus,
)
from coop_ledger.services.ledger import LedgerService
from coop_ledger.services.subsidies import SubsidyService

router = APIRouter(prefix="/cooperatives/{cooperative_id}")


@router.post("/subsidies", response_model=SubsidyResponse, status_code=201)
def create_subsidy(
    body: SubsidyCreate,
    actor: str = Depends(get_acting_user),
    subsidies: SubsidyService = Depends(get_subsidy_service),
):
    return subsidies.create_subsidy(actor, **body.model_dump())


@router.get("/subsidies", response_model=List[SubsidyResponse])
def list_subsidies(status: Optional[str] = None, subsidies: SubsidyService = Depends(get_subsidy_service)):
    return subsidies.list_subsidies(status=status)


@router.get("/subsidies/{subsidy_id}", response_model=SubsidyResponse)
def get_subsidy(subsidy_id: str, subsidies: SubsidyService = Depends(get_subsidy_service)):
    return subsidies.get_subsidy(subsidy_id)


@router.post("/subsidies/{subsidy_id}/status", response_model=SubsidyResponse)
def update_subsidy_status(
    subsidy_id: str,
    body: SubsidyStatusUpdate,
    actor: str = Depends(get_acting_user),
    subsidies: SubsidyService = Depends(get_subsidy_service),
    ledger: LedgerService = Depends(get_ledger_service),
):
    """
    Move a subsidy along its lifecycle.

    On disbursement this endpoint is the caller that books the grant as
    income, in the same unit of work as the status change.
    """
    with subsidies.write():
        subsidy = subsidies.update_subsidy_status(actor, subsidy_id, body.status, on=body.date)
        if body.status == SubsidyStatus.DISBURSED:
            ledger.create_transaction(
                actor,
                kind=TransactionKind.INCOME,
                category=CATEGORY_SUBSIDY,
                description=f"Subsidy {subsidy.name} from {subsidy.provider}",
                amount=subsidy.amount,
                date=subsidy.disbursement_date,
                payment_method=body.payment_method,
                status=TransactionStatus.COMPLETED,
                reference=subsidy.id,
            )
    return subsidy
