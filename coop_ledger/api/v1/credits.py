"""Credit engine endpoints"""

from typing import List, Optional

from fastapi import APIRouter, Depends

from coop_ledger.api.dependencies import get_acting_user, get_credit_service
from coop_ledger.api.v1.schemas import (
    CreditCreate,
    CreditResponse,
    CreditStatusUpdate,
    OverdueCheck,
    RepaymentCreate,
)
from coop_ledger.services.credits import CreditService

router = APIRouter(prefix="/cooperatives/{cooperative_id}")


@router.post("/credits", response_model=CreditResponse, status_code=201)
def create_credit(
    body: CreditCreate,
    actor: str = Depends(get_acting_user),
    credits: CreditService = Depends(get_credit_service),
):
    return credits.create_credit(actor, **body.model_dump())


@router.get("/credits", response_model=List[CreditResponse])
def list_credits(
    member_id: Optional[str] = None,
    status: Optional[str] = None,
    credits: CreditService = Depends(get_credit_service),
):
    return credits.list_credits(member_id=member_id, status=status)


@router.get("/credits/{credit_id}", response_model=CreditResponse)
def get_credit(credit_id: str, credits: CreditService = Depends(get_credit_service)):
    return credits.get_credit(credit_id)


@router.post("/credits/{credit_id}/status", response_model=CreditResponse)
def update_credit_status(
    credit_id: str,
    body: CreditStatusUpdate,
    actor: str = Depends(get_acting_user),
    credits: CreditService = Depends(get_credit_service),
):
    return credits.update_credit_status(
        actor, credit_id, body.status, on=body.date, payment_method=body.payment_method
    )


@router.post("/credits/{credit_id}/repayments", response_model=CreditResponse)
def record_repayment(
    credit_id: str,
    body: RepaymentCreate,
    actor: str = Depends(get_acting_user),
    credits: CreditService = Depends(get_credit_service),
):
    return credits.record_repayment(
        actor, credit_id, body.installment_index, on=body.date, payment_method=body.payment_method
    )


@router.post("/credits/{credit_id}/overdue", response_model=CreditResponse)
def mark_overdue(
    credit_id: str,
    body: OverdueCheck,
    actor: str = Depends(get_acting_user),
    credits: CreditService = Depends(get_credit_service),
):
    return credits.mark_overdue(credit_id, as_of=body.as_of)
