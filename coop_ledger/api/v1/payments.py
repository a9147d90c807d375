"""Collective payment endpoints - register, receive, review, confirm, process"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Request

from coop_ledger.api.dependencies import get_acting_user, get_redistribution_service, get_request_id
from coop_ledger.api.v1.schemas import (
    DistributionPlanResponse,
    PaymentCreate,
    PaymentResponse,
    RedistributionRequest,
)
from coop_ledger.infrastructure.observability.logging import logger
from coop_ledger.services.redistribution import RedistributionService

router = APIRouter(prefix="/cooperatives/{cooperative_id}")


@router.post("/payments", response_model=PaymentResponse, status_code=201)
def register_payment(
    body: PaymentCreate,
    actor: str = Depends(get_acting_user),
    service: RedistributionService = Depends(get_redistribution_service),
):
    return service.register_payment(
        actor,
        amount=body.amount,
        payment_method=body.payment_method,
        sale_id=body.sale_id,
        buyer_ref=body.buyer_ref,
        line_items=[item.model_dump() for item in body.line_items],
        currency=body.currency,
        invoice_number=body.invoice_number,
    )


@router.get("/payments", response_model=List[PaymentResponse])
def list_payments(
    status: Optional[str] = None,
    service: RedistributionService = Depends(get_redistribution_service),
):
    return service.list_payments(status=status)


@router.get("/payments/{payment_id}", response_model=PaymentResponse)
def get_payment(payment_id: str, service: RedistributionService = Depends(get_redistribution_service)):
    return service.get_payment(payment_id)


@router.post("/payments/{payment_id}/received", response_model=PaymentResponse)
def mark_received(
    payment_id: str,
    actor: str = Depends(get_acting_user),
    service: RedistributionService = Depends(get_redistribution_service),
):
    """Called by the sales system once the buyer's funds have arrived"""
    return service.mark_received(actor, payment_id)


@router.post("/payments/{payment_id}/review", response_model=DistributionPlanResponse)
def review(
    payment_id: str,
    body: RedistributionRequest,
    service: RedistributionService = Depends(get_redistribution_service),
):
    plan = service.review(payment_id, [c.model_dump() for c in body.contributions], body.payout_method)
    return DistributionPlanResponse.model_validate(plan)


@router.post("/payments/{payment_id}/confirm", response_model=DistributionPlanResponse)
def confirm(
    payment_id: str,
    body: RedistributionRequest,
    actor: str = Depends(get_acting_user),
    service: RedistributionService = Depends(get_redistribution_service),
):
    plan = service.confirm(actor, payment_id, [c.model_dump() for c in body.contributions], body.payout_method)
    return DistributionPlanResponse.model_validate(plan)


@router.post("/payments/{payment_id}/cancel", response_model=PaymentResponse)
def cancel(
    payment_id: str,
    actor: str = Depends(get_acting_user),
    service: RedistributionService = Depends(get_redistribution_service),
):
    return service.cancel(actor, payment_id)


@router.post("/payments/{payment_id}/process", response_model=PaymentResponse)
async def process(
    payment_id: str,
    request: Request,
    actor: str = Depends(get_acting_user),
    service: RedistributionService = Depends(get_redistribution_service),
):
    """
    Dispatch payouts for every member not yet paid.

    Calling this again after a partial failure only resubmits the members
    whose distribution is not completed.
    """
    logger.info(
        "Redistribution requested",
        extra={"request_id": get_request_id(request), "payment_id": payment_id, "actor": actor},
    )
    return await service.process(actor, payment_id)
