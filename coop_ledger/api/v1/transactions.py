"""Ledger store endpoints - transactions, contributions, supplier payments, CSV export"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Response

from coop_ledger.api.dependencies import get_acting_user, get_ledger_service
from coop_ledger.api.v1.schemas import (
    MemberContributionCreate,
    SupplierPaymentCreate,
    TransactionCreate,
    TransactionResponse,
    TransactionUpdate,
    TransactionValidation,
)
from coop_ledger.services.ledger import LedgerService

router = APIRouter(prefix="/cooperatives/{cooperative_id}")


@router.post("/transactions", response_model=TransactionResponse, status_code=201)
def create_transaction(
    body: TransactionCreate,
    actor: str = Depends(get_acting_user),
    ledger: LedgerService = Depends(get_ledger_service),
):
    return ledger.create_transaction(actor, **body.model_dump())


@router.post("/transactions/validate", response_model=TransactionValidation)
def validate_transaction(body: dict, ledger: LedgerService = Depends(get_ledger_service)):
    """Dry-run the ledger's validation rules on a raw payload"""
    errors = ledger.validate_transaction(body)
    return TransactionValidation(is_valid=not errors, errors=errors)


@router.get("/transactions", response_model=List[TransactionResponse])
def list_transactions(
    kind: Optional[str] = None,
    status: Optional[str] = None,
    category: Optional[str] = None,
    member_id: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    ledger: LedgerService = Depends(get_ledger_service),
):
    return ledger.list_transactions(
        kind=kind,
        status=status,
        category=category,
        member_id=member_id,
        date_from=date_from,
        date_to=date_to,
    )


@router.get("/transactions/export.csv")
def export_transactions(ledger: LedgerService = Depends(get_ledger_service)):
    return Response(content=ledger.export_csv(), media_type="text/csv")


@router.get("/transactions/{transaction_id}", response_model=TransactionResponse)
def get_transaction(transaction_id: str, ledger: LedgerService = Depends(get_ledger_service)):
    return ledger.get_transaction(transaction_id)


@router.patch("/transactions/{transaction_id}", response_model=TransactionResponse)
def update_transaction(
    transaction_id: str,
    body: TransactionUpdate,
    actor: str = Depends(get_acting_user),
    ledger: LedgerService = Depends(get_ledger_service),
):
    return ledger.update_transaction(actor, transaction_id, **body.model_dump(exclude_unset=True))


@router.post("/transactions/{transaction_id}/complete", response_model=TransactionResponse)
def complete_transaction(
    transaction_id: str,
    actor: str = Depends(get_acting_user),
    ledger: LedgerService = Depends(get_ledger_service),
):
    return ledger.complete_transaction(actor, transaction_id)


@router.post("/transactions/{transaction_id}/cancel", response_model=TransactionResponse)
def cancel_transaction(
    transaction_id: str,
    actor: str = Depends(get_acting_user),
    ledger: LedgerService = Depends(get_ledger_service),
):
    return ledger.cancel_transaction(actor, transaction_id)


@router.delete("/transactions/{transaction_id}", status_code=204)
def delete_transaction(
    transaction_id: str,
    actor: str = Depends(get_acting_user),
    ledger: LedgerService = Depends(get_ledger_service),
):
    ledger.delete_transaction(actor, transaction_id)
    return Response(status_code=204)


@router.post("/contributions", response_model=TransactionResponse, status_code=201)
def record_member_contribution(
    body: MemberContributionCreate,
    actor: str = Depends(get_acting_user),
    ledger: LedgerService = Depends(get_ledger_service),
):
    return ledger.record_member_contribution(
        actor,
        member_id=body.member_id,
        amount=body.amount,
        payment_method=body.payment_method,
        on=body.date,
        reference=body.reference,
    )


@router.post("/supplier-payments", response_model=TransactionResponse, status_code=201)
def record_supplier_payment(
    body: SupplierPaymentCreate,
    actor: str = Depends(get_acting_user),
    ledger: LedgerService = Depends(get_ledger_service),
):
    return ledger.record_supplier_payment(
        actor,
        supplier_id=body.supplier_id,
        amount=body.amount,
        payment_method=body.payment_method,
        description=body.description,
        on=body.date,
        reference=body.reference,
    )
