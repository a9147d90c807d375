"""Budget tracker endpoints"""

from typing import List, Optional

from fastapi import APIRouter, Depends

from coop_ledger.api.dependencies import get_acting_user, get_budget_service
from coop_ledger.api.v1.schemas import BudgetCreate, BudgetResponse, BudgetUpdate
from coop_ledger.services.budgets import BudgetService

router = APIRouter(prefix="/cooperatives/{cooperative_id}")


@router.post("/budgets", response_model=BudgetResponse, status_code=201)
def create_budget(
    body: BudgetCreate,
    actor: str = Depends(get_acting_user),
    budgets: BudgetService = Depends(get_budget_service),
):
    return budgets.create_budget(actor, **body.model_dump())


@router.get("/budgets", response_model=List[BudgetResponse])
def list_budgets(category: Optional[str] = None, budgets: BudgetService = Depends(get_budget_service)):
    return budgets.list_budgets(category=category)


@router.get("/budgets/{budget_id}", response_model=BudgetResponse)
def get_budget(budget_id: str, budgets: BudgetService = Depends(get_budget_service)):
    return budgets.get_budget(budget_id)


@router.patch("/budgets/{budget_id}", response_model=BudgetResponse)
def update_budget(
    budget_id: str,
    body: BudgetUpdate,
    actor: str = Depends(get_acting_user),
    budgets: BudgetService = Depends(get_budget_service),
):
    return budgets.update_budget(budget_id, **body.model_dump(exclude_unset=True))


@router.post("/budgets/close-expired", response_model=List[BudgetResponse])
def close_expired(
    actor: str = Depends(get_acting_user),
    budgets: BudgetService = Depends(get_budget_service),
):
    """Re-derive status of budgets whose period has ended"""
    return budgets.close_expired()
