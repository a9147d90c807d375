"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from coop_ledger.config import settings
from coop_ledger.infrastructure.clients.payout import PayoutClient, PayoutProvider
from coop_ledger.infrastructure.database.session import get_db
from coop_ledger.infrastructure.locks import CooperativeLocks
from coop_ledger.services.base import Clock, IdFactory
from coop_ledger.services.budgets import BudgetService
from coop_ledger.services.credits import CreditService
from coop_ledger.services.ledger import LedgerService
from coop_ledger.services.redistribution import RedistributionService
from coop_ledger.services.reporting import ReportingService
from coop_ledger.services.subsidies import SubsidyService
from coop_ledger.utils.date_utils import utcnow
from coop_ledger.utils.ids import new_id


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_acting_user(x_user_id: str | None = Header(default=None)) -> str:
    """
    Identity of the caller, set by the authorization layer in front of this service.

    Permissions are checked upstream; here the id is only recorded.
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail="X-User-Id header is required")
    return x_user_id


def get_locks(request: Request) -> CooperativeLocks:
    return request.app.state.locks


def get_clock() -> Clock:
    return utcnow


def get_id_factory() -> IdFactory:
    return new_id


def get_payout_provider() -> PayoutProvider:
    """Provide payout gateway client instance"""
    return PayoutClient()


class _ServiceArgs:
    """Collects what every cooperative-scoped service needs"""

    def __init__(
        self,
        cooperative_id: str,
        db: Session = Depends(get_db),
        locks: CooperativeLocks = Depends(get_locks),
        clock: Clock = Depends(get_clock),
        id_factory: IdFactory = Depends(get_id_factory),
    ):
        self.args = (db, cooperative_id, locks)
        self.kwargs = {"clock": clock, "id_factory": id_factory}


def get_ledger_service(deps: _ServiceArgs = Depends()) -> LedgerService:
    return LedgerService(*deps.args, **deps.kwargs)


def get_budget_service(deps: _ServiceArgs = Depends()) -> BudgetService:
    return BudgetService(*deps.args, **deps.kwargs)


def get_credit_service(deps: _ServiceArgs = Depends()) -> CreditService:
    return CreditService(*deps.args, **deps.kwargs)


def get_subsidy_service(deps: _ServiceArgs = Depends()) -> SubsidyService:
    return SubsidyService(*deps.args, **deps.kwargs)


def get_reporting_service(deps: _ServiceArgs = Depends()) -> ReportingService:
    return ReportingService(*deps.args, **deps.kwargs)


def get_redistribution_service(
    deps: _ServiceArgs = Depends(),
    provider: PayoutProvider = Depends(get_payout_provider),
) -> RedistributionService:
    return RedistributionService(
        *deps.args,
        provider=provider,
        fee_rates=settings.fee_rates,
        **deps.kwargs,
    )
