"""Pytest fixtures for testing"""

import asyncio
from datetime import datetime, timezone
from typing import Generator, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from coop_ledger.api.dependencies import get_clock, get_id_factory, get_payout_provider
from coop_ledger.api.main import create_app
from coop_ledger.domain.exceptions import ProviderError
from coop_ledger.domain.models import PayoutResult
from coop_ledger.infrastructure.clients.payout import idempotency_key
from coop_ledger.infrastructure.database.models import Base
from coop_ledger.infrastructure.database.session import get_db
from coop_ledger.infrastructure.locks import CooperativeLocks
from coop_ledger.services.budgets import BudgetService
from coop_ledger.services.credits import CreditService
from coop_ledger.services.ledger import LedgerService
from coop_ledger.services.redistribution import RedistributionService
from coop_ledger.services.reporting import ReportingService
from coop_ledger.services.subsidies import SubsidyService

COOP_ID = "coop_kaolack"
ACTOR = "treasurer_1"
FIXED_NOW = datetime(2024, 3, 15, 9, 30, tzinfo=timezone.utc)
FEE_RATES = {"mobile_money": 1.5, "bank_transfer": 0.5, "cash": 0.0, "check": 0.0}


class SequentialIds:
    """Deterministic id factory: txn_0001, txn_0002, ..."""

    def __init__(self):
        self.counter = 0

    def __call__(self, prefix: str) -> str:
        self.counter += 1
        return f"{prefix}_{self.counter:04d}"


class FakePayoutProvider:
    """
    In-memory payout gateway.

    - `declines`: member_id -> reason, answered with an explicit failure
    - `errors`: member_id -> number of ProviderErrors raised before answering
    - `hangs`: member ids whose call never returns
    - `crashes`: member_id -> exception raised on every call
    Idempotent per (payment_id, member_id) like the real gateway.
    """

    def __init__(self):
        self.calls = []
        self.declines = {}
        self.errors = {}
        self.hangs = set()
        self.crashes = {}
        self.receipts = {}
        self.on_call = None

    async def submit_payout(self, payment_id: str, member_id: str, amount: int, method: str, recipient_ref: Optional[str]) -> PayoutResult:
        self.calls.append((payment_id, member_id, amount, method))
        if self.on_call is not None:
            self.on_call(member_id)
        if member_id in self.crashes:
            raise self.crashes[member_id]
        if member_id in self.hangs:
            await asyncio.sleep(3600)
        if self.errors.get(member_id, 0) > 0:
            self.errors[member_id] -= 1
            raise ProviderError("gateway unavailable")
        if member_id in self.declines:
            return PayoutResult(success=False, reason=self.declines[member_id])

        key = idempotency_key(payment_id, member_id)
        if key not in self.receipts:
            self.receipts[key] = f"ptx_{len(self.receipts) + 1:03d}"
        return PayoutResult(success=True, provider_transaction_id=self.receipts[key])

    def calls_for(self, member_id: str) -> int:
        return sum(1 for call in self.calls if call[1] == member_id)


class RecordingSleep:
    """Stands in for asyncio.sleep so backoff is observable and instant"""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def engine():
    """Fresh in-memory database per test"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine) -> Generator[Session, None, None]:
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def ids() -> SequentialIds:
    return SequentialIds()


@pytest.fixture
def locks() -> CooperativeLocks:
    return CooperativeLocks()


@pytest.fixture
def service_kwargs(clock, ids) -> dict:
    return {"clock": clock, "id_factory": ids}


@pytest.fixture
def ledger(db, locks, service_kwargs) -> LedgerService:
    return LedgerService(db, COOP_ID, locks, **service_kwargs)


@pytest.fixture
def budgets(db, locks, service_kwargs) -> BudgetService:
    return BudgetService(db, COOP_ID, locks, **service_kwargs)


@pytest.fixture
def credits(db, locks, service_kwargs) -> CreditService:
    return CreditService(db, COOP_ID, locks, **service_kwargs)


@pytest.fixture
def subsidies(db, locks, service_kwargs) -> SubsidyService:
    return SubsidyService(db, COOP_ID, locks, **service_kwargs)


@pytest.fixture
def reporting(db, locks, service_kwargs) -> ReportingService:
    return ReportingService(db, COOP_ID, locks, **service_kwargs)


@pytest.fixture
def payout_provider() -> FakePayoutProvider:
    return FakePayoutProvider()


@pytest.fixture
def fake_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def redistribution(db, locks, service_kwargs, payout_provider, fake_sleep) -> RedistributionService:
    return RedistributionService(
        db,
        COOP_ID,
        locks,
        provider=payout_provider,
        fee_rates=FEE_RATES,
        max_retries=3,
        backoff_base=0.5,
        timeout=0.05,
        max_workers=4,
        sleep=fake_sleep,
        **service_kwargs,
    )


@pytest.fixture
def scenario_c_contributions() -> list:
    """Pooling aggregate for a 12,500,000 XOF cashew sale"""
    return [
        {"member_id": "m_awa", "member_name": "Awa Ndiaye", "percentage": "50", "quantity": 500, "recipient_ref": "+221770000001"},
        {"member_id": "m_moussa", "member_name": "Moussa Diop", "percentage": "30", "quantity": 300, "recipient_ref": "+221770000002"},
        {"member_id": "m_fatou", "member_name": "Fatou Sarr", "percentage": "20", "quantity": 200, "recipient_ref": "+221770000003"},
    ]


@pytest.fixture
def client(db: Session, clock, ids, payout_provider) -> TestClient:
    """Create FastAPI test client with test database and fake payout gateway"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_id_factory] = lambda: ids
    app.dependency_overrides[get_payout_provider] = lambda: payout_provider
    return TestClient(app)


@pytest.fixture
def headers() -> dict:
    return {"X-User-Id": ACTOR}
