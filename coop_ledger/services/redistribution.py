"""Collective payment redistribution - Review, Confirm, Process, Done"""

import asyncio
import time
from datetime import datetime
from typing import Any, Awaitable, Callable, Iterable, List, Mapping, Optional

from coop_ledger.config import settings
from coop_ledger.domain.exceptions import (
    ConsistencyError,
    InvalidTransitionError,
    ProviderError,
    ValidationError,
)
from coop_ledger.domain.lifecycle import check_payment_transition, derive_payment_status
from coop_ledger.domain.models import (
    CATEGORY_REDISTRIBUTION,
    CollectivePaymentStatus,
    DistributionPlan,
    DistributionStatus,
    MemberShare,
    PayoutResult,
    TransactionKind,
    TransactionStatus,
)
from coop_ledger.domain.redistribution import (
    check_plan_reconciles,
    compute_distribution_plan,
    fee_rate_for,
)
from coop_ledger.domain.validation import parse_contributions, parse_payment_method, require_positive
from coop_ledger.infrastructure.clients.payout import PayoutProvider
from coop_ledger.infrastructure.database.models import (
    CollectivePaymentRow,
    MemberDistributionRow,
    PaymentLineItemRow,
)
from coop_ledger.infrastructure.database.repositories import CollectivePaymentRepository
from coop_ledger.infrastructure.observability.logging import (
    logger,
    log_payout_attempt,
    log_redistribution,
    log_transition,
)
from coop_ledger.infrastructure.observability.metrics import record_payout, record_redistribution
from coop_ledger.services.base import CooperativeService
from coop_ledger.services.ledger import LedgerService

Sleep = Callable[[float], Awaitable[Any]]


def _describe(error: Exception) -> str:
    return f"{type(error).__name__}: {error}" if str(error) else type(error).__name__


class RedistributionService(CooperativeService):
    """
    Splits a collective payment among the members whose produce was pooled.

    Review and Confirm have no side effects beyond recording intent and can
    be cancelled. Process is irreversible per member: each distribution has
    its own status, and a retried Process only resubmits members that are
    not yet completed.
    """

    def __init__(
        self,
        *args,
        provider: Optional[PayoutProvider] = None,
        fee_rates: Optional[Mapping[str, float]] = None,
        max_retries: Optional[int] = None,
        backoff_base: Optional[float] = None,
        timeout: Optional[float] = None,
        max_workers: Optional[int] = None,
        sleep: Optional[Sleep] = None,
        **kwargs,
    ):
        super().__init__(*args, **kwargs)
        self.provider = provider
        self.fee_rates = fee_rates if fee_rates is not None else settings.fee_rates
        self.max_retries = max_retries if max_retries is not None else settings.payout_max_retries
        self.backoff_base = backoff_base if backoff_base is not None else settings.payout_backoff_base
        self.timeout = timeout if timeout is not None else settings.payout_timeout_seconds
        self.max_workers = max_workers if max_workers is not None else settings.payout_max_workers
        self.sleep = sleep or asyncio.sleep

        errors = []
        if self.max_retries < 1:
            errors.append("max_retries must be at least 1")
        if self.max_workers < 1:
            errors.append("max_workers must be at least 1")
        if self.timeout <= 0:
            errors.append("timeout must be positive")
        if self.backoff_base < 0:
            errors.append("backoff_base must not be negative")
        if errors:
            raise ValidationError(errors)

    @property
    def repo(self) -> CollectivePaymentRepository:
        return CollectivePaymentRepository(self.db, self.cooperative_id)

    @property
    def ledger(self) -> LedgerService:
        return LedgerService(self.db, self.cooperative_id, self.locks, self.clock, self.id_factory)

    # Payment registration

    def register_payment(
        self,
        actor: str,
        amount: int,
        payment_method: str,
        sale_id: str,
        buyer_ref: str,
        line_items: Iterable[Mapping[str, Any]] = (),
        currency: str = "XOF",
        invoice_number: Optional[str] = None,
    ) -> CollectivePaymentRow:
        """Record a buyer's payment for a pooled sale as pending"""
        require_positive("amount", amount)
        method = parse_payment_method(payment_method)
        errors = []
        if not sale_id:
            errors.append("sale_id is required")
        if not buyer_ref:
            errors.append("buyer reference is required")

        items = []
        for index, item in enumerate(line_items):
            quantity, unit_price, total = item.get("quantity"), item.get("unit_price"), item.get("total")
            if not item.get("product_id"):
                errors.append(f"line item #{index} needs a product_id")
            elif not all(isinstance(v, int) and v >= 0 for v in (quantity, unit_price, total)):
                errors.append(f"line item #{index} needs non-negative integer quantity, unit_price and total")
            elif quantity * unit_price != total:
                errors.append(f"line item #{index} total {total} != {quantity} x {unit_price}")
            items.append(item)
        if items and not errors and sum(i["total"] for i in items) != amount:
            errors.append("line item totals do not add up to the payment amount")
        if errors:
            raise ValidationError(errors)

        with self.write():
            payment = CollectivePaymentRow(
                id=self.id_factory("cpay"),
                amount=amount,
                currency=currency,
                payment_method=method.value,
                status=CollectivePaymentStatus.PENDING.value,
                sale_id=sale_id,
                buyer_ref=buyer_ref,
                invoice_number=invoice_number,
                created_by=actor,
                created_at=self.now(),
                line_items=[
                    PaymentLineItemRow(
                        product_id=i["product_id"],
                        product_name=i.get("product_name"),
                        quantity=i["quantity"],
                        unit_price=i["unit_price"],
                        total=i["total"],
                    )
                    for i in items
                ],
            )
            self.repo.add(payment)
        return payment

    def mark_received(self, actor: str, payment_id: str, received_at: Optional[datetime] = None) -> CollectivePaymentRow:
        with self.write():
            payment = self.repo.get(payment_id)
            check_payment_transition(payment.status, CollectivePaymentStatus.RECEIVED)
            old_status = payment.status
            payment.status = CollectivePaymentStatus.RECEIVED.value
            payment.received_at = received_at or self.now()
        log_transition(self.cooperative_id, "collective_payment", payment.id, old_status, payment.status)
        return payment

    def get_payment(self, payment_id: str) -> CollectivePaymentRow:
        return self.repo.get(payment_id)

    def list_payments(self, status: Optional[str] = None) -> List[CollectivePaymentRow]:
        return self.repo.list(status=status)

    # Review

    def review(self, payment_id: str, contributions: Iterable[Any], payout_method: str) -> DistributionPlan:
        """
        Compute the distribution plan. Read-only and idempotent.

        Raises:
            ValidationError: contributions malformed or not summing to 100%
            InvalidTransitionError: payment not received, or already confirmed
            ConsistencyError: the split does not reconcile with the amount
        """
        payment = self.repo.get(payment_id)
        self._require_reviewable(payment)
        return self._plan(payment, contributions, payout_method)

    # Confirm / cancel

    def confirm(
        self, actor: str, payment_id: str, contributions: Iterable[Any], payout_method: str
    ) -> DistributionPlan:
        """Record operator intent and freeze the plan as pending distributions"""
        with self.write():
            payment = self.repo.get(payment_id)
            self._require_reviewable(payment)
            plan = self._plan(payment, contributions, payout_method)

            payment.payout_method = plan.payment_method.value
            payment.fee_rate = plan.fee_rate
            payment.confirmed_by = actor
            payment.confirmed_at = self.now()
            payment.distributions = [
                self._distribution_row(index, share) for index, share in enumerate(plan.shares)
            ]

        log_transition(self.cooperative_id, "collective_payment", payment.id, "review", "confirmed")
        return plan

    def cancel(self, actor: str, payment_id: str) -> CollectivePaymentRow:
        """Drop a confirmation before any payout was dispatched"""
        with self.write():
            payment = self.repo.get(payment_id)
            if payment.confirmed_at is None:
                raise InvalidTransitionError("collective payment", "review", "cancelled")
            if any(d.attempts > 0 or d.status != DistributionStatus.PENDING for d in payment.distributions):
                raise InvalidTransitionError("collective payment", "processing", "cancelled")
            payment.distributions = []
            payment.payout_method = None
            payment.fee_rate = None
            payment.confirmed_by = None
            payment.confirmed_at = None

        log_transition(self.cooperative_id, "collective_payment", payment.id, "confirmed", "review")
        return payment

    # Process

    async def process(
        self, actor: str, payment_id: str, stop: Optional[asyncio.Event] = None
    ) -> CollectivePaymentRow:
        """
        Pay every member that is not yet completed.

        Payout calls run concurrently (bounded by max_workers). Each member is
        retried on provider errors and timeouts with exponential backoff; an
        explicit decline from the provider is recorded straight away. Outcomes
        are written one member at a time under the cooperative lock, so a
        crash mid-batch never loses a completed payout.

        Setting `stop` prevents further dispatches; calls already in flight
        finish and are recorded.
        """
        if self.provider is None:
            raise ProviderError("no payout provider configured")

        start_time = time.time()
        payment = self.repo.get(payment_id)
        if payment.status not in (CollectivePaymentStatus.RECEIVED, CollectivePaymentStatus.FAILED):
            raise InvalidTransitionError("collective payment", payment.status, "processing")
        if payment.confirmed_at is None or not payment.distributions:
            raise InvalidTransitionError("collective payment", "review", "processing")

        # Refuse to pay out an unreconciled split
        check_plan_reconciles(self._stored_plan(payment))

        to_pay = [d for d in payment.distributions if d.status != DistributionStatus.COMPLETED]
        semaphore = asyncio.Semaphore(self.max_workers)

        async def run(distribution: MemberDistributionRow) -> None:
            async with semaphore:
                if stop is not None and stop.is_set():
                    return
                try:
                    await self._pay_member(actor, payment, distribution)
                except Exception as e:
                    # Recording the outcome failed; keep the member retryable as failed
                    logger.exception(
                        "Payout outcome not recorded",
                        extra={"payment_id": payment.id, "member_id": distribution.member_id},
                    )
                    self._record_outcome(
                        actor, payment, distribution, PayoutResult(success=False, reason=_describe(e))
                    )

        await asyncio.gather(*(run(d) for d in to_pay))

        with self.write():
            old_status = payment.status
            new_status = derive_payment_status(old_status, (d.status for d in payment.distributions))
            if new_status != old_status:
                check_payment_transition(old_status, new_status)
                payment.status = new_status.value
                if new_status == CollectivePaymentStatus.REDISTRIBUTED:
                    payment.redistributed_at = self.now()

        counts = {s: sum(1 for d in payment.distributions if d.status == s) for s in DistributionStatus}
        record_redistribution(payment.status)
        log_redistribution(
            self.cooperative_id,
            payment.id,
            payment.status,
            completed=counts[DistributionStatus.COMPLETED],
            failed=counts[DistributionStatus.FAILED],
            pending=counts[DistributionStatus.PENDING],
            duration_ms=(time.time() - start_time) * 1000,
        )
        if payment.status != old_status:
            log_transition(self.cooperative_id, "collective_payment", payment.id, old_status, payment.status)
        return payment

    async def _pay_member(self, actor: str, payment: CollectivePaymentRow, distribution: MemberDistributionRow) -> None:
        result = PayoutResult(success=False, reason="not attempted")

        for attempt in range(1, self.max_retries + 1):
            with self.write():
                distribution.attempts += 1
            try:
                result = await asyncio.wait_for(
                    self.provider.submit_payout(
                        payment.id,
                        distribution.member_id,
                        distribution.net_amount,
                        payment.payout_method,
                        distribution.recipient_ref,
                    ),
                    timeout=self.timeout,
                )
            except asyncio.TimeoutError:
                result = PayoutResult(success=False, reason=f"payout timed out after {self.timeout}s")
                outcome = "error"
            except ProviderError as e:
                result = PayoutResult(success=False, reason=str(e))
                outcome = "error"
            except Exception as e:
                # Unknown provider behaviour: record it, do not resubmit blindly
                result = PayoutResult(success=False, reason=_describe(e))
                outcome = "failure"
            else:
                outcome = "success" if result.success else "failure"

            record_payout(outcome)
            log_payout_attempt(payment.id, distribution.member_id, attempt, outcome, result.reason)

            # Only transport errors and timeouts are worth another attempt
            if outcome != "error":
                break
            if attempt < self.max_retries:
                await self.sleep(self.backoff_base * (2 ** (attempt - 1)))

        self._record_outcome(actor, payment, distribution, result)

    def _record_outcome(
        self,
        actor: str,
        payment: CollectivePaymentRow,
        distribution: MemberDistributionRow,
        result: PayoutResult,
    ) -> None:
        with self.write():
            if result.success:
                distribution.status = DistributionStatus.COMPLETED.value
                distribution.paid_at = self.now()
                distribution.receipt_ref = result.provider_transaction_id
                distribution.failure_reason = None
                entry = self.ledger.create_transaction(
                    actor,
                    kind=TransactionKind.EXPENSE,
                    category=CATEGORY_REDISTRIBUTION,
                    description=f"Redistribution of {payment.id} to member {distribution.member_id}",
                    amount=distribution.net_amount,
                    date=self.today(),
                    payment_method=payment.payout_method,
                    status=TransactionStatus.COMPLETED,
                    reference=result.provider_transaction_id or payment.id,
                    member_id=distribution.member_id,
                )
                distribution.transaction_id = entry.id
            else:
                distribution.status = DistributionStatus.FAILED.value
                distribution.failure_reason = result.reason

    # Helpers

    def _require_reviewable(self, payment: CollectivePaymentRow) -> None:
        if payment.status != CollectivePaymentStatus.RECEIVED:
            raise InvalidTransitionError("collective payment", payment.status, "review")
        if payment.confirmed_at is not None:
            raise InvalidTransitionError("collective payment", "confirmed", "review")

    def _plan(self, payment: CollectivePaymentRow, contributions: Iterable[Any], payout_method: str) -> DistributionPlan:
        contribution_set = parse_contributions(contributions)
        method = parse_payment_method(payout_method)
        rate = fee_rate_for(method, self.fee_rates)
        return compute_distribution_plan(payment.id, payment.amount, contribution_set, method, rate)

    @staticmethod
    def _distribution_row(index: int, share: MemberShare) -> MemberDistributionRow:
        return MemberDistributionRow(
            sequence=index,
            member_id=share.member_id,
            member_name=share.member_name,
            product_id=share.product_id,
            quantity=share.quantity,
            percentage=share.percentage,
            recipient_ref=share.recipient_ref,
            gross_amount=share.gross_amount,
            fee=share.fee,
            net_amount=share.net_amount,
            status=DistributionStatus.PENDING.value,
            attempts=0,
        )

    @staticmethod
    def _stored_plan(payment: CollectivePaymentRow) -> DistributionPlan:
        shares = [
            MemberShare(
                member_id=d.member_id,
                member_name=d.member_name,
                percentage=d.percentage,
                quantity=d.quantity,
                product_id=d.product_id,
                recipient_ref=d.recipient_ref,
                gross_amount=d.gross_amount,
                fee=d.fee,
                net_amount=d.net_amount,
            )
            for d in payment.distributions
        ]
        if not shares:
            raise ConsistencyError(f"payment {payment.id} has no distributions to reconcile")
        return DistributionPlan(
            payment_id=payment.id,
            payment_amount=payment.amount,
            payment_method=parse_payment_method(payment.payout_method),
            fee_rate=payment.fee_rate,
            shares=shares,
            total_fees=sum(s.fee for s in shares),
            net_total=sum(s.net_amount for s in shares),
        )
