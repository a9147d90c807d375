"""Forward-only lifecycles for transactions, credits, subsidies and collective payments"""

from typing import Dict, FrozenSet, Iterable

from coop_ledger.domain.exceptions import InvalidTransitionError
from coop_ledger.domain.models import (
    CollectivePaymentStatus,
    CreditStatus,
    DistributionStatus,
    InstallmentStatus,
    SubsidyStatus,
    TransactionStatus,
)

TRANSACTION_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    TransactionStatus.PENDING: frozenset({TransactionStatus.COMPLETED, TransactionStatus.CANCELLED}),
    TransactionStatus.COMPLETED: frozenset({TransactionStatus.CANCELLED}),
    TransactionStatus.CANCELLED: frozenset(),
}

CREDIT_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    CreditStatus.APPLIED: frozenset({CreditStatus.APPROVED, CreditStatus.DEFAULTED}),
    CreditStatus.APPROVED: frozenset({CreditStatus.DISBURSED, CreditStatus.DEFAULTED}),
    CreditStatus.DISBURSED: frozenset({CreditStatus.REPAID, CreditStatus.DEFAULTED}),
    CreditStatus.REPAID: frozenset(),
    CreditStatus.DEFAULTED: frozenset(),
}

SUBSIDY_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    SubsidyStatus.APPLIED: frozenset({SubsidyStatus.APPROVED, SubsidyStatus.REJECTED}),
    SubsidyStatus.APPROVED: frozenset({SubsidyStatus.DISBURSED}),
    SubsidyStatus.DISBURSED: frozenset(),
    SubsidyStatus.REJECTED: frozenset(),
}

# failed -> failed covers a retried Process that still leaves members unpaid
PAYMENT_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    CollectivePaymentStatus.PENDING: frozenset({CollectivePaymentStatus.RECEIVED}),
    CollectivePaymentStatus.RECEIVED: frozenset(
        {CollectivePaymentStatus.REDISTRIBUTED, CollectivePaymentStatus.FAILED}
    ),
    CollectivePaymentStatus.FAILED: frozenset(
        {CollectivePaymentStatus.REDISTRIBUTED, CollectivePaymentStatus.FAILED}
    ),
    CollectivePaymentStatus.REDISTRIBUTED: frozenset(),
}


def _check(table: Dict[str, FrozenSet[str]], entity: str, current: str, target: str) -> None:
    if target not in table.get(current, frozenset()):
        raise InvalidTransitionError(entity, current.value, target.value)


def check_transaction_transition(current: str, target: str) -> None:
    _check(TRANSACTION_TRANSITIONS, "transaction", TransactionStatus(current), TransactionStatus(target))


def check_credit_transition(current: str, target: str) -> None:
    _check(CREDIT_TRANSITIONS, "credit", CreditStatus(current), CreditStatus(target))


def check_subsidy_transition(current: str, target: str) -> None:
    _check(SUBSIDY_TRANSITIONS, "subsidy", SubsidyStatus(current), SubsidyStatus(target))


def check_payment_transition(current: str, target: str) -> None:
    _check(PAYMENT_TRANSITIONS, "collective payment", CollectivePaymentStatus(current), CollectivePaymentStatus(target))


def derive_credit_status(current: str, installment_statuses: Iterable[str]) -> CreditStatus:
    """Disbursed credit becomes repaid exactly when every installment is paid"""
    current = CreditStatus(current)
    statuses = list(installment_statuses)
    if current == CreditStatus.DISBURSED and statuses and all(
        s == InstallmentStatus.PAID for s in statuses
    ):
        return CreditStatus.REPAID
    return current


def derive_payment_status(
    current: str, distribution_statuses: Iterable[str]
) -> CollectivePaymentStatus:
    """
    Aggregate member payout outcomes into the payment status.

    - every distribution completed -> redistributed
    - any distribution failed -> failed (completed payouts stay completed)
    - otherwise unchanged (members still pending)
    """
    current = CollectivePaymentStatus(current)
    statuses = list(distribution_statuses)
    if not statuses:
        return current
    if all(s == DistributionStatus.COMPLETED for s in statuses):
        return CollectivePaymentStatus.REDISTRIBUTED
    if any(s == DistributionStatus.FAILED for s in statuses):
        return CollectivePaymentStatus.FAILED
    return current
