"""Credit engine - member loans, their amortized schedules and repayments"""

from datetime import date
from typing import Iterable, List, Optional

from coop_ledger.domain.amortization import generate_repayment_schedule
from coop_ledger.domain.exceptions import InvalidTransitionError, ValidationError
from coop_ledger.domain.lifecycle import check_credit_transition, derive_credit_status
from coop_ledger.domain.models import (
    CATEGORY_CREDIT_DISBURSEMENT,
    CATEGORY_CREDIT_REPAYMENT,
    CreditStatus,
    InstallmentStatus,
    PaymentMethod,
    TransactionKind,
    TransactionStatus,
)
from coop_ledger.domain.validation import parse_status
from coop_ledger.infrastructure.database.models import CreditInstallmentRow, CreditRow
from coop_ledger.infrastructure.database.repositories import CreditRepository
from coop_ledger.infrastructure.observability.logging import log_transition, logger
from coop_ledger.infrastructure.observability.metrics import credits_created_counter
from coop_ledger.services.base import CooperativeService
from coop_ledger.services.ledger import LedgerService


class CreditService(CooperativeService):

    @property
    def repo(self) -> CreditRepository:
        return CreditRepository(self.db, self.cooperative_id)

    @property
    def ledger(self) -> LedgerService:
        return LedgerService(self.db, self.cooperative_id, self.locks, self.clock, self.id_factory)

    def create_credit(
        self,
        actor: str,
        member_id: str,
        amount: int,
        interest_rate: float,
        duration: int,
        purpose: str,
        guarantors: Iterable[str] = (),
        collateral: Optional[str] = None,
        member_name: Optional[str] = None,
        application_date: Optional[date] = None,
    ) -> CreditRow:
        """
        Open a loan application.

        The repayment schedule is generated once here and never regenerated;
        the due date is the last installment's due date.
        """
        if not member_id:
            raise ValidationError("member_id is required")
        if not purpose or not purpose.strip():
            raise ValidationError("purpose is required")

        applied_on = application_date or self.today()
        schedule = generate_repayment_schedule(amount, interest_rate, duration, applied_on)

        with self.write():
            credit = CreditRow(
                id=self.id_factory("credit"),
                member_id=member_id,
                member_name=member_name,
                amount=amount,
                interest_rate=float(interest_rate),
                duration=duration,
                purpose=purpose.strip(),
                application_date=applied_on,
                due_date=schedule[-1].due_date,
                status=CreditStatus.APPLIED.value,
                guarantors=list(guarantors),
                collateral=collateral,
                installments=[
                    CreditInstallmentRow(
                        sequence=index,
                        due_date=inst.due_date,
                        amount=inst.amount,
                        status=inst.status.value,
                    )
                    for index, inst in enumerate(schedule)
                ],
            )
            self.repo.add(credit)

        credits_created_counter.inc()
        logger.info(
            "Credit created",
            extra={
                "cooperative_id": self.cooperative_id,
                "credit_id": credit.id,
                "member_id": member_id,
                "amount": amount,
                "duration": duration,
                "installment": schedule[0].amount,
            },
        )
        return credit

    def get_credit(self, credit_id: str) -> CreditRow:
        return self.repo.get(credit_id)

    def list_credits(self, member_id: Optional[str] = None, status: Optional[str] = None) -> List[CreditRow]:
        return self.repo.list(member_id=member_id, status=status)

    @staticmethod
    def remaining_balance(credit: CreditRow) -> int:
        """Sum of installments not yet paid"""
        return sum(i.amount for i in credit.installments if i.status != InstallmentStatus.PAID)

    def update_credit_status(
        self,
        actor: str,
        credit_id: str,
        new_status: str,
        on: Optional[date] = None,
        payment_method: str = PaymentMethod.CASH,
    ) -> CreditRow:
        """
        Move a credit along applied -> approved -> disbursed -> repaid, or to defaulted
        from any state short of repaid.

        repaid is only reachable once every installment is paid. Disbursement
        writes the principal to the ledger as a completed expense.
        """
        new_status = parse_status(CreditStatus, new_status)
        on = on or self.today()

        with self.write():
            credit = self.repo.get(credit_id)
            old_status = credit.status
            check_credit_transition(old_status, new_status)

            if new_status == CreditStatus.REPAID and derive_credit_status(
                old_status, (i.status for i in credit.installments)
            ) != CreditStatus.REPAID:
                raise InvalidTransitionError("credit", old_status, new_status.value)

            credit.status = new_status.value
            if new_status == CreditStatus.APPROVED:
                credit.approval_date = on
            elif new_status == CreditStatus.DISBURSED:
                credit.disbursement_date = on
                self.ledger.create_transaction(
                    actor,
                    kind=TransactionKind.EXPENSE,
                    category=CATEGORY_CREDIT_DISBURSEMENT,
                    description=f"Credit {credit.id} disbursed to member {credit.member_id}",
                    amount=credit.amount,
                    date=on,
                    payment_method=payment_method,
                    status=TransactionStatus.COMPLETED,
                    reference=credit.id,
                    member_id=credit.member_id,
                )

        log_transition(self.cooperative_id, "credit", credit.id, old_status, credit.status)
        return credit

    def record_repayment(
        self,
        actor: str,
        credit_id: str,
        installment_index: int,
        on: Optional[date] = None,
        payment_method: str = PaymentMethod.CASH,
    ) -> CreditRow:
        """
        Mark one installment paid.

        Paying an already-paid installment is a no-op. The payment is written
        to the ledger as completed income, and the credit becomes repaid when
        the last open installment is paid.
        """
        with self.write():
            credit = self.repo.get(credit_id)
            if not 0 <= installment_index < len(credit.installments):
                raise ValidationError(
                    f"installment index {installment_index} out of range for a {credit.duration}-month credit"
                )
            installment = credit.installments[installment_index]
            if installment.status == InstallmentStatus.PAID:
                return credit
            if credit.status != CreditStatus.DISBURSED:
                raise InvalidTransitionError("credit", credit.status, "repayment")

            installment.status = InstallmentStatus.PAID.value
            installment.paid_at = self.now()
            self.ledger.create_transaction(
                actor,
                kind=TransactionKind.INCOME,
                category=CATEGORY_CREDIT_REPAYMENT,
                description=f"Installment {installment_index + 1}/{credit.duration} of credit {credit.id}",
                amount=installment.amount,
                date=on or self.today(),
                payment_method=payment_method,
                status=TransactionStatus.COMPLETED,
                reference=credit.id,
                member_id=credit.member_id,
            )

            old_status = credit.status
            credit.status = derive_credit_status(old_status, (i.status for i in credit.installments)).value
            if credit.status != old_status:
                log_transition(self.cooperative_id, "credit", credit.id, old_status, credit.status)
        return credit

    def mark_overdue(self, credit_id: str, as_of: Optional[date] = None) -> CreditRow:
        """Flag pending installments of a disbursed credit whose due date has passed"""
        as_of = as_of or self.today()
        with self.write():
            credit = self.repo.get(credit_id)
            if credit.status == CreditStatus.DISBURSED:
                for installment in credit.installments:
                    if installment.status == InstallmentStatus.PENDING and installment.due_date < as_of:
                        installment.status = InstallmentStatus.OVERDUE.value
        return credit
