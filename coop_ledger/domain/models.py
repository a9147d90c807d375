"""Domain models - pure Python enums and dataclasses shared by the ledger services"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional


class TransactionKind(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    CASH = "cash"
    MOBILE_MONEY = "mobile_money"
    BANK_TRANSFER = "bank_transfer"
    CHECK = "check"


class BudgetPeriod(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class BudgetStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    OVER_BUDGET = "over_budget"


class SubsidyStatus(str, Enum):
    APPLIED = "applied"
    APPROVED = "approved"
    DISBURSED = "disbursed"
    REJECTED = "rejected"


class CreditStatus(str, Enum):
    APPLIED = "applied"
    APPROVED = "approved"
    DISBURSED = "disbursed"
    REPAID = "repaid"
    DEFAULTED = "defaulted"


class InstallmentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"


class CollectivePaymentStatus(str, Enum):
    PENDING = "pending"
    RECEIVED = "received"
    REDISTRIBUTED = "redistributed"
    FAILED = "failed"


class DistributionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


# Categories written by the core itself
CATEGORY_REDISTRIBUTION = "redistribution"
CATEGORY_SUBSIDY = "subsidy"
CATEGORY_CREDIT_DISBURSEMENT = "credit_disbursement"
CATEGORY_CREDIT_REPAYMENT = "credit_repayment"
CATEGORY_MEMBER_CONTRIBUTION = "member_contribution"
CATEGORY_SUPPLIER_PAYMENT = "supplier_payment"


@dataclass
class Installment:
    """Single payment in a credit repayment schedule"""

    due_date: date
    amount: int
    status: InstallmentStatus = InstallmentStatus.PENDING


@dataclass(frozen=True)
class Contribution:
    """One member's share of a pooled sale, as reported by the pooling aggregate"""

    member_id: str
    member_name: str
    percentage: Decimal
    quantity: int = 0
    product_id: Optional[str] = None
    recipient_ref: Optional[str] = None


@dataclass(frozen=True)
class ContributionSet:
    """Contributions already checked to be non-empty, unique and summing to 100%.

    Only built through validation.parse_contributions.
    """

    items: tuple

    def __iter__(self):
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


@dataclass
class MemberShare:
    """Planned payout for one member"""

    member_id: str
    member_name: str
    percentage: Decimal
    quantity: int
    product_id: Optional[str]
    recipient_ref: Optional[str]
    gross_amount: int
    fee: int
    net_amount: int


@dataclass
class DistributionPlan:
    """Output of the Review step"""

    payment_id: str
    payment_amount: int
    payment_method: PaymentMethod
    fee_rate: Decimal
    shares: List[MemberShare]
    total_fees: int
    net_total: int


@dataclass
class PayoutResult:
    """Provider reply for one member payout"""

    success: bool
    provider_transaction_id: Optional[str] = None
    reason: Optional[str] = None


@dataclass
class CategoryTotals:
    income: int = 0
    expense: int = 0


@dataclass
class FinancialSummary:
    income: int
    expenses: int
    net: int
    total_budget: int
    budget_utilization: int
    budget_remaining: int
    approved_subsidies: int
    active_credits: int
    credit_outstanding: int
    cash_flow: int


@dataclass
class MonthlyReport:
    period: str
    income: int
    expenses: int
    net: int
    transactions: int
    by_category: Dict[str, CategoryTotals] = field(default_factory=dict)


@dataclass
class BenefitShare:
    member_id: str
    contribution: int
    share: int
