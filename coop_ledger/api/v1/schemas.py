"""Pydantic schemas for API request/response validation"""

import datetime as dt
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from coop_ledger.domain.models import (
    BudgetPeriod,
    CreditStatus,
    PaymentMethod,
    SubsidyStatus,
    TransactionKind,
    TransactionStatus,
)


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# Transactions


class TransactionCreate(BaseModel):
    """Request body for POST /transactions"""

    kind: TransactionKind
    category: str
    description: str
    amount: int = Field(..., description="Amount in minor currency units")
    date: dt.date
    payment_method: PaymentMethod
    status: TransactionStatus = TransactionStatus.PENDING
    reference: Optional[str] = None
    member_id: Optional[str] = None
    supplier_id: Optional[str] = None
    receipts: List[str] = Field(default_factory=list)
    notes: Optional[str] = None


class TransactionUpdate(BaseModel):
    """Request body for PATCH /transactions/{id}; only the fields sent are changed"""

    kind: Optional[TransactionKind] = None
    category: Optional[str] = None
    description: Optional[str] = None
    amount: Optional[int] = None
    date: Optional[dt.date] = None
    payment_method: Optional[PaymentMethod] = None
    status: Optional[TransactionStatus] = None
    reference: Optional[str] = None
    member_id: Optional[str] = None
    supplier_id: Optional[str] = None
    receipts: Optional[List[str]] = None
    notes: Optional[str] = None


class TransactionValidation(BaseModel):
    is_valid: bool
    errors: List[str]


class TransactionResponse(ORMModel):
    id: str
    kind: str
    category: str
    description: str
    amount: int
    date: dt.date
    reference: Optional[str] = None
    member_id: Optional[str] = None
    supplier_id: Optional[str] = None
    status: str
    payment_method: str
    created_by: str
    created_at: dt.datetime
    updated_at: dt.datetime
    receipts: List[str] = Field(default_factory=list)
    notes: Optional[str] = None


class MemberContributionCreate(BaseModel):
    member_id: str = Field(..., min_length=1)
    amount: int
    payment_method: PaymentMethod
    date: Optional[dt.date] = None
    reference: Optional[str] = None


class SupplierPaymentCreate(BaseModel):
    supplier_id: str = Field(..., min_length=1)
    amount: int
    payment_method: PaymentMethod
    description: str
    date: Optional[dt.date] = None
    reference: Optional[str] = None


# Budgets


class BudgetCreate(BaseModel):
    category: str
    allocated_amount: int
    period: BudgetPeriod
    start_date: dt.date
    end_date: dt.date
    description: str = ""


class BudgetUpdate(BaseModel):
    description: Optional[str] = None
    allocated_amount: Optional[int] = None
    period: Optional[BudgetPeriod] = None
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None


class BudgetResponse(ORMModel):
    id: str
    category: str
    description: str
    allocated_amount: int
    spent_amount: int
    period: str
    start_date: dt.date
    end_date: dt.date
    status: str

    @computed_field
    @property
    def remaining(self) -> int:
        return self.allocated_amount - self.spent_amount


# Credits


class CreditCreate(BaseModel):
    member_id: str = Field(..., min_length=1)
    member_name: Optional[str] = None
    amount: int
    interest_rate: float = Field(..., description="Annual percent")
    duration: int = Field(..., description="Months")
    purpose: str
    guarantors: List[str] = Field(default_factory=list)
    collateral: Optional[str] = None
    application_date: Optional[dt.date] = None


class CreditStatusUpdate(BaseModel):
    status: CreditStatus
    date: Optional[dt.date] = None
    payment_method: PaymentMethod = PaymentMethod.CASH


class RepaymentCreate(BaseModel):
    installment_index: int
    date: Optional[dt.date] = None
    payment_method: PaymentMethod = PaymentMethod.CASH


class OverdueCheck(BaseModel):
    as_of: Optional[dt.date] = None


class InstallmentSchema(ORMModel):
    due_date: dt.date
    amount: int
    status: str


class CreditResponse(ORMModel):
    id: str
    member_id: str
    member_name: Optional[str] = None
    amount: int
    interest_rate: float
    duration: int
    purpose: str
    application_date: dt.date
    approval_date: Optional[dt.date] = None
    disbursement_date: Optional[dt.date] = None
    due_date: dt.date
    status: str
    guarantors: List[str] = Field(default_factory=list)
    collateral: Optional[str] = None
    installments: List[InstallmentSchema]

    @computed_field
    @property
    def remaining_balance(self) -> int:
        return sum(i.amount for i in self.installments if i.status != "paid")


# Subsidies


class SubsidyCreate(BaseModel):
    name: str
    description: str = ""
    amount: int
    provider: str
    requirements: List[str] = Field(default_factory=list)
    documents: List[str] = Field(default_factory=list)
    beneficiaries: List[str] = Field(default_factory=list)
    conditions: Optional[str] = None
    application_date: Optional[dt.date] = None


class SubsidyStatusUpdate(BaseModel):
    status: SubsidyStatus
    date: Optional[dt.date] = None
    payment_method: PaymentMethod = PaymentMethod.BANK_TRANSFER


class SubsidyResponse(ORMModel):
    id: str
    name: str
    description: str
    amount: int
    provider: str
    application_date: dt.date
    approval_date: Optional[dt.date] = None
    disbursement_date: Optional[dt.date] = None
    status: str
    requirements: List[str] = Field(default_factory=list)
    documents: List[str] = Field(default_factory=list)
    beneficiaries: List[str] = Field(default_factory=list)
    conditions: Optional[str] = None


# Collective payments


class LineItemSchema(ORMModel):
    product_id: str
    product_name: Optional[str] = None
    quantity: int
    unit_price: int
    total: int


class PaymentCreate(BaseModel):
    amount: int
    currency: str = "XOF"
    payment_method: PaymentMethod
    sale_id: str
    buyer_ref: str
    line_items: List[LineItemSchema] = Field(default_factory=list)
    invoice_number: Optional[str] = None


class ContributionSchema(BaseModel):
    """One row from the pooling aggregate"""

    member_id: str
    member_name: str = ""
    percentage: Decimal
    quantity: int = 0
    product_id: Optional[str] = None
    recipient_ref: Optional[str] = None


class RedistributionRequest(BaseModel):
    contributions: List[ContributionSchema]
    payout_method: PaymentMethod


class MemberShareSchema(ORMModel):
    member_id: str
    member_name: str
    percentage: float
    quantity: int
    product_id: Optional[str] = None
    gross_amount: int
    fee: int
    net_amount: int


class DistributionPlanResponse(ORMModel):
    payment_id: str
    payment_amount: int
    payment_method: PaymentMethod
    fee_rate: float
    shares: List[MemberShareSchema]
    total_fees: int
    net_total: int


class DistributionSchema(MemberShareSchema):
    status: str
    attempts: int
    failure_reason: Optional[str] = None
    paid_at: Optional[dt.datetime] = None
    receipt_ref: Optional[str] = None


class PaymentResponse(ORMModel):
    id: str
    amount: int
    currency: str
    payment_method: str
    status: str
    received_at: Optional[dt.datetime] = None
    redistributed_at: Optional[dt.datetime] = None
    sale_id: str
    buyer_ref: str
    invoice_number: Optional[str] = None
    payout_method: Optional[str] = None
    confirmed_by: Optional[str] = None
    confirmed_at: Optional[dt.datetime] = None
    line_items: List[LineItemSchema] = Field(default_factory=list)
    distributions: List[DistributionSchema] = Field(default_factory=list)


# Reports


class FinancialSummaryResponse(ORMModel):
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


class CategoryTotalsSchema(ORMModel):
    income: int
    expense: int


class MonthlyReportResponse(ORMModel):
    period: str
    income: int
    expenses: int
    net: int
    transactions: int
    by_category: Dict[str, CategoryTotalsSchema]


class BenefitShareSchema(ORMModel):
    member_id: str
    contribution: int
    share: int
