"""SQLAlchemy ORM models for the cooperative ledger store"""

from sqlalchemy import (
    BigInteger,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class FinancialTransactionRow(Base):
    """One money movement (income or expense)"""

    __tablename__ = "financial_transaction"

    id = Column(String(40), primary_key=True)
    cooperative_id = Column(Text, nullable=False, index=True)
    kind = Column(Text, nullable=False)
    category = Column(Text, nullable=False, index=True)
    description = Column(Text, nullable=False)
    amount = Column(BigInteger, nullable=False)
    date = Column(Date, nullable=False, index=True)
    reference = Column(Text, nullable=True)
    member_id = Column(Text, nullable=True, index=True)
    supplier_id = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default="pending")
    payment_method = Column(Text, nullable=False)
    created_by = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    receipts = Column(JSON, nullable=False, default=list)
    notes = Column(Text, nullable=True)


class BudgetRow(Base):
    """Spending envelope for a category over a period"""

    __tablename__ = "budget"

    id = Column(String(40), primary_key=True)
    cooperative_id = Column(Text, nullable=False, index=True)
    category = Column(Text, nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    allocated_amount = Column(BigInteger, nullable=False)
    spent_amount = Column(BigInteger, nullable=False, default=0)
    period = Column(Text, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(Text, nullable=False, default="active")


class SubsidyRow(Base):
    """External grant application"""

    __tablename__ = "subsidy"

    id = Column(String(40), primary_key=True)
    cooperative_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=False, default="")
    amount = Column(BigInteger, nullable=False)
    provider = Column(Text, nullable=False)
    application_date = Column(Date, nullable=False)
    approval_date = Column(Date, nullable=True)
    disbursement_date = Column(Date, nullable=True)
    status = Column(Text, nullable=False, default="applied")
    requirements = Column(JSON, nullable=False, default=list)
    documents = Column(JSON, nullable=False, default=list)
    beneficiaries = Column(JSON, nullable=False, default=list)
    conditions = Column(Text, nullable=True)


class CreditRow(Base):
    """Member loan with its repayment schedule"""

    __tablename__ = "credit"

    id = Column(String(40), primary_key=True)
    cooperative_id = Column(Text, nullable=False, index=True)
    member_id = Column(Text, nullable=False, index=True)
    member_name = Column(Text, nullable=True)
    amount = Column(BigInteger, nullable=False)
    interest_rate = Column(Float, nullable=False)
    duration = Column(Integer, nullable=False)
    purpose = Column(Text, nullable=False)
    application_date = Column(Date, nullable=False)
    approval_date = Column(Date, nullable=True)
    disbursement_date = Column(Date, nullable=True)
    due_date = Column(Date, nullable=False)
    status = Column(Text, nullable=False, default="applied")
    guarantors = Column(JSON, nullable=False, default=list)
    collateral = Column(Text, nullable=True)

    installments = relationship(
        "CreditInstallmentRow",
        back_populates="credit",
        cascade="all, delete-orphan",
        order_by="CreditInstallmentRow.sequence",
    )


class CreditInstallmentRow(Base):
    """One entry of a credit repayment schedule"""

    __tablename__ = "credit_installment"

    id = Column(Integer, primary_key=True, autoincrement=True)
    credit_id = Column(String(40), ForeignKey("credit.id", ondelete="CASCADE"), nullable=False)
    sequence = Column(Integer, nullable=False)
    due_date = Column(Date, nullable=False)
    amount = Column(BigInteger, nullable=False)
    status = Column(Text, nullable=False, default="pending")
    paid_at = Column(DateTime(timezone=True), nullable=True)

    credit = relationship("CreditRow", back_populates="installments")


class CollectivePaymentRow(Base):
    """Bulk payment from a buyer for a pooled sale"""

    __tablename__ = "collective_payment"

    id = Column(String(40), primary_key=True)
    cooperative_id = Column(Text, nullable=False, index=True)
    amount = Column(BigInteger, nullable=False)
    currency = Column(Text, nullable=False)
    payment_method = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default="pending")
    received_at = Column(DateTime(timezone=True), nullable=True)
    redistributed_at = Column(DateTime(timezone=True), nullable=True)
    sale_id = Column(Text, nullable=False)
    buyer_ref = Column(Text, nullable=False)
    invoice_number = Column(Text, nullable=True)
    created_by = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    # Redistribution workflow bookkeeping
    payout_method = Column(Text, nullable=True)
    fee_rate = Column(Numeric(6, 3), nullable=True)
    confirmed_by = Column(Text, nullable=True)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)

    line_items = relationship(
        "PaymentLineItemRow",
        back_populates="payment",
        cascade="all, delete-orphan",
        order_by="PaymentLineItemRow.id",
    )
    distributions = relationship(
        "MemberDistributionRow",
        back_populates="payment",
        cascade="all, delete-orphan",
        order_by="MemberDistributionRow.sequence",
    )


class PaymentLineItemRow(Base):
    """Product line on a collective payment"""

    __tablename__ = "payment_line_item"

    id = Column(Integer, primary_key=True, autoincrement=True)
    payment_id = Column(String(40), ForeignKey("collective_payment.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Text, nullable=False)
    product_name = Column(Text, nullable=True)
    quantity = Column(BigInteger, nullable=False)
    unit_price = Column(BigInteger, nullable=False)
    total = Column(BigInteger, nullable=False)

    payment = relationship("CollectivePaymentRow", back_populates="line_items")


class MemberDistributionRow(Base):
    """One member's share of a collective payment and its payout state"""

    __tablename__ = "member_distribution"

    id = Column(Integer, primary_key=True, autoincrement=True)
    payment_id = Column(String(40), ForeignKey("collective_payment.id", ondelete="CASCADE"), nullable=False)
    sequence = Column(Integer, nullable=False)
    member_id = Column(Text, nullable=False)
    member_name = Column(Text, nullable=False, default="")
    product_id = Column(Text, nullable=True)
    quantity = Column(BigInteger, nullable=False, default=0)
    percentage = Column(Numeric(9, 4), nullable=False)
    recipient_ref = Column(Text, nullable=True)
    gross_amount = Column(BigInteger, nullable=False)
    fee = Column(BigInteger, nullable=False)
    net_amount = Column(BigInteger, nullable=False)
    status = Column(Text, nullable=False, default="pending")
    attempts = Column(Integer, nullable=False, default=0)
    failure_reason = Column(Text, nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    receipt_ref = Column(Text, nullable=True)
    transaction_id = Column(String(40), nullable=True)

    payment = relationship("CollectivePaymentRow", back_populates="distributions")
