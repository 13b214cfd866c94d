"""SQLAlchemy ORM models for plans, lender offers and recurring transactions"""

import uuid
from sqlalchemy import Column, String, Boolean, Float, DateTime, Date, Integer, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


def _uuid() -> str:
    return str(uuid.uuid4())


class FinancialPlan(Base):
    """Saved home purchase / investment plan"""

    __tablename__ = "financial_plans"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(Text, nullable=False, index=True)
    plan_name = Column(Text, nullable=False)
    plan_type = Column(Text, nullable=False, default="home_purchase")
    purchase_price = Column(Float, nullable=False)
    down_payment = Column(Float, nullable=False, default=0)
    interest_rate = Column(Float, nullable=False)
    loan_term_years = Column(Integer, nullable=False)
    promotional_rate = Column(Float, nullable=True)
    promotional_period_months = Column(Integer, nullable=True)
    monthly_income = Column(Float, nullable=False)
    monthly_expenses = Column(Float, nullable=False, default=0)
    expected_rental_income = Column(Float, nullable=True)
    property_expenses = Column(Float, nullable=True)
    expected_appreciation_rate = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class BankInterestRate(Base):
    """Lender offer for one loan type"""

    __tablename__ = "bank_interest_rates"

    id = Column(String(36), primary_key=True, default=_uuid)
    bank_id = Column(Text, nullable=False, index=True)
    bank_name = Column(Text, nullable=False, default="")
    loan_type = Column(Text, nullable=False, index=True)
    interest_rate = Column(Float, nullable=False)
    promotional_rate = Column(Float, nullable=True)
    promotional_period_months = Column(Integer, nullable=True)
    min_loan_amount = Column(Float, nullable=True)
    max_loan_amount = Column(Float, nullable=True)
    min_term_months = Column(Integer, nullable=True)
    max_term_months = Column(Integer, nullable=True)
    max_ltv_ratio = Column(Float, nullable=True)
    processing_fee = Column(Float, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class RecurringTransaction(Base):
    """Recurring income/expense/transfer definition"""

    __tablename__ = "recurring_transactions"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False, default="")
    wallet_id = Column(Text, nullable=False)
    transaction_type = Column(Text, nullable=False)
    amount = Column(Float, nullable=False)
    description = Column(Text, nullable=True)
    expense_category_id = Column(Text, nullable=True)
    income_category_id = Column(Text, nullable=True)
    transfer_to_wallet_id = Column(Text, nullable=True)
    frequency = Column(Text, nullable=False)
    frequency_interval = Column(Integer, nullable=False, default=1)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    max_occurrences = Column(Integer, nullable=True)
    occurrences_created = Column(Integer, nullable=False, default=0)
    next_due_date = Column(Date, nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    transactions = relationship("LedgerTransaction", back_populates="recurring_transaction")


class LedgerTransaction(Base):
    """Ledger entry; at most one per (recurring_transaction_id, due_date)"""

    __tablename__ = "ledger_transactions"
    __table_args__ = (
        UniqueConstraint("recurring_transaction_id", "due_date", name="uq_ledger_recurring_occurrence"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(Text, nullable=False, index=True)
    wallet_id = Column(Text, nullable=False)
    transaction_type = Column(Text, nullable=False)
    amount = Column(Float, nullable=False)
    description = Column(Text, nullable=True)
    expense_category_id = Column(Text, nullable=True)
    income_category_id = Column(Text, nullable=True)
    transfer_to_wallet_id = Column(Text, nullable=True)
    transaction_date = Column(Date, nullable=False)
    recurring_transaction_id = Column(
        String(36), ForeignKey("recurring_transactions.id", ondelete="SET NULL"), nullable=True
    )
    due_date = Column(Date, nullable=True)
    occurrence_number = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    recurring_transaction = relationship("RecurringTransaction", back_populates="transactions")
