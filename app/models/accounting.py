# app/models/accounting.py - Bank ledger and expenses (amounts in cents)
from __future__ import annotations

import datetime as dt
import uuid
from datetime import date, datetime
from typing import Literal, Optional

from sqlalchemy import (
    String, Boolean, BigInteger, Integer, Float, Date, DateTime, ForeignKey,
    CheckConstraint, Index
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base

# String "enums" keep migrations simple
TransactionType = Literal[
    "STUDENT_PAYMENT", "MENTOR_PAYMENT", "PROFESSOR_PAYMENT",
    "EXPENSE", "DISTRIBUTION", "TRANSFER", "FX_EXCHANGE",
]
Frequency = Literal["MONTHLY", "QUARTERLY", "YEARLY"]


class BankAccount(Base):
    __tablename__ = "bank_accounts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), index=True, nullable=False)
    account_name: Mapped[str] = mapped_column(String(128), nullable=False)
    bank_name: Mapped[Optional[str]] = mapped_column(String(128))
    # Fixed at creation, never updated
    currency: Mapped[str] = mapped_column(String(8), nullable=False)
    is_admin_owned: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<BankAccount id={self.id} {self.account_name} {self.currency} admin={self.is_admin_owned}>"


class Transaction(Base):
    """Journal row. Balance of an account = sum(in) - sum(out)."""
    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    transaction_number: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    type: Mapped[str] = mapped_column(String(24), nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False)

    source_account_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("bank_accounts.id"), index=True)
    destination_account_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("bank_accounts.id"), index=True)

    payment_schedule_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("payment_schedules.id"))
    expense_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("expenses.id"))
    mission_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("missions.id"))
    distribution_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("distributions.id"))
    linked_transaction_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("transactions.id"))

    exchange_rate: Mapped[Optional[float]] = mapped_column(Float)
    description: Mapped[Optional[str]] = mapped_column(String(255))
    notes: Mapped[Optional[str]] = mapped_column(String(1000))

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
        Index("ix_transactions_currency_date", "currency", "date"),
    )

    def __repr__(self) -> str:
        return f"<Transaction {self.transaction_number} {self.type} {self.amount} {self.currency}>"


class Expense(Base):
    __tablename__ = "expenses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False)
    supplier: Mapped[Optional[str]] = mapped_column(String(128))
    description: Mapped[Optional[str]] = mapped_column(String(255))
    expense_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_recurring: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    paying_account_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("bank_accounts.id"))

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


def _first_due_day(context) -> int:
    return context.get_current_parameters()["next_due_date"].day


class RecurringExpense(Base):
    __tablename__ = "recurring_expenses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False)
    supplier: Mapped[Optional[str]] = mapped_column(String(128))
    frequency: Mapped[str] = mapped_column(String(16), nullable=False)
    next_due_date: Mapped[date] = mapped_column(Date, nullable=False)
    # Day of month the expense falls due; set from the first next_due_date
    due_day: Mapped[Optional[int]] = mapped_column(Integer, default=_first_due_day)
    last_paid_date: Mapped[Optional[date]] = mapped_column(Date)
    paying_account_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("bank_accounts.id"))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(String(1000))

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("frequency IN ('MONTHLY','QUARTERLY','YEARLY')", name="ck_recurring_expenses_frequency"),
    )

    def __repr__(self) -> str:
        return f"<RecurringExpense id={self.id} {self.name} {self.frequency} next={self.next_due_date}>"
