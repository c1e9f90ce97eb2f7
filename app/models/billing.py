# app/models/billing.py - Quotes, payment schedules and team missions
from __future__ import annotations

import datetime as dt
import uuid
from datetime import date, datetime
from typing import Literal, Optional

from sqlalchemy import (
    String, BigInteger, Date, DateTime, ForeignKey, CheckConstraint, Index
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base
from app.models.user import Student, User

QuoteStatus = Literal["DRAFT", "SENT", "VALIDATED", "REJECTED"]
# OVERDUE is derived at read time, never stored
ScheduleStatus = Literal["PENDING", "PARTIALLY_PAID", "PAID"]
MissionStatus = Literal["PENDING", "VALIDATED", "PAID", "CANCELLED"]


class Quote(Base):
    __tablename__ = "quotes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    quote_number: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    student_id: Mapped[str] = mapped_column(String(36), ForeignKey("students.id"), index=True, nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False)
    total_amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="DRAFT")

    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    validated_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    student: Mapped[Student] = relationship("Student", lazy="joined")
    schedules: Mapped[list["PaymentSchedule"]] = relationship(
        "PaymentSchedule",
        back_populates="quote",
        cascade="all, delete-orphan",
        order_by="PaymentSchedule.due_date",
    )

    __table_args__ = (
        CheckConstraint("status IN ('DRAFT','SENT','VALIDATED','REJECTED')", name="ck_quotes_status"),
    )

    def __repr__(self) -> str:
        return f"<Quote {self.quote_number} {self.status} {self.total_amount} {self.currency}>"


class PaymentSchedule(Base):
    __tablename__ = "payment_schedules"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    quote_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("quotes.id", ondelete="CASCADE"), index=True, nullable=False
    )
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    paid_amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="PENDING")

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    quote: Mapped[Quote] = relationship("Quote", back_populates="schedules")

    __table_args__ = (
        CheckConstraint("paid_amount >= 0 AND paid_amount <= amount", name="ck_payment_schedules_paid_range"),
        CheckConstraint("status IN ('PENDING','PARTIALLY_PAID','PAID')", name="ck_payment_schedules_status"),
        Index("ix_payment_schedules_status_due", "status", "due_date"),
    )

    @property
    def remaining_amount(self) -> int:
        return self.amount - (self.paid_amount or 0)

    def __repr__(self) -> str:
        return f"<PaymentSchedule id={self.id} {self.amount} {self.currency} due={self.due_date} {self.status}>"


class Mission(Base):
    __tablename__ = "missions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    # Exactly one of mentor_id / professor_id is set
    mentor_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("users.id"), index=True)
    professor_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("users.id"), index=True)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="PENDING")

    validated_by: Mapped[Optional[str]] = mapped_column(String(36))
    validated_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    notes: Mapped[Optional[str]] = mapped_column(String(1000))

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    mentor: Mapped[Optional[User]] = relationship("User", foreign_keys=[mentor_id], lazy="joined")
    professor: Mapped[Optional[User]] = relationship("User", foreign_keys=[professor_id], lazy="joined")

    __table_args__ = (
        CheckConstraint("status IN ('PENDING','VALIDATED','PAID','CANCELLED')", name="ck_missions_status"),
    )

    @property
    def assignee_name(self) -> str:
        person = self.mentor or self.professor
        return person.display_name if person else "Unknown"

    def __repr__(self) -> str:
        return f"<Mission id={self.id} {self.title} {self.amount} {self.currency} {self.status}>"
