# app/models/founders.py - Founder positions and profit distributions
from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from sqlalchemy import (
    String, BigInteger, Float, Date, DateTime, ForeignKey, UniqueConstraint
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base
from app.models.user import User


class AdminPosition(Base):
    """Cash a founder advanced to / received from the business, per currency."""
    __tablename__ = "admin_positions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    admin_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), index=True, nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False)
    advanced: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    received: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    as_of_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    admin: Mapped[User] = relationship("User", lazy="joined")

    __table_args__ = (
        UniqueConstraint("admin_id", "currency", name="uq_admin_positions_admin_currency"),
    )

    @property
    def balance(self) -> int:
        # > 0: the business owes the founder
        return self.advanced - self.received


class Distribution(Base):
    __tablename__ = "distributions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    total_amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False)
    investment_amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    distributed_amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    distribution_date: Mapped[date] = mapped_column(Date, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(String(1000))

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    shares: Mapped[list["FounderShare"]] = relationship(
        "FounderShare",
        back_populates="distribution",
        cascade="all, delete-orphan",
    )


class FounderShare(Base):
    __tablename__ = "founder_shares"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    distribution_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("distributions.id", ondelete="CASCADE"), index=True, nullable=False
    )
    founder_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    percentage: Mapped[float] = mapped_column(Float, nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)

    distribution: Mapped[Distribution] = relationship("Distribution", back_populates="shares")
    founder: Mapped[User] = relationship("User", lazy="joined")
