# app/services/schedules.py
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from app.core.errors import AccountingError, NotFoundError
from app.models.billing import PaymentSchedule
from app.services.ledger import create_transaction

OPEN_STATUSES = ("PENDING", "PARTIALLY_PAID")


def remaining_amount(amount: int, paid_amount: int) -> int:
    return amount - (paid_amount or 0)


def stored_status(amount: int, paid_amount: int) -> str:
    """Status persisted on the row; depends only on what has been paid."""
    if paid_amount >= amount:
        return "PAID"
    if paid_amount > 0:
        return "PARTIALLY_PAID"
    return "PENDING"


def is_overdue(due_date: date, amount: int, paid_amount: int, today: date) -> bool:
    return due_date < today and remaining_amount(amount, paid_amount) > 0


def schedule_status(due_date: date, amount: int, paid_amount: int, today: date) -> str:
    """
    Status shown to users. OVERDUE only applies to an installment with
    nothing paid yet; a partially paid one stays PARTIALLY_PAID (and
    ``is_overdue`` still reports the lateness).
    """
    status = stored_status(amount, paid_amount)
    if status == "PENDING" and due_date < today:
        return "OVERDUE"
    return status


def record_schedule_payment(
    db: Session,
    schedule_id: str,
    amount: int,
    *,
    destination_account_id: Optional[str] = None,
    paid_on: Optional[date] = None,
    notes: Optional[str] = None,
) -> PaymentSchedule:
    schedule = db.get(PaymentSchedule, schedule_id)
    if not schedule:
        raise NotFoundError(f"Payment schedule {schedule_id} not found")
    if amount <= 0:
        raise AccountingError("Payment amount must be positive")

    remaining = schedule.remaining_amount
    if amount > remaining:
        raise AccountingError(
            f"Payment of {amount} exceeds the remaining {remaining} on this installment"
        )

    schedule.paid_amount = (schedule.paid_amount or 0) + amount
    schedule.status = stored_status(schedule.amount, schedule.paid_amount)

    if destination_account_id:
        create_transaction(
            db,
            type="STUDENT_PAYMENT",
            amount=amount,
            currency=schedule.currency,
            on=paid_on,
            destination_account_id=destination_account_id,
            payment_schedule_id=schedule.id,
            description=f"Student payment - quote {schedule.quote.quote_number}",
            notes=notes,
        )

    db.flush()
    return schedule
