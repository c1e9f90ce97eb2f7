# app/services/quotes.py
import logging
from datetime import date, datetime
from typing import Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import AccountingError, InvalidTransition, NotFoundError
from app.models.billing import PaymentSchedule, Quote
from app.models.user import Student
from app.services.ledger import ensure_currency

logger = logging.getLogger(__name__)

# action -> (required current status, new status)
QUOTE_TRANSITIONS = {
    "send": ("DRAFT", "SENT"),
    "validate": ("SENT", "VALIDATED"),
    "reject": ("SENT", "REJECTED"),
}


def next_quote_number(db: Session, year: Optional[int] = None) -> str:
    """QUOTE-YYYY-NNN, sequential within the year."""
    year = year or date.today().year
    prefix = f"QUOTE-{year}-"
    last = db.execute(
        select(Quote.quote_number)
        .where(Quote.quote_number.like(f"{prefix}%"))
        .order_by(Quote.quote_number.desc())
        .limit(1)
    ).scalar_one_or_none()
    next_number = int(last[len(prefix):]) + 1 if last else 1
    return f"{prefix}{next_number:03d}"


def create_quote(
    db: Session,
    *,
    student_id: str,
    currency: str,
    installments: Sequence[Tuple[int, date]],
) -> Quote:
    """A DRAFT quote whose total is the sum of its installments (amount, due date)."""
    ensure_currency(currency)
    if not db.get(Student, student_id):
        raise NotFoundError(f"Student {student_id} not found")
    if not installments:
        raise AccountingError("A quote needs at least one installment")
    if any(amount <= 0 for amount, _ in installments):
        raise AccountingError("Installment amounts must be positive")

    quote = Quote(
        quote_number=next_quote_number(db),
        student_id=student_id,
        currency=currency,
        total_amount=sum(amount for amount, _ in installments),
        status="DRAFT",
        schedules=[
            PaymentSchedule(amount=amount, currency=currency, due_date=due, paid_amount=0, status="PENDING")
            for amount, due in sorted(installments, key=lambda i: i[1])
        ],
    )
    db.add(quote)
    db.flush()
    logger.info("Quote %s created for student %s (%s %s)", quote.quote_number, student_id, quote.total_amount, currency)
    return quote


def transition_quote(db: Session, quote_id: str, action: str) -> Quote:
    quote = db.get(Quote, quote_id)
    if not quote:
        raise NotFoundError(f"Quote {quote_id} not found")
    if action not in QUOTE_TRANSITIONS:
        raise InvalidTransition(f"Unknown quote action '{action}'")

    required, target = QUOTE_TRANSITIONS[action]
    if quote.status != required:
        raise InvalidTransition(f"Cannot {action} a quote that is {quote.status}")

    quote.status = target
    if target == "SENT":
        quote.sent_at = datetime.utcnow()
    elif target == "VALIDATED":
        quote.validated_at = datetime.utcnow()

    db.flush()
    logger.info("Quote %s %s -> %s", quote.quote_number, action, target)
    return quote
