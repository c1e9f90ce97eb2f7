# app/api/routers/billing.py - Quotes and their payment schedules
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.errors import http_error
from app.core.db import get_db
from app.models.billing import PaymentSchedule, Quote
from app.schemas.accounting import QuoteCreate, SchedulePaymentCreate
from app.services.quotes import create_quote, transition_quote
from app.services.schedules import record_schedule_payment

router = APIRouter(prefix="/admin/accounting", tags=["Accounting - Billing"])


def schedule_out(s: PaymentSchedule) -> dict:
    return {
        "id": s.id,
        "quoteId": s.quote_id,
        "amount": s.amount,
        "paidAmount": s.paid_amount,
        "remainingAmount": s.remaining_amount,
        "currency": s.currency,
        "dueDate": s.due_date.isoformat(),
        "status": s.status,
    }


def quote_out(q: Quote) -> dict:
    return {
        "id": q.id,
        "quoteNumber": q.quote_number,
        "studentId": q.student_id,
        "currency": q.currency,
        "totalAmount": q.total_amount,
        "status": q.status,
        "schedules": [schedule_out(s) for s in q.schedules],
    }


@router.post("/quotes", status_code=201)
def post_quote(payload: QuoteCreate, db: Session = Depends(get_db)):
    try:
        quote = create_quote(
            db,
            student_id=payload.student_id,
            currency=payload.currency,
            installments=[(i.amount, i.due_date) for i in payload.installments],
        )
        db.commit()
    except ValueError as e:
        raise http_error(e)
    return {"quote": quote_out(quote), "message": "Quote created"}


def _transition(db: Session, quote_id: str, action: str, message: str) -> dict:
    try:
        quote = transition_quote(db, quote_id, action)
        db.commit()
    except ValueError as e:
        raise http_error(e)
    return {"quote": quote_out(quote), "message": message}


@router.post("/quotes/{quote_id}/send")
def send_quote(quote_id: str, db: Session = Depends(get_db)):
    return _transition(db, quote_id, "send", "Quote sent")


@router.post("/quotes/{quote_id}/validate")
def validate_quote(quote_id: str, db: Session = Depends(get_db)):
    return _transition(db, quote_id, "validate", "Quote validated")


@router.post("/quotes/{quote_id}/reject")
def reject_quote(quote_id: str, db: Session = Depends(get_db)):
    return _transition(db, quote_id, "reject", "Quote rejected")


@router.post("/payment-schedules/{schedule_id}/payments")
def post_schedule_payment(schedule_id: str, payload: SchedulePaymentCreate, db: Session = Depends(get_db)):
    try:
        schedule = record_schedule_payment(
            db,
            schedule_id,
            payload.amount,
            destination_account_id=payload.destination_account_id,
            paid_on=payload.paid_on,
            notes=payload.notes,
        )
        db.commit()
    except ValueError as e:
        raise http_error(e)
    return {"schedule": schedule_out(schedule), "message": "Payment recorded"}
