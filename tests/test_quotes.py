from datetime import date

import pytest

from app.core.errors import AccountingError, InvalidTransition, NotFoundError
from app.services.quotes import create_quote, next_quote_number, transition_quote
from app.services.schedules import record_schedule_payment
from conftest import make_account, make_quote, make_student, make_user, transactions


def test_create_quote_orders_installments(db):
    student = make_student(db, "alice@example.com")
    quote = create_quote(db, student_id=student.id, currency="EUR", installments=[
        (50000, date(2025, 6, 1)),
        (100000, date(2025, 4, 1)),
    ])

    assert quote.status == "DRAFT"
    assert quote.total_amount == 150000
    assert [s.due_date for s in quote.schedules] == [date(2025, 4, 1), date(2025, 6, 1)]
    assert all(s.status == "PENDING" and s.paid_amount == 0 for s in quote.schedules)
    assert quote.quote_number.startswith("QUOTE-")


def test_quote_numbers_are_sequential(db):
    student = make_student(db, "alice@example.com")
    year = date.today().year
    first = create_quote(db, student_id=student.id, currency="EUR", installments=[(1, date(2025, 1, 1))])
    second = create_quote(db, student_id=student.id, currency="EUR", installments=[(1, date(2025, 1, 1))])

    assert first.quote_number == f"QUOTE-{year}-001"
    assert second.quote_number == f"QUOTE-{year}-002"
    assert next_quote_number(db, year) == f"QUOTE-{year}-003"


def test_create_quote_validation(db):
    student = make_student(db, "alice@example.com")
    with pytest.raises(AccountingError):
        create_quote(db, student_id=student.id, currency="EUR", installments=[])
    with pytest.raises(AccountingError):
        create_quote(db, student_id=student.id, currency="EUR", installments=[(0, date(2025, 1, 1))])
    with pytest.raises(AccountingError):
        create_quote(db, student_id=student.id, currency="JPY", installments=[(1, date(2025, 1, 1))])
    with pytest.raises(NotFoundError):
        create_quote(db, student_id="missing", currency="EUR", installments=[(1, date(2025, 1, 1))])


def test_quote_lifecycle(db):
    student = make_student(db, "alice@example.com")
    quote = make_quote(db, student, [(1000, date(2025, 1, 1), 0)], status="DRAFT")

    with pytest.raises(InvalidTransition):
        transition_quote(db, quote.id, "validate")

    transition_quote(db, quote.id, "send")
    assert quote.status == "SENT" and quote.sent_at is not None
    transition_quote(db, quote.id, "validate")
    assert quote.status == "VALIDATED" and quote.validated_at is not None

    with pytest.raises(InvalidTransition):
        transition_quote(db, quote.id, "reject")


def test_schedule_payments_track_status(db):
    admin = make_user(db, "admin@example.com")
    account = make_account(db, admin, "EUR")
    student = make_student(db, "alice@example.com")
    quote = make_quote(db, student, [(10000, date(2025, 1, 1), 0)])
    schedule = quote.schedules[0]

    record_schedule_payment(db, schedule.id, 4000, destination_account_id=account.id)
    assert (schedule.paid_amount, schedule.status, schedule.remaining_amount) == (4000, "PARTIALLY_PAID", 6000)

    with pytest.raises(AccountingError):
        record_schedule_payment(db, schedule.id, 6001)
    with pytest.raises(AccountingError):
        record_schedule_payment(db, schedule.id, 0)

    record_schedule_payment(db, schedule.id, 6000)
    assert schedule.status == "PAID"

    payments = [t for t in transactions(db) if t.type == "STUDENT_PAYMENT"]
    assert [(t.amount, t.payment_schedule_id) for t in payments] == [(4000, schedule.id)]


def test_quote_and_payment_endpoints(client, db):
    admin = make_user(db, "admin@example.com")
    account = make_account(db, admin, "EUR")
    student = make_student(db, "alice@example.com")

    resp = client.post("/api/admin/accounting/quotes", json={
        "studentId": student.id,
        "currency": "EUR",
        "installments": [{"amount": 30000, "dueDate": "2025-09-01"}, {"amount": 30000, "dueDate": "2025-10-01"}],
    })
    assert resp.status_code == 201
    quote = resp.json()["quote"]
    assert quote["totalAmount"] == 60000

    assert client.post(f"/api/admin/accounting/quotes/{quote['id']}/send").json()["quote"]["status"] == "SENT"
    assert client.post(f"/api/admin/accounting/quotes/{quote['id']}/send").status_code == 400
    assert client.post(f"/api/admin/accounting/quotes/{quote['id']}/validate").json()["quote"]["status"] == "VALIDATED"
    assert client.post("/api/admin/accounting/quotes/missing/reject").status_code == 404

    schedule_id = quote["schedules"][0]["id"]
    resp = client.post(f"/api/admin/accounting/payment-schedules/{schedule_id}/payments", json={
        "amount": 30000, "destinationAccountId": account.id,
    })
    assert resp.status_code == 200
    assert resp.json()["schedule"]["status"] == "PAID"

    resp = client.post(f"/api/admin/accounting/payment-schedules/{schedule_id}/payments", json={"amount": 1})
    assert resp.status_code == 400
