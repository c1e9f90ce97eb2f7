from datetime import date

import pytest

from app.core.errors import AccountingError, InvalidTransition, NotFoundError
from app.services.missions import (
    apply_mission_action, create_mission, list_missions, next_mission_status, pay_mission
)
from conftest import make_account, make_mission, make_user, transactions


@pytest.mark.parametrize("current,action,expected", [
    ("PENDING", "approve", "VALIDATED"),
    ("PENDING", "reject", "CANCELLED"),
    ("VALIDATED", "pay", "PAID"),
    ("PENDING", "cancel", "CANCELLED"),
    ("VALIDATED", "cancel", "CANCELLED"),
])
def test_allowed_transitions(current, action, expected):
    assert next_mission_status(current, action) == expected


@pytest.mark.parametrize("current,action", [
    ("PAID", "cancel"),
    ("CANCELLED", "approve"),
    ("PENDING", "pay"),
    ("VALIDATED", "approve"),
])
def test_forbidden_transitions(current, action):
    with pytest.raises(InvalidTransition):
        next_mission_status(current, action)


def test_unknown_action():
    with pytest.raises(AccountingError):
        next_mission_status("PENDING", "archive")


def test_approve_then_pay_books_mentor_payment(db):
    admin = make_user(db, "admin@example.com")
    mentor = make_user(db, "mentor@example.com", role="MENTOR", first_name="Ana")
    account = make_account(db, admin, "EUR", opening=50000)
    mission = make_mission(db, mentor, 30000, date(2025, 3, 1))

    apply_mission_action(db, mission.id, "approve", admin_id=admin.id)
    assert mission.status == "VALIDATED"
    assert mission.validated_by == admin.id
    assert mission.validated_at is not None

    pay_mission(db, mission.id, source_account_id=account.id, paid_on=date(2025, 3, 10))
    assert mission.status == "PAID"

    txn = transactions(db)[-1]
    assert (txn.type, txn.amount, txn.mission_id, txn.source_account_id) == (
        "MENTOR_PAYMENT", 30000, mission.id, account.id,
    )
    assert "Ana" in txn.description


def test_professor_mission_books_professor_payment(db):
    admin = make_user(db, "admin@example.com")
    professor = make_user(db, "prof@example.com", role="PROFESSOR")
    account = make_account(db, admin, "MAD", opening=50000)
    mission = make_mission(db, professor, 1000, date(2025, 3, 1), currency="MAD", status="VALIDATED")

    pay_mission(db, mission.id, source_account_id=account.id)
    assert transactions(db)[-1].type == "PROFESSOR_PAYMENT"


def test_pay_goes_through_its_own_operation(db):
    mentor = make_user(db, "mentor@example.com", role="MENTOR")
    mission = make_mission(db, mentor, 1000, date(2025, 3, 1), status="VALIDATED")
    with pytest.raises(AccountingError):
        apply_mission_action(db, mission.id, "pay")


def test_mission_endpoints(client, db):
    admin = make_user(db, "admin@example.com")
    mentor = make_user(db, "mentor@example.com", role="MENTOR")
    account = make_account(db, admin, "EUR", opening=50000)
    mission = make_mission(db, mentor, 20000, date(2025, 3, 1))
    other = make_mission(db, mentor, 5000, date(2025, 3, 2))

    resp = client.post(f"/api/admin/accounting/missions/{mission.id}/pay", json={"sourceAccountId": account.id})
    assert resp.status_code == 400

    resp = client.post(f"/api/admin/accounting/missions/{mission.id}/validate", json={
        "action": "approve", "adminId": admin.id,
    })
    assert resp.status_code == 200
    assert resp.json()["mission"]["status"] == "VALIDATED"

    resp = client.post(f"/api/admin/accounting/missions/{mission.id}/pay", json={"sourceAccountId": account.id})
    assert resp.json()["mission"]["status"] == "PAID"

    resp = client.post(f"/api/admin/accounting/missions/{mission.id}/cancel", json={})
    assert resp.status_code == 400

    resp = client.post(f"/api/admin/accounting/missions/{other.id}/validate", json={"action": "reject"})
    assert resp.json()["mission"]["status"] == "CANCELLED"

    resp = client.post(f"/api/admin/accounting/missions/{other.id}/validate", json={"action": "archive"})
    assert resp.status_code == 422

    resp = client.post("/api/admin/accounting/missions/missing/cancel", json={})
    assert resp.status_code == 404


def test_create_mission_for_mentor_or_professor(db):
    admin = make_user(db, "admin@example.com")
    mentor = make_user(db, "mentor@example.com", role="MENTOR")
    professor = make_user(db, "prof@example.com", role="PROFESSOR")

    pending = create_mission(db, title="Coaching", amount=15000, mission_date=date(2025, 3, 4), mentor_id=mentor.id)
    validated = create_mission(
        db, title="Course", amount=40000, mission_date=date(2025, 3, 5), currency="MAD",
        professor_id=professor.id, auto_validate=True, admin_id=admin.id,
    )

    assert pending.status == "PENDING"
    assert validated.status == "VALIDATED"
    assert validated.validated_by == admin.id


def test_create_mission_guards(db):
    mentor = make_user(db, "mentor@example.com", role="MENTOR")
    professor = make_user(db, "prof@example.com", role="PROFESSOR")
    on = date(2025, 3, 4)

    with pytest.raises(AccountingError):
        create_mission(db, title="Both", amount=100, mission_date=on, mentor_id=mentor.id, professor_id=professor.id)
    with pytest.raises(AccountingError):
        create_mission(db, title="Nobody", amount=100, mission_date=on)
    with pytest.raises(AccountingError):
        create_mission(db, title="Free", amount=0, mission_date=on, mentor_id=mentor.id)
    with pytest.raises(NotFoundError):
        create_mission(db, title="Wrong role", amount=100, mission_date=on, mentor_id=professor.id)


def test_list_missions_with_stats(db):
    mentor = make_user(db, "mentor@example.com", role="MENTOR")
    professor = make_user(db, "prof@example.com", role="PROFESSOR")
    make_mission(db, mentor, 1000, date(2025, 3, 1))
    make_mission(db, mentor, 2000, date(2025, 3, 2), status="VALIDATED")
    make_mission(db, professor, 4000, date(2025, 3, 3), status="PAID")
    make_mission(db, professor, 8000, date(2025, 3, 4), status="CANCELLED")

    listing = list_missions(db)
    assert [m["amount"] for m in listing["missions"]] == [8000, 4000, 2000, 1000]
    assert listing["stats"] == {
        "total": 4,
        "pending": 1,
        "validated": 1,
        "paid": 1,
        "cancelled": 1,
        "totalAmount": 7000,
        "pendingAmount": 1000,
        "validatedAmount": 2000,
    }

    mine = list_missions(db, mentor_id=mentor.id, start_date=date(2025, 3, 2))
    assert [m["amount"] for m in mine["missions"]] == [2000]
    assert list_missions(db, status="PAID")["stats"]["total"] == 1


def test_create_and_list_mission_endpoints(client, db):
    mentor = make_user(db, "mentor@example.com", role="MENTOR", first_name="Sara")

    resp = client.post("/api/admin/accounting/missions", json={
        "title": "Coaching", "amount": 15000, "date": "2025-03-04", "mentorId": mentor.id,
    })
    assert resp.status_code == 201
    assert resp.json()["mission"]["status"] == "PENDING"
    assert resp.json()["mission"]["assignee"] == "Sara"

    resp = client.post("/api/admin/accounting/missions", json={
        "title": "Coaching", "amount": 15000, "date": "2025-03-04",
    })
    assert resp.status_code == 400

    body = client.get("/api/admin/accounting/missions", params={"status": "PENDING"}).json()
    assert body["stats"]["pendingAmount"] == 15000
    assert len(body["missions"]) == 1
