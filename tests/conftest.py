import uuid
from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.core.db import get_db
from app.main import app as fastapi_app
from app.models import (
    AdminPosition, BankAccount, Mission, PaymentSchedule, Quote, RecurringExpense, Student, Transaction, User
)
from app.models.base import Base
from app.services.ledger import create_transaction


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    session = TestingSession()
    yield session
    session.close()


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    fastapi_app.dependency_overrides[get_db] = override_get_db
    with TestClient(fastapi_app) as c:
        yield c
    fastapi_app.dependency_overrides.clear()


# ---------------------------------------------------------------- seed helpers

def make_user(db, email, role="ADMIN", first_name=None, last_name=None) -> User:
    user = User(email=email, role=role, first_name=first_name, last_name=last_name)
    db.add(user)
    db.flush()
    return user


def make_student(db, email, first_name="Student", last_name=None) -> Student:
    user = make_user(db, email, role="STUDENT", first_name=first_name, last_name=last_name)
    student = Student(user_id=user.id)
    db.add(student)
    db.flush()
    return student


def make_account(db, owner, currency="EUR", opening=0, is_admin_owned=True, name=None) -> BankAccount:
    account = BankAccount(
        user_id=owner.id,
        account_name=name or f"{owner.email} {currency}",
        currency=currency,
        is_admin_owned=is_admin_owned,
    )
    db.add(account)
    db.flush()
    if opening:
        create_transaction(
            db,
            type="TRANSFER",
            amount=opening,
            currency=currency,
            on=date(2020, 1, 1),
            destination_account_id=account.id,
            description="Opening balance",
        )
    return account


def make_quote(db, student, installments, currency="EUR", status="VALIDATED") -> Quote:
    """installments: [(amount, due_date, paid_amount)]"""
    schedules = []
    for amount, due, paid in installments:
        status_ = "PAID" if paid >= amount else ("PARTIALLY_PAID" if paid else "PENDING")
        schedules.append(PaymentSchedule(
            amount=amount, currency=currency, due_date=due, paid_amount=paid, status=status_,
        ))
    quote = Quote(
        quote_number=f"QUOTE-T-{uuid.uuid4().hex[:8]}",
        student_id=student.id,
        currency=currency,
        total_amount=sum(i[0] for i in installments),
        status=status,
        schedules=schedules,
    )
    db.add(quote)
    db.flush()
    return quote


def make_mission(db, assignee, amount, on, currency="EUR", status="PENDING", title="Mentoring") -> Mission:
    field = "mentor_id" if assignee.role == "MENTOR" else "professor_id"
    mission = Mission(title=title, amount=amount, currency=currency, date=on, status=status, **{field: assignee.id})
    db.add(mission)
    db.flush()
    return mission


def make_recurring(db, amount, next_due, frequency="MONTHLY", currency="EUR", name="Rent", account=None) -> RecurringExpense:
    recurring = RecurringExpense(
        name=name,
        category="RENT",
        amount=amount,
        currency=currency,
        frequency=frequency,
        next_due_date=next_due,
        paying_account_id=account.id if account else None,
    )
    db.add(recurring)
    db.flush()
    return recurring


def make_position(db, admin, advanced, received, currency="EUR") -> AdminPosition:
    position = AdminPosition(admin_id=admin.id, currency=currency, advanced=advanced, received=received)
    db.add(position)
    db.flush()
    return position


def transactions(db):
    return db.query(Transaction).order_by(Transaction.transaction_number).all()
