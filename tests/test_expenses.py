from datetime import date

import pytest

from app.core.errors import AccountingError, NotFoundError
from app.services.expenses import create_expense, list_expenses
from app.services.ledger import account_balances
from app.services.recurring import (
    create_recurring_expense, deactivate_recurring_expense, list_recurring_expenses, monthly_equivalent,
    update_recurring_expense,
)
from conftest import make_account, make_recurring, make_user, transactions


# ---------------------------------------------------------------- one-off expenses

def test_expense_paid_from_an_account_is_booked(db):
    admin = make_user(db, "admin@example.com")
    account = make_account(db, admin, "EUR", opening=10000)

    recorded = create_expense(
        db, category="SOFTWARE", amount=2500, expense_date=date(2025, 4, 2),
        supplier="Figma", paying_account_id=account.id,
    )

    assert recorded.transaction.type == "EXPENSE"
    assert recorded.transaction.expense_id == recorded.expense.id
    assert not recorded.expense.is_recurring
    assert account_balances(db, [account.id])[account.id] == 7500


def test_expense_without_account_stays_off_the_journal(db):
    admin = make_user(db, "admin@example.com")
    account = make_account(db, admin, "EUR")

    unpaid = create_expense(db, category="TRAVEL", amount=900, expense_date=date(2025, 4, 2))
    skipped = create_expense(
        db, category="TRAVEL", amount=900, expense_date=date(2025, 4, 3),
        paying_account_id=account.id, create_transaction_entry=False,
    )

    assert unpaid.transaction is None
    assert skipped.transaction is None
    assert transactions(db) == []


def test_expense_guards(db):
    admin = make_user(db, "admin@example.com")
    mad = make_account(db, admin, "MAD")

    with pytest.raises(AccountingError):
        create_expense(db, category="", amount=100, expense_date=date(2025, 4, 2))
    with pytest.raises(AccountingError):
        create_expense(db, category="TRAVEL", amount=0, expense_date=date(2025, 4, 2))
    with pytest.raises(AccountingError):
        create_expense(db, category="TRAVEL", amount=100, currency="GBP", expense_date=date(2025, 4, 2))
    with pytest.raises(AccountingError):
        create_expense(db, category="TRAVEL", amount=100, expense_date=date(2025, 4, 2), paying_account_id=mad.id)


def test_list_expenses_filters_and_totals(db):
    admin = make_user(db, "admin@example.com")
    account = make_account(db, admin, "EUR", opening=10000)
    create_expense(db, category="SOFTWARE", amount=2500, expense_date=date(2025, 3, 2), paying_account_id=account.id)
    create_expense(db, category="TRAVEL", amount=700, expense_date=date(2025, 4, 2))
    create_expense(db, category="TRAVEL", amount=300, currency="MAD", expense_date=date(2025, 4, 5))

    everything = list_expenses(db)
    assert everything["summary"]["count"] == 3
    assert everything["summary"]["totalsByCurrency"] == {"EUR": 3200, "MAD": 300}
    assert everything["summary"]["byCategory"] == {"SOFTWARE": 2500, "TRAVEL": 1000}
    assert [e["expenseDate"] for e in everything["expenses"]] == ["2025-04-05", "2025-04-02", "2025-03-02"]
    assert everything["expenses"][-1]["transactionNumber"] == "TXN-2025-00001"
    assert everything["expenses"][0]["transactionNumber"] is None

    april = list_expenses(db, category="TRAVEL", currency="EUR", start_date=date(2025, 4, 1))
    assert [e["amount"] for e in april["expenses"]] == [700]


def test_expense_endpoints(client, db):
    admin = make_user(db, "admin@example.com")
    account = make_account(db, admin, "EUR", opening=10000)

    resp = client.post("/api/admin/accounting/expenses", json={
        "category": "SOFTWARE", "amount": 2500, "expenseDate": "2025-04-02", "payingAccountId": account.id,
    })
    assert resp.status_code == 201
    assert resp.json()["expense"]["transactionNumber"] == "TXN-2025-00001"

    resp = client.post("/api/admin/accounting/expenses", json={
        "category": "SOFTWARE", "amount": -1, "expenseDate": "2025-04-02",
    })
    assert resp.status_code == 400

    resp = client.get("/api/admin/accounting/expenses", params={"category": "SOFTWARE"})
    assert resp.json()["summary"]["count"] == 1


# ---------------------------------------------------------------- recurring expenses

def test_create_recurring_expense(db):
    admin = make_user(db, "admin@example.com")
    account = make_account(db, admin, "EUR")

    rent = create_recurring_expense(
        db, name="Office", category="RENT", amount=120000, frequency="MONTHLY",
        next_due_date=date(2025, 5, 31), paying_account_id=account.id,
    )

    assert rent.is_active
    assert rent.due_day == 31
    with pytest.raises(AccountingError):
        create_recurring_expense(db, name="Office", category="RENT", amount=1, frequency="WEEKLY",
                                 next_due_date=date(2025, 5, 1))
    with pytest.raises(AccountingError):
        create_recurring_expense(db, name="Office", category="RENT", amount=0, frequency="MONTHLY",
                                 next_due_date=date(2025, 5, 1))


def test_update_recurring_expense(db):
    rent = make_recurring(db, 80000, date(2025, 1, 31))

    update_recurring_expense(db, rent.id, {"amount": 85000, "next_due_date": date(2025, 6, 15), "supplier": None})

    assert rent.amount == 85000
    assert rent.due_day == 15
    with pytest.raises(AccountingError):
        update_recurring_expense(db, rent.id, {"currency": "MAD"})
    with pytest.raises(AccountingError):
        update_recurring_expense(db, rent.id, {"frequency": "DAILY"})
    with pytest.raises(NotFoundError):
        update_recurring_expense(db, "missing", {"amount": 1})


def test_deactivated_expense_is_kept_but_leaves_the_summary(db):
    rent = make_recurring(db, 90000, date(2025, 4, 10))
    insurance = make_recurring(db, 30000, date(2025, 6, 1), frequency="QUARTERLY", name="Insurance")

    deactivate_recurring_expense(db, rent.id)

    listing = list_recurring_expenses(db, today=date(2025, 4, 1))
    assert listing["summary"]["totalCount"] == 2
    assert listing["summary"]["activeCount"] == 1
    assert listing["summary"]["monthlyTotalsByCurrency"] == {"EUR": 10000}
    assert listing["summary"]["dueThisMonth"] == 0

    active = list_recurring_expenses(db, is_active=True)
    assert [r["id"] for r in active["recurringExpenses"]] == [insurance.id]


def test_monthly_equivalent_rounds_to_the_cent():
    assert monthly_equivalent(1000, "QUARTERLY") == 333
    assert monthly_equivalent(2000, "QUARTERLY") == 667
    assert monthly_equivalent(12000, "YEARLY") == 1000


def test_recurring_expense_endpoints(client, db):
    admin = make_user(db, "admin@example.com")
    account = make_account(db, admin, "EUR")

    resp = client.post("/api/admin/accounting/recurring-expenses", json={
        "name": "Office", "category": "RENT", "amount": 120000, "frequency": "MONTHLY",
        "nextDueDate": "2025-05-31", "payingAccountId": account.id,
    })
    assert resp.status_code == 201
    recurring_id = resp.json()["recurringExpense"]["id"]

    resp = client.patch(f"/api/admin/accounting/recurring-expenses/{recurring_id}", json={"amount": 125000})
    assert resp.status_code == 200
    assert resp.json()["recurringExpense"]["amount"] == 125000
    assert resp.json()["recurringExpense"]["frequency"] == "MONTHLY"

    resp = client.delete(f"/api/admin/accounting/recurring-expenses/{recurring_id}")
    assert resp.status_code == 200
    assert resp.json()["recurringExpense"]["isActive"] is False

    assert client.get("/api/admin/accounting/recurring-expenses").json()["recurringExpenses"] == []
    listing = client.get("/api/admin/accounting/recurring-expenses", params={"isActive": "all"}).json()
    assert [r["id"] for r in listing["recurringExpenses"]] == [recurring_id]

    resp = client.post(f"/api/admin/accounting/recurring-expenses/{recurring_id}/pay", json={})
    assert resp.status_code == 400
    assert client.delete("/api/admin/accounting/recurring-expenses/missing").status_code == 404
    assert client.get("/api/admin/accounting/recurring-expenses", params={"isActive": "maybe"}).status_code == 422
