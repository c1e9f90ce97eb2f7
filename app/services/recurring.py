# app/services/recurring.py
"""
Recurring expenses (rent, subscriptions, insurance...).

They are never hard-deleted: a deactivated expense stops feeding the
forecast but stays listed with its payment history.
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import AccountingError, NotFoundError
from app.models.accounting import Expense, RecurringExpense, Transaction
from app.services.forecast import FREQUENCY_MONTHS, advance_due_date, month_key
from app.services.ledger import create_transaction, ensure_account_currency, ensure_currency

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "name", "supplier", "category", "amount", "frequency",
    "next_due_date", "paying_account_id", "is_active", "notes",
)


def get_recurring_expense(db: Session, recurring_id: str) -> RecurringExpense:
    recurring = db.get(RecurringExpense, recurring_id)
    if not recurring:
        raise NotFoundError(f"Recurring expense {recurring_id} not found")
    return recurring


def ensure_frequency(frequency: str) -> str:
    if frequency not in FREQUENCY_MONTHS:
        raise AccountingError(f"Invalid frequency '{frequency}'. Use MONTHLY, QUARTERLY or YEARLY")
    return frequency


def monthly_equivalent(amount: int, frequency: str) -> int:
    """What the expense costs per month, in cents."""
    value = Decimal(amount) / FREQUENCY_MONTHS[frequency]
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def create_recurring_expense(
    db: Session,
    *,
    name: str,
    category: str,
    amount: int,
    frequency: str,
    next_due_date: date,
    currency: str = "EUR",
    supplier: Optional[str] = None,
    paying_account_id: Optional[str] = None,
    notes: Optional[str] = None,
) -> RecurringExpense:
    if not name or not category:
        raise AccountingError("Name and category are required")
    if amount <= 0:
        raise AccountingError("Amount must be positive")
    ensure_frequency(frequency)
    ensure_currency(currency)
    if paying_account_id:
        ensure_account_currency(db, paying_account_id, currency)

    recurring = RecurringExpense(
        name=name,
        category=category,
        amount=amount,
        currency=currency,
        supplier=supplier,
        frequency=frequency,
        next_due_date=next_due_date,
        due_day=next_due_date.day,
        paying_account_id=paying_account_id,
        notes=notes,
    )
    db.add(recurring)
    db.flush()
    logger.info("Recurring expense %s created (%s %s %s)", recurring.id, amount, currency, frequency)
    return recurring


def update_recurring_expense(db: Session, recurring_id: str, changes: Dict) -> RecurringExpense:
    """Apply the given fields; anything not in ``changes`` is left as is."""
    recurring = get_recurring_expense(db, recurring_id)
    unknown = set(changes) - set(UPDATABLE_FIELDS)
    if unknown:
        raise AccountingError(f"Cannot update {', '.join(sorted(unknown))}")

    if changes.get("frequency") is not None:
        ensure_frequency(changes["frequency"])
    if changes.get("amount") is not None and changes["amount"] <= 0:
        raise AccountingError("Amount must be positive")
    if changes.get("paying_account_id") and changes["paying_account_id"] != recurring.paying_account_id:
        ensure_account_currency(db, changes["paying_account_id"], recurring.currency)

    for key, value in changes.items():
        if value is None and key in ("name", "category", "amount", "frequency", "next_due_date", "is_active"):
            continue
        setattr(recurring, key, value)
    if changes.get("next_due_date"):
        recurring.due_day = changes["next_due_date"].day

    db.flush()
    logger.info("Recurring expense %s updated: %s", recurring.id, ", ".join(sorted(changes)))
    return recurring


def deactivate_recurring_expense(db: Session, recurring_id: str) -> RecurringExpense:
    recurring = get_recurring_expense(db, recurring_id)
    recurring.is_active = False
    db.flush()
    logger.info("Recurring expense %s deactivated", recurring.id)
    return recurring


def recurring_to_dict(r: RecurringExpense) -> Dict:
    return {
        "id": r.id,
        "name": r.name,
        "supplier": r.supplier,
        "category": r.category,
        "amount": r.amount,
        "currency": r.currency,
        "frequency": r.frequency,
        "nextDueDate": r.next_due_date.isoformat(),
        "lastPaidDate": r.last_paid_date.isoformat() if r.last_paid_date else None,
        "payingAccountId": r.paying_account_id,
        "isActive": r.is_active,
        "notes": r.notes,
    }


def list_recurring_expenses(
    db: Session,
    *,
    category: Optional[str] = None,
    is_active: Optional[bool] = None,
    today: Optional[date] = None,
) -> Dict:
    query = select(RecurringExpense).order_by(RecurringExpense.next_due_date, RecurringExpense.name)
    if category and category != "all":
        query = query.where(RecurringExpense.category == category)
    if is_active is not None:
        query = query.where(RecurringExpense.is_active.is_(is_active))
    rows = db.execute(query).scalars().all()

    this_month = month_key(today or date.today())
    monthly: Dict[str, int] = {}
    due_this_month: Dict[str, int] = {}
    due_count = 0
    for r in rows:
        if not r.is_active:
            continue
        monthly[r.currency] = monthly.get(r.currency, 0) + monthly_equivalent(r.amount, r.frequency)
        if month_key(r.next_due_date) == this_month:
            due_count += 1
            due_this_month[r.currency] = due_this_month.get(r.currency, 0) + r.amount

    return {
        "recurringExpenses": [recurring_to_dict(r) for r in rows],
        "summary": {
            "totalCount": len(rows),
            "activeCount": sum(1 for r in rows if r.is_active),
            "monthlyTotalsByCurrency": monthly,
            "dueThisMonth": due_count,
            "dueThisMonthTotal": due_this_month,
        },
    }


@dataclass
class RecurringPayment:
    expense: Expense
    transaction: Transaction
    next_due_date: date


def pay_recurring_expense(
    db: Session,
    recurring_id: str,
    *,
    payment_date: Optional[date] = None,
    paying_account_id: Optional[str] = None,
    notes: Optional[str] = None,
) -> RecurringPayment:
    """Pay the current installment and move ``next_due_date`` one period ahead."""
    recurring = get_recurring_expense(db, recurring_id)
    if not recurring.is_active:
        raise AccountingError("This recurring expense is inactive")

    account_id = paying_account_id or recurring.paying_account_id
    if not account_id:
        raise AccountingError("A paying account is required")

    paid_on = payment_date or date.today()

    expense = Expense(
        category=recurring.category,
        amount=recurring.amount,
        currency=recurring.currency,
        supplier=recurring.supplier,
        description=f"{recurring.name} - recurring payment",
        expense_date=paid_on,
        is_recurring=True,
        paying_account_id=account_id,
    )
    db.add(expense)
    db.flush()

    txn = create_transaction(
        db,
        type="EXPENSE",
        amount=recurring.amount,
        currency=recurring.currency,
        on=paid_on,
        source_account_id=account_id,
        expense_id=expense.id,
        description=f"Recurring expense: {recurring.name}",
        notes=notes or recurring.notes,
    )

    recurring.last_paid_date = paid_on
    recurring.next_due_date = advance_due_date(recurring.next_due_date, recurring.frequency, recurring.due_day)

    logger.info(
        "Recurring expense %s paid (%s %s), next due %s",
        recurring.id, recurring.amount, recurring.currency, recurring.next_due_date,
    )
    return RecurringPayment(expense=expense, transaction=txn, next_due_date=recurring.next_due_date)
