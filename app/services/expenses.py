# app/services/expenses.py
import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Dict, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import AccountingError
from app.models.accounting import Expense, Transaction
from app.services.ledger import create_transaction, ensure_account_currency, ensure_currency

logger = logging.getLogger(__name__)


@dataclass
class RecordedExpense:
    expense: Expense
    transaction: Optional[Transaction] = None


def create_expense(
    db: Session,
    *,
    category: str,
    amount: int,
    expense_date: date,
    currency: str = "EUR",
    supplier: Optional[str] = None,
    description: Optional[str] = None,
    paying_account_id: Optional[str] = None,
    create_transaction_entry: bool = True,
) -> RecordedExpense:
    """One-off expense; booked in the journal when it was paid from an account."""
    if not category:
        raise AccountingError("Category is required")
    if amount <= 0:
        raise AccountingError("Amount must be positive")
    ensure_currency(currency)
    if paying_account_id:
        ensure_account_currency(db, paying_account_id, currency)

    expense = Expense(
        category=category,
        amount=amount,
        currency=currency,
        supplier=supplier,
        description=description,
        expense_date=expense_date,
        is_recurring=False,
        paying_account_id=paying_account_id,
    )
    db.add(expense)
    db.flush()

    txn = None
    if create_transaction_entry and paying_account_id:
        txn = create_transaction(
            db,
            type="EXPENSE",
            amount=amount,
            currency=currency,
            on=expense_date,
            source_account_id=paying_account_id,
            expense_id=expense.id,
            description=f"Expense {category} - {supplier}" if supplier else f"Expense {category}",
            notes=description,
        )

    logger.info("Expense %s recorded (%s %s, %s)", expense.id, amount, currency, category)
    return RecordedExpense(expense=expense, transaction=txn)


def expense_to_dict(e: Expense, transaction_number: Optional[str] = None) -> Dict:
    return {
        "id": e.id,
        "category": e.category,
        "amount": e.amount,
        "currency": e.currency,
        "supplier": e.supplier,
        "description": e.description,
        "expenseDate": e.expense_date.isoformat(),
        "isRecurring": e.is_recurring,
        "payingAccountId": e.paying_account_id,
        "transactionNumber": transaction_number,
    }


def list_expenses(
    db: Session,
    *,
    category: Optional[str] = None,
    currency: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: Optional[int] = None,
) -> Dict:
    query = (
        select(Expense, Transaction.transaction_number)
        .outerjoin(Transaction, Transaction.expense_id == Expense.id)
        .order_by(Expense.expense_date.desc(), Expense.created_at.desc())
    )
    if category and category != "all":
        query = query.where(Expense.category == category)
    if currency and currency != "all":
        query = query.where(Expense.currency == currency)
    if start_date:
        query = query.where(Expense.expense_date >= start_date)
    if end_date:
        query = query.where(Expense.expense_date <= end_date)
    if limit:
        query = query.limit(limit)
    rows = db.execute(query).all()

    totals: Dict[str, int] = defaultdict(int)
    by_category: Dict[str, int] = defaultdict(int)
    for expense, _ in rows:
        totals[expense.currency] += expense.amount
        by_category[expense.category] += expense.amount

    return {
        "expenses": [expense_to_dict(e, number) for e, number in rows],
        "summary": {"totalsByCurrency": dict(totals), "byCategory": dict(by_category), "count": len(rows)},
    }
