# app/services/ledger.py
"""
Bank account ledger.

Balances are never stored: an account's balance is the sum of the
transactions flowing into it minus the ones flowing out of it. Every money
movement in the system goes through ``create_transaction``.
"""

import logging
from collections import defaultdict
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import AccountingError, NotFoundError
from app.models.accounting import BankAccount, Transaction
from app.models.user import User

logger = logging.getLogger(__name__)

TRANSACTION_TYPES = (
    "STUDENT_PAYMENT",
    "MENTOR_PAYMENT",
    "PROFESSOR_PAYMENT",
    "EXPENSE",
    "DISTRIBUTION",
    "TRANSFER",
    "FX_EXCHANGE",
)


def ensure_currency(currency: str) -> str:
    if currency not in settings.SUPPORTED_CURRENCIES:
        raise AccountingError(
            f"Unsupported currency {currency}; expected one of {', '.join(settings.SUPPORTED_CURRENCIES)}"
        )
    return currency


def next_transaction_number(db: Session, year: Optional[int] = None) -> str:
    """TXN-YYYY-NNNNN, sequential within the year."""
    year = year or date.today().year
    prefix = f"TXN-{year}-"
    last = db.execute(
        select(Transaction.transaction_number)
        .where(Transaction.transaction_number.like(f"{prefix}%"))
        .order_by(Transaction.transaction_number.desc())
        .limit(1)
    ).scalar_one_or_none()

    next_number = int(last[len(prefix):]) + 1 if last else 1
    return f"{prefix}{next_number:05d}"


def get_account(db: Session, account_id: str) -> BankAccount:
    account = db.get(BankAccount, account_id)
    if not account:
        raise NotFoundError(f"Bank account {account_id} not found")
    return account


def ensure_account_currency(db: Session, account_id: str, currency: str) -> BankAccount:
    account = get_account(db, account_id)
    if account.currency != currency:
        raise AccountingError(f"Account {account.account_name} is held in {account.currency}, not {currency}")
    return account


def create_transaction(
    db: Session,
    *,
    type: str,
    amount: int,
    currency: str,
    on: Optional[date] = None,
    source_account_id: Optional[str] = None,
    destination_account_id: Optional[str] = None,
    description: Optional[str] = None,
    notes: Optional[str] = None,
    **links,
) -> Transaction:
    if type not in TRANSACTION_TYPES:
        raise AccountingError(f"Unknown transaction type {type}")
    if amount <= 0:
        raise AccountingError("Transaction amount must be positive")
    if not source_account_id and not destination_account_id:
        raise AccountingError("A transaction needs a source or a destination account")

    # An account only moves money in its own currency
    for account_id in (source_account_id, destination_account_id):
        if account_id:
            ensure_account_currency(db, account_id, currency)

    on = on or date.today()
    txn = Transaction(
        transaction_number=next_transaction_number(db, on.year),
        date=on,
        type=type,
        amount=amount,
        currency=currency,
        source_account_id=source_account_id,
        destination_account_id=destination_account_id,
        description=description,
        notes=notes,
        **links,
    )
    db.add(txn)
    db.flush()
    return txn


def account_balances(db: Session, account_ids: Optional[List[str]] = None) -> Dict[str, int]:
    """account_id -> sum(in) - sum(out), in cents."""
    incoming = select(Transaction.destination_account_id, func.coalesce(func.sum(Transaction.amount), 0)).where(
        Transaction.destination_account_id.isnot(None)
    ).group_by(Transaction.destination_account_id)
    outgoing = select(Transaction.source_account_id, func.coalesce(func.sum(Transaction.amount), 0)).where(
        Transaction.source_account_id.isnot(None)
    ).group_by(Transaction.source_account_id)

    if account_ids is not None:
        incoming = incoming.where(Transaction.destination_account_id.in_(account_ids))
        outgoing = outgoing.where(Transaction.source_account_id.in_(account_ids))

    balances: Dict[str, int] = defaultdict(int)
    for account_id, total in db.execute(incoming).all():
        balances[account_id] += int(total)
    for account_id, total in db.execute(outgoing).all():
        balances[account_id] -= int(total)
    return dict(balances)


def admin_balances_by_currency(db: Session) -> Dict[str, int]:
    """Opening cash per currency: active, admin-owned accounts only."""
    accounts = db.execute(
        select(BankAccount).where(BankAccount.is_active.is_(True), BankAccount.is_admin_owned.is_(True))
    ).scalars().all()
    balances = account_balances(db, [a.id for a in accounts]) if accounts else {}

    by_currency: Dict[str, int] = defaultdict(int)
    for account in accounts:
        by_currency[account.currency] += balances.get(account.id, 0)
    return dict(by_currency)


def list_accounts(db: Session, currency: Optional[str] = None, admin_only: bool = False) -> Dict:
    query = select(BankAccount).where(BankAccount.is_active.is_(True))
    if currency:
        query = query.where(BankAccount.currency == currency)
    if admin_only:
        query = query.where(BankAccount.is_admin_owned.is_(True))
    accounts = db.execute(query.order_by(BankAccount.currency, BankAccount.account_name)).scalars().all()

    balances = account_balances(db, [a.id for a in accounts]) if accounts else {}
    rows = [
        {
            "id": a.id,
            "userId": a.user_id,
            "accountName": a.account_name,
            "bankName": a.bank_name,
            "currency": a.currency,
            "isAdminOwned": a.is_admin_owned,
            "balance": balances.get(a.id, 0),
        }
        for a in accounts
    ]

    totals: Dict[str, int] = defaultdict(int)
    for row in rows:
        totals[row["currency"]] += row["balance"]

    return {"accounts": rows, "totals": dict(totals)}


def create_account(
    db: Session,
    *,
    user_id: str,
    account_name: str,
    currency: str,
    bank_name: Optional[str] = None,
    is_admin_owned: Optional[bool] = None,
) -> BankAccount:
    ensure_currency(currency)
    owner = db.get(User, user_id)
    if not owner:
        raise NotFoundError(f"User {user_id} not found")

    account = BankAccount(
        user_id=user_id,
        account_name=account_name,
        bank_name=bank_name,
        currency=currency,
        is_admin_owned=owner.is_admin if is_admin_owned is None else is_admin_owned,
    )
    db.add(account)
    db.flush()
    logger.info("Bank account %s created (%s, admin=%s)", account.id, currency, account.is_admin_owned)
    return account


def transfer(
    db: Session,
    *,
    from_account_id: str,
    to_account_id: str,
    amount: int,
    on: Optional[date] = None,
    description: Optional[str] = None,
    notes: Optional[str] = None,
) -> Transaction:
    """Same-currency move between two accounts."""
    if from_account_id == to_account_id:
        raise AccountingError("Source and destination accounts must differ")
    source = get_account(db, from_account_id)
    destination = get_account(db, to_account_id)
    if source.currency != destination.currency:
        raise AccountingError("Transfers require both accounts in the same currency; use an FX exchange")

    return create_transaction(
        db,
        type="TRANSFER",
        amount=amount,
        currency=source.currency,
        on=on,
        source_account_id=source.id,
        destination_account_id=destination.id,
        description=description or f"Transfer {source.account_name} -> {destination.account_name}",
        notes=notes,
    )


def fx_exchange(
    db: Session,
    *,
    from_account_id: str,
    from_amount: int,
    to_account_id: str,
    to_amount: int,
    exchange_rate: float,
    on: Optional[date] = None,
    notes: Optional[str] = None,
) -> tuple[Transaction, Transaction]:
    """
    Book a currency exchange as two linked FX_EXCHANGE rows: one out of the
    source account in its currency, one into the destination in its own.
    Amounts are given by the caller; nothing is converted here.
    """
    source = get_account(db, from_account_id)
    destination = get_account(db, to_account_id)
    if source.currency == destination.currency:
        raise AccountingError("FX exchange requires two different currencies")
    if exchange_rate <= 0:
        raise AccountingError("Exchange rate must be positive")

    description = f"FX {source.currency} -> {destination.currency}"
    out_txn = create_transaction(
        db,
        type="FX_EXCHANGE",
        amount=from_amount,
        currency=source.currency,
        on=on,
        source_account_id=source.id,
        description=description,
        notes=notes,
        exchange_rate=exchange_rate,
    )
    in_txn = create_transaction(
        db,
        type="FX_EXCHANGE",
        amount=to_amount,
        currency=destination.currency,
        on=on,
        destination_account_id=destination.id,
        description=description,
        notes=notes,
        exchange_rate=exchange_rate,
        linked_transaction_id=out_txn.id,
    )
    out_txn.linked_transaction_id = in_txn.id
    return out_txn, in_txn


def transaction_to_dict(txn: Transaction) -> Dict:
    return {
        "id": txn.id,
        "transactionNumber": txn.transaction_number,
        "date": txn.date.isoformat(),
        "type": txn.type,
        "amount": txn.amount,
        "currency": txn.currency,
        "sourceAccountId": txn.source_account_id,
        "destinationAccountId": txn.destination_account_id,
        "linkedTransactionId": txn.linked_transaction_id,
        "exchangeRate": txn.exchange_rate,
        "description": txn.description,
        "notes": txn.notes,
    }


def list_transactions(
    db: Session,
    *,
    type: Optional[str] = None,
    currency: Optional[str] = None,
    account_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: int = 100,
    offset: int = 0,
) -> Dict:
    """The journal: newest first, paginated, with in/out totals per currency for the page."""
    query = select(Transaction)
    if type and type != "all":
        query = query.where(Transaction.type == type)
    if currency and currency != "all":
        query = query.where(Transaction.currency == currency)
    if account_id:
        query = query.where(or_(
            Transaction.source_account_id == account_id,
            Transaction.destination_account_id == account_id,
        ))
    if start_date:
        query = query.where(Transaction.date >= start_date)
    if end_date:
        query = query.where(Transaction.date <= end_date)

    total = db.execute(select(func.count()).select_from(query.subquery())).scalar_one()
    rows = db.execute(
        query.order_by(Transaction.date.desc(), Transaction.transaction_number.desc()).limit(limit).offset(offset)
    ).scalars().all()

    totals: Dict[str, Dict[str, int]] = {}
    by_type: Dict[str, int] = defaultdict(int)
    for txn in rows:
        t = totals.setdefault(txn.currency, {"incoming": 0, "outgoing": 0})
        if txn.destination_account_id:
            t["incoming"] += txn.amount
        if txn.source_account_id:
            t["outgoing"] += txn.amount
        by_type[txn.type] += 1

    return {
        "transactions": [transaction_to_dict(t) for t in rows],
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "hasMore": offset + len(rows) < total,
        },
        "summary": {"totalsByCurrency": totals, "byType": dict(by_type), "count": len(rows)},
    }
