# app/services/positions.py
import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import AccountingError, NotFoundError
from app.models.founders import AdminPosition
from app.models.user import User
from app.services.ledger import ensure_currency

logger = logging.getLogger(__name__)


@dataclass
class RebalancingSuggestion:
    from_admin: str
    to_admin: str
    amount: int
    currency: str

    def to_dict(self) -> Dict:
        return {
            "fromAdmin": self.from_admin,
            "toAdmin": self.to_admin,
            "amount": self.amount,
            "currency": self.currency,
        }


def suggest_rebalancing(balances: Dict[str, Dict[str, int]]) -> List[RebalancingSuggestion]:
    """
    Greedy settle-up, one currency at a time.

    ``balances`` maps currency -> admin -> (advanced - received). Positive
    admins are owed money back, negative ones owe it. The largest debtor
    pays the largest creditor min(|debt|, credit) until one side runs out.
    Advisory only: nothing is written.
    """
    suggestions: List[RebalancingSuggestion] = []

    for currency in sorted(balances):
        creditors = {a: b for a, b in balances[currency].items() if b > 0}
        debtors = {a: -b for a, b in balances[currency].items() if b < 0}

        while creditors and debtors:
            creditor = min(creditors, key=lambda a: (-creditors[a], a))
            debtor = min(debtors, key=lambda a: (-debtors[a], a))
            amount = min(creditors[creditor], debtors[debtor])

            suggestions.append(RebalancingSuggestion(
                from_admin=debtor,
                to_admin=creditor,
                amount=amount,
                currency=currency,
            ))

            creditors[creditor] -= amount
            debtors[debtor] -= amount
            if creditors[creditor] == 0:
                del creditors[creditor]
            if debtors[debtor] == 0:
                del debtors[debtor]

    return suggestions


def positions_overview(db: Session) -> Dict:
    positions = db.execute(
        select(AdminPosition).order_by(AdminPosition.admin_id, AdminPosition.currency)
    ).scalars().all()

    by_admin: Dict[str, Dict] = {}
    balances: Dict[str, Dict[str, int]] = defaultdict(dict)
    global_totals: Dict[str, Dict[str, int]] = defaultdict(lambda: {"advanced": 0, "received": 0, "balance": 0})

    for pos in positions:
        entry = by_admin.setdefault(pos.admin_id, {
            "admin": {
                "id": pos.admin_id,
                "name": pos.admin.display_name,
                "email": pos.admin.email,
            },
            "positions": [],
            "totalBalance": {},
        })
        entry["positions"].append({
            "id": pos.id,
            "currency": pos.currency,
            "advanced": pos.advanced,
            "received": pos.received,
            "balance": pos.balance,
            "asOfDate": pos.as_of_date.isoformat(),
        })
        entry["totalBalance"][pos.currency] = pos.balance
        balances[pos.currency][pos.admin_id] = pos.balance

        totals = global_totals[pos.currency]
        totals["advanced"] += pos.advanced
        totals["received"] += pos.received
        totals["balance"] += pos.balance

    names = {admin_id: data["admin"]["name"] for admin_id, data in by_admin.items()}
    suggestions = []
    for s in suggest_rebalancing(balances):
        row = s.to_dict()
        row["fromAdminId"], row["toAdminId"] = s.from_admin, s.to_admin
        row["fromAdmin"], row["toAdmin"] = names[s.from_admin], names[s.to_admin]
        suggestions.append(row)

    return {
        "positions": list(by_admin.values()),
        "globalTotals": dict(global_totals),
        "rebalancingSuggestions": suggestions,
    }


def get_admin(db: Session, admin_id: str) -> User:
    admin = db.get(User, admin_id)
    if not admin or not admin.is_admin:
        raise NotFoundError(f"Admin {admin_id} not found")
    return admin


def upsert_position(
    db: Session,
    *,
    admin_id: str,
    currency: str,
    advanced: Optional[int] = None,
    received: Optional[int] = None,
) -> AdminPosition:
    if not admin_id or not currency:
        raise AccountingError("Admin and currency are required")
    ensure_currency(currency)
    get_admin(db, admin_id)

    position = db.execute(
        select(AdminPosition).where(AdminPosition.admin_id == admin_id, AdminPosition.currency == currency)
    ).scalar_one_or_none()

    if position is None:
        position = AdminPosition(admin_id=admin_id, currency=currency, advanced=advanced or 0, received=received or 0)
        db.add(position)
    else:
        if advanced is not None:
            position.advanced = advanced
        if received is not None:
            position.received = received
        position.as_of_date = datetime.utcnow()

    db.flush()
    logger.info("Position %s/%s set: advanced=%s received=%s", admin_id, currency, position.advanced, position.received)
    return position


def add_received(db: Session, admin_id: str, currency: str, amount: int) -> AdminPosition:
    """Founder took ``amount`` out of the business (e.g. a distribution payout)."""
    position = db.execute(
        select(AdminPosition).where(AdminPosition.admin_id == admin_id, AdminPosition.currency == currency)
    ).scalar_one_or_none()
    if position is None:
        position = AdminPosition(admin_id=admin_id, currency=currency, advanced=0, received=0)
        db.add(position)
    position.received = (position.received or 0) + amount
    position.as_of_date = datetime.utcnow()
    return position
