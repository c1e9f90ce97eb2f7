# app/services/distributions.py
"""
Profit distributions between founders.

A distribution splits ``total - investment`` by percentage. Each payout is
its exact share rounded down to the cent; the few cents left over go to the
largest fractional remainders, so the payouts always add up to the
distributed amount and none of them is negative.
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_DOWN
from typing import Dict, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import DistributionError
from app.models.founders import Distribution, FounderShare
from app.models.user import User, UserRole
from app.services.ledger import create_transaction, ensure_currency
from app.services.positions import add_received
from app.utils.money import format_amount

logger = logging.getLogger(__name__)

PERCENTAGE_TOLERANCE = Decimal("0.01")


@dataclass
class FounderSplit:
    founder_id: str
    percentage: float


@dataclass
class Payout:
    founder_id: str
    percentage: float
    amount: int


def validate_split(total_amount: int, investment_amount: int, founders: Sequence[FounderSplit]) -> int:
    """Returns the distributed amount, or raises DistributionError."""
    if not founders:
        raise DistributionError("At least one founder is required")
    ids = [f.founder_id for f in founders]
    if len(set(ids)) != len(ids):
        raise DistributionError("Each founder may only appear once")
    if any(f.percentage < 0 for f in founders):
        raise DistributionError("Percentages cannot be negative")

    # Decimal keeps 33.33 + 33.33 + 33.34 exact
    total_percentage = sum((Decimal(str(f.percentage)) for f in founders), Decimal("0"))
    if abs(total_percentage - 100) > PERCENTAGE_TOLERANCE:
        raise DistributionError(f"Percentages must add up to 100% (got {total_percentage}%)")

    if total_amount <= 0:
        raise DistributionError("Total amount must be positive")
    if investment_amount < 0:
        raise DistributionError("Investment amount cannot be negative")
    distributed = total_amount - investment_amount
    if distributed < 0:
        raise DistributionError("Investment amount cannot exceed the total amount")
    return distributed


def split_payouts(distributed_amount: int, founders: Sequence[FounderSplit]) -> List[Payout]:
    """
    Largest-remainder split: every share is rounded down, then the cents left
    over go one at a time to the largest remainders (first listed on a tie).
    Payouts are never negative and differ from the exact share by under a cent.
    """
    if not founders:
        return []
    # Scale by the actual sum so 100.01% never hands out more than there is
    total_percentage = sum((Decimal(str(f.percentage)) for f in founders), Decimal("0"))
    if total_percentage <= 0:
        raise DistributionError("Percentages must add up to 100%")

    payouts = []
    remainders = []
    for f in founders:
        exact = Decimal(distributed_amount) * Decimal(str(f.percentage)) / total_percentage
        floor = exact.to_integral_value(rounding=ROUND_DOWN)
        payouts.append(Payout(founder_id=f.founder_id, percentage=f.percentage, amount=int(floor)))
        remainders.append(exact - floor)

    residue = distributed_amount - sum(p.amount for p in payouts)
    order = sorted(range(len(payouts)), key=lambda i: (-remainders[i], i))
    for i in order[:residue]:
        payouts[i].amount += 1
    return payouts


def create_distribution(
    db: Session,
    *,
    total_amount: int,
    currency: str,
    distribution_date: date,
    founders: Sequence[FounderSplit],
    investment_amount: int = 0,
    notes: Optional[str] = None,
    source_account_id: Optional[str] = None,
    update_positions: bool = True,
) -> Distribution:
    distributed = validate_split(total_amount, investment_amount, founders)
    ensure_currency(currency)

    founder_ids = [f.founder_id for f in founders]
    valid = db.execute(
        select(User.id).where(User.id.in_(founder_ids), User.role == UserRole.ADMIN.value)
    ).scalars().all()
    if len(valid) != len(founder_ids):
        raise DistributionError("One or more founders are not admins")

    payouts = split_payouts(distributed, founders)

    distribution = Distribution(
        total_amount=total_amount,
        currency=currency,
        investment_amount=investment_amount,
        distributed_amount=distributed,
        distribution_date=distribution_date,
        notes=notes,
        shares=[
            FounderShare(founder_id=p.founder_id, percentage=p.percentage, amount=p.amount)
            for p in payouts
        ],
    )
    db.add(distribution)
    db.flush()

    if source_account_id and distributed > 0:
        create_transaction(
            db,
            type="DISTRIBUTION",
            amount=distributed,
            currency=currency,
            on=distribution_date,
            source_account_id=source_account_id,
            distribution_id=distribution.id,
            description="Distribution to founders",
            notes=notes,
        )

    if update_positions:
        for p in payouts:
            if p.amount:
                add_received(db, p.founder_id, currency, p.amount)

    db.flush()
    logger.info(
        "Distribution %s created: %s distributed to %d founders",
        distribution.id, format_amount(distributed, currency), len(payouts),
    )
    return distribution


def list_distributions(db: Session, currency: Optional[str] = None, limit: int = 50) -> Dict:
    query = select(Distribution).order_by(Distribution.distribution_date.desc()).limit(limit)
    if currency and currency != "all":
        query = query.where(Distribution.currency == currency)
    distributions = db.execute(query).scalars().all()

    totals: Dict[str, Dict[str, int]] = {}
    for d in distributions:
        t = totals.setdefault(d.currency, {"distributed": 0, "invested": 0})
        t["distributed"] += d.distributed_amount
        t["invested"] += d.investment_amount

    return {
        "distributions": [distribution_to_dict(d) for d in distributions],
        "summary": {"count": len(distributions), "totalsByCurrency": totals},
    }


def distribution_to_dict(d: Distribution) -> Dict:
    return {
        "id": d.id,
        "totalAmount": d.total_amount,
        "currency": d.currency,
        "investmentAmount": d.investment_amount,
        "distributedAmount": d.distributed_amount,
        "distributionDate": d.distribution_date.isoformat(),
        "notes": d.notes,
        "founderDistributions": [
            {
                "founderId": s.founder_id,
                "founder": s.founder.display_name if s.founder else s.founder_id,
                "percentage": s.percentage,
                "amount": s.amount,
            }
            for s in d.shares
        ],
    }
