# app/services/forecast.py
"""
Treasury forecast

Month-by-month cash projection per currency. Every request reloads its
inputs from the store and recomputes; nothing is cached.

    opening(m0)   = admin account balances + backlog
    closing(m)    = opening(m) + expected revenue(m) - expected expenses(m)
    opening(m+1)  = closing(m)

Expected revenue is the unpaid remainder of open payment schedules, bucketed
by their original due date. Expected expenses are unpaid missions plus
every occurrence of active recurring expenses. Flows dated before the
current month (the backlog) are not dropped: they roll into the current
month's opening balance so that collection problems stay visible.

Currencies never mix; each one is projected as a separate ledger.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from dateutil.relativedelta import relativedelta
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.accounting import RecurringExpense
from app.models.billing import Mission, PaymentSchedule, Quote
from app.services.ledger import admin_balances_by_currency
from app.services.schedules import OPEN_STATUSES, schedule_status

logger = logging.getLogger(__name__)

FREQUENCY_MONTHS = {
    "MONTHLY": 1,
    "QUARTERLY": 3,
    "YEARLY": 12,
}

UNPAID_MISSION_STATUSES = ("PENDING", "VALIDATED")


@dataclass
class FlowItem:
    """One expected cash movement (always a positive amount, in cents)."""
    id: str
    kind: str  # schedule | mission | recurring
    label: str
    amount: int
    currency: str
    due_date: date
    status: Optional[str] = None
    full_amount: Optional[int] = None

    @property
    def month(self) -> str:
        return month_key(self.due_date)


@dataclass
class ProjectionRow:
    month: str
    currency: str
    opening_balance: int
    expected_revenue: int
    expected_expenses: int
    net_flow: int
    closing_balance: int

    def to_dict(self) -> Dict:
        return {
            "month": self.month,
            "currency": self.currency,
            "openingBalance": self.opening_balance,
            "expectedRevenue": self.expected_revenue,
            "expectedExpenses": self.expected_expenses,
            "netFlow": self.net_flow,
            "closingBalance": self.closing_balance,
        }


@dataclass
class Projection:
    rows: List[ProjectionRow]
    backlog: Dict[str, int] = field(default_factory=dict)
    currencies: List[str] = field(default_factory=list)


# ---------------------------------------------------------------- helpers

def resolve_months(raw) -> int:
    """Parse the ``months`` query value; anything unexpected falls back to the default."""
    try:
        months = int(raw)
    except (TypeError, ValueError):
        return settings.FORECAST_DEFAULT_MONTHS
    if months not in settings.FORECAST_ALLOWED_MONTHS:
        return settings.FORECAST_DEFAULT_MONTHS
    return months


def month_key(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}"


def projection_months(today: date, months: int) -> List[str]:
    first = today.replace(day=1)
    return [month_key(first + relativedelta(months=i)) for i in range(months)]


def window_end(today: date, months: int) -> date:
    """Last day of the last projected month."""
    return today.replace(day=1) + relativedelta(months=months) - timedelta(days=1)


def advance_due_date(due: date, frequency: str, day: Optional[int] = None) -> date:
    """
    One period after ``due``, landing on ``day`` of the month (clamped to the
    month end). Passing the original day keeps Jan 31 -> Feb 28 -> Mar 31
    from sliding to the 28th.
    """
    try:
        months = FREQUENCY_MONTHS[frequency]
    except KeyError:
        raise ValueError(f"Unknown frequency {frequency}")
    return due + relativedelta(months=months, day=day or due.day)


def recurring_occurrences(
    *,
    id: str,
    name: str,
    amount: int,
    currency: str,
    frequency: str,
    next_due_date: date,
    until: date,
    due_day: Optional[int] = None,
) -> List[FlowItem]:
    """Every due date from ``next_due_date`` up to ``until`` (inclusive)."""
    items = []
    due = next_due_date
    while due <= until:
        items.append(FlowItem(
            id=f"{id}-{month_key(due)}",
            kind="recurring",
            label=name,
            amount=amount,
            currency=currency,
            due_date=due,
        ))
        due = advance_due_date(due, frequency, due_day)
    return items


def bucket(items: Iterable[FlowItem]) -> Dict[str, Dict[str, int]]:
    """month -> currency -> amount"""
    out: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))
    for item in items:
        out[item.month][item.currency] += item.amount
    return {m: dict(by_cur) for m, by_cur in out.items()}


def totals_by_currency(items: Iterable[FlowItem]) -> Dict[str, int]:
    totals: Dict[str, int] = defaultdict(int)
    for item in items:
        totals[item.currency] += item.amount
    return dict(totals)


def build_projection(
    opening_balances: Dict[str, int],
    revenue: Iterable[FlowItem],
    expenses: Iterable[FlowItem],
    today: date,
    months: int,
) -> Projection:
    month_keys = projection_months(today, months)
    first, last = month_keys[0], month_keys[-1]

    revenue = [i for i in revenue if i.month <= last]
    expenses = [i for i in expenses if i.month <= last]
    revenue_by = bucket(revenue)
    expenses_by = bucket(expenses)

    currencies = set(opening_balances)
    currencies.update(i.currency for i in revenue)
    currencies.update(i.currency for i in expenses)

    backlog: Dict[str, int] = {}
    for currency in currencies:
        past_in = sum(by_cur.get(currency, 0) for m, by_cur in revenue_by.items() if m < first)
        past_out = sum(by_cur.get(currency, 0) for m, by_cur in expenses_by.items() if m < first)
        backlog[currency] = past_in - past_out

    rows: List[ProjectionRow] = []
    for currency in currencies:
        running = opening_balances.get(currency, 0) + backlog[currency]
        for key in month_keys:
            expected_in = revenue_by.get(key, {}).get(currency, 0)
            expected_out = expenses_by.get(key, {}).get(currency, 0)
            net = expected_in - expected_out
            rows.append(ProjectionRow(
                month=key,
                currency=currency,
                opening_balance=running,
                expected_revenue=expected_in,
                expected_expenses=expected_out,
                net_flow=net,
                closing_balance=running + net,
            ))
            running += net

    rows.sort(key=lambda r: (r.month, r.currency))
    return Projection(rows=rows, backlog=backlog, currencies=sorted(currencies))


# ---------------------------------------------------------------- service

class ForecastService:
    """Loads forecast inputs from the store and renders the API payload."""

    def __init__(self, db: Session):
        self.db = db

    def expected_revenue(self, until: date, today: date) -> List[FlowItem]:
        rows = self.db.execute(
            select(PaymentSchedule, Quote)
            .join(Quote, Quote.id == PaymentSchedule.quote_id)
            .where(
                PaymentSchedule.status.in_(OPEN_STATUSES),
                PaymentSchedule.due_date <= until,
                Quote.status != "REJECTED",
            )
            .order_by(PaymentSchedule.due_date)
        ).all()

        items = []
        for schedule, quote in rows:
            remaining = schedule.remaining_amount
            if remaining <= 0:
                continue
            items.append(FlowItem(
                id=schedule.id,
                kind="schedule",
                label=quote.student.display_name if quote.student else "Unknown student",
                amount=remaining,
                currency=schedule.currency or settings.DEFAULT_CURRENCY,
                due_date=schedule.due_date,
                status=schedule_status(schedule.due_date, schedule.amount, schedule.paid_amount, today),
                full_amount=schedule.amount,
            ))
        return items

    def expected_missions(self, until: date) -> List[FlowItem]:
        missions = self.db.execute(
            select(Mission)
            .where(Mission.status.in_(UNPAID_MISSION_STATUSES), Mission.date <= until)
            .order_by(Mission.date)
        ).scalars().unique().all()
        return [
            FlowItem(
                id=m.id,
                kind="mission",
                label=f"{m.title} - {m.assignee_name}",
                amount=m.amount,
                currency=m.currency,
                due_date=m.date,
                status=m.status,
            )
            for m in missions
        ]

    def active_recurring(self) -> List[RecurringExpense]:
        return self.db.execute(
            select(RecurringExpense).where(RecurringExpense.is_active.is_(True))
        ).scalars().all()

    def build(self, months: int, today: Optional[date] = None) -> Dict:
        today = today or date.today()
        until = window_end(today, months)

        revenue = self.expected_revenue(until, today)
        missions = self.expected_missions(until)
        recurring = self.active_recurring()
        recurring_items: List[FlowItem] = []
        for r in recurring:
            recurring_items.extend(recurring_occurrences(
                id=r.id,
                name=r.name,
                amount=r.amount,
                currency=r.currency,
                frequency=r.frequency,
                next_due_date=r.next_due_date,
                until=until,
                due_day=r.due_day,
            ))
        expenses = missions + recurring_items

        opening = admin_balances_by_currency(self.db)
        projection = build_projection(opening, revenue, expenses, today, months)

        logger.info(
            "Forecast %s months: %d revenue items, %d expense items, currencies=%s",
            months, len(revenue), len(expenses), projection.currencies,
        )

        return {
            "period": {"from": today.isoformat(), "to": until.isoformat(), "months": months},
            "currentBalance": opening,
            "backlog": projection.backlog,
            "projection": [row.to_dict() for row in projection.rows],
            "revenue": {
                "byMonthCurrency": bucket(revenue),
                "details": [
                    {
                        "id": i.id,
                        "student": i.label,
                        "amount": i.full_amount,
                        "remainingAmount": i.amount,
                        "currency": i.currency,
                        "dueDate": i.due_date.isoformat(),
                        "status": i.status,
                    }
                    for i in revenue
                ],
                "totals": totals_by_currency(revenue),
                "count": len(revenue),
            },
            "expenses": {
                "byMonthCurrency": bucket(expenses),
                "details": [
                    {
                        "id": i.id,
                        "type": i.kind,
                        "name": i.label,
                        "amount": i.amount,
                        "currency": i.currency,
                        "dueDate": i.due_date.isoformat(),
                    }
                    for i in sorted(expenses, key=lambda e: e.due_date)
                ],
                "totals": totals_by_currency(expenses),
                "missionsCount": len(missions),
                "recurringCount": len(recurring),
            },
            "summary": {"currencies": projection.currencies},
        }
