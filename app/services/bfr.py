# app/services/bfr.py
"""
BFR (working-capital requirement): what students still owe us.

Schedules are grouped per (student, currency). No conversion is ever done
between currencies; each currency total is a separate ledger.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.billing import PaymentSchedule, Quote
from app.services.schedules import is_overdue, remaining_amount, schedule_status


@dataclass
class ScheduleLine:
    id: str
    student_id: str
    student_name: str
    email: str
    quote_id: str
    amount: int
    paid_amount: int
    currency: str
    due_date: date


@dataclass
class StudentBFR:
    student_id: str
    student_name: str
    email: str
    currency: str
    total_quote: int = 0
    total_paid: int = 0
    total_remaining: int = 0
    overdue_amount: int = 0
    upcoming_amount: int = 0
    quote_ids: List[str] = field(default_factory=list)
    schedules: List[Dict] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "studentId": self.student_id,
            "studentName": self.student_name,
            "email": self.email,
            "currency": self.currency,
            "quoteIds": self.quote_ids,
            "totalQuote": self.total_quote,
            "totalPaid": self.total_paid,
            "totalRemaining": self.total_remaining,
            "overdueAmount": self.overdue_amount,
            "upcomingAmount": self.upcoming_amount,
            "schedules": self.schedules,
        }


def compute_bfr(lines: Iterable[ScheduleLine], today: date, upcoming_days: Optional[int] = None) -> Dict:
    upcoming_days = settings.UPCOMING_WINDOW_DAYS if upcoming_days is None else upcoming_days
    horizon = today + timedelta(days=upcoming_days)

    students: Dict[tuple, StudentBFR] = {}
    upcoming: List[Dict] = []

    for line in lines:
        key = (line.student_id, line.currency)
        entry = students.get(key)
        if entry is None:
            entry = students[key] = StudentBFR(
                student_id=line.student_id,
                student_name=line.student_name,
                email=line.email,
                currency=line.currency,
            )
        if line.quote_id not in entry.quote_ids:
            entry.quote_ids.append(line.quote_id)

        remaining = remaining_amount(line.amount, line.paid_amount)
        overdue = is_overdue(line.due_date, line.amount, line.paid_amount, today)

        entry.total_quote += line.amount
        entry.total_paid += line.paid_amount
        entry.total_remaining += remaining
        if overdue:
            entry.overdue_amount += remaining
        elif remaining > 0:
            entry.upcoming_amount += remaining

        entry.schedules.append({
            "id": line.id,
            "quoteId": line.quote_id,
            "amount": line.amount,
            "paidAmount": line.paid_amount,
            "remaining": remaining,
            "dueDate": line.due_date.isoformat(),
            "status": schedule_status(line.due_date, line.amount, line.paid_amount, today),
            "isOverdue": overdue,
        })

        if remaining > 0 and today <= line.due_date <= horizon:
            upcoming.append({
                "studentId": line.student_id,
                "studentName": line.student_name,
                "scheduleId": line.id,
                "amount": remaining,
                "currency": line.currency,
                "dueDate": line.due_date.isoformat(),
            })

    rows = sorted(students.values(), key=lambda s: (-s.total_remaining, s.student_name))
    for row in rows:
        row.schedules.sort(key=lambda s: s["dueDate"])

    totals: Dict[str, Dict[str, int]] = defaultdict(lambda: {
        "totalQuotes": 0,
        "totalPaid": 0,
        "totalRemaining": 0,
        "overdueAmount": 0,
        "upcomingAmount": 0,
        "studentCount": 0,
    })
    for row in rows:
        t = totals[row.currency]
        t["totalQuotes"] += row.total_quote
        t["totalPaid"] += row.total_paid
        t["totalRemaining"] += row.total_remaining
        t["overdueAmount"] += row.overdue_amount
        t["upcomingAmount"] += row.upcoming_amount
        t["studentCount"] += 1

    overdue_students = [
        {
            "studentId": r.student_id,
            "studentName": r.student_name,
            "overdueAmount": r.overdue_amount,
            "currency": r.currency,
        }
        for r in rows
        if r.overdue_amount > 0
    ]
    upcoming.sort(key=lambda p: p["dueDate"])

    return {
        "students": [r.to_dict() for r in rows],
        "totalsByCurrency": dict(totals),
        "overdueStudents": overdue_students,
        "upcomingPayments": upcoming,
        "summary": {
            "totalStudents": len(rows),
            "overdueCount": len(overdue_students),
            "upcomingPaymentsCount": len(upcoming),
            "currencies": sorted(totals),
        },
    }


def load_schedule_lines(db: Session) -> List[ScheduleLine]:
    rows = db.execute(
        select(PaymentSchedule, Quote)
        .join(Quote, Quote.id == PaymentSchedule.quote_id)
        .where(Quote.status != "REJECTED")
        .order_by(PaymentSchedule.due_date)
    ).all()

    lines = []
    for schedule, quote in rows:
        user = quote.student.user if quote.student else None
        lines.append(ScheduleLine(
            id=schedule.id,
            student_id=quote.student_id,
            student_name=user.display_name if user else "Unknown student",
            email=user.email if user else "",
            quote_id=quote.id,
            amount=schedule.amount,
            paid_amount=schedule.paid_amount or 0,
            currency=schedule.currency or quote.currency or settings.DEFAULT_CURRENCY,
            due_date=schedule.due_date,
        ))
    return lines


def bfr_report(db: Session, today: Optional[date] = None) -> Dict:
    return compute_bfr(load_schedule_lines(db), today or date.today())
