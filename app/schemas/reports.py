# app/schemas/reports.py - Response shapes of the read-only reports
from typing import Dict, List, Optional

from pydantic import Field

from app.schemas.accounting import CamelModel


# ---------------------------------------------------------------- forecast

class ForecastPeriod(CamelModel):
    from_: str = Field(alias="from")
    to: str
    months: int


class ProjectionRowOut(CamelModel):
    month: str
    currency: str
    opening_balance: int
    expected_revenue: int
    expected_expenses: int
    net_flow: int
    closing_balance: int


class RevenueDetail(CamelModel):
    id: str
    student: str
    amount: Optional[int] = None
    remaining_amount: int
    currency: str
    due_date: str
    status: Optional[str] = None


class ForecastRevenue(CamelModel):
    by_month_currency: Dict[str, Dict[str, int]]
    details: List[RevenueDetail]
    totals: Dict[str, int]
    count: int


class ExpenseDetail(CamelModel):
    id: str
    type: str
    name: str
    amount: int
    currency: str
    due_date: str


class ForecastExpenses(CamelModel):
    by_month_currency: Dict[str, Dict[str, int]]
    details: List[ExpenseDetail]
    totals: Dict[str, int]
    missions_count: int
    recurring_count: int


class ForecastSummary(CamelModel):
    currencies: List[str]


class ForecastOut(CamelModel):
    period: ForecastPeriod
    current_balance: Dict[str, int]
    backlog: Dict[str, int]
    projection: List[ProjectionRowOut]
    revenue: ForecastRevenue
    expenses: ForecastExpenses
    summary: ForecastSummary


# ---------------------------------------------------------------- bfr

class BFRSchedule(CamelModel):
    id: str
    quote_id: str
    amount: int
    paid_amount: int
    remaining: int
    due_date: str
    status: str
    is_overdue: bool


class BFRStudent(CamelModel):
    student_id: str
    student_name: str
    email: str
    currency: str
    quote_ids: List[str]
    total_quote: int
    total_paid: int
    total_remaining: int
    overdue_amount: int
    upcoming_amount: int
    schedules: List[BFRSchedule]


class BFRTotals(CamelModel):
    total_quotes: int
    total_paid: int
    total_remaining: int
    overdue_amount: int
    upcoming_amount: int
    student_count: int


class OverdueStudent(CamelModel):
    student_id: str
    student_name: str
    overdue_amount: int
    currency: str


class UpcomingPayment(CamelModel):
    student_id: str
    student_name: str
    schedule_id: str
    amount: int
    currency: str
    due_date: str


class BFRSummary(CamelModel):
    total_students: int
    overdue_count: int
    upcoming_payments_count: int
    currencies: List[str]


class BFROut(CamelModel):
    students: List[BFRStudent]
    totals_by_currency: Dict[str, BFRTotals]
    overdue_students: List[OverdueStudent]
    upcoming_payments: List[UpcomingPayment]
    summary: BFRSummary


# ---------------------------------------------------------------- positions

class AdminRef(CamelModel):
    id: str
    name: str
    email: str


class PositionLine(CamelModel):
    id: str
    currency: str
    advanced: int
    received: int
    balance: int
    as_of_date: str


class AdminPositions(CamelModel):
    admin: AdminRef
    positions: List[PositionLine]
    total_balance: Dict[str, int]


class PositionTotals(CamelModel):
    advanced: int
    received: int
    balance: int


class RebalancingOut(CamelModel):
    from_admin: str
    to_admin: str
    from_admin_id: str
    to_admin_id: str
    amount: int
    currency: str


class PositionsOut(CamelModel):
    positions: List[AdminPositions]
    global_totals: Dict[str, PositionTotals]
    rebalancing_suggestions: List[RebalancingOut]
