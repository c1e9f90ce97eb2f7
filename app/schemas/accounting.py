# app/schemas/accounting.py - Request bodies (camelCase on the wire, cents for amounts)
import datetime as dt
from datetime import date
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BankAccountCreate(CamelModel):
    user_id: str
    account_name: str
    currency: str
    bank_name: str | None = None
    is_admin_owned: bool | None = None  # defaults to "owner is an admin"


class TransferCreate(CamelModel):
    from_account_id: str
    to_account_id: str
    amount: int = Field(..., gt=0)
    date: dt.date | None = None
    description: str | None = None
    notes: str | None = None


class FxExchangeCreate(CamelModel):
    from_account_id: str
    from_amount: int = Field(..., gt=0)
    to_account_id: str
    to_amount: int = Field(..., gt=0)
    exchange_rate: float = Field(..., gt=0)
    date: dt.date | None = None
    notes: str | None = None


class SchedulePaymentCreate(CamelModel):
    amount: int
    destination_account_id: str | None = None
    paid_on: date | None = None
    notes: str | None = None


class RecurringPaymentCreate(CamelModel):
    payment_date: date | None = None
    paying_account_id: str | None = None
    notes: str | None = None


class MissionValidate(CamelModel):
    action: Literal["approve", "reject"]
    admin_id: str | None = None
    notes: str | None = None


class MissionPay(CamelModel):
    source_account_id: str
    paid_on: date | None = None
    notes: str | None = None


class MissionCancel(CamelModel):
    notes: str | None = None


class InstallmentIn(CamelModel):
    amount: int
    due_date: date


class QuoteCreate(CamelModel):
    student_id: str
    currency: str
    installments: list[InstallmentIn]


class PositionUpsert(CamelModel):
    admin_id: str | None = None
    currency: str | None = None
    advanced: int | None = Field(None, ge=0)
    received: int | None = Field(None, ge=0)
    notes: str | None = None


class FounderSplitIn(CamelModel):
    founder_id: str
    percentage: float


class DistributionCreate(CamelModel):
    total_amount: int
    currency: str = "EUR"
    investment_amount: int = 0
    distribution_date: date
    founders: list[FounderSplitIn]
    notes: str | None = None
    source_account_id: str | None = None
    update_positions: bool = True


class RecurringExpenseCreate(CamelModel):
    name: str
    category: str
    amount: int
    frequency: str
    next_due_date: date
    currency: str = "EUR"
    supplier: str | None = None
    paying_account_id: str | None = None
    notes: str | None = None


class RecurringExpenseUpdate(CamelModel):
    name: str | None = None
    supplier: str | None = None
    category: str | None = None
    amount: int | None = None
    frequency: str | None = None
    next_due_date: date | None = None
    paying_account_id: str | None = None
    is_active: bool | None = None
    notes: str | None = None


class ExpenseCreate(CamelModel):
    category: str
    amount: int
    expense_date: date
    currency: str = "EUR"
    supplier: str | None = None
    description: str | None = None
    paying_account_id: str | None = None
    create_transaction_entry: bool = True


class MissionCreate(CamelModel):
    title: str
    amount: int
    date: dt.date
    currency: str = "EUR"
    mentor_id: str | None = None
    professor_id: str | None = None
    notes: str | None = None
    auto_validate: bool = False
    admin_id: str | None = None
