# app/api/routers/expenses.py - Recurring and one-off expenses, mentor/professor missions
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.errors import http_error
from app.core.db import get_db
from app.schemas.accounting import (
    ExpenseCreate, MissionCancel, MissionCreate, MissionPay, MissionValidate,
    RecurringExpenseCreate, RecurringExpenseUpdate, RecurringPaymentCreate,
)
from app.services.expenses import create_expense, expense_to_dict, list_expenses
from app.services.missions import (
    apply_mission_action, create_mission, list_missions, mission_to_dict, pay_mission
)
from app.services.recurring import (
    create_recurring_expense, deactivate_recurring_expense, get_recurring_expense,
    list_recurring_expenses, pay_recurring_expense, recurring_to_dict, update_recurring_expense,
)

router = APIRouter(prefix="/admin/accounting", tags=["Accounting - Expenses"])


# ---------------------------------------------------------------- recurring

@router.get("/recurring-expenses")
def get_recurring_expenses(
    category: str | None = Query(None),
    is_active: str = Query("true", alias="isActive", pattern="^(true|false|all)$"),
    db: Session = Depends(get_db),
):
    active = None if is_active == "all" else is_active == "true"
    return list_recurring_expenses(db, category=category, is_active=active)


@router.post("/recurring-expenses", status_code=201)
def post_recurring_expense(payload: RecurringExpenseCreate, db: Session = Depends(get_db)):
    try:
        recurring = create_recurring_expense(
            db,
            name=payload.name,
            category=payload.category,
            amount=payload.amount,
            frequency=payload.frequency,
            next_due_date=payload.next_due_date,
            currency=payload.currency,
            supplier=payload.supplier,
            paying_account_id=payload.paying_account_id,
            notes=payload.notes,
        )
        db.commit()
    except ValueError as e:
        raise http_error(e)
    return {"recurringExpense": recurring_to_dict(recurring), "message": "Recurring expense created"}


@router.get("/recurring-expenses/{recurring_id}")
def get_recurring_expense_detail(recurring_id: str, db: Session = Depends(get_db)):
    try:
        recurring = get_recurring_expense(db, recurring_id)
    except ValueError as e:
        raise http_error(e)
    return {"recurringExpense": recurring_to_dict(recurring)}


@router.patch("/recurring-expenses/{recurring_id}")
def patch_recurring_expense(recurring_id: str, payload: RecurringExpenseUpdate, db: Session = Depends(get_db)):
    try:
        recurring = update_recurring_expense(db, recurring_id, payload.model_dump(exclude_unset=True))
        db.commit()
    except ValueError as e:
        raise http_error(e)
    return {"recurringExpense": recurring_to_dict(recurring), "message": "Recurring expense updated"}


@router.delete("/recurring-expenses/{recurring_id}")
def delete_recurring_expense(recurring_id: str, db: Session = Depends(get_db)):
    """Soft delete: the expense is deactivated and drops out of the forecast."""
    try:
        recurring = deactivate_recurring_expense(db, recurring_id)
        db.commit()
    except ValueError as e:
        raise http_error(e)
    return {"recurringExpense": recurring_to_dict(recurring), "message": "Recurring expense deactivated"}


@router.post("/recurring-expenses/{recurring_id}/pay")
def pay_recurring(recurring_id: str, payload: RecurringPaymentCreate, db: Session = Depends(get_db)):
    try:
        payment = pay_recurring_expense(
            db,
            recurring_id,
            payment_date=payload.payment_date,
            paying_account_id=payload.paying_account_id,
            notes=payload.notes,
        )
        db.commit()
    except ValueError as e:
        raise http_error(e)

    return {
        "expense": expense_to_dict(payment.expense, payment.transaction.transaction_number),
        "transactionNumber": payment.transaction.transaction_number,
        "nextDueDate": payment.next_due_date.isoformat(),
        "message": "Recurring expense paid",
    }


# ---------------------------------------------------------------- one-off

@router.get("/expenses")
def get_expenses(
    category: str | None = Query(None),
    currency: str | None = Query(None),
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    limit: int | None = Query(None, ge=1, le=500),
    db: Session = Depends(get_db),
):
    return list_expenses(
        db, category=category, currency=currency, start_date=start_date, end_date=end_date, limit=limit
    )


@router.post("/expenses", status_code=201)
def post_expense(payload: ExpenseCreate, db: Session = Depends(get_db)):
    try:
        recorded = create_expense(
            db,
            category=payload.category,
            amount=payload.amount,
            expense_date=payload.expense_date,
            currency=payload.currency,
            supplier=payload.supplier,
            description=payload.description,
            paying_account_id=payload.paying_account_id,
            create_transaction_entry=payload.create_transaction_entry,
        )
        db.commit()
    except ValueError as e:
        raise http_error(e)

    number = recorded.transaction.transaction_number if recorded.transaction else None
    return {"expense": expense_to_dict(recorded.expense, number), "message": "Expense recorded"}


# ---------------------------------------------------------------- missions

@router.get("/missions")
def get_missions(
    status: str | None = Query(None),
    mentor_id: str | None = Query(None, alias="mentorId"),
    professor_id: str | None = Query(None, alias="professorId"),
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
):
    return list_missions(
        db,
        status=status,
        mentor_id=mentor_id,
        professor_id=professor_id,
        start_date=start_date,
        end_date=end_date,
    )


@router.post("/missions", status_code=201)
def post_mission(payload: MissionCreate, db: Session = Depends(get_db)):
    try:
        mission = create_mission(
            db,
            title=payload.title,
            amount=payload.amount,
            mission_date=payload.date,
            currency=payload.currency,
            mentor_id=payload.mentor_id,
            professor_id=payload.professor_id,
            notes=payload.notes,
            auto_validate=payload.auto_validate,
            admin_id=payload.admin_id,
        )
        db.commit()
    except ValueError as e:
        raise http_error(e)
    return {"mission": mission_to_dict(mission), "message": "Mission created"}


@router.post("/missions/{mission_id}/validate")
def validate_mission(mission_id: str, payload: MissionValidate, db: Session = Depends(get_db)):
    try:
        mission = apply_mission_action(db, mission_id, payload.action, admin_id=payload.admin_id, notes=payload.notes)
        db.commit()
    except ValueError as e:
        raise http_error(e)
    verb = "approved" if payload.action == "approve" else "rejected"
    return {"mission": mission_to_dict(mission), "message": f"Mission {verb}"}


@router.post("/missions/{mission_id}/pay")
def pay_mission_endpoint(mission_id: str, payload: MissionPay, db: Session = Depends(get_db)):
    try:
        mission = pay_mission(
            db,
            mission_id,
            source_account_id=payload.source_account_id,
            paid_on=payload.paid_on,
            notes=payload.notes,
        )
        db.commit()
    except ValueError as e:
        raise http_error(e)
    return {"mission": mission_to_dict(mission), "message": "Mission paid"}


@router.post("/missions/{mission_id}/cancel")
def cancel_mission(mission_id: str, payload: MissionCancel | None = None, db: Session = Depends(get_db)):
    try:
        mission = apply_mission_action(db, mission_id, "cancel", notes=payload.notes if payload else None)
        db.commit()
    except ValueError as e:
        raise http_error(e)
    return {"mission": mission_to_dict(mission), "message": "Mission cancelled"}
