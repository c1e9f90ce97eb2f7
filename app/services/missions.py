# app/services/missions.py
import logging
from collections import Counter, defaultdict
from datetime import date, datetime
from typing import Dict, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import AccountingError, InvalidTransition, NotFoundError
from app.models.billing import Mission
from app.models.user import User, UserRole
from app.services.ledger import create_transaction, ensure_currency
from app.utils.money import format_amount

logger = logging.getLogger(__name__)

# action -> (allowed current statuses, new status)
MISSION_TRANSITIONS: Dict[str, Tuple[Tuple[str, ...], str]] = {
    "approve": (("PENDING",), "VALIDATED"),
    "reject": (("PENDING",), "CANCELLED"),
    "pay": (("VALIDATED",), "PAID"),
    "cancel": (("PENDING", "VALIDATED"), "CANCELLED"),
}


def next_mission_status(current: str, action: str) -> str:
    try:
        allowed, target = MISSION_TRANSITIONS[action]
    except KeyError:
        raise AccountingError(f"Invalid action '{action}'. Use one of: {', '.join(MISSION_TRANSITIONS)}")
    if current not in allowed:
        raise InvalidTransition(f"Cannot {action} a mission that is {current}")
    return target


def get_mission(db: Session, mission_id: str) -> Mission:
    mission = db.get(Mission, mission_id)
    if not mission:
        raise NotFoundError(f"Mission {mission_id} not found")
    return mission


def apply_mission_action(
    db: Session,
    mission_id: str,
    action: str,
    *,
    admin_id: Optional[str] = None,
    notes: Optional[str] = None,
) -> Mission:
    """approve / reject / cancel"""
    if action == "pay":
        raise AccountingError("Use pay_mission to pay a mission")
    mission = get_mission(db, mission_id)
    mission.status = next_mission_status(mission.status, action)
    if action == "approve":
        mission.validated_by = admin_id
        mission.validated_at = datetime.utcnow()
    if notes:
        mission.notes = notes

    db.flush()
    logger.info("Mission %s %s -> %s", mission.id, action, mission.status)
    return mission


def pay_mission(
    db: Session,
    mission_id: str,
    *,
    source_account_id: str,
    paid_on: Optional[date] = None,
    notes: Optional[str] = None,
) -> Mission:
    mission = get_mission(db, mission_id)
    new_status = next_mission_status(mission.status, "pay")

    create_transaction(
        db,
        type="MENTOR_PAYMENT" if mission.mentor_id else "PROFESSOR_PAYMENT",
        amount=mission.amount,
        currency=mission.currency,
        on=paid_on,
        source_account_id=source_account_id,
        mission_id=mission.id,
        description=f"Mission: {mission.title} - {mission.assignee_name}",
        notes=notes,
    )
    mission.status = new_status
    mission.paid_at = datetime.utcnow()

    db.flush()
    logger.info("Mission %s paid (%s)", mission.id, format_amount(mission.amount, mission.currency))
    return mission


def create_mission(
    db: Session,
    *,
    title: str,
    amount: int,
    mission_date: date,
    currency: str = "EUR",
    mentor_id: Optional[str] = None,
    professor_id: Optional[str] = None,
    notes: Optional[str] = None,
    auto_validate: bool = False,
    admin_id: Optional[str] = None,
) -> Mission:
    """A mission is owed to exactly one mentor or one professor."""
    if not title:
        raise AccountingError("Title is required")
    if amount <= 0:
        raise AccountingError("Amount must be positive")
    if bool(mentor_id) == bool(professor_id):
        raise AccountingError("A mission needs either a mentor or a professor")
    ensure_currency(currency)

    assignee_id, role = (mentor_id, UserRole.MENTOR) if mentor_id else (professor_id, UserRole.PROFESSOR)
    assignee = db.get(User, assignee_id)
    if not assignee or assignee.role != role.value:
        raise NotFoundError(f"{role.value.title()} {assignee_id} not found")

    mission = Mission(
        title=title,
        mentor_id=mentor_id,
        professor_id=professor_id,
        amount=amount,
        currency=currency,
        date=mission_date,
        status="VALIDATED" if auto_validate else "PENDING",
        validated_by=admin_id if auto_validate else None,
        validated_at=datetime.utcnow() if auto_validate else None,
        notes=notes,
    )
    db.add(mission)
    db.flush()
    logger.info("Mission %s created for %s (%s, %s)", mission.id, assignee.email, amount, mission.status)
    return mission


def list_missions(
    db: Session,
    *,
    status: Optional[str] = None,
    mentor_id: Optional[str] = None,
    professor_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> Dict:
    query = select(Mission).order_by(Mission.date.desc())
    if status and status != "all":
        query = query.where(Mission.status == status)
    if mentor_id:
        query = query.where(Mission.mentor_id == mentor_id)
    if professor_id:
        query = query.where(Mission.professor_id == professor_id)
    if start_date:
        query = query.where(Mission.date >= start_date)
    if end_date:
        query = query.where(Mission.date <= end_date)
    missions = db.execute(query).scalars().unique().all()

    counts = Counter(m.status for m in missions)
    amounts: Dict[str, int] = defaultdict(int)
    for m in missions:
        amounts[m.status] += m.amount

    return {
        "missions": [mission_to_dict(m) for m in missions],
        "stats": {
            "total": len(missions),
            "pending": counts["PENDING"],
            "validated": counts["VALIDATED"],
            "paid": counts["PAID"],
            "cancelled": counts["CANCELLED"],
            "totalAmount": sum(m.amount for m in missions if m.status != "CANCELLED"),
            "pendingAmount": amounts["PENDING"],
            "validatedAmount": amounts["VALIDATED"],
        },
    }


def mission_to_dict(m: Mission) -> Dict:
    return {
        "id": m.id,
        "title": m.title,
        "assignee": m.assignee_name,
        "mentorId": m.mentor_id,
        "professorId": m.professor_id,
        "amount": m.amount,
        "currency": m.currency,
        "date": m.date.isoformat(),
        "status": m.status,
        "validatedBy": m.validated_by,
        "notes": m.notes,
    }
