# app/api/routers/positions.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.errors import http_error
from app.core.db import get_db
from app.schemas.accounting import DistributionCreate, PositionUpsert
from app.schemas.reports import PositionsOut
from app.services.distributions import (
    FounderSplit, create_distribution, distribution_to_dict, list_distributions
)
from app.services.positions import positions_overview, upsert_position

router = APIRouter(prefix="/admin/accounting", tags=["Accounting - Founders"])


@router.get("/positions", response_model=PositionsOut)
def get_positions(db: Session = Depends(get_db)):
    return positions_overview(db)


@router.post("/positions")
def set_position(payload: PositionUpsert, db: Session = Depends(get_db)):
    try:
        position = upsert_position(
            db,
            admin_id=payload.admin_id,
            currency=payload.currency,
            advanced=payload.advanced,
            received=payload.received,
        )
        db.commit()
    except ValueError as e:
        raise http_error(e)

    return {
        "position": {
            "id": position.id,
            "adminId": position.admin_id,
            "currency": position.currency,
            "advanced": position.advanced,
            "received": position.received,
            "balance": position.balance,
        },
        "message": "Position updated",
    }


@router.get("/distributions")
def get_distributions(
    currency: str | None = Query(None),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    return list_distributions(db, currency=currency, limit=limit)


@router.post("/distributions", status_code=201)
def post_distribution(payload: DistributionCreate, db: Session = Depends(get_db)):
    try:
        distribution = create_distribution(
            db,
            total_amount=payload.total_amount,
            currency=payload.currency,
            investment_amount=payload.investment_amount,
            distribution_date=payload.distribution_date,
            founders=[FounderSplit(f.founder_id, f.percentage) for f in payload.founders],
            notes=payload.notes,
            source_account_id=payload.source_account_id,
            update_positions=payload.update_positions,
        )
        db.commit()
    except ValueError as e:
        raise http_error(e)

    return {"distribution": distribution_to_dict(distribution), "message": "Distribution created"}
