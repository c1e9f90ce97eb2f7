# app/api/routers/forecast.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.db import get_db
from app.schemas.reports import BFROut, ForecastOut
from app.services.bfr import bfr_report
from app.services.forecast import ForecastService, resolve_months

router = APIRouter(prefix="/admin/accounting", tags=["Accounting - Treasury"])


@router.get("/forecast", response_model=ForecastOut)
def get_forecast(
    months: str | None = Query(None, description="Projection horizon: 3, 6 or 12 (defaults to 6)"),
    db: Session = Depends(get_db),
):
    """Month-by-month cash projection per currency, with the revenue and expense details behind it."""
    return ForecastService(db).build(resolve_months(months))


@router.get("/bfr", response_model=BFROut)
def get_bfr(db: Session = Depends(get_db)):
    """Outstanding student receivables: per student, overdue, and due within the look-ahead window."""
    return bfr_report(db)
