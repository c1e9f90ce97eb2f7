# app/api/errors.py
import logging

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.core.errors import AccountingError

logger = logging.getLogger(__name__)


def http_error(e: ValueError) -> HTTPException:
    """Service-layer ValueError -> HTTP error with the same message."""
    code = e.status_code if isinstance(e, AccountingError) else status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=str(e))


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Store unavailable or failing: generic 500, no retry."""
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Database error, please retry later"},
    )
