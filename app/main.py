# app/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from app.api.errors import database_error_handler
from app.api.routers import billing as billing_router
from app.api.routers import expenses as expenses_router
from app.api.routers import forecast as forecast_router
from app.api.routers import positions as positions_router
from app.api.routers import treasury as treasury_router
from app.core.config import settings
from app.core.db import create_tables

# Configure logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(title="Treasury & Founder Accounting", version="0.3.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        if request.url.path.startswith("/api/admin/"):
            logger.info(f"Admin request: {request.method} {request.url.path}")
        response = await call_next(request)
        return response

    app.add_exception_handler(SQLAlchemyError, database_error_handler)

    @app.on_event("startup")
    async def startup_event():
        if settings.AUTO_CREATE_TABLES:
            logger.info("Creating tables on %s", settings.DATABASE_URL.split("://")[0])
            create_tables()

    # Read-only reports
    app.include_router(forecast_router.router, prefix="/api")
    app.include_router(positions_router.router, prefix="/api")

    # Ledger operations
    app.include_router(treasury_router.router, prefix="/api")
    app.include_router(billing_router.router, prefix="/api")
    app.include_router(expenses_router.router, prefix="/api")

    @app.get("/healthz")
    def health():
        return {"ok": True}

    return app


app = create_app()
