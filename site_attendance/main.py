"""
Site Attendance — application entry point.

This is the **only** file that assembles the app.  All business logic
lives in the `api/`, `services/`, `repositories/` and `models/` packages.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from site_attendance.api.api import api_router
from site_attendance.api.endpoints.auth import limiter
from site_attendance.core.config import settings
from site_attendance.core.exceptions import register_exception_handlers
from site_attendance.db.base import Base
from site_attendance.db.seed import seed_demo_data, seed_first_admin
from site_attendance.db.session import async_session_factory, engine

# Ensure all models are imported so metadata.create_all can see them
from site_attendance.models.attendance import (AttendanceDraft,  # noqa: F401
                                               AttendanceEntry,
                                               AttendanceRecord)
from site_attendance.models.site import Site, Worker  # noqa: F401
from site_attendance.models.user import User  # noqa: F401

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan ────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(_app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialised")

    async with async_session_factory() as session:
        await seed_first_admin(session)
        if settings.SEED_DEMO_DATA:
            await seed_demo_data(session)

    logger.info("%s v%s started", settings.PROJECT_NAME, settings.VERSION)
    yield
    await engine.dispose()
    logger.info("Shutdown complete")


# ── App factory ─────────────────────────────────────────────────────
def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.PROJECT_NAME,
        description="Construction site attendance: foreman submits, site incharge reviews, admin approves",
        version=settings.VERSION,
        openapi_url=f"{settings.API_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(application)

    # Login throttling; RateLimitExceeded is an HTTPException, so 429s use the envelope
    application.state.limiter = limiter

    application.include_router(api_router, prefix=settings.API_PREFIX)

    return application


app = create_app()
