"""Clarity CRM API - FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map ClarityError -> structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database initialized on startup via lifespan context manager
    - Every request gets an X-Request-ID and one access log line

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Four error handler layers: ClarityError (domain), RequestValidationError
      (Pydantic), IntegrityError (database), Exception (catch-all)
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from clarity_crm.api.error_handlers import register_error_handlers
from clarity_crm.api.routes import (
    activities, auth, call_notes, capacity, companies, customers, dashboard,
    deals, health, insights, kpis, planning, tasks, teams, time_filters, users,
)
from clarity_crm.config import get_settings
from clarity_crm.infrastructure.database import init_db
from clarity_crm.infrastructure.observability import setup_logging
from clarity_crm.infrastructure.request_logging import log_requests

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    manager = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    logger.info("Clarity CRM API started")
    yield
    logger.info("Clarity CRM API shutting down")
    await manager.engine.dispose()


settings = get_settings()
app = FastAPI(
    title="Clarity CRM API", version=settings.app_version, lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Total-Count"],
)
app.middleware("http")(log_requests)

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(teams.router)
app.include_router(tasks.router)
app.include_router(activities.router)
app.include_router(call_notes.router)
app.include_router(customers.router)
app.include_router(companies.router)
app.include_router(deals.router)
app.include_router(kpis.router)
app.include_router(capacity.router)
app.include_router(planning.router)
app.include_router(dashboard.router)
app.include_router(insights.router)
app.include_router(time_filters.router)

register_error_handlers(app)
