"""Aurum Services — FastAPI application entry points.

Two ASGI apps share one codebase and one database:
    - advisory_app   (uvicorn aurum.main:advisory_app)   chat, history, analytics
    - settlement_app (uvicorn aurum.main:settlement_app) options, initiate, confirm

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map AurumError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database initialized on startup via lifespan context manager
    - The settlement service runs the periodic session sweep; advisory does not

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - create_app factory: both services get identical middleware, handlers and
      probes; only their routers differ
"""

import logging
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

import aurum.infrastructure.database as db_module
from aurum.api.error_handlers import register_error_handlers
from aurum.api.routes import advisory, health, portfolio, purchase, sessions
from aurum.config import get_settings
from aurum.infrastructure.clock import StoreClock
from aurum.infrastructure.observability import setup_logging
from aurum.infrastructure.scheduler import build_sweep_scheduler
from aurum.services.session_maintenance import SessionMaintenance

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


def _lifespan(service_name: str, sweep_sessions: bool = False):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup/shutdown lifecycle."""
        settings = get_settings()
        setup_logging(settings.log_level, settings.log_format, service_name)
        if db_module.db_manager is None:
            db_module.init_db(
                settings.database_url,
                pool_size=settings.database_pool_size,
                max_overflow=settings.database_max_overflow,
            )

        scheduler = None
        if sweep_sessions and settings.session_sweep_interval_seconds > 0:
            maintenance = SessionMaintenance(
                StoreClock(), timedelta(hours=settings.session_retention_hours),
            )
            scheduler = build_sweep_scheduler(
                maintenance,
                db_module.db_manager.session_factory,
                settings.session_sweep_interval_seconds,
            )
            scheduler.start()

        logger.info(f"{service_name} started")
        yield
        logger.info(f"{service_name} shutting down")
        if scheduler is not None:
            scheduler.shutdown(wait=False)

    return lifespan


def create_app(
    title: str, routers: list[APIRouter], sweep_sessions: bool = False,
) -> FastAPI:
    app = FastAPI(
        title=title, version=VERSION, lifespan=_lifespan(title, sweep_sessions),
    )

    settings = get_settings()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    for router in routers:
        app.include_router(router)

    register_error_handlers(app)
    return app


advisory_app = create_app("Aurum Advisory API", [advisory.router])

settlement_app = create_app(
    "Aurum Settlement API",
    [purchase.router, sessions.router, portfolio.router],
    sweep_sessions=True,
)
