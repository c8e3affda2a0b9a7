"""Gatekeeper API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map GatekeeperError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database, HTTP clients, the session registry and the reaper task are created
      in the lifespan and torn down in reverse order

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Collaborators on app.state, resolved through api/dependencies.py, so tests
      swap them with dependency_overrides
    - Single process: the SessionRegistry is in memory and sessions are lost on restart
"""

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gatekeeper.api.dependencies import get_timeouts
from gatekeeper.api.error_handlers import register_error_handlers
from gatekeeper.api.routes import (
    counters, health, manual_reviews, scopes, verification_sessions,
)
from gatekeeper.config import get_settings
from gatekeeper.core.session_registry import SessionRegistry
from gatekeeper.infrastructure.bot_gateway import HttpBotGateway
from gatekeeper.infrastructure.database import init_db
from gatekeeper.infrastructure.observability import setup_logging
from gatekeeper.infrastructure.profile_client import HttpProfileService
from gatekeeper.services.session_reaper import run_reaper

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    db = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    app.state.registry = SessionRegistry()
    app.state.profiles = HttpProfileService(
        settings.profile_api_url, settings.profile_api_timeout_seconds,
    )
    app.state.gateway = HttpBotGateway(
        settings.gateway_url, settings.gateway_token, settings.gateway_timeout_seconds,
    )
    reaper = asyncio.create_task(run_reaper(
        db.session, app.state.registry, app.state.profiles, app.state.gateway,
        get_timeouts(), settings.reaper_interval_seconds,
    ))
    logger.info("Gatekeeper API started")
    yield
    logger.info("Gatekeeper API shutting down")
    reaper.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await reaper
    await app.state.gateway.aclose()
    await app.state.profiles.aclose()
    await db.dispose()


app = FastAPI(
    title="Gatekeeper Verification API", version="1.0.0", lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(scopes.router)
app.include_router(verification_sessions.router)
app.include_router(manual_reviews.router)
app.include_router(counters.router)

register_error_handlers(app)
