"""FastAPI application factory and lifespan management."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rollout.config import settings
from rollout.db.engine import create_db_engine, create_session_factory, create_tables
from rollout.logging_config import configure_logging

# Configure logging at import time
configure_logging(log_level=settings.log_level, json_output=not settings.local_mode)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown resources."""
    db_url = settings.effective_database_url
    engine = create_db_engine(db_url)

    # Auto-create tables for SQLite (local dev)
    if "sqlite" in db_url:
        await create_tables(engine)
        logger.info("SQLite tables created (local mode)")

    app.state.db_engine = engine
    app.state.db_session_factory = create_session_factory(engine)

    logger.info("Rollout API started (db=%s)", "sqlite" if "sqlite" in db_url else "postgresql")
    yield

    await engine.dispose()
    logger.info("Rollout API shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Rollout Tracker API",
        version="0.1.0",
        description="Tracks multi-customer release rollouts across Kubernetes clusters.",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Order matters: last added = first executed
    from rollout.api.middleware.passcode import PasscodeMiddleware
    from rollout.api.middleware.trace_id import TraceIdMiddleware
    app.add_middleware(PasscodeMiddleware)
    app.add_middleware(TraceIdMiddleware)

    from rollout.errors.handlers import register_exception_handlers
    register_exception_handlers(app)

    from rollout.api.router import api_router
    app.include_router(api_router)

    return app


app = create_app()
