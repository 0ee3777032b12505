"""Liveness and readiness probes."""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from rollout.logging_config import SERVICE_NAME

logger = logging.getLogger(__name__)

router = APIRouter()

VERSION = "0.1.0"


@router.get("/health")
async def health_check():
    return {"status": "healthy", "service": SERVICE_NAME, "version": VERSION}


@router.get("/health/live")
async def liveness():
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness(request: Request):
    """Ready once the database answers; reports which backend is in use."""
    engine = request.app.state.db_engine
    checks = {"database": "ok"}
    try:
        async with request.app.state.db_session_factory() as session:
            await session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.warning("Readiness check failed: %s", exc)
        checks["database"] = f"error: {exc.__class__.__name__}"

    ok = checks["database"] == "ok"
    return JSONResponse(
        status_code=200 if ok else 503,
        content={
            "status": "ready" if ok else "not_ready",
            "backend": engine.dialect.name,
            "checks": checks,
        },
    )
