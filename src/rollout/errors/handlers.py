"""FastAPI exception handlers producing the ErrorResponse envelope."""

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from rollout.errors.exceptions import AuthenticationError, RolloutError
from rollout.models.common import ErrorDetail, ErrorResponse

logger = logging.getLogger(__name__)


def error_response(exc: RolloutError, trace_id: str) -> JSONResponse:
    body = ErrorResponse(
        error=ErrorDetail(
            code=exc.code,
            message=exc.message,
            details=exc.details,
            trace_id=trace_id,
            timestamp=datetime.now(timezone.utc),
        ),
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(mode="json", exclude_none=True),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all custom exception handlers on the FastAPI app."""

    @app.exception_handler(RolloutError)
    async def rollout_error_handler(request: Request, exc: RolloutError):
        trace_id = getattr(request.state, "trace_id", "unknown")
        if isinstance(exc, AuthenticationError):
            logger.warning(
                "passcode_rejected",
                extra={"path": request.url.path, "method": request.method, "trace_id": trace_id},
            )
        elif exc.status_code >= 500:
            logger.error("request_failed", extra={"code": exc.code, "trace_id": trace_id})
        return error_response(exc, trace_id)
