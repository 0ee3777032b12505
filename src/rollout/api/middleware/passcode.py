"""Shared-passcode gate: requests need the auth cookie set by POST /api/v1/auth."""

import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from rollout.config import settings
from rollout.errors.exceptions import AuthenticationError
from rollout.errors.handlers import error_response

logger = logging.getLogger(__name__)

AUTHENTICATED = "authenticated"

# Paths that do not require the passcode cookie
_PUBLIC_PATHS = {
    "/api/v1/auth",
    "/api/v1/health",
    "/api/v1/health/live",
    "/api/v1/health/ready",
    "/docs",
    "/openapi.json",
    "/redoc",
}


class PasscodeMiddleware(BaseHTTPMiddleware):
    """Reject requests without a valid auth cookie when the passcode gate is enabled."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not settings.enable_passcode:
            return await call_next(request)

        path = request.url.path
        if path in _PUBLIC_PATHS or path.startswith("/docs") or path.startswith("/redoc"):
            return await call_next(request)

        if request.cookies.get(settings.auth_cookie_name) != AUTHENTICATED:
            logger.debug("Passcode cookie missing for %s", path)
            trace_id = getattr(request.state, "trace_id", "unknown")
            return error_response(AuthenticationError(), trace_id)

        return await call_next(request)
