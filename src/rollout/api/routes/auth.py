"""Shared passcode login/logout."""

import hmac

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from rollout.api.middleware.passcode import AUTHENTICATED
from rollout.config import settings
from rollout.errors.exceptions import AuthenticationError, RolloutError

router = APIRouter(tags=["Auth"])


class LoginRequest(BaseModel):
    passcode: str = Field(..., min_length=1)


@router.post("/auth")
async def login(body: LoginRequest) -> JSONResponse:
    response = JSONResponse({"success": True})
    if not settings.enable_passcode:
        return response
    if not settings.passcode:
        raise RolloutError("CONFIG_ERROR", "Passcode not configured", status_code=500)
    if not hmac.compare_digest(body.passcode, settings.passcode):
        raise AuthenticationError("Invalid passcode")

    response.set_cookie(
        key=settings.auth_cookie_name,
        value=AUTHENTICATED,
        max_age=settings.auth_cookie_max_age,
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite="strict",
        path="/",
    )
    return response


@router.delete("/auth")
async def logout() -> JSONResponse:
    response = JSONResponse({"success": True})
    response.delete_cookie(
        key=settings.auth_cookie_name,
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite="strict",
        path="/",
    )
    return response
