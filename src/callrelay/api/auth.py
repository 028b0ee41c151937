"""Login, auth code, registration and token endpoints."""

from typing import Any

import structlog
from fastapi import APIRouter, HTTPException, Request, Response
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from callrelay.errors import Expired, InvalidCode, NotFound, RelayError

logger = structlog.get_logger()

router = APIRouter()


class LoginRequest(BaseModel):
    password: str | None = None


class AuthCodeRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel)

    receiver_id: str = Field(min_length=1)


class RegisterRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel)

    receiver_id: str = Field(min_length=1)
    auth_code: str = Field(min_length=1)
    subscription: dict[str, Any]


class UpdateSubscriptionRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel)

    receiver_id: str = Field(min_length=1)
    refresh_token: str = Field(min_length=1)
    subscription: dict[str, Any]


class RefreshRequest(BaseModel):
    token: str | None = None


def _minutes(seconds: float) -> str:
    minutes = int(seconds // 60)
    return f"{minutes} minute" if minutes == 1 else f"{minutes} minutes"


@router.post("/login")
async def login(request: Request, body: LoginRequest | None = None) -> dict:
    """Exchange the shared password for a short-lived caller token."""
    tokens = request.app.state.tokens
    if body is None or not tokens.check_password(body.password):
        logger.warning("login_failed")
        raise HTTPException(status_code=401, detail="Invalid password")
    logger.info("login_succeeded")
    return {"success": True, "token": tokens.issue_caller_token()}


@router.post("/generate-auth-code")
async def generate_auth_code(body: AuthCodeRequest, request: Request) -> dict:
    issuer = request.app.state.auth_codes
    auth = await issuer.generate(body.receiver_id)
    return {
        "success": True,
        "code": auth.code,
        "expiresIn": _minutes(issuer.validity.total_seconds()),
    }


@router.post("/register")
async def register(body: RegisterRequest, request: Request) -> dict:
    """Redeem an auth code and store the receiver's subscription."""
    service = request.app.state.registrations
    try:
        pair = await service.redeem(
            body.receiver_id, body.auth_code, body.subscription
        )
    except (NotFound, InvalidCode, Expired) as exc:
        raise HTTPException(status_code=401, detail=exc.message) from exc
    return {
        "success": True,
        "accessToken": pair.access_token,
        "refreshToken": pair.refresh_token,
        "message": "Receiver registered",
    }


@router.post("/update-subscription")
async def update_subscription(
    body: UpdateSubscriptionRequest,
    request: Request,
) -> dict:
    """Replace a subscription, proven by the receiver's refresh token."""
    service = request.app.state.registrations
    await service.update(body.receiver_id, body.refresh_token, body.subscription)
    return {"success": True}


@router.post("/refresh-token", response_model=None)
async def refresh_token(
    request: Request,
    body: RefreshRequest | None = None,
) -> dict | Response:
    """New access token from a refresh token. Failures carry no body."""
    if body is None or not body.token:
        return Response(status_code=401)
    try:
        access = request.app.state.tokens.refresh(body.token)
    except RelayError:
        logger.warning("refresh_token_invalid")
        return Response(status_code=403)
    return {"accessToken": access}
