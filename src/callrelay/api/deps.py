"""Shared FastAPI dependencies."""

from fastapi import Header, HTTPException, Request

from callrelay.auth.tokens import TokenClaims
from callrelay.errors import RelayError


def require_access_token(
    request: Request,
    authorization: str | None = Header(default=None),
) -> TokenClaims:
    """Validate the ``Authorization: Bearer`` access token."""
    token = None
    if authorization:
        parts = authorization.split(" ", 1)
        if len(parts) == 2:
            token = parts[1].strip()
    try:
        return request.app.state.tokens.verify_access(token)
    except RelayError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc
