"""Issue and verify the relay's signed tokens.

Access tokens (caller and receiver) are signed with the access
secret. Refresh tokens use a separate secret so a leaked access
secret cannot mint long-lived credentials, and vice versa.
"""

import secrets
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

import jwt
import structlog

from callrelay.clock import Clock, utcnow
from callrelay.errors import Forbidden, Unauthorized

logger = structlog.get_logger()

ALGORITHM = "HS256"


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class TokenClaims:
    """Identity carried by a verified token."""

    authorized: bool = False
    receiver_id: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "TokenClaims":
        return cls(
            authorized=bool(payload.get("authorized", False)),
            receiver_id=payload.get("receiverId"),
        )


class TokenService:
    """Stateless JWT issuance for callers and receivers."""

    def __init__(
        self,
        login_password: str,
        access_secret: str,
        refresh_secret: str,
        access_ttl: timedelta = timedelta(minutes=15),
        caller_ttl: timedelta = timedelta(hours=1),
        refresh_ttl: timedelta = timedelta(days=30),
        clock: Clock = utcnow,
    ) -> None:
        self._password = login_password
        self._access_secret = access_secret
        self._refresh_secret = refresh_secret
        self._access_ttl = access_ttl
        self._caller_ttl = caller_ttl
        self._refresh_ttl = refresh_ttl
        self._clock = clock

    def check_password(self, presented: str | None) -> bool:
        """Exact match against the shared login password."""
        if not presented:
            return False
        return secrets.compare_digest(
            presented.encode(),
            self._password.encode(),
        )

    def issue_caller_token(self) -> str:
        return self._sign({"authorized": True}, self._access_secret, self._caller_ttl)

    def issue_access_token(self, receiver_id: str) -> str:
        return self._sign(
            {"receiverId": receiver_id},
            self._access_secret,
            self._access_ttl,
        )

    def issue_token_pair(self, receiver_id: str) -> TokenPair:
        return TokenPair(
            access_token=self.issue_access_token(receiver_id),
            refresh_token=self._sign(
                {"receiverId": receiver_id},
                self._refresh_secret,
                self._refresh_ttl,
            ),
        )

    def verify_access(self, token: str | None) -> TokenClaims:
        """Validate an access token.

        Raises:
            Unauthorized: No token presented.
            Forbidden: Bad signature, malformed or expired.
        """
        if not token:
            raise Unauthorized("Unauthorized: No token provided")
        return self._verify(token, self._access_secret, "Forbidden: Invalid token")

    def verify_refresh(self, token: str) -> TokenClaims:
        """Validate a refresh token.

        Raises:
            Forbidden: Bad signature, malformed or expired.
        """
        return self._verify(token, self._refresh_secret, "Invalid refresh token")

    def refresh(self, refresh_token: str) -> str:
        """Mint a new access token for the refresh token's receiver."""
        claims = self.verify_refresh(refresh_token)
        if not claims.receiver_id:
            raise Forbidden("Invalid refresh token")
        logger.info("access_token_refreshed", receiver_id=claims.receiver_id)
        return self.issue_access_token(claims.receiver_id)

    def _sign(self, claims: dict[str, Any], secret: str, ttl: timedelta) -> str:
        now = self._clock()
        payload = {
            **claims,
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
        }
        return jwt.encode(payload, secret, algorithm=ALGORITHM)

    def _verify(self, token: str, secret: str, message: str) -> TokenClaims:
        try:
            payload = jwt.decode(token, key=secret, algorithms=[ALGORITHM])
        except jwt.PyJWTError as e:
            logger.info("token_rejected", reason=str(e))
            raise Forbidden(message) from e
        return TokenClaims.from_payload(payload)
