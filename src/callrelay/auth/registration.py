"""Auth-code redemption and self-service subscription updates."""

import secrets
from typing import Any

import structlog

from callrelay.auth.tokens import TokenPair, TokenService
from callrelay.clock import Clock, utcnow
from callrelay.errors import Expired, Forbidden, InvalidCode, NotFound, Unauthorized
from callrelay.storage.models import Registration
from callrelay.storage.store import DocumentStore

logger = structlog.get_logger()


class RegistrationService:
    """Turn a pending auth code into a durable registration."""

    def __init__(
        self,
        store: DocumentStore,
        tokens: TokenService,
        clock: Clock = utcnow,
    ) -> None:
        self._store = store
        self._tokens = tokens
        self._clock = clock

    async def redeem(
        self,
        receiver_id: str,
        presented_code: str,
        subscription: dict[str, Any],
    ) -> TokenPair:
        """Register a subscription against a pending auth code.

        Returns:
            Fresh access/refresh tokens bound to receiver_id.

        Raises:
            NotFound: No pending code for receiver_id.
            InvalidCode: Code does not match.
            Expired: Code is past its window. The stale code
                is deleted and saved before raising.
        """
        doc = await self._store.load()
        pending = doc.auth_codes.get(receiver_id)
        if pending is None:
            raise NotFound("No auth code found")

        if not secrets.compare_digest(
            pending.code.encode(),
            presented_code.encode(),
        ):
            logger.info("auth_code_mismatch", receiver_id=receiver_id)
            raise InvalidCode("Invalid auth code")

        now = self._clock()
        if pending.is_expired(now):
            del doc.auth_codes[receiver_id]
            await self._store.save(doc)
            logger.info("auth_code_expired", receiver_id=receiver_id)
            raise Expired("Auth code expired")

        doc.registrations[receiver_id] = Registration(
            subscription=subscription,
            registered_at=now,
        )
        del doc.auth_codes[receiver_id]
        await self._store.save(doc)

        logger.info("receiver_registered", receiver_id=receiver_id)
        return self._tokens.issue_token_pair(receiver_id)

    async def update(
        self,
        receiver_id: str,
        refresh_token: str,
        subscription: dict[str, Any],
    ) -> None:
        """Replace a receiver's subscription, proven by refresh token.

        Raises:
            Unauthorized: Refresh token failed verification.
            Forbidden: Token belongs to another receiver.
        """
        try:
            claims = self._tokens.verify_refresh(refresh_token)
        except Forbidden as e:
            raise Unauthorized("Invalid refresh token") from e

        if claims.receiver_id != receiver_id:
            logger.warning(
                "subscription_update_id_mismatch",
                receiver_id=receiver_id,
                token_receiver_id=claims.receiver_id,
            )
            raise Forbidden("Forbidden: ID mismatch")

        now = self._clock()
        doc = await self._store.load()
        previous = doc.registrations.get(receiver_id)
        doc.registrations[receiver_id] = Registration(
            subscription=subscription,
            registered_at=previous.registered_at if previous else now,
            updated_at=now,
        )
        await self._store.save(doc)
        logger.info("subscription_updated", receiver_id=receiver_id)
