"""One-time auth code generation."""

import secrets
from datetime import timedelta

import structlog

from callrelay.clock import Clock, utcnow
from callrelay.errors import BadRequest
from callrelay.storage.models import AuthCode
from callrelay.storage.store import DocumentStore

logger = structlog.get_logger()

CODE_MIN = 100_000
CODE_MAX = 999_999


def random_code() -> str:
    """Uniform 6-digit decimal string."""
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


class AuthCodeIssuer:
    """Issue pending auth codes, one live code per receiver.

    A new code replaces any pending one for the same receiver.
    Codes are not checked for uniqueness across receivers.
    """

    def __init__(
        self,
        store: DocumentStore,
        validity: timedelta = timedelta(minutes=30),
        clock: Clock = utcnow,
    ) -> None:
        self._store = store
        self._validity = validity
        self._clock = clock

    @property
    def validity(self) -> timedelta:
        return self._validity

    async def generate(self, receiver_id: str) -> AuthCode:
        if not receiver_id:
            raise BadRequest("receiverId is required")

        now = self._clock()
        auth = AuthCode(
            code=random_code(),
            expires_at=now + self._validity,
            created_at=now,
        )
        doc = await self._store.load()
        doc.auth_codes[receiver_id] = auth
        await self._store.save(doc)

        logger.info("auth_code_generated", receiver_id=receiver_id)
        logger.debug("auth_code_value", receiver_id=receiver_id, code=auth.code)
        return auth
