"""Web Push delivery to registered receivers."""

import asyncio
import json
from dataclasses import dataclass

import requests
import structlog
from pywebpush import WebPushException, webpush

from callrelay.clock import Clock, utcnow
from callrelay.errors import BadRequest, NotFound, TransportFailure
from callrelay.storage.store import DocumentStore

logger = structlog.get_logger()

# Push service statuses meaning the subscription is permanently dead.
_GONE_STATUSES = {404, 410}


@dataclass(frozen=True)
class DispatchResult:
    receiver_id: str
    session_id: str


class NotificationDispatcher:
    """Send a call notification to one receiver's subscription.

    A push service answer of 404/410 deletes the receiver's
    registration before the failure is reported. Other
    failures leave it in place.
    """

    def __init__(
        self,
        store: DocumentStore,
        vapid_private_key: str,
        vapid_claims: dict,
        client_url: str,
        default_title: str = "🚨 Emergency Call",
        default_body: str = "You have a new emergency call.",
        clock: Clock = utcnow,
    ) -> None:
        self._store = store
        self._private_key = vapid_private_key
        self._claims = vapid_claims
        self._client_url = client_url
        self._default_title = default_title
        self._default_body = default_body
        self._clock = clock

    async def dispatch(
        self,
        receiver_id: str,
        session_id: str,
        sender_id: str | None = None,
        title: str | None = None,
        body: str | None = None,
    ) -> DispatchResult:
        """Deliver a notification for session_id to receiver_id.

        Raises:
            BadRequest: receiver_id or session_id missing.
            NotFound: Receiver has no usable registration.
            TransportFailure: Push service rejected the message.
        """
        if not receiver_id or not session_id:
            raise BadRequest("receiverId and sessionId are required")

        doc = await self._store.load()
        registration = doc.registrations.get(receiver_id)
        if registration is None or not registration.subscription:
            raise NotFound("Receiver not registered")

        payload = json.dumps(
            {
                "title": title or self._default_title,
                "body": body or self._default_body,
                "sessionId": session_id,
                "senderId": sender_id,
                "url": self._client_url,
                "timestamp": int(self._clock().timestamp() * 1000),
            }
        )
        try:
            await asyncio.to_thread(
                webpush,
                subscription_info=registration.subscription,
                data=payload,
                vapid_private_key=self._private_key,
                vapid_claims=dict(self._claims),
            )
        except WebPushException as e:
            response = getattr(e, "response", None)
            code = getattr(response, "status_code", None)
            if code in _GONE_STATUSES:
                await self._forget(receiver_id)
                raise TransportFailure(str(e), gone=True) from e
            logger.warning(
                "push_failed",
                receiver_id=receiver_id,
                status=code,
                error=str(e),
            )
            raise TransportFailure(str(e)) from e
        except requests.RequestException as e:
            logger.warning(
                "push_failed",
                receiver_id=receiver_id,
                status=None,
                error=str(e),
            )
            raise TransportFailure(str(e)) from e

        logger.info(
            "push_sent",
            receiver_id=receiver_id,
            session_id=session_id,
        )
        return DispatchResult(receiver_id=receiver_id, session_id=session_id)

    async def _forget(self, receiver_id: str) -> None:
        """Drop a registration the push service reports as gone."""
        doc = await self._store.load()
        if doc.registrations.pop(receiver_id, None) is not None:
            await self._store.save(doc)
        logger.info("push_endpoint_gone", receiver_id=receiver_id)
