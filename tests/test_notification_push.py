"""Tests for NotificationDispatcher delivery and cleanup."""

import json
from datetime import UTC, datetime
from unittest.mock import MagicMock, patch

import pytest

from callrelay.errors import BadRequest, NotFound, TransportFailure
from callrelay.notifications.push import NotificationDispatcher
from callrelay.storage.models import Registration

SUB = {"endpoint": "https://push.example/abc", "keys": {"p256dh": "k", "auth": "a"}}
NOW = datetime(2026, 5, 1, 8, 30, tzinfo=UTC)
URL = "https://client.example.com"


@pytest.fixture
def dispatcher(store):
    return NotificationDispatcher(
        store,
        vapid_private_key="fake-key",
        vapid_claims={"sub": "mailto:test@test"},
        client_url=URL,
        clock=lambda: NOW,
    )


async def _register(store, receiver_id="r1", subscription=None):
    doc = await store.load()
    doc.registrations[receiver_id] = Registration(
        subscription=SUB if subscription is None else subscription,
        registered_at=NOW,
    )
    await store.save(doc)


def _make_webpush_exc(status_code):
    from pywebpush import WebPushException

    resp = MagicMock()
    resp.status_code = status_code
    return WebPushException("push failed", response=resp)


class TestDispatch:
    @pytest.mark.asyncio
    async def test_sends_payload(self, dispatcher, store):
        await _register(store)
        with patch("callrelay.notifications.push.webpush") as mock:
            result = await dispatcher.dispatch("r1", "sess-1", sender_id="caller-7")

        assert result.session_id == "sess-1"
        mock.assert_called_once()
        kwargs = mock.call_args.kwargs
        assert kwargs["subscription_info"] == SUB
        assert kwargs["vapid_private_key"] == "fake-key"
        assert kwargs["vapid_claims"] == {"sub": "mailto:test@test"}
        payload = json.loads(kwargs["data"])
        assert payload == {
            "title": "🚨 Emergency Call",
            "body": "You have a new emergency call.",
            "sessionId": "sess-1",
            "senderId": "caller-7",
            "url": URL,
            "timestamp": int(NOW.timestamp() * 1000),
        }

    @pytest.mark.asyncio
    async def test_custom_title_and_body(self, dispatcher, store):
        await _register(store)
        with patch("callrelay.notifications.push.webpush") as mock:
            await dispatcher.dispatch("r1", "s", title="Hi", body="Call me")
        payload = json.loads(mock.call_args.kwargs["data"])
        assert payload["title"] == "Hi"
        assert payload["body"] == "Call me"
        assert payload["senderId"] is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("receiver_id,session_id", [("", "s"), ("r1", "")])
    async def test_missing_ids(self, dispatcher, receiver_id, session_id):
        with patch("callrelay.notifications.push.webpush") as mock:
            with pytest.raises(BadRequest):
                await dispatcher.dispatch(receiver_id, session_id)
        mock.assert_not_called()

    @pytest.mark.asyncio
    async def test_unregistered_not_found(self, dispatcher):
        with patch("callrelay.notifications.push.webpush") as mock:
            with pytest.raises(NotFound):
                await dispatcher.dispatch("ghost", "s")
        mock.assert_not_called()

    @pytest.mark.asyncio
    async def test_empty_subscription_not_found(self, dispatcher, store):
        await _register(store, subscription={})
        with patch("callrelay.notifications.push.webpush") as mock:
            with pytest.raises(NotFound):
                await dispatcher.dispatch("r1", "s")
        mock.assert_not_called()


class TestEndpointCleanup:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [404, 410])
    async def test_gone_removes_registration(self, dispatcher, store, status):
        await _register(store)
        await _register(store, "r2")
        with patch(
            "callrelay.notifications.push.webpush",
            side_effect=_make_webpush_exc(status),
        ):
            with pytest.raises(TransportFailure) as info:
                await dispatcher.dispatch("r1", "s")
        assert info.value.gone is True

        doc = await store.load()
        assert "r1" not in doc.registrations
        assert "r2" in doc.registrations

        with patch("callrelay.notifications.push.webpush") as mock:
            with pytest.raises(NotFound):
                await dispatcher.dispatch("r1", "s")
        mock.assert_not_called()

    @pytest.mark.asyncio
    async def test_transient_failure_keeps_registration(self, dispatcher, store):
        await _register(store)
        with patch(
            "callrelay.notifications.push.webpush",
            side_effect=_make_webpush_exc(503),
        ):
            with pytest.raises(TransportFailure) as info:
                await dispatcher.dispatch("r1", "s")
        assert info.value.gone is False
        doc = await store.load()
        assert "r1" in doc.registrations


class TestNetworkFailure:
    @pytest.mark.asyncio
    async def test_connection_error_is_transient(self, dispatcher, store):
        import requests

        await _register(store)
        with patch(
            "callrelay.notifications.push.webpush",
            side_effect=requests.ConnectionError("connection refused"),
        ):
            with pytest.raises(TransportFailure) as info:
                await dispatcher.dispatch("r1", "s")
        assert info.value.gone is False
        assert "connection refused" in info.value.message
        doc = await store.load()
        assert "r1" in doc.registrations
