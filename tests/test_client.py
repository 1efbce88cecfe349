import asyncio
import json

import httpx
import pytest

from browser_chat_relay.client import RelayClient
from browser_chat_relay.errors import ErrorKind
from browser_chat_relay.models import SessionPhase, StabilizationOutcome


def build_client(handler) -> RelayClient:
    return RelayClient("http://relay.test/", transport=httpx.MockTransport(handler))


def test_send_posts_message_and_parses_reply() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "success": True,
                "message": "ping",
                "response": "pong from the model",
                "outcome": "converged",
                "error": None,
            },
        )

    result = asyncio.run(build_client(handler).send("ping"))

    assert seen == {"path": "/send", "body": {"message": "ping"}}
    assert result.response == "pong from the model"
    assert result.outcome == StabilizationOutcome.CONVERGED


def test_send_returns_typed_error_for_busy_relay() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            409,
            json={
                "success": False,
                "message": "ping",
                "response": "",
                "outcome": None,
                "error": {"kind": "not_ready", "detail": "Session is busy, not ready"},
            },
        )

    result = asyncio.run(build_client(handler).send("ping"))

    assert result.success is False
    assert result.error.kind == ErrorKind.NOT_READY


def test_get_status_and_http_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/status":
            return httpx.Response(
                200,
                json={"ready": False, "state": "awaiting_login", "selected_model": "m"},
            )
        return httpx.Response(404)

    client = build_client(handler)

    status = asyncio.run(client.get_status())
    assert status.state == SessionPhase.AWAITING_LOGIN
    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(client.shutdown())
