"""Tests for the WhatsApp gateway client."""
import json

import httpx
import pytest

from eventsync.infrastructure.integrations.whatsapp.client import ZapiMessageSender, normalize_phone


@pytest.mark.parametrize("raw, expected", [
    ("(11) 91234-5678", "5511912345678"),
    ("+55 (11) 98765-4321", "5511987654321"),
    ("5511912345678", "5511912345678"),
    ("", ""),
    (None, ""),
])
def test_normalize_phone(raw, expected):
    assert normalize_phone(raw) == expected


@pytest.mark.asyncio
async def test_send_text_posts_to_instance():
    captured = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"zaapId": "zaap_1", "messageId": "msg_1"})

    sender = ZapiMessageSender(
        instance_id="inst",
        token="tok",
        client_token="client-tok",
        transport=httpx.MockTransport(handler)
    )

    message_id = await sender.send_text("(11) 91234-5678", "Olá")

    assert message_id == "msg_1"
    request = captured[0]
    assert str(request.url) == "https://api.z-api.io/instances/inst/token/tok/send-text"
    assert request.headers["Client-Token"] == "client-tok"
    assert json.loads(request.content) == {"phone": "5511912345678", "message": "Olá"}


@pytest.mark.asyncio
async def test_gateway_error_raises():
    sender = ZapiMessageSender(
        instance_id="inst",
        token="tok",
        client_token="client-tok",
        transport=httpx.MockTransport(lambda request: httpx.Response(500, json={"error": "down"}))
    )

    with pytest.raises(httpx.HTTPStatusError):
        await sender.send_text("11912345678", "Olá")


def test_unconfigured_sender(monkeypatch):
    from eventsync.core.config import settings

    monkeypatch.setattr(settings, "zapi_instance_id", "")
    monkeypatch.setattr(settings, "zapi_token", "")
    monkeypatch.setattr(settings, "zapi_client_token", "")

    assert ZapiMessageSender().configured is False
