"""Shared FastAPI dependencies for outbound integrations."""
from typing import Optional

import httpx
from fastapi import Depends

from eventsync.core.config import settings
from eventsync.domain.ports.message_sender import MessageSender
from eventsync.infrastructure.integrations.whatsapp.client import ZapiMessageSender


def get_http_transport() -> Optional[httpx.AsyncBaseTransport]:
    """Transport for outbound HTTP clients; None uses the network."""
    return None


def get_message_sender(
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_http_transport)
) -> Optional[MessageSender]:
    """WhatsApp sender, or None when the gateway is not configured."""
    if not settings.whatsapp_configured:
        return None
    return ZapiMessageSender(transport=transport)
