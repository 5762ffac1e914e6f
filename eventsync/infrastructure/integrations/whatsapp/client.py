"""WhatsApp gateway (Z-API) client."""
import logging
import re
from typing import Optional

import httpx

from eventsync.core.config import settings
from eventsync.domain.ports.message_sender import MessageSender

logger = logging.getLogger(__name__)

COUNTRY_PREFIX = "55"


def normalize_phone(phone: str) -> str:
    """
    Reduce a phone number to digits with the Brazilian country prefix.

    Args:
        phone: Phone number in any formatting

    Returns:
        Digits only, starting with 55
    """
    digits = re.sub(r"\D", "", phone or "")
    if not digits:
        return digits
    return digits if digits.startswith(COUNTRY_PREFIX) else f"{COUNTRY_PREFIX}{digits}"


class ZapiMessageSender(MessageSender):
    """MessageSender posting text messages through a Z-API instance."""

    def __init__(
        self,
        instance_id: Optional[str] = None,
        token: Optional[str] = None,
        client_token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize sender, defaulting credentials to settings.

        Args:
            instance_id: Z-API instance ID
            token: Z-API instance token
            client_token: Z-API account security token
            transport: Optional httpx transport (tests inject a MockTransport)
        """
        self.instance_id = instance_id or settings.zapi_instance_id
        self.token = token or settings.zapi_token
        self.client_token = client_token or settings.zapi_client_token
        self.base_url = settings.zapi_base_url
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.instance_id and self.token and self.client_token)

    async def send_text(self, phone: str, message: str) -> Optional[str]:
        """Send a text message to a WhatsApp number."""
        url = f"{self.base_url}/instances/{self.instance_id}/token/{self.token}/send-text"

        async with httpx.AsyncClient(timeout=30.0, transport=self.transport) as client:
            response = await client.post(
                url,
                headers={
                    "Content-Type": "application/json",
                    "Client-Token": self.client_token
                },
                json={"phone": normalize_phone(phone), "message": message}
            )
            response.raise_for_status()
            data = response.json()

        message_id = data.get("messageId") or data.get("zaapId")
        logger.info(f"WhatsApp message sent: {message_id}")
        return message_id
