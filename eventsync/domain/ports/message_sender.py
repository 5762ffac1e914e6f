"""Outbound messaging port."""
from abc import ABC, abstractmethod
from typing import Optional


class MessageSender(ABC):
    """Port for pushing text messages to a phone (WhatsApp gateway)."""

    @abstractmethod
    async def send_text(self, phone: str, message: str) -> Optional[str]:
        """
        Send a text message.

        Args:
            phone: Destination phone number, any formatting
            message: Message body

        Returns:
            Gateway message ID when available

        Raises:
            httpx.HTTPError: If the gateway rejects the request
        """
        pass
