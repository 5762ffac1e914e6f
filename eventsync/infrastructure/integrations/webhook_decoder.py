"""Base webhook decoder - total body classification followed by decoding."""
import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Optional

from eventsync.domain.errors import MalformedPayload
from eventsync.domain.models.external_event import (
    DecodedWebhook, EventDomain, InboundWebhookBody, Malformed, PingProbe, Probe
)

logger = logging.getLogger(__name__)

PING_TYPE = "webhookPingCreated"


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a vendor timestamp into an aware UTC datetime.

    Accepts epoch milliseconds and ISO-8601 strings (with or without "Z" or a
    space separator). Returns None for anything else.
    """
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    if not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class WebhookDecoder(ABC):
    """
    Turns a raw webhook request body into an ExternalEvent or a Probe.

    Subclasses provide classify() for their source's body shapes and
    decode_variant() for the recognized, non-probe variants.
    """

    domain: EventDomain

    def decode(self, raw_body: bytes) -> DecodedWebhook:
        """
        Decode a raw request body.

        Args:
            raw_body: Request body bytes

        Returns:
            ExternalEvent, or Probe for connectivity pings

        Raises:
            MalformedPayload: If the body is unparseable or lacks its envelope
        """
        body = self.parse_json(raw_body)
        variant = self.classify(body)
        received_keys = list(body.keys()) if isinstance(body, dict) else []

        if isinstance(variant, Malformed):
            raise MalformedPayload(variant.reason, received_keys)
        if isinstance(variant, PingProbe):
            logger.info(f"Webhook ping received for {self.domain.value}: {variant.probe_id}")
            return Probe(
                domain=self.domain,
                probe_id=variant.probe_id,
                kind="ping",
                decoded_payload=variant.body
            )
        try:
            return self.decode_variant(variant)
        except MalformedPayload as e:
            if not e.received_keys:
                e.received_keys = received_keys
            raise
        except (AttributeError, TypeError, ValueError) as e:
            # Fields of an unexpected type inside an otherwise valid envelope
            raise MalformedPayload(
                f"Invalid {self.domain.value} payload structure: {str(e)}", received_keys
            ) from e

    def classify(self, body: Any) -> InboundWebhookBody:
        """
        Classify a parsed body into one variant. Never raises.

        Recognizes the shared ping shape, then defers to classify_body().
        """
        if not isinstance(body, dict):
            return Malformed(reason="Body must be a JSON object", body=body)

        data = body.get("data")
        if isinstance(data, dict) and data.get("type") == PING_TYPE:
            probe_id = data.get("id")
            return PingProbe(probe_id=str(probe_id) if probe_id is not None else None, body=body)

        return self.classify_body(body)

    @abstractmethod
    def classify_body(self, body: dict) -> InboundWebhookBody:
        """Classify a JSON object body that is not a ping."""
        pass

    @abstractmethod
    def decode_variant(self, variant: InboundWebhookBody) -> DecodedWebhook:
        """Decode a recognized, non-probe variant."""
        pass

    @staticmethod
    def parse_json(raw_body: bytes) -> Any:
        """
        Parse a JSON body.

        Raises:
            MalformedPayload: If the body is not valid JSON
        """
        try:
            return json.loads(raw_body)
        except (ValueError, UnicodeDecodeError) as e:
            raise MalformedPayload(f"Body is not valid JSON: {e}") from e

    @staticmethod
    def raw_for_log(raw_body: bytes) -> Any:
        """Best-effort representation of a body for the raw event log."""
        try:
            return json.loads(raw_body)
        except (ValueError, UnicodeDecodeError):
            return {"_raw": raw_body.decode("utf-8", errors="replace")}
