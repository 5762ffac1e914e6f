"""ExternalEvent value object and the inbound webhook body variants."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union


class EventDomain(str, Enum):
    """Event sources reconciled by the service."""
    SUBSCRIPTION = "subscription"
    PAYMENT = "payment"
    CALENDAR = "calendar"


def to_naive_utc(value: datetime) -> datetime:
    """Normalize a datetime to naive UTC, the form stored in the database."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def utcnow() -> datetime:
    """Current time as naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class ExternalEvent:
    """
    Normalized event decoded from one inbound request.

    Rules:
    - Constructed once per inbound request, never mutated
    - natural_key is stable across retries and duplicates from the source
    - occurred_at is the source's timestamp, not arrival time
    """
    domain: EventDomain
    natural_key: str
    event_type: str
    event_subtype: Optional[str]
    occurred_at: datetime
    attributes: Dict[str, Any] = field(default_factory=dict)
    decoded_payload: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Validate invariants."""
        if not self.natural_key:
            raise ValueError("natural_key cannot be empty")
        if not self.event_type:
            raise ValueError("event_type cannot be empty")
        object.__setattr__(self, "occurred_at", to_naive_utc(self.occurred_at))


@dataclass(frozen=True)
class Probe:
    """Connectivity probe from the external system; acknowledged, never reconciled."""
    domain: EventDomain
    probe_id: Optional[str]
    kind: str
    decoded_payload: Dict[str, Any] = field(default_factory=dict)


# ----------------------------------------------------------------------
# Inbound body variants (tagged union produced by the body classifier)
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class SignedEnvelope:
    """Body carrying a signed token envelope (App Store ``signedPayload``)."""
    token: str
    body: Dict[str, Any]


@dataclass(frozen=True)
class FlatEvent:
    """Body carrying a flat JSON event (payment webhook)."""
    data: Dict[str, Any]
    body: Dict[str, Any]


@dataclass(frozen=True)
class PingProbe:
    """Body shaped as a connectivity ping."""
    probe_id: Optional[str]
    body: Dict[str, Any]


@dataclass(frozen=True)
class Malformed:
    """Body matching no recognized shape."""
    reason: str
    body: Any = None


InboundWebhookBody = Union[SignedEnvelope, FlatEvent, PingProbe, Malformed]

DecodedWebhook = Union[ExternalEvent, Probe]
