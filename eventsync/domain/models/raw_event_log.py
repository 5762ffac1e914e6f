"""RawEventLogEntry - append-only audit row for one inbound request."""
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from eventsync.domain.models.external_event import EventDomain, utcnow


@dataclass
class RawEventLogEntry:
    """
    Forensic record of an inbound webhook request.

    Rules:
    - One row per inbound request, including unparseable ones where possible
    - Never updated or deleted by the reconciler
    """
    id: Optional[uuid.UUID]
    domain: EventDomain
    natural_key: Optional[str]
    event_type: Optional[str]
    event_subtype: Optional[str]
    raw_payload: Any
    decoded_payload: Optional[Dict[str, Any]] = None
    signed_at: Optional[datetime] = None
    received_at: datetime = field(default_factory=utcnow)
