"""TrackedEntity - persisted current state of an externally-owned object."""
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from eventsync.domain.models.external_event import EventDomain, ExternalEvent, utcnow


@dataclass
class TrackedEntity:
    """
    Entity holding the latest known state of an external object.

    Rules:
    - (domain, natural_key) is unique; writes are upserts keyed on it
    - status is a pure function of the latest event, never of the previous status
    - last_event_at / last_event_type record provenance of the latest update
    """
    id: Optional[uuid.UUID]
    domain: EventDomain
    natural_key: str
    owner_id: str
    status: str
    last_event_at: datetime
    last_event_type: str
    attributes: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        """Validate invariants."""
        if not self.natural_key:
            raise ValueError("natural_key cannot be empty")
        if not self.owner_id:
            raise ValueError("owner_id cannot be empty")

    @classmethod
    def from_event(cls, event: ExternalEvent, owner_id: str, status: str) -> "TrackedEntity":
        """
        Build a new entity from a decoded event.

        Args:
            event: Decoded external event
            owner_id: Resolved owning tenant
            status: Status produced by the state mapper

        Returns:
            New, unsaved TrackedEntity
        """
        return cls(
            id=None,
            domain=event.domain,
            natural_key=event.natural_key,
            owner_id=owner_id,
            status=status,
            last_event_at=event.occurred_at,
            last_event_type=event.event_type,
            attributes=dict(event.attributes)
        )
