"""Notification - side-effect record created by reconcilers and checkers."""
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from eventsync.domain.models.external_event import EventDomain, utcnow


class NotificationChannel(str, Enum):
    """Where a notification was delivered."""
    IN_APP = "in_app"
    WHATSAPP = "whatsapp"


@dataclass
class Notification:
    """
    Notification delivered to an owner.

    At most one notification per (domain, natural_key, kind, channel) per
    calendar day. WhatsApp rows record that the message went out and are not
    shown in the in-app feed.
    """
    id: Optional[uuid.UUID]
    owner_id: str
    domain: EventDomain
    natural_key: str
    kind: str
    title: str
    message: str
    created_at: datetime = field(default_factory=utcnow)
    channel: NotificationChannel = NotificationChannel.IN_APP


@dataclass
class Interaction:
    """Activity row attached to a payment entity (sale, refund, cart...)."""
    id: Optional[uuid.UUID]
    natural_key: str
    event_type: str
    interaction_type: str
    description: str
    occurred_at: datetime = field(default_factory=utcnow)
