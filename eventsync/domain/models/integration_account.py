"""IntegrationAccount aggregate root - an owner's connected calendar account."""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from eventsync.domain.models.external_event import utcnow


class IntegrationType(str, Enum):
    """Pull-based sources read with an owner's stored OAuth tokens."""
    GOOGLE_CALENDAR = "google_calendar"


class AccountStatus(str, Enum):
    """Connection state of a calendar account."""
    ACTIVE = "active"
    ERROR = "error"
    DISCONNECTED = "disconnected"


@dataclass
class Credentials:
    """Google OAuth token pair; expires_at is naive UTC."""
    access_token: str
    refresh_token: str
    expires_at: datetime
    token_type: str = "Bearer"

    def expires_within(self, minutes: int) -> bool:
        return utcnow() + timedelta(minutes=minutes) >= self.expires_at


@dataclass
class IntegrationAccount:
    """
    One owner's Google Calendar connection.

    Invariants:
    - at most one account per (integration_type, owner_id)
    - a refresh token is always present; Google only sends it on consent

    A failed refresh marks the account ERROR; the next successful refresh
    brings it back to ACTIVE. DISCONNECTED accounts are skipped by the
    periodic sync.
    """
    id: Optional[uuid.UUID]
    integration_type: IntegrationType
    owner_id: str
    credentials: Credentials
    status: AccountStatus
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        if not self.owner_id:
            raise ValueError("owner_id cannot be empty")
        if not self.credentials.refresh_token:
            raise ValueError("refresh_token cannot be empty")

    @property
    def syncable(self) -> bool:
        return self.status != AccountStatus.DISCONNECTED

    def update_credentials(self, credentials: Credentials) -> None:
        """
        Store refreshed credentials and reactivate the account.

        Google rotates the refresh token only occasionally; when the new
        credentials carry none the stored one is kept.

        Args:
            credentials: Credentials from the token endpoint
        """
        if not credentials.refresh_token:
            credentials.refresh_token = self.credentials.refresh_token
        self.credentials = credentials
        self.status = AccountStatus.ACTIVE
        self.updated_at = utcnow()

    def mark_error(self) -> None:
        """Record a failed refresh."""
        self.status = AccountStatus.ERROR
        self.updated_at = utcnow()
