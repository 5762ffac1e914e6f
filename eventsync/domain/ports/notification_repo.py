"""Notification and interaction repository port interfaces."""
from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Optional

from eventsync.domain.models.external_event import EventDomain
from eventsync.domain.models.notification import Interaction, Notification, NotificationChannel


class NotificationRepository(ABC):
    """Repository interface for owner notifications."""

    @abstractmethod
    def create(self, notification: Notification) -> Notification:
        """
        Store a notification.

        Args:
            notification: Notification to store

        Returns:
            Stored notification with ID
        """
        pass

    @abstractmethod
    def exists_for_day(
        self,
        domain: EventDomain,
        natural_key: str,
        kind: str,
        day: date,
        channel: NotificationChannel = NotificationChannel.IN_APP
    ) -> bool:
        """
        Check whether a notification was already created on a calendar day.

        Args:
            domain: Event domain
            natural_key: External stable identifier
            kind: Notification kind
            day: Calendar day (UTC)
            channel: Delivery channel the check is scoped to

        Returns:
            True if one exists
        """
        pass

    @abstractmethod
    def list_by_natural_key(self, domain: EventDomain, natural_key: str) -> list[Notification]:
        """List notifications for a key, oldest first."""
        pass


class InteractionRepository(ABC):
    """Repository interface for payment interactions."""

    @abstractmethod
    def create(self, interaction: Interaction) -> Interaction:
        """Store an interaction."""
        pass

    @abstractmethod
    def exists(self, natural_key: str, event_type: str) -> bool:
        """Whether an interaction for this key and event type was recorded."""
        pass

    @abstractmethod
    def latest_for(self, natural_key: str) -> Optional[datetime]:
        """Timestamp of the most recent interaction for a key, if any."""
        pass
