"""Raw event log repository port interface."""
from abc import ABC, abstractmethod

from eventsync.domain.models.external_event import EventDomain
from eventsync.domain.models.raw_event_log import RawEventLogEntry


class RawEventLogRepository(ABC):
    """Append-only repository for inbound webhook payloads."""

    @abstractmethod
    def append(self, entry: RawEventLogEntry) -> RawEventLogEntry:
        """
        Append a raw event log row.

        Args:
            entry: Entry to store

        Returns:
            Stored entry with ID
        """
        pass

    @abstractmethod
    def list_by_natural_key(
        self,
        domain: EventDomain,
        natural_key: str
    ) -> list[RawEventLogEntry]:
        """
        List log rows for a natural key, oldest first.

        Args:
            domain: Event domain
            natural_key: External stable identifier

        Returns:
            List of entries
        """
        pass
