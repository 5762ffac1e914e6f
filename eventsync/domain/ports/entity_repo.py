"""TrackedEntity repository port interface."""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from eventsync.domain.models.external_event import EventDomain
from eventsync.domain.models.tracked_entity import TrackedEntity


class TrackedEntityRepository(ABC):
    """Repository interface for TrackedEntity, one table per event domain."""

    @abstractmethod
    def upsert(
        self,
        entity: TrackedEntity,
        only_if_newer: bool = False
    ) -> Optional[TrackedEntity]:
        """
        Insert or overwrite an entity keyed by (domain, natural_key) (UPSERT).

        Args:
            entity: Entity carrying the new state
            only_if_newer: Skip the overwrite unless the stored last_event_at
                is older than the entity's last_event_at

        Returns:
            Stored entity, or None when the ordering guard skipped the write
        """
        pass

    @abstractmethod
    def find_by_natural_key(
        self,
        domain: EventDomain,
        natural_key: str
    ) -> Optional[TrackedEntity]:
        """
        Find entity by natural key.

        Args:
            domain: Event domain
            natural_key: External stable identifier

        Returns:
            TrackedEntity if found, None otherwise
        """
        pass

    @abstractmethod
    def list_by_owner(
        self,
        domain: EventDomain,
        owner_id: str,
        exclude_statuses: Optional[frozenset] = None
    ) -> list[TrackedEntity]:
        """
        List entities of an owner.

        Args:
            domain: Event domain
            owner_id: Owning tenant
            exclude_statuses: Statuses to leave out

        Returns:
            List of entities
        """
        pass

    @abstractmethod
    def find_session_near(
        self,
        client_id: str,
        starts_at: datetime,
        window_minutes: int
    ) -> Optional[TrackedEntity]:
        """
        Find a calendar session of a client starting within +/- window_minutes.

        Args:
            client_id: Consulting client
            starts_at: Start time of the incoming session
            window_minutes: Tolerance in minutes on both sides

        Returns:
            Matching session if any, None otherwise
        """
        pass
