"""Event reconciler application service - one decoded event in, one entity upsert out."""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from eventsync.domain.errors import SideEffectFailure, UnresolvedOwner
from eventsync.domain.models.external_event import EventDomain, ExternalEvent, utcnow
from eventsync.domain.models.notification import Notification
from eventsync.domain.models.raw_event_log import RawEventLogEntry
from eventsync.domain.models.reconciler_config import ReconcilerConfig
from eventsync.domain.models.status import UNKNOWN_STATUS
from eventsync.domain.models.tracked_entity import TrackedEntity
from eventsync.domain.ports.entity_repo import TrackedEntityRepository
from eventsync.domain.ports.event_log_repo import RawEventLogRepository
from eventsync.domain.ports.notification_repo import NotificationRepository
from eventsync.domain.services.dedup_policy import DedupPolicy
from eventsync.domain.services.state_mapper import map_status

logger = logging.getLogger(__name__)


class ReconcileAction:
    """Outcome labels reported back to the caller."""
    PROCESSED = "processed"
    UNKNOWN_TYPE = "unknown_type"
    IGNORED = "ignored"
    SKIPPED_STALE = "skipped_stale"
    DUPLICATE = "duplicate"
    OWNER_NOT_FOUND = "owner_not_found"
    PROBE = "probe"


@dataclass
class ReconciliationResult:
    """Diagnostics of one reconciliation; success is False only for malformed input."""
    success: bool
    action: str
    domain: EventDomain
    natural_key: Optional[str] = None
    event_type: Optional[str] = None
    status: Optional[str] = None
    entity_id: Optional[str] = None
    side_effect: Optional[str] = None
    message: Optional[str] = None

    def to_response(self) -> dict:
        """Response body: success flag plus the diagnostics that are set."""
        body = {"success": self.success, "action": self.action, "domain": self.domain.value}
        for key in ("natural_key", "event_type", "status", "entity_id", "side_effect", "message"):
            value = getattr(self, key)
            if value is not None:
                body[key] = value
        return body


class EventReconciler(ABC):
    """
    Generic reconciler, instantiated once per event source.

    For each decoded event:
    1. Append the raw event log row (best effort)
    2. Resolve the owning tenant; an unknown owner is a soft failure
    3. Upsert the tracked entity keyed by natural key with the mapped status
    4. Run the side effect selected by the event type; failures are logged

    Subclasses supply owner resolution and side effects.
    """

    domain: EventDomain

    def __init__(
        self,
        entity_repo: TrackedEntityRepository,
        event_log_repo: RawEventLogRepository,
        config: ReconcilerConfig,
        notification_repo: Optional[NotificationRepository] = None
    ):
        """
        Initialize reconciler with repositories and explicit configuration.

        Args:
            entity_repo: Tracked entity repository
            event_log_repo: Raw event log repository
            config: Reconciler configuration
            notification_repo: Notification repository for side effects
        """
        self.entity_repo = entity_repo
        self.event_log_repo = event_log_repo
        self.config = config
        self.notification_repo = notification_repo

    async def reconcile(self, event: ExternalEvent, raw_payload: Any = None) -> ReconciliationResult:
        """
        Reconcile one decoded event into the entity table.

        Args:
            event: Decoded external event
            raw_payload: Body as received, for the raw event log

        Returns:
            ReconciliationResult (always success=True)
        """
        self.record_raw(
            natural_key=event.natural_key,
            event_type=event.event_type,
            event_subtype=event.event_subtype,
            raw_payload=raw_payload if raw_payload is not None else event.decoded_payload,
            decoded_payload=event.decoded_payload,
            signed_at=event.occurred_at
        )

        result = ReconciliationResult(
            success=True,
            action=ReconcileAction.PROCESSED,
            domain=self.domain,
            natural_key=event.natural_key,
            event_type=event.event_type
        )

        if not self.should_track(event):
            logger.info(f"{self.domain.value} event {event.event_type} for {event.natural_key} logged only")
            result.action = ReconcileAction.IGNORED
            return result

        try:
            owner_id = self.resolve_owner(event)
        except UnresolvedOwner as e:
            logger.warning(f"{str(e)}; acknowledging {event.event_type} without tracking")
            result.action = ReconcileAction.OWNER_NOT_FOUND
            result.message = "Owner not found"
            return result

        duplicate = self.find_duplicate(event)
        if duplicate is not None:
            logger.info(
                f"{self.domain.value} event {event.natural_key} duplicates "
                f"{duplicate.natural_key}; skipped"
            )
            result.action = ReconcileAction.DUPLICATE
            result.entity_id = str(duplicate.id)
            result.status = duplicate.status
            return result

        status = map_status(self.domain, event.event_type, event.event_subtype)

        if status == UNKNOWN_STATUS:
            existing = self.entity_repo.find_by_natural_key(self.domain, event.natural_key)
            if existing is not None:
                logger.warning(
                    f"Unknown {self.domain.value} event type {event.event_type} "
                    f"({event.event_subtype}); {event.natural_key} left at {existing.status}"
                )
                result.action = ReconcileAction.UNKNOWN_TYPE
                result.status = existing.status
                result.entity_id = str(existing.id)
                return result
            logger.warning(
                f"Unknown {self.domain.value} event type {event.event_type}; "
                f"tracking {event.natural_key} as {UNKNOWN_STATUS}"
            )

        entity = self.entity_repo.upsert(
            TrackedEntity.from_event(event, owner_id, status),
            only_if_newer=self.config.enforce_event_ordering
        )
        if entity is None:
            result.action = ReconcileAction.SKIPPED_STALE
            return result

        result.status = entity.status
        result.entity_id = str(entity.id)

        if status == UNKNOWN_STATUS:
            result.action = ReconcileAction.UNKNOWN_TYPE
            return result

        logger.info(
            f"Reconciled {self.domain.value} {event.natural_key}: "
            f"{event.event_type} -> {entity.status}"
        )

        try:
            result.side_effect = await self._run_side_effect(event, entity)
        except SideEffectFailure as e:
            logger.error(f"Side effect failed for {self.domain.value} {event.natural_key}: {str(e)}")
            result.side_effect = "failed"

        return result

    def record_raw(
        self,
        natural_key: Optional[str],
        event_type: Optional[str],
        raw_payload: Any,
        event_subtype: Optional[str] = None,
        decoded_payload: Optional[dict] = None,
        signed_at: Optional[datetime] = None
    ) -> Optional[RawEventLogEntry]:
        """
        Append a raw event log row. Failures are logged and swallowed.

        Returns:
            Stored entry, or None when the write failed
        """
        entry = RawEventLogEntry(
            id=None,
            domain=self.domain,
            natural_key=natural_key,
            event_type=event_type,
            event_subtype=event_subtype,
            raw_payload=raw_payload,
            decoded_payload=decoded_payload,
            signed_at=signed_at
        )
        try:
            return self.event_log_repo.append(entry)
        except Exception as e:
            logger.error(f"Failed to write {self.domain.value} raw event log: {str(e)}")
            return None

    def should_track(self, event: ExternalEvent) -> bool:
        """Whether the event updates a tracked entity or is only logged."""
        return True

    def find_duplicate(self, event: ExternalEvent) -> Optional[TrackedEntity]:
        """Another entity this event duplicates under a different natural key."""
        return None

    @abstractmethod
    def resolve_owner(self, event: ExternalEvent) -> str:
        """
        Resolve the tenant owning the event's entity.

        Returns:
            Owner ID

        Raises:
            UnresolvedOwner: If no tenant matches
        """
        pass

    @abstractmethod
    async def apply_side_effect(self, event: ExternalEvent, entity: TrackedEntity) -> Optional[str]:
        """
        Run the side effect selected by the event type.

        Returns:
            Label of the side effect performed, None when nothing ran
        """
        pass

    async def _run_side_effect(self, event: ExternalEvent, entity: TrackedEntity) -> Optional[str]:
        """Run apply_side_effect, reporting any failure as SideEffectFailure."""
        try:
            return await self.apply_side_effect(event, entity)
        except SideEffectFailure:
            raise
        except Exception as e:
            raise SideEffectFailure(f"{event.event_type}: {type(e).__name__}: {str(e)}") from e

    def notify_once(
        self,
        owner_id: str,
        natural_key: str,
        kind: str,
        title: str,
        message: str,
        now: Optional[datetime] = None
    ) -> Optional[Notification]:
        """
        Create a notification unless one of this kind exists for the key today.

        Returns:
            Created notification, or None when already notified today
        """
        if self.notification_repo is None:
            return None
        now = now or utcnow()
        day = DedupPolicy.notification_day(now)
        if self.notification_repo.exists_for_day(self.domain, natural_key, kind, day):
            logger.info(f"Notification {kind} for {natural_key} already sent on {day}")
            return None
        return self.notification_repo.create(Notification(
            id=None,
            owner_id=owner_id,
            domain=self.domain,
            natural_key=natural_key,
            kind=kind,
            title=title,
            message=message,
            created_at=now
        ))
