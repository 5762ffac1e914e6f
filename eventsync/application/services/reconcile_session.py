"""Calendar session reconciler - calendar events into consulting sessions."""
import logging
from typing import Optional

from eventsync.application.services.reconcile_event import EventReconciler
from eventsync.domain.errors import UnresolvedOwner
from eventsync.domain.models.external_event import EventDomain, ExternalEvent
from eventsync.domain.models.reconciler_config import ReconcilerConfig
from eventsync.domain.models.tracked_entity import TrackedEntity
from eventsync.domain.ports.entity_repo import TrackedEntityRepository
from eventsync.domain.ports.event_log_repo import RawEventLogRepository

logger = logging.getLogger(__name__)


class CalendarSessionReconciler(EventReconciler):
    """
    Reconciler for consulting sessions pulled from one consultant's calendar.

    A calendar event is a duplicate when a different session of the same
    client already starts within the configured window.
    """

    domain = EventDomain.CALENDAR

    def __init__(
        self,
        entity_repo: TrackedEntityRepository,
        event_log_repo: RawEventLogRepository,
        config: ReconcilerConfig,
        consultant_id: str
    ):
        super().__init__(entity_repo, event_log_repo, config)
        self.consultant_id = consultant_id

    def resolve_owner(self, event: ExternalEvent) -> str:
        if not event.attributes.get("client_id"):
            raise UnresolvedOwner(f"Calendar event {event.natural_key} has no client")
        return self.consultant_id

    def find_duplicate(self, event: ExternalEvent) -> Optional[TrackedEntity]:
        # Re-syncing the same calendar event updates it in place
        if self.entity_repo.find_by_natural_key(self.domain, event.natural_key) is not None:
            return None
        return self.entity_repo.find_session_near(
            event.attributes["client_id"],
            event.occurred_at,
            self.config.session_dedup_window_minutes
        )

    async def apply_side_effect(self, event: ExternalEvent, entity: TrackedEntity) -> Optional[str]:
        logger.info(f"Session {entity.attributes.get('title')} synced as {entity.status}")
        return None
