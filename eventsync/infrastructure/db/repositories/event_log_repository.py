"""Raw event log repository implementation using SQLAlchemy."""
from sqlalchemy import select
from sqlalchemy.orm import Session

from eventsync.domain.models.external_event import EventDomain
from eventsync.domain.models.raw_event_log import RawEventLogEntry
from eventsync.domain.ports.event_log_repo import RawEventLogRepository
from eventsync.infrastructure.db.models import (
    CalendarWebhookEventModel, PaymentWebhookEventModel, SubscriptionWebhookEventModel
)


class SQLAlchemyRawEventLogRepository(RawEventLogRepository):
    """SQLAlchemy implementation of RawEventLogRepository."""

    MODELS = {
        EventDomain.SUBSCRIPTION: SubscriptionWebhookEventModel,
        EventDomain.PAYMENT: PaymentWebhookEventModel,
        EventDomain.CALENDAR: CalendarWebhookEventModel,
    }

    def __init__(self, session: Session):
        """
        Initialize repository with database session.

        Args:
            session: SQLAlchemy session
        """
        self.session = session

    def append(self, entry: RawEventLogEntry) -> RawEventLogEntry:
        """Append a raw event log row; rolls the session back on failure."""
        ModelClass = self.MODELS[entry.domain]

        db_entry = ModelClass(
            notification_type=entry.event_type,
            subtype=entry.event_subtype,
            natural_key=entry.natural_key,
            raw_payload=entry.raw_payload,
            decoded_payload=entry.decoded_payload,
            signed_at=entry.signed_at,
            received_at=entry.received_at
        )
        self.session.add(db_entry)
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        self.session.refresh(db_entry)

        entry.id = db_entry.id
        return entry

    def list_by_natural_key(
        self,
        domain: EventDomain,
        natural_key: str
    ) -> list[RawEventLogEntry]:
        """List log rows for a natural key, oldest first."""
        ModelClass = self.MODELS[domain]
        stmt = (
            select(ModelClass)
            .where(ModelClass.natural_key == natural_key)
            .order_by(ModelClass.received_at)
        )
        rows = self.session.execute(stmt).scalars().all()
        return [self._to_domain(row, domain) for row in rows]

    @staticmethod
    def _to_domain(db_entry, domain: EventDomain) -> RawEventLogEntry:
        """Convert SQLAlchemy model to domain entry."""
        return RawEventLogEntry(
            id=db_entry.id,
            domain=domain,
            natural_key=db_entry.natural_key,
            event_type=db_entry.notification_type,
            event_subtype=db_entry.subtype,
            raw_payload=db_entry.raw_payload,
            decoded_payload=db_entry.decoded_payload,
            signed_at=db_entry.signed_at,
            received_at=db_entry.received_at
        )
