"""TrackedEntity repository implementation."""
import logging
from datetime import datetime
from typing import Any, Dict, Optional
from sqlalchemy import select
from sqlalchemy.orm import Session

from eventsync.domain.models.external_event import EventDomain, to_naive_utc, utcnow
from eventsync.domain.models.tracked_entity import TrackedEntity
from eventsync.domain.ports.entity_repo import TrackedEntityRepository
from eventsync.domain.services.dedup_policy import DedupPolicy
from eventsync.infrastructure.db.models import (
    CalendarEntityModel, PaymentEntityModel, SubscriptionEntityModel
)
from eventsync.infrastructure.db.upsert import dialect_insert

logger = logging.getLogger(__name__)


def _parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 attribute into naive UTC."""
    if not value:
        return None
    if isinstance(value, datetime):
        return to_naive_utc(value)
    if value.endswith("Z"):
        value = value.replace("Z", "+00:00")
    return to_naive_utc(datetime.fromisoformat(value))


class SQLAlchemyTrackedEntityRepository(TrackedEntityRepository):
    """SQLAlchemy implementation of TrackedEntityRepository."""

    MODELS = {
        EventDomain.SUBSCRIPTION: SubscriptionEntityModel,
        EventDomain.PAYMENT: PaymentEntityModel,
        EventDomain.CALENDAR: CalendarEntityModel,
    }

    def __init__(self, session: Session):
        """
        Initialize repository.

        Args:
            session: Database session
        """
        self.session = session

    def upsert(
        self,
        entity: TrackedEntity,
        only_if_newer: bool = False
    ) -> Optional[TrackedEntity]:
        """
        Insert or overwrite an entity keyed by natural key (UPSERT).

        Relies on the database's atomic ON CONFLICT for concurrent writers.
        """
        model_cls = self._get_model_class(entity.domain)
        values = {
            'natural_key': entity.natural_key,
            'owner_id': entity.owner_id,
            'status': entity.status,
            'last_event_at': entity.last_event_at,
            'last_event_type': entity.last_event_type,
            'attributes': entity.attributes,
            'created_at': entity.created_at,
            'updated_at': utcnow(),
        }
        values.update(self._extract_columns(entity.domain, entity.attributes))

        insert_stmt = dialect_insert(self.session, model_cls).values(values)
        overwrite = {
            key: insert_stmt.excluded[key]
            for key in values
            if key not in ('natural_key', 'created_at')
        }
        stmt = insert_stmt.on_conflict_do_update(
            index_elements=['natural_key'],
            set_=overwrite,
            where=(model_cls.last_event_at < insert_stmt.excluded.last_event_at) if only_if_newer else None
        )

        result = self.session.execute(stmt)
        self.session.commit()

        if result.rowcount == 0:
            logger.info(
                f"Skipped stale {entity.domain.value} event for {entity.natural_key}: "
                f"stored state is newer than {entity.last_event_at.isoformat()}"
            )
            return None

        return self.find_by_natural_key(entity.domain, entity.natural_key)

    def find_by_natural_key(
        self,
        domain: EventDomain,
        natural_key: str
    ) -> Optional[TrackedEntity]:
        """
        Find entity by natural key.
        """
        model_cls = self._get_model_class(domain)
        stmt = select(model_cls).where(model_cls.natural_key == natural_key)

        result = self.session.execute(stmt).scalar_one_or_none()
        if not result:
            return None

        return self._map_to_domain(result, domain)

    def list_by_owner(
        self,
        domain: EventDomain,
        owner_id: str,
        exclude_statuses: Optional[frozenset] = None
    ) -> list[TrackedEntity]:
        """
        List entities of an owner.
        """
        model_cls = self._get_model_class(domain)
        stmt = select(model_cls).where(model_cls.owner_id == owner_id)

        if exclude_statuses:
            stmt = stmt.where(model_cls.status.not_in(list(exclude_statuses)))

        results = self.session.execute(stmt).scalars().all()
        return [self._map_to_domain(r, domain) for r in results]

    def find_session_near(
        self,
        client_id: str,
        starts_at: datetime,
        window_minutes: int
    ) -> Optional[TrackedEntity]:
        """
        Find a calendar session of a client starting within +/- window_minutes.
        """
        lower, upper = DedupPolicy.window_bounds(starts_at, window_minutes)
        stmt = select(CalendarEntityModel).where(
            CalendarEntityModel.client_id == client_id,
            CalendarEntityModel.session_date >= lower,
            CalendarEntityModel.session_date <= upper
        ).limit(1)

        result = self.session.execute(stmt).scalars().first()
        if not result:
            return None

        return self._map_to_domain(result, EventDomain.CALENDAR)

    def _get_model_class(self, domain: EventDomain):
        model_cls = self.MODELS.get(domain)
        if model_cls is None:
            raise ValueError(f"Unsupported event domain: {domain}")
        return model_cls

    @staticmethod
    def _extract_columns(domain: EventDomain, attributes: Dict[str, Any]) -> Dict[str, Any]:
        """Denormalize queryable attributes into their own columns."""
        if domain == EventDomain.SUBSCRIPTION:
            return {'product_id': attributes.get("product_id")}
        if domain == EventDomain.PAYMENT:
            email = attributes.get("customer_email")
            return {'customer_email': email.lower() if email else None}
        if domain == EventDomain.CALENDAR:
            return {
                'client_id': attributes.get("client_id"),
                'session_date': _parse_datetime(attributes.get("session_date")),
            }
        return {}

    @staticmethod
    def _map_to_domain(model, domain: EventDomain) -> TrackedEntity:
        return TrackedEntity(
            id=model.id,
            domain=domain,
            natural_key=model.natural_key,
            owner_id=model.owner_id,
            status=model.status,
            last_event_at=model.last_event_at,
            last_event_type=model.last_event_type,
            attributes=model.attributes or {},
            created_at=model.created_at,
            updated_at=model.updated_at
        )
