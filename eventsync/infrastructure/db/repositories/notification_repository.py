"""Notification and interaction repository implementations using SQLAlchemy."""
from datetime import date, datetime
from typing import Optional
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from eventsync.domain.models.external_event import EventDomain
from eventsync.domain.models.notification import Interaction, Notification, NotificationChannel
from eventsync.domain.ports.notification_repo import (
    InteractionRepository, NotificationRepository
)
from eventsync.domain.services.dedup_policy import DedupPolicy
from eventsync.infrastructure.db.models import InteractionModel, NotificationModel


class SQLAlchemyNotificationRepository(NotificationRepository):
    """SQLAlchemy implementation of NotificationRepository."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, notification: Notification) -> Notification:
        db_notification = NotificationModel(
            owner_id=notification.owner_id,
            domain=notification.domain.value,
            natural_key=notification.natural_key,
            kind=notification.kind,
            title=notification.title,
            message=notification.message,
            channel=notification.channel.value,
            created_at=notification.created_at
        )
        self.session.add(db_notification)
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        self.session.refresh(db_notification)

        notification.id = db_notification.id
        return notification

    def exists_for_day(
        self,
        domain: EventDomain,
        natural_key: str,
        kind: str,
        day: date,
        channel: NotificationChannel = NotificationChannel.IN_APP
    ) -> bool:
        start, end = DedupPolicy.day_bounds(day)
        stmt = select(NotificationModel.id).where(
            NotificationModel.domain == domain.value,
            NotificationModel.natural_key == natural_key,
            NotificationModel.kind == kind,
            NotificationModel.channel == channel.value,
            NotificationModel.created_at >= start,
            NotificationModel.created_at < end
        ).limit(1)
        return self.session.execute(stmt).first() is not None

    def list_by_natural_key(self, domain: EventDomain, natural_key: str) -> list[Notification]:
        """List notifications for a key, oldest first."""
        stmt = select(NotificationModel).where(
            NotificationModel.domain == domain.value,
            NotificationModel.natural_key == natural_key
        ).order_by(NotificationModel.created_at)
        return [
            Notification(
                id=row.id,
                owner_id=row.owner_id,
                domain=EventDomain(row.domain),
                natural_key=row.natural_key,
                kind=row.kind,
                title=row.title,
                message=row.message,
                created_at=row.created_at,
                channel=NotificationChannel(row.channel)
            )
            for row in self.session.execute(stmt).scalars().all()
        ]


class SQLAlchemyInteractionRepository(InteractionRepository):
    """SQLAlchemy implementation of InteractionRepository."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, interaction: Interaction) -> Interaction:
        db_interaction = InteractionModel(
            natural_key=interaction.natural_key,
            event_type=interaction.event_type,
            interaction_type=interaction.interaction_type,
            description=interaction.description,
            occurred_at=interaction.occurred_at
        )
        self.session.add(db_interaction)
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        self.session.refresh(db_interaction)

        interaction.id = db_interaction.id
        return interaction

    def exists(self, natural_key: str, event_type: str) -> bool:
        stmt = select(InteractionModel.id).where(
            InteractionModel.natural_key == natural_key,
            InteractionModel.event_type == event_type
        ).limit(1)
        return self.session.execute(stmt).first() is not None

    def latest_for(self, natural_key: str) -> Optional[datetime]:
        stmt = select(func.max(InteractionModel.occurred_at)).where(
            InteractionModel.natural_key == natural_key
        )
        return self.session.execute(stmt).scalar()
