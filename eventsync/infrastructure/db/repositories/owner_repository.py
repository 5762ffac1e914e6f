"""Owner directory and consulting client repositories using SQLAlchemy."""
from typing import Optional
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from eventsync.domain.models.owner import ConsultingClient, FollowUpSettings, Owner
from eventsync.domain.ports.owner_repo import ConsultingClientRepository, OwnerDirectory
from eventsync.infrastructure.db.models import (
    ConsultingClientModel, FollowUpSettingsModel, OwnerModel
)


class SQLAlchemyOwnerDirectory(OwnerDirectory):
    """SQLAlchemy implementation of OwnerDirectory."""

    def __init__(self, session: Session):
        self.session = session

    def find_by_id(self, owner_id: str) -> Optional[Owner]:
        db_owner = self.session.get(OwnerModel, owner_id)
        return self._to_domain(db_owner) if db_owner else None

    def find_by_app_account_token(self, token: str) -> Optional[Owner]:
        stmt = select(OwnerModel).where(OwnerModel.app_account_token == token)
        db_owner = self.session.execute(stmt).scalars().first()
        return self._to_domain(db_owner) if db_owner else None

    def find_admin(self) -> Optional[Owner]:
        stmt = (
            select(OwnerModel)
            .where(OwnerModel.role == "admin")
            .order_by(OwnerModel.created_at)
            .limit(1)
        )
        db_owner = self.session.execute(stmt).scalars().first()
        return self._to_domain(db_owner) if db_owner else None

    def list_follow_up_settings(self) -> list[FollowUpSettings]:
        rows = self.session.execute(select(FollowUpSettingsModel)).scalars().all()
        return [
            FollowUpSettings(
                owner_id=row.owner_id,
                days_without_interaction=row.days_without_interaction,
                notify_in_app=row.notify_in_app,
                notify_whatsapp=row.notify_whatsapp
            )
            for row in rows
        ]

    @staticmethod
    def _to_domain(db_owner) -> Owner:
        return Owner(
            id=db_owner.id,
            email=db_owner.email,
            role=db_owner.role,
            personal_whatsapp=db_owner.personal_whatsapp,
            app_account_token=db_owner.app_account_token
        )


class SQLAlchemyConsultingClientRepository(ConsultingClientRepository):
    """SQLAlchemy implementation of ConsultingClientRepository."""

    def __init__(self, session: Session):
        self.session = session

    def find_by_email(self, owner_id: str, email: str) -> Optional[ConsultingClient]:
        stmt = select(ConsultingClientModel).where(
            ConsultingClientModel.owner_id == owner_id,
            func.lower(ConsultingClientModel.email) == email.lower()
        )
        db_client = self.session.execute(stmt).scalars().first()
        return self._to_domain(db_client) if db_client else None

    def list_by_owner(self, owner_id: str) -> list[ConsultingClient]:
        stmt = select(ConsultingClientModel).where(ConsultingClientModel.owner_id == owner_id)
        return [self._to_domain(c) for c in self.session.execute(stmt).scalars().all()]

    @staticmethod
    def _to_domain(db_client) -> ConsultingClient:
        return ConsultingClient(
            id=db_client.id,
            owner_id=db_client.owner_id,
            full_name=db_client.full_name,
            email=db_client.email
        )
