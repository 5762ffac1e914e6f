"""Calendar account repository implementation using SQLAlchemy."""
from typing import Optional
from sqlalchemy import select
from sqlalchemy.orm import Session

from eventsync.domain.models.integration_account import (
    Credentials, IntegrationAccount, IntegrationType
)
from eventsync.domain.ports.account_repo import IntegrationAccountRepository
from eventsync.infrastructure.db.models import IntegrationAccountModel


class SQLAlchemyIntegrationAccountRepository(IntegrationAccountRepository):
    """SQLAlchemy implementation of IntegrationAccountRepository."""

    def __init__(self, session: Session):
        self.session = session

    def save(self, account: IntegrationAccount) -> IntegrationAccount:
        """Persist tokens and status; one row per (integration_type, owner_id)."""
        db_account = self._find_row(account.integration_type, account.owner_id)
        if db_account is None:
            db_account = IntegrationAccountModel(
                integration_type=account.integration_type,
                owner_id=account.owner_id,
                created_at=account.created_at
            )
            self.session.add(db_account)

        credentials = account.credentials
        db_account.access_token = credentials.access_token
        db_account.refresh_token = credentials.refresh_token
        db_account.token_expires_at = credentials.expires_at
        db_account.token_type = credentials.token_type
        db_account.status = account.status
        db_account.updated_at = account.updated_at

        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        self.session.refresh(db_account)

        return self._to_domain(db_account)

    def find_by_owner(
        self,
        integration_type: IntegrationType,
        owner_id: str
    ) -> Optional[IntegrationAccount]:
        db_account = self._find_row(integration_type, owner_id)
        return self._to_domain(db_account) if db_account else None

    def list_all(self, integration_type: IntegrationType) -> list[IntegrationAccount]:
        stmt = (
            select(IntegrationAccountModel)
            .where(IntegrationAccountModel.integration_type == integration_type)
            .order_by(IntegrationAccountModel.created_at)
        )
        return [self._to_domain(row) for row in self.session.execute(stmt).scalars().all()]

    def _find_row(self, integration_type: IntegrationType, owner_id: str):
        stmt = select(IntegrationAccountModel).where(
            IntegrationAccountModel.integration_type == integration_type,
            IntegrationAccountModel.owner_id == owner_id
        )
        return self.session.execute(stmt).scalar_one_or_none()

    @staticmethod
    def _to_domain(db_account) -> IntegrationAccount:
        return IntegrationAccount(
            id=db_account.id,
            integration_type=db_account.integration_type,
            owner_id=db_account.owner_id,
            credentials=Credentials(
                access_token=db_account.access_token,
                refresh_token=db_account.refresh_token,
                expires_at=db_account.token_expires_at,
                token_type=db_account.token_type
            ),
            status=db_account.status,
            created_at=db_account.created_at,
            updated_at=db_account.updated_at
        )
