"""Calendar session sync endpoints."""
from typing import Optional

import httpx
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from eventsync.api.dependencies import get_http_transport
from eventsync.application.services.sync_calendar_sessions import CalendarSessionSyncService
from eventsync.core.config import settings
from eventsync.core.database import get_db
from eventsync.infrastructure.db.repositories.account_repository import (
    SQLAlchemyIntegrationAccountRepository
)
from eventsync.infrastructure.db.repositories.entity_repository import SQLAlchemyTrackedEntityRepository
from eventsync.infrastructure.db.repositories.event_log_repository import SQLAlchemyRawEventLogRepository
from eventsync.infrastructure.db.repositories.owner_repository import (
    SQLAlchemyConsultingClientRepository
)
from eventsync.infrastructure.integrations.google_calendar.oauth import GoogleOAuthClient

router = APIRouter(prefix="/calendar", tags=["calendar"])


class CalendarSyncRequest(BaseModel):
    """Request body for a calendar session sync."""
    clientEmail: Optional[str] = None
    consultantId: Optional[str] = None
    syncAll: bool = False


@router.post("/sync")
async def sync_calendar_sessions(
    request: CalendarSyncRequest,
    db: Session = Depends(get_db),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_http_transport)
):
    """
    Pull calendar events and reconcile them into consulting sessions.

    Args:
        request: Client e-mail, consultant and sync-all flag

    Returns:
        Sync summary; a missing connection or unknown client is reported
        with "error" and synced=0
    """
    service = CalendarSessionSyncService(
        account_repo=SQLAlchemyIntegrationAccountRepository(db),
        client_repo=SQLAlchemyConsultingClientRepository(db),
        entity_repo=SQLAlchemyTrackedEntityRepository(db),
        event_log_repo=SQLAlchemyRawEventLogRepository(db),
        config=settings.reconciler_config(),
        default_consultant_id=settings.default_consultant_id,
        oauth_client=GoogleOAuthClient(transport=transport),
        transport=transport
    )

    return await service.sync(
        consultant_id=request.consultantId,
        client_email=request.clientEmail,
        sync_all=request.syncAll
    )
