"""Inbound webhook endpoints."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from eventsync.api.dependencies import get_message_sender
from eventsync.application.services.ingest_webhook import WebhookIngestionService
from eventsync.application.services.reconcile_payment import PaymentReconciler
from eventsync.application.services.reconcile_subscription import SubscriptionReconciler
from eventsync.core.config import settings
from eventsync.core.database import get_db
from eventsync.domain.ports.message_sender import MessageSender
from eventsync.infrastructure.db.repositories.entity_repository import SQLAlchemyTrackedEntityRepository
from eventsync.infrastructure.db.repositories.event_log_repository import SQLAlchemyRawEventLogRepository
from eventsync.infrastructure.db.repositories.notification_repository import (
    SQLAlchemyInteractionRepository, SQLAlchemyNotificationRepository
)
from eventsync.infrastructure.db.repositories.owner_repository import SQLAlchemyOwnerDirectory
from eventsync.infrastructure.integrations.appstore.decoder import AppStoreNotificationDecoder
from eventsync.infrastructure.integrations.payments.decoder import PaymentWebhookDecoder

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/appstore")
async def appstore_webhook(request: Request, db: Session = Depends(get_db)):
    """
    Receive an App Store Server Notification V2.

    Returns:
        Acknowledgment with reconciliation diagnostics
    """
    config = settings.reconciler_config()
    reconciler = SubscriptionReconciler(
        entity_repo=SQLAlchemyTrackedEntityRepository(db),
        event_log_repo=SQLAlchemyRawEventLogRepository(db),
        config=config,
        owner_directory=SQLAlchemyOwnerDirectory(db),
        notification_repo=SQLAlchemyNotificationRepository(db)
    )
    service = WebhookIngestionService(
        AppStoreNotificationDecoder(max_depth=config.decode_max_depth), reconciler
    )

    response = await service.ingest(await request.body())
    return JSONResponse(status_code=response.status_code, content=response.body)


@router.post("/payments")
async def payment_webhook(
    request: Request,
    db: Session = Depends(get_db),
    message_sender: Optional[MessageSender] = Depends(get_message_sender),
    x_kiwify_webhook_token: Optional[str] = Header(None)
):
    """
    Receive a payment-provider order webhook.

    Returns:
        Acknowledgment with reconciliation diagnostics
    """
    if settings.payment_webhook_token and x_kiwify_webhook_token != settings.payment_webhook_token:
        logger.warning("Payment webhook rejected: invalid token")
        raise HTTPException(status_code=401, detail="Invalid webhook token")

    reconciler = PaymentReconciler(
        entity_repo=SQLAlchemyTrackedEntityRepository(db),
        event_log_repo=SQLAlchemyRawEventLogRepository(db),
        config=settings.reconciler_config(),
        owner_directory=SQLAlchemyOwnerDirectory(db),
        notification_repo=SQLAlchemyNotificationRepository(db),
        interaction_repo=SQLAlchemyInteractionRepository(db),
        message_sender=message_sender
    )
    service = WebhookIngestionService(PaymentWebhookDecoder(), reconciler)

    response = await service.ingest(await request.body())
    return JSONResponse(status_code=response.status_code, content=response.body)
