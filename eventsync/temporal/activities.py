"""Temporal activities - idempotent, retriable operations."""
import logging
from temporalio import activity

from eventsync.application.services.check_follow_ups import FollowUpCheckService
from eventsync.application.services.sync_calendar_sessions import CalendarSessionSyncService
from eventsync.core.config import settings
from eventsync.core.database import SessionLocal
from eventsync.infrastructure.db.repositories.account_repository import (
    SQLAlchemyIntegrationAccountRepository
)
from eventsync.infrastructure.db.repositories.entity_repository import SQLAlchemyTrackedEntityRepository
from eventsync.infrastructure.db.repositories.event_log_repository import SQLAlchemyRawEventLogRepository
from eventsync.infrastructure.db.repositories.notification_repository import (
    SQLAlchemyInteractionRepository, SQLAlchemyNotificationRepository
)
from eventsync.infrastructure.db.repositories.owner_repository import (
    SQLAlchemyConsultingClientRepository, SQLAlchemyOwnerDirectory
)
from eventsync.infrastructure.integrations.whatsapp.client import ZapiMessageSender

logger = logging.getLogger(__name__)


@activity.defn
async def sync_calendar_sessions() -> dict:
    """
    Activity to sync calendar sessions of every connected owner.

    Re-running is safe: sessions are upserted by calendar event ID.

    Returns:
        Per-owner sync results
    """
    activity.logger.info("Running calendar session sync activity")

    db = SessionLocal()

    try:
        sync_service = CalendarSessionSyncService(
            account_repo=SQLAlchemyIntegrationAccountRepository(db),
            client_repo=SQLAlchemyConsultingClientRepository(db),
            entity_repo=SQLAlchemyTrackedEntityRepository(db),
            event_log_repo=SQLAlchemyRawEventLogRepository(db),
            config=settings.reconciler_config(),
            default_consultant_id=settings.default_consultant_id
        )

        results = await sync_service.sync_connected_owners()

        activity.logger.info(f"Calendar sync completed for {len(results)} owners")
        return results

    except Exception as e:
        activity.logger.error(f"Calendar sync failed: {str(e)}")
        raise
    finally:
        db.close()


@activity.defn
async def check_follow_ups() -> dict:
    """
    Activity to run the follow-up check.

    Re-running is safe: at most one follow-up per order per day.

    Returns:
        Notification and WhatsApp counts
    """
    activity.logger.info("Running follow-up check activity")

    db = SessionLocal()

    try:
        follow_up_service = FollowUpCheckService(
            owner_directory=SQLAlchemyOwnerDirectory(db),
            entity_repo=SQLAlchemyTrackedEntityRepository(db),
            notification_repo=SQLAlchemyNotificationRepository(db),
            interaction_repo=SQLAlchemyInteractionRepository(db),
            message_sender=ZapiMessageSender() if settings.whatsapp_configured else None
        )

        results = await follow_up_service.run()

        activity.logger.info(f"Follow-up check completed: {results}")
        return results

    except Exception as e:
        activity.logger.error(f"Follow-up check failed: {str(e)}")
        raise
    finally:
        db.close()
