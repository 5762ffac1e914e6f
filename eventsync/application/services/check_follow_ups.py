"""Follow-up check application service - nudges owners about quiet open orders."""
import logging
from datetime import date, datetime
from typing import Optional

from eventsync.domain.models.external_event import EventDomain, utcnow
from eventsync.domain.models.notification import Notification, NotificationChannel
from eventsync.domain.models.owner import FollowUpSettings
from eventsync.domain.models.status import LeadStatus
from eventsync.domain.models.tracked_entity import TrackedEntity
from eventsync.domain.ports.entity_repo import TrackedEntityRepository
from eventsync.domain.ports.message_sender import MessageSender
from eventsync.domain.ports.notification_repo import InteractionRepository, NotificationRepository
from eventsync.domain.ports.owner_repo import OwnerDirectory
from eventsync.domain.services.dedup_policy import DedupPolicy
from eventsync.domain.services.product_catalog import product_label

logger = logging.getLogger(__name__)

FOLLOW_UP_KIND = "follow_up"


class FollowUpCheckService:
    """
    Application service for the periodic follow-up check.

    For every owner with follow-up settings, each open payment entity whose
    last activity is at least ``days_without_interaction`` days old gets one
    follow-up per calendar day on each enabled channel. A WhatsApp message
    that went out is recorded as a WhatsApp-channel notification so later
    runs on the same day skip it; a failed send is retried on the next run.
    """

    def __init__(
        self,
        owner_directory: OwnerDirectory,
        entity_repo: TrackedEntityRepository,
        notification_repo: NotificationRepository,
        interaction_repo: InteractionRepository,
        message_sender: Optional[MessageSender] = None
    ):
        self.owner_directory = owner_directory
        self.entity_repo = entity_repo
        self.notification_repo = notification_repo
        self.interaction_repo = interaction_repo
        self.message_sender = message_sender

    async def run(self, now: Optional[datetime] = None) -> dict:
        """
        Check every owner's open orders.

        Args:
            now: Reference time (defaults to the current UTC time)

        Returns:
            Counts of notifications created and WhatsApp messages sent
        """
        now = now or utcnow()
        all_settings = self.owner_directory.list_follow_up_settings()
        logger.info(f"Found {len(all_settings)} owners with follow-up settings")

        notifications_created = 0
        whatsapp_sent = 0

        for follow_up in all_settings:
            entities = self.entity_repo.list_by_owner(
                EventDomain.PAYMENT,
                follow_up.owner_id,
                exclude_statuses=LeadStatus.closed()
            )
            logger.info(f"Found {len(entities)} open orders for owner {follow_up.owner_id}")

            for entity in entities:
                created, sent = await self._check_entity(entity, follow_up, now)
                notifications_created += created
                whatsapp_sent += sent

        return {
            "success": True,
            "notificationsCreated": notifications_created,
            "whatsappSent": whatsapp_sent
        }

    async def _check_entity(
        self,
        entity: TrackedEntity,
        follow_up: FollowUpSettings,
        now: datetime
    ) -> tuple:
        last_activity = self.interaction_repo.latest_for(entity.natural_key) or entity.last_event_at
        days_idle = DedupPolicy.days_since(last_activity, now)
        if days_idle < follow_up.days_without_interaction:
            return 0, 0

        day = DedupPolicy.notification_day(now)
        in_app_due = follow_up.notify_in_app and not self._sent_today(
            entity, day, NotificationChannel.IN_APP
        )
        whatsapp_due = (
            follow_up.notify_whatsapp
            and self.message_sender is not None
            and not self._sent_today(entity, day, NotificationChannel.WHATSAPP)
        )
        if not in_app_due and not whatsapp_due:
            logger.info(f"Follow-up for {entity.natural_key} already sent today")
            return 0, 0

        customer = entity.attributes.get("customer_name") or entity.attributes.get("customer_email")
        product = product_label(entity.attributes.get("product_type")) or entity.attributes.get("product_name")
        title = f"Follow-up necessário: {customer}"
        message = f"Este lead está há {days_idle} dias sem interação. Produto: {product}"

        created = 0
        if in_app_due:
            self._record(entity, follow_up, title, message, now, NotificationChannel.IN_APP)
            created = 1
            logger.info(f"Created follow-up notification for {entity.natural_key}")

        sent = 0
        if whatsapp_due:
            owner = self.owner_directory.find_by_id(follow_up.owner_id)
            if owner and owner.personal_whatsapp:
                try:
                    await self.message_sender.send_text(owner.personal_whatsapp, f"*{title}*\n\n{message}")
                    sent = 1
                except Exception as e:
                    logger.error(f"Follow-up WhatsApp for {entity.natural_key} failed: {str(e)}")
            if sent:
                self._record(entity, follow_up, title, message, now, NotificationChannel.WHATSAPP)

        return created, sent

    def _sent_today(self, entity: TrackedEntity, day: date, channel: NotificationChannel) -> bool:
        return self.notification_repo.exists_for_day(
            EventDomain.PAYMENT, entity.natural_key, FOLLOW_UP_KIND, day, channel
        )

    def _record(
        self,
        entity: TrackedEntity,
        follow_up: FollowUpSettings,
        title: str,
        message: str,
        now: datetime,
        channel: NotificationChannel
    ) -> Notification:
        return self.notification_repo.create(Notification(
            id=None,
            owner_id=follow_up.owner_id,
            domain=EventDomain.PAYMENT,
            natural_key=entity.natural_key,
            kind=FOLLOW_UP_KIND,
            title=title,
            message=message,
            created_at=now,
            channel=channel
        ))
