"""Subscription reconciler - App Store notifications into subscription entities."""
import logging
from typing import Optional

from eventsync.application.services.reconcile_event import EventReconciler
from eventsync.domain.errors import UnresolvedOwner
from eventsync.domain.models.external_event import EventDomain, ExternalEvent
from eventsync.domain.models.reconciler_config import ReconcilerConfig
from eventsync.domain.models.tracked_entity import TrackedEntity
from eventsync.domain.ports.entity_repo import TrackedEntityRepository
from eventsync.domain.ports.event_log_repo import RawEventLogRepository
from eventsync.domain.ports.notification_repo import NotificationRepository
from eventsync.domain.ports.owner_repo import OwnerDirectory

logger = logging.getLogger(__name__)

# Notification types that alert the owner
ALERT_TITLES = {
    "REFUND": "Assinatura Reembolsada",
    "REVOKE": "Assinatura Revogada",
}


class SubscriptionReconciler(EventReconciler):
    """
    Reconciler for App Store subscription notifications.

    The owner is the user whose app account token the purchase carries,
    falling back to the admin owner.
    """

    domain = EventDomain.SUBSCRIPTION

    def __init__(
        self,
        entity_repo: TrackedEntityRepository,
        event_log_repo: RawEventLogRepository,
        config: ReconcilerConfig,
        owner_directory: OwnerDirectory,
        notification_repo: Optional[NotificationRepository] = None
    ):
        super().__init__(entity_repo, event_log_repo, config, notification_repo)
        self.owner_directory = owner_directory

    def should_track(self, event: ExternalEvent) -> bool:
        # Keyed by notificationUUID when the notification names no transaction
        return bool(event.attributes.get("original_transaction_id"))

    def resolve_owner(self, event: ExternalEvent) -> str:
        token = event.attributes.get("app_account_token")
        if token:
            owner = self.owner_directory.find_by_app_account_token(token)
            if owner:
                return owner.id
        admin = self.owner_directory.find_admin()
        if not admin:
            raise UnresolvedOwner(f"No owner for App Store transaction {event.natural_key}")
        return admin.id

    async def apply_side_effect(self, event: ExternalEvent, entity: TrackedEntity) -> Optional[str]:
        if event.event_type in ALERT_TITLES:
            product = event.attributes.get("product_id") or "assinatura"
            notification = self.notify_once(
                owner_id=entity.owner_id,
                natural_key=entity.natural_key,
                kind=event.event_type.lower(),
                title=ALERT_TITLES[event.event_type],
                message=f"Transação {entity.natural_key} ({product}) agora está {entity.status}."
            )
            return "notification_created" if notification else "notification_skipped"

        if event.event_type == "DID_FAIL_TO_RENEW":
            logger.warning(
                f"Subscription {entity.natural_key} failed to renew "
                f"({event.event_subtype or 'no subtype'})"
            )
            return None

        logger.info(f"Subscription {entity.natural_key} is now {entity.status}")
        return None
