"""Payment reconciler - payment-provider order events into lead pipeline entities."""
import logging
from typing import Optional

from eventsync.application.services.reconcile_event import EventReconciler
from eventsync.domain.errors import UnresolvedOwner
from eventsync.domain.models.external_event import EventDomain, ExternalEvent
from eventsync.domain.models.notification import Interaction
from eventsync.domain.models.reconciler_config import ReconcilerConfig
from eventsync.domain.models.tracked_entity import TrackedEntity
from eventsync.domain.ports.entity_repo import TrackedEntityRepository
from eventsync.domain.ports.event_log_repo import RawEventLogRepository
from eventsync.domain.ports.message_sender import MessageSender
from eventsync.domain.ports.notification_repo import InteractionRepository, NotificationRepository
from eventsync.domain.ports.owner_repo import OwnerDirectory
from eventsync.domain.services.product_catalog import product_label
from eventsync.domain.services.state_mapper import (
    IMPORTANT_PAYMENT_EVENTS, interaction_type_for, notification_for
)

logger = logging.getLogger(__name__)


def describe_interaction(event: ExternalEvent) -> str:
    """Interaction text: event, product, value and the order reference."""
    attributes = event.attributes
    product = attributes.get("product_name") or product_label(attributes.get("product_type"))
    description = f"{event.event_type}: {product}"
    if attributes.get("value") is not None:
        description += f" - R$ {attributes['value']:.2f}"
    return f"{description} [Order: {event.natural_key}]"


class PaymentReconciler(EventReconciler):
    """
    Reconciler for payment-provider order webhooks.

    Orders belong to the admin owner. Side effects per recognized event:
    - one interaction per (order, event type)
    - one notification per (order, event type) per day
    - a WhatsApp alert to the owner for important events
    """

    domain = EventDomain.PAYMENT

    def __init__(
        self,
        entity_repo: TrackedEntityRepository,
        event_log_repo: RawEventLogRepository,
        config: ReconcilerConfig,
        owner_directory: OwnerDirectory,
        notification_repo: NotificationRepository,
        interaction_repo: InteractionRepository,
        message_sender: Optional[MessageSender] = None
    ):
        super().__init__(entity_repo, event_log_repo, config, notification_repo)
        self.owner_directory = owner_directory
        self.interaction_repo = interaction_repo
        self.message_sender = message_sender

    def resolve_owner(self, event: ExternalEvent) -> str:
        admin = self.owner_directory.find_admin()
        if not admin:
            raise UnresolvedOwner(f"No admin owner for payment order {event.natural_key}")
        return admin.id

    async def apply_side_effect(self, event: ExternalEvent, entity: TrackedEntity) -> Optional[str]:
        effects = []

        if not self.interaction_repo.exists(entity.natural_key, event.event_type):
            self.interaction_repo.create(Interaction(
                id=None,
                natural_key=entity.natural_key,
                event_type=event.event_type,
                interaction_type=interaction_type_for(event.event_type),
                description=describe_interaction(event),
                occurred_at=event.occurred_at
            ))
            effects.append("interaction_created")

        customer = event.attributes.get("customer_name") or event.attributes.get("customer_email")
        product = event.attributes.get("product_name") or ""
        template = notification_for(event.event_type, customer, product)
        if template is None:
            return ",".join(effects) or None

        title, message = template
        notification = self.notify_once(
            owner_id=entity.owner_id,
            natural_key=entity.natural_key,
            kind=event.event_type.lower(),
            title=title,
            message=message
        )
        if notification is None:
            return ",".join(effects) or None
        effects.append("notification_created")

        if event.event_type.lower() in IMPORTANT_PAYMENT_EVENTS:
            if await self._send_whatsapp_alert(entity.owner_id, title, message, event):
                effects.append("whatsapp_sent")

        return ",".join(effects)

    async def _send_whatsapp_alert(
        self,
        owner_id: str,
        title: str,
        message: str,
        event: ExternalEvent
    ) -> bool:
        """Push the alert to the owner's personal WhatsApp when one is configured."""
        if self.message_sender is None:
            logger.info("WhatsApp gateway not configured; skipping owner alert")
            return False

        owner = self.owner_directory.find_by_id(owner_id)
        if owner is None or not owner.personal_whatsapp:
            logger.info(f"No personal WhatsApp configured for owner {owner_id}")
            return False

        text = (
            f"*{title}*\n\n{message}\n\n"
            f"E-mail: {event.attributes.get('customer_email')}\n"
            f"Pedido: {event.natural_key}"
        )
        await self.message_sender.send_text(owner.personal_whatsapp, text)
        return True
