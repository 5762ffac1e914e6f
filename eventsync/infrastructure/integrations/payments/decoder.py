"""Payment provider (Kiwify) webhook decoder - Anti-Corruption Layer."""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from eventsync.domain.errors import MalformedPayload
from eventsync.domain.models.external_event import (
    DecodedWebhook, EventDomain, ExternalEvent, FlatEvent, InboundWebhookBody, Malformed
)
from eventsync.domain.services.product_catalog import classify_product
from eventsync.infrastructure.integrations.webhook_decoder import WebhookDecoder, parse_timestamp

logger = logging.getLogger(__name__)

# Status values of the lower-case payload shape and the event they stand for
STATUS_EVENT_TYPES = {
    "paid": "compra_aprovada",
    "approved": "compra_aprovada",
    "refunded": "reembolso",
    "waiting_payment": "pix_gerado",
    "abandoned": "carrinho_abandonado",
    "refused": "compra_recusada",
    "declined": "compra_recusada",
}

# Fields whose presence identifies a payment event body
SHAPE_MARKERS = ("Customer", "webhook_event_type", "order_id", "Product")


def _block(data: dict, key: str) -> Dict[str, Any]:
    """Nested object field; absent or null reads as empty."""
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise MalformedPayload(f"{key} must be an object, got {type(value).__name__}")
    return value


def _text(value: Any, field_name: str) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    raise MalformedPayload(f"{field_name} must be a string, got {type(value).__name__}")


def _amount_from_commissions(commissions: Dict[str, Any]) -> Optional[float]:
    """
    Amount in currency units from a commissions block sent in cents.

    Priority: producer share (co-productions), then charge amount, then base price.
    """
    if not commissions:
        return None
    cents = (
        commissions.get("my_commission")
        or commissions.get("charge_amount")
        or commissions.get("product_base_price")
    )
    if not cents:
        return None
    try:
        return float(cents) / 100
    except (TypeError, ValueError) as e:
        raise MalformedPayload(f"Commission amount is not a number: {cents!r}") from e


class PaymentWebhookDecoder(WebhookDecoder):
    """
    Decoder for payment-provider order webhooks.

    Accepts three body shapes:
    1. Nested: {"order": {"Customer": ..., "Product": ..., ...}}
    2. Flat capitalized: {"Customer": ..., "Product": ..., "webhook_event_type": ...}
    3. Flat lower-case: {"name": ..., "email": ..., "product_name": ..., "status": ...}
    """

    domain = EventDomain.PAYMENT

    def classify_body(self, body: dict) -> InboundWebhookBody:
        order = body.get("order")
        data = order if isinstance(order, dict) else body

        if any(marker in data for marker in SHAPE_MARKERS):
            return FlatEvent(data=data, body=body)
        if data.get("email") and data.get("name"):
            return FlatEvent(data=data, body=body)
        return Malformed(reason="Unrecognized payment payload", body=body)

    def decode_variant(self, variant: InboundWebhookBody) -> DecodedWebhook:
        if not isinstance(variant, FlatEvent):
            raise MalformedPayload(f"Unexpected body variant: {type(variant).__name__}")

        data = variant.data
        is_lowercase_shape = bool(data.get("email") and data.get("name") and not data.get("Customer"))

        if is_lowercase_shape:
            fields = self._lowercase_fields(data)
        else:
            fields = self._capitalized_fields(data)

        if not fields["customer_email"]:
            raise MalformedPayload("No customer email")
        if not fields["event_type"]:
            raise MalformedPayload("No event type")
        if not fields["product_name"]:
            raise MalformedPayload("No product name")
        if not fields["order_id"]:
            raise MalformedPayload("No order id")
        if not isinstance(fields["order_id"], (str, int)):
            raise MalformedPayload(
                f"Order id must be a string or number, got {type(fields['order_id']).__name__}"
            )

        occurred_at = (
            parse_timestamp(data.get("refunded_at"))
            or parse_timestamp(data.get("approved_date"))
            or parse_timestamp(data.get("updated_at"))
            or parse_timestamp(data.get("created_at"))
            or datetime.now(timezone.utc)
        )

        full_name = fields["customer_name"] or ""
        attributes = {
            "order_id": fields["order_id"],
            "order_ref": data.get("order_ref"),
            "customer_name": full_name,
            "customer_first_name": fields["customer_first_name"] or full_name.split(" ")[0],
            "customer_email": fields["customer_email"],
            "customer_phone": fields["customer_phone"],
            "product_name": fields["product_name"],
            "product_type": classify_product(fields["product_name"]),
            "value": fields["value"],
            "subscription_id": _block(data, "Subscription").get("id"),
        }

        logger.info(
            f"Decoded payment event {fields['event_type']} for order {fields['order_id']} "
            f"({attributes['product_type']})"
        )

        return ExternalEvent(
            domain=self.domain,
            natural_key=str(fields["order_id"]),
            event_type=fields["event_type"],
            event_subtype=None,
            occurred_at=occurred_at,
            attributes=attributes,
            decoded_payload=data
        )

    @staticmethod
    def _lowercase_fields(data: dict) -> Dict[str, Any]:
        status = (_text(data.get("status"), "status") or "").lower()
        first_name = _text(data.get("first_name"), "first_name")
        name = _text(data.get("name"), "name") or first_name or ""
        return {
            "order_id": data.get("id") or data.get("order_id"),
            "event_type": STATUS_EVENT_TYPES.get(status, data.get("status")),
            "customer_name": name,
            "customer_first_name": first_name or name.split(" ")[0],
            "customer_email": _text(data.get("email"), "email"),
            "customer_phone": data.get("phone"),
            "product_name": _text(data.get("product_name") or data.get("offer_name"), "product_name"),
            "value": None,
        }

    @staticmethod
    def _capitalized_fields(data: dict) -> Dict[str, Any]:
        customer = _block(data, "Customer")
        product = _block(data, "Product")
        return {
            "order_id": data.get("order_id") or data.get("id"),
            "event_type": _text(data.get("webhook_event_type") or data.get("status"), "webhook_event_type"),
            "customer_name": _text(customer.get("full_name"), "Customer.full_name"),
            "customer_first_name": _text(customer.get("first_name"), "Customer.first_name"),
            "customer_email": _text(customer.get("email"), "Customer.email"),
            "customer_phone": customer.get("mobile"),
            "product_name": _text(product.get("product_name") or data.get("product_name"), "product_name"),
            "value": _amount_from_commissions(_block(data, "Commissions")),
        }
