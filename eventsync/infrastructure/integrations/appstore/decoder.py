"""App Store Server Notifications V2 decoder - Anti-Corruption Layer.

Signed payloads are JWS tokens. Claims are read without verifying Apple's
signature chain; the endpoint relies on the secrecy of its URL and on TLS.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from jose import jwt, JWTError

from eventsync.domain.errors import MalformedPayload
from eventsync.domain.models.external_event import (
    DecodedWebhook, EventDomain, ExternalEvent, InboundWebhookBody, Malformed, Probe,
    SignedEnvelope
)
from eventsync.infrastructure.integrations.webhook_decoder import WebhookDecoder, parse_timestamp

logger = logging.getLogger(__name__)

TEST_NOTIFICATION = "TEST"
SIGNED_PREFIX = "signed"


def decode_jws_claims(token: str) -> Dict[str, Any]:
    """
    Read the claims of a JWS token without signature verification.

    Args:
        token: Compact JWS (header.payload.signature)

    Returns:
        Claims dictionary

    Raises:
        MalformedPayload: If the token is not a well-formed JWS with object claims
    """
    try:
        return jwt.get_unverified_claims(token)
    except JWTError as e:
        raise MalformedPayload(f"Invalid signed payload: {e}") from e


def _looks_like_jws(value: Any) -> bool:
    return isinstance(value, str) and value.count(".") == 2


def _unsigned_name(key: str) -> str:
    """signedTransactionInfo -> transactionInfo"""
    rest = key[len(SIGNED_PREFIX):]
    return rest[:1].lower() + rest[1:]


def unwrap_signed_fields(claims: Dict[str, Any], depth: int, max_depth: int) -> Dict[str, Any]:
    """
    Recursively decode nested ``signed*`` JWS fields.

    Each decoded token is stored beside the original under its unsigned name
    (signedRenewalInfo -> renewalInfo). ``depth`` counts tokens already
    decoded on this path; tokens past ``max_depth`` stay encoded.

    Args:
        claims: Decoded claims of the enclosing token
        depth: Token nesting level of ``claims``
        max_depth: Maximum token nesting level to decode

    Returns:
        The claims with nested tokens unwrapped
    """
    unwrapped: Dict[str, Any] = {}
    for key, value in claims.items():
        unwrapped[key] = value
        if isinstance(value, dict):
            unwrapped[key] = unwrap_signed_fields(value, depth, max_depth)
        elif key.startswith(SIGNED_PREFIX) and len(key) > len(SIGNED_PREFIX) and _looks_like_jws(value):
            if depth >= max_depth:
                logger.warning(f"Signed field {key} left encoded: nesting exceeds {max_depth}")
                continue
            nested = decode_jws_claims(value)
            unwrapped[_unsigned_name(key)] = unwrap_signed_fields(nested, depth + 1, max_depth)
    return unwrapped


def _object(container: Dict[str, Any], key: str) -> Dict[str, Any]:
    """Nested claim object; absent or null reads as empty."""
    value = container.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise MalformedPayload(f"{key} must be an object, got {type(value).__name__}")
    return value


def _iso(value: Any) -> Optional[str]:
    parsed = parse_timestamp(value)
    return parsed.isoformat() if parsed else None


class AppStoreNotificationDecoder(WebhookDecoder):
    """
    Decoder for App Store Server Notifications V2.

    Responsibilities:
    - Recognize ping bodies and TEST notifications as probes
    - Unwrap signedPayload and its nested signed fields
    - Extract the original transaction ID as the natural key
    """

    domain = EventDomain.SUBSCRIPTION

    def __init__(self, max_depth: int = 3):
        """
        Initialize decoder.

        Args:
            max_depth: Maximum JWS nesting level to decode
        """
        self.max_depth = max_depth

    def classify_body(self, body: dict) -> InboundWebhookBody:
        token = body.get("signedPayload")
        if not token or not isinstance(token, str):
            return Malformed(reason="Missing signedPayload", body=body)
        return SignedEnvelope(token=token, body=body)

    def decode_variant(self, variant: InboundWebhookBody) -> DecodedWebhook:
        if not isinstance(variant, SignedEnvelope):
            raise MalformedPayload(f"Unexpected body variant: {type(variant).__name__}")

        claims = unwrap_signed_fields(decode_jws_claims(variant.token), 1, self.max_depth)

        notification_type = claims.get("notificationType")
        if not notification_type:
            raise MalformedPayload("Decoded payload has no notificationType")
        subtype = claims.get("subtype")
        if not isinstance(notification_type, str) or not isinstance(subtype, (str, type(None))):
            raise MalformedPayload("notificationType and subtype must be strings")

        notification_uuid = claims.get("notificationUUID")
        if notification_type == TEST_NOTIFICATION:
            return Probe(
                domain=self.domain,
                probe_id=notification_uuid,
                kind="test",
                decoded_payload=claims
            )

        data = _object(claims, "data")
        transaction = _object(data, "transactionInfo")
        original_transaction_id = transaction.get("originalTransactionId") or data.get("originalTransactionId")
        if not isinstance(original_transaction_id, (str, int, type(None))):
            raise MalformedPayload("originalTransactionId must be a string or number")

        occurred_at = parse_timestamp(claims.get("signedDate")) or datetime.now(timezone.utc)

        attributes = {
            "original_transaction_id": original_transaction_id,
            "transaction_id": transaction.get("transactionId"),
            "product_id": transaction.get("productId"),
            "bundle_id": data.get("bundleId") or transaction.get("bundleId"),
            "environment": data.get("environment") or claims.get("environment"),
            "app_account_token": transaction.get("appAccountToken"),
            "expires_date": _iso(transaction.get("expiresDate")),
            "purchase_date": _iso(transaction.get("purchaseDate")),
            "renewal_info": data.get("renewalInfo"),
            "notification_uuid": notification_uuid,
        }

        # Notifications without a transaction are keyed by their own UUID and
        # are logged but never tracked
        natural_key = original_transaction_id or notification_uuid
        if not natural_key:
            raise MalformedPayload("Notification has neither a transaction nor a notificationUUID")

        logger.info(
            f"Decoded App Store notification {notification_type} "
            f"({subtype or 'no subtype'}) for {natural_key}"
        )

        return ExternalEvent(
            domain=self.domain,
            natural_key=str(natural_key),
            event_type=notification_type,
            event_subtype=subtype,
            occurred_at=occurred_at,
            attributes=attributes,
            decoded_payload=claims
        )
