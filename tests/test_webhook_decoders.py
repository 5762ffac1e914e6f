"""Tests for webhook body classification and decoding."""
import json
from datetime import datetime

import pytest

from conftest import (
    SAMPLE_APP_ACCOUNT_TOKEN, SAMPLE_ORIGINAL_TRANSACTION_ID, appstore_body, payment_body, sign
)
from eventsync.domain.errors import MalformedPayload
from eventsync.domain.models.external_event import (
    EventDomain, ExternalEvent, FlatEvent, Malformed, PingProbe, Probe, SignedEnvelope,
    to_naive_utc
)
from eventsync.infrastructure.integrations.appstore.decoder import (
    AppStoreNotificationDecoder, unwrap_signed_fields
)
from eventsync.infrastructure.integrations.payments.decoder import PaymentWebhookDecoder
from eventsync.infrastructure.integrations.webhook_decoder import parse_timestamp

PING_BODY = json.dumps({"data": {"type": "webhookPingCreated", "id": "p1"}}).encode()


def as_bytes(body: dict) -> bytes:
    return json.dumps(body).encode()


# ============================================================================
# Classification
# ============================================================================

@pytest.mark.parametrize("body, variant", [
    ({"signedPayload": "a.b.c"}, SignedEnvelope),
    ({"data": {"type": "webhookPingCreated", "id": "p1"}}, PingProbe),
    ({"notificationType": "DID_RENEW"}, Malformed),
    ([1, 2, 3], Malformed),
    ("text", Malformed),
])
def test_appstore_classifier_is_total(body, variant):
    assert isinstance(AppStoreNotificationDecoder().classify(body), variant)


@pytest.mark.parametrize("body, variant", [
    ({"order": {"order_id": "1", "Customer": {}}}, FlatEvent),
    ({"webhook_event_type": "pix_gerado"}, FlatEvent),
    ({"name": "Ana", "email": "ana@example.com"}, FlatEvent),
    ({"foo": "bar"}, Malformed),
    (None, Malformed),
])
def test_payment_classifier_is_total(body, variant):
    assert isinstance(PaymentWebhookDecoder().classify(body), variant)


# ============================================================================
# App Store
# ============================================================================

def test_appstore_decodes_nested_signed_fields():
    event = AppStoreNotificationDecoder().decode(
        appstore_body("DID_RENEW", app_account_token=SAMPLE_APP_ACCOUNT_TOKEN)
    )

    assert isinstance(event, ExternalEvent)
    assert event.domain == EventDomain.SUBSCRIPTION
    assert event.natural_key == SAMPLE_ORIGINAL_TRANSACTION_ID
    assert event.event_type == "DID_RENEW"
    assert event.event_subtype is None
    assert event.occurred_at == datetime(2024, 5, 1, 12, 0, 0)
    assert event.attributes["product_id"] == "com.example.app.monthly"
    assert event.attributes["app_account_token"] == SAMPLE_APP_ACCOUNT_TOKEN
    assert event.attributes["expires_date"].startswith("2024-05-31T12:00:00")
    assert event.attributes["renewal_info"]["autoRenewStatus"] == 1
    assert event.decoded_payload["data"]["transactionInfo"]["transactionId"] == "2000000999999999"


def test_appstore_keeps_subtype():
    event = AppStoreNotificationDecoder().decode(appstore_body("DID_FAIL_TO_RENEW", "GRACE_PERIOD"))
    assert event.event_subtype == "GRACE_PERIOD"


def test_appstore_unwrap_depth_is_bounded():
    event = AppStoreNotificationDecoder(max_depth=1).decode(appstore_body("DID_RENEW"))

    data = event.decoded_payload["data"]
    assert "signedTransactionInfo" in data
    assert "transactionInfo" not in data
    # Without the transaction the notification falls back to its own UUID
    assert event.natural_key == "b1f6a0c2-0000-4000-8000-000000000001"
    assert event.attributes["original_transaction_id"] is None


def test_unwrap_signed_fields_leaves_plain_values_alone():
    claims = {"signedNote": "not a token", "signedInner": sign({"value": 1}), "plain": 3}
    unwrapped = unwrap_signed_fields(claims, depth=1, max_depth=3)

    assert unwrapped["signedNote"] == "not a token"
    assert "note" not in unwrapped
    assert unwrapped["inner"] == {"value": 1}
    assert unwrapped["plain"] == 3


def test_appstore_test_notification_decodes_as_test_kind():
    decoded = AppStoreNotificationDecoder().decode(
        appstore_body("TEST", original_transaction_id=None, notification_uuid="test-uuid")
    )

    assert isinstance(decoded, Probe)
    assert decoded.kind == "test"
    assert decoded.probe_id == "test-uuid"


def test_appstore_ping_decodes_as_ping():
    decoded = AppStoreNotificationDecoder().decode(PING_BODY)

    assert isinstance(decoded, Probe)
    assert decoded.kind == "ping"
    assert decoded.probe_id == "p1"


def test_appstore_unknown_notification_type_decodes():
    event = AppStoreNotificationDecoder().decode(appstore_body("PRICE_INCREASE", "PENDING"))
    assert event.event_type == "PRICE_INCREASE"


@pytest.mark.parametrize("raw_body", [
    b"not json",
    b"[1, 2]",
    as_bytes({"foo": "bar"}),
    as_bytes({"signedPayload": 42}),
    as_bytes({"signedPayload": "abc.def.ghi"}),
    as_bytes({"signedPayload": "no-dots-at-all"}),
    as_bytes({"signedPayload": sign({"data": {}})}),
])
def test_appstore_malformed_bodies(raw_body):
    with pytest.raises(MalformedPayload):
        AppStoreNotificationDecoder().decode(raw_body)


def test_malformed_payload_reports_received_keys():
    with pytest.raises(MalformedPayload) as exc_info:
        AppStoreNotificationDecoder().decode(as_bytes({"foo": 1, "bar": 2}))
    assert sorted(exc_info.value.received_keys) == ["bar", "foo"]


@pytest.mark.parametrize("claims", [
    {"notificationType": "DID_RENEW", "notificationUUID": "u1", "data": "oops"},
    {"notificationType": "DID_RENEW", "notificationUUID": "u1", "data": ["oops"]},
    {"notificationType": "DID_RENEW", "notificationUUID": "u1", "data": {"transactionInfo": "oops"}},
    {"notificationType": "DID_RENEW", "notificationUUID": "u1", "data": {"originalTransactionId": {"id": 1}}},
    {"notificationType": 5, "notificationUUID": "u1"},
    {"notificationType": "DID_RENEW", "subtype": ["GRACE_PERIOD"], "notificationUUID": "u1"},
])
def test_appstore_wrongly_typed_claims_are_malformed(claims):
    with pytest.raises(MalformedPayload) as exc_info:
        AppStoreNotificationDecoder().decode(as_bytes({"signedPayload": sign(claims)}))
    assert exc_info.value.received_keys == ["signedPayload"]


# ============================================================================
# Payment provider
# ============================================================================

@pytest.mark.parametrize("nested", [False, True])
def test_payment_capitalised_shapes(nested):
    event = PaymentWebhookDecoder().decode(as_bytes(payment_body(nested=nested)))

    assert event.domain == EventDomain.PAYMENT
    assert event.natural_key == "order_001"
    assert event.event_type == "compra_aprovada"
    assert event.occurred_at == datetime(2024, 5, 1, 12, 0, 0)
    assert event.attributes["customer_email"] == "Maria@Example.com"
    assert event.attributes["customer_first_name"] == "Maria"
    assert event.attributes["product_type"] == "consultoria"
    assert event.attributes["value"] == 450.0


def test_payment_value_falls_back_to_charge_amount():
    body = payment_body()
    body["Commissions"] = {"charge_amount": 19700}
    event = PaymentWebhookDecoder().decode(as_bytes(body))
    assert event.attributes["value"] == 197.0


@pytest.mark.parametrize("status, event_type", [
    ("paid", "compra_aprovada"),
    ("approved", "compra_aprovada"),
    ("refunded", "reembolso"),
    ("waiting_payment", "pix_gerado"),
    ("abandoned", "carrinho_abandonado"),
    ("refused", "compra_recusada"),
    ("declined", "compra_recusada"),
    ("chargedback", "chargedback"),
])
def test_payment_lowercase_shape(status, event_type):
    body = {
        "id": "ord_9",
        "name": "João Souza",
        "email": "joao@example.com",
        "product_name": "Guia de IA para Advogados",
        "status": status,
        "created_at": "2024-05-02T09:30:00Z",
    }
    event = PaymentWebhookDecoder().decode(as_bytes(body))

    assert event.natural_key == "ord_9"
    assert event.event_type == event_type
    assert event.attributes["customer_first_name"] == "João"
    assert event.attributes["product_type"] == "guia_ia"
    assert event.attributes["value"] is None
    assert event.occurred_at == datetime(2024, 5, 2, 9, 30, 0)


def test_payment_ping_decodes_as_ping():
    decoded = PaymentWebhookDecoder().decode(PING_BODY)
    assert isinstance(decoded, Probe)
    assert decoded.domain == EventDomain.PAYMENT
    assert decoded.probe_id == "p1"


@pytest.mark.parametrize("mutate, reason", [
    (lambda body: body["Customer"].pop("email"), "email"),
    (lambda body: body.pop("webhook_event_type"), "event type"),
    (lambda body: body["Product"].pop("product_name"), "product"),
    (lambda body: body.pop("order_id"), "order id"),
])
def test_payment_required_fields(mutate, reason):
    body = payment_body()
    mutate(body)
    with pytest.raises(MalformedPayload, match=reason):
        PaymentWebhookDecoder().decode(as_bytes(body))


def test_payment_unrecognized_body_is_malformed():
    with pytest.raises(MalformedPayload):
        PaymentWebhookDecoder().decode(as_bytes({"hello": "world"}))


@pytest.mark.parametrize("overrides", [
    {"Customer": "Maria"},
    {"Product": ["Consultoria IDEA Premium"]},
    {"Subscription": "sub_1"},
    {"Commissions": 45000},
    {"Commissions": {"my_commission": "n/a"}},
    {"webhook_event_type": 7},
    {"order_id": {"id": "order_001"}},
])
def test_payment_wrongly_typed_fields_are_malformed(overrides):
    body = payment_body()
    body.update(overrides)
    with pytest.raises(MalformedPayload) as exc_info:
        PaymentWebhookDecoder().decode(as_bytes(body))
    assert "order_ref" in exc_info.value.received_keys


@pytest.mark.parametrize("overrides", [
    {"status": 1},
    {"name": ["João Souza"]},
    {"email": {"address": "joao@example.com"}},
    {"product_name": 42},
])
def test_payment_lowercase_wrongly_typed_fields_are_malformed(overrides):
    body = {
        "id": "ord_9",
        "name": "João Souza",
        "email": "joao@example.com",
        "product_name": "Guia de IA para Advogados",
        "status": "paid",
    }
    body.update(overrides)
    with pytest.raises(MalformedPayload):
        PaymentWebhookDecoder().decode(as_bytes(body))


def test_decode_reports_type_errors_as_malformed():
    class StrictCustomerDecoder(PaymentWebhookDecoder):
        def decode_variant(self, variant):
            return variant.data["Customer"]["email"].lower()

    body = payment_body()
    body["Customer"] = {"email": None}
    with pytest.raises(MalformedPayload, match="Invalid payment payload structure") as exc_info:
        StrictCustomerDecoder().decode(as_bytes(body))
    assert "Customer" in exc_info.value.received_keys


# ============================================================================
# Timestamps
# ============================================================================

@pytest.mark.parametrize("value, expected", [
    (1714564800000, datetime(2024, 5, 1, 12, 0, 0)),
    ("2024-05-01T12:00:00Z", datetime(2024, 5, 1, 12, 0, 0)),
    ("2024-05-01T09:00:00-03:00", datetime(2024, 5, 1, 12, 0, 0)),
    ("2024-05-01 12:00:00", datetime(2024, 5, 1, 12, 0, 0)),
])
def test_parse_timestamp(value, expected):
    assert to_naive_utc(parse_timestamp(value)) == expected


@pytest.mark.parametrize("value", [None, "", "yesterday", {"date": 1}])
def test_parse_timestamp_rejects_garbage(value):
    assert parse_timestamp(value) is None
