"""Shared test fixtures for the eventsync test suite."""
import json
import os

# Settings are read at import time; keep tests off PostgreSQL
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
import pytest
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from eventsync.core.database import Base, get_db
from eventsync.domain.models.external_event import utcnow
from eventsync.domain.models.reconciler_config import ReconcilerConfig
from eventsync.domain.ports.message_sender import MessageSender
from eventsync.infrastructure.db import models  # noqa: F401
from eventsync.infrastructure.db.models import (
    ConsultingClientModel, FollowUpSettingsModel, IntegrationAccountModel, OwnerModel
)
from eventsync.domain.models.integration_account import AccountStatus, IntegrationType

SAMPLE_ADMIN_ID = "owner_admin"
SAMPLE_USER_ID = "owner_user"
SAMPLE_APP_ACCOUNT_TOKEN = "7e3fb20b-4cdb-47cc-936d-99d65f608138"
SAMPLE_ORIGINAL_TRANSACTION_ID = "2000000123456789"
SAMPLE_CONSULTANT_ID = "consultant_1"
SAMPLE_CLIENT_ID = "client_1"
SAMPLE_CLIENT_EMAIL = "maria@example.com"

JWS_KEY = "test-signing-key"


# ============================================================================
# Payload builders
# ============================================================================

def sign(claims: dict) -> str:
    """Build a compact JWS the way App Store payloads are shaped."""
    return jwt.encode(claims, JWS_KEY, algorithm="HS256")


def epoch_ms(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp() * 1000)


def appstore_body(
    notification_type: str,
    subtype: str | None = None,
    original_transaction_id: str | None = SAMPLE_ORIGINAL_TRANSACTION_ID,
    signed_date: datetime | None = None,
    app_account_token: str | None = None,
    notification_uuid: str = "b1f6a0c2-0000-4000-8000-000000000001",
) -> bytes:
    """Raw App Store Server Notification V2 request body."""
    signed_date = signed_date or datetime(2024, 5, 1, 12, 0, 0)
    data: dict[str, Any] = {
        "bundleId": "com.example.app",
        "environment": "Sandbox",
    }
    if original_transaction_id:
        transaction = {
            "originalTransactionId": original_transaction_id,
            "transactionId": "2000000999999999",
            "productId": "com.example.app.monthly",
            "purchaseDate": epoch_ms(signed_date),
            "expiresDate": epoch_ms(signed_date + timedelta(days=30)),
        }
        if app_account_token:
            transaction["appAccountToken"] = app_account_token
        data["signedTransactionInfo"] = sign(transaction)
        data["signedRenewalInfo"] = sign({
            "originalTransactionId": original_transaction_id,
            "autoRenewStatus": 1,
        })

    claims: dict[str, Any] = {
        "notificationType": notification_type,
        "notificationUUID": notification_uuid,
        "signedDate": epoch_ms(signed_date),
        "data": data,
    }
    if subtype:
        claims["subtype"] = subtype

    return json.dumps({"signedPayload": sign(claims)}).encode()


def payment_body(
    event_type: str = "compra_aprovada",
    order_id: str = "order_001",
    approved_date: str = "2024-05-01 12:00:00",
    nested: bool = False,
) -> dict:
    """Flat capitalised payment-provider order payload."""
    order = {
        "order_id": order_id,
        "order_ref": "Ref123",
        "webhook_event_type": event_type,
        "approved_date": approved_date,
        "Product": {"product_id": "p1", "product_name": "Consultoria IDEA Premium"},
        "Customer": {
            "full_name": "Maria Silva",
            "first_name": "Maria",
            "email": "Maria@Example.com",
            "mobile": "+55 (11) 98765-4321",
        },
        "Commissions": {"charge_amount": 49700, "my_commission": 45000},
    }
    return {"order": order} if nested else order


def calendar_item(
    event_id: str = "evt_1",
    start: str = "2024-05-10T14:00:00Z",
    end: str | None = "2024-05-10T15:30:00Z",
    status: str = "confirmed",
    summary: str = "Mentoria com Maria",
    attendees: list | None = None,
    hangout_link: str | None = "https://meet.google.com/abc-defg-hij",
) -> dict:
    """Google Calendar event resource."""
    item: dict[str, Any] = {
        "id": event_id,
        "status": status,
        "summary": summary,
        "start": {"dateTime": start},
        "attendees": attendees if attendees is not None else [{"email": SAMPLE_CLIENT_EMAIL}],
    }
    if end:
        item["end"] = {"dateTime": end}
    if hangout_link:
        item["hangoutLink"] = hangout_link
    return item


class RecordingSender(MessageSender):
    """MessageSender that records messages instead of sending them."""

    def __init__(self, fail: bool = False):
        self.sent: list[tuple[str, str]] = []
        self.fail = fail

    async def send_text(self, phone: str, message: str):
        if self.fail:
            raise httpx.ConnectError("gateway down")
        self.sent.append((phone, message))
        return f"msg_{len(self.sent)}"


# ============================================================================
# Database fixtures
# ============================================================================

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture
def reconciler_config():
    return ReconcilerConfig()


@pytest.fixture
def admin_owner(db_session):
    owner = OwnerModel(
        id=SAMPLE_ADMIN_ID,
        email="admin@example.com",
        role="admin",
        personal_whatsapp="(11) 91234-5678",
        created_at=datetime(2024, 1, 1),
    )
    db_session.add(owner)
    db_session.commit()
    return owner


@pytest.fixture
def app_user(db_session):
    owner = OwnerModel(
        id=SAMPLE_USER_ID,
        email="user@example.com",
        role="user",
        app_account_token=SAMPLE_APP_ACCOUNT_TOKEN,
        created_at=datetime(2024, 2, 1),
    )
    db_session.add(owner)
    db_session.commit()
    return owner


@pytest.fixture
def follow_up_settings(db_session, admin_owner):
    row = FollowUpSettingsModel(
        owner_id=SAMPLE_ADMIN_ID,
        days_without_interaction=3,
        notify_in_app=True,
        notify_whatsapp=True,
    )
    db_session.add(row)
    db_session.commit()
    return row


@pytest.fixture
def consulting_client(db_session):
    row = ConsultingClientModel(
        id=SAMPLE_CLIENT_ID,
        owner_id=SAMPLE_CONSULTANT_ID,
        full_name="Maria Silva",
        email=SAMPLE_CLIENT_EMAIL,
    )
    db_session.add(row)
    db_session.commit()
    return row


@pytest.fixture
def calendar_account(db_session):
    row = IntegrationAccountModel(
        integration_type=IntegrationType.GOOGLE_CALENDAR,
        owner_id=SAMPLE_CONSULTANT_ID,
        access_token="valid-access-token",
        refresh_token="refresh-token",
        token_expires_at=utcnow() + timedelta(hours=1),
        token_type="Bearer",
        status=AccountStatus.ACTIVE,
    )
    db_session.add(row)
    db_session.commit()
    return row


# ============================================================================
# API fixtures
# ============================================================================

@pytest.fixture
def api_app(db_session):
    """FastAPI app bound to the test database session."""
    from eventsync.main import app

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    yield app
    app.dependency_overrides.clear()


def api_client(app) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")
