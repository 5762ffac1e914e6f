"""SQLAlchemy ORM models for database persistence."""
import uuid
from sqlalchemy import (
    Boolean, Column, String, Integer, DateTime, Text, Enum as SQLEnum,
    UniqueConstraint, Index, JSON, Uuid
)
from sqlalchemy.dialects.postgresql import JSONB

from eventsync.core.database import Base
from eventsync.domain.models.external_event import utcnow
from eventsync.domain.models.integration_account import IntegrationType, AccountStatus

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in local runs and tests)
JSONPayload = JSON().with_variant(JSONB(), "postgresql")


# ----------------------------------------------------------------------
# Shared column sets
# ----------------------------------------------------------------------

class WebhookEventColumns:
    """Columns of every <domain>_webhook_events append-only log table."""

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    notification_type = Column(String(100), nullable=True)
    subtype = Column(String(100), nullable=True)
    natural_key = Column(String(255), nullable=True, index=True)
    raw_payload = Column(JSONPayload, nullable=True)
    decoded_payload = Column(JSONPayload, nullable=True)
    signed_at = Column(DateTime, nullable=True)
    received_at = Column(DateTime, nullable=False, default=utcnow)


class TrackedEntityColumns:
    """Columns of every <domain>_entities upserted table."""

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    natural_key = Column(String(255), nullable=False)
    owner_id = Column(String(64), nullable=False, index=True)
    status = Column(String(50), nullable=False)
    last_event_at = Column(DateTime, nullable=False)
    last_event_type = Column(String(100), nullable=False)
    attributes = Column(JSONPayload, nullable=False, default=dict)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


# ----------------------------------------------------------------------
# Subscription (App Store) tables
# ----------------------------------------------------------------------

class SubscriptionWebhookEventModel(WebhookEventColumns, Base):
    """SQLAlchemy model for subscription_webhook_events table."""

    __tablename__ = "subscription_webhook_events"


class SubscriptionEntityModel(TrackedEntityColumns, Base):
    """SQLAlchemy model for subscription_entities table."""

    __tablename__ = "subscription_entities"

    product_id = Column(String(255), nullable=True)

    __table_args__ = (
        UniqueConstraint('natural_key', name='uq_subscription_natural_key'),
    )


# ----------------------------------------------------------------------
# Payment provider tables
# ----------------------------------------------------------------------

class PaymentWebhookEventModel(WebhookEventColumns, Base):
    """SQLAlchemy model for payment_webhook_events table."""

    __tablename__ = "payment_webhook_events"


class PaymentEntityModel(TrackedEntityColumns, Base):
    """SQLAlchemy model for payment_entities table."""

    __tablename__ = "payment_entities"

    customer_email = Column(String(255), nullable=True, index=True)

    __table_args__ = (
        UniqueConstraint('natural_key', name='uq_payment_natural_key'),
    )


# ----------------------------------------------------------------------
# Calendar session tables
# ----------------------------------------------------------------------

class CalendarWebhookEventModel(WebhookEventColumns, Base):
    """SQLAlchemy model for calendar_webhook_events table."""

    __tablename__ = "calendar_webhook_events"


class CalendarEntityModel(TrackedEntityColumns, Base):
    """SQLAlchemy model for calendar_entities (consulting sessions) table."""

    __tablename__ = "calendar_entities"

    client_id = Column(String(64), nullable=True)
    session_date = Column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint('natural_key', name='uq_calendar_natural_key'),
        Index('ix_calendar_client_session_date', 'client_id', 'session_date'),
    )


# ----------------------------------------------------------------------
# Tenants and side-effect records
# ----------------------------------------------------------------------

class OwnerModel(Base):
    """SQLAlchemy model for owners table."""

    __tablename__ = "owners"

    id = Column(String(64), primary_key=True)
    email = Column(String(255), nullable=False)
    role = Column(String(50), nullable=False, default="admin")
    personal_whatsapp = Column(String(50), nullable=True)
    app_account_token = Column(String(255), nullable=True, unique=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class FollowUpSettingsModel(Base):
    """SQLAlchemy model for follow_up_settings table."""

    __tablename__ = "follow_up_settings"

    owner_id = Column(String(64), primary_key=True)
    days_without_interaction = Column(Integer, nullable=False, default=3)
    notify_in_app = Column(Boolean, nullable=False, default=True)
    notify_whatsapp = Column(Boolean, nullable=False, default=False)


class ConsultingClientModel(Base):
    """SQLAlchemy model for consulting_clients table."""

    __tablename__ = "consulting_clients"

    id = Column(String(64), primary_key=True)
    owner_id = Column(String(64), nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)


class NotificationModel(Base):
    """SQLAlchemy model for notifications table."""

    __tablename__ = "notifications"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(String(64), nullable=False, index=True)
    domain = Column(String(50), nullable=False)
    natural_key = Column(String(255), nullable=False)
    kind = Column(String(100), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    channel = Column(String(20), nullable=False, default="in_app")
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index('ix_notification_dedup', 'domain', 'natural_key', 'kind', 'channel', 'created_at'),
    )


class InteractionModel(Base):
    """SQLAlchemy model for interactions table."""

    __tablename__ = "interactions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    natural_key = Column(String(255), nullable=False, index=True)
    event_type = Column(String(100), nullable=False)
    interaction_type = Column(String(50), nullable=False)
    description = Column(Text, nullable=False)
    occurred_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint('natural_key', 'event_type', name='uq_interaction_event'),
    )


class IntegrationAccountModel(Base):
    """SQLAlchemy model for integration_accounts table."""

    __tablename__ = "integration_accounts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    integration_type = Column(SQLEnum(IntegrationType), nullable=False)
    owner_id = Column(String(64), nullable=False)
    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text, nullable=False)
    token_expires_at = Column(DateTime, nullable=False)
    token_type = Column(String(50), nullable=False, default="Bearer")
    status = Column(SQLEnum(AccountStatus), nullable=False, default=AccountStatus.ACTIVE)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint('integration_type', 'owner_id', name='uq_integration_account_owner'),
    )
