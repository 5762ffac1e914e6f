"""Tests for the follow-up checker and the time-based duplicate guards."""
from datetime import date, datetime, timedelta, timezone

import pytest

from conftest import SAMPLE_ADMIN_ID, RecordingSender
from eventsync.application.services.check_follow_ups import FOLLOW_UP_KIND, FollowUpCheckService
from eventsync.domain.models.external_event import EventDomain, utcnow
from eventsync.domain.models.notification import Interaction
from eventsync.domain.models.status import LeadStatus
from eventsync.domain.models.tracked_entity import TrackedEntity
from eventsync.domain.services.dedup_policy import DedupPolicy
from eventsync.infrastructure.db.models import NotificationModel
from eventsync.infrastructure.db.repositories.entity_repository import SQLAlchemyTrackedEntityRepository
from eventsync.infrastructure.db.repositories.notification_repository import (
    SQLAlchemyInteractionRepository, SQLAlchemyNotificationRepository
)
from eventsync.infrastructure.db.repositories.owner_repository import SQLAlchemyOwnerDirectory

NOW = datetime(2024, 5, 10, 9, 0)


# ============================================================================
# DedupPolicy
# ============================================================================

def test_notification_day_is_utc():
    moment = datetime(2024, 5, 10, 23, 30, tzinfo=timezone(timedelta(hours=-3)))
    assert DedupPolicy.notification_day(moment) == date(2024, 5, 11)


def test_day_bounds_are_half_open():
    start, end = DedupPolicy.day_bounds(date(2024, 5, 10))
    assert start == datetime(2024, 5, 10)
    assert end == datetime(2024, 5, 11)


def test_utcnow_is_naive_utc():
    before = datetime.now(timezone.utc).replace(tzinfo=None)
    now = utcnow()
    assert now.tzinfo is None
    assert timedelta(0) <= now - before < timedelta(seconds=5)


def test_days_since_floors_partial_days():
    assert DedupPolicy.days_since(datetime(2024, 5, 7, 10, 0), NOW) == 2
    assert DedupPolicy.days_since(datetime(2024, 5, 7, 9, 0), NOW) == 3


# ============================================================================
# FollowUpCheckService
# ============================================================================

def seed_order(db_session, natural_key: str, status: str, last_event_at: datetime) -> TrackedEntity:
    entity = TrackedEntity(
        id=None,
        domain=EventDomain.PAYMENT,
        natural_key=natural_key,
        owner_id=SAMPLE_ADMIN_ID,
        status=status,
        last_event_at=last_event_at,
        last_event_type="pix_gerado",
        attributes={
            "customer_name": "Maria Silva",
            "customer_email": "maria@example.com",
            "product_name": "Consultoria IDEA Premium",
            "product_type": "consultoria",
        }
    )
    return SQLAlchemyTrackedEntityRepository(db_session).upsert(entity)


def follow_up_service(db_session, sender=None) -> FollowUpCheckService:
    return FollowUpCheckService(
        owner_directory=SQLAlchemyOwnerDirectory(db_session),
        entity_repo=SQLAlchemyTrackedEntityRepository(db_session),
        notification_repo=SQLAlchemyNotificationRepository(db_session),
        interaction_repo=SQLAlchemyInteractionRepository(db_session),
        message_sender=sender
    )


@pytest.mark.asyncio
async def test_idle_open_order_gets_follow_up(db_session, follow_up_settings):
    seed_order(db_session, "order_idle", LeadStatus.QUALIFICADO.value, datetime(2024, 5, 5, 9, 0))
    sender = RecordingSender()

    result = await follow_up_service(db_session, sender).run(now=NOW)

    assert result == {"success": True, "notificationsCreated": 1, "whatsappSent": 1}
    notification = db_session.query(NotificationModel).filter_by(channel="in_app").one()
    assert notification.kind == FOLLOW_UP_KIND
    assert notification.natural_key == "order_idle"
    assert notification.title == "Follow-up necessário: Maria Silva"
    assert notification.message == "Este lead está há 5 dias sem interação. Produto: Consultoria IDEA"
    assert sender.sent[0][0] == "(11) 91234-5678"
    assert sender.sent[0][1].startswith("*Follow-up necessário: Maria Silva*")
    marker = db_session.query(NotificationModel).filter_by(channel="whatsapp").one()
    assert marker.natural_key == "order_idle"
    assert marker.kind == FOLLOW_UP_KIND


@pytest.mark.asyncio
async def test_follow_up_sent_once_per_day(db_session, follow_up_settings):
    seed_order(db_session, "order_idle", LeadStatus.QUALIFICADO.value, datetime(2024, 5, 5, 9, 0))
    service = follow_up_service(db_session)

    await service.run(now=NOW)
    again = await service.run(now=NOW + timedelta(hours=5))
    next_day = await service.run(now=NOW + timedelta(days=1))

    assert again["notificationsCreated"] == 0
    assert next_day["notificationsCreated"] == 1
    assert db_session.query(NotificationModel).count() == 2


@pytest.mark.asyncio
async def test_whatsapp_only_follow_up_sent_once_per_day(db_session, follow_up_settings):
    follow_up_settings.notify_in_app = False
    db_session.commit()
    seed_order(db_session, "order_idle", LeadStatus.QUALIFICADO.value, datetime(2024, 5, 5, 9, 0))
    sender = RecordingSender()
    service = follow_up_service(db_session, sender)

    first = await service.run(now=NOW)
    await service.run(now=NOW + timedelta(minutes=15))
    await service.run(now=NOW + timedelta(hours=1))
    next_day = await service.run(now=NOW + timedelta(days=1))

    assert first == {"success": True, "notificationsCreated": 0, "whatsappSent": 1}
    assert next_day == {"success": True, "notificationsCreated": 0, "whatsappSent": 1}
    assert len(sender.sent) == 2
    assert db_session.query(NotificationModel).filter_by(channel="in_app").count() == 0


@pytest.mark.asyncio
async def test_failed_whatsapp_follow_up_is_retried_same_day(db_session, follow_up_settings):
    seed_order(db_session, "order_idle", LeadStatus.QUALIFICADO.value, datetime(2024, 5, 5, 9, 0))
    failing = await follow_up_service(db_session, RecordingSender(fail=True)).run(now=NOW)

    sender = RecordingSender()
    retried = await follow_up_service(db_session, sender).run(now=NOW + timedelta(hours=1))

    assert failing == {"success": True, "notificationsCreated": 1, "whatsappSent": 0}
    assert retried == {"success": True, "notificationsCreated": 0, "whatsappSent": 1}
    assert len(sender.sent) == 1


@pytest.mark.asyncio
async def test_recent_and_closed_orders_are_skipped(db_session, follow_up_settings):
    seed_order(db_session, "order_recent", LeadStatus.EM_CONTATO.value, datetime(2024, 5, 9, 9, 0))
    seed_order(db_session, "order_won", LeadStatus.FECHADO_GANHO.value, datetime(2024, 4, 1))
    seed_order(db_session, "order_lost", LeadStatus.FECHADO_PERDIDO.value, datetime(2024, 4, 1))

    result = await follow_up_service(db_session).run(now=NOW)

    assert result["notificationsCreated"] == 0


@pytest.mark.asyncio
async def test_latest_interaction_counts_as_activity(db_session, follow_up_settings):
    seed_order(db_session, "order_idle", LeadStatus.QUALIFICADO.value, datetime(2024, 5, 1))
    SQLAlchemyInteractionRepository(db_session).create(Interaction(
        id=None,
        natural_key="order_idle",
        event_type="carrinho_abandonado",
        interaction_type="email",
        description="carrinho_abandonado: Consultoria IDEA Premium - R$ 450.00 [Order: order_idle]",
        occurred_at=datetime(2024, 5, 9)
    ))

    result = await follow_up_service(db_session).run(now=NOW)

    assert result["notificationsCreated"] == 0


@pytest.mark.asyncio
async def test_whatsapp_failure_does_not_stop_check(db_session, follow_up_settings):
    seed_order(db_session, "order_a", LeadStatus.QUALIFICADO.value, datetime(2024, 5, 1))
    seed_order(db_session, "order_b", LeadStatus.NOVO.value, datetime(2024, 5, 1))

    result = await follow_up_service(db_session, RecordingSender(fail=True)).run(now=NOW)

    assert result == {"success": True, "notificationsCreated": 2, "whatsappSent": 0}


@pytest.mark.asyncio
async def test_no_settings_means_no_work(db_session, admin_owner):
    seed_order(db_session, "order_idle", LeadStatus.QUALIFICADO.value, datetime(2024, 5, 1))

    result = await follow_up_service(db_session).run(now=NOW)

    assert result == {"success": True, "notificationsCreated": 0, "whatsappSent": 0}
