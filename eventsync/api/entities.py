"""Tracked entity read endpoints."""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from eventsync.core.database import get_db
from eventsync.domain.models.external_event import EventDomain
from eventsync.infrastructure.db.repositories.entity_repository import SQLAlchemyTrackedEntityRepository
from eventsync.infrastructure.db.repositories.event_log_repository import SQLAlchemyRawEventLogRepository

router = APIRouter(prefix="/entities", tags=["entities"])


class TrackedEntityResponse(BaseModel):
    """Response model for a tracked entity."""
    id: str
    domain: str
    natural_key: str
    owner_id: str
    status: str
    last_event_at: str
    last_event_type: str
    attributes: Dict[str, Any]
    created_at: str
    updated_at: str


class RawEventResponse(BaseModel):
    """Response model for a raw event log row."""
    id: str
    event_type: Optional[str]
    event_subtype: Optional[str]
    signed_at: Optional[str]
    received_at: str
    decoded_payload: Optional[Dict[str, Any]]


@router.get("/{domain}/{natural_key}", response_model=TrackedEntityResponse)
async def get_entity(domain: EventDomain, natural_key: str, db: Session = Depends(get_db)):
    """
    Get the current state of a tracked entity.

    Args:
        domain: Event domain
        natural_key: External stable identifier
        db: Database session

    Returns:
        Tracked entity
    """
    entity = SQLAlchemyTrackedEntityRepository(db).find_by_natural_key(domain, natural_key)
    if not entity:
        raise HTTPException(status_code=404, detail="Entity not found")

    return TrackedEntityResponse(
        id=str(entity.id),
        domain=entity.domain.value,
        natural_key=entity.natural_key,
        owner_id=entity.owner_id,
        status=entity.status,
        last_event_at=entity.last_event_at.isoformat(),
        last_event_type=entity.last_event_type,
        attributes=entity.attributes,
        created_at=entity.created_at.isoformat(),
        updated_at=entity.updated_at.isoformat()
    )


@router.get("/{domain}/{natural_key}/events", response_model=List[RawEventResponse])
async def list_entity_events(domain: EventDomain, natural_key: str, db: Session = Depends(get_db)):
    """
    List the raw event log for a natural key, oldest first.
    """
    entries = SQLAlchemyRawEventLogRepository(db).list_by_natural_key(domain, natural_key)
    return [
        RawEventResponse(
            id=str(entry.id),
            event_type=entry.event_type,
            event_subtype=entry.event_subtype,
            signed_at=entry.signed_at.isoformat() if entry.signed_at else None,
            received_at=entry.received_at.isoformat(),
            decoded_payload=entry.decoded_payload
        )
        for entry in entries
    ]
