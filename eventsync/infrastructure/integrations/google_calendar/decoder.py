"""Calendar event decoder - turns calendar items into session events."""
import logging
from datetime import datetime

from eventsync.domain.errors import MalformedPayload
from eventsync.domain.models.external_event import EventDomain, ExternalEvent, to_naive_utc
from eventsync.domain.models.owner import ConsultingClient
from eventsync.infrastructure.integrations.google_calendar.models import CalendarEventItem

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TITLE = "Reunião de Consultoria"
DEFAULT_DURATION_MINUTES = 60


def matches_client(item: CalendarEventItem, client: ConsultingClient) -> bool:
    """
    Whether a calendar event concerns a consulting client.

    An attendee or the description must carry the client's e-mail, or the
    summary must carry the client's first name.
    """
    email = client.email.lower()
    if email in item.attendee_emails:
        return True
    if item.description and email in item.description.lower():
        return True
    first_name = client.first_name.lower()
    return bool(first_name and item.summary and first_name in item.summary.lower())


class CalendarEventDecoder:
    """Decoder for pulled calendar events; one ExternalEvent per item."""

    domain = EventDomain.CALENDAR

    def decode_item(
        self,
        item: CalendarEventItem,
        client: ConsultingClient,
        now: datetime
    ) -> ExternalEvent:
        """
        Decode one calendar event for a client.

        Args:
            item: Calendar event
            client: Consulting client the event belongs to
            now: Reference time deciding past vs upcoming

        Returns:
            ExternalEvent keyed by the calendar event ID

        Raises:
            MalformedPayload: If the event has no ID or no start
        """
        if not item.id:
            raise MalformedPayload("Calendar event has no id")
        if item.start is None:
            raise MalformedPayload(f"Calendar event {item.id} has no start")

        starts_at = to_naive_utc(item.start)
        subtype = "past" if starts_at < to_naive_utc(now) else "upcoming"

        attributes = {
            "client_id": client.id,
            "title": item.summary or DEFAULT_SESSION_TITLE,
            "session_date": starts_at.isoformat(),
            "duration_minutes": item.duration_minutes or DEFAULT_DURATION_MINUTES,
            "session_type": "online" if item.hangout_link else "presential",
            "notes": item.description,
            "summary": f"Link: {item.hangout_link}" if item.hangout_link else None,
        }

        return ExternalEvent(
            domain=self.domain,
            natural_key=item.id,
            event_type=item.status,
            event_subtype=subtype,
            occurred_at=starts_at,
            attributes=attributes,
            decoded_payload=item.raw_payload
        )
