"""Google Calendar API client - Anti-Corruption Layer."""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from eventsync.core.config import settings
from eventsync.infrastructure.integrations.google_calendar.models import CalendarEventItem
from eventsync.infrastructure.integrations.webhook_decoder import parse_timestamp

logger = logging.getLogger(__name__)


class GoogleCalendarClient:
    """
    Google Calendar API client implementing Anti-Corruption Layer.

    Responsibilities:
    - Hide Google Calendar API specifics
    - Normalize all-day and timed event boundaries
    - Return plain Python objects

    Google event resources MUST NOT leak outside this class.
    """

    CALENDAR_ID = "primary"
    MAX_RESULTS = 100

    def __init__(
        self,
        access_token: str,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize API client.

        Args:
            access_token: Valid OAuth access token
            transport: Optional httpx transport (tests inject a MockTransport)
        """
        self.access_token = access_token
        self.transport = transport
        self.base_url = f"{settings.google_calendar_api_base_url}/calendars/{self.CALENDAR_ID}"

    async def list_events(
        self,
        time_min: datetime,
        time_max: datetime,
        query: Optional[str] = None,
        max_results: int = MAX_RESULTS
    ) -> List[CalendarEventItem]:
        """
        List single (recurrence-expanded) events ordered by start time.

        Args:
            time_min: Lower bound on event end
            time_max: Upper bound on event start
            query: Free-text search (e-mail or name)
            max_results: Maximum number of events to return

        Returns:
            List of calendar events

        Raises:
            httpx.HTTPError: If API request fails
        """
        params = {
            "timeMin": self._format_time(time_min),
            "timeMax": self._format_time(time_max),
            "singleEvents": "true",
            "orderBy": "startTime",
            "maxResults": str(min(max_results, self.MAX_RESULTS)),
        }
        if query:
            params["q"] = query

        async with httpx.AsyncClient(timeout=30.0, transport=self.transport) as client:
            response = await client.get(
                f"{self.base_url}/events",
                params=params,
                headers={
                    "Authorization": f"Bearer {self.access_token}",
                    "Accept": "application/json"
                }
            )
            response.raise_for_status()
            data = response.json()

        items = data.get("items", [])
        logger.info(f"Found {len(items)} calendar events for query {query!r}")
        return [self._parse_event(item) for item in items]

    @staticmethod
    def _format_time(value: datetime) -> str:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()

    @staticmethod
    def _parse_boundary(boundary: Optional[Dict[str, Any]]) -> tuple:
        """
        Parse an event start/end.

        Returns:
            Tuple of (datetime or None, is_all_day)
        """
        if not boundary:
            return None, False
        if boundary.get("dateTime"):
            return parse_timestamp(boundary["dateTime"]), False
        if boundary.get("date"):
            return parse_timestamp(boundary["date"]), True
        return None, False

    @classmethod
    def _parse_event(cls, data: Dict[str, Any]) -> CalendarEventItem:
        """
        Parse a Google Calendar event resource.

        Args:
            data: Raw event data from API

        Returns:
            CalendarEventItem DTO
        """
        start, all_day = cls._parse_boundary(data.get("start"))
        end, _ = cls._parse_boundary(data.get("end"))

        attendees = [
            attendee["email"].lower()
            for attendee in data.get("attendees", [])
            if attendee.get("email")
        ]

        return CalendarEventItem(
            id=data.get("id", ""),
            status=data.get("status") or "confirmed",
            start=start,
            end=end,
            raw_payload=data,
            summary=data.get("summary"),
            description=data.get("description"),
            hangout_link=data.get("hangoutLink"),
            attendee_emails=attendees,
            all_day=all_day
        )
