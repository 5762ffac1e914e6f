"""Google Calendar-specific data transfer objects."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass
class CalendarEventItem:
    """DTO for one Google Calendar event (singleEvents expansion)."""
    id: str
    status: str
    start: Optional[datetime]
    end: Optional[datetime]
    raw_payload: Dict[str, Any]
    summary: Optional[str] = None
    description: Optional[str] = None
    hangout_link: Optional[str] = None
    attendee_emails: List[str] = field(default_factory=list)
    all_day: bool = False

    @property
    def duration_minutes(self) -> Optional[int]:
        """Length in minutes when both ends carry a time of day."""
        if self.all_day or not self.start or not self.end:
            return None
        return round((self.end - self.start).total_seconds() / 60)
