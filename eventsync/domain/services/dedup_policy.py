"""De-duplication policy domain service - guards against duplicate side effects."""
from datetime import date, datetime, timedelta

from eventsync.domain.models.external_event import to_naive_utc


class DedupPolicy:
    """
    Domain service for the time-based duplicate guards.

    - "already notified today": one notification per key and kind per UTC day
    - "+/- window": sessions starting close together are the same session,
      tolerating clock and precision differences between systems
    """

    DEFAULT_SESSION_WINDOW_MINUTES = 60

    @staticmethod
    def notification_day(moment: datetime) -> date:
        """
        Calendar day (UTC) a notification created at ``moment`` counts against.

        Args:
            moment: Creation time

        Returns:
            UTC calendar day
        """
        return to_naive_utc(moment).date()

    @staticmethod
    def day_bounds(day: date) -> tuple:
        """
        Half-open [start, end) naive UTC bounds of a calendar day.

        Args:
            day: Calendar day

        Returns:
            Tuple of (start, end)
        """
        start = datetime(day.year, day.month, day.day)
        return start, start + timedelta(days=1)

    @staticmethod
    def window_bounds(
        starts_at: datetime,
        window_minutes: int = DEFAULT_SESSION_WINDOW_MINUTES
    ) -> tuple:
        """
        Inclusive bounds of the duplicate window around a session start.

        Args:
            starts_at: Session start
            window_minutes: Tolerance on both sides

        Returns:
            Tuple of (lower, upper)
        """
        starts_at = to_naive_utc(starts_at)
        delta = timedelta(minutes=window_minutes)
        return starts_at - delta, starts_at + delta

    @staticmethod
    def days_since(moment: datetime, now: datetime) -> int:
        """
        Whole days elapsed between ``moment`` and ``now``.

        Args:
            moment: Last activity
            now: Reference time

        Returns:
            Floor of the elapsed days
        """
        return (to_naive_utc(now) - to_naive_utc(moment)) // timedelta(days=1)
