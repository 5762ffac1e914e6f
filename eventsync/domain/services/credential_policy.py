"""Credential policy domain service - when calendar tokens are refreshed."""
from datetime import datetime, timedelta
from typing import Any, Optional

from eventsync.domain.models.external_event import utcnow
from eventsync.domain.models.integration_account import AccountStatus, IntegrationAccount

# Refresh this long before expiry so a sync never starts with a dying token
REFRESH_MARGIN_MINUTES = 5
DEFAULT_TOKEN_LIFETIME_SECONDS = 3600


class CredentialPolicy:
    """Token lifecycle rules for calendar accounts; no I/O."""

    @staticmethod
    def should_refresh_credentials(
        account: IntegrationAccount,
        margin_minutes: int = REFRESH_MARGIN_MINUTES
    ) -> bool:
        """
        Whether the access token must be refreshed before calling the API.

        ERROR accounts are always retried so a transient refresh failure
        does not leave the calendar disconnected.

        Args:
            account: Calendar account about to be used
            margin_minutes: Minutes before expiry that already count as expired

        Returns:
            True if a refresh is needed
        """
        if account.status == AccountStatus.ERROR:
            return True
        return account.credentials.expires_within(margin_minutes)

    @staticmethod
    def expiry_from_lifetime(expires_in: Any, issued_at: Optional[datetime] = None) -> datetime:
        """
        Absolute expiry of a token from the token endpoint's expires_in.

        Args:
            expires_in: Lifetime in seconds; missing or unparseable values
                fall back to one hour
            issued_at: Issue time (defaults to now, naive UTC)

        Returns:
            Naive UTC expiry timestamp
        """
        try:
            seconds = int(expires_in)
        except (TypeError, ValueError):
            seconds = DEFAULT_TOKEN_LIFETIME_SECONDS
        return (issued_at or utcnow()) + timedelta(seconds=seconds)
