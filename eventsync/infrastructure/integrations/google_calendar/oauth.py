"""Google OAuth 2.0 token refresh."""
import logging
from typing import Any, Dict, Optional

import httpx

from eventsync.core.config import settings
from eventsync.domain.models.integration_account import Credentials
from eventsync.domain.services.credential_policy import CredentialPolicy

logger = logging.getLogger(__name__)


class GoogleOAuthClient:
    """
    Google OAuth 2.0 client.

    Only the refresh grant is needed: owners connect their calendar elsewhere
    and the stored refresh token is used to keep access tokens valid.
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initialize OAuth client with settings.

        Args:
            transport: Optional httpx transport (tests inject a MockTransport)
        """
        self.client_id = settings.google_client_id
        self.client_secret = settings.google_client_secret
        self.token_url = settings.google_token_url
        self.transport = transport

    async def refresh_access_token(self, refresh_token: str) -> Credentials:
        """
        Refresh access token using refresh token.

        Args:
            refresh_token: Current refresh token

        Returns:
            New credentials; refresh_token is empty when Google did not rotate it

        Raises:
            httpx.HTTPError: If token refresh fails
        """
        async with httpx.AsyncClient(timeout=30.0, transport=self.transport) as client:
            response = await client.post(
                self.token_url,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "refresh_token": refresh_token,
                    "grant_type": "refresh_token"
                }
            )
            response.raise_for_status()
            token_data = response.json()

        logger.info("Refreshed Google Calendar access token")
        return self._parse_token_response(token_data)

    @staticmethod
    def _parse_token_response(token_data: Dict[str, Any]) -> Credentials:
        """
        Parse token response into Credentials object.

        Args:
            token_data: Token response from Google

        Returns:
            Credentials object
        """
        expires_at = CredentialPolicy.expiry_from_lifetime(token_data.get("expires_in"))

        return Credentials(
            access_token=token_data["access_token"],
            refresh_token=token_data.get("refresh_token", ""),
            expires_at=expires_at,
            token_type=token_data.get("token_type", "Bearer")
        )
