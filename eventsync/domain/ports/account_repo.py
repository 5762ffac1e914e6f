"""Calendar account repository port interface."""
from abc import ABC, abstractmethod
from typing import Optional

from eventsync.domain.models.integration_account import IntegrationAccount, IntegrationType


class IntegrationAccountRepository(ABC):
    """Storage of owners' OAuth connections for pull-based sources."""

    @abstractmethod
    def save(self, account: IntegrationAccount) -> IntegrationAccount:
        """
        Insert or update the account of (integration_type, owner_id).

        Args:
            account: Account with current tokens and status

        Returns:
            Stored account
        """
        pass

    @abstractmethod
    def find_by_owner(
        self,
        integration_type: IntegrationType,
        owner_id: str
    ) -> Optional[IntegrationAccount]:
        """Account of an owner, or None when the owner never connected."""
        pass

    @abstractmethod
    def list_all(self, integration_type: IntegrationType) -> list[IntegrationAccount]:
        """Every account of a source, oldest connection first."""
        pass
