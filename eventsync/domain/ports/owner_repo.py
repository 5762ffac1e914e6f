"""Owner directory and consulting client repository port interfaces."""
from abc import ABC, abstractmethod
from typing import Optional

from eventsync.domain.models.owner import ConsultingClient, FollowUpSettings, Owner


class OwnerDirectory(ABC):
    """Lookup of tenants that own tracked entities."""

    @abstractmethod
    def find_by_id(self, owner_id: str) -> Optional[Owner]:
        """Find owner by ID."""
        pass

    @abstractmethod
    def find_by_app_account_token(self, token: str) -> Optional[Owner]:
        """Find owner registered with an App Store app account token."""
        pass

    @abstractmethod
    def find_admin(self) -> Optional[Owner]:
        """Find the first owner with the admin role."""
        pass

    @abstractmethod
    def list_follow_up_settings(self) -> list[FollowUpSettings]:
        """List follow-up settings of every owner that has them."""
        pass


class ConsultingClientRepository(ABC):
    """Repository interface for consulting clients."""

    @abstractmethod
    def find_by_email(self, owner_id: str, email: str) -> Optional[ConsultingClient]:
        """Find a client of an owner by e-mail (case-insensitive)."""
        pass

    @abstractmethod
    def list_by_owner(self, owner_id: str) -> list[ConsultingClient]:
        """List every client of an owner."""
        pass
