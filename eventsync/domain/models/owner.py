"""Owner and consulting client models - tenants that tracked entities belong to."""
from dataclasses import dataclass
from typing import Optional


@dataclass
class Owner:
    """CRM tenant (consultant / admin user)."""
    id: str
    email: str
    role: str = "admin"
    personal_whatsapp: Optional[str] = None
    app_account_token: Optional[str] = None


@dataclass
class FollowUpSettings:
    """Per-owner configuration for the follow-up checker."""
    owner_id: str
    days_without_interaction: int = 3
    notify_in_app: bool = True
    notify_whatsapp: bool = False


@dataclass
class ConsultingClient:
    """Client of a consultant whose meetings are synced from the calendar."""
    id: str
    owner_id: str
    full_name: str
    email: str

    @property
    def first_name(self) -> str:
        return self.full_name.split(" ")[0] if self.full_name else ""
