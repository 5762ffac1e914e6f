"""Internal lifecycle statuses for tracked entities."""
from enum import Enum

UNKNOWN_STATUS = "unknown"


class SubscriptionStatus(str, Enum):
    """App Store subscription lifecycle."""
    ACTIVE = "active"
    RESUBSCRIBED = "resubscribed"
    EXPIRED = "expired"
    GRACE_PERIOD = "grace_period"
    BILLING_RETRY = "billing_retry"
    REFUNDED = "refunded"
    REVOKED = "revoked"
    WILL_EXPIRE = "will_expire"
    UNKNOWN = UNKNOWN_STATUS


class LeadStatus(str, Enum):
    """Sales pipeline status of a payment-provider order."""
    NOVO = "novo"
    QUALIFICADO = "qualificado"
    EM_CONTATO = "em_contato"
    NEGOCIACAO = "negociacao"
    FECHADO_GANHO = "fechado_ganho"
    FECHADO_PERDIDO = "fechado_perdido"
    UNKNOWN = UNKNOWN_STATUS

    @classmethod
    def closed(cls) -> frozenset:
        """Statuses that end the follow-up cycle."""
        return frozenset({cls.FECHADO_GANHO.value, cls.FECHADO_PERDIDO.value})


class SessionStatus(str, Enum):
    """Consulting session status derived from calendar events."""
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    UNKNOWN = UNKNOWN_STATUS
