"""State mapper domain service - table-driven (event_type, subtype) -> status.

Pure business logic: no I/O, no memory of prior entity state.
"""
from typing import Mapping, Optional

from eventsync.domain.models.external_event import EventDomain
from eventsync.domain.models.status import (
    UNKNOWN_STATUS, LeadStatus, SessionStatus, SubscriptionStatus
)

# Matches any subtype, including a missing one, when no exact row exists
ANY_SUBTYPE = "*"


class StatusTable:
    """
    Lookup table from (event_type, subtype) to an internal status.

    Exact (type, subtype) rows win over (type, ANY_SUBTYPE) rows. Types absent
    from the table map to the unknown sentinel.
    """

    def __init__(self, rows: Mapping[tuple, str], case_insensitive: bool = False):
        self.case_insensitive = case_insensitive
        self._rows = {
            (self._norm(event_type), self._norm(subtype)): status
            for (event_type, subtype), status in rows.items()
        }
        self._types = frozenset(event_type for event_type, _ in self._rows)

    def _norm(self, value: Optional[str]) -> Optional[str]:
        if value is None or value == ANY_SUBTYPE:
            return value
        return value.lower() if self.case_insensitive else value

    def map(self, event_type: Optional[str], subtype: Optional[str] = None) -> str:
        """
        Map an external event type and subtype to a status.

        Args:
            event_type: External event type
            subtype: External subtype, if any

        Returns:
            Target status, or "unknown" for types outside the vocabulary
        """
        event_type = self._norm(event_type)
        subtype = self._norm(subtype)
        if event_type not in self._types:
            return UNKNOWN_STATUS
        if (event_type, subtype) in self._rows:
            return self._rows[(event_type, subtype)]
        return self._rows.get((event_type, ANY_SUBTYPE), UNKNOWN_STATUS)

    def rows(self) -> dict:
        """Copy of the normalized table, for inspection and exhaustiveness tests."""
        return dict(self._rows)


SUBSCRIPTION_STATUS_TABLE = StatusTable({
    ("SUBSCRIBED", "INITIAL_BUY"): SubscriptionStatus.ACTIVE.value,
    ("SUBSCRIBED", ANY_SUBTYPE): SubscriptionStatus.RESUBSCRIBED.value,
    ("DID_RENEW", ANY_SUBTYPE): SubscriptionStatus.ACTIVE.value,
    ("EXPIRED", ANY_SUBTYPE): SubscriptionStatus.EXPIRED.value,
    ("DID_FAIL_TO_RENEW", "GRACE_PERIOD"): SubscriptionStatus.GRACE_PERIOD.value,
    ("DID_FAIL_TO_RENEW", ANY_SUBTYPE): SubscriptionStatus.BILLING_RETRY.value,
    ("GRACE_PERIOD_EXPIRED", ANY_SUBTYPE): SubscriptionStatus.EXPIRED.value,
    ("REFUND", ANY_SUBTYPE): SubscriptionStatus.REFUNDED.value,
    ("REVOKE", ANY_SUBTYPE): SubscriptionStatus.REVOKED.value,
    ("DID_CHANGE_RENEWAL_STATUS", "AUTO_RENEW_DISABLED"): SubscriptionStatus.WILL_EXPIRE.value,
    ("DID_CHANGE_RENEWAL_STATUS", ANY_SUBTYPE): SubscriptionStatus.ACTIVE.value,
})

PAYMENT_STATUS_TABLE = StatusTable({
    ("pix_gerado", ANY_SUBTYPE): LeadStatus.QUALIFICADO.value,
    ("boleto_gerado", ANY_SUBTYPE): LeadStatus.QUALIFICADO.value,
    ("carrinho_abandonado", ANY_SUBTYPE): LeadStatus.EM_CONTATO.value,
    ("compra_aprovada", ANY_SUBTYPE): LeadStatus.FECHADO_GANHO.value,
    ("order_approved", ANY_SUBTYPE): LeadStatus.FECHADO_GANHO.value,
    ("assinatura_renovada", ANY_SUBTYPE): LeadStatus.FECHADO_GANHO.value,
    ("compra_recusada", ANY_SUBTYPE): LeadStatus.NEGOCIACAO.value,
    ("reembolso", ANY_SUBTYPE): LeadStatus.FECHADO_PERDIDO.value,
    ("compra_reembolsada", ANY_SUBTYPE): LeadStatus.FECHADO_PERDIDO.value,
    ("chargeback", ANY_SUBTYPE): LeadStatus.FECHADO_PERDIDO.value,
    ("assinatura_cancelada", ANY_SUBTYPE): LeadStatus.FECHADO_PERDIDO.value,
    ("assinatura_atrasada", ANY_SUBTYPE): LeadStatus.FECHADO_PERDIDO.value,
}, case_insensitive=True)

SESSION_STATUS_TABLE = StatusTable({
    ("confirmed", "past"): SessionStatus.COMPLETED.value,
    ("confirmed", ANY_SUBTYPE): SessionStatus.SCHEDULED.value,
    ("tentative", "past"): SessionStatus.COMPLETED.value,
    ("tentative", ANY_SUBTYPE): SessionStatus.SCHEDULED.value,
    ("cancelled", ANY_SUBTYPE): SessionStatus.CANCELLED.value,
}, case_insensitive=True)

STATUS_TABLES = {
    EventDomain.SUBSCRIPTION: SUBSCRIPTION_STATUS_TABLE,
    EventDomain.PAYMENT: PAYMENT_STATUS_TABLE,
    EventDomain.CALENDAR: SESSION_STATUS_TABLE,
}


def map_status(domain: EventDomain, event_type: Optional[str], subtype: Optional[str] = None) -> str:
    """
    Map an event of a domain to its target status.

    Args:
        domain: Event domain
        event_type: External event type
        subtype: External subtype, if any

    Returns:
        Target status; "unknown" outside the domain's vocabulary
    """
    return STATUS_TABLES[domain].map(event_type, subtype)


# ----------------------------------------------------------------------
# Payment companion tables
# ----------------------------------------------------------------------

INTERACTION_TYPES = {
    "compra_aprovada": "venda",
    "order_approved": "venda",
    "assinatura_renovada": "venda",
    "pix_gerado": "pagamento",
    "boleto_gerado": "pagamento",
    "carrinho_abandonado": "carrinho",
    "reembolso": "reembolso",
    "compra_reembolsada": "reembolso",
    "chargeback": "chargeback",
    "compra_recusada": "recusado",
    "assinatura_cancelada": "cancelamento",
    "assinatura_atrasada": "atraso",
}

NOTIFICATION_TEMPLATES = {
    "pix_gerado": (
        "PIX Gerado!",
        "{customer} gerou um PIX para {product}. Acompanhe se concluir o pagamento!"
    ),
    "boleto_gerado": (
        "Boleto Gerado!",
        "{customer} gerou um boleto para {product}. Acompanhe se concluir o pagamento!"
    ),
    "carrinho_abandonado": (
        "Carrinho Abandonado!",
        "{customer} abandonou o carrinho para {product}. Faça follow-up urgente!"
    ),
    "compra_aprovada": (
        "Venda Realizada!",
        "{customer} comprou {product}! Parabéns pela venda!"
    ),
    "order_approved": (
        "Venda Realizada!",
        "{customer} comprou {product}! Parabéns pela venda!"
    ),
    "compra_recusada": (
        "Compra Recusada",
        "Pagamento de {customer} foi recusado para {product}. Entre em contato!"
    ),
    "reembolso": (
        "Reembolso Solicitado",
        "{customer} solicitou reembolso de {product}. Verifique o motivo!"
    ),
    "compra_reembolsada": (
        "Reembolso Solicitado",
        "{customer} solicitou reembolso de {product}. Verifique o motivo!"
    ),
    "chargeback": (
        "Chargeback!",
        "{customer} abriu disputa (chargeback) para {product}. Ação urgente necessária!"
    ),
    "assinatura_cancelada": (
        "Assinatura Cancelada",
        "{customer} cancelou a assinatura de {product}. Tente recuperar!"
    ),
    "assinatura_atrasada": (
        "Assinatura Atrasada",
        "{customer} está com pagamento atrasado de {product}. Entre em contato!"
    ),
    "assinatura_renovada": (
        "Assinatura Renovada!",
        "{customer} renovou a assinatura de {product}!"
    ),
}

# Events that also push the notification to the owner's personal WhatsApp
IMPORTANT_PAYMENT_EVENTS = frozenset({
    "compra_aprovada",
    "order_approved",
    "reembolso",
    "compra_reembolsada",
    "carrinho_abandonado",
    "chargeback",
})


def interaction_type_for(event_type: str) -> str:
    """Interaction type recorded for a payment event; "outro" when unmapped."""
    return INTERACTION_TYPES.get(event_type.lower(), "outro")


def notification_for(event_type: str, customer: str, product: str) -> Optional[tuple]:
    """
    Notification title and message for a payment event.

    Returns:
        (title, message), or None for events that notify nobody
    """
    template = NOTIFICATION_TEMPLATES.get(event_type.lower())
    if template is None:
        return None
    title, message = template
    return title, message.format(customer=customer, product=product)
