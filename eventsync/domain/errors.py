"""Domain error taxonomy for event reconciliation."""


class ReconciliationError(Exception):
    """Base class for errors raised while reconciling external events."""


class MalformedPayload(ReconciliationError):
    """Inbound body is structurally unparseable or lacks its required envelope."""

    def __init__(self, message: str, received_keys: list[str] | None = None):
        super().__init__(message)
        self.received_keys = received_keys or []


class UnresolvedOwner(ReconciliationError):
    """Natural key does not map to a known tenant; acknowledged as a soft failure."""


class SideEffectFailure(ReconciliationError):
    """A conditional side effect failed; never affects the entity upsert."""
