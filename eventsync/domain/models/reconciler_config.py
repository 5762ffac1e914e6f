"""ReconcilerConfig value object - explicit configuration for reconcilers."""
from dataclasses import dataclass


@dataclass(frozen=True)
class ReconcilerConfig:
    """
    Configuration passed into reconcilers and decoders at construction time.

    Reconciliation code never reads the environment; the API and Temporal
    layers build this from settings and inject it.
    """
    session_dedup_window_minutes: int = 60
    enforce_event_ordering: bool = False
    decode_max_depth: int = 3
    calendar_lookback_days: int = 30
    calendar_lookahead_days: int = 60
