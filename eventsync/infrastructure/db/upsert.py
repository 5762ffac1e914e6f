"""Dialect-aware INSERT ... ON CONFLICT construction."""
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session


def dialect_insert(session: Session, model):
    """
    Build an INSERT supporting on_conflict_do_update for the session's backend.

    Args:
        session: Database session
        model: ORM model class

    Returns:
        Dialect-specific Insert construct

    Raises:
        ValueError: If the backend has no ON CONFLICT support
    """
    dialect_name = session.get_bind().dialect.name
    if dialect_name == "postgresql":
        return postgresql.insert(model)
    if dialect_name == "sqlite":
        return sqlite.insert(model)
    raise ValueError(f"Unsupported database backend for upsert: {dialect_name}")
