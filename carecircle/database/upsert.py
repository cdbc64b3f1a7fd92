"""Dialect-aware INSERT .. ON CONFLICT statements."""

from sqlalchemy.dialects import postgresql, sqlite

from .exceptions import DatabaseOperationError


def insert_for(dialect_name: str, model):
    """Return an insert() for ``model`` that supports on_conflict_do_update."""
    if dialect_name == "postgresql":
        return postgresql.insert(model)
    if dialect_name == "sqlite":
        return sqlite.insert(model)
    raise DatabaseOperationError(f"Upserts are not supported on dialect '{dialect_name}'")
