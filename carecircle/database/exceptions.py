"""Custom exceptions for mirror database operations."""


class DatabaseError(Exception):
    """Base exception for database errors."""
    pass


class DatabaseConnectionError(DatabaseError):
    """Database connection failed."""
    pass


class DatabaseOperationError(DatabaseError):
    """General database operation failed."""
    pass


class ValidationError(DatabaseError):
    """Upsert payload failed validation; nothing was written."""
    pass


class CompletionConflictError(DatabaseError):
    """Upsert tried to rewrite the completion of an already completed task."""
    pass
