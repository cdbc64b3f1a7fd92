"""Exceptions raised by ledger operations.

Each error carries a stable ``code`` so callers can surface the failure
verbatim and still branch on its kind.
"""


class LedgerError(Exception):
    """Base exception for rejected ledger operations."""

    code = "LedgerError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class InvalidInputError(LedgerError):
    """Malformed or out-of-range input."""
    code = "InvalidInput"


class NotFoundError(LedgerError):
    """Referenced circle, task or membership does not exist."""
    code = "NotFound"


class UnauthorizedError(LedgerError):
    """Caller lacks the role the operation requires."""
    code = "Unauthorized"


class AlreadyCompletedError(LedgerError):
    """Task completion is one-shot."""
    code = "AlreadyCompleted"


class AlreadyMemberError(LedgerError):
    """Address already holds an active membership."""
    code = "AlreadyMember"


class LedgerTimeoutError(LedgerError):
    """Ledger did not answer in time. Treated as a failure, never retried."""
    code = "Timeout"
