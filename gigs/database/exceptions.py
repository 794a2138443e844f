"""Database exceptions."""

from typing import Optional

from ..exceptions import StoreError


class DatabaseError(StoreError):
    """Base exception for database failures."""
    pass


class DatabaseSchemaError(DatabaseError):
    """Raised when schema loading or migration fails."""
    pass


class DuplicateRowError(DatabaseError):
    """Raised when an insert or update violates a unique constraint."""

    def __init__(self, message: str, constraint: Optional[str] = None):
        self.constraint = constraint
        super().__init__(message)


__all__ = ['DatabaseError', 'DatabaseSchemaError', 'DuplicateRowError']
