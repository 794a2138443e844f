"""Error taxonomy shared by the catalog, the order ledger and the API.

Every error carries a ``kind`` the caller can branch on and the HTTP status it
maps to at the API boundary.
"""


class MarketplaceError(Exception):
    """Base class for all marketplace errors."""
    kind = 'store_error'
    status_code = 500


class UnauthenticatedError(MarketplaceError):
    """Raised when no caller identity can be resolved."""
    kind = 'unauthenticated'
    status_code = 401


class ForbiddenError(MarketplaceError):
    """Raised when the caller lacks the role or ownership for a resource."""
    kind = 'forbidden'
    status_code = 403


class NotFoundError(MarketplaceError):
    """Raised when a resource id does not exist."""
    kind = 'not_found'
    status_code = 404


class ValidationError(MarketplaceError):
    """Raised on malformed or constraint-violating input."""
    kind = 'validation_error'
    status_code = 400


class ConflictError(MarketplaceError):
    """Raised when a write would duplicate an existing record."""
    kind = 'conflict'
    status_code = 409


class StoreError(MarketplaceError):
    """Raised when the underlying datastore fails."""
    kind = 'store_error'
    status_code = 500


__all__ = [
    'MarketplaceError',
    'UnauthenticatedError',
    'ForbiddenError',
    'NotFoundError',
    'ValidationError',
    'ConflictError',
    'StoreError'
]
