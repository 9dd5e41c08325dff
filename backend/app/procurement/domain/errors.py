class DomainError(Exception):
    """Base domain error with a user-facing message."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class PermissionDenied(DomainError):
    """Raised when the acting user may not act on the current approval step."""


class NotFound(DomainError):
    """Raised when a required entity is missing."""


class InvalidRequest(DomainError):
    """Raised when submitted data fails validation."""


class RequestClosed(DomainError):
    """Raised when an action targets a request that is already approved or rejected."""


class StaleRequest(DomainError):
    """Raised when an action was issued against an outdated approval level."""


class PersistenceError(DomainError):
    """Raised when the request store cannot be read or written."""
