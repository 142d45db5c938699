class DomainError(Exception):
    """Base exception for business rule violations."""

    status_code = 400


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class UnprocessableError(ValidationError):
    """Raised when input is well-formed but cannot be computed (e.g. negative durations)."""

    status_code = 422


class InvariantError(DomainError):
    """Raised when a state transition is not allowed from the current state."""


class AuthenticationError(DomainError):
    """Raised when credentials or tokens are invalid."""

    status_code = 401


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    status_code = 403


class NotFoundError(DomainError):
    """Raised when the target entity does not exist."""

    status_code = 404
