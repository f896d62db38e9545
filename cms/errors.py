"""Custom domain exceptions for the application."""

from dataclasses import dataclass

# Stable, machine-readable error codes for API consumers.
NOT_FOUND = "NOT_FOUND"
VALIDATION_ERROR = "VALIDATION_ERROR"
UNAUTHORIZED = "UNAUTHORIZED"
FORBIDDEN = "FORBIDDEN"
INTERNAL_ERROR = "INTERNAL_ERROR"
HTTP_ERROR = "HTTP_ERROR"


@dataclass(frozen=True)
class FieldError:
    """A single validation failure tied to an input field."""

    field: str
    message: str


class DomainError(Exception):
    """Base exception for domain/business logic errors."""

    pass


class NotFoundError(DomainError):
    """Raised when a requested resource does not exist."""

    pass


class DomainValidationError(DomainError):
    """Raised when submitted data fails validation.

    Carries every field-level failure that was found, not just the first one.
    """

    def __init__(self, errors: list[FieldError], message: str = "Validation failed"):
        super().__init__(message)
        self.errors = errors

    @classmethod
    def single(cls, field: str, message: str) -> "DomainValidationError":
        return cls([FieldError(field, message)], message)

    def messages(self) -> list[str]:
        return [error.message for error in self.errors]


class UnauthorizedError(DomainError):
    """Raised when credentials are missing, invalid, or lack the required role."""

    pass


class ForbiddenError(DomainError):
    """Raised when an authenticated user acts on a resource that is not theirs."""

    pass


class InvalidTokenError(DomainError):
    """Raised when an identity token is malformed, tampered with, or expired."""

    pass
