"""
Custom Exceptions.

Application-specific exception classes for consistent error handling.
"""

from typing import Any


class ApplicationError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, code: str = "SYS_INTERNAL_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


class NotFoundError(ApplicationError):
    """Raised when a resource cannot be found."""

    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(message, code="RES_NOT_FOUND")


class ValidationError(ApplicationError):
    """Raised when validation fails."""

    def __init__(self, message: str = "Validation failed", details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message, code="VAL_VALIDATION_ERROR")


class ConflictError(ApplicationError):
    """Raised when there is a state conflict."""

    def __init__(self, message: str = "Resource conflict") -> None:
        super().__init__(message, code="RES_CONFLICT")


class ExternalServiceError(ApplicationError):
    """Raised when an external service call fails."""

    def __init__(self, message: str = "External service error") -> None:
        super().__init__(message, code="SYS_EXTERNAL_SERVICE_ERROR")


class DatabaseError(ApplicationError):
    """Raised when a database operation fails."""

    def __init__(self, message: str = "Database error") -> None:
        super().__init__(message, code="SYS_DATABASE_ERROR")


class GatewayError(ApplicationError):
    """
    Raised by the text improvement gateway.

    Carries the HTTP status to answer with and an optional details string.
    Rendered in the gateway's own ``{"error", "details"}`` body rather than
    the standard error envelope.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Any = None,
        code: str = "GATEWAY_ERROR",
    ) -> None:
        self.status_code = status_code
        self.details = details
        super().__init__(message, code=code)

    def to_body(self) -> dict[str, Any]:
        """Gateway error body: ``error`` plus ``details`` when present."""
        body: dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body
