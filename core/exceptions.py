"""Custom exception classes for the application.

Defines domain-specific exceptions that can be raised throughout the
application and handled consistently by exception handlers.
"""

from typing import Optional, Any, Dict


class AppException(Exception):
    """Base exception class for all application exceptions.

    Attributes:
        message: Human-readable error message.
        status_code: HTTP status code to return.
        details: Optional additional error details.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        """Initialize application exception.

        Args:
            message: Error message.
            status_code: HTTP status code (default: 500).
            details: Optional dictionary with additional error context.
        """
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(AppException):
    """Exception raised when a requested resource is not found."""

    def __init__(self, resource: str, identifier: Any = None, message: Optional[str] = None):
        """Initialize not found error.

        Args:
            resource: Type of resource (e.g., 'Grocery', 'Meal').
            identifier: ID or identifier that was not found.
            message: Optional message overriding the generated one.
        """
        if message is None:
            message = f"{resource} with id '{identifier}' not found"
        super().__init__(message, status_code=404, details={"resource": resource, "id": identifier})


class ConflictError(AppException):
    """Exception raised when an entity or link would violate a uniqueness rule."""

    def __init__(self, message: str, resource: Optional[str] = None):
        details = {"resource": resource} if resource else {}
        super().__init__(message, status_code=409, details=details)


class PermissionDeniedError(AppException):
    """Exception raised when the caller's permission level or ownership is insufficient."""

    def __init__(self, message: str = "Permission denied", required_level: Optional[int] = None):
        details = {"required_level": required_level} if required_level is not None else {}
        super().__init__(message, status_code=403, details=details)


class AuthenticationError(AppException):
    """Exception raised when credentials or a bearer token cannot be verified."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, status_code=401)


class ValidationError(AppException):
    """Exception raised when input validation fails."""

    def __init__(self, message: str, field: Optional[str] = None):
        """Initialize validation error.

        Args:
            message: Validation error message.
            field: Optional field name that failed validation.
        """
        details = {"field": field} if field else {}
        super().__init__(message, status_code=400, details=details)


class TransactionAbortedError(AppException):
    """Exception raised when a multi-step mutation failed and was rolled back.

    The store is left exactly as it was before the operation, so callers may
    retry.
    """

    def __init__(self, operation: Optional[str] = None):
        details = {"retryable": True}
        if operation:
            details["operation"] = operation
        super().__init__("The operation could not be completed, please retry", status_code=503, details=details)


class DatabaseError(AppException):
    """Exception raised when database operations fail."""

    def __init__(self, message: str, operation: Optional[str] = None):
        """Initialize database error.

        Args:
            message: Database error message.
            operation: Optional operation that failed (e.g., 'create', 'update').
        """
        details = {"operation": operation} if operation else {}
        super().__init__(message, status_code=500, details=details)


class ConfigurationError(AppException):
    """Exception raised when application configuration is invalid."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        """Initialize configuration error.

        Args:
            message: Configuration error message.
            config_key: Optional configuration key that is invalid.
        """
        details = {"config_key": config_key} if config_key else {}
        super().__init__(message, status_code=500, details=details)
