"""
Custom Exception Classes.

Provides a hierarchy of domain-specific exceptions that are automatically
converted to appropriate HTTP responses by the global exception handler.
"""

from typing import Any


class AppException(Exception):
    """
    Base exception for all application-specific errors.

    All custom exceptions should inherit from this class.
    The global exception handler converts these to HTTP responses.
    """

    def __init__(
        self,
        message: str,
        error_code: str = "APP_ERROR",
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details,
            }
        }

# ============================================
# 4xx Client Errors
# ============================================

class BadRequestError(AppException):
    """Invalid request data or parameters (400)."""

    def __init__(
        self,
        message: str = "Invalid request",
        error_code: str = "BAD_REQUEST",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=400,
            details=details,
        )

class UnauthorizedError(AppException):
    """Authentication required or failed (401)."""

    def __init__(
        self,
        message: str = "Authentication required",
        error_code: str = "UNAUTHORIZED",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=401,
            details=details,
        )

class ForbiddenError(AppException):
    """Permission denied (403)."""

    def __init__(
        self,
        message: str = "Permission denied",
        error_code: str = "FORBIDDEN",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=403,
            details=details,
        )

class NotFoundError(AppException):
    """Resource not found (404)."""

    def __init__(
        self,
        message: str = "Resource not found",
        error_code: str = "NOT_FOUND",
        resource_type: str | None = None,
        resource_id: str | int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if resource_type:
            details["resource_type"] = resource_type
        if resource_id:
            details["resource_id"] = resource_id
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=404,
            details=details,
        )

class ConflictError(AppException):
    """Resource conflict, e.g., duplicate entry (409)."""

    def __init__(
        self,
        message: str = "Resource conflict",
        error_code: str = "CONFLICT",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=409,
            details=details,
        )

# ============================================
# 5xx Server Errors
# ============================================

class ServiceUnavailableError(AppException):
    """Service temporarily unavailable (503)."""

    def __init__(
        self,
        message: str = "Service temporarily unavailable",
        error_code: str = "SERVICE_UNAVAILABLE",
        retry_after: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if retry_after:
            details["retry_after_seconds"] = retry_after
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=503,
            details=details,
        )

# ============================================
# Domain-Specific Exceptions
# ============================================

class UserNotFoundError(NotFoundError):
    """Identity record not found."""

    def __init__(self, user_id: str | None = None, message: str | None = None) -> None:
        super().__init__(
            message=message or f"User not found: {user_id}",
            error_code="USER_NOT_FOUND",
            resource_type="user",
            resource_id=user_id,
        )

class RoleAlreadyAssignedError(ConflictError):
    """A different role has already been assigned to this user."""

    def __init__(self, current_role: str, requested_role: str) -> None:
        super().__init__(
            message=(
                f"Role '{current_role}' is already assigned; "
                f"it cannot be changed to '{requested_role}'"
            ),
            error_code="ROLE_ALREADY_ASSIGNED",
            details={"current_role": current_role, "requested_role": requested_role},
        )

class RoleNotAssignedError(ConflictError):
    """The user has not selected a role yet."""

    def __init__(self, user_id: str) -> None:
        super().__init__(
            message="No role has been selected for this user",
            error_code="ROLE_NOT_ASSIGNED",
            details={"user_id": user_id},
        )

class RoleLookupError(ServiceUnavailableError):
    """The identity backend failed while resolving a role.

    Raised for transient failures only. "No role found" is never an error;
    the resolver returns ``None`` for it.
    """

    def __init__(self, source: str) -> None:
        self.source = source
        super().__init__(
            message="Role lookup failed",
            error_code="ROLE_LOOKUP_FAILED",
            details={"source": source},
        )

class NavigationRequired(AppException):
    """Abort the current page and navigate elsewhere.

    Rendered as a 307 redirect by the global exception handler rather than
    as a JSON error body.
    """

    def __init__(self, location: str, reason: str = "redirect") -> None:
        self.location = location
        super().__init__(
            message=f"Navigation to {location} required",
            error_code="NAVIGATION_REQUIRED",
            status_code=307,
            details={"location": location, "reason": reason},
        )
