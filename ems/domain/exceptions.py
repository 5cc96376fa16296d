"""Domain exceptions for the EMS client core.

Defines the error taxonomy surfaced to the UI layer. These exceptions are
independent of infrastructure concerns; adapters translate transport
failures (httpx errors, error responses) into them.
"""

from typing import Any


class EMSException(Exception):
    """Base exception for all EMS client errors.

    All custom exceptions inherit from this class so callers can catch one
    type and translate it into a user-visible message (e.g. a toast).

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. field, resource_id).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class ValidationException(EMSException):
    """Raised when input validation fails (e.g. invalid format or range)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize with message and optional field name.

        Args:
            message: Description of the validation failure.
            field: Optional field or attribute that failed validation.
        """
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class ConfigurationException(EMSException):
    """Raised when a required setting is missing for the requested adapter."""

    def __init__(self, setting: str) -> None:
        super().__init__(
            f"Missing required setting: {setting}",
            "CONFIGURATION_ERROR",
            {"setting": setting},
        )


class NotAuthenticatedException(EMSException):
    """Raised when an operation requires a current identity/profile and none exists."""

    def __init__(self, message: str = "No authenticated user or profile") -> None:
        super().__init__(message, "NOT_AUTHENTICATED")


class ProfileNotFoundException(EMSException):
    """Raised when a profile fetch for a known identity returned no row.

    recoverable is True while the identity is brand-new and its profile row
    may still be created by the backend; False once it is terminal.
    """

    def __init__(self, auth_id: str, recoverable: bool = False) -> None:
        """Initialize with the identity and whether a retry may succeed.

        Args:
            auth_id: Subject id of the identity whose profile is missing.
            recoverable: Whether the condition is the new-signup race.
        """
        super().__init__(
            f"No profile found for user: {auth_id}",
            "PROFILE_NOT_FOUND",
            {"auth_id": auth_id, "recoverable": recoverable},
        )

    @property
    def recoverable(self) -> bool:
        return bool(self.details.get("recoverable"))


class PersistenceException(EMSException):
    """Raised when a read or write against the data boundary fails."""

    def __init__(self, operation: str, reason: str) -> None:
        """Initialize with the failed operation and reason.

        Args:
            operation: Operation that failed (e.g. 'update_profile').
            reason: Underlying failure description.
        """
        super().__init__(
            f"Failed to {operation}: {reason}",
            "PERSISTENCE_ERROR",
            {"operation": operation, "reason": reason},
        )


class AuthProviderException(EMSException):
    """Raised when the external auth provider rejects or fails a request."""

    def __init__(self, operation: str, reason: str) -> None:
        super().__init__(
            f"Auth provider failed to {operation}: {reason}",
            "AUTH_PROVIDER_ERROR",
            {"operation": operation, "reason": reason},
        )


class NotificationException(EMSException):
    """Raised by notification adapters when a message could not be sent.

    The session resolver logs and swallows it; it never reaches UI callers.
    """

    def __init__(self, recipient: str, reason: str) -> None:
        super().__init__(
            f"Failed to send notification to {recipient}",
            "NOTIFICATION_ERROR",
            {"recipient": recipient, "reason": reason},
        )


class AuthorizationException(EMSException):
    """Raised when the current profile's role does not permit the operation."""

    def __init__(
        self,
        action: str | None = None,
        role: str | None = None,
        message: str = "Permission denied",
    ) -> None:
        """Initialize with optional action and the role that was rejected.

        Args:
            action: Optional action that was attempted (e.g. 'create_event').
            role: Role of the caller.
            message: Human-readable message; default used when action/role omitted.
        """
        if action and role:
            message = f"Permission denied: role {role} cannot {action}"
        details: dict[str, Any] = {}
        if action:
            details["action"] = action
        if role:
            details["role"] = role
        super().__init__(message, "PERMISSION_DENIED", details)


class ResourceNotFoundException(EMSException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        """Initialize with resource type and id.

        Args:
            resource_type: Type of resource (e.g. 'event', 'user').
            resource_id: The ID that was not found.
        """
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class RegistrationClosedException(EMSException):
    """Raised when registering for an event whose end date has passed."""

    def __init__(self, event_id: str) -> None:
        super().__init__(
            "Event registration has closed",
            "REGISTRATION_CLOSED",
            {"event_id": event_id},
        )


class AlreadyRegisteredException(EMSException):
    """Raised when a user registers twice for the same event."""

    def __init__(self, event_id: str, user_id: str) -> None:
        super().__init__(
            "You have already registered for this event",
            "ALREADY_REGISTERED",
            {"event_id": event_id, "user_id": user_id},
        )


class VenueUnavailableException(EMSException):
    """Raised when a new event's venue is booked by an overlapping event."""

    def __init__(self, venue: str, conflicting_event_ids: list[str]) -> None:
        super().__init__(
            f"Venue {venue} is already booked for that time",
            "VENUE_UNAVAILABLE",
            {"venue": venue, "conflicting_event_ids": conflicting_event_ids},
        )
