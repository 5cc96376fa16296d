"""Tests for domain exceptions (error_code, message, details)."""

from ems.domain.exceptions import (
    AlreadyRegisteredException,
    AuthorizationException,
    AuthProviderException,
    ConfigurationException,
    EMSException,
    NotAuthenticatedException,
    NotificationException,
    PersistenceException,
    ProfileNotFoundException,
    RegistrationClosedException,
    ResourceNotFoundException,
    ValidationException,
    VenueUnavailableException,
)


def test_ems_exception_default_error_code() -> None:
    """Base EMSException uses class name as error_code when not provided."""
    exc = EMSException("Something failed")
    assert exc.message == "Something failed"
    assert exc.error_code == "EMSException"
    assert exc.details == {}


def test_ems_exception_custom_error_code_and_details() -> None:
    exc = EMSException("Oops", error_code="CUSTOM", details={"key": "value"})
    assert exc.error_code == "CUSTOM"
    assert exc.details == {"key": "value"}
    assert str(exc) == "Oops"


def test_validation_exception_with_and_without_field() -> None:
    assert ValidationException("Invalid", field="email").details == {"field": "email"}
    assert ValidationException("Invalid").details == {}


def test_not_authenticated_default_message() -> None:
    exc = NotAuthenticatedException()
    assert exc.error_code == "NOT_AUTHENTICATED"
    assert exc.message == "No authenticated user or profile"


def test_profile_not_found_recoverable_flag() -> None:
    exc = ProfileNotFoundException("auth-1", recoverable=True)
    assert exc.error_code == "PROFILE_NOT_FOUND"
    assert exc.recoverable
    assert not ProfileNotFoundException("auth-1").recoverable


def test_persistence_exception_message() -> None:
    exc = PersistenceException("update profile", "timeout")
    assert exc.message == "Failed to update profile: timeout"
    assert exc.details == {"operation": "update profile", "reason": "timeout"}


def test_boundary_errors_have_codes() -> None:
    assert AuthProviderException("sign_out", "x").error_code == "AUTH_PROVIDER_ERROR"
    assert NotificationException("a@b.io", "x").error_code == "NOTIFICATION_ERROR"
    assert ConfigurationException("EMS_SUPABASE_URL").details == {"setting": "EMS_SUPABASE_URL"}


def test_authorization_exception_message_from_action_and_role() -> None:
    exc = AuthorizationException(action="create_event", role="visitor")
    assert exc.message == "Permission denied: role visitor cannot create_event"
    assert exc.error_code == "PERMISSION_DENIED"
    assert AuthorizationException().details == {}


def test_catalog_errors() -> None:
    assert ResourceNotFoundException("event", "e1").message == "event not found: e1"
    assert RegistrationClosedException("e1").error_code == "REGISTRATION_CLOSED"
    exc = AlreadyRegisteredException("e1", "u1")
    assert exc.error_code == "ALREADY_REGISTERED"
    assert exc.details == {"event_id": "e1", "user_id": "u1"}


def test_venue_unavailable_lists_conflicts() -> None:
    exc = VenueUnavailableException("Auditorium", ["e1", "e2"])
    assert exc.error_code == "VENUE_UNAVAILABLE"
    assert exc.details == {"venue": "Auditorium", "conflicting_event_ids": ["e1", "e2"]}
