"""Profile domain entity.

The application's own record about a user, keyed by the auth identity's
subject id. Immutable: the session resolver swaps in a new instance after
every successful write, so UI snapshots never change underneath readers.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

from ems.domain.enums import Role
from ems.domain.exceptions import ValidationException


@dataclass(frozen=True)
class Profile:
    """Application profile (role and display fields) for one auth identity."""

    user_id: str
    auth_id: str
    email: str
    role: Role
    username: str = ""
    full_name: str = ""
    phone: str | None = None
    avatar_url: str | None = None
    # Assigned on first promotion to organizer; empty until then.
    organizer_code: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None
    # Null until the first completed sign-in; drives welcome vs login notice.
    last_login_at: datetime | None = None

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Validate profile rules. Raises ValidationException if invalid."""
        if not self.user_id:
            raise ValidationException("Profile user_id is required", field="user_id")
        if not self.auth_id:
            raise ValidationException("Profile auth_id is required", field="auth_id")
        if not isinstance(self.role, Role):
            raise ValidationException(f"Unknown role: {self.role!r}", field="role")

    @property
    def display_name(self) -> str:
        """Name used in greetings: full name, then username, then email."""
        return self.full_name or self.username or self.email

    def has_role(self, *roles: Role) -> bool:
        """Return True if this profile's role is one of roles."""
        return self.role in roles

    def is_first_login(self) -> bool:
        """Return True if this profile has never completed a sign-in."""
        return self.last_login_at is None

    def belongs_to(self, auth_id: str | None) -> bool:
        """Return True if this profile is the one for the given identity."""
        return auth_id is not None and self.auth_id == auth_id

    def with_changes(self, **changes: Any) -> "Profile":
        """Return a copy with the given fields replaced (validated again)."""
        return replace(self, **changes)
