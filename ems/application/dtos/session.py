"""DTOs for session/profile resolver state (read-only snapshots for the UI)."""

from dataclasses import dataclass

from ems.application.dtos.auth import AuthIdentity
from ems.domain.entities.profile import Profile
from ems.domain.enums import Role, SessionStatus
from ems.domain.exceptions import EMSException


@dataclass(frozen=True)
class SessionSnapshot:
    """Immutable view of who is logged in and what their role is."""

    status: SessionStatus
    identity: AuthIdentity | None = None
    profile: Profile | None = None
    error: EMSException | None = None

    @property
    def is_loading(self) -> bool:
        return self.status in (
            SessionStatus.UNINITIALIZED,
            SessionStatus.RESOLVING_SESSION,
            SessionStatus.RESOLVING_PROFILE,
        )

    @property
    def is_authenticated(self) -> bool:
        return self.status == SessionStatus.AUTHENTICATED and self.profile is not None

    @property
    def role(self) -> Role | None:
        return self.profile.role if self.profile else None
