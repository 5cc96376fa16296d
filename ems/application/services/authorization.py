"""Role gate: flat comparisons against the closed Role enum.

There is no policy engine; each guarded operation names the roles it allows.
"""

from __future__ import annotations

from ems.domain.entities.profile import Profile
from ems.domain.enums import Role
from ems.domain.exceptions import AuthorizationException, NotAuthenticatedException

# Roles allowed to manage events and see their participants.
EVENT_MANAGER_ROLES = (Role.ORGANIZER, Role.ADMIN)

# Roles a user may switch to on their own profile.
SELF_SERVICE_ROLES = (Role.ORGANIZER, Role.VISITOR)


def check_role(profile: Profile | None, *roles: Role) -> bool:
    """Return True if profile exists and holds one of roles."""
    return profile is not None and profile.has_role(*roles)


def require_role(profile: Profile | None, action: str, *roles: Role) -> Profile:
    """Return profile if it holds one of roles.

    Raises:
        NotAuthenticatedException: No profile.
        AuthorizationException: Profile role not in roles.
    """
    if profile is None:
        raise NotAuthenticatedException()
    if not profile.has_role(*roles):
        raise AuthorizationException(action=action, role=profile.role.value)
    return profile
