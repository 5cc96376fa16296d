"""User administration: list users and change roles (admin only)."""

from __future__ import annotations

import logging

from ems.application.interfaces.repositories import IProfileRepository
from ems.application.services.authorization import require_role
from ems.domain.entities.profile import Profile
from ems.domain.enums import CacheEntity, Role
from ems.domain.exceptions import ResourceNotFoundException
from ems.infrastructure.cache.cache_protocol import CacheProtocol
from ems.infrastructure.cache.keys import users_key
from ems.shared.telemetry.tracing import add_span_attributes, traced
from ems.shared.utils.generators import generate_organizer_code

logger = logging.getLogger(__name__)


class UserAdminService:
    """Admin-facing user list (cached per role filter) and role assignment."""

    def __init__(self, profiles: IProfileRepository, cache: CacheProtocol) -> None:
        self.profiles = profiles
        self.cache = cache

    async def list_users(
        self, actor: Profile | None, role: Role | None = None
    ) -> list[Profile]:
        """Return all users, or only those with role."""
        require_role(actor, "list_users", Role.ADMIN)
        return await self.cache.get_or_load(
            users_key(role), lambda: self.profiles.list_profiles(role)
        )

    @traced("admin.change_user_role")
    async def change_user_role(self, actor: Profile | None, user_id: str, role: Role) -> None:
        """Set another user's role and drop every cached user list.

        Promotion to organizer assigns an organizer code when the user has none,
        written together with the role.

        Raises:
            NotAuthenticatedException: No actor profile.
            AuthorizationException: Actor is not an admin.
            ResourceNotFoundException: Promoting a user that does not exist.
            PersistenceException: The write failed.
        """
        actor = require_role(actor, "change_user_role", Role.ADMIN)
        add_span_attributes(user_id=user_id, role=role.value)
        organizer_code = None
        if role == Role.ORGANIZER:
            target = await self.profiles.fetch_by_user_id(user_id)
            if target is None:
                raise ResourceNotFoundException("user", user_id)
            organizer_code = target.organizer_code or generate_organizer_code()
        await self.profiles.update_role(user_id, role, organizer_code=organizer_code)
        self.cache.invalidate_matching(entity=CacheEntity.USERS)
        logger.info("User %s role set to %s by %s", user_id, role.value, actor.user_id)
