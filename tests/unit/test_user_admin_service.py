"""UserAdminService: admin gate, cached user lists and role changes."""

import re
from unittest.mock import AsyncMock

import pytest

from ems.application.services.user_admin_service import UserAdminService
from ems.domain.enums import Role
from ems.domain.exceptions import (
    AuthorizationException,
    NotAuthenticatedException,
    ResourceNotFoundException,
)
from ems.infrastructure.cache.keys import users_key
from tests.fakes import make_profile


@pytest.fixture
def admin_service(cache):
    profiles = AsyncMock()
    profiles.list_profiles = AsyncMock(
        return_value=[make_profile("a1", Role.ADMIN), make_profile("v1")]
    )
    profiles.fetch_by_user_id = AsyncMock(return_value=make_profile("v1"))
    return UserAdminService(profiles, cache), profiles


@pytest.mark.asyncio
async def test_non_admin_denied(admin_service) -> None:
    svc, profiles = admin_service
    with pytest.raises(AuthorizationException):
        await svc.list_users(make_profile(role=Role.ORGANIZER))
    with pytest.raises(NotAuthenticatedException):
        await svc.list_users(None)
    profiles.list_profiles.assert_not_called()


@pytest.mark.asyncio
async def test_list_cached_per_role_filter(admin_service, cache) -> None:
    svc, profiles = admin_service
    admin = make_profile(role=Role.ADMIN)
    await svc.list_users(admin)
    await svc.list_users(admin)
    await svc.list_users(admin, Role.VISITOR)
    assert profiles.list_profiles.await_count == 2
    assert users_key() in cache
    assert users_key(Role.VISITOR) in cache


@pytest.mark.asyncio
async def test_change_role_drops_all_user_lists(admin_service, cache) -> None:
    svc, profiles = admin_service
    admin = make_profile(role=Role.ADMIN)
    await svc.list_users(admin)
    await svc.list_users(admin, Role.VISITOR)

    await svc.change_user_role(admin, "user-v1", Role.VISITOR)

    profiles.update_role.assert_awaited_once_with("user-v1", Role.VISITOR, organizer_code=None)
    profiles.fetch_by_user_id.assert_not_called()
    assert users_key() not in cache
    assert users_key(Role.VISITOR) not in cache


@pytest.mark.asyncio
async def test_promotion_to_organizer_assigns_code(admin_service) -> None:
    svc, profiles = admin_service

    await svc.change_user_role(make_profile(role=Role.ADMIN), "user-v1", Role.ORGANIZER)

    profiles.fetch_by_user_id.assert_awaited_once_with("user-v1")
    args, kwargs = profiles.update_role.call_args
    assert args == ("user-v1", Role.ORGANIZER)
    assert re.fullmatch(r"ORG-[0-9A-Z]{6}", kwargs["organizer_code"])


@pytest.mark.asyncio
async def test_promotion_keeps_existing_code(admin_service) -> None:
    svc, profiles = admin_service
    profiles.fetch_by_user_id = AsyncMock(
        return_value=make_profile("v1", organizer_code="ORG-KEEP01")
    )

    await svc.change_user_role(make_profile(role=Role.ADMIN), "user-v1", Role.ORGANIZER)

    profiles.update_role.assert_awaited_once_with(
        "user-v1", Role.ORGANIZER, organizer_code="ORG-KEEP01"
    )


@pytest.mark.asyncio
async def test_promoting_unknown_user_writes_nothing(admin_service, cache) -> None:
    svc, profiles = admin_service
    profiles.fetch_by_user_id = AsyncMock(return_value=None)
    admin = make_profile(role=Role.ADMIN)
    await svc.list_users(admin)

    with pytest.raises(ResourceNotFoundException):
        await svc.change_user_role(admin, "user-ghost", Role.ORGANIZER)

    profiles.update_role.assert_not_called()
    assert users_key() in cache
