"""Profile row and update schemas (users table).

ProfileRow is the single conversion point from backend rows to the
Profile entity; nothing past the repository handles untyped dicts.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from ems.domain.entities.profile import Profile
from ems.domain.enums import Role
from ems.shared.utils.datetime import ensure_utc


class ProfileRow(BaseModel):
    """Row of the users table as returned by PostgREST."""

    model_config = ConfigDict(extra="ignore")

    user_id: str
    auth_id: str
    email: str
    role: Role
    username: str | None = None
    full_name: str | None = None
    phone: str | None = None
    avatar_url: str | None = None
    organizer_code: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    last_login_at: datetime | None = None

    @field_validator("created_at", "updated_at", "last_login_at")
    @classmethod
    def _utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value)

    def to_entity(self) -> Profile:
        return Profile(
            user_id=self.user_id,
            auth_id=self.auth_id,
            email=self.email,
            role=self.role,
            username=self.username or "",
            full_name=self.full_name or "",
            phone=self.phone,
            avatar_url=self.avatar_url,
            organizer_code=self.organizer_code or "",
            created_at=self.created_at,
            updated_at=self.updated_at,
            last_login_at=self.last_login_at,
        )


class ProfileUpdate(BaseModel):
    """Editable profile fields (partial). Role changes go through update_profile_role."""

    model_config = ConfigDict(extra="forbid")

    username: str | None = Field(default=None, min_length=1, max_length=64)
    full_name: str | None = Field(default=None, min_length=1, max_length=128)
    phone: str | None = Field(default=None, max_length=32)
    avatar_url: str | None = Field(default=None, max_length=2048)

    def changes(self) -> dict[str, str | None]:
        """Return only the fields the caller set."""
        return self.model_dump(exclude_unset=True)


class ProfileContact(BaseModel):
    """Recipient of a profile notification."""

    email: EmailStr
    name: str = Field(..., min_length=1)
