"""Auth provider (GoTrue) response schemas.

Single conversion point from auth JSON to AuthIdentity / AuthSession.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ems.application.dtos.auth import AuthIdentity, AuthSession
from ems.shared.utils.datetime import ensure_utc, from_timestamp_utc, utc_now


class AuthUserResponse(BaseModel):
    """GoTrue user object (GET /auth/v1/user)."""

    model_config = ConfigDict(extra="ignore")

    id: str
    email: str = ""
    created_at: datetime | None = None
    app_metadata: dict[str, Any] = Field(default_factory=dict)
    user_metadata: dict[str, Any] = Field(default_factory=dict)

    def to_identity(self) -> AuthIdentity:
        return AuthIdentity(
            subject_id=self.id,
            email=self.email,
            provider=self.app_metadata.get("provider"),
            created_at=ensure_utc(self.created_at),
            metadata=dict(self.user_metadata),
        )


class AuthTokenResponse(BaseModel):
    """GoTrue token grant response (POST /auth/v1/token)."""

    model_config = ConfigDict(extra="ignore")

    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None
    expires_at: int | None = None
    user: AuthUserResponse

    def to_session(self) -> AuthSession:
        if self.expires_at is not None:
            expires = from_timestamp_utc(self.expires_at)
        elif self.expires_in is not None:
            expires = from_timestamp_utc(utc_now().timestamp() + self.expires_in)
        else:
            expires = None
        return AuthSession(
            access_token=self.access_token,
            refresh_token=self.refresh_token,
            expires_at=expires,
            identity=self.user.to_identity(),
        )
