"""DTOs for the auth provider boundary (no dependency on transport)."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ems.domain.enums import AuthEventType


@dataclass(frozen=True)
class AuthIdentity:
    """Identity issued by the external auth provider (who is logged in)."""

    subject_id: str
    email: str
    provider: str | None = None
    created_at: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def display_name(self) -> str:
        """Name from provider metadata (e.g. Google full_name), else email."""
        return (
            self.metadata.get("full_name")
            or self.metadata.get("name")
            or self.email
        )


@dataclass(frozen=True)
class AuthSession:
    """Active session: tokens plus the identity they were issued for."""

    access_token: str
    identity: AuthIdentity
    refresh_token: str | None = None
    expires_at: datetime | None = field(default=None, compare=False)

    def is_expired(self, now: datetime) -> bool:
        """Return True if the access token has expired at now."""
        return self.expires_at is not None and now >= self.expires_at


@dataclass(frozen=True)
class AuthStateEvent:
    """One notification from the auth provider's event stream."""

    type: AuthEventType
    session: AuthSession | None = None

    @property
    def identity(self) -> AuthIdentity | None:
        return self.session.identity if self.session else None
