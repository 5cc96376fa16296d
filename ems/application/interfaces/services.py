"""Service interfaces (ports) for external collaborators.

Protocols define contracts for the auth provider and notification sender (DIP).
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ems.application.dtos.auth import AuthSession, AuthStateEvent

AuthStateListener = Callable[["AuthStateEvent"], None]
Unsubscribe = Callable[[], None]


class IAuthProvider(Protocol):
    """Protocol for the external auth provider boundary."""

    async def get_session(self) -> AuthSession | None:
        """Return the existing session, or None when nobody is signed in."""

    def on_auth_state_change(self, callback: AuthStateListener) -> Unsubscribe:
        """Register callback for auth events (called in emission order); return unsubscribe."""

    async def sign_out(self) -> None:
        """Terminate the session. Raises AuthProviderException on failure."""

    async def sign_in_with_oauth(
        self,
        provider: str,
        redirect_to: str,
        query_params: dict[str, str] | None = None,
    ) -> str:
        """Start the OAuth redirect flow; return the URL the user must visit."""


class INotificationService(Protocol):
    """Protocol for fire-and-forget user notifications (welcome / login emails)."""

    async def send_welcome_notification(self, email: str, name: str) -> None:
        """Send the first-login welcome message. Raises NotificationException."""

    async def send_login_notification(self, email: str, name: str) -> None:
        """Send the new-login notice. Raises NotificationException."""
