"""Application interfaces (ports) for repositories and external services."""

from ems.application.interfaces.repositories import (
    IEventRepository,
    IParticipantRepository,
    IProfileRepository,
)
from ems.application.interfaces.services import (
    AuthStateListener,
    IAuthProvider,
    INotificationService,
    Unsubscribe,
)

__all__ = [
    "AuthStateListener",
    "IAuthProvider",
    "IEventRepository",
    "INotificationService",
    "IParticipantRepository",
    "IProfileRepository",
    "Unsubscribe",
]
