"""Application DTOs (no transport dependency)."""

from ems.application.dtos.auth import AuthIdentity, AuthSession, AuthStateEvent
from ems.application.dtos.catalog import EventListItem
from ems.application.dtos.session import SessionSnapshot

__all__ = [
    "AuthIdentity",
    "AuthSession",
    "AuthStateEvent",
    "EventListItem",
    "SessionSnapshot",
]
