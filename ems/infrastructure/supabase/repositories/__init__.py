"""Supabase (PostgREST) repository implementations."""

from ems.infrastructure.supabase.repositories.event_repo import SupabaseEventRepository
from ems.infrastructure.supabase.repositories.participant_repo import (
    SupabaseParticipantRepository,
)
from ems.infrastructure.supabase.repositories.profile_repo import SupabaseProfileRepository

__all__ = [
    "SupabaseEventRepository",
    "SupabaseParticipantRepository",
    "SupabaseProfileRepository",
]
