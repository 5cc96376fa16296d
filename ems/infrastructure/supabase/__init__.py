"""Supabase adapters: REST data client, auth client and repositories."""

from ems.infrastructure.supabase._rest_client import SupabaseRESTClient
from ems.infrastructure.supabase.auth_client import SupabaseAuthClient
from ems.infrastructure.supabase.repositories import (
    SupabaseEventRepository,
    SupabaseParticipantRepository,
    SupabaseProfileRepository,
)

__all__ = [
    "SupabaseAuthClient",
    "SupabaseEventRepository",
    "SupabaseParticipantRepository",
    "SupabaseProfileRepository",
    "SupabaseRESTClient",
]
