"""Shared utilities (datetime helpers, identifier generators)."""

from ems.shared.utils.datetime import ensure_utc, from_timestamp_utc, utc_now
from ems.shared.utils.generators import generate_eid, generate_organizer_code

__all__ = [
    "ensure_utc",
    "from_timestamp_utc",
    "generate_eid",
    "generate_organizer_code",
    "utc_now",
]
