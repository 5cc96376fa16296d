"""Domain entities.

Pure domain models; no transport or persistence concerns.
"""

from ems.domain.entities.event import Event
from ems.domain.entities.participant import Participant
from ems.domain.entities.profile import Profile

__all__ = [
    "Event",
    "Participant",
    "Profile",
]
