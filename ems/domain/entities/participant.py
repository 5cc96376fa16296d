"""Participant domain entity (a user's registration for an event)."""

from dataclasses import dataclass
from datetime import datetime

from ems.domain.enums import ParticipantStatus
from ems.domain.exceptions import ValidationException


@dataclass(frozen=True)
class Participant:
    """Registration record linking a user to an event."""

    participant_id: str
    event_id: str
    user_id: str
    name: str
    email: str
    status: ParticipantStatus = ParticipantStatus.REGISTERED
    designation: str | None = None
    phone: str | None = None
    address: str | None = None
    batch: str | None = None
    student_id: str | None = None
    gender: str | None = None
    department: str | None = None
    created_at: datetime | None = None

    def __post_init__(self) -> None:
        if not self.event_id:
            raise ValidationException("Participant event_id is required", field="event_id")
        if not self.user_id:
            raise ValidationException("Participant user_id is required", field="user_id")
