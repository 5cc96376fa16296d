"""Participant row and registration schemas (participants table)."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from ems.domain.entities.participant import Participant
from ems.domain.enums import ParticipantStatus
from ems.shared.utils.datetime import ensure_utc


class ParticipantRow(BaseModel):
    """Row of the participants table as returned by PostgREST."""

    model_config = ConfigDict(extra="ignore")

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

    @field_validator("created_at")
    @classmethod
    def _utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value)

    def to_entity(self) -> Participant:
        return Participant(**self.model_dump())


class ParticipantCreate(BaseModel):
    """Registration form submitted by a visitor."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=128)
    email: EmailStr
    phone: str = Field(..., min_length=1, max_length=32)
    designation: str = Field(..., min_length=1, max_length=64)
    department: str = Field(..., min_length=1, max_length=128)
    gender: str = Field(..., min_length=1, max_length=16)
    address: str | None = None
    batch: str | None = None
    student_id: str | None = None

    @field_validator("gender")
    @classmethod
    def _lower_gender(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("batch", "student_id")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        return value or None

    def to_row(self, event_id: str, user_id: str) -> dict:
        """Serialize for insert with status 'registered'."""
        row = self.model_dump(mode="json")
        row.update(
            event_id=event_id,
            user_id=user_id,
            status=ParticipantStatus.REGISTERED.value,
        )
        return row
