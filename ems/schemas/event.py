"""Event row and create schemas (events table)."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from ems.domain.entities.event import Event
from ems.shared.utils.datetime import ensure_utc
from ems.shared.utils.generators import generate_eid

# HH:MM with optional seconds, 24-hour clock
TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d(:[0-5]\d)?$"


class EventRow(BaseModel):
    """Row of the events table as returned by PostgREST."""

    model_config = ConfigDict(extra="ignore")

    event_id: str
    event_name: str
    start_date: datetime
    end_date: datetime
    eid: str | None = None
    organizer_name: str | None = None
    organizer_code: str | None = None
    venue: str | None = None
    description: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    contact_phone: str | None = None
    contact_email: str | None = None
    banner_url: str | None = None
    created_by: str | None = None
    created_at: datetime | None = None

    @field_validator("start_date", "end_date", "created_at")
    @classmethod
    def _utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value)

    def to_entity(self) -> Event:
        return Event(
            event_id=self.event_id,
            event_name=self.event_name,
            start_date=self.start_date,
            end_date=self.end_date,
            eid=self.eid or "",
            organizer_name=self.organizer_name or "",
            organizer_code=self.organizer_code or "",
            venue=self.venue or "",
            description=self.description,
            start_time=self.start_time,
            end_time=self.end_time,
            contact_phone=self.contact_phone,
            contact_email=self.contact_email,
            banner_url=self.banner_url,
            created_by=self.created_by,
            created_at=self.created_at,
        )


class Sponsor(BaseModel):
    """One sponsor line on an event page."""

    model_config = ConfigDict(extra="forbid")

    tier: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=200)


class EventDetailsCreate(BaseModel):
    """Optional event_details row written alongside a new event."""

    model_config = ConfigDict(extra="forbid")

    chief_guests: list[str] = Field(default_factory=list)
    special_guests: list[str] = Field(default_factory=list)
    speakers: list[str] = Field(default_factory=list)
    session_chair: str | None = None
    sponsors: list[Sponsor] = Field(default_factory=list)
    social_media_links: dict[str, str] | None = None

    @field_validator("chief_guests", "special_guests", "speakers")
    @classmethod
    def _strip_names(cls, names: list[str]) -> list[str]:
        return [n.strip() for n in names if n.strip()]

    def to_row(self, event_id: str) -> dict:
        row = self.model_dump(mode="json")
        row["event_id"] = event_id
        row["session_chair"] = self.session_chair or None
        row["sponsors"] = row["sponsors"] or None
        return row


class EventCreate(BaseModel):
    """Fields an organizer submits to create an event."""

    model_config = ConfigDict(extra="forbid")

    event_name: str = Field(..., min_length=1, max_length=200)
    organizer_name: str = Field(..., min_length=1, max_length=200)
    organizer_code: str = Field(default="", max_length=32)
    venue: str = Field(..., min_length=1, max_length=200)
    start_date: datetime
    end_date: datetime
    description: str | None = None
    start_time: str | None = Field(default=None, pattern=TIME_PATTERN)
    end_time: str | None = Field(default=None, pattern=TIME_PATTERN)
    contact_phone: str | None = Field(default=None, max_length=32)
    contact_email: EmailStr | None = None
    banner_url: str | None = None
    details: EventDetailsCreate | None = None

    @model_validator(mode="after")
    def _dates_in_order(self) -> "EventCreate":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self

    def to_row(self, created_by: str, eid: str | None = None) -> dict:
        """Serialize the events row, stamping the creator and a public eid.

        details is not part of the row; the repository writes it separately.
        """
        row = self.model_dump(mode="json", exclude={"details"})
        row["eid"] = eid or generate_eid()
        row["created_by"] = created_by
        return row
