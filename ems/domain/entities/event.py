"""Event domain entity.

Represents a university event as listed in the catalog. Status is not
stored; it is derived from the start/end dates at read time.
"""

from dataclasses import dataclass
from datetime import datetime

from ems.domain.enums import EventStatus
from ems.domain.exceptions import ValidationException


def _minutes(hhmm: str | None) -> int | None:
    """Minutes since midnight for "HH:MM" or "HH:MM:SS"; None if absent or unparsable."""
    if not hhmm:
        return None
    try:
        hours, minutes = hhmm.split(":")[:2]
        return int(hours) * 60 + int(minutes)
    except ValueError:
        return None


@dataclass(frozen=True)
class Event:
    """Domain entity for an event. Validation runs on construction."""

    event_id: str
    event_name: str
    start_date: datetime
    end_date: datetime
    eid: str = ""
    organizer_name: str = ""
    organizer_code: str = ""
    venue: str = ""
    description: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    contact_phone: str | None = None
    contact_email: str | None = None
    banner_url: str | None = None
    created_by: str | None = None
    created_at: datetime | None = None

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Validate event business rules. Raises ValidationException if invalid."""
        if not self.event_id:
            raise ValidationException("Event ID is required", field="event_id")
        if not self.event_name or not self.event_name.strip():
            raise ValidationException("Event name is required", field="event_name")
        if self.end_date < self.start_date:
            raise ValidationException(
                "Event end_date must not be before start_date", field="end_date"
            )

    def status(self, now: datetime) -> EventStatus:
        """Return the event status at the given instant.

        Args:
            now: Timezone-aware reference time (usually utc_now()).

        Returns:
            UPCOMING before start, ENDED after end, RUNNING otherwise.
        """
        if now < self.start_date:
            return EventStatus.UPCOMING
        if now > self.end_date:
            return EventStatus.ENDED
        return EventStatus.RUNNING

    def is_registration_open(self, now: datetime) -> bool:
        """Registration stays open until the event's end date."""
        return now <= self.end_date

    def overlaps(
        self,
        start_date: datetime,
        end_date: datetime,
        start_time: str,
        end_time: str,
    ) -> bool:
        """Return True if this event's slot collides with the given one.

        Date ranges are compared by calendar day (inclusive). When they share
        a day, the daily HH:MM windows must also intersect; touching windows
        (one ends as the other starts) do not collide. An event with a
        missing or unreadable time is treated as taking the whole day.
        """
        if self.end_date.date() < start_date.date() or self.start_date.date() > end_date.date():
            return False
        own_start, own_end = _minutes(self.start_time), _minutes(self.end_time)
        other_start, other_end = _minutes(start_time), _minutes(end_time)
        if None in (own_start, own_end, other_start, other_end):
            return True
        return not (own_end <= other_start or own_start >= other_end)
