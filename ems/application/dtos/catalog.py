"""DTOs for catalog use cases (event listings with derived status)."""

from dataclasses import dataclass

from ems.domain.entities.event import Event
from ems.domain.enums import EventStatus


@dataclass(frozen=True)
class EventListItem:
    """Event plus its status at the time the list was built."""

    event: Event
    status: EventStatus

    @property
    def event_id(self) -> str:
        return self.event.event_id
