"""Tests for domain entities (Profile, Event, Participant) and enums."""

from datetime import datetime, timedelta, timezone

import pytest

from ems.domain.entities.event import Event
from ems.domain.entities.participant import Participant
from ems.domain.entities.profile import Profile
from ems.domain.enums import EventStatus, Role, SessionStatus
from ems.domain.exceptions import ValidationException

T0 = datetime(2025, 5, 1, 9, 0, 0, tzinfo=timezone.utc)


class TestRole:
    """Role enum values and .values() helper."""

    def test_values_returns_closed_set(self) -> None:
        assert sorted(Role.values()) == ["admin", "organizer", "visitor"]

    def test_unknown_role_rejected(self) -> None:
        with pytest.raises(ValueError):
            Role("superuser")

    def test_session_status_has_resting_states(self) -> None:
        assert "authenticated" in SessionStatus.values()
        assert "unauthenticated" in SessionStatus.values()


class TestProfile:
    def _profile(self, **overrides) -> Profile:
        fields = dict(user_id="u1", auth_id="a1", email="a@example.com", role=Role.VISITOR)
        fields.update(overrides)
        return Profile(**fields)

    def test_requires_ids(self) -> None:
        with pytest.raises(ValidationException) as exc_info:
            self._profile(auth_id="")
        assert exc_info.value.details == {"field": "auth_id"}

    def test_role_must_be_enum_member(self) -> None:
        with pytest.raises(ValidationException):
            self._profile(role="admin")

    def test_display_name_fallbacks(self) -> None:
        assert self._profile(full_name="Alice", username="al").display_name == "Alice"
        assert self._profile(username="al").display_name == "al"
        assert self._profile().display_name == "a@example.com"

    def test_first_login_tracks_last_login_at(self) -> None:
        profile = self._profile()
        assert profile.is_first_login()
        assert not profile.with_changes(last_login_at=T0).is_first_login()

    def test_with_changes_returns_new_validated_copy(self) -> None:
        profile = self._profile()
        promoted = profile.with_changes(role=Role.ORGANIZER)
        assert profile.role == Role.VISITOR
        assert promoted.has_role(Role.ORGANIZER, Role.ADMIN)
        with pytest.raises(ValidationException):
            profile.with_changes(user_id="")

    def test_belongs_to(self) -> None:
        assert self._profile().belongs_to("a1")
        assert not self._profile().belongs_to(None)


class TestEvent:
    def _event(self, start=T0, end=T0 + timedelta(hours=3)) -> Event:
        return Event(event_id="e1", event_name="Expo", start_date=start, end_date=end)

    def test_end_before_start_rejected(self) -> None:
        with pytest.raises(ValidationException) as exc_info:
            self._event(end=T0 - timedelta(minutes=1))
        assert exc_info.value.details == {"field": "end_date"}

    def test_blank_name_rejected(self) -> None:
        with pytest.raises(ValidationException):
            Event(event_id="e1", event_name="  ", start_date=T0, end_date=T0)

    def test_status_by_time(self) -> None:
        event = self._event()
        assert event.status(T0 - timedelta(seconds=1)) == EventStatus.UPCOMING
        assert event.status(T0 + timedelta(hours=1)) == EventStatus.RUNNING
        assert event.status(T0 + timedelta(hours=4)) == EventStatus.ENDED

    def test_registration_open_until_end(self) -> None:
        event = self._event()
        assert event.is_registration_open(T0 + timedelta(hours=3))
        assert not event.is_registration_open(T0 + timedelta(hours=3, seconds=1))

    def test_overlaps_needs_shared_day_and_time_window(self) -> None:
        event = Event(
            event_id="e1",
            event_name="Expo",
            start_date=T0,
            end_date=T0 + timedelta(days=1),
            start_time="09:00:00",
            end_time="12:00:00",
        )
        next_day = T0 + timedelta(days=1)
        assert event.overlaps(next_day, next_day, "11:00", "13:00")
        assert not event.overlaps(next_day, next_day, "12:00", "13:00")
        assert not event.overlaps(T0 + timedelta(days=2), T0 + timedelta(days=3), "09:00", "12:00")

    def test_event_without_times_takes_whole_day(self) -> None:
        assert self._event().overlaps(T0, T0, "22:00", "23:00")


def test_participant_requires_event_and_user() -> None:
    with pytest.raises(ValidationException):
        Participant(participant_id="p1", event_id="", user_id="u1", name="A", email="a@x.io")
