"""Tests for ensemble.core.schemas — boundary validation."""

from datetime import date, datetime

import pytest

from ensemble.core.errors import InvalidInputError
from ensemble.core.schemas import (
    CreateEventInput,
    CreateTaskInput,
    MemberInput,
    UpdateEventInput,
    UpdateTaskInput,
    validate_input,
)
from ensemble.data.models import EventCategory, MemberType, PetType, Recurrence, Visibility


def _event(**overrides):
    payload = {
        "title": "Swimming",
        "dates": '["2026-03-02", "2026-03-09"]',
        "start_time": "17:00",
        "end_time": "18:00",
        "category": "SPORT",
    }
    payload.update(overrides)
    return payload


class TestCreateEventInput:
    def test_json_encoded_dates(self):
        data = validate_input(CreateEventInput, _event())
        assert data.dates == [date(2026, 3, 2), date(2026, 3, 9)]
        assert data.category == EventCategory.SPORT
        assert data.visibility == Visibility.HOUSEHOLD
        assert data.participant_ids == []

    def test_list_of_dates_deduplicated(self):
        data = validate_input(
            CreateEventInput, _event(dates=["2026-03-02", "2026-03-02T00:00:00.000Z"]),
        )
        assert data.dates == [date(2026, 3, 2)]

    def test_utc_instant_lands_on_household_day(self):
        data = validate_input(CreateEventInput, _event(dates=["2026-03-04T23:30:00.000Z"]))
        assert data.dates == [date(2026, 3, 5)]

    @pytest.mark.parametrize("dates", ["[]", "not json", [], ["2026-02-30"]])
    def test_bad_dates(self, dates):
        with pytest.raises(InvalidInputError):
            validate_input(CreateEventInput, _event(dates=dates))

    def test_unknown_category(self):
        with pytest.raises(InvalidInputError) as exc_info:
            validate_input(CreateEventInput, _event(category="PARTY"))
        assert "category" in exc_info.value.message

    def test_blank_title(self):
        with pytest.raises(InvalidInputError):
            validate_input(CreateEventInput, _event(title="   "))

    def test_bad_time_format(self):
        with pytest.raises(InvalidInputError):
            validate_input(CreateEventInput, _event(start_time="25:00"))

    def test_end_must_follow_start(self):
        with pytest.raises(InvalidInputError):
            validate_input(CreateEventInput, _event(start_time="18:00", end_time="17:00"))

    def test_blank_description_becomes_none(self):
        data = validate_input(CreateEventInput, _event(description="  "))
        assert data.description is None


class TestUpdateEventInput:
    def test_everything_optional(self):
        data = validate_input(UpdateEventInput, {})
        assert data.model_fields_set == set()
        assert data.participant_ids is None

    def test_date_kept_raw(self):
        data = validate_input(UpdateEventInput, {"date": '["2026-03-10"]'})
        assert data.date == '["2026-03-10"]'

    def test_blank_time_ignored(self):
        data = validate_input(UpdateEventInput, {"start_time": ""})
        assert data.start_time is None

    def test_bad_time_rejected(self):
        with pytest.raises(InvalidInputError):
            validate_input(UpdateEventInput, {"end_time": "7pm"})


class TestTaskInputs:
    def test_defaults(self):
        data = validate_input(CreateTaskInput, {"title": "Dishes"})
        assert data.recurrence == Recurrence.NONE
        assert data.due_date is None
        assert data.assignee_ids == []

    def test_bare_date_is_midnight(self):
        data = validate_input(CreateTaskInput, {"title": "X", "due_date": "2026-03-05"})
        assert data.due_date == datetime(2026, 3, 5, 0, 0)

    def test_aware_datetime_converted_to_wall_clock(self):
        data = validate_input(
            CreateTaskInput, {"title": "X", "due_date": "2026-03-05T17:00:00Z"},
        )
        # Europe/Paris is UTC+1 in March before DST
        assert data.due_date == datetime(2026, 3, 5, 18, 0)
        assert data.due_date.tzinfo is None

    def test_unknown_recurrence(self):
        with pytest.raises(InvalidInputError):
            validate_input(CreateTaskInput, {"title": "X", "recurrence": "YEARLY"})

    def test_update_explicit_null_due_date_is_set(self):
        data = validate_input(UpdateTaskInput, {"due_date": None})
        assert "due_date" in data.model_fields_set
        assert data.due_date is None

    def test_update_omitted_due_date_not_set(self):
        data = validate_input(UpdateTaskInput, {"title": "New"})
        assert "due_date" not in data.model_fields_set


class TestMemberInput:
    def test_pet(self):
        data = validate_input(
            MemberInput, {"type": "PET", "name": "Rex", "pet_type": "DOG", "age": ""},
        )
        assert data.type == MemberType.PET
        assert data.pet_type == PetType.DOG
        assert data.age is None

    def test_bad_color(self):
        with pytest.raises(InvalidInputError):
            validate_input(MemberInput, {"name": "Léa", "color": "red"})

    def test_age_out_of_range(self):
        with pytest.raises(InvalidInputError):
            validate_input(MemberInput, {"name": "Léa", "age": 200})


def test_validated_instance_passes_through():
    data = CreateTaskInput(title="Dishes")
    assert validate_input(CreateTaskInput, data) is data
