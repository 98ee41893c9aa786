"""
Ensemble — Boundary schemas.

Every payload entering HouseholdService is validated once here. After this
point enum fields are real Enum members and dates are real date objects.
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime
from typing import Annotated, Any, TypeVar
from zoneinfo import ZoneInfo

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from ensemble.core.errors import InvalidInputError
from ensemble.core.series import parse_calendar_date
from ensemble.data.models import (
    EventCategory,
    MemberType,
    PetType,
    Recurrence,
    Visibility,
)

logger = logging.getLogger(__name__)

TIME_PATTERN = r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$"
COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"

ModelT = TypeVar("ModelT", bound=BaseModel)


class _Input(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str) and not v.strip():
        return None
    return v


def _parse_due(v: Any) -> Any:
    """Accept an ISO date or datetime string; a bare date means midnight."""
    v = _blank_to_none(v)
    if v is None or isinstance(v, datetime):
        return v
    if isinstance(v, date):
        return datetime.combine(v, datetime.min.time())
    if isinstance(v, str) and len(v.strip()) == 10:
        parsed = parse_calendar_date(v)
        if parsed is not None:
            return datetime.combine(parsed, datetime.min.time())
    return v


def _to_wall_clock(v: datetime | None) -> datetime | None:
    """Store aware datetimes as naive wall-clock time in the household timezone."""
    if v is None or v.tzinfo is None:
        return v
    from ensemble.config import settings
    return v.astimezone(ZoneInfo(settings.TIMEZONE)).replace(tzinfo=None)


OptionalText = Annotated[str | None, BeforeValidator(_blank_to_none)]
DueDate = Annotated[datetime | None, BeforeValidator(_parse_due), AfterValidator(_to_wall_clock)]


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


class CreateEventInput(_Input):
    """A "create event on N dates" request.

    JSON example:
    {
        "title": "Swimming",
        "dates": "[\\"2026-03-02\\", \\"2026-03-09\\"]",
        "start_time": "17:00",
        "end_time": "18:00",
        "category": "SPORT",
        "participant_ids": ["m1", "m2"]
    }
    """

    title: str = Field(min_length=1)
    description: OptionalText = None
    dates: list[date]
    start_time: str = Field(pattern=TIME_PATTERN)
    end_time: str = Field(pattern=TIME_PATTERN)
    category: EventCategory
    visibility: Visibility = Visibility.HOUSEHOLD
    participant_ids: list[str] = Field(default_factory=list)

    @field_validator("dates", mode="before")
    @classmethod
    def parse_dates(cls, v: Any) -> list[date]:
        if isinstance(v, str):
            try:
                v = json.loads(v)
            except json.JSONDecodeError:
                raise ValueError("Invalid date format") from None
        if not isinstance(v, list) or not v:
            raise ValueError("At least one date is required")
        parsed: list[date] = []
        for raw in v:
            d = parse_calendar_date(raw)
            if d is None:
                raise ValueError(f"Invalid date: {raw!r}")
            if d not in parsed:
                parsed.append(d)
        return parsed

    @model_validator(mode="after")
    def check_time_order(self) -> CreateEventInput:
        if _minutes(self.end_time) <= _minutes(self.start_time):
            raise ValueError("End time must be after start time")
        return self


class UpdateEventInput(_Input):
    """Partial event edit. Fields left out are not touched.

    ``date`` stays a raw string: it may be a JSON array (first element used)
    or a bare date, and is resolved against the stored event later.
    """

    title: str | None = Field(default=None, min_length=1)
    description: OptionalText = None
    date: OptionalText = None
    start_time: OptionalText = Field(default=None, pattern=TIME_PATTERN)
    end_time: OptionalText = Field(default=None, pattern=TIME_PATTERN)
    category: EventCategory | None = None
    visibility: Visibility | None = None
    participant_ids: list[str] | None = None


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


class CreateTaskInput(_Input):
    title: str = Field(min_length=1)
    description: OptionalText = None
    emoji: OptionalText = None
    recurrence: Recurrence = Recurrence.NONE
    visibility: Visibility = Visibility.HOUSEHOLD
    due_date: DueDate = None
    assignee_ids: list[str] = Field(default_factory=list)


class UpdateTaskInput(_Input):
    """Partial task edit. An explicit ``due_date: None`` clears the date."""

    title: str | None = Field(default=None, min_length=1)
    description: OptionalText = None
    emoji: OptionalText = None
    recurrence: Recurrence | None = None
    visibility: Visibility | None = None
    due_date: DueDate = None
    assignee_ids: list[str] | None = None


# ---------------------------------------------------------------------------
# Households and members
# ---------------------------------------------------------------------------


class CreateHouseholdInput(_Input):
    name: str = Field(min_length=1)


class JoinHouseholdInput(_Input):
    invite_code: str = Field(min_length=1)


class MemberInput(_Input):
    """Profile for a member without an account (child or pet)."""

    type: MemberType = MemberType.CHILD
    name: str = Field(min_length=1)
    age: Annotated[int | None, BeforeValidator(_blank_to_none)] = Field(default=None, ge=0, le=120)
    pet_type: Annotated[PetType | None, BeforeValidator(_blank_to_none)] = None
    color: OptionalText = Field(default=None, pattern=COLOR_PATTERN)


class UpdateMemberInput(_Input):
    name: str | None = Field(default=None, min_length=1)
    age: Annotated[int | None, BeforeValidator(_blank_to_none)] = Field(default=None, ge=0, le=120)
    pet_type: Annotated[PetType | None, BeforeValidator(_blank_to_none)] = None
    color: OptionalText = Field(default=None, pattern=COLOR_PATTERN)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _minutes(hhmm: str) -> int:
    hour, minute = hhmm.split(":")
    return int(hour) * 60 + int(minute)


def validate_input(model: type[ModelT], data: ModelT | dict) -> ModelT:
    """Validate a raw payload, raising InvalidInputError on rejection."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        fields = ", ".join(
            ".".join(str(p) for p in err["loc"]) or "payload" for err in exc.errors()
        )
        logger.warning("%s rejected: %s", model.__name__, exc.errors())
        raise InvalidInputError(f"Invalid data: {fields}") from exc
