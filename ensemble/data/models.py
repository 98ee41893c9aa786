"""
Ensemble — Data Models.

Households own their members, events and tasks. Members are referenced
(never owned) by event participants and task assignees.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


# ---------------------------------------------------------------------------
# Closed value sets
# ---------------------------------------------------------------------------


class EventCategory(Enum):
    CHORE = "CHORE"
    APPOINTMENT = "APPOINTMENT"
    ACTIVITY = "ACTIVITY"
    MEAL = "MEAL"
    OTHER = "OTHER"
    SCHOOL = "SCHOOL"
    WORK = "WORK"
    HEALTH = "HEALTH"
    SPORT = "SPORT"
    LEISURE = "LEISURE"


class Visibility(Enum):
    HOUSEHOLD = "HOUSEHOLD"
    PARTICIPANTS = "PARTICIPANTS"


class Recurrence(Enum):
    NONE = "NONE"
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


class TaskStatus(Enum):
    TODO = "TODO"
    DONE = "DONE"
    ARCHIVED = "ARCHIVED"


class MemberRole(Enum):
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"


class MemberType(Enum):
    ADULT = "ADULT"
    CHILD = "CHILD"
    PET = "PET"


class PetType(Enum):
    DOG = "DOG"
    CAT = "CAT"
    BIRD = "BIRD"
    FISH = "FISH"
    RABBIT = "RABBIT"
    HAMSTER = "HAMSTER"
    OTHER = "OTHER"


class JoinRequestStatus(Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class NotificationKind(Enum):
    JOIN_REQUEST = "JOIN_REQUEST"
    JOIN_ACCEPTED = "JOIN_ACCEPTED"
    MEMBER_ADDED = "MEMBER_ADDED"
    EVENT_INVITE = "EVENT_INVITE"
    EVENT_UPDATED = "EVENT_UPDATED"
    EVENT_DELETED = "EVENT_DELETED"
    TASK_ASSIGNED = "TASK_ASSIGNED"
    TASK_UPDATED = "TASK_UPDATED"
    TASK_COMPLETED = "TASK_COMPLETED"


class Propagation(Enum):
    """Whether an event edit touches one occurrence or the whole series."""

    SINGLE = "single"
    SERIES = "series"


# Default member colors, first one goes to the household creator.
MEMBER_COLORS = [
    "#7EB5E8",  # sky blue
    "#7DD4A8",  # mint
    "#F5D06C",  # sun yellow
    "#F09A8F",  # coral
    "#E89FCE",  # candy pink
    "#B5A4E8",  # lavender
    "#78D4D0",  # turquoise
    "#F5B98F",  # peach
]

APPROVED_MEMBER_COLOR = "#10b981"


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Actor:
    """The signed-in account performing an action.

    Supplied by the authentication provider on every call; never stored.
    """

    user_id: str
    name: str = ""


@dataclass
class Household:
    id: str
    name: str
    invite_code: str
    created_at: str = ""


@dataclass
class Member:
    """A participant profile inside a household.

    Adults usually carry a user_id; children and pets never do.
    """

    id: str
    household_id: str
    role: MemberRole
    type: MemberType
    color: str
    user_id: str | None = None
    nickname: str | None = None
    age: int | None = None
    pet_type: PetType | None = None

    @property
    def has_account(self) -> bool:
        return self.user_id is not None


@dataclass
class JoinRequest:
    id: str
    user_id: str
    household_id: str
    status: JoinRequestStatus
    created_at: str = ""


@dataclass
class Event:
    """A single scheduled occurrence, optionally part of a series."""

    id: str
    household_id: str
    title: str
    start: datetime
    end: datetime
    category: EventCategory
    visibility: Visibility = Visibility.HOUSEHOLD
    description: str | None = None
    series_id: str | None = None
    participant_ids: list[str] = field(default_factory=list)

    @property
    def is_all_day(self) -> bool:
        """Display convention: 00:00 → 23:59 means the whole day."""
        return (
            (self.start.hour, self.start.minute) == (0, 0)
            and (self.end.hour, self.end.minute) == (23, 59)
        )


@dataclass
class Task:
    """A unit of household work. Recurring tasks are one mutable row."""

    id: str
    household_id: str
    title: str
    recurrence: Recurrence = Recurrence.NONE
    status: TaskStatus = TaskStatus.TODO
    visibility: Visibility = Visibility.HOUSEHOLD
    description: str | None = None
    emoji: str | None = None
    due_date: datetime | None = None
    completed_at: datetime | None = None
    completed_by: str | None = None     # member id
    created_at: str = ""
    assignee_ids: list[str] = field(default_factory=list)


@dataclass
class Notification:
    id: str
    user_id: str
    household_id: str
    kind: NotificationKind
    title: str
    message: str
    resource_id: str | None = None
    read: bool = False
    created_at: str = ""
