"""
Ensemble — UI-Agnostic Household Service.

Stateless service layer that orchestrates all business logic:
validate input -> check membership/role -> read/write the database inside
one transaction -> dispatch notices -> return a structured response object.

Each UI adapter (web handlers, CLI, bots) calls this service and renders
the response objects in its own way. No exception escapes a public method:
every failure becomes an ErrorResponse.
"""

from __future__ import annotations

import logging
import random
import secrets
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable
from zoneinfo import ZoneInfo

from ensemble.config import settings
from ensemble.core.dispatcher import NotificationDispatcher
from ensemble.core.errors import (
    AuthenticationError,
    EnsembleError,
    InvalidInputError,
    NotFoundError,
    PermissionDeniedError,
    PersistenceError,
)
from ensemble.core.notices import Notice, account_recipients, actor_label, fan_out
from ensemble.core.recurrence import toggle
from ensemble.core.schemas import (
    CreateEventInput,
    CreateHouseholdInput,
    CreateTaskInput,
    JoinHouseholdInput,
    MemberInput,
    UpdateEventInput,
    UpdateMemberInput,
    UpdateTaskInput,
    validate_input,
)
from ensemble.core.series import (
    Occurrence,
    check_order,
    format_when,
    needs_series,
    plan_occurrences,
    reschedule_in_series,
    reschedule_single,
)
from ensemble.data.db import EventDB, HouseholdDB, NotificationDB, TaskDB
from ensemble.data.models import (
    APPROVED_MEMBER_COLOR,
    MEMBER_COLORS,
    JoinRequestStatus,
    MemberRole,
    MemberType,
    NotificationKind,
    Propagation,
    TaskStatus,
    Visibility,
)

if TYPE_CHECKING:
    from ensemble.data.db import Database
    from ensemble.data.models import Actor, Event, Member, Task
    from ensemble.ports.notification_port import NotificationPort

logger = logging.getLogger(__name__)

INVITE_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZabcdefghjkmnpqrstuvwxyz23456789"


# ---------------------------------------------------------------------------
# Response types
# ---------------------------------------------------------------------------


class ResponseKind(Enum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class ServiceResponse:
    kind: ResponseKind
    message: str = ""


@dataclass
class SuccessResponse(ServiceResponse):
    payload: dict[str, Any] = field(default_factory=dict)
    notices: list[Notice] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"success": True, **self.payload}


@dataclass
class ErrorResponse(ServiceResponse):
    code: str = "internal"
    status_code: int = 500

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message}


def _ok(message: str = "", notices: list[Notice] | None = None, **payload: Any) -> SuccessResponse:
    return SuccessResponse(
        kind=ResponseKind.SUCCESS,
        message=message,
        payload=payload,
        notices=notices or [],
    )


def generate_invite_code(length: int = 12) -> str:
    """Random invite code without look-alike characters (0/O, 1/l/I)."""
    return "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(length))


def _wall_clock_now() -> datetime:
    return datetime.now(ZoneInfo(settings.TIMEZONE)).replace(tzinfo=None)


def _coerce_enum(enum_cls: type[Enum], value: Any, label: str) -> Any:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidInputError(f"Invalid {label}: {value!r}") from None


# ---------------------------------------------------------------------------
# HouseholdService
# ---------------------------------------------------------------------------


class HouseholdService:
    """Stateless service that orchestrates all household business logic.

    Returns structured response objects; notices produced by an operation
    are delivered after its database work has been committed.
    """

    def __init__(
        self,
        db: Database,
        notifier: NotificationPort,
        strict_dates: bool | None = None,
        clock: Callable[[], datetime] | None = None,
        notification_page_size: int | None = None,
        invite_code_length: int | None = None,
    ) -> None:
        self._db = db
        self._households = HouseholdDB(db)
        self._events = EventDB(db)
        self._tasks = TaskDB(db)
        self._notifications = NotificationDB(db)
        self._dispatcher = NotificationDispatcher(notifier)
        self._strict_dates = (
            settings.STRICT_DATE_PARSING if strict_dates is None else strict_dates
        )
        self._clock = clock or _wall_clock_now
        self._page_size = notification_page_size or settings.NOTIFICATION_PAGE_SIZE
        self._invite_code_length = invite_code_length or settings.INVITE_CODE_LENGTH

    # ------------------------------------------------------------------
    # Boundary
    # ------------------------------------------------------------------

    async def _execute(
        self, action: str, failure_message: str, work: Callable[[], SuccessResponse],
    ) -> ServiceResponse:
        """Run one operation, convert failures, then dispatch its notices."""
        try:
            result = work()
        except EnsembleError as exc:
            logger.warning("%s rejected (%s): %s", action, exc.code, exc.message)
            return ErrorResponse(
                kind=ResponseKind.ERROR,
                message=exc.message,
                code=exc.code,
                status_code=exc.status_code,
            )
        except sqlite3.Error as exc:
            logger.error("%s: database error: %s", action, exc)
            return ErrorResponse(
                kind=ResponseKind.ERROR,
                message=failure_message,
                code=PersistenceError.code,
                status_code=PersistenceError.status_code,
            )
        except Exception:
            logger.exception("%s: unexpected error", action)
            return ErrorResponse(kind=ResponseKind.ERROR, message=failure_message)

        await self._dispatcher.dispatch(result.notices)
        return result

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    @staticmethod
    def _require_actor(actor: Actor | None) -> Actor:
        if actor is None or not actor.user_id:
            raise AuthenticationError()
        return actor

    def _require_member(self, actor: Actor, household_id: str) -> Member:
        member = self._households.find_member(actor.user_id, household_id)
        if member is None:
            raise PermissionDeniedError("Not authorized")
        return member

    def _require_admin(self, actor: Actor, household_id: str) -> Member:
        member = self._households.find_member(actor.user_id, household_id)
        if member is None or member.role is not MemberRole.ADMIN:
            raise PermissionDeniedError("Not authorized")
        return member

    def _household_members(self, household_id: str, member_ids: list[str]) -> list[Member]:
        """Resolve member ids, rejecting any that are not in the household."""
        wanted = list(dict.fromkeys(member_ids))
        members = [
            m for m in self._households.get_members(wanted) if m.household_id == household_id
        ]
        if len(members) != len(wanted):
            known = {m.id for m in members}
            missing = [m for m in wanted if m not in known]
            raise InvalidInputError(f"Unknown members: {', '.join(missing)}")
        return members

    def _get_event(self, event_id: str) -> Event:
        event = self._events.get_event(event_id)
        if event is None:
            raise NotFoundError("Event not found")
        return event

    def _get_task(self, task_id: str) -> Task:
        task = self._tasks.get_task(task_id)
        if task is None:
            raise NotFoundError("Task not found")
        return task

    # ------------------------------------------------------------------
    # Public: households and join requests
    # ------------------------------------------------------------------

    async def create_household(
        self, actor: Actor | None, payload: CreateHouseholdInput | dict | str,
    ) -> ServiceResponse:
        """Create a household with the actor as its first ADMIN member."""
        if isinstance(payload, str):
            payload = {"name": payload}
        return await self._execute(
            "create_household", "Failed to create household",
            lambda: self._create_household(actor, payload),
        )

    def _create_household(self, actor, payload) -> SuccessResponse:
        actor = self._require_actor(actor)
        data = validate_input(CreateHouseholdInput, payload)

        code = generate_invite_code(self._invite_code_length)
        while self._households.invite_code_exists(code):
            code = generate_invite_code(self._invite_code_length)

        with self._db.transaction():
            household = self._households.create_household(data.name, code)
            member = self._households.add_member(
                household.id,
                color=MEMBER_COLORS[0],
                role=MemberRole.ADMIN,
                type=MemberType.ADULT,
                user_id=actor.user_id,
                nickname=actor.name or None,
            )
        return _ok(
            "Household created",
            household_id=household.id,
            invite_code=household.invite_code,
            member_id=member.id,
        )

    async def join_household(
        self, actor: Actor | None, payload: JoinHouseholdInput | dict | str,
    ) -> ServiceResponse:
        """Ask to join a household by invite code; admins must approve."""
        if isinstance(payload, str):
            payload = {"invite_code": payload}
        return await self._execute(
            "join_household", "Failed to send join request",
            lambda: self._join_household(actor, payload),
        )

    def _join_household(self, actor, payload) -> SuccessResponse:
        actor = self._require_actor(actor)
        data = validate_input(JoinHouseholdInput, payload)

        household = self._households.find_by_invite_code(data.invite_code)
        if household is None:
            raise NotFoundError("Invalid invite code")
        if self._households.find_member(actor.user_id, household.id) is not None:
            raise InvalidInputError("You are already a member of this household")

        existing = self._households.find_join_request(actor.user_id, household.id)
        if existing is not None:
            if existing.status is JoinRequestStatus.PENDING:
                return _ok("Request already pending", pending=True, request_id=existing.id)
            if existing.status is JoinRequestStatus.REJECTED:
                raise PermissionDeniedError("Your request was declined")
            if existing.status is JoinRequestStatus.APPROVED:
                raise InvalidInputError("Your request was already approved")

        request = self._households.create_join_request(actor.user_id, household.id)
        admins = self._households.list_members(
            household.id, with_account_only=True, role=MemberRole.ADMIN,
        )
        notices = fan_out(
            account_recipients(admins, actor),
            household.id,
            NotificationKind.JOIN_REQUEST,
            "New join request",
            f"{actor.name or 'A user'} would like to join your household.",
            resource_id=request.id,
        )
        return _ok("Join request sent", notices=notices, pending=True, request_id=request.id)

    async def approve_join_request(self, actor: Actor | None, request_id: str) -> ServiceResponse:
        return await self._execute(
            "approve_join_request", "Failed to approve request",
            lambda: self._approve_join_request(actor, request_id),
        )

    def _approve_join_request(self, actor, request_id) -> SuccessResponse:
        actor = self._require_actor(actor)
        request = self._households.get_join_request(request_id)
        if request is None:
            raise NotFoundError("Request not found")
        self._require_admin(actor, request.household_id)
        if request.status is not JoinRequestStatus.PENDING:
            raise InvalidInputError("Request already processed")

        household = self._households.get_household(request.household_id)
        with self._db.transaction():
            member = self._households.add_member(
                request.household_id,
                color=APPROVED_MEMBER_COLOR,
                role=MemberRole.MEMBER,
                type=MemberType.ADULT,
                user_id=request.user_id,
            )
            self._households.set_join_request_status(request.id, JoinRequestStatus.APPROVED)

        notices = [
            Notice(
                recipient_id=request.user_id,
                household_id=request.household_id,
                kind=NotificationKind.JOIN_ACCEPTED,
                title="Request accepted!",
                message=f"Welcome to the {household.name} household!",
                resource_id=request.household_id,
            )
        ]
        return _ok("Request approved", notices=notices, member_id=member.id)

    async def reject_join_request(self, actor: Actor | None, request_id: str) -> ServiceResponse:
        return await self._execute(
            "reject_join_request", "Failed to reject request",
            lambda: self._reject_join_request(actor, request_id),
        )

    def _reject_join_request(self, actor, request_id) -> SuccessResponse:
        actor = self._require_actor(actor)
        request = self._households.get_join_request(request_id)
        if request is None:
            raise NotFoundError("Request not found")
        self._require_admin(actor, request.household_id)
        self._households.set_join_request_status(request.id, JoinRequestStatus.REJECTED)
        return _ok("Request rejected")

    async def list_join_requests(self, actor: Actor | None, household_id: str) -> ServiceResponse:
        def work() -> SuccessResponse:
            checked = self._require_actor(actor)
            self._require_admin(checked, household_id)
            requests = self._households.list_join_requests(
                household_id, status=JoinRequestStatus.PENDING,
            )
            return _ok(requests=requests)

        return await self._execute("list_join_requests", "Failed to load requests", work)

    # ------------------------------------------------------------------
    # Public: members
    # ------------------------------------------------------------------

    async def list_members(self, actor: Actor | None, household_id: str) -> ServiceResponse:
        def work() -> SuccessResponse:
            checked = self._require_actor(actor)
            self._require_member(checked, household_id)
            return _ok(members=self._households.list_members(household_id))

        return await self._execute("list_members", "Failed to load members", work)

    async def add_member(
        self, actor: Actor | None, household_id: str, payload: MemberInput | dict,
    ) -> ServiceResponse:
        """Add a profile without an account (child or pet)."""
        return await self._execute(
            "add_member", "Failed to add member",
            lambda: self._add_member(actor, household_id, payload),
        )

    def _add_member(self, actor, household_id, payload) -> SuccessResponse:
        actor = self._require_actor(actor)
        data = validate_input(MemberInput, payload)
        self._require_member(actor, household_id)
        if data.type is MemberType.ADULT:
            raise InvalidInputError("Adults join with an invite code")

        member = self._households.add_member(
            household_id,
            color=data.color or random.choice(MEMBER_COLORS),
            role=MemberRole.MEMBER,
            type=data.type,
            user_id=None,
            nickname=data.name,
            age=data.age,
            pet_type=data.pet_type if data.type is MemberType.PET else None,
        )

        if data.type is MemberType.CHILD:
            what = "a child"
        elif data.type is MemberType.PET:
            what = "a pet"
        else:
            raise ValueError(f"Unhandled member type: {data.type!r}")

        notices = fan_out(
            account_recipients(
                self._households.list_members(household_id, with_account_only=True), actor,
            ),
            household_id,
            NotificationKind.MEMBER_ADDED,
            "New member added",
            f"{actor_label(actor)} added {what}: {data.name}",
            resource_id=member.id,
        )
        return _ok("Member added", notices=notices, member_id=member.id)

    async def update_member(
        self, actor: Actor | None, member_id: str, payload: UpdateMemberInput | dict,
    ) -> ServiceResponse:
        """Edit a member profile.

        Adults with an account may edit their own nickname and color; an
        admin may only recolor other adults. Child and pet profiles are
        editable by any household member.
        """
        return await self._execute(
            "update_member", "Failed to update member",
            lambda: self._update_member(actor, member_id, payload),
        )

    def _update_member(self, actor, member_id, payload) -> SuccessResponse:
        actor = self._require_actor(actor)
        data = validate_input(UpdateMemberInput, payload)
        member = self._households.get_member(member_id)
        if member is None:
            raise NotFoundError("Member not found")
        current = self._require_member(actor, member.household_id)
        is_admin = current.role is MemberRole.ADMIN
        is_self = member.user_id == actor.user_id

        supplied = data.model_fields_set
        changes: dict[str, Any] = {}
        if member.has_account:
            if not is_admin and not is_self:
                raise PermissionDeniedError("Cannot edit other adult members")
            if "color" in supplied and data.color:
                changes["color"] = data.color
            if is_self and "name" in supplied and data.name:
                changes["nickname"] = data.name
        else:
            if "name" in supplied and data.name:
                changes["nickname"] = data.name
            if "age" in supplied:
                changes["age"] = data.age
            if "pet_type" in supplied:
                changes["pet_type"] = data.pet_type
            if "color" in supplied and data.color:
                changes["color"] = data.color

        self._households.update_member(member.id, **changes)
        return _ok("Member updated", member_id=member.id, updated=sorted(changes))

    async def delete_member(self, actor: Actor | None, member_id: str) -> ServiceResponse:
        return await self._execute(
            "delete_member", "Failed to delete member",
            lambda: self._delete_member(actor, member_id),
        )

    def _delete_member(self, actor, member_id) -> SuccessResponse:
        actor = self._require_actor(actor)
        member = self._households.get_member(member_id)
        if member is None:
            raise NotFoundError("Member not found")
        current = self._require_member(actor, member.household_id)
        if member.user_id == actor.user_id:
            raise PermissionDeniedError("Cannot delete your own account")
        if member.has_account and current.role is not MemberRole.ADMIN:
            raise PermissionDeniedError("Cannot delete adult members")

        self._households.delete_member(member.id)
        return _ok("Member deleted", member_id=member.id)

    # ------------------------------------------------------------------
    # Public: events
    # ------------------------------------------------------------------

    async def list_events(
        self,
        actor: Actor | None,
        household_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> ServiceResponse:
        """Events overlapping [start, end) that the actor is allowed to see."""

        def work() -> SuccessResponse:
            checked = self._require_actor(actor)
            member = self._require_member(checked, household_id)
            events = [
                ev for ev in self._events.list_events(household_id, start, end)
                if ev.visibility is Visibility.HOUSEHOLD or member.id in ev.participant_ids
            ]
            return _ok(events=events)

        return await self._execute("list_events", "Failed to load events", work)

    async def create_event(
        self, actor: Actor | None, household_id: str, payload: CreateEventInput | dict,
    ) -> ServiceResponse:
        """Create one event per requested date.

        More than one date creates a series anchor shared by every event.
        All rows are written in a single transaction.
        """
        return await self._execute(
            "create_event", "Failed to create event",
            lambda: self._create_event(actor, household_id, payload),
        )

    def _create_event(self, actor, household_id, payload) -> SuccessResponse:
        actor = self._require_actor(actor)
        data = validate_input(CreateEventInput, payload)
        self._require_member(actor, household_id)
        participants = self._household_members(household_id, data.participant_ids)
        participant_ids = [m.id for m in participants]

        occurrences = plan_occurrences(data.dates, data.start_time, data.end_time)
        with self._db.transaction():
            series_id = self._events.create_series() if needs_series(data.dates) else None
            events = [
                self._events.add_event(
                    household_id,
                    title=data.title,
                    description=data.description,
                    start=occ.start,
                    end=occ.end,
                    category=data.category,
                    visibility=data.visibility,
                    series_id=series_id,
                    participant_ids=participant_ids,
                )
                for occ in occurrences
            ]

        notices = fan_out(
            account_recipients(participants, actor),
            household_id,
            NotificationKind.EVENT_INVITE,
            "Event invitation",
            f'{actor_label(actor)} added you to the event "{data.title}"',
            resource_id=events[0].id,
        )
        logger.info(
            "Created %d event(s) '%s' in household %s (series %s)",
            len(events), data.title, household_id, series_id,
        )
        return _ok(
            "Event created",
            notices=notices,
            event_ids=[ev.id for ev in events],
            series_id=series_id,
        )

    async def update_event(
        self,
        actor: Actor | None,
        event_id: str,
        payload: UpdateEventInput | dict,
        propagation: Propagation | str = Propagation.SINGLE,
    ) -> ServiceResponse:
        """Edit one occurrence, or every occurrence of its series.

        A series-wide edit never moves dates: each sibling keeps its own
        calendar day and only the time-of-day changes.
        """
        return await self._execute(
            "update_event", "Failed to update event",
            lambda: self._update_event(actor, event_id, payload, propagation),
        )

    def _update_event(self, actor, event_id, payload, propagation) -> SuccessResponse:
        actor = self._require_actor(actor)
        data = validate_input(UpdateEventInput, payload)
        propagation = _coerce_enum(Propagation, propagation, "propagation")
        event = self._get_event(event_id)
        self._require_member(actor, event.household_id)

        changes: dict[str, Any] = {}
        if data.title:
            changes["title"] = data.title
        if "description" in data.model_fields_set:
            changes["description"] = data.description
        if data.category is not None:
            changes["category"] = data.category
        if data.visibility is not None:
            changes["visibility"] = data.visibility

        participant_ids = None
        if data.participant_ids is not None:
            participant_ids = [
                m.id for m in self._household_members(event.household_id, data.participant_ids)
            ]

        series_wide = propagation is Propagation.SERIES and event.series_id is not None
        if series_wide:
            targets = self._events.list_series_events(event.series_id)
            plans = {
                ev.id: reschedule_in_series(
                    Occurrence(ev.start, ev.end), data.start_time, data.end_time,
                )
                for ev in targets
            }
        else:
            targets = [event]
            plans = {
                event.id: reschedule_single(
                    Occurrence(event.start, event.end),
                    raw_date=data.date,
                    start_time=data.start_time,
                    end_time=data.end_time,
                    strict=self._strict_dates,
                )
            }
        for occ in plans.values():
            check_order(occ)

        with self._db.transaction():
            for target in targets:
                occ = plans[target.id]
                self._events.update_event(target.id, **changes, start=occ.start, end=occ.end)
                if participant_ids is not None:
                    self._events.set_participants(target.id, participant_ids)

        notices: list[Notice] = []
        moved = plans[event.id]
        if not series_wide and (moved.start != event.start or moved.end != event.end):
            notices = fan_out(
                account_recipients(self._households.get_members(event.participant_ids), actor),
                event.household_id,
                NotificationKind.EVENT_UPDATED,
                "Event updated",
                f'The event "{event.title}" was moved from '
                f"{format_when(event.start)} to {format_when(moved.start)}.",
                resource_id=event.id,
            )
        return _ok(
            "Event updated",
            notices=notices,
            event_ids=[t.id for t in targets],
            propagation=propagation.value if series_wide else Propagation.SINGLE.value,
        )

    async def delete_event(
        self, actor: Actor | None, event_id: str, delete_series: bool = False,
    ) -> ServiceResponse:
        """Delete one occurrence, or its whole series and the series anchor."""
        return await self._execute(
            "delete_event", "Failed to delete event",
            lambda: self._delete_event(actor, event_id, delete_series),
        )

    def _delete_event(self, actor, event_id, delete_series) -> SuccessResponse:
        actor = self._require_actor(actor)
        event = self._get_event(event_id)
        self._require_member(actor, event.household_id)

        notices = fan_out(
            account_recipients(self._households.get_members(event.participant_ids), actor),
            event.household_id,
            NotificationKind.EVENT_DELETED,
            "Event cancelled",
            f'The event "{event.title}" was deleted by {actor_label(actor)}.',
        )

        with self._db.transaction():
            if delete_series and event.series_id:
                removed = self._events.delete_series(event.series_id)
            else:
                self._events.delete_event(event.id)
                removed = 1
        return _ok("Event deleted", notices=notices, deleted=removed)

    # ------------------------------------------------------------------
    # Public: tasks
    # ------------------------------------------------------------------

    async def list_tasks(
        self, actor: Actor | None, household_id: str, status: TaskStatus | str | None = None,
    ) -> ServiceResponse:
        def work() -> SuccessResponse:
            checked = self._require_actor(actor)
            member = self._require_member(checked, household_id)
            wanted = None if status is None else _coerce_enum(TaskStatus, status, "status")
            tasks = [
                t for t in self._tasks.list_tasks(household_id, wanted)
                if t.visibility is Visibility.HOUSEHOLD or member.id in t.assignee_ids
            ]
            return _ok(tasks=tasks)

        return await self._execute("list_tasks", "Failed to load tasks", work)

    async def create_task(
        self, actor: Actor | None, household_id: str, payload: CreateTaskInput | dict,
    ) -> ServiceResponse:
        return await self._execute(
            "create_task", "Failed to create task",
            lambda: self._create_task(actor, household_id, payload),
        )

    def _create_task(self, actor, household_id, payload) -> SuccessResponse:
        actor = self._require_actor(actor)
        data = validate_input(CreateTaskInput, payload)
        self._require_member(actor, household_id)
        assignees = self._household_members(household_id, data.assignee_ids)

        task = self._tasks.add_task(
            household_id,
            title=data.title,
            description=data.description,
            emoji=data.emoji,
            recurrence=data.recurrence,
            visibility=data.visibility,
            due_date=data.due_date,
            assignee_ids=[m.id for m in assignees],
        )
        notices = fan_out(
            account_recipients(assignees, actor),
            household_id,
            NotificationKind.TASK_ASSIGNED,
            "New task assigned",
            f'{actor_label(actor)} assigned you the task "{data.title}"',
            resource_id=task.id,
        )
        return _ok("Task created", notices=notices, task_id=task.id)

    async def update_task(
        self, actor: Actor | None, task_id: str, payload: UpdateTaskInput | dict,
    ) -> ServiceResponse:
        return await self._execute(
            "update_task", "Failed to update task",
            lambda: self._update_task(actor, task_id, payload),
        )

    def _update_task(self, actor, task_id, payload) -> SuccessResponse:
        actor = self._require_actor(actor)
        data = validate_input(UpdateTaskInput, payload)
        task = self._get_task(task_id)
        self._require_member(actor, task.household_id)

        supplied = data.model_fields_set
        changes: dict[str, Any] = {}
        if data.title:
            changes["title"] = data.title
        if "description" in supplied:
            changes["description"] = data.description
        if "emoji" in supplied:
            changes["emoji"] = data.emoji
        if data.recurrence is not None:
            changes["recurrence"] = data.recurrence
        if data.visibility is not None:
            changes["visibility"] = data.visibility
        if "due_date" in supplied:
            changes["due_date"] = data.due_date

        assignee_ids = task.assignee_ids
        with self._db.transaction():
            self._tasks.update_task(task.id, **changes)
            if data.assignee_ids is not None:
                assignee_ids = [
                    m.id for m in self._household_members(task.household_id, data.assignee_ids)
                ]
                self._tasks.set_assignees(task.id, assignee_ids)

        notices: list[Notice] = []
        if "due_date" in changes and changes["due_date"] != task.due_date:
            new_due = changes["due_date"]
            when = new_due.strftime("%d/%m/%Y") if new_due else "no date"
            title = changes.get("title", task.title)
            notices = fan_out(
                account_recipients(self._households.get_members(assignee_ids), actor),
                task.household_id,
                NotificationKind.TASK_UPDATED,
                "Task updated",
                f'The due date of task "{title}" was changed to {when}.',
                resource_id=task.id,
            )
        return _ok("Task updated", notices=notices, task_id=task.id)

    async def delete_task(self, actor: Actor | None, task_id: str) -> ServiceResponse:
        return await self._execute(
            "delete_task", "Failed to delete task",
            lambda: self._delete_task(actor, task_id),
        )

    def _delete_task(self, actor, task_id) -> SuccessResponse:
        actor = self._require_actor(actor)
        task = self._get_task(task_id)
        self._require_member(actor, task.household_id)
        self._tasks.delete_task(task.id)
        return _ok("Task deleted", task_id=task.id)

    async def toggle_task(
        self, actor: Actor | None, task_id: str, current_status: TaskStatus | str,
    ) -> ServiceResponse:
        """Flip a task between TODO and DONE.

        Completing a recurring task rolls its due date forward and leaves it
        in TODO; only non-recurring completions end up DONE and notify the
        household.
        """
        return await self._execute(
            "toggle_task", "Failed to update task",
            lambda: self._toggle_task(actor, task_id, current_status),
        )

    def _toggle_task(self, actor, task_id, current_status) -> SuccessResponse:
        actor = self._require_actor(actor)
        current_status = _coerce_enum(TaskStatus, current_status, "status")
        task = self._get_task(task_id)
        member = self._require_member(actor, task.household_id)

        outcome = toggle(task, current_status, member.id, self._clock())
        self._tasks.update_task(
            task.id,
            status=outcome.status,
            due_date=outcome.due_date,
            completed_at=outcome.completed_at,
            completed_by=outcome.completed_by,
        )

        notices: list[Notice] = []
        if outcome.completed:
            notices = fan_out(
                account_recipients(
                    self._households.list_members(task.household_id, with_account_only=True),
                    actor,
                ),
                task.household_id,
                NotificationKind.TASK_COMPLETED,
                "Task completed",
                f'{actor_label(actor)} completed the task "{task.title}"',
                resource_id=task.id,
            )
        return _ok(
            "Task updated",
            notices=notices,
            task_id=task.id,
            status=outcome.status.value,
            due_date=outcome.due_date,
            rolled_over=outcome.rolled_over,
        )

    # ------------------------------------------------------------------
    # Public: notification inbox
    # ------------------------------------------------------------------

    async def get_notifications(
        self, actor: Actor | None, limit: int | None = None,
    ) -> ServiceResponse:
        """Latest notifications first; an empty inbox when nobody is signed in."""
        if actor is None or not actor.user_id:
            return _ok(notifications=[])
        return await self._execute(
            "get_notifications", "Failed to load notifications",
            lambda: _ok(
                notifications=self._notifications.list_for_user(
                    actor.user_id, limit or self._page_size,
                ),
            ),
        )

    async def mark_notification_read(
        self, actor: Actor | None, notification_id: str,
    ) -> ServiceResponse:
        def work() -> SuccessResponse:
            checked = self._require_actor(actor)
            if not self._notifications.mark_read(notification_id, checked.user_id):
                raise NotFoundError("Notification not found")
            return _ok()

        return await self._execute("mark_notification_read", "Failed to mark as read", work)

    async def mark_all_notifications_read(self, actor: Actor | None) -> ServiceResponse:
        def work() -> SuccessResponse:
            checked = self._require_actor(actor)
            return _ok(updated=self._notifications.mark_all_read(checked.user_id))

        return await self._execute(
            "mark_all_notifications_read", "Failed to mark all as read", work,
        )
