"""Recurring task rollover — pure business logic.

A task toggles between TODO and DONE. A recurring task never stays DONE:
completing it stamps the completion metadata, pushes the due date one
interval forward and puts it back to TODO. There is exactly one row per
task; no per-period instances are created.

No I/O: this module only transforms data.
"""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from ensemble.core.errors import InvalidInputError
from ensemble.data.models import Recurrence, Task, TaskStatus

logger = logging.getLogger(__name__)


@dataclass
class ToggleOutcome:
    """Field values to persist after a toggle."""

    status: TaskStatus
    due_date: datetime | None
    completed_at: datetime | None
    completed_by: str | None
    rolled_over: bool = False

    @property
    def completed(self) -> bool:
        """True only when the task really ends up DONE (never for recurring tasks)."""
        return self.status is TaskStatus.DONE


def add_months(moment: datetime, months: int = 1) -> datetime:
    """Add calendar months, letting a missing day overflow forward.

    The day number is kept; when the target month is too short the excess
    days spill into the following month (Jan 31 + 1 month = Mar 3, or Mar 2
    in a leap year).
    """
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    if moment.day <= last_day:
        return moment.replace(year=year, month=month)
    overflow = moment.day - last_day
    return moment.replace(year=year, month=month, day=last_day) + timedelta(days=overflow)


def next_due_date(recurrence: Recurrence, due_date: datetime | None, now: datetime) -> datetime:
    """Advance a due date (or ``now`` when unset) by one recurrence interval."""
    base = due_date if due_date is not None else now
    if recurrence is Recurrence.DAILY:
        return base + timedelta(days=1)
    if recurrence is Recurrence.WEEKLY:
        return base + timedelta(days=7)
    if recurrence is Recurrence.MONTHLY:
        return add_months(base, 1)
    if recurrence is Recurrence.NONE:
        raise ValueError("Non-recurring tasks have no next due date")
    raise ValueError(f"Unhandled recurrence: {recurrence!r}")


def toggle_target(current: TaskStatus) -> TaskStatus:
    """The complement of the current status."""
    if current is TaskStatus.TODO:
        return TaskStatus.DONE
    if current is TaskStatus.DONE:
        return TaskStatus.TODO
    if current is TaskStatus.ARCHIVED:
        raise InvalidInputError("Archived tasks cannot be toggled")
    raise ValueError(f"Unhandled task status: {current!r}")


def toggle(
    task: Task, current_status: TaskStatus, member_id: str, now: datetime,
) -> ToggleOutcome:
    """Compute the new task state for a TODO/DONE toggle.

    Args:
        task: The stored task (recurrence and due date are read from it).
        current_status: Status the caller saw when toggling.
        member_id: Member performing the action, recorded as completed_by.
        now: Wall-clock time of the action.
    """
    if task.status is TaskStatus.ARCHIVED:
        raise InvalidInputError("Archived tasks cannot be toggled")
    target = toggle_target(current_status)

    if target is TaskStatus.TODO:
        return ToggleOutcome(
            status=TaskStatus.TODO,
            due_date=task.due_date,
            completed_at=None,
            completed_by=None,
        )

    if task.recurrence is Recurrence.NONE:
        return ToggleOutcome(
            status=TaskStatus.DONE,
            due_date=task.due_date,
            completed_at=now,
            completed_by=member_id,
        )

    next_due = next_due_date(task.recurrence, task.due_date, now)
    logger.info(
        "Task %s (%s) rolled over: due %s -> %s",
        task.id, task.recurrence.value, task.due_date, next_due,
    )
    return ToggleOutcome(
        status=TaskStatus.TODO,
        due_date=next_due,
        completed_at=now,
        completed_by=member_id,
        rolled_over=True,
    )
