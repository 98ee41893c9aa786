"""Tests for HouseholdService task operations — toggle, rollover, notifications."""

from datetime import datetime, timedelta

import pytest

from conftest import NOW, emitted
from ensemble.core.household_service import ErrorResponse, SuccessResponse
from ensemble.data.models import Actor, NotificationKind, Recurrence, TaskStatus


async def _create(service, seed, **payload):
    payload.setdefault("title", "Take out trash")
    response = await service.create_task(seed.admin_actor, seed.household_id, payload)
    assert isinstance(response, SuccessResponse), response
    return response.payload["task_id"]


# ---------------------------------------------------------------------------
# create / update / delete
# ---------------------------------------------------------------------------


class TestCreateTask:
    @pytest.mark.asyncio
    async def test_create_and_notify_assignees(self, service, seed, task_db, notifier):
        task_id = await _create(
            service, seed, emoji="🗑️", recurrence="WEEKLY", due_date="2026-03-05",
            assignee_ids=[seed.adult.id, seed.child.id, seed.admin.id],
        )

        task = task_db.get_task(task_id)
        assert task.recurrence == Recurrence.WEEKLY
        assert task.due_date == datetime(2026, 3, 5)
        assert task.emoji == "🗑️"
        assert emitted(notifier) == [("u-bob", NotificationKind.TASK_ASSIGNED)]

    @pytest.mark.asyncio
    async def test_assignee_from_other_household(self, service, seed, household_db, task_db):
        other = household_db.create_household("Neighbours", "other-code")
        stranger = household_db.add_member(other.id, color="#000000", user_id="u-n")

        response = await service.create_task(
            seed.admin_actor, seed.household_id,
            {"title": "X", "assignee_ids": [stranger.id]},
        )

        assert response.code == "invalid_input"
        assert task_db.list_tasks(seed.household_id) == []

    @pytest.mark.asyncio
    async def test_blank_title(self, service, seed):
        response = await service.create_task(seed.admin_actor, seed.household_id, {"title": " "})
        assert isinstance(response, ErrorResponse)
        assert response.code == "invalid_input"


class TestUpdateTask:
    @pytest.mark.asyncio
    async def test_partial_update_keeps_other_fields(self, service, seed, task_db):
        task_id = await _create(service, seed, description="Blue bin", due_date="2026-03-05")

        await service.update_task(seed.admin_actor, task_id, {"title": "Recycling"})

        task = task_db.get_task(task_id)
        assert task.title == "Recycling"
        assert task.description == "Blue bin"
        assert task.due_date == datetime(2026, 3, 5)

    @pytest.mark.asyncio
    async def test_due_date_change_notifies_assignees(self, service, seed, notifier):
        task_id = await _create(service, seed, due_date="2026-03-05", assignee_ids=[seed.adult.id])
        notifier.emit.reset_mock()

        await service.update_task(seed.admin_actor, task_id, {"due_date": "2026-03-07"})

        assert emitted(notifier) == [("u-bob", NotificationKind.TASK_UPDATED)]
        assert "07/03/2026" in notifier.emit.await_args.kwargs["message"]

    @pytest.mark.asyncio
    async def test_same_due_date_does_not_notify(self, service, seed, notifier):
        task_id = await _create(service, seed, due_date="2026-03-05", assignee_ids=[seed.adult.id])
        notifier.emit.reset_mock()

        await service.update_task(seed.admin_actor, task_id, {"due_date": "2026-03-05"})

        notifier.emit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_explicit_null_clears_due_date(self, service, seed, task_db):
        task_id = await _create(service, seed, due_date="2026-03-05")
        await service.update_task(seed.admin_actor, task_id, {"due_date": None})
        assert task_db.get_task(task_id).due_date is None

    @pytest.mark.asyncio
    async def test_reassign(self, service, seed, task_db):
        task_id = await _create(service, seed, assignee_ids=[seed.adult.id])
        await service.update_task(seed.admin_actor, task_id, {"assignee_ids": [seed.child.id]})
        assert task_db.get_task(task_id).assignee_ids == [seed.child.id]

    @pytest.mark.asyncio
    async def test_missing_task(self, service, seed):
        response = await service.update_task(seed.admin_actor, "nope", {"title": "X"})
        assert response.code == "not_found"


class TestDeleteTask:
    @pytest.mark.asyncio
    async def test_delete(self, service, seed, task_db):
        task_id = await _create(service, seed)
        response = await service.delete_task(seed.adult_actor, task_id)
        assert isinstance(response, SuccessResponse)
        assert task_db.get_task(task_id) is None

    @pytest.mark.asyncio
    async def test_outsider_cannot_delete(self, service, seed, task_db):
        task_id = await _create(service, seed)
        response = await service.delete_task(Actor(user_id="u-x"), task_id)
        assert response.code == "forbidden"
        assert task_db.get_task(task_id) is not None


# ---------------------------------------------------------------------------
# toggle_task
# ---------------------------------------------------------------------------


class TestToggleTask:
    @pytest.mark.asyncio
    async def test_complete_one_off(self, service, seed, task_db, notifier):
        task_id = await _create(service, seed)

        response = await service.toggle_task(seed.adult_actor, task_id, "TODO")

        assert response.payload["status"] == "DONE"
        task = task_db.get_task(task_id)
        assert task.status == TaskStatus.DONE
        assert task.completed_at == NOW
        assert task.completed_by == seed.adult.id
        # every account holder except the actor
        assert emitted(notifier) == [("u-admin", NotificationKind.TASK_COMPLETED)]

    @pytest.mark.asyncio
    async def test_reopen_clears_completion(self, service, seed, task_db, notifier):
        task_id = await _create(service, seed)
        await service.toggle_task(seed.adult_actor, task_id, "TODO")
        notifier.emit.reset_mock()

        response = await service.toggle_task(seed.adult_actor, task_id, TaskStatus.DONE)

        assert response.payload["status"] == "TODO"
        task = task_db.get_task(task_id)
        assert task.status == TaskStatus.TODO
        assert task.completed_at is None
        assert task.completed_by is None
        notifier.emit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_weekly_rolls_over_without_notification(self, service, seed, task_db, notifier):
        task_id = await _create(service, seed, recurrence="WEEKLY", due_date="2026-03-02")

        response = await service.toggle_task(seed.adult_actor, task_id, "TODO")

        assert response.payload["rolled_over"] is True
        assert response.payload["status"] == "TODO"
        task = task_db.get_task(task_id)
        assert task.status == TaskStatus.TODO
        assert task.due_date == datetime(2026, 3, 9)
        assert task.completed_at == NOW
        assert task.completed_by == seed.adult.id
        notifier.emit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_recurring_without_due_date_counts_from_now(self, service, seed, task_db):
        task_id = await _create(service, seed, recurrence="DAILY")
        await service.toggle_task(seed.adult_actor, task_id, "TODO")
        assert task_db.get_task(task_id).due_date == NOW + timedelta(days=1)

    @pytest.mark.asyncio
    async def test_monthly_end_of_month(self, service, seed, task_db):
        task_id = await _create(service, seed, recurrence="MONTHLY", due_date="2026-01-31")
        await service.toggle_task(seed.adult_actor, task_id, "TODO")
        assert task_db.get_task(task_id).due_date == datetime(2026, 3, 3)

    @pytest.mark.asyncio
    async def test_archived_rejected(self, service, seed, task_db):
        task_id = await _create(service, seed)
        task_db.update_task(task_id, status=TaskStatus.ARCHIVED)

        response = await service.toggle_task(seed.adult_actor, task_id, "ARCHIVED")

        assert response.code == "invalid_input"
        assert task_db.get_task(task_id).status == TaskStatus.ARCHIVED

    @pytest.mark.asyncio
    async def test_archived_stays_archived_whatever_status_is_sent(self, service, seed, task_db, notifier):
        task_id = await _create(service, seed)
        task_db.update_task(task_id, status=TaskStatus.ARCHIVED)

        response = await service.toggle_task(seed.adult_actor, task_id, "TODO")

        assert response.code == "invalid_input"
        task = task_db.get_task(task_id)
        assert task.status == TaskStatus.ARCHIVED
        assert task.completed_at is None
        assert task.completed_by is None
        notifier.emit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_status(self, service, seed):
        task_id = await _create(service, seed)
        response = await service.toggle_task(seed.adult_actor, task_id, "MAYBE")
        assert response.code == "invalid_input"

    @pytest.mark.asyncio
    async def test_requires_actor(self, service, seed):
        task_id = await _create(service, seed)
        response = await service.toggle_task(None, task_id, "TODO")
        assert response.code == "unauthenticated"


class TestListTasks:
    @pytest.mark.asyncio
    async def test_private_tasks_visible_to_assignees_only(self, service, seed):
        await _create(service, seed, title="Gift shopping", visibility="PARTICIPANTS",
                      assignee_ids=[seed.admin.id])
        await _create(service, seed, title="Dishes")

        as_admin = await service.list_tasks(seed.admin_actor, seed.household_id)
        as_bob = await service.list_tasks(seed.adult_actor, seed.household_id)

        assert {t.title for t in as_admin.payload["tasks"]} == {"Gift shopping", "Dishes"}
        assert [t.title for t in as_bob.payload["tasks"]] == ["Dishes"]

    @pytest.mark.asyncio
    async def test_status_filter(self, service, seed):
        done_id = await _create(service, seed, title="Done")
        await _create(service, seed, title="Open")
        await service.toggle_task(seed.admin_actor, done_id, "TODO")

        response = await service.list_tasks(seed.admin_actor, seed.household_id, status="DONE")
        assert [t.title for t in response.payload["tasks"]] == ["Done"]
