"""Tests for notice dispatch and the inbox-table notifier."""

from unittest.mock import AsyncMock

import pytest

from ensemble.adapters.db_notifier import DBNotifier
from ensemble.core.dispatcher import NotificationDispatcher
from ensemble.core.notices import Notice, account_recipients, actor_label, fan_out
from ensemble.data.models import Actor, Member, MemberRole, MemberType, NotificationKind


def _member(mid, user_id=None):
    return Member(
        id=mid, household_id="h1", role=MemberRole.MEMBER, type=MemberType.ADULT,
        color="#000000", user_id=user_id,
    )


def _notice(recipient="u1"):
    return Notice(
        recipient_id=recipient, household_id="h1", kind=NotificationKind.EVENT_INVITE,
        title="Event invitation", message="hello", resource_id="e1",
    )


class TestRecipients:
    def test_skips_actor_and_profiles_without_account(self):
        members = [_member("m1", "u-actor"), _member("m2", "u2"), _member("m3"), _member("m4", "u2")]
        assert account_recipients(members, Actor(user_id="u-actor")) == ["u2"]

    def test_fan_out_one_notice_per_recipient(self):
        notices = fan_out(["u1", "u2"], "h1", NotificationKind.TASK_ASSIGNED, "t", "m", "x")
        assert [n.recipient_id for n in notices] == ["u1", "u2"]
        assert all(n.resource_id == "x" for n in notices)

    def test_actor_label_fallback(self):
        assert actor_label(Actor(user_id="u1", name="Alice")) == "Alice"
        assert actor_label(Actor(user_id="u1")) == "A member"


class TestNotificationDispatcher:
    @pytest.mark.asyncio
    async def test_delivers_all(self):
        port = AsyncMock()
        delivered = await NotificationDispatcher(port).dispatch([_notice("u1"), _notice("u2")])
        assert delivered == 2
        assert port.emit.await_count == 2
        assert port.emit.await_args_list[0].kwargs["recipient_id"] == "u1"

    @pytest.mark.asyncio
    async def test_failure_is_logged_and_skipped(self, caplog):
        port = AsyncMock()
        port.emit = AsyncMock(side_effect=[RuntimeError("smtp down"), None])
        delivered = await NotificationDispatcher(port).dispatch([_notice("u1"), _notice("u2")])
        assert delivered == 1
        assert port.emit.await_count == 2
        assert "smtp down" in caplog.text

    @pytest.mark.asyncio
    async def test_nothing_to_do(self):
        port = AsyncMock()
        assert await NotificationDispatcher(port).dispatch([]) == 0
        port.emit.assert_not_awaited()


class TestDBNotifier:
    @pytest.mark.asyncio
    async def test_emit_stores_in_inbox(self, notification_db):
        notifier = DBNotifier(notification_db)
        await notifier.emit(
            recipient_id="u1", household_id="h1", kind=NotificationKind.JOIN_ACCEPTED,
            title="Request accepted!", message="Welcome", resource_id="h1",
        )
        [stored] = notification_db.list_for_user("u1")
        assert stored.kind == NotificationKind.JOIN_ACCEPTED
        assert stored.resource_id == "h1"
        assert stored.read is False
