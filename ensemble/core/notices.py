"""Domain notices produced by service operations.

Core operations never talk to the notification emitter directly. They
return a list of Notice values; the dispatcher delivers them once the
database work has been committed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from ensemble.data.models import Actor, Member, NotificationKind


@dataclass(frozen=True)
class Notice:
    """One notification to deliver to one account."""

    recipient_id: str
    household_id: str
    kind: NotificationKind
    title: str
    message: str
    resource_id: str | None = None


def account_recipients(members: Iterable[Member], actor: Actor) -> list[str]:
    """User ids of members that have an account and are not the actor.

    Order is preserved and duplicates dropped.
    """
    seen: dict[str, None] = {}
    for member in members:
        if member.user_id and member.user_id != actor.user_id:
            seen.setdefault(member.user_id, None)
    return list(seen)


def fan_out(
    recipients: Iterable[str],
    household_id: str,
    kind: NotificationKind,
    title: str,
    message: str,
    resource_id: str | None = None,
) -> list[Notice]:
    return [
        Notice(
            recipient_id=r,
            household_id=household_id,
            kind=kind,
            title=title,
            message=message,
            resource_id=resource_id,
        )
        for r in recipients
    ]


def actor_label(actor: Actor) -> str:
    return actor.name or "A member"
