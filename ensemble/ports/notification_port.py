"""Notification port — abstract interface for emitting notifications.

Core modules depend on this protocol, never on a specific storage or
delivery mechanism.
"""

from __future__ import annotations

from typing import Protocol

from ensemble.data.models import NotificationKind


class NotificationPort(Protocol):
    """Abstract notification emitter used by core modules."""

    async def emit(
        self,
        recipient_id: str,
        household_id: str,
        kind: NotificationKind,
        title: str,
        message: str,
        resource_id: str | None = None,
    ) -> None: ...
