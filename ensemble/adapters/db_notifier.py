"""Database notification adapter — implements NotificationPort.

Stores notifications in the inbox table, where clients poll for them.
"""

from __future__ import annotations

import logging

from ensemble.data.db import NotificationDB
from ensemble.data.models import NotificationKind

logger = logging.getLogger(__name__)


class DBNotifier:
    """Inbox-table implementation of NotificationPort."""

    def __init__(self, notification_db: NotificationDB) -> None:
        self._notification_db = notification_db

    async def emit(
        self,
        recipient_id: str,
        household_id: str,
        kind: NotificationKind,
        title: str,
        message: str,
        resource_id: str | None = None,
    ) -> None:
        self._notification_db.add_notification(
            user_id=recipient_id,
            household_id=household_id,
            kind=kind,
            title=title,
            message=message,
            resource_id=resource_id,
        )
