"""Notice dispatcher — hands domain notices to the notification port.

Delivery failures are logged and skipped: a notification problem never
undoes or fails the operation that produced it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ensemble.core.notices import Notice
    from ensemble.ports.notification_port import NotificationPort

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Delivers notices one by one through a NotificationPort."""

    def __init__(self, notifier: NotificationPort) -> None:
        self._notifier = notifier

    async def dispatch(self, notices: list[Notice]) -> int:
        """Deliver every notice. Returns how many were delivered."""
        delivered = 0
        for notice in notices:
            try:
                await self._notifier.emit(
                    recipient_id=notice.recipient_id,
                    household_id=notice.household_id,
                    kind=notice.kind,
                    title=notice.title,
                    message=notice.message,
                    resource_id=notice.resource_id,
                )
            except Exception as exc:
                logger.error(
                    "Failed to deliver %s notice to %s: %s",
                    notice.kind.value, notice.recipient_id, exc,
                )
                continue
            delivered += 1
        if notices:
            logger.info("Dispatched %d/%d notices", delivered, len(notices))
        return delivered
