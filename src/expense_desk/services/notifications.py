"""Notification emission for report status changes."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from expense_desk.events import AsyncEventEmitter, EventMetadata, NotificationRequested
from expense_desk.models import Notification

logger = logging.getLogger(__name__)


class NotificationService:
    """Records in-app notifications and hands them to the delivery transport.

    The notification row is written in the caller's transaction. Delivery
    goes through the emitter after the authoritative state change and never
    fails the operation: handler errors are logged and dropped.
    """

    def __init__(self, session: AsyncSession, emitter: AsyncEventEmitter | None = None):
        self.session = session
        self.emitter = emitter

    async def notify(self, report_id: UUID, user_id: UUID | None, status: str) -> Notification | None:
        if user_id is None:
            logger.warning("No recipient for report %s status %s; skipping", report_id, status)
            return None

        notification = Notification(report_id=report_id, user_id=user_id, status=status)
        self.session.add(notification)
        await self.session.flush()

        if self.emitter is not None:
            event = NotificationRequested(
                metadata=EventMetadata.create(),
                notification_id=notification.notification_id,
                report_id=report_id,
                user_id=user_id,
                status=status,
            )
            try:
                errors = await self.emitter.emit(event)
            except Exception:
                logger.exception("Notification delivery failed for report %s", report_id)
            else:
                if errors:
                    logger.warning(
                        "%d notification handler(s) failed for report %s",
                        len(errors),
                        report_id,
                    )
        return notification
