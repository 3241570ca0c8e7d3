import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from leavedesk.database import SessionLocal
from leavedesk.models.notification import Notification, NotificationType

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """
    Fire-and-forget notifications for leave owners.

    Runs after the decision has committed, on its own session. A failure here
    is logged and dropped; it never reaches the caller.
    """

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self.session_factory = session_factory

    def dispatch(
        self,
        user_id: int,
        title: str,
        message: str,
        type: NotificationType = NotificationType.INFO,
        leave_id: Optional[int] = None,
    ) -> None:
        db = self.session_factory()
        try:
            db.add(Notification(
                user_id=user_id,
                leave_id=leave_id,
                title=title,
                message=message,
                type=NotificationType(type),
            ))
            db.commit()
            logger.info(f"Notified user {user_id}: {title}")
        except Exception as e:
            db.rollback()
            logger.warning(f"Notification failed for user {user_id}: {e}", exc_info=True)
        finally:
            db.close()


def get_notification_dispatcher() -> NotificationDispatcher:
    return NotificationDispatcher()
