# internhub/services/notification_handler.py
import logging
import uuid
from typing import Optional

from pydantic import ValidationError

from internhub.infra.base import RowStore
from internhub.models.notification import Notification, NotificationType, new_created_at
from internhub.models.queue_message import QueueMessage

logger = logging.getLogger(__name__)

_TITLES = {
    NotificationType.USER_APPROVAL.value: "Account review",
    NotificationType.INTERNSHIP_APPROVAL.value: "Internship review",
    NotificationType.APPLICATION_STATUS.value: "Application update",
    NotificationType.NEW_APPLICATION.value: "New application",
}


def default_message(n_type: str, status: Optional[str], title: Optional[str] = None) -> str:
    """Fallback text when the producer sent no message."""
    if n_type == NotificationType.USER_APPROVAL.value:
        if status == "pending":
            return "A new account is waiting for approval."
        return "Your account has been approved." if status == "approved" else "Your account has been rejected."
    if n_type == NotificationType.INTERNSHIP_APPROVAL.value:
        if status == "pending":
            return "A new internship is waiting for review."
        return "Your internship has been approved." if status == "approved" else "Your internship has been rejected."
    if n_type == NotificationType.APPLICATION_STATUS.value:
        return "Your application has been accepted." if status == "accepted" else "Your application has been rejected."
    if n_type == NotificationType.NEW_APPLICATION.value:
        return "You have received a new application."
    return title or "New notification"


def build_notification(msg: QueueMessage) -> Notification:
    status = msg.data.get("status")
    return Notification(
        id=str(uuid.uuid4()),
        user_id=msg.userId,
        type=msg.type,
        title=msg.title or _TITLES.get(msg.type, "Notification"),
        message=msg.message or default_message(msg.type, status, msg.title),
        metadata=msg.data,
        related_id=msg.relatedId,
        related_type=msg.relatedType,
        is_read=False,
        created_at=new_created_at(),
    )


async def process_notification(payload: dict, store: RowStore) -> Optional[Notification]:
    """
    Persist one notification request from the queue.

    Expected shape::

      {
        "type": "internship_approval",
        "userId": "<owner id>",
        "data": {"status": "approved", ...},
        "title": "...", "message": "...",          # optional
        "relatedId": "...", "relatedType": "..."   # optional
      }

    The store publishes the insert on its change feed, which is what
    wakes up connected consumers. Returns None for messages that cannot
    be delivered (no recipient, unknown type).
    """
    try:
        msg = QueueMessage.model_validate(payload)
    except ValidationError as e:
        logger.warning("Discarding malformed notification message: %s", e)
        return None

    if not msg.userId:
        # no recipient, nothing to notify
        return None
    if msg.type not in _TITLES:
        logger.warning("Discarding notification of unknown type %r for %s", msg.type, msg.userId)
        return None

    notification = build_notification(msg)
    await store.insert_notification(notification.to_row())
    logger.info("Stored %s notification %s for %s", notification.type, notification.id, notification.user_id)
    return notification
