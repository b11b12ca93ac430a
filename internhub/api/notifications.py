# internhub/api/notifications.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from internhub.api.deps import get_inbox
from internhub.infra.servicebus_consumer import consumer_status
from internhub.models.notification import Notification, NotificationFilters
from internhub.services.inbox import NotificationInbox

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=List[Notification])
async def list_notifications(
    type: Optional[str] = Query(None),
    is_read: Optional[bool] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    inbox: NotificationInbox = Depends(get_inbox),
):
    """
    The caller's notifications that their role is allowed to see, newest first.
    Only ever the caller's own rows (``sub`` of the JWT).
    """
    return await inbox.notifications(NotificationFilters(type=type, is_read=is_read, limit=limit))


@router.get("/unread-count")
async def unread_count(inbox: NotificationInbox = Depends(get_inbox)):
    return {"count": await inbox.unread_count()}


@router.post("/read-all")
async def mark_all_as_read(inbox: NotificationInbox = Depends(get_inbox)):
    updated = await inbox.mark_all_read()
    return {"ok": True, "updated": updated}


@router.post("/{notification_id}/read")
async def mark_notification_as_read(notification_id: str, inbox: NotificationInbox = Depends(get_inbox)):
    """Marking an already-read notification is a success."""
    await inbox.mark_read(notification_id)
    return {"ok": True}


@router.delete("/{notification_id}")
async def delete_notification(notification_id: str, inbox: NotificationInbox = Depends(get_inbox)):
    await inbox.delete(notification_id)
    return {"ok": True}


@router.delete("")
async def delete_all_notifications(inbox: NotificationInbox = Depends(get_inbox)):
    deleted = await inbox.delete_all()
    return {"ok": True, "deleted": deleted}


# =========================
# Queue consumer diagnostics
# =========================
@router.get("/debug/consumer-status")
async def debug_consumer_status():
    """
    State of the Service Bus consumer:
    - startedAt / lastMessageAt / lastError / processed
    - queue: queue name
    - hasConnectionString: whether a connection string is configured
    """
    return consumer_status()
