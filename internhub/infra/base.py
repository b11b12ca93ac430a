# internhub/infra/base.py
"""
Row Store interface.

The notification core talks to the hosted store only through this class, so
the Table Storage backend and the in-memory backend are interchangeable.

Rows are plain dicts in the notification shape (``id``, ``user_id``, ``type``,
``metadata``, ...). Backends translate to and from their own entity layout,
raise ``TransientIO`` for failed calls, and publish a ``ChangeEvent`` on
``self.changes`` after every successful write.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from internhub.infra.change_feed import ChangeEvent, ChangeFeed
from internhub.services.visibility import VisibilityRules


class RowStore(ABC):

    def __init__(self, changes: Optional[ChangeFeed] = None, notifications_table: str = "notifications"):
        self.changes = changes or ChangeFeed()
        self.notifications_table = notifications_table

    async def _publish(self, user_id: str, event_type: str, record_id: str):
        await self.changes.publish(ChangeEvent(
            table=self.notifications_table,
            user_id=user_id,
            event_type=event_type,
            record_id=record_id,
        ))

    # -----------------------------
    # Notifications
    # -----------------------------
    @abstractmethod
    async def query_notifications(
        self,
        user_id: str,
        type: Optional[str] = None,
        is_read: Optional[bool] = None,
        limit: Optional[int] = 100,
    ) -> List[Dict[str, Any]]:
        """Rows with ``user_id`` equality, newest first, capped at ``limit`` (None: all)."""

    @abstractmethod
    async def get_notification(self, notification_id: str) -> Optional[Dict[str, Any]]:
        """Point lookup by id across all owners; None when it does not exist."""

    @abstractmethod
    async def insert_notification(self, row: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    async def mark_notification_read(self, notification_id: str, user_id: str) -> None:
        """Set ``is_read`` on the row owned by ``user_id``. No-op when already read."""

    @abstractmethod
    async def delete_notification(self, notification_id: str, user_id: str) -> bool:
        """Returns False when nothing was deleted (already gone)."""

    @abstractmethod
    async def count_unread(self, user_id: str, rules: VisibilityRules) -> int:
        """
        Server-side unread count for ``user_id`` restricted to ``rules``.

        May raise ``NotImplementedError`` or ``TransientIO``; callers fall back
        to fetch-and-filter.
        """

    # -----------------------------
    # Analytics tables
    # -----------------------------
    @abstractmethod
    async def query_rows(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        since: Optional[str] = None,
        date_field: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Generic read for the analytics tables.

        ``filters`` are equality matches (a list value means "any of");
        ``since`` is an ISO timestamp compared against ``date_field``.
        """

    async def close(self) -> None:
        return None
