# internhub/infra/memory_store.py
"""
In-process Row Store.

For local development (ROW_STORE_BACKEND=memory) and the test-suite. Follows
the same contract as the Table Storage backend, including change-feed
publication on writes.
"""
import copy
import logging
from typing import Any, Dict, List, Optional

from internhub.infra.base import RowStore
from internhub.infra.change_feed import ChangeFeed, DELETE, INSERT, UPDATE
from internhub.services.aggregation import parse_timestamp
from internhub.services.visibility import VisibilityRules

logger = logging.getLogger(__name__)


def _sort_key(row: Dict[str, Any], field: str):
    ts = parse_timestamp(row.get(field))
    return ts.timestamp() if ts else float("-inf")


def _matches(row: Dict[str, Any], filters: Dict[str, Any]) -> bool:
    for key, expected in filters.items():
        value = row.get(key)
        if isinstance(expected, (list, tuple, set, frozenset)):
            if value not in expected:
                return False
        elif value != expected:
            return False
    return True


class MemoryRowStore(RowStore):

    def __init__(
        self,
        changes: Optional[ChangeFeed] = None,
        notifications_table: str = "notifications",
        supports_count: bool = True,
    ):
        super().__init__(changes, notifications_table)
        self.supports_count = supports_count
        self.notifications: Dict[str, Dict[str, Any]] = {}
        self.tables: Dict[str, List[Dict[str, Any]]] = {}

    # -----------------------------
    # Notifications
    # -----------------------------
    async def query_notifications(self, user_id, type=None, is_read=None, limit=100):
        rows = [r for r in self.notifications.values() if r.get("user_id") == user_id]
        if type is not None:
            rows = [r for r in rows if r.get("type") == type]
        if is_read is not None:
            rows = [r for r in rows if bool(r.get("is_read")) == is_read]
        rows.sort(key=lambda r: _sort_key(r, "created_at"), reverse=True)
        if limit:
            rows = rows[:limit]
        return copy.deepcopy(rows)

    async def get_notification(self, notification_id):
        row = self.notifications.get(notification_id)
        return copy.deepcopy(row) if row else None

    async def insert_notification(self, row):
        stored = copy.deepcopy(row)
        metadata = stored.get("metadata") or {}
        stored.setdefault("status", metadata.get("status"))
        self.notifications[stored["id"]] = stored
        await self._publish(stored["user_id"], INSERT, stored["id"])

    async def mark_notification_read(self, notification_id, user_id):
        row = self.notifications.get(notification_id)
        if not row or row.get("user_id") != user_id:
            return
        if row.get("is_read"):
            return
        row["is_read"] = True
        await self._publish(user_id, UPDATE, notification_id)

    async def delete_notification(self, notification_id, user_id):
        row = self.notifications.get(notification_id)
        if not row or row.get("user_id") != user_id:
            return False
        del self.notifications[notification_id]
        await self._publish(user_id, DELETE, notification_id)
        return True

    async def count_unread(self, user_id, rules: VisibilityRules):
        if not self.supports_count:
            raise NotImplementedError("count primitive disabled")
        count = 0
        for row in self.notifications.values():
            if row.get("user_id") != user_id or row.get("is_read"):
                continue
            if row.get("type") not in rules:
                continue
            statuses = rules[row["type"]]
            if statuses is not None and row.get("status") not in statuses:
                continue
            count += 1
        return count

    # -----------------------------
    # Analytics tables
    # -----------------------------
    def seed(self, table: str, rows: List[Dict[str, Any]]):
        self.tables.setdefault(table, []).extend(copy.deepcopy(rows))

    async def query_rows(self, table, filters=None, since=None, date_field=None, limit=None):
        rows = list(self.tables.get(table, []))
        if filters:
            rows = [r for r in rows if _matches(r, filters)]
        if since and date_field:
            cutoff = parse_timestamp(since)
            rows = [
                r for r in rows
                if parse_timestamp(r.get(date_field)) and parse_timestamp(r.get(date_field)) >= cutoff
            ]
        if date_field:
            rows.sort(key=lambda r: _sort_key(r, date_field))
        if limit:
            rows = rows[:limit]
        return copy.deepcopy(rows)
