# internhub/services/notification_repository.py
"""
Notification Repository

Owner-scoped reads and mutations against the Row Store. The actor is passed
in explicitly; with no actor every operation raises ``Unauthenticated``.

Ownership is enforced twice: every query carries ``user_id = actor.id``, and
every returned row is re-checked before it is surfaced. Rows that fail the
re-check are dropped with a warning, never returned.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from internhub.core import config
from internhub.core.exceptions import (
    BatchOperationError,
    Inconsistent,
    NotAccessible,
    TransientIO,
    Unauthenticated,
)
from internhub.infra.base import RowStore
from internhub.models.notification import Actor, Notification, NotificationFilters
from internhub.services.visibility import allowed_types, is_visible, visibility_rules

logger = logging.getLogger(__name__)


class NotificationRepository:

    def __init__(
        self,
        store: RowStore,
        actor: Optional[Actor],
        page_size: int = config.NOTIFICATION_PAGE_SIZE,
        retries: int = config.STORE_RETRIES,
        backoff: float = 0.2,
    ):
        self.store = store
        self.actor = actor
        self.page_size = page_size
        self.retries = retries
        self.backoff = backoff

    def require_actor(self) -> Actor:
        if self.actor is None or not self.actor.id:
            raise Unauthenticated()
        return self.actor

    async def _retry(self, operation: str, fn, *args, **kwargs):
        """Run an idempotent store call, retrying ``TransientIO`` with linear backoff."""
        attempt = 0
        while True:
            try:
                return await fn(*args, **kwargs)
            except TransientIO as e:
                if attempt >= self.retries:
                    raise
                attempt += 1
                logger.warning("%s failed (attempt %d of %d), retrying: %s",
                               operation, attempt, self.retries + 1, e.message)
                await asyncio.sleep(self.backoff * attempt)

    def _owned(self, rows: List[Dict[str, Any]], actor: Actor) -> List[Notification]:
        verified = []
        for row in rows:
            if row.get("user_id") != actor.id:
                err = Inconsistent(row.get("id"), row.get("user_id"), actor.id)
                logger.warning("Dropped notification not owned by actor: %s", err)
                continue
            try:
                verified.append(Notification.from_row(row))
            except ValidationError as e:
                logger.warning("Dropped malformed notification %s: %s", row.get("id"), e)
        return verified

    async def _fetch(self, actor: Actor, type=None, is_read=None, limit=None) -> List[Notification]:
        rows = await self._retry(
            "fetch notifications",
            self.store.query_notifications,
            actor.id,
            type=type,
            is_read=is_read,
            limit=limit,
        )
        return self._owned(rows, actor)

    # -----------------------------
    # Reads
    # -----------------------------
    async def fetch_all(self, filters: Optional[NotificationFilters] = None) -> List[Notification]:
        """The actor's own notifications, newest first, at most ``filters.limit``."""
        actor = self.require_actor()
        filters = filters or NotificationFilters(limit=self.page_size)
        return await self._fetch(actor, type=filters.type, is_read=filters.is_read, limit=filters.limit)

    async def fetch_visible(self, filters: Optional[NotificationFilters] = None) -> List[Notification]:
        """``fetch_all`` narrowed by the actor's role."""
        actor = self.require_actor()
        return [n for n in await self.fetch_all(filters) if is_visible(n, actor.role)]

    async def unread_count(self) -> int:
        actor = self.require_actor()
        if not allowed_types(actor.role):
            return 0
        try:
            return await self.store.count_unread(actor.id, visibility_rules(actor.role))
        except (NotImplementedError, TransientIO) as e:
            logger.warning("Server unread count unavailable, counting client-side: %s", e)
        return await self.unread_count_fallback()

    async def unread_count_fallback(self) -> int:
        actor = self.require_actor()
        unread = await self._fetch(actor, is_read=False, limit=None)
        return sum(1 for n in unread if not n.is_read and is_visible(n, actor.role))

    # -----------------------------
    # Mutations
    async def mark_read(self, notification_id: str) -> None:
        """Idempotent: an already-read notification succeeds without a write."""
        actor = self.require_actor()
        row = await self._retry("get notification", self.store.get_notification, notification_id)
        if row is None or row.get("user_id") != actor.id:
            raise NotAccessible(notification_id)
        try:
            notification = Notification.from_row(row)
        except ValidationError as e:
            logger.warning("Dropped malformed notification %s: %s", notification_id, e)
            raise NotAccessible(notification_id)
        if not is_visible(notification, actor.role):
            raise NotAccessible(notification_id)
        if notification.is_read:
            return
        await self._retry("mark read", self.store.mark_notification_read, notification_id, actor.id)

    async def mark_all_read(self) -> int:
        """
        Mark every unread, visible notification as read.

        Each item is attempted on its own; if any failed, a single
        ``BatchOperationError`` lists them after the rest were applied.
        """
        actor = self.require_actor()
        targets = [
            n.id for n in await self._fetch(actor, is_read=False, limit=None)
            if not n.is_read and is_visible(n, actor.role)
        ]
        return await self._apply_each("mark_all_read", "mark read", self.store.mark_notification_read, targets, actor)

    async def delete(self, notification_id: str) -> None:
        """Deleting an id that no longer exists is a success."""
        actor = self.require_actor()
        row = await self._retry("get notification", self.store.get_notification, notification_id)
        if row is None:
            return
        if row.get("user_id") != actor.id:
            raise NotAccessible(notification_id)
        await self._retry("delete notification", self.store.delete_notification, notification_id, actor.id)

    async def delete_all(self) -> int:
        """
        Delete every notification the actor owns, whatever its type.

        Works on raw rows: an owned row that no longer parses is deleted too.
        """
        actor = self.require_actor()
        rows = await self._retry(
            "fetch notifications", self.store.query_notifications, actor.id, limit=None,
        )
        targets = []
        for row in rows:
            if row.get("user_id") != actor.id:
                logger.warning("Dropped notification not owned by actor: %s",
                               Inconsistent(row.get("id"), row.get("user_id"), actor.id))
                continue
            if row.get("id"):
                targets.append(row["id"])
        return await self._apply_each("delete_all", "delete notification", self.store.delete_notification, targets, actor)

    async def _apply_each(self, operation: str, step: str, fn, ids: List[str], actor: Actor) -> int:
        results = await asyncio.gather(
            *(self._retry(step, fn, notification_id, actor.id) for notification_id in ids),
            return_exceptions=True,
        )
        failed = []
        for notification_id, result in zip(ids, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, Exception):
                failed.append(notification_id)
        if failed:
            logger.error("%s: %d of %d failed: %s", operation, len(failed), len(ids), failed)
            raise BatchOperationError(operation, failed, len(ids))
        return len(ids)
