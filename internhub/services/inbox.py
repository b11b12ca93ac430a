# internhub/services/inbox.py
"""
Notification inbox: what the presentation layer calls.

Reads go through the query cache. Mutations patch the cached list before the
remote call and refresh the unread count afterwards. A failed remote call is
re-raised but its patch is NOT rolled back; the next invalidation from the
live sync bridge (or TTL expiry) brings back the store's state.
"""
from typing import Callable, List, Optional

from internhub.core import config
from internhub.models.notification import Notification, NotificationFilters
from internhub.services.notification_repository import NotificationRepository
from internhub.services.query_cache import QueryCache, notifications_key, unread_count_key

Patch = Callable[[List[Notification]], List[Notification]]


class NotificationInbox:

    def __init__(
        self,
        repository: NotificationRepository,
        cache: QueryCache,
        list_ttl: float = config.NOTIFICATION_LIST_TTL,
        count_ttl: float = config.UNREAD_COUNT_TTL,
    ):
        self.repository = repository
        self.cache = cache
        self.list_ttl = list_ttl
        self.count_ttl = count_ttl

    def _actor_id(self) -> str:
        return self.repository.require_actor().id

    async def notifications(self, filters: Optional[NotificationFilters] = None) -> List[Notification]:
        actor_id = self._actor_id()
        filters = filters or NotificationFilters(limit=self.repository.page_size)
        key = notifications_key(actor_id) + (filters.type, filters.is_read, filters.limit)

        cached = self.cache.get(key)
        if cached is not None:
            return list(cached)

        visible = await self.repository.fetch_visible(filters)
        self.cache.set(key, visible, self.list_ttl)
        return list(visible)

    async def unread_count(self) -> int:
        key = unread_count_key(self._actor_id())
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        count = await self.repository.unread_count()
        self.cache.set(key, count, self.count_ttl)
        return count

    def _patch_lists(self, actor_id: str, patch: Patch, unread_patch: Optional[Patch] = None):
        # list keys are notifications_key + (type, is_read, limit)
        for key in self.cache.keys_for(notifications_key(actor_id)):
            if unread_patch is not None and len(key) > 3 and key[3] is False:
                self.cache.patch(key, unread_patch)
            else:
                self.cache.patch(key, patch)

    async def mark_read(self, notification_id: str) -> None:
        actor_id = self._actor_id()
        self._patch_lists(
            actor_id,
            lambda items: [
                n.model_copy(update={"is_read": True}) if n.id == notification_id else n
                for n in items
            ],
            unread_patch=lambda items: [n for n in items if n.id != notification_id],
        )
        try:
            await self.repository.mark_read(notification_id)
        finally:
            self.cache.invalidate(unread_count_key(actor_id))

    async def mark_all_read(self) -> int:
        actor_id = self._actor_id()
        self._patch_lists(
            actor_id,
            lambda items: [
                n if n.is_read else n.model_copy(update={"is_read": True})
                for n in items
            ],
            unread_patch=lambda items: [],
        )
        try:
            return await self.repository.mark_all_read()
        finally:
            self.cache.invalidate(unread_count_key(actor_id))

    async def delete(self, notification_id: str) -> None:
        actor_id = self._actor_id()
        self._patch_lists(actor_id, lambda items: [n for n in items if n.id != notification_id])
        try:
            await self.repository.delete(notification_id)
        finally:
            self.cache.invalidate(unread_count_key(actor_id))

    async def delete_all(self) -> int:
        actor_id = self._actor_id()
        self._patch_lists(actor_id, lambda items: [])
        try:
            return await self.repository.delete_all()
        finally:
            self.cache.invalidate(unread_count_key(actor_id))
