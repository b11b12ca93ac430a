# internhub/services/live_sync.py
"""
Live Sync Bridge

One bridge per mounted consumer (a WebSocket, a dashboard session). While
subscribed it holds exactly one change-feed subscription on the
notifications table for the current actor. Any change event invalidates the
actor's list and unread-count cache entries once each; payloads are never
inspected, the next read re-fetches full state.

States::

    DISCONNECTED -> SUBSCRIBING -> SUBSCRIBED -> DISCONNECTED   (teardown)
                                 SUBSCRIBED -> RECONNECTING -> SUBSCRIBED
                    SUBSCRIBING -> DEGRADED                     (subscribe failed)

A failed subscription never raises: the consumer keeps working off
read-time fetches and ``last_error`` carries the diagnostic.
"""
import asyncio
import inspect
import logging
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Union

from internhub.infra.change_feed import ChangeEvent, ChangeFeed, Subscription
from internhub.services.query_cache import CacheKey, QueryCache, notifications_key, unread_count_key

logger = logging.getLogger(__name__)

InvalidateCallback = Callable[[List[CacheKey]], Union[None, Awaitable[None]]]


class SyncState(str, Enum):
    DISCONNECTED = "disconnected"
    SUBSCRIBING = "subscribing"
    SUBSCRIBED = "subscribed"
    RECONNECTING = "reconnecting"
    DEGRADED = "degraded"


class LiveSyncBridge:

    def __init__(
        self,
        feed: ChangeFeed,
        cache: QueryCache,
        table: str = "notifications",
        on_invalidate: Optional[InvalidateCallback] = None,
    ):
        self.feed = feed
        self.cache = cache
        self.table = table
        self.on_invalidate = on_invalidate
        self.state = SyncState.DISCONNECTED
        self.actor_id: Optional[str] = None
        self.last_error: Optional[str] = None
        self.events_seen = 0
        self._subscription: Optional[Subscription] = None
        self._lock = asyncio.Lock()

    @property
    def subscribed(self) -> bool:
        return self._subscription is not None and self._subscription.active

    async def start(self, actor_id: str) -> SyncState:
        """Subscribe for ``actor_id``. A running subscription for another actor is torn down first."""
        async with self._lock:
            if self.subscribed and self.actor_id == actor_id:
                return self.state
            self._release()
            return await self._subscribe(actor_id)

    async def switch_actor(self, actor_id: Optional[str]) -> SyncState:
        """Actor changed (login as someone else, logout with ``None``)."""
        if actor_id is None:
            await self.teardown()
            return self.state
        return await self.start(actor_id)

    async def teardown(self) -> bool:
        """Release the subscription. Returns False if there was nothing to release."""
        async with self._lock:
            released = self._release()
            self.state = SyncState.DISCONNECTED
            return released

    def transport_lost(self):
        if self.state == SyncState.SUBSCRIBED:
            self.state = SyncState.RECONNECTING
            logger.info("live sync: transport lost for %s, reconnecting", self.actor_id)

    def transport_restored(self):
        if self.state == SyncState.RECONNECTING and self.subscribed:
            self.state = SyncState.SUBSCRIBED
            logger.info("live sync: transport restored for %s", self.actor_id)

    async def _subscribe(self, actor_id: str) -> SyncState:
        self.actor_id = actor_id
        self.state = SyncState.SUBSCRIBING
        try:
            self._subscription = await self.feed.subscribe(self.table, actor_id, self._on_change)
        except Exception as e:
            self._subscription = None
            self.state = SyncState.DEGRADED
            self.last_error = str(e)
            logger.warning("live sync: subscription for %s failed, degraded mode: %s", actor_id, e)
            return self.state
        self.last_error = None
        self.state = SyncState.SUBSCRIBED
        logger.debug("live sync: subscribed %s", actor_id)
        return self.state

    def _release(self) -> bool:
        sub, self._subscription = self._subscription, None
        if sub is None:
            return False
        return sub.unsubscribe()

    async def _on_change(self, event: ChangeEvent):
        # events for a superseded actor can still be in flight
        if event.user_id != self.actor_id or not self.subscribed:
            return
        self.events_seen += 1
        keys = [notifications_key(event.user_id), unread_count_key(event.user_id)]
        for key in keys:
            self.cache.invalidate(key)
        if self.on_invalidate is not None:
            result = self.on_invalidate(keys)
            if inspect.isawaitable(result):
                await result
