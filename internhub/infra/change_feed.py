# internhub/infra/change_feed.py
"""
In-process change feed.

Store backends publish an event after every successful write; subscribers
register per (table, user_id) and only learn *that* something changed.
Table Storage has no native change stream, so this hub is the
subscribe-to-changes primitive the live sync layer consumes.
"""
import asyncio
import inspect
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, Tuple, Union

logger = logging.getLogger(__name__)

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"


@dataclass
class ChangeEvent:
    table: str
    user_id: str
    event_type: str
    record_id: str = ""
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


ChangeCallback = Callable[[ChangeEvent], Union[None, Awaitable[None]]]


class Subscription:
    """Handle returned by ``ChangeFeed.subscribe``."""

    def __init__(self, feed: "ChangeFeed", table: str, user_id: str, callback: ChangeCallback):
        self.id = str(uuid.uuid4())
        self.table = table
        self.user_id = user_id
        self.callback = callback
        self._feed = feed
        self.active = True

    def unsubscribe(self) -> bool:
        """Returns False when the subscription was already released."""
        if not self.active:
            return False
        self.active = False
        self._feed._remove(self)
        return True


class ChangeFeed:
    def __init__(self):
        self._subscriptions: Dict[Tuple[str, str], Dict[str, Subscription]] = {}

    async def subscribe(self, table: str, user_id: str, callback: ChangeCallback) -> Subscription:
        sub = Subscription(self, table, user_id, callback)
        self._subscriptions.setdefault((table, user_id), {})[sub.id] = sub
        logger.debug("change feed: subscribed %s to %s/%s", sub.id, table, user_id)
        return sub

    def _remove(self, sub: Subscription):
        key = (sub.table, sub.user_id)
        subs = self._subscriptions.get(key)
        if not subs:
            return
        subs.pop(sub.id, None)
        if not subs:
            del self._subscriptions[key]
        logger.debug("change feed: released %s from %s/%s", sub.id, sub.table, sub.user_id)

    def active_count(self, table: str, user_id: str) -> int:
        return len(self._subscriptions.get((table, user_id), {}))

    async def publish(self, event: ChangeEvent) -> int:
        """Deliver ``event`` to every matching subscriber. Returns deliveries made."""
        subs = list(self._subscriptions.get((event.table, event.user_id), {}).values())
        delivered = 0
        for sub in subs:
            try:
                result = sub.callback(event)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except asyncio.CancelledError:
                raise
            except Exception:
                # one broken consumer must not starve the others
                logger.exception("change feed: subscriber %s failed on %s", sub.id, event.event_type)
        return delivered
