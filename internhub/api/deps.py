# internhub/api/deps.py
from typing import Optional

from fastapi import Depends, Header, Request

from internhub.core import config
from internhub.core.exceptions import Forbidden
from internhub.infra.base import RowStore
from internhub.infra.change_feed import ChangeFeed
from internhub.models.notification import Actor, Role
from internhub.security.jwt_utils import actor_from_payload, get_current_user
from internhub.services.analytics import AnalyticsService
from internhub.services.inbox import NotificationInbox
from internhub.services.notification_repository import NotificationRepository
from internhub.services.query_cache import QueryCache


def build_store(changes: Optional[ChangeFeed] = None) -> RowStore:
    """Row Store selected by ROW_STORE_BACKEND."""
    if config.ROW_STORE_BACKEND == "memory":
        from internhub.infra.memory_store import MemoryRowStore
        return MemoryRowStore(changes, config.NOTIFICATIONS_TABLE)
    from internhub.infra.table_client import TableRowStore
    return TableRowStore(changes=changes)


def get_store(request: Request) -> RowStore:
    return request.app.state.store


def get_cache(request: Request) -> QueryCache:
    return request.app.state.cache


def get_actor(authorization: Optional[str] = Header(None)) -> Actor:
    return actor_from_payload(get_current_user(authorization))


def require_admin(actor: Actor = Depends(get_actor)) -> Actor:
    if actor.role != Role.ADMIN.value:
        raise Forbidden("Analytics are restricted to administrators")
    return actor


def get_repository(
    store: RowStore = Depends(get_store),
    actor: Actor = Depends(get_actor),
) -> NotificationRepository:
    return NotificationRepository(store, actor)


def get_inbox(
    repository: NotificationRepository = Depends(get_repository),
    cache: QueryCache = Depends(get_cache),
) -> NotificationInbox:
    return NotificationInbox(repository, cache)


def get_analytics(
    store: RowStore = Depends(get_store),
    _admin: Actor = Depends(require_admin),
) -> AnalyticsService:
    return AnalyticsService(store)
