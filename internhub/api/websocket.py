# internhub/api/websocket.py
import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from internhub.core.exceptions import Unauthenticated
from internhub.security.jwt_utils import decode_token
from internhub.services.live_sync import LiveSyncBridge, SyncState

logger = logging.getLogger(__name__)

router = APIRouter(tags=["websocket"])


@router.websocket("/ws/notifications")
async def websocket_notifications(websocket: WebSocket, token: str = Query(...)):
    """
    Live invalidation feed for the caller's notifications.
    The frontend connects with:
      ws://<host>/ws/notifications?token=<JWT>
    and re-fetches its list and unread count on every
      {"type": "invalidate", "keys": ["notifications", "unread_count"]}
    """
    # 1. Validate token
    try:
        payload = decode_token(token)
    except Unauthenticated:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    user_id = payload.get("sub")
    if not user_id:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()

    async def push_invalidate(keys):
        await websocket.send_json({"type": "invalidate", "keys": [k[0] for k in keys]})

    # 2. One bridge per socket
    bridge = LiveSyncBridge(
        websocket.app.state.store.changes,
        websocket.app.state.cache,
        table=websocket.app.state.store.notifications_table,
        on_invalidate=push_invalidate,
    )
    state = await bridge.start(str(user_id))
    await websocket.send_json({"type": "status", "state": state.value})
    if state == SyncState.DEGRADED:
        logger.warning("websocket for %s running without live sync: %s", user_id, bridge.last_error)

    try:
        # 3. Keep the connection alive; the client may send pings
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        await bridge.teardown()
