"""
Diner Live View WebSocket.

Streams the session's view (session, cart, orders) to customers at a table.
The socket sends a SNAPSHOT message whenever the view changes and a final
SESSION_CLOSED message once the session is no longer OPEN. The socket is
closed with 1011 when the change feed fails.
"""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect

from shared.config.logging import audit_ws_connection, get_logger
from shared.infrastructure.events import ChangeFeed, RedisChangeFeed
from shared.security.auth import verify_table_token
from rest_api.services.live import (
    DatabaseSnapshotFetcher,
    LiveViewFeedError,
    LiveViewSynchronizer,
    SnapshotFetcher,
)

logger = get_logger(__name__)

router = APIRouter(tags=["diner"])

ENDPOINT = "/ws/diner"

# Clients only ever send heartbeats
MAX_MESSAGE_SIZE = 64 * 1024


def get_change_feed() -> ChangeFeed:
    return RedisChangeFeed()


def get_snapshot_fetcher() -> SnapshotFetcher:
    return DatabaseSnapshotFetcher()


async def _send_states(websocket: WebSocket, sync: LiveViewSynchronizer) -> None:
    async for state in sync.states():
        if state.closed:
            await websocket.send_json({"type": "SESSION_CLOSED", "session": state.session})
            return
        await websocket.send_json(state.to_message())


async def _receive_heartbeats(websocket: WebSocket, session_id: int) -> None:
    while True:
        data = await websocket.receive_text()
        if len(data) > MAX_MESSAGE_SIZE:
            logger.warning("Message size exceeded limit from diner", session_id=session_id, size=len(data))
            await websocket.close(code=1009, reason="Message too large")
            return
        if data == "ping" or data == '{"type":"ping"}':
            await websocket.send_text('{"type":"pong"}')


@router.websocket(ENDPOINT)
async def diner_live_view(
    websocket: WebSocket,
    table_token: str = Query(..., description="Table token"),
    feed: ChangeFeed = Depends(get_change_feed),
    fetcher: SnapshotFetcher = Depends(get_snapshot_fetcher),
):
    """
    Live view of the session the table token belongs to.

    Leaving the endpoint, for any reason, cancels in-flight refetches and
    unsubscribes from the change feed.
    """
    try:
        table_ctx = verify_table_token(table_token)
    except HTTPException as e:
        audit_ws_connection("AUTH_FAILED", ENDPOINT, reason=str(e.detail))
        await websocket.close(code=4001, reason=str(e.detail))
        return

    session_id = table_ctx.session_id
    await websocket.accept()
    audit_ws_connection("CONNECT", ENDPOINT, session_id=session_id, table_id=table_ctx.table_id)

    sync = LiveViewSynchronizer(session_id, feed, fetcher)
    tasks: list[asyncio.Task] = []
    try:
        async with sync:
            tasks = [
                asyncio.create_task(_send_states(websocket, sync)),
                asyncio.create_task(_receive_heartbeats(websocket, session_id)),
            ]
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                error = task.exception()
                if isinstance(error, LiveViewFeedError):
                    await websocket.close(code=1011, reason="Live updates unavailable")
                    return
                if error is not None and not isinstance(error, WebSocketDisconnect):
                    raise error
            if tasks[0] in done:
                await websocket.close(code=1000)
    except WebSocketDisconnect:
        pass
    finally:
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        audit_ws_connection("DISCONNECT", ENDPOINT, session_id=session_id)
