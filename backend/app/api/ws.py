"""WebSocket change feed for the dashboard.

Connect to ``/ws?user_id=...``. The server first sends a ``snapshot`` event
with the user's tasks, agents, last 50 logs and usage rows, then a
``db_change`` event for every mutation of those rows. Send ``ping`` to get a
``pong``.
"""

import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from backend.app.db import async_session
from backend.app.models.user import User
from backend.app.services.broadcaster import snapshot_event
from backend.app.services.dashboard import load_snapshot
from backend.app.services.ws_manager import ws_manager

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def dashboard_feed(websocket: WebSocket, user_id: str = Query(...)) -> None:
    async with async_session() as db:
        user = await db.get(User, user_id)
    if user is None:
        await websocket.close(code=4401, reason="Unknown user")
        return

    # Subscribe before reading the snapshot so no change falls in between;
    # changes queue up until the snapshot is out
    await ws_manager.connect(websocket, user_id, hold=True)
    try:
        async with async_session() as db:
            snapshot = await load_snapshot(db, user_id)
        await ws_manager.send_first(websocket, snapshot_event(**snapshot))
        while True:
            data = await websocket.receive_text()
            if data == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        pass
    finally:
        await ws_manager.disconnect(websocket, user_id)
