"""WebSocket connection registry.

Each connection is subscribed to exactly one user's change feed. Events are
only delivered to sockets of the owning user; events without an owner go to
everyone.

A socket connected with ``hold=True`` queues its events until ``send_first``
has delivered the initial snapshot, so nothing older can arrive after it.
"""

import asyncio
import logging
from collections import defaultdict
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class WebSocketManager:
    def __init__(self) -> None:
        self._connections: dict[str, set[WebSocket]] = defaultdict(set)
        self._held: dict[WebSocket, list[dict[str, Any]]] = {}
        self._lock = asyncio.Lock()

    @property
    def active_count(self) -> int:
        return sum(len(sockets) for sockets in self._connections.values())

    async def connect(self, websocket: WebSocket, user_id: str, *, hold: bool = False) -> None:
        await websocket.accept()
        async with self._lock:
            self._connections[user_id].add(websocket)
            if hold:
                self._held[websocket] = []
        logger.info("[WS] Client connected for user %s (%d active)", user_id, self.active_count)

    async def send_first(self, websocket: WebSocket, event: dict[str, Any]) -> None:
        """Send ``event`` to a held socket, then flush what was queued behind it."""
        await websocket.send_json(event)
        while True:
            async with self._lock:
                queued = self._held.get(websocket)
                if not queued:
                    self._held.pop(websocket, None)
                    return
                self._held[websocket] = []
            for queued_event in queued:
                await websocket.send_json(queued_event)

    async def disconnect(self, websocket: WebSocket, user_id: str) -> None:
        async with self._lock:
            self._held.pop(websocket, None)
            sockets = self._connections.get(user_id)
            if sockets is not None:
                sockets.discard(websocket)
                if not sockets:
                    del self._connections[user_id]
        logger.info("[WS] Client disconnected for user %s", user_id)

    async def broadcast(self, event: dict[str, Any], user_id: str | None = None) -> None:
        """Send ``event`` to the user's sockets, or to all sockets if ``user_id`` is None."""
        async with self._lock:
            if user_id is None:
                targets = [(uid, ws) for uid, sockets in self._connections.items() for ws in sockets]
            else:
                targets = [(user_id, ws) for ws in self._connections.get(user_id, ())]
            for _, ws in targets:
                if ws in self._held:
                    self._held[ws].append(event)
            targets = [(uid, ws) for uid, ws in targets if ws not in self._held]

        dead: list[tuple[str, WebSocket]] = []
        for uid, ws in targets:
            try:
                await ws.send_json(event)
            except Exception:
                logger.debug("[WS] Dropping dead socket for user %s", uid)
                dead.append((uid, ws))

        for uid, ws in dead:
            await self.disconnect(ws, uid)

    async def close_all(self) -> None:
        async with self._lock:
            sockets = [ws for group in self._connections.values() for ws in group]
            self._connections.clear()
            self._held.clear()
        for ws in sockets:
            try:
                await ws.close()
            except Exception:
                logger.debug("[WS] Socket already closed during shutdown")


ws_manager = WebSocketManager()
