"""
WebSocket Connection Manager

Tracks connected staff WebSockets and fans events out to them.
Each send is bounded by a timeout; a client that errors or stalls is
dropped without holding up the rest. Sends to one socket are serialized
so frames from concurrent broadcasts never interleave.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from fastapi import WebSocket

from orderdesk.realtime.base import BaseRealtimeChannel, envelope

logger = logging.getLogger(__name__)

Snapshot = Callable[[], Awaitable[tuple[str, Any]]]


class ConnectionManager(BaseRealtimeChannel):
    """Registry of live WebSocket connections."""

    def __init__(self, send_timeout: float = 5.0):
        self.send_timeout = send_timeout
        self._connections: dict[WebSocket, asyncio.Lock] = {}

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def connect(self, websocket: WebSocket, snapshot: Optional[Snapshot] = None) -> bool:
        """
        Accept and register a client.

        ``snapshot`` is loaded and sent while the client's send lock is held,
        so broadcasts issued meanwhile reach the client after it. An order
        committed just before the snapshot may still arrive again as
        ``newOrder``; clients key orders by id.
        """
        await websocket.accept()
        lock = asyncio.Lock()
        async with lock:
            self._connections[websocket] = lock
            logger.info(f"A staff client connected ({self.connection_count} online)")
            if snapshot is None:
                return True

            event, data = await snapshot()
            try:
                await asyncio.wait_for(websocket.send_json(envelope(event, data)), timeout=self.send_timeout)
                return True
            except asyncio.TimeoutError:
                logger.warning(f"Dropping staff client: '{event}' send timed out after {self.send_timeout}s")
            except Exception as e:
                logger.warning(f"Dropping staff client: '{event}' send failed: {e}")
        self.disconnect(websocket)
        return False

    def disconnect(self, websocket: WebSocket) -> None:
        if self._connections.pop(websocket, None) is not None:
            logger.info(f"A staff client disconnected ({self.connection_count} online)")

    async def send(self, websocket: WebSocket, event: str, data: Any) -> bool:
        """Send one event to one client. Returns False and drops the client on failure."""
        lock = self._connections.get(websocket)
        if lock is None:
            return False

        try:
            async with lock:
                await asyncio.wait_for(
                    websocket.send_json(envelope(event, data)),
                    timeout=self.send_timeout,
                )
            return True
        except asyncio.TimeoutError:
            logger.warning(f"Dropping staff client: '{event}' send timed out after {self.send_timeout}s")
        except Exception as e:
            logger.warning(f"Dropping staff client: '{event}' send failed: {e}")
        self.disconnect(websocket)
        return False

    async def broadcast(self, event: str, data: Any) -> int:
        targets = list(self._connections)
        if not targets:
            return 0
        results = await asyncio.gather(*(self.send(ws, event, data) for ws in targets))
        delivered = sum(results)
        logger.debug(f"Broadcast '{event}' to {delivered}/{len(targets)} client(s)")
        return delivered
