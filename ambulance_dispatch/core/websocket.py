"""
WebSocket connection manager

Dispatcher sessions connect here and receive lifecycle events:
- connection bookkeeping (connect/disconnect/heartbeat)
- optional per-incident filtering
- fan-out through a per-client outbox drained by a sender task, so a
  publisher never waits on a socket; clients that fail, time out or fall too
  far behind are dropped
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from fastapi import WebSocket
from pydantic import BaseModel

logger = logging.getLogger(__name__)


@dataclass
class WSConnection:
    websocket: WebSocket
    client_id: str
    # empty means every incident
    incident_ids: set = field(default_factory=set)
    last_heartbeat: datetime = field(default_factory=datetime.utcnow)
    outbox: Optional[asyncio.Queue] = None
    sender: Optional[asyncio.Task] = None

    def wants(self, incident_id: Optional[str]) -> bool:
        return not self.incident_ids or incident_id is None or incident_id in self.incident_ids


class ConnectionManager:
    """WebSocket connection manager, usable as the lifecycle event bus"""

    # Undelivered events a client may have queued before it is dropped
    OUTBOX_SIZE = 256

    def __init__(self, send_timeout_s: float = 2.0, outbox_size: int = OUTBOX_SIZE):
        # client_id -> WSConnection
        self.connections: dict[str, WSConnection] = {}
        self._send_timeout_s = send_timeout_s
        self._outbox_size = outbox_size

    async def connect(self, websocket: WebSocket, client_id: str) -> WSConnection:
        await websocket.accept()

        previous = self.connections.get(client_id)
        if previous:
            logger.info(f"Client {client_id} reconnected, replacing previous connection")

        conn = WSConnection(websocket=websocket, client_id=client_id)
        self.connections[client_id] = conn
        logger.info(f"WebSocket connected: {client_id}, total={len(self.connections)}")

        await self._send(websocket, {
            "type": "connected",
            "client_id": client_id,
        })

        conn.outbox = asyncio.Queue(maxsize=self._outbox_size)
        conn.sender = asyncio.create_task(self._drain(conn), name=f"ws-sender-{client_id}")
        if previous:
            self._stop_sender(previous)
        return conn

    def disconnect(self, client_id: str, websocket: Optional[WebSocket] = None):
        """
        Forget a client

        When `websocket` is given only that exact connection is removed, so a
        stale socket cannot drop a client that has since reconnected.
        """
        conn = self.connections.get(client_id)
        if conn is None:
            return
        if websocket is not None and conn.websocket is not websocket:
            return
        del self.connections[client_id]
        self._stop_sender(conn)
        logger.info(f"WebSocket disconnected: {client_id}, total={len(self.connections)}")

    def subscribe(self, client_id: str, incident_ids: list[str]) -> list[str]:
        conn = self.connections.get(client_id)
        if not conn:
            return []
        conn.incident_ids.update(str(i) for i in incident_ids)
        logger.info(f"Client {client_id} watching incidents: {sorted(conn.incident_ids)}")
        return sorted(conn.incident_ids)

    def unsubscribe(self, client_id: str, incident_ids: list[str]) -> list[str]:
        conn = self.connections.get(client_id)
        if not conn:
            return []
        conn.incident_ids.difference_update(str(i) for i in incident_ids)
        return sorted(conn.incident_ids)

    async def heartbeat(self, client_id: str):
        conn = self.connections.get(client_id)
        if conn:
            conn.last_heartbeat = datetime.utcnow()
            await self._send(conn.websocket, {"type": "pong"})

    async def publish(self, event: BaseModel) -> None:
        """
        Queue an event for every interested client

        Returns without awaiting any socket. Each client receives its events in
        publish order; a client whose outbox is full is disconnected.
        """
        if not self.connections:
            return

        payload = event.model_dump(mode="json")
        incident_id = payload.get("incident_id")
        for conn in list(self.connections.values()):
            if not conn.wants(incident_id) or conn.outbox is None:
                continue
            try:
                conn.outbox.put_nowait(payload)
            except asyncio.QueueFull:
                logger.warning(f"Client {conn.client_id} is {conn.outbox.qsize()} events behind, dropping client")
                self.disconnect(conn.client_id, conn.websocket)

    async def close(self):
        """Stop every sender task and forget all clients"""
        senders = [c.sender for c in self.connections.values() if c.sender]
        self.connections.clear()
        for task in senders:
            task.cancel()
        for task in senders:
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _drain(self, conn: WSConnection):
        while True:
            data = await conn.outbox.get()
            try:
                await asyncio.wait_for(self._send(conn.websocket, data), timeout=self._send_timeout_s)
            except Exception as e:
                logger.warning(f"Failed to send to {conn.client_id}, dropping client: {e!r}")
                self.disconnect(conn.client_id, conn.websocket)
                return

    def _stop_sender(self, conn: WSConnection):
        if conn.sender and conn.sender is not asyncio.current_task():
            conn.sender.cancel()

    async def _send(self, websocket: WebSocket, data: dict[str, Any]):
        await websocket.send_json(data)
