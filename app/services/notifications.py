import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Dict, Optional

from starlette.websockets import WebSocketState

logger = logging.getLogger(__name__)

CREATED = "CREATED"
UPDATED = "UPDATED"
DELETED = "DELETED"


@dataclass
class Notification:
    """Change envelope pushed to WebSocket clients. Never persisted."""
    entity: str
    type: str
    key: str
    entity_id: Any
    data: Optional[dict] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "entity": self.entity,
            "type": self.type,
            f"{self.key}Id": self.entity_id,
            self.key: self.data if self.type != DELETED else None,
            "timestamp": self.timestamp.isoformat(),
        }


def funko_notification(event_type: str, funko_id: int, data: Optional[dict] = None) -> Notification:
    return Notification("funkos", event_type, "funko", funko_id, data)


def categoria_notification(event_type: str, categoria_id, data: Optional[dict] = None) -> Notification:
    return Notification("categoria", event_type, "categoria", str(categoria_id), data)


def is_open(connection) -> bool:
    client_state = getattr(connection, "client_state", None)
    application_state = getattr(connection, "application_state", WebSocketState.CONNECTED)
    return client_state == WebSocketState.CONNECTED and application_state == WebSocketState.CONNECTED


class ConnectionRegistry:
    """
    Registry of open WebSocket connections for one channel.

    Built once when the application starts and closed when it stops.
    Register, unregister and broadcast may be called concurrently; the
    connection map is guarded by a lock while sends happen outside it.
    """

    def __init__(self, name: str):
        self.name = name
        self._connections: Dict[str, Any] = {}
        self._lock = Lock()

    def register(self, connection) -> str:
        connection_id = uuid.uuid4().hex
        with self._lock:
            self._connections[connection_id] = connection
        logger.info(f"[{self.name}] connection {connection_id} registered ({len(self)} open)")
        return connection_id

    def unregister(self, connection_id: str) -> bool:
        with self._lock:
            removed = self._connections.pop(connection_id, None) is not None
        if removed:
            logger.info(f"[{self.name}] connection {connection_id} removed")
        return removed

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)

    def __contains__(self, connection_id: str) -> bool:
        with self._lock:
            return connection_id in self._connections

    async def broadcast(self, notification) -> int:
        """
        Send a notification to every open connection.

        Connections that are no longer open, or whose send fails, are
        dropped from the registry. Returns the number of successful sends.
        """
        with self._lock:
            snapshot = list(self._connections.items())
        if not snapshot:
            return 0

        payload = notification.to_dict() if isinstance(notification, Notification) else notification
        message = json.dumps(payload, default=str)

        sent = 0
        stale = []
        for connection_id, connection in snapshot:
            if not is_open(connection):
                stale.append(connection_id)
                continue
            try:
                await connection.send_text(message)
                sent += 1
            except Exception as e:
                logger.warning(f"[{self.name}] send to {connection_id} failed: {str(e)}")
                stale.append(connection_id)

        for connection_id in stale:
            self.unregister(connection_id)

        logger.debug(f"[{self.name}] broadcast delivered to {sent} of {len(snapshot)} connections")
        return sent

    async def close_all(self) -> None:
        with self._lock:
            connections = list(self._connections.values())
            self._connections.clear()
        for connection in connections:
            if is_open(connection):
                try:
                    await connection.close(code=1001)
                except Exception as e:
                    logger.warning(f"[{self.name}] error closing connection: {str(e)}")
