import asyncio
import logging
import os
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .models import ConnectedUser, LiveClass

logger = logging.getLogger(__name__)

WS_QUEUE_SIZE = int(os.getenv("WS_QUEUE_SIZE", "200"))

SNAPSHOT_EVENT = "liveClassesUpdate"


@dataclass(eq=False)
class ClientConnection:
    queue: asyncio.Queue
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    user: Optional[ConnectedUser] = None


def snapshot_payload(classes: Iterable[LiveClass]) -> List[Dict[str, Any]]:
    return [c.to_wire() for c in classes]


class LiveClassBroadcaster:
    """Fans events out to per-connection queues for WebSocket consumers.

    Every method runs synchronously on the event loop, so messages land in
    each queue in the order the mutations happened. A full queue drops its
    oldest message; a snapshot always supersedes the previous one.
    """

    def __init__(self, queue_size: int = WS_QUEUE_SIZE) -> None:
        self._queue_size = queue_size
        self._connections: Dict[str, ClientConnection] = {}

    def register(self) -> ClientConnection:
        connection = ClientConnection(queue=asyncio.Queue(maxsize=self._queue_size))
        self._connections[connection.id] = connection
        logger.info("Client %s connected (%d open)", connection.id, len(self._connections))
        return connection

    def unregister(self, connection: ClientConnection) -> None:
        if self._connections.pop(connection.id, None) is not None:
            logger.info("Client %s disconnected (%d open)", connection.id, len(self._connections))

    def identify(self, connection: ClientConnection, user: ConnectedUser) -> None:
        connection.user = user

    def connections(self) -> List[ClientConnection]:
        return list(self._connections.values())

    def connected_users(self) -> List[ConnectedUser]:
        return [c.user for c in self._connections.values() if c.user is not None]

    def send(self, connection: ClientConnection, event_type: str, payload: Any) -> None:
        self._deliver(connection, self._message(event_type, payload))

    def broadcast(self, event_type: str, payload: Any) -> None:
        message = self._message(event_type, payload)
        for connection in list(self._connections.values()):
            self._deliver(connection, message)

    def broadcast_snapshot(self, classes: Iterable[LiveClass]) -> None:
        self.broadcast(SNAPSHOT_EVENT, snapshot_payload(classes))

    def _message(self, event_type: str, payload: Any) -> Dict[str, Any]:
        return {"event": event_type, "payload": payload, "ts": time.time()}

    def _deliver(self, connection: ClientConnection, message: Dict[str, Any]) -> None:
        queue = connection.queue
        try:
            queue.put_nowait(message)
        except asyncio.QueueFull:
            # drop oldest to make room
            try:
                queue.get_nowait()
            except asyncio.QueueEmpty:
                pass
            try:
                queue.put_nowait(message)
            except asyncio.QueueFull:
                logger.warning("Client %s queue still full; dropping %s", connection.id, message["event"])
