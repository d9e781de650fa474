import asyncio
import uuid
from typing import Awaitable, Callable, Dict, List, Optional

from logging_config import get_logger
from schemas.messages import WireModel

logger = get_logger(__name__)


class Connection:
    """Per-connection context: identity, current room and the outbound channel.

    Outbound events go through an unbounded FIFO queue drained by ``pump``,
    so ``send`` never blocks the caller and per-target order is preserved.
    """

    def __init__(self, connection_id: str):
        self.id = connection_id
        self.room_id: Optional[str] = None
        self.outbox: "asyncio.Queue[str]" = asyncio.Queue()
        self.closed = False

    def send(self, event: WireModel) -> bool:
        """Queue an event for delivery. Returns False if the connection is already closed."""
        if self.closed:
            logger.debug(f"Dropping {event.type} for closed connection {self.id}")
            return False
        self.outbox.put_nowait(event.to_json())
        return True

    async def pump(self, send_text: Callable[[str], Awaitable[None]]) -> None:
        """Writer loop: deliver queued frames in order until cancelled or the transport fails."""
        while True:
            text = await self.outbox.get()
            try:
                await send_text(text)
            except Exception as e:
                logger.debug(f"Outbound delivery to {self.id} failed, closing channel: {e}")
                self.close()
                return

    def close(self) -> None:
        self.closed = True
        while not self.outbox.empty():
            self.outbox.get_nowait()

    def __repr__(self):
        return f"Connection(id={self.id!r}, room_id={self.room_id!r})"


class ConnectionRegistry:
    """Live-connection table keyed by connection id.

    Ids are random uuid4 hex strings and are never reissued, so a stale id
    can never resolve to a newer connection.
    """

    def __init__(self):
        self._connections: Dict[str, Connection] = {}

    def register(self) -> Connection:
        connection_id = uuid.uuid4().hex
        while connection_id in self._connections:
            connection_id = uuid.uuid4().hex
        connection = Connection(connection_id)
        self._connections[connection_id] = connection
        logger.debug(f"Registered connection {connection_id} (live: {len(self._connections)})")
        return connection

    def unregister(self, connection_id: str) -> Optional[str]:
        """Remove a connection and return its last room, if any. Unknown ids are a no-op."""
        connection = self._connections.pop(connection_id, None)
        if connection is None:
            return None
        connection.close()
        logger.debug(f"Unregistered connection {connection_id} (live: {len(self._connections)})")
        return connection.room_id

    def lookup(self, connection_id: str) -> Optional[Connection]:
        return self._connections.get(connection_id)

    def ids(self) -> List[str]:
        return list(self._connections)

    def __len__(self):
        return len(self._connections)

    def __contains__(self, connection_id):
        return connection_id in self._connections
