from typing import Optional

from pydantic import ValidationError

from directory import RoomDirectory
from errors import SignalingError
from logging_config import get_logger
from registry import Connection, ConnectionRegistry
from relay import ChatRelay, RoomEventBroadcaster, SignalRouter
from schemas.messages import ChatFrame, JoinRoomFrame, MyIdEvent, SignalFrame, parse_inbound

logger = get_logger(__name__)


class SignalingBackend:
    """In-memory state and message handling for the relay.

    One instance per process. Each connection's frames are handled in receipt
    order by its own WebSocket task; everything shared lives in the registry
    and the directory. None of the handlers await: delivery only enqueues.
    """

    def __init__(self):
        self._build()
        logger.info("Initialized in-memory SignalingBackend")

    def _build(self):
        self.registry = ConnectionRegistry()
        self.directory = RoomDirectory(self.registry)
        self.router = SignalRouter(self.registry)
        self.broadcaster = RoomEventBroadcaster(self.registry, self.directory)
        self.chat = ChatRelay(self.registry, self.directory)

    def connect(self) -> Connection:
        connection = self.registry.register()
        logger.info(f"Connection {connection.id} opened (live connections: {len(self.registry)})")
        return connection

    def disconnect(self, connection: Connection) -> Optional[str]:
        """Tear down a connection and notify whoever is left in its room. Safe to call twice."""
        last_room = self.registry.unregister(connection.id)
        with self.directory.lock:
            left_room = self.directory.leave(connection.id)
            if left_room:
                self.broadcaster.announce_leave(connection.id, left_room)
        logger.info(f"Connection {connection.id} closed (room: {last_room}, live connections: {len(self.registry)})")
        return left_room

    def handle_frame(self, connection: Connection, raw: str) -> None:
        """Dispatch one client frame. Bad frames and relay errors are logged and dropped."""
        try:
            frame = parse_inbound(raw)
        except ValidationError as e:
            logger.warning(f"Dropping malformed frame from {connection.id}: {e.error_count()} validation error(s)")
            logger.debug(f"Malformed frame from {connection.id}: {raw[:200]!r}")
            return

        try:
            if isinstance(frame, JoinRoomFrame):
                self.join_room(connection, frame.room_name)
            elif isinstance(frame, SignalFrame):
                self.router.route(connection, frame.target_id, frame.payload)
            elif isinstance(frame, ChatFrame):
                self.chat.broadcast_chat(connection, frame.text)
        except SignalingError as e:
            logger.debug(f"Ignoring {frame.type} from {connection.id}: {type(e).__name__}: {e}")

    def join_room(self, connection: Connection, room_name: str) -> int:
        """Move ``connection`` into ``room_name`` and announce it.

        The old room hears user-disconnected, the joiner gets my-id, the new
        room hears user-connected. Re-joining the current room only re-sends
        my-id.
        """
        with self.directory.lock:
            previous_room = connection.room_id
            member_count = self.directory.join(connection.id, room_name)
            current_room = connection.room_id

            if previous_room and previous_room != current_room:
                self.broadcaster.announce_leave(connection.id, previous_room)

            connection.send(MyIdEvent(id=connection.id))

            if previous_room != current_room:
                self.broadcaster.announce_join(connection.id, current_room)
        return member_count


signaling_backend = SignalingBackend()
