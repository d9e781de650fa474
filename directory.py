"""Room membership: room name -> set of connection ids.

Rooms exist only while they have members. A connection is in at most one
room; joining another room moves it. Every read and write takes ``lock``,
which is re-entrant so callers can hold it across a mutation and the
broadcast that follows it. Nothing here awaits, so the lock is never held
across a suspension point.
"""
import threading
from typing import Dict, Optional, Set

from errors import InvalidRoomName
from logging_config import get_logger
from registry import ConnectionRegistry

logger = get_logger(__name__)


def normalize_room_name(room_name) -> str:
    if not isinstance(room_name, str):
        raise InvalidRoomName(f"Room name must be a string, got {type(room_name).__name__}")
    name = room_name.strip()
    if not name:
        raise InvalidRoomName("Room name is empty")
    return name


class RoomDirectory:
    def __init__(self, registry: ConnectionRegistry):
        self._registry = registry
        self._rooms: Dict[str, Set[str]] = {}
        self._membership: Dict[str, str] = {}
        self.lock = threading.RLock()

    def join(self, connection_id: str, room_name: str) -> int:
        """Add a connection to a room and return the room's member count.

        Raises InvalidRoomName for empty/whitespace names. Joining the room the
        connection is already in changes nothing.
        """
        name = normalize_room_name(room_name)
        with self.lock:
            current = self._membership.get(connection_id)
            if current == name:
                logger.debug(f"Connection {connection_id} already in room '{name}'")
                return len(self._rooms[name])
            if current is not None:
                self._discard(connection_id, current)

            members = self._rooms.setdefault(name, set())
            if not members:
                logger.info(f"Room '{name}' created")
            members.add(connection_id)
            self._membership[connection_id] = name

            connection = self._registry.lookup(connection_id)
            if connection is not None:
                connection.room_id = name
            count = len(members)

        logger.info(f"Connection {connection_id} joined room '{name}'. Room has {count} members")
        return count

    def leave(self, connection_id: str) -> Optional[str]:
        """Remove a connection from its room. Returns the room it left, or None if it was in none."""
        with self.lock:
            name = self._membership.get(connection_id)
            if name is None:
                return None
            self._discard(connection_id, name)
            connection = self._registry.lookup(connection_id)
            if connection is not None:
                connection.room_id = None
        logger.info(f"Connection {connection_id} left room '{name}'")
        return name

    def members_of(self, room_name: str) -> Set[str]:
        with self.lock:
            return set(self._rooms.get(room_name.strip(), ()))

    def rooms(self) -> Dict[str, int]:
        with self.lock:
            return {name: len(members) for name, members in self._rooms.items()}

    def room_of(self, connection_id: str) -> Optional[str]:
        with self.lock:
            return self._membership.get(connection_id)

    def _discard(self, connection_id: str, name: str) -> None:
        # caller holds the lock
        del self._membership[connection_id]
        members = self._rooms.get(name)
        if members is None:
            return
        members.discard(connection_id)
        if not members:
            del self._rooms[name]
            logger.info(f"Room '{name}' deleted (empty)")
