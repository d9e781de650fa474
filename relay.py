"""Forwarding paths: pairwise signals, room join/leave events and room chat.

All delivery is fire-and-forget into each target's outbound queue. Nothing
here waits on a client, retries, or reports failures back to the sender.
"""
from typing import Any, Iterable

from directory import RoomDirectory
from errors import NoActiveRoom, UnknownTarget
from logging_config import get_logger
from registry import Connection, ConnectionRegistry
from schemas.messages import ChatEvent, SignalEvent, UserConnectedEvent, UserDisconnectedEvent, WireModel

logger = get_logger(__name__)


def fan_out(registry: ConnectionRegistry, connection_ids: Iterable[str], event: WireModel) -> int:
    """Queue ``event`` for every live connection in ``connection_ids``. Returns how many were queued."""
    delivered = 0
    for connection_id in connection_ids:
        connection = registry.lookup(connection_id)
        if connection is not None and connection.send(event):
            delivered += 1
    return delivered


class SignalRouter:
    def __init__(self, registry: ConnectionRegistry):
        self._registry = registry

    def route(self, sender: Connection, target_id: str, payload: Any) -> None:
        """Forward an opaque payload to one connection. The payload is never inspected.

        Raises UnknownTarget if ``target_id`` is not a live connection.
        """
        target = self._registry.lookup(target_id)
        if target is None:
            raise UnknownTarget(target_id)
        target.send(SignalEvent(sender_id=sender.id, payload=payload))
        logger.debug(f"Routed signal {sender.id} -> {target_id}")


class RoomEventBroadcaster:
    """Tells room members about joins and leaves.

    Callers must only announce after the directory change has completed, and
    should hold the directory lock across both so no other join or leave can
    slip in between.
    """

    def __init__(self, registry: ConnectionRegistry, directory: RoomDirectory):
        self._registry = registry
        self._directory = directory

    def announce_join(self, connection_id: str, room_name: str) -> int:
        members = self._directory.members_of(room_name)
        members.discard(connection_id)
        delivered = fan_out(self._registry, members, UserConnectedEvent(id=connection_id))
        logger.debug(f"Announced join of {connection_id} to {delivered} members of '{room_name}'")
        return delivered

    def announce_leave(self, connection_id: str, room_name: str) -> int:
        members = self._directory.members_of(room_name)
        members.discard(connection_id)
        delivered = fan_out(self._registry, members, UserDisconnectedEvent(id=connection_id))
        logger.debug(f"Announced leave of {connection_id} to {delivered} members of '{room_name}'")
        return delivered


class ChatRelay:
    def __init__(self, registry: ConnectionRegistry, directory: RoomDirectory):
        self._registry = registry
        self._directory = directory

    def broadcast_chat(self, sender: Connection, text: str) -> int:
        """Send ``text`` to every member of the sender's room, the sender included.

        Raises NoActiveRoom if the sender has not joined a room.
        """
        with self._directory.lock:
            room = sender.room_id
            if not room:
                raise NoActiveRoom(sender.id)
            delivered = fan_out(self._registry, self._directory.members_of(room), ChatEvent(text=text))
        logger.debug(f"Chat from {sender.id} delivered to {delivered} members of '{room}'")
        return delivered
