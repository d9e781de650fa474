"""Headless signaling client.

Speaks the relay's JSON protocol over a websocket and drives one peer link
per remote member through a PeerLinkCapability, which produces and consumes
the opaque negotiation payloads. The relay never sees what is inside them.

Usage:
    async with SignalingClient("ws://localhost:3000/ws", capability) as client:
        my_id = await client.join("lobby")
        await client.chat("hello")
        text = await client.receive_chat()
"""
import asyncio
from abc import ABC, abstractmethod
from typing import Any, Optional

import websockets
from pydantic import ValidationError

from logging_config import get_logger
from peer_links import LinkState, PeerLinkTable
from schemas.messages import (
    ChatEvent,
    ChatFrame,
    JoinRoomFrame,
    MyIdEvent,
    SignalEvent,
    SignalFrame,
    UserConnectedEvent,
    UserDisconnectedEvent,
    parse_outbound,
)

logger = get_logger(__name__)


class PeerLinkCapability(ABC):
    """Produces the negotiation payloads for direct peer links (offer, answer, candidates)."""

    @abstractmethod
    async def create_offer(self, peer_id: str) -> Any:
        """Start negotiating with ``peer_id`` and return the first payload to send."""

    @abstractmethod
    async def handle_signal(self, peer_id: str, payload: Any) -> Optional[Any]:
        """Consume a payload from ``peer_id``; return the reply to send back, if any."""

    async def close(self, peer_id: str) -> None:
        pass


class SignalingClient:
    def __init__(self, url: str, capability: Optional[PeerLinkCapability] = None):
        self.url = url
        self.capability = capability
        self.websocket = None
        self.my_id: Optional[str] = None
        self.room: Optional[str] = None
        self.links = PeerLinkTable()
        self._chat_queue: asyncio.Queue = asyncio.Queue()
        self._joined = asyncio.Event()
        self._reader: Optional[asyncio.Task] = None

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def connect(self) -> None:
        self.websocket = await websockets.connect(self.url)
        self._reader = asyncio.create_task(self._read_loop())
        logger.info(f"Connected to {self.url}")

    async def close(self) -> None:
        if self.websocket is not None:
            await self.websocket.close()
        if self._reader is not None:
            self._reader.cancel()
            try:
                await self._reader
            except asyncio.CancelledError:
                pass
            self._reader = None
        await self._teardown_links()

    async def join(self, room_name: str, timeout: float = 10.0) -> str:
        """Join a room and wait for the server to report our id."""
        self._joined.clear()
        await self._send(JoinRoomFrame(type="join-room", room_name=room_name))
        await asyncio.wait_for(self._joined.wait(), timeout=timeout)
        self.room = room_name.strip()
        return self.my_id

    async def signal(self, target_id: str, payload: Any) -> None:
        await self._send(SignalFrame(type="signal", target_id=target_id, payload=payload))

    async def chat(self, text: str) -> None:
        await self._send(ChatFrame(type="chat-message", text=text))

    async def receive_chat(self, timeout: Optional[float] = None) -> str:
        return await asyncio.wait_for(self._chat_queue.get(), timeout=timeout)

    def link_established(self, peer_id: str) -> bool:
        """Called by the capability once the direct link with ``peer_id`` is up."""
        return self.links.establish(peer_id)

    async def dispatch(self, raw: str) -> None:
        try:
            event = parse_outbound(raw)
        except ValidationError as e:
            logger.warning(f"Ignoring malformed server frame: {e.error_count()} validation error(s)")
            return

        if isinstance(event, MyIdEvent):
            self.my_id = event.id
            self._joined.set()
        elif isinstance(event, UserConnectedEvent):
            # existing members start the negotiation with a newcomer
            if self.links.open(event.id) and self.capability is not None:
                offer = await self.capability.create_offer(event.id)
                await self.signal(event.id, offer)
        elif isinstance(event, SignalEvent):
            await self._on_signal(event.sender_id, event.payload)
        elif isinstance(event, UserDisconnectedEvent):
            if self.links.close(event.id) and self.capability is not None:
                await self.capability.close(event.id)
        elif isinstance(event, ChatEvent):
            await self._chat_queue.put(event.text)

    async def _on_signal(self, sender_id: str, payload: Any) -> None:
        if self.links.state(sender_id) in (LinkState.ABSENT, LinkState.CLOSED):
            self.links.open(sender_id)
        if self.capability is None:
            return
        reply = await self.capability.handle_signal(sender_id, payload)
        if reply is not None:
            await self.signal(sender_id, reply)

    async def _send(self, frame) -> None:
        if self.websocket is None:
            raise RuntimeError("Client is not connected")
        await self.websocket.send(frame.to_json())

    async def _read_loop(self) -> None:
        try:
            async for raw in self.websocket:
                await self.dispatch(raw)
        except websockets.ConnectionClosed as e:
            logger.info(f"Connection to {self.url} closed: {e}")
        finally:
            await self._teardown_links()

    async def _teardown_links(self) -> None:
        for peer_id in self.links.close_all():
            if self.capability is not None:
                await self.capability.close(peer_id)
