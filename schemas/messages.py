from typing import Annotated, Any, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


# Client -> server

class JoinRoomFrame(WireModel):
    type: Literal["join-room"]
    room_name: str = Field(alias="roomName")

class SignalFrame(WireModel):
    type: Literal["signal"]
    target_id: str = Field(alias="targetId")
    # "signal" is the field name older clients send the payload under
    payload: Any = Field(validation_alias=AliasChoices("payload", "signal"))

class ChatFrame(WireModel):
    type: Literal["chat-message", "chat message"]
    text: str


InboundFrame = Annotated[Union[JoinRoomFrame, SignalFrame, ChatFrame], Field(discriminator="type")]
inbound_adapter = TypeAdapter(InboundFrame)


def parse_inbound(raw: str):
    """Parse one client frame. Raises pydantic.ValidationError on anything malformed, bad JSON included."""
    return inbound_adapter.validate_json(raw)


# Server -> client

class MyIdEvent(WireModel):
    type: Literal["my-id"] = "my-id"
    id: str

class UserConnectedEvent(WireModel):
    type: Literal["user-connected"] = "user-connected"
    id: str

class UserDisconnectedEvent(WireModel):
    type: Literal["user-disconnected"] = "user-disconnected"
    id: str

class SignalEvent(WireModel):
    type: Literal["signal"] = "signal"
    sender_id: str = Field(alias="senderId")
    payload: Any = None

class ChatEvent(WireModel):
    type: Literal["chat-message"] = "chat-message"
    text: str


OutboundEvent = Annotated[
    Union[MyIdEvent, UserConnectedEvent, UserDisconnectedEvent, SignalEvent, ChatEvent],
    Field(discriminator="type"),
]
outbound_adapter = TypeAdapter(OutboundEvent)


def parse_outbound(raw: str):
    return outbound_adapter.validate_json(raw)
