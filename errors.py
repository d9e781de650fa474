class SignalingError(Exception):
    """Base class for relay errors. None of them are ever sent to a client."""


class InvalidRoomName(SignalingError):
    """Join requested with an empty or whitespace-only room name."""


class UnknownTarget(SignalingError):
    """Signal addressed to a connection id with no live entry."""


class NoActiveRoom(SignalingError):
    """Chat message sent by a connection that has not joined a room."""
