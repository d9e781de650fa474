import json

import pytest
from fastapi.testclient import TestClient

from app import app
from backend import SignalingBackend, signaling_backend


def drain(connection):
    """Pop every queued outbound frame of a connection, decoded."""
    frames = []
    while not connection.outbox.empty():
        frames.append(json.loads(connection.outbox.get_nowait()))
    return frames


@pytest.fixture
def backend():
    return SignalingBackend()


def fresh_state():
    for connection_id in signaling_backend.registry.ids():
        signaling_backend.registry.unregister(connection_id)
    signaling_backend._build()


@pytest.fixture
def client():
    fresh_state()
    # one TestClient context = one event loop shared by every websocket opened on it
    with TestClient(app) as test_client:
        yield test_client
    fresh_state()
