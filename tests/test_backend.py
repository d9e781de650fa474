import json

from conftest import drain


def frame(**fields):
    return json.dumps(fields)


def join(backend, connection, room):
    backend.handle_frame(connection, frame(type="join-room", roomName=room))


def test_join_sends_my_id_and_announces_to_existing_members(backend):
    a, b = backend.connect(), backend.connect()
    join(backend, b, "lobby")
    join(backend, a, "lobby")

    assert drain(b) == [
        {"type": "my-id", "id": b.id},
        {"type": "user-connected", "id": a.id},
    ]
    assert drain(a) == [{"type": "my-id", "id": a.id}]
    assert backend.directory.members_of("lobby") == {a.id, b.id}


def test_blank_room_name_has_no_side_effects(backend):
    a, c = backend.connect(), backend.connect()
    join(backend, a, "lobby")
    drain(a)

    join(backend, c, "   ")

    assert drain(c) == []
    assert drain(a) == []
    assert c.room_id is None
    assert backend.directory.rooms() == {"lobby": 1}


def test_switching_rooms_announces_leave_then_join(backend):
    a, b, c = backend.connect(), backend.connect(), backend.connect()
    join(backend, a, "one")
    join(backend, b, "one")
    join(backend, c, "two")
    for connection in (a, b, c):
        drain(connection)

    join(backend, a, "two")

    assert drain(b) == [{"type": "user-disconnected", "id": a.id}]
    assert drain(c) == [{"type": "user-connected", "id": a.id}]
    assert drain(a) == [{"type": "my-id", "id": a.id}]
    assert backend.directory.rooms() == {"one": 1, "two": 2}


def test_duplicate_join_resends_id_only(backend):
    a, b = backend.connect(), backend.connect()
    join(backend, a, "lobby")
    join(backend, b, "lobby")
    drain(a), drain(b)

    join(backend, b, " lobby ")

    assert drain(b) == [{"type": "my-id", "id": b.id}]
    assert drain(a) == []
    assert backend.directory.rooms() == {"lobby": 2}


def test_signal_frame_is_routed(backend):
    a, b = backend.connect(), backend.connect()
    backend.handle_frame(a, frame(type="signal", targetId=b.id, payload={"type": "offer", "sdp": "x"}))
    assert drain(b) == [{"type": "signal", "senderId": a.id, "payload": {"type": "offer", "sdp": "x"}}]


def test_signal_sender_cannot_be_spoofed(backend):
    a, b = backend.connect(), backend.connect()
    backend.handle_frame(a, frame(type="signal", targetId=b.id, senderId="someone-else", payload=1))
    assert drain(b)[0]["senderId"] == a.id


def test_signal_to_unknown_target_is_silent(backend):
    a = backend.connect()
    backend.handle_frame(a, frame(type="signal", targetId="nobody", payload={}))
    assert drain(a) == []


def test_legacy_signal_field_is_accepted(backend):
    a, b = backend.connect(), backend.connect()
    backend.handle_frame(a, frame(type="signal", targetId=b.id, signal={"candidate": "c"}))
    assert drain(b) == [{"type": "signal", "senderId": a.id, "payload": {"candidate": "c"}}]


def test_chat_before_join_is_silent(backend):
    a = backend.connect()
    backend.handle_frame(a, frame(type="chat-message", text="hi"))
    assert drain(a) == []


def test_legacy_chat_type_is_accepted(backend):
    a, b = backend.connect(), backend.connect()
    join(backend, a, "lobby")
    join(backend, b, "lobby")
    drain(a), drain(b)

    backend.handle_frame(a, frame(type="chat message", text="hi"))

    assert drain(a) == [{"type": "chat-message", "text": "hi"}]
    assert drain(b) == [{"type": "chat-message", "text": "hi"}]


def test_malformed_frames_are_dropped(backend):
    a = backend.connect()
    for raw in ["not json", "[]", frame(type="bogus"), frame(type="join-room"), frame(type="chat-message", text=5),
                frame(type="signal", payload=1)]:
        backend.handle_frame(a, raw)
    assert drain(a) == []

    join(backend, a, "lobby")
    assert drain(a) == [{"type": "my-id", "id": a.id}]


def test_disconnect_removes_member_and_notifies_room(backend):
    a, b = backend.connect(), backend.connect()
    join(backend, a, "lobby")
    join(backend, b, "lobby")
    drain(a), drain(b)

    assert backend.disconnect(b) == "lobby"

    assert drain(a) == [{"type": "user-disconnected", "id": b.id}]
    assert backend.directory.members_of("lobby") == {a.id}
    assert backend.registry.lookup(b.id) is None


def test_disconnect_is_idempotent_and_quiet_outside_rooms(backend):
    a, b = backend.connect(), backend.connect()
    join(backend, a, "lobby")
    drain(a)

    assert backend.disconnect(b) is None
    assert backend.disconnect(b) is None
    assert drain(a) == []


def test_signal_to_disconnected_connection_is_dropped(backend):
    a, b = backend.connect(), backend.connect()
    backend.disconnect(b)
    backend.handle_frame(a, frame(type="signal", targetId=b.id, payload="late"))
    assert drain(b) == []
    assert drain(a) == []


def test_last_member_leaving_drops_room(backend):
    a = backend.connect()
    join(backend, a, "lobby")
    backend.disconnect(a)
    assert backend.directory.rooms() == {}


def test_every_existing_member_hears_each_join_exactly_once(backend):
    connections = [backend.connect() for _ in range(6)]
    for connection in connections:
        join(backend, connection, "mesh")

    for index, connection in enumerate(connections):
        announced = [f["id"] for f in drain(connection) if f["type"] == "user-connected"]
        assert announced == [c.id for c in connections[index + 1:]]

