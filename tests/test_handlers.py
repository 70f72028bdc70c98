import logging

from relay.constants import ERROR_ROOM_NOT_FOUND
from relay.handlers import decode_message, disconnect, handle_ws_message

from conftest import BrokenTransport


def create_room(state, new_client):
    host, host_t = new_client()
    handle_ws_message(state, host.id, {"type": "create_room"})
    created = host_t.last("room_created")
    return state.rooms.get(created["code"]), host, host_t


def join(state, new_client, code):
    guest, guest_t = new_client()
    handle_ws_message(state, guest.id, {"type": "join_room", "code": code})
    return guest, guest_t


def test_hello_is_sent_on_connect(new_client):
    connection, transport = new_client()
    assert transport.sent == [{"type": "hello", "id": connection.id}]


def test_create_room_replies_with_snapshot(state, new_client):
    room, host, host_t = create_room(state, new_client)
    created = host_t.last("room_created")
    assert len(created["code"]) == 6
    assert created["seed"] == room.seed
    assert created["id"] == host.id
    assert created["hostId"] == host.id
    assert created["isHost"] is True
    assert created["config"] == {"difficulty": 0, "noahEnabled": False}
    assert created["startSeq"] == 0
    assert created["collectTaken"] == []
    assert created["collectCount"] == 0
    assert created["collectSeed"] == room.seed
    assert host_t.last("room_players") == {"type": "room_players", "players": [host.id], "hostId": host.id}


def test_join_room_scenario(state, new_client):
    room, host, host_t = create_room(state, new_client)
    guest, guest_t = join(state, new_client, room.code.lower())

    joined = guest_t.last("joined")
    assert joined["code"] == room.code
    assert joined["seed"] == room.seed
    assert joined["id"] == guest.id
    assert joined["hostId"] == host.id
    assert joined["players"] == [host.id, guest.id]
    assert joined["bots"] is None

    expected_players = {"type": "room_players", "players": [host.id, guest.id], "hostId": host.id}
    assert host_t.last("room_players") == expected_players
    assert guest_t.last("room_players") == expected_players
    assert host_t.last("player_joined") == {"type": "player_joined", "id": guest.id}
    assert guest_t.of_type("player_joined") == []
    assert guest_t.types()[-1] == "room_config"


def test_join_sends_bots_snapshot_when_present(state, new_client):
    room, host, _ = create_room(state, new_client)
    handle_ws_message(state, host.id, {"type": "bots_state", "bots": [{"x": 1}]})
    _, guest_t = join(state, new_client, room.code)
    assert guest_t.last("joined")["bots"] == [{"x": 1}]
    assert guest_t.last("bots_state") == {"type": "bots_state", "bots": [{"x": 1}], "hostId": host.id}


def test_join_unknown_room_errors_to_sender_only(state, new_client):
    room, host, host_t = create_room(state, new_client)
    host_t.clear()
    guest, guest_t = join(state, new_client, "ZZZZZZ")
    assert guest_t.last("error") == {"type": "error", "error": ERROR_ROOM_NOT_FOUND}
    assert guest.room_code is None
    assert host_t.sent == []


def test_create_or_join_while_in_room_is_dropped(state, new_client):
    room, host, host_t = create_room(state, new_client)
    other, _, _ = create_room(state, new_client)
    host_t.clear()
    handle_ws_message(state, host.id, {"type": "create_room"})
    handle_ws_message(state, host.id, {"type": "join_room", "code": other.code})
    assert host_t.sent == []
    assert len(state.rooms) == 2
    assert host.room_code == room.code


def test_config_from_host_is_clamped_and_broadcast(state, new_client):
    room, host, host_t = create_room(state, new_client)
    guest, guest_t = join(state, new_client, room.code)
    host_t.clear()
    handle_ws_message(state, host.id, {"type": "room_config", "config": {"difficulty": 5}})
    assert room.config.difficulty == 2
    assert guest_t.last("room_config") == {
        "type": "room_config",
        "config": {"difficulty": 2, "noahEnabled": False},
        "hostId": host.id,
    }
    assert host_t.sent == []


def test_host_only_messages_from_guest_are_silent(state, new_client):
    room, host, host_t = create_room(state, new_client)
    guest, guest_t = join(state, new_client, room.code)
    host_t.clear()
    guest_t.clear()
    handle_ws_message(state, guest.id, {"type": "room_config", "config": {"difficulty": 2}})
    handle_ws_message(state, guest.id, {"type": "bots_state", "bots": {"a": 1}})
    handle_ws_message(state, guest.id, {"type": "start_game"})
    assert host_t.sent == []
    assert guest_t.sent == []
    assert room.config.difficulty == 0
    assert room.bots is None
    assert room.start_seq == 0


def test_start_game_broadcasts_sequence_to_everyone(state, new_client):
    room, host, host_t = create_room(state, new_client)
    guest, guest_t = join(state, new_client, room.code)
    handle_ws_message(state, host.id, {"type": "start_game"})
    handle_ws_message(state, host.id, {"type": "start_game"})
    for transport in (host_t, guest_t):
        starts = transport.of_type("start_game")
        assert [s["seq"] for s in starts] == [1, 2]
        assert all(s["hostId"] == host.id for s in starts)
        assert all(isinstance(s["serverTime"], int) for s in starts)
    late, late_t = join(state, new_client, room.code)
    assert late_t.last("joined")["startSeq"] == 2


def test_state_is_stored_and_relayed_to_others(state, new_client):
    room, host, host_t = create_room(state, new_client)
    guest, guest_t = join(state, new_client, room.code)
    host_t.clear()
    handle_ws_message(state, guest.id, {"type": "state", "state": {"x": 1, "y": 2}})
    assert room.player_states[guest.id] == {"x": 1, "y": 2}
    assert host_t.sent == [{"type": "state", "id": guest.id, "state": {"x": 1, "y": 2}}]
    assert guest_t.of_type("state") == []


def test_room_messages_without_room_are_dropped(state, new_client):
    loner, loner_t = new_client()
    loner_t.clear()
    for msg_type in ("state", "room_config", "start_game", "bots_state", "collect_item",
                     "reset_collectibles", "leave_room"):
        handle_ws_message(state, loner.id, {"type": msg_type, "id": "x"})
    assert loner_t.sent == []


def test_unknown_and_malformed_messages_are_dropped(state, new_client):
    room, host, host_t = create_room(state, new_client)
    host_t.clear()
    handle_ws_message(state, host.id, {"type": "teleport"})
    handle_ws_message(state, host.id, ["not", "a", "dict"])
    handle_ws_message(state, "NO-SUCH-CONNECTION", {"type": "ping"})
    assert host_t.sent == []
    assert decode_message("{not json") is None
    assert decode_message('"text"') is None
    assert decode_message('{"no_type": 1}') is None
    assert decode_message(b'{"type": "ping"}') == {"type": "ping"}


def test_ping_replies_with_pong(state, new_client):
    conn, transport = new_client()
    handle_ws_message(state, conn.id, {"type": "ping"})
    pong = transport.last("pong")
    assert isinstance(pong["t"], int)


def test_collect_item_idempotent_and_broadcast_to_all(state, new_client):
    room, host, host_t = create_room(state, new_client)
    guest, guest_t = join(state, new_client, room.code)
    handle_ws_message(state, guest.id, {"type": "collect_item", "id": 7})
    handle_ws_message(state, host.id, {"type": "collect_item", "id": "7"})
    for transport in (host_t, guest_t):
        assert transport.of_type("collect_taken") == [
            {"type": "collect_taken", "id": "7", "count": 1},
            {"type": "collect_taken", "id": "7", "count": 1},
        ]
    late, late_t = join(state, new_client, room.code)
    joined = late_t.last("joined")
    assert joined["collectTaken"] == ["7"]
    assert joined["collectCount"] == 1


def test_reset_collectibles_by_any_member(state, new_client):
    room, host, host_t = create_room(state, new_client)
    guest, guest_t = join(state, new_client, room.code)
    handle_ws_message(state, guest.id, {"type": "collect_item", "id": "a"})
    handle_ws_message(state, guest.id, {"type": "reset_collectibles"})
    reset = host_t.last("collect_reset")
    assert reset == guest_t.last("collect_reset")
    assert reset["seq"] == 1
    assert reset["seed"] == room.seed ^ 2654435761
    assert room.collectibles.count == 0


def test_leave_room_notifies_and_migrates_host(state, new_client):
    room, host, host_t = create_room(state, new_client)
    guest, guest_t = join(state, new_client, room.code)
    guest_t.clear()
    handle_ws_message(state, host.id, {"type": "leave_room"})
    assert guest_t.types() == ["host_changed", "player_left", "room_players"]
    assert guest_t.sent[0] == {
        "type": "host_changed",
        "hostId": guest.id,
        "config": {"difficulty": 0, "noahEnabled": False},
    }
    assert guest_t.sent[1] == {"type": "player_left", "id": host.id}
    assert guest.is_host
    assert room.host_id == guest.id
    assert host.room_code is None and not host.is_host
    # The departed host is back in the lobby and may join again.
    handle_ws_message(state, host.id, {"type": "join_room", "code": room.code})
    assert room.roster() == [guest.id, host.id]


def test_guest_leaving_keeps_host(state, new_client):
    room, host, host_t = create_room(state, new_client)
    guest, guest_t = join(state, new_client, room.code)
    host_t.clear()
    handle_ws_message(state, guest.id, {"type": "leave_room"})
    assert host_t.types() == ["player_left", "room_players"]
    assert room.host_id == host.id


def test_host_disconnect_promotes_remaining_member(state, new_client):
    room, host, host_t = create_room(state, new_client)
    guest, guest_t = join(state, new_client, room.code)
    third, third_t = join(state, new_client, room.code)
    guest_t.clear()
    disconnect(state, host.id)
    assert guest_t.types()[:2] == ["host_changed", "player_left"]
    assert guest_t.sent[0]["hostId"] == guest.id
    hosts = [m for m in room.members.values() if m.is_host]
    assert [m.id for m in hosts] == [guest.id]
    assert room.host_id == guest.id
    assert set(room.player_states) == {guest.id, third.id}
    assert host.id not in state.connections


def test_last_member_disconnect_destroys_room(state, new_client):
    room, host, _ = create_room(state, new_client)
    code = room.code
    disconnect(state, host.id)
    assert code not in state.rooms
    guest, guest_t = join(state, new_client, code)
    assert guest_t.last("error") == {"type": "error", "error": ERROR_ROOM_NOT_FOUND}


def test_last_member_leave_destroys_room(state, new_client):
    room, host, host_t = create_room(state, new_client)
    host_t.clear()
    handle_ws_message(state, host.id, {"type": "leave_room"})
    assert room.code not in state.rooms
    assert host_t.sent == []
    assert host.room_code is None


def test_room_codes_distinct_while_active(state, new_client):
    codes = [create_room(state, new_client)[0].code for _ in range(50)]
    assert len(set(codes)) == 50


def test_broken_transport_does_not_abort_broadcast(state, new_client):
    room, host, host_t = create_room(state, new_client)
    broken, _ = new_client(BrokenTransport())
    handle_ws_message(state, broken.id, {"type": "join_room", "code": room.code})
    guest, guest_t = join(state, new_client, room.code)
    guest_t.clear()
    handle_ws_message(state, host.id, {"type": "start_game"})
    assert guest_t.last("start_game")["seq"] == 1
    assert host_t.last("start_game")["seq"] == 1


def test_closed_transport_is_skipped(state, new_client):
    room, host, host_t = create_room(state, new_client)
    guest, guest_t = join(state, new_client, room.code)
    guest_t.open = False
    guest_t.clear()
    handle_ws_message(state, host.id, {"type": "start_game"})
    assert guest_t.sent == []
    assert host_t.last("start_game")["seq"] == 1


def test_room_code_collision_is_retried(state, new_client, monkeypatch):
    codes = iter(["AAAAAA", "AAAAAA", "BBBBBB"])
    monkeypatch.setattr("relay.state.new_room_code", lambda: next(codes))
    first, _, _ = create_room(state, new_client)
    second, _, _ = create_room(state, new_client)
    assert first.code == "AAAAAA"
    assert second.code == "BBBBBB"
    assert "AAAAAA" in state.rooms and "BBBBBB" in state.rooms
    assert state.rooms.get("AAAAAA") is first


def test_broadcast_logs_delivery_count(state, new_client, caplog):
    room, host, _ = create_room(state, new_client)
    guest, guest_t = join(state, new_client, room.code)
    guest_t.open = False
    caplog.set_level(logging.DEBUG, logger="relay.broadcast")
    handle_ws_message(state, host.id, {"type": "start_game"})
    assert f"Room {room.code}: 'start_game' delivered to 1/2" in caplog.text
