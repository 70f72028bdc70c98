"""Connection lifecycle and inbound message dispatch.

Every function here runs to completion without awaiting, so a handler's
read-modify-write on a room and the broadcasts that follow it are never
interleaved with another handler on the same event loop. Outbound delivery is
queued by the transport.

Anything a client is not allowed to do, or sends in a shape we do not
understand, is dropped without a reply. The only error a client ever sees is
``ROOM_NOT_FOUND`` when joining.
"""
from __future__ import annotations

import json
import time
from typing import Any, Dict, Optional

from .broadcast import broadcast, send
from .connection import Connection, Transport
from .constants import ERROR_ROOM_NOT_FOUND, START_DELAY_MS
from .host_election import elect_host
from .logging_config import get_logger
from .room import Room
from .state import RelayState

logger = get_logger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


def decode_message(raw: Any) -> Optional[Dict[str, Any]]:
    """Parse an inbound frame; ``None`` for anything that is not a typed JSON object."""
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            return None
    if not isinstance(raw, str):
        return None
    try:
        data = json.loads(raw)
    except ValueError:
        return None
    if not isinstance(data, dict) or not isinstance(data.get("type"), str):
        return None
    return data


# ---------------------------------------------------------------------------
# Connection lifecycle
# ---------------------------------------------------------------------------


def connect(state: RelayState, transport: Transport) -> Connection:
    """Register a new connection and greet it with its id."""
    connection = state.connections.register(transport)
    send(connection, {"type": "hello", "id": connection.id})
    logger.info(f"Connection {connection.id} opened ({len(state.connections)} live)")
    return connection


def disconnect(state: RelayState, connection_id: str) -> None:
    """Forget *connection_id* and take it out of its room, if any."""
    connection = state.connections.remove(connection_id)
    if connection is None:
        return
    room = _current_room(state, connection)
    if room is not None:
        _depart(state, room, connection)
    connection.exit()
    logger.info(f"Connection {connection_id} closed ({len(state.connections)} live)")


def _current_room(state: RelayState, connection: Connection) -> Optional[Room]:
    room = state.rooms.get(connection.room_code)
    if room is None or not room.is_member(connection.id):
        return None
    return room


def _players_payload(room: Room) -> Dict[str, Any]:
    return {"type": "room_players", "players": room.roster(), "hostId": room.host_id}


def _depart(state: RelayState, room: Room, connection: Connection) -> None:
    """Shared teardown for ``leave_room`` and disconnect."""
    was_host = room.leave(connection.id)
    logger.debug(f"{connection.id} left room {room.code}")

    if room.is_empty:
        state.rooms.destroy(room.code)
        return

    if was_host:
        new_host_id = elect_host(room)
        logger.info(f"Room {room.code}: host {connection.id} left, {new_host_id} promoted")
        broadcast(room, {
            "type": "host_changed",
            "hostId": new_host_id,
            "config": room.config.model_dump(by_alias=True),
        })

    broadcast(room, {"type": "player_left", "id": connection.id})
    broadcast(room, _players_payload(room))


# ---------------------------------------------------------------------------
# Lobby messages
# ---------------------------------------------------------------------------


def handle_create_room(state: RelayState, connection: Connection, data: dict) -> None:
    if connection.in_room:
        return
    room = state.rooms.create_room(connection)
    snapshot = room.snapshot()
    send(connection, {
        "type": "room_created",
        "code": room.code,
        "seed": room.seed,
        "id": connection.id,
        "hostId": room.host_id,
        "isHost": True,
        "config": snapshot["config"],
        "startSeq": room.start_seq,
        "collectTaken": snapshot["collectTaken"],
        "collectCount": snapshot["collectCount"],
        "collectSeed": snapshot["collectSeed"],
    })
    broadcast(room, _players_payload(room))


def handle_join_room(state: RelayState, connection: Connection, data: dict) -> None:
    if connection.in_room:
        return
    code = str(data.get("code") or "").strip().upper()
    room = state.rooms.get(code)
    if room is None:
        logger.debug(f"{connection.id} tried to join unknown room {code!r}")
        send(connection, {"type": "error", "error": ERROR_ROOM_NOT_FOUND})
        return

    snapshot = room.join(connection)
    logger.debug(f"{connection.id} joined room {room.code}")
    send(connection, {"type": "joined", "id": connection.id, **snapshot})

    broadcast(room, {"type": "player_joined", "id": connection.id}, exclude=connection)
    broadcast(room, _players_payload(room))
    if room.bots is not None:
        send(connection, {"type": "bots_state", "bots": room.bots, "hostId": room.host_id})
    send(connection, {
        "type": "room_config",
        "config": snapshot["config"],
        "hostId": room.host_id,
    })


def handle_leave_room(state: RelayState, connection: Connection, data: dict) -> None:
    room = _current_room(state, connection)
    if room is None:
        connection.exit()
        return
    _depart(state, room, connection)


def handle_ping(state: RelayState, connection: Connection, data: dict) -> None:
    send(connection, {"type": "pong", "t": _now_ms()})


# ---------------------------------------------------------------------------
# Room messages (sender must be a member)
# ---------------------------------------------------------------------------


def handle_room_config(room: Room, connection: Connection, data: dict) -> None:
    if not room.set_config(connection.id, data.get("config") or {}):
        logger.debug(f"Ignoring room_config from non-host {connection.id}")
        return
    broadcast(room, {
        "type": "room_config",
        "config": room.config.model_dump(by_alias=True),
        "hostId": room.host_id,
    }, exclude=connection)


def handle_start_game(room: Room, connection: Connection, data: dict) -> None:
    seq = room.start_game(connection.id)
    if seq is None:
        logger.debug(f"Ignoring start_game from non-host {connection.id}")
        return
    broadcast(room, {
        "type": "start_game",
        "seq": seq,
        "hostId": room.host_id,
        "serverTime": _now_ms(),
        "delayMs": START_DELAY_MS,
    })


def handle_state(room: Room, connection: Connection, data: dict) -> None:
    player_state = data.get("state")
    if not room.set_state(connection.id, player_state):
        return
    broadcast(room, {"type": "state", "id": connection.id, "state": player_state}, exclude=connection)


def handle_bots_state(room: Room, connection: Connection, data: dict) -> None:
    if not room.set_bots(connection.id, data.get("bots")):
        logger.debug(f"Ignoring bots_state from non-host {connection.id}")
        return
    broadcast(room, {"type": "bots_state", "bots": room.bots, "hostId": room.host_id}, exclude=connection)


def handle_collect_item(room: Room, connection: Connection, data: dict) -> None:
    item = data.get("id")
    if item is None:
        return
    item_id = str(item)
    count = room.collect_item(item_id)
    broadcast(room, {"type": "collect_taken", "id": item_id, "count": count})


def handle_reset_collectibles(room: Room, connection: Connection, data: dict) -> None:
    collectibles = room.reset_collectibles()
    logger.debug(f"Room {room.code}: collectibles reset to generation {collectibles.seq}")
    broadcast(room, {"type": "collect_reset", "seed": collectibles.seed, "seq": collectibles.seq})


# ---------------------------------------------------------------------------
# Primary dispatcher used by websocket endpoint
# ---------------------------------------------------------------------------


def handle_ws_message(state: RelayState, connection_id: str, data: Any) -> None:
    connection = state.connections.get(connection_id)
    if connection is None or not isinstance(data, dict):
        return
    msg_type = data.get("type")

    if msg_type == "create_room":
        handle_create_room(state, connection, data)
        return
    elif msg_type == "join_room":
        handle_join_room(state, connection, data)
        return
    elif msg_type == "leave_room":
        handle_leave_room(state, connection, data)
        return
    elif msg_type == "ping":
        handle_ping(state, connection, data)
        return

    room_handler = ROOM_HANDLERS.get(msg_type)
    if room_handler is None:
        logger.debug(f"Dropping unknown message type {msg_type!r} from {connection_id}")
        return
    room = _current_room(state, connection)
    if room is None:
        return
    room_handler(room, connection, data)


ROOM_HANDLERS = {
    "room_config": handle_room_config,
    "start_game": handle_start_game,
    "state": handle_state,
    "bots_state": handle_bots_state,
    "collect_item": handle_collect_item,
    "reset_collectibles": handle_reset_collectibles,
}

__all__ = [
    "decode_message",
    "connect",
    "disconnect",
    "handle_ws_message",
    "handle_create_room",
    "handle_join_room",
    "handle_leave_room",
    "handle_ping",
    "handle_room_config",
    "handle_start_game",
    "handle_state",
    "handle_bots_state",
    "handle_collect_item",
    "handle_reset_collectibles",
]
