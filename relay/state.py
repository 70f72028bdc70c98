"""In-memory runtime state owned by one relay instance.

Nothing here is a module-level singleton: ``create_app`` builds a
``RelayState`` and hands it to the routers through ``app.state`` so tests can
run several independent servers in one process.
"""
from __future__ import annotations

from typing import Dict, Optional

from .connection import Connection, Transport
from .ids import new_connection_id, new_room_code, new_seed
from .logging_config import get_logger
from .room import Room

logger = get_logger(__name__)


class RoomRegistry:
    """Active rooms keyed by code."""

    def __init__(self) -> None:
        self._rooms: Dict[str, Room] = {}

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, code: object) -> bool:
        return code in self._rooms

    def _unused_code(self) -> str:
        code = new_room_code()
        while code in self._rooms:
            code = new_room_code()
        return code

    def create_room(self, host: Connection) -> Room:
        """Allocate a room with *host* as its only member and host."""
        code = self._unused_code()
        room = Room(code, new_seed(), host.id)
        self._rooms[code] = room
        room.join(host)
        logger.info(f"Room {code} created by {host.id}")
        return room

    def get(self, code: Optional[str]) -> Optional[Room]:
        if code is None:
            return None
        return self._rooms.get(code)

    def destroy(self, code: str) -> None:
        if self._rooms.pop(code, None) is not None:
            logger.info(f"Room {code} destroyed")


class ConnectionRegistry:
    """Live connection sessions keyed by connection id."""

    def __init__(self) -> None:
        self._connections: Dict[str, Connection] = {}

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._connections

    def register(self, transport: Transport) -> Connection:
        connection = Connection(new_connection_id(), transport)
        self._connections[connection.id] = connection
        return connection

    def get(self, connection_id: str) -> Optional[Connection]:
        return self._connections.get(connection_id)

    def remove(self, connection_id: str) -> Optional[Connection]:
        return self._connections.pop(connection_id, None)


class RelayState:
    def __init__(self) -> None:
        self.rooms = RoomRegistry()
        self.connections = ConnectionRegistry()


__all__ = ["RoomRegistry", "ConnectionRegistry", "RelayState"]
