from __future__ import annotations

from typing import Any, Dict, Optional, Protocol


class Transport(Protocol):
    """What the room core needs from a live client connection.

    ``send`` must not block; the transport owns framing, encoding and the
    actual write. ``is_open`` is checked before every delivery.
    """

    @property
    def is_open(self) -> bool: ...

    def send(self, payload: Dict[str, Any]) -> None: ...


class Connection:
    """Session metadata for one live connection."""

    def __init__(self, connection_id: str, transport: Transport):
        self.id = connection_id
        self.transport = transport
        # Code of the room currently joined, ``None`` while in the lobby.
        self.room_code: Optional[str] = None
        self.is_host: bool = False

    @property
    def in_room(self) -> bool:
        return self.room_code is not None

    def enter(self, code: str, is_host: bool = False) -> None:
        self.room_code = code
        self.is_host = is_host

    def exit(self) -> None:
        self.room_code = None
        self.is_host = False

    def __repr__(self) -> str:
        return f"<Connection {self.id} room={self.room_code} host={self.is_host}>"


__all__ = ["Transport", "Connection"]
