"""Fire-and-forget delivery to one connection or to a whole room."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

from .logging_config import get_logger

if TYPE_CHECKING:
    from .connection import Connection
    from .room import Room

logger = get_logger(__name__)


def send(connection: "Connection", payload: Dict[str, Any]) -> bool:
    """Deliver *payload* to *connection*; return ``False`` if it was skipped or failed."""
    transport = connection.transport
    if not transport.is_open:
        return False
    try:
        transport.send(payload)
    except Exception as e:
        logger.warning(f"Delivery of {payload.get('type')!r} to {connection.id} failed: {e}")
        return False
    return True


def broadcast(room: "Room", payload: Dict[str, Any], exclude: Optional["Connection"] = None) -> None:
    """Send *payload* to every open member of *room* except *exclude*."""
    delivered = 0
    for member in list(room.members.values()):
        if exclude is not None and member is exclude:
            continue
        if send(member, payload):
            delivered += 1
    logger.debug(f"Room {room.code}: {payload.get('type')!r} delivered to {delivered}/{len(room.members)}")


__all__ = ["send", "broadcast"]
