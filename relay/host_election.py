from __future__ import annotations

from typing import Optional

from .room import Room


def elect_host(room: Room) -> Optional[str]:
    """Promote the first remaining member of *room* to host.

    Clears ``is_host`` on everybody else and returns the new host id, or
    ``None`` when the room has no members left.
    """
    new_host_id = next(iter(room.members), None)
    for member_id, member in room.members.items():
        member.is_host = member_id == new_host_id
    room.host_id = new_host_id
    return new_host_id


__all__ = ["elect_host"]
