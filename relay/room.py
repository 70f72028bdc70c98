from __future__ import annotations

from typing import Any, Dict, List, Optional

from .connection import Connection
from .schemas import Collectibles, RoomConfig, collectible_seed

# NOTE: ``Room`` holds no transport logic; delivery lives in ``relay.broadcast``
# and the handlers decide what to send after each mutation.


class Room:
    """Authoritative shared facts of one game session."""

    def __init__(self, code: str, seed: int, host_id: str):
        self.code = code
        # World seed handed to every joiner; never changes.
        self.seed = seed
        self.host_id: Optional[str] = host_id
        # connection id -> Connection, insertion ordered
        self.members: Dict[str, Connection] = {}
        # connection id -> last reported state blob; keys are the roster
        self.player_states: Dict[str, Any] = {}
        self.config = RoomConfig()
        self.bots: Any = None
        self.start_seq: int = 0
        self.collectibles = Collectibles(seed=collectible_seed(seed, 0))

    # ---------------------------------------------------------------------
    # Membership
    # ---------------------------------------------------------------------

    @property
    def is_empty(self) -> bool:
        return not self.members

    def is_member(self, connection_id: str) -> bool:
        return connection_id in self.members

    def is_host(self, connection_id: str) -> bool:
        return connection_id == self.host_id

    def roster(self) -> List[str]:
        return list(self.player_states.keys())

    def join(self, connection: Connection) -> Dict[str, Any]:
        """Add *connection* and return what a joiner needs to catch up."""
        self.members[connection.id] = connection
        self.player_states[connection.id] = None
        connection.enter(self.code, is_host=self.is_host(connection.id))
        return self.snapshot()

    def leave(self, connection_id: str) -> bool:
        """Drop *connection_id* from the room; return ``True`` if it was the host.

        The caller must run host election when this returns ``True`` and the
        room is not empty.
        """
        connection = self.members.pop(connection_id, None)
        self.player_states.pop(connection_id, None)
        if connection is not None:
            connection.exit()
        was_host = self.host_id == connection_id
        if was_host:
            self.host_id = None
        return was_host

    def snapshot(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "seed": self.seed,
            "players": self.roster(),
            "hostId": self.host_id,
            "config": self.config.model_dump(by_alias=True),
            "bots": self.bots,
            "startSeq": self.start_seq,
            "collectTaken": self.collectibles.taken_list(),
            "collectCount": self.collectibles.count,
            "collectSeed": self.collectibles.seed,
        }

    # ---------------------------------------------------------------------
    # Member actions
    # ---------------------------------------------------------------------

    def set_state(self, connection_id: str, state: Any) -> bool:
        if connection_id not in self.player_states:
            return False
        self.player_states[connection_id] = state
        return True

    def collect_item(self, item_id: str) -> int:
        """Mark *item_id* taken (idempotent) and return the taken count."""
        if item_id not in self.collectibles.taken:
            self.collectibles.taken.add(item_id)
            self.collectibles.count = len(self.collectibles.taken)
        return self.collectibles.count

    def reset_collectibles(self) -> Collectibles:
        """Start a new collectible generation with a freshly derived seed."""
        self.collectibles.taken.clear()
        self.collectibles.count = 0
        self.collectibles.seq += 1
        self.collectibles.seed = collectible_seed(self.seed, self.collectibles.seq)
        return self.collectibles

    # ---------------------------------------------------------------------
    # Host-only actions; non-host callers are ignored and get ``False``/``None``
    # ---------------------------------------------------------------------

    def set_config(self, connection_id: str, partial: Any) -> bool:
        if not self.is_host(connection_id):
            return False
        self.config = self.config.merged(partial)
        return True

    def set_bots(self, connection_id: str, bots: Any) -> bool:
        if not self.is_host(connection_id):
            return False
        self.bots = bots
        return True

    def start_game(self, connection_id: str) -> Optional[int]:
        if not self.is_host(connection_id):
            return None
        self.start_seq += 1
        return self.start_seq

    def __repr__(self) -> str:
        return f"<Room {self.code} host={self.host_id} players={len(self.members)}>"


__all__ = ["Room"]
