from __future__ import annotations

ROOM_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
ROOM_CODE_LENGTH = 6

UINT32_MASK = 0xFFFFFFFF

# Odd 32-bit multiplier used to derive a collectible seed from (base seed, seq).
COLLECTIBLE_SEED_MULTIPLIER = 2654435761

# Difficulty levels accepted in the room config (inclusive).
MIN_DIFFICULTY = 0
MAX_DIFFICULTY = 2

# Countdown suggested to clients between the start signal and simulation.
START_DELAY_MS = 250

# Frames buffered for one client before it is treated as stalled and closed.
MAX_OUTBOUND_QUEUE = 512

# Websocket close code sent to a stalled client (policy violation).
STALLED_CLOSE_CODE = 1008

ERROR_ROOM_NOT_FOUND = "ROOM_NOT_FOUND"

__all__ = [
    "ROOM_CODE_ALPHABET",
    "ROOM_CODE_LENGTH",
    "UINT32_MASK",
    "COLLECTIBLE_SEED_MULTIPLIER",
    "MIN_DIFFICULTY",
    "MAX_DIFFICULTY",
    "START_DELAY_MS",
    "MAX_OUTBOUND_QUEUE",
    "STALLED_CLOSE_CODE",
    "ERROR_ROOM_NOT_FOUND",
]
