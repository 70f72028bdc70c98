"""Connection ids, room codes and seeds."""
from __future__ import annotations

import secrets
import string
import time

from .constants import ROOM_CODE_ALPHABET, ROOM_CODE_LENGTH, UINT32_MASK

_BASE36 = string.digits + string.ascii_uppercase


def _to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def new_connection_id() -> str:
    """Millisecond timestamp prefix plus 8 random base36 characters.

    Unique in practice among live connections; not checked.
    """
    prefix = _to_base36(int(time.time() * 1000))
    suffix = "".join(secrets.choice(_BASE36) for _ in range(8))
    return prefix + suffix


def new_room_code(length: int = ROOM_CODE_LENGTH) -> str:
    return "".join(secrets.choice(ROOM_CODE_ALPHABET) for _ in range(length))


def new_seed() -> int:
    """Uniform unsigned 32-bit integer."""
    return secrets.randbits(32) & UINT32_MASK


__all__ = ["new_connection_id", "new_room_code", "new_seed"]
