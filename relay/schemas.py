"""Pydantic data schemas used across the relay.

Wire payloads use the camelCase field names clients expect, so every model
is declared with aliases and dumped with ``by_alias=True``.
"""
from __future__ import annotations

import math
import re
from typing import Any, List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import COLLECTIBLE_SEED_MULTIPLIER, MAX_DIFFICULTY, MIN_DIFFICULTY, UINT32_MASK

_DECIMAL = re.compile(r"[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?")
_PREFIXED = re.compile(r"0[xX][0-9a-fA-F]+|0[bB][01]+|0[oO][0-7]+")

# -----------------------------
# Room runtime
# -----------------------------


def coerce_difficulty(value: Any) -> int:
    """Return *value* as an integer difficulty clamped to the accepted range.

    Accepts numbers and numeric strings as browsers parse them (decimal,
    exponent, 0x/0b/0o). Anything else, including lists and objects,
    becomes 0.
    """
    if isinstance(value, (bool, int, float)):
        try:
            number = float(value)
        except OverflowError:
            return MAX_DIFFICULTY if value > 0 else MIN_DIFFICULTY
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            number = 0.0
        elif _DECIMAL.fullmatch(text):
            number = float(text)
        elif _PREFIXED.fullmatch(text):
            number = float(int(text, 0))
        else:
            return MIN_DIFFICULTY
    elif value is None:
        number = 0.0
    else:
        return MIN_DIFFICULTY
    if not math.isfinite(number):
        return MIN_DIFFICULTY
    return max(MIN_DIFFICULTY, min(MAX_DIFFICULTY, math.floor(number)))


def is_truthy(value: Any) -> bool:
    """Browser truthiness: only null, false, 0, NaN and "" are false."""
    if value is None or value is False or value == "":
        return False
    if isinstance(value, (int, float)):
        return value == value and value != 0
    return True


class RoomConfig(BaseModel):
    """Game options selected by the host."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    difficulty: int = 0
    noah_enabled: bool = Field(default=False, alias="noahEnabled")

    @field_validator("difficulty", mode="before")
    @classmethod
    def _clamp_difficulty(cls, value: Any) -> int:
        return coerce_difficulty(value)

    @field_validator("noah_enabled", mode="before")
    @classmethod
    def _truthy(cls, value: Any) -> bool:
        return is_truthy(value)

    def merged(self, partial: Any) -> "RoomConfig":
        """Return a copy with the recognised keys of *partial* applied.

        Unknown keys are dropped, keys absent from *partial* keep their
        current value.
        """
        if not isinstance(partial, dict):
            return self.model_copy()
        data = self.model_dump(by_alias=True)
        for key in ("difficulty", "noahEnabled"):
            if key in partial:
                data[key] = partial[key]
        return RoomConfig.model_validate(data)


def collectible_seed(base_seed: int, seq: int) -> int:
    """Deterministic collectible layout seed for generation *seq*."""
    return (base_seed ^ ((seq * COLLECTIBLE_SEED_MULTIPLIER) & UINT32_MASK)) & UINT32_MASK


class Collectibles(BaseModel):
    """World items picked up in the current collectible generation."""

    taken: Set[str] = Field(default_factory=set)
    count: int = 0
    seq: int = 0
    seed: int = 0

    def taken_list(self) -> List[str]:
        return sorted(self.taken)


# -----------------------------
# REST responses
# -----------------------------


class RoomSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    code: str
    host_id: Optional[str] = Field(alias="hostId")
    player_count: int = Field(alias="playerCount")
    start_seq: int = Field(alias="startSeq")


class HealthResponse(BaseModel):
    status: str = "ok"
    rooms: int
    connections: int


__all__ = [
    "coerce_difficulty",
    "is_truthy",
    "collectible_seed",
    "RoomConfig",
    "Collectibles",
    "RoomSummary",
    "HealthResponse",
]
