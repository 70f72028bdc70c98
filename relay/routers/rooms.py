from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from ..schemas import HealthResponse, RoomSummary
from ..state import RelayState

router = APIRouter(prefix="", tags=["rooms"])


def _state(request: Request) -> RelayState:
    return request.app.state.relay


@router.get("/health", response_model=HealthResponse)
async def health(request: Request):
    state = _state(request)
    return HealthResponse(rooms=len(state.rooms), connections=len(state.connections))


@router.get("/rooms/{code}", response_model=RoomSummary)
async def get_room(code: str, request: Request):
    """Let a client check a room code before opening the socket."""
    room = _state(request).rooms.get(code.strip().upper())
    if room is None:
        raise HTTPException(status_code=404, detail="Room not found")
    return RoomSummary(
        code=room.code,
        host_id=room.host_id,
        player_count=len(room.members),
        start_seq=room.start_seq,
    )
