from __future__ import annotations

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ..handlers import connect, decode_message, disconnect, handle_ws_message
from ..logging_config import get_logger
from ..state import RelayState
from ..transport import WebSocketTransport

logger = get_logger(__name__)

router = APIRouter(prefix="", tags=["ws"])


@router.websocket("/ws")
@router.websocket("/")
async def websocket_endpoint(ws: WebSocket):
    state: RelayState = ws.app.state.relay
    await ws.accept()

    transport = WebSocketTransport(ws)
    transport.start()
    connection = connect(state, transport)

    try:
        while True:
            message = await ws.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes")
            data = decode_message(raw)
            if data is None:
                logger.debug(f"Dropping malformed frame from {connection.id}")
                continue
            handle_ws_message(state, connection.id, data)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception(f"Websocket error on {connection.id}")
    finally:
        disconnect(state, connection.id)
        await transport.close()
