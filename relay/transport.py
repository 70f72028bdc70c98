"""Websocket adapter for the ``Transport`` protocol."""
from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

from fastapi import WebSocket
from fastapi.websockets import WebSocketState

from .constants import MAX_OUTBOUND_QUEUE, STALLED_CLOSE_CODE
from .logging_config import get_logger

logger = get_logger(__name__)


class WebSocketTransport:
    """Queues outbound payloads and writes them from a single task.

    ``send`` never awaits, so handlers stay synchronous; the writer task keeps
    per-connection order. A client that lets more than ``max_queue`` frames
    pile up is closed instead of buffered further.
    """

    def __init__(self, ws: WebSocket, max_queue: int = MAX_OUTBOUND_QUEUE):
        self.ws = ws
        self._queue: "asyncio.Queue[Dict[str, Any]]" = asyncio.Queue(maxsize=max_queue)
        self._writer: Optional[asyncio.Task] = None
        self._closer: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def is_open(self) -> bool:
        return (
            not self._closed
            and self.ws.client_state == WebSocketState.CONNECTED
            and self.ws.application_state == WebSocketState.CONNECTED
        )

    def start(self) -> None:
        if self._writer is None:
            self._writer = asyncio.create_task(self._drain())

    def send(self, payload: Dict[str, Any]) -> None:
        if self._closed:
            raise RuntimeError("transport closed")
        try:
            self._queue.put_nowait(payload)
        except asyncio.QueueFull:
            self._abort()
            raise RuntimeError("outbound queue full, client stalled") from None

    def _abort(self) -> None:
        """Stop writing to a stalled client and close its socket."""
        self._closed = True
        if self._writer is not None:
            self._writer.cancel()
            self._writer = None
        if self._closer is None:
            self._closer = asyncio.create_task(self._close_socket(STALLED_CLOSE_CODE))

    async def _close_socket(self, code: int) -> None:
        try:
            await self.ws.close(code=code)
        except Exception as e:
            logger.debug(f"Closing stalled websocket failed: {e}")

    async def _drain(self) -> None:
        while True:
            payload = await self._queue.get()
            try:
                await self.ws.send_json(payload)
            except Exception as e:
                logger.warning(f"Websocket write failed, closing transport: {e}")
                self._closed = True
                return

    async def close(self) -> None:
        self._closed = True
        writer, self._writer = self._writer, None
        if writer is None:
            return
        writer.cancel()
        try:
            await writer
        except asyncio.CancelledError:
            pass


__all__ = ["WebSocketTransport"]
