"""WebSocket connection to the chat relay.

Frames are JSON objects with a ``type`` field.  Inbound::

    {"type": "message", "text": "turn left", "channel": "C123"}
    {"type": "error", "error": {"msg": "rate limited"}}
    {"type": "invalid_auth"}

Outbound replies use ``{"type": "message", "channel": ..., "text": ...}``.
The first frame after connecting is ``{"type": "hello", "token": ...}``.
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import AsyncIterator, Optional

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from .events import ChatEvent, FatalAuth, TextMessage, TransportError


logger = logging.getLogger(__name__)


def parse_event(raw: str | bytes) -> Optional[ChatEvent]:
    """Translate one raw frame into a chat event, ``None`` if irrelevant."""
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        return TransportError(f"undecodable frame: {raw!r:.80}")
    if not isinstance(data, dict):
        return TransportError(f"unexpected frame: {raw!r:.80}")

    kind = data.get("type")
    if kind == "message":
        text = data.get("text")
        if not isinstance(text, str):
            return None
        return TextMessage(text=text, reply_target=str(data.get("channel", "")))
    if kind == "error":
        error = data.get("error") or {}
        detail = error.get("msg") if isinstance(error, dict) else str(error)
        return TransportError(str(detail or "unknown transport error"))
    if kind == "invalid_auth":
        return FatalAuth()

    logger.debug("[CHAT] Ignoring frame of type %r", kind)
    return None


class ChatClient:
    """Async chat connection with automatic reconnection.

    :meth:`events` yields :class:`TextMessage`, :class:`TransportError` and
    :class:`FatalAuth` until :meth:`close` is called.  Dropped connections
    surface as a ``TransportError`` and are re-established after
    ``reconnect_delay`` seconds.
    """

    def __init__(self, url: str, token: str, *, reconnect_delay: float = 5.0) -> None:
        self.url = url
        self._token = token
        self.reconnect_delay = max(0.0, float(reconnect_delay))
        self.websocket = None
        self._closed = False

    async def connect(self) -> None:
        self.websocket = await websockets.connect(self.url)
        await self.websocket.send(json.dumps({"type": "hello", "token": self._token}))
        logger.info("[CHAT] Connected to %s", self.url)

    async def events(self) -> AsyncIterator[ChatEvent]:
        while not self._closed:
            if self.websocket is None:
                try:
                    await self.connect()
                except (OSError, WebSocketException) as exc:
                    self.websocket = None
                    yield TransportError(f"connection failed: {exc}")
                    await asyncio.sleep(self.reconnect_delay)
                    continue

            try:
                raw = await self.websocket.recv()
            except ConnectionClosed as exc:
                self.websocket = None
                if self._closed:
                    return
                yield TransportError(f"connection closed: {exc}")
                await asyncio.sleep(self.reconnect_delay)
                continue

            event = parse_event(raw)
            if event is not None:
                yield event

    async def send(self, reply_target: str, text: str) -> None:
        """Send ``text`` to ``reply_target``; failures are only logged."""
        if self.websocket is None:
            logger.warning("[CHAT] Dropping reply to %s, not connected", reply_target)
            return
        payload = {"type": "message", "channel": reply_target, "text": text}
        try:
            await self.websocket.send(json.dumps(payload))
        except (ConnectionClosed, OSError) as exc:
            logger.warning("[CHAT] Failed to send reply to %s: %s", reply_target, exc)

    async def close(self) -> None:
        self._closed = True
        websocket, self.websocket = self.websocket, None
        if websocket is not None:
            try:
                await websocket.close()
            except (ConnectionClosed, OSError):
                pass
        logger.info("[CHAT] Connection closed")
