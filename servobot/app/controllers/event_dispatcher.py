from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from ...network.chat_client import ChatClient
from ...network.events import Event, FatalAuth, TextMessage, Tick, TransportError
from ..services.interpolation import InterpolationLoop
from .command_router import CommandRouter


logger = logging.getLogger(__name__)

_STOP = object()


class EventDispatcher:
    """Single loop serving chat events and interpolation ticks.

    Both producers only enqueue; :meth:`run` takes one event at a time, so
    the actuator is never mutated concurrently.  Replies go to an outbox
    drained by a separate sender task, so a slow chat socket never delays
    the next tick.  The loop ends on :class:`FatalAuth` or :meth:`stop`;
    replies still queued at that point get ``flush_timeout`` seconds to go
    out before the chat connection is closed.
    """

    def __init__(
        self,
        chat: ChatClient,
        router: CommandRouter,
        interpolation: InterpolationLoop,
        *,
        flush_timeout: float = 2.0,
    ) -> None:
        self.chat = chat
        self.router = router
        self.interpolation = interpolation
        self.flush_timeout = flush_timeout
        self._queue: Optional[asyncio.Queue] = None
        self._outbox: Optional[asyncio.Queue] = None
        self._tasks: List[asyncio.Task] = []
        self._sender: Optional[asyncio.Task] = None
        self.exit_reason: Optional[str] = None

    @property
    def running(self) -> bool:
        return self._queue is not None

    async def run(self) -> None:
        self._queue = asyncio.Queue()
        self._outbox = asyncio.Queue()
        self.exit_reason = None
        self._tasks = [
            asyncio.create_task(self._pump_chat(), name="chat-pump"),
            asyncio.create_task(self.interpolation.run(self._queue), name="interpolation"),
        ]
        self._sender = asyncio.create_task(self._send_replies(), name="chat-sender")
        for task in (*self._tasks, self._sender):
            task.add_done_callback(self._on_producer_done)
        logger.info("[DISPATCH] Event loop started")

        try:
            while True:
                event = await self._queue.get()
                if event is _STOP:
                    break
                if not await self.handle(event):
                    break
        finally:
            for task in self._tasks:
                task.cancel()
            await asyncio.gather(*self._tasks, return_exceptions=True)
            self._tasks = []
            self._queue = None
            await self._flush_outbox()
            self._sender.cancel()
            await asyncio.gather(self._sender, return_exceptions=True)
            self._sender = None
            self._outbox = None
            await self.chat.close()
            logger.info("[DISPATCH] Event loop stopped (%s)", self.exit_reason or "stop requested")

    def stop(self, reason: str = "stop requested") -> None:
        if self._queue is None:
            return
        self.exit_reason = self.exit_reason or reason
        self._queue.put_nowait(_STOP)

    # ------------------------------------------------------------------
    async def handle(self, event: Event) -> bool:
        """Process one event; ``False`` means the loop must end.

        Never waits on the network: replies are only queued for the sender.
        """
        if isinstance(event, Tick):
            self.interpolation.on_tick()
            return True

        if isinstance(event, TextMessage):
            for reply in self.router.handle(event.text):
                self._post(event.reply_target, reply)
            return True

        if isinstance(event, TransportError):
            logger.warning("[CHAT] Transport error: %s", event.detail)
            return True

        if isinstance(event, FatalAuth):
            logger.error("[CHAT] Bad credentials: %s", event.detail)
            self.exit_reason = "invalid credentials"
            return False

        logger.debug("[DISPATCH] Ignoring unknown event %r", event)
        return True

    # ------------------------------------------------------------------
    def _post(self, reply_target: str, text: str) -> None:
        if self._outbox is None:
            logger.warning("[CHAT] Dropping reply to %s, dispatcher not running", reply_target)
            return
        self._outbox.put_nowait((reply_target, text))

    async def _send_replies(self) -> None:
        while True:
            reply_target, text = await self._outbox.get()
            try:
                await self.chat.send(reply_target, text)
            finally:
                self._outbox.task_done()

    async def _flush_outbox(self) -> None:
        if self._sender.done():
            return
        try:
            await asyncio.wait_for(self._outbox.join(), timeout=self.flush_timeout)
        except asyncio.TimeoutError:
            logger.warning("[CHAT] Replies still pending after %.1f s, dropping them", self.flush_timeout)

    async def _pump_chat(self) -> None:
        async for event in self.chat.events():
            self._queue.put_nowait(event)

    def _on_producer_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("[DISPATCH] %s crashed", task.get_name(), exc_info=exc)
            self.stop(f"{task.get_name()} crashed")
