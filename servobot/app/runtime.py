from __future__ import annotations

import asyncio
import logging
import signal

from .builder import AppServices


logger = logging.getLogger(__name__)


class AppRuntime:
    """Run the dispatcher until shutdown or bad credentials."""

    def __init__(self, services: AppServices) -> None:
        self.svcs = services
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Block running the event loop; returns once the dispatcher stops."""
        if self._running:
            return
        self._running = True
        logger.info("[BOOT] Servo bot starting in %s mode", self.svcs.cfg.mode.upper())
        try:
            asyncio.run(self._main())
        finally:
            self._running = False
            self.stop()

    def stop(self) -> None:
        self.svcs.dispatcher.stop()
        servo = self.svcs.servo
        try:
            servo.relax()
        except OSError:
            logger.exception("[APP] Error relaxing servo during shutdown")
        try:
            servo.close()
        except OSError:
            logger.exception("[APP] Error closing servo bus during shutdown")

    async def _main(self) -> None:
        self._register_signal_handlers()
        await self.svcs.dispatcher.run()

    def _register_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.svcs.dispatcher.stop, f"signal {sig.name}")
            except (NotImplementedError, RuntimeError, ValueError):
                # Only available on Unix event loops running in the main
                # thread; elsewhere Ctrl-C falls back to KeyboardInterrupt.
                continue
