"""Fixed-rate ticker that walks the actuator towards its target."""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from ...core.movement.actuator import ActuatorState
from ...network.events import Tick


logger = logging.getLogger(__name__)


class InterpolationLoop:
    """Emit a :class:`Tick` every ``period`` seconds.

    The loop never touches the actuator from :meth:`run`; ticks go through
    the dispatcher queue and the dispatcher calls :meth:`on_tick`, so all
    actuator writes happen on one task.

    At most one tick is pending in the queue at a time, and a late wake-up
    moves the schedule forward instead of replaying the missed ticks, so a
    stalled consumer never turns into a burst of steps.
    """

    def __init__(self, actuator: ActuatorState, period: float = 0.2) -> None:
        if period <= 0:
            raise ValueError("period must be > 0")
        self.actuator = actuator
        self.period = float(period)
        self.tick_count = 0
        self._tick_pending = False

    def on_tick(self) -> Optional[float]:
        self._tick_pending = False
        self.tick_count += 1
        moved_to = self.actuator.step()
        if moved_to is not None:
            logger.debug("[INTERP] tick %d -> %.2f° (target %.2f°)", self.tick_count, moved_to, self.actuator.target)
        return moved_to

    async def run(self, queue: "asyncio.Queue[object]") -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time()
        self._tick_pending = False
        logger.info("[INTERP] Ticking every %.0f ms", self.period * 1000)
        while True:
            deadline += self.period
            await asyncio.sleep(max(0.0, deadline - loop.time()))
            # A late wake-up moves the schedule forward; missed ticks are dropped.
            deadline = max(deadline, loop.time())
            if self._tick_pending:
                continue
            self._tick_pending = True
            queue.put_nowait(Tick())
