"""Mock servo that only logs and records the angles it receives."""
from __future__ import annotations

import logging
from typing import List, Optional

from ...interface.base.servo_interface import IServo


class MockServo(IServo):
    """Simplified servo sink used in sandbox mode and tests.

    ``fail_with`` lets tests simulate a flaky I2C bus: while it is set, every
    :meth:`write` raises it instead of recording the angle.
    """

    def __init__(self) -> None:
        self.logger = logging.getLogger("mock.servo")
        self.history: List[float] = []
        self.relaxed = False
        self.fail_with: Optional[OSError] = None
        self.closed = False

    def write(self, angle_deg: float) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.history.append(float(angle_deg))
        self.relaxed = False
        self.logger.debug("[MOCK-SERVO] angle set to %.2f", angle_deg)

    def relax(self) -> None:
        self.relaxed = True
        self.logger.info("[MOCK-SERVO] relaxed")

    def close(self) -> None:
        self.closed = True
        self.logger.info("[MOCK-SERVO] closed")
