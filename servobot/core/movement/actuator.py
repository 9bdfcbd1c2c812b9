"""Clamped position/target model for the single servo.

:class:`ActuatorState` owns the current and target angle of the actuator and
is the only object allowed to write to the servo sink.  Two kinds of motion
exist:

``set_angle_direct``
    Jump straight to an angle.  ``current`` and ``target`` are updated
    together so a pending interpolation never pulls the servo back.

``set_target`` + ``step``
    Store a goal and let the interpolation loop walk ``current`` towards it
    by at most one ``step`` per tick.

Angles outside ``[0, 180]`` are clamped silently; nothing in this module
raises for a bad angle.
"""
from __future__ import annotations

import logging
import threading
from typing import Optional

from ...interface.base.servo_interface import IServo


logger = logging.getLogger(__name__)

ANGLE_MIN = 0.0
ANGLE_MAX = 180.0
CENTER_DEG = 90.0


def clamp(value: float, v_min: float, v_max: float) -> float:
    """Clamp ``value`` to the inclusive range ``[v_min, v_max]``."""
    if value < v_min:
        return v_min
    if value > v_max:
        return v_max
    return value


def clamp_angle(angle: float) -> float:
    """Clamp ``angle`` to the servo range ``[0, 180]`` degrees."""
    return clamp(float(angle), ANGLE_MIN, ANGLE_MAX)


def step_size(sweep_deg: float = 180.0, increments: int = 10) -> float:
    """Return the per-tick angular step for a sweep split in ``increments``."""
    if increments <= 0:
        raise ValueError("increments must be > 0")
    if sweep_deg <= 0:
        raise ValueError("sweep_deg must be > 0")
    return float(sweep_deg) / float(increments)


class ActuatorState:
    """Current/target angle pair for one servo.

    Parameters
    ----------
    servo:
        Sink receiving every angle the actuator moves to.
    step:
        Maximum change of ``current`` per :meth:`step` call, in degrees.
    center:
        Initial angle.  The servo is driven there on construction, so a
        failing sink surfaces immediately at startup.
    """

    def __init__(self, servo: IServo, *, step: float = 18.0, center: float = CENTER_DEG) -> None:
        if step <= 0:
            raise ValueError("step must be > 0")
        self._servo = servo
        self._step = float(step)
        self._center = clamp_angle(center)
        self._lock = threading.Lock()
        self._current = self._center
        self._target = self._center
        self._servo.write(self._center)
        logger.info("[SERVO] Actuator initialised at %.2f° (step %.2f°)", self._center, self._step)

    # ------------------------------------------------------------------
    @property
    def angle(self) -> float:
        return self._current

    @property
    def target(self) -> float:
        return self._target

    @property
    def step_deg(self) -> float:
        return self._step

    @property
    def center(self) -> float:
        return self._center

    def is_converged(self) -> bool:
        return self._current == self._target

    # ------------------------------------------------------------------
    def set_target(self, angle: float) -> None:
        """Store a new goal; movement happens on the following ticks."""
        with self._lock:
            self._target = clamp_angle(angle)
        logger.debug("[SERVO] Target set to %.2f°", self._target)

    # ------------------------------------------------------------------
    def set_angle_direct(self, angle: float) -> None:
        """Jump to ``angle`` and make it the new target in one operation."""
        with self._lock:
            angle = clamp_angle(angle)
            self._target = angle
            self._write(angle)
        logger.debug("[SERVO] Direct set to %.2f°", angle)

    # ------------------------------------------------------------------
    def step(self) -> Optional[float]:
        """Advance ``current`` one bounded step towards ``target``.

        Returns the angle written to the sink, or ``None`` when nothing
        moved: already at the target, or the sink rejected the write.
        """
        with self._lock:
            delta = self._target - self._current
            if delta == 0:
                return None
            if delta > 0:
                new_angle = self._current + min(self._step, delta)
            else:
                new_angle = self._current - min(self._step, -delta)
            # Snap to the target when within rounding error of it.
            if abs(self._target - new_angle) < 1e-9:
                new_angle = self._target
            if self._write(clamp_angle(new_angle)):
                return self._current
            return None

    # ------------------------------------------------------------------
    def _write(self, angle: float) -> bool:
        try:
            self._servo.write(angle)
        except OSError as exc:
            # Keep the last angle the servo actually accepted; the target
            # stays pending so the next tick retries.
            logger.warning("[SERVO] Write of %.2f° failed, holding %.2f°: %s", angle, self._current, exc)
            return False
        self._current = angle
        return True
