from abc import ABC, abstractmethod


class IServo(ABC):
    """
    Abstract base interface for the actuator sink.

    Implementations may be hardware-backed or simulated.
    The actuator state only ever talks to this interface, so the
    interpolation logic is the same regardless of the backend.
    """

    @abstractmethod
    def write(self, angle_deg: float):
        """Drive the servo to ``angle_deg`` (already clamped to [0, 180])."""
        pass

    @abstractmethod
    def relax(self):
        """Stop driving the output."""
        pass

    @abstractmethod
    def close(self):
        """Release the underlying bus; the servo is not written afterwards."""
        pass
