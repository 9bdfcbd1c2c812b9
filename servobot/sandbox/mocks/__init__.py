"""Mock backends for running servobot in sandbox mode."""
from .mock_servo import MockServo

__all__ = [
    "MockServo",
]
