import logging

from ...interface.base.servo_interface import IServo
from .PCA9685 import PCA9685


logger = logging.getLogger(__name__)


class Servo(IServo):
    """
    @brief Single hobby servo on one PCA9685 channel.
    @details
    0 deg maps to ``pulse_min_us`` and 180 deg to ``pulse_max_us``
    (1.0ms / 2.0ms of a 20ms frame by default, 1.5ms is centre).
    """

    def __init__(self,
                 channel=0,
                 address=0x40,
                 i2c_bus=1,
                 pulse_min_us=1000,
                 pulse_max_us=2000,
                 freq_hz=50,
                 pwm=None):
        self.channel = channel
        self.pulse_min_us = pulse_min_us
        self.pulse_max_us = pulse_max_us

        self.pwm = pwm or PCA9685(address=address, i2c_bus=i2c_bus)
        self.pwm.set_pwm_freq(freq_hz)
        logger.info("[SERVO] PCA9685 0x%02X channel %d ready @ %sHz", address, channel, freq_hz)

    @staticmethod
    def _map(value, from_low, from_high, to_low, to_high):
        return (to_high - to_low) * (value - from_low) / (from_high - from_low) + to_low

    def pulse_for(self, angle_deg):
        angle_deg = max(0.0, min(180.0, float(angle_deg)))
        return self._map(angle_deg, 0, 180, self.pulse_min_us, self.pulse_max_us)

    def write(self, angle_deg):
        self.pwm.set_servo_pulse(self.channel, self.pulse_for(angle_deg))

    def relax(self):
        self.pwm.set_pwm(self.channel, 0, 0)


    def close(self):
        self.pwm.close()
