import pytest

from servobot.core.movement.PCA9685 import PCA9685
from servobot.core.movement.actuator import ActuatorState
from servobot.core.movement.servo import Servo


class FakeBus:
    def __init__(self):
        self.writes = []
        self.fail = False
        self.closed = False

    def write_byte_data(self, address, reg, value):
        if self.fail:
            raise OSError("Remote I/O error")
        self.writes.append((address, reg, value))

    def read_byte_data(self, address, reg):
        return 0x00

    def close(self):
        self.closed = True


def _servo(channel=0, address=0x40):
    bus = FakeBus()
    pwm = PCA9685(address=address, bus=bus)
    return Servo(channel=channel, address=address, pwm=pwm), bus


def _channel_off_count(bus, channel):
    base = 0x06 + 4 * channel
    regs = {reg: value for _, reg, value in bus.writes}
    return regs[base + 2] | (regs[base + 3] << 8)


def test_frequency_prescale():
    servo, bus = _servo()
    assert (0x40, 0xFE, 121) in bus.writes
    assert servo.pwm.freq_hz == 50.0


@pytest.mark.parametrize("angle, count", [(0, 204), (90, 307), (180, 409)])
def test_angle_to_pulse(angle, count):
    servo, bus = _servo()
    servo.write(angle)
    assert _channel_off_count(bus, 0) == count


def test_channel_registers_and_address():
    servo, bus = _servo(channel=3, address=0x41)
    servo.write(90)
    assert bus.writes[-4:] == [(0x41, 0x12, 0), (0x41, 0x13, 0), (0x41, 0x14, 51), (0x41, 0x15, 1)]


def test_pulse_is_clamped():
    servo, _ = _servo()
    assert servo.pulse_for(-20) == 1000
    assert servo.pulse_for(400) == 2000
    assert servo.pulse_for(45) == 1250


def test_relax_turns_output_off():
    servo, bus = _servo()
    servo.write(90)
    servo.relax()
    assert _channel_off_count(bus, 0) == 0


def test_invalid_channel_and_frequency():
    servo, _ = _servo(channel=16)
    with pytest.raises(ValueError):
        servo.write(90)
    with pytest.raises(ValueError):
        servo.pwm.set_pwm_freq(0)


def test_bus_failure_is_recoverable_through_actuator():
    servo, bus = _servo()
    actuator = ActuatorState(servo, step=18.0)
    actuator.set_target(0)

    bus.fail = True
    assert actuator.step() is None
    assert actuator.angle == 90.0

    bus.fail = False
    assert actuator.step() == 72.0


def test_close_closes_bus():
    servo, bus = _servo()
    servo.close()
    assert bus.closed is True
