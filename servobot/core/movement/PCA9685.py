import logging
import math
import time

from smbus2 import SMBus


logger = logging.getLogger(__name__)


class PCA9685:
    """
    @brief Driver for the PCA9685 16-channel PWM controller.
    @details
    Configures the PWM frequency and drives individual channels via I2C.
    Bus errors are logged and re-raised as ``OSError`` so callers decide
    whether a failed write is fatal.
    """

    # Register addresses
    __MODE1 = 0x00
    __PRESCALE = 0xFE
    __LED0_ON_L = 0x06

    OSC_HZ = 25_000_000.0
    RESOLUTION = 4096

    def __init__(self, address=0x40, i2c_bus=1, bus=None):
        """
        @brief Opens the I2C bus and resets the controller.
        @param address I2C address of the PCA9685.
        @param i2c_bus I2C bus number (1 for Raspberry Pi >= Rev 2).
        @param bus Pre-opened SMBus-like object, mainly for tests.
        @throws OSError if the I2C bus/device cannot be opened.
        """
        self.address = address
        self.freq_hz = None
        if bus is None:
            try:
                bus = SMBus(i2c_bus)
            except OSError as e:
                raise OSError(f"Unable to open I2C bus {i2c_bus}: {e}") from e
        self.bus = bus
        self._write(self.__MODE1, 0x00)  # Reset MODE1 register

    # ------------------------ Low-level I2C ------------------------

    def _write(self, reg, value):
        try:
            self.bus.write_byte_data(self.address, reg, value & 0xFF)
        except OSError as e:
            logger.debug("[PCA9685] WRITE FAILED addr=0x%02X reg=0x%02X: %s", self.address, reg, e)
            raise

    def _read(self, reg):
        try:
            return self.bus.read_byte_data(self.address, reg)
        except OSError as e:
            logger.debug("[PCA9685] READ FAILED addr=0x%02X reg=0x%02X: %s", self.address, reg, e)
            raise

    # ------------------------ High-level API ------------------------

    def set_pwm_freq(self, freq):
        """
        @brief Sets the PWM frequency for all channels.
        @param freq Desired frequency in Hz.
        """
        if freq <= 0:
            raise ValueError("freq must be > 0")

        prescaleval = self.OSC_HZ / self.RESOLUTION / float(freq) - 1.0
        prescale = math.floor(prescaleval + 0.5)

        oldmode = self._read(self.__MODE1)
        newmode = (oldmode & 0x7F) | 0x10  # Sleep
        self._write(self.__MODE1, newmode)
        self._write(self.__PRESCALE, int(prescale))
        self._write(self.__MODE1, oldmode)
        time.sleep(0.005)
        self._write(self.__MODE1, oldmode | 0x80)  # Restart
        self.freq_hz = float(freq)

    def set_pwm(self, channel, on, off):
        """
        @brief Sets the PWM on/off counts for a specific channel.
        @param channel Channel number (0-15).
        @param on Count at which the output turns on (0-4095).
        @param off Count at which the output turns off (0-4095).
        """
        if not 0 <= channel <= 15:
            raise ValueError("channel must be in [0, 15]")
        on = max(0, min(self.RESOLUTION - 1, int(on)))
        off = max(0, min(self.RESOLUTION - 1, int(off)))

        base = self.__LED0_ON_L + 4 * channel
        self._write(base + 0, on & 0xFF)
        self._write(base + 1, on >> 8)
        self._write(base + 2, off & 0xFF)
        self._write(base + 3, off >> 8)

    def set_servo_pulse(self, channel, pulse_us):
        """
        @brief Sets the servo pulse width for a specific channel.
        @details
        Converts microseconds to a 12-bit count using the configured
        frequency (50Hz when none was set, i.e. a 20,000us period).
        @param channel Channel number (0-15).
        @param pulse_us Pulse width in microseconds.
        """
        period_us = 1_000_000.0 / (self.freq_hz or 50.0)
        ticks = int(pulse_us * self.RESOLUTION / period_us)
        self.set_pwm(channel, 0, ticks)

    def close(self):
        self.bus.close()
