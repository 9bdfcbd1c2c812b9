from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional
import tomllib


CONFIG_PATH = Path(__file__).with_name("config.toml")


class ConfigError(RuntimeError):
    """Raised when the configuration cannot be used to start the bot."""


@dataclass
class ServoConfig:
    """Configuration for the servo and its interpolation."""
    channel: int = 0
    address: int = 0x40
    i2c_bus: int = 1
    freq_hz: float = 50.0
    pulse_min_us: float = 1000.0
    pulse_max_us: float = 2000.0
    center_deg: float = 90.0
    sweep_deg: float = 180.0
    increments: int = 10
    tick_ms: int = 200


@dataclass
class ChatConfig:
    """Configuration for the chat relay connection."""
    url: str = "ws://127.0.0.1:8765/chat"
    reconnect_delay: float = 5.0
    match_policy: str = "all"  # "all" or "first"
    seed: Optional[int] = None
    token_env: str = "SERVOBOT_TOKEN"


@dataclass
class LoggingConfig:
    """Where the JSON logging configuration lives."""
    config: str = ""


@dataclass
class AppConfig:
    """Top-level application configuration."""
    mode: str = "sandbox"  # "sandbox" or "real"
    servo: ServoConfig = field(default_factory=ServoConfig)
    chat: ChatConfig = field(default_factory=ChatConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    token: str = ""


def _section(data: Mapping, name: str) -> Mapping:
    section = data.get(name, {})
    if not isinstance(section, Mapping):
        raise ConfigError(f"[{name}] must be a table")
    return section


def _number(section: str, data: Mapping, key: str, default, kind):
    value = data.get(key, default)
    try:
        return kind(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{section}.{key} must be a number, got {value!r}") from exc


def load_config(
    path: Path | str = CONFIG_PATH,
    environ: Optional[Mapping[str, str]] = None,
) -> AppConfig:
    """Load configuration from ``path`` with sensible defaults.

    The chat token is read from the environment variable named by
    ``chat.token_env``; a missing or empty token raises :class:`ConfigError`.
    """

    environ = os.environ if environ is None else environ
    cfg_path = Path(path)
    data = {}
    if cfg_path.exists():
        try:
            with cfg_path.open("rb") as fh:
                data = tomllib.load(fh)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Invalid configuration file {cfg_path}: {exc}") from exc

    mode = str(data.get("mode", "sandbox")).lower()
    if mode not in {"sandbox", "real"}:
        raise ConfigError(f"Unknown mode {mode!r}, expected 'sandbox' or 'real'")

    servo_defaults = ServoConfig()
    servo_data = _section(data, "servo")
    servo = ServoConfig(
        channel=_number("servo", servo_data, "channel", servo_defaults.channel, int),
        address=_number("servo", servo_data, "address", servo_defaults.address, int),
        i2c_bus=_number("servo", servo_data, "i2c_bus", servo_defaults.i2c_bus, int),
        freq_hz=_number("servo", servo_data, "freq_hz", servo_defaults.freq_hz, float),
        pulse_min_us=_number("servo", servo_data, "pulse_min_us", servo_defaults.pulse_min_us, float),
        pulse_max_us=_number("servo", servo_data, "pulse_max_us", servo_defaults.pulse_max_us, float),
        center_deg=_number("servo", servo_data, "center_deg", servo_defaults.center_deg, float),
        sweep_deg=_number("servo", servo_data, "sweep_deg", servo_defaults.sweep_deg, float),
        increments=_number("servo", servo_data, "increments", servo_defaults.increments, int),
        tick_ms=_number("servo", servo_data, "tick_ms", servo_defaults.tick_ms, int),
    )
    if servo.increments <= 0 or servo.sweep_deg <= 0:
        raise ConfigError("servo.sweep_deg and servo.increments must be > 0")
    if servo.tick_ms <= 0:
        raise ConfigError("servo.tick_ms must be > 0")
    if not 0 <= servo.channel <= 15:
        raise ConfigError(f"servo.channel must be in 0..15, got {servo.channel}")
    if servo.freq_hz <= 0:
        raise ConfigError("servo.freq_hz must be > 0")

    chat_defaults = ChatConfig()
    chat_data = _section(data, "chat")
    seed = chat_data.get("seed", chat_defaults.seed)
    chat = ChatConfig(
        url=str(chat_data.get("url", chat_defaults.url)),
        reconnect_delay=_number("chat", chat_data, "reconnect_delay", chat_defaults.reconnect_delay, float),
        match_policy=str(chat_data.get("match_policy", chat_defaults.match_policy)).lower(),
        seed=_number("chat", chat_data, "seed", seed, int) if seed is not None else None,
        token_env=str(chat_data.get("token_env", chat_defaults.token_env)),
    )
    if chat.match_policy not in {"all", "first"}:
        raise ConfigError(f"Unknown chat.match_policy {chat.match_policy!r}")

    logging_data = _section(data, "logging")
    logging_cfg = LoggingConfig(config=str(logging_data.get("config", "")))

    token = environ.get(chat.token_env, "").strip()
    if not token:
        raise ConfigError(f'"{chat.token_env}" env value missing')

    return AppConfig(
        mode=mode,
        servo=servo,
        chat=chat,
        logging=logging_cfg,
        token=token,
    )
