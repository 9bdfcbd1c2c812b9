from pathlib import Path

import pytest

from servobot.app.config import CONFIG_PATH, ConfigError, load_config


ENV = {"SERVOBOT_TOKEN": "xoxb-test"}


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.toml"
    path.write_text(text, encoding="utf-8")
    return path


def test_defaults_when_file_missing(tmp_path):
    cfg = load_config(tmp_path / "missing.toml", environ=ENV)
    assert cfg.mode == "sandbox"
    assert cfg.servo.center_deg == 90.0
    assert cfg.servo.sweep_deg / cfg.servo.increments == 18.0
    assert cfg.servo.tick_ms == 200
    assert cfg.chat.match_policy == "all"
    assert cfg.chat.seed is None
    assert cfg.token == "xoxb-test"


def test_shipped_config_loads():
    cfg = load_config(CONFIG_PATH, environ=ENV)
    assert cfg.servo.address == 0x40
    assert cfg.chat.token_env == "SERVOBOT_TOKEN"


def test_values_from_file(tmp_path):
    path = _write(
        tmp_path,
        """
mode = "REAL"

[servo]
channel = 3
address = 0x41
increments = 20
tick_ms = 50

[chat]
url = "ws://relay.local/chat"
match_policy = "first"
seed = 99
token_env = "BOT_TOKEN"
""",
    )
    cfg = load_config(path, environ={"BOT_TOKEN": "abc"})
    assert cfg.mode == "real"
    assert cfg.servo.channel == 3
    assert cfg.servo.address == 0x41
    assert cfg.servo.increments == 20
    assert cfg.servo.tick_ms == 50
    assert cfg.chat.url == "ws://relay.local/chat"
    assert cfg.chat.match_policy == "first"
    assert cfg.chat.seed == 99
    assert cfg.token == "abc"


@pytest.mark.parametrize("environ", [{}, {"SERVOBOT_TOKEN": "   "}])
def test_missing_token_is_fatal(tmp_path, environ):
    with pytest.raises(ConfigError, match="SERVOBOT_TOKEN"):
        load_config(tmp_path / "missing.toml", environ=environ)


@pytest.mark.parametrize(
    "text",
    [
        'mode = "simulation"',
        "[chat]\nmatch_policy = \"best\"",
        "[servo]\nincrements = 0",
        "[servo]\ntick_ms = -1",
        "servo = 3",
        "not toml at all [",
    ],
)
def test_invalid_values_rejected(tmp_path, text):
    with pytest.raises(ConfigError):
        load_config(_write(tmp_path, text), environ=ENV)


@pytest.mark.parametrize(
    "text, key",
    [
        ('[servo]\ntick_ms = "fast"', "servo.tick_ms"),
        ('[servo]\nchannel = "left"', "servo.channel"),
        ("[servo]\nfreq_hz = [50]", "servo.freq_hz"),
        ('[chat]\nreconnect_delay = "soon"', "chat.reconnect_delay"),
        ('[chat]\nseed = "lucky"', "chat.seed"),
    ],
)
def test_non_numeric_values_raise_config_error(tmp_path, text, key):
    with pytest.raises(ConfigError, match=key):
        load_config(_write(tmp_path, text), environ=ENV)


@pytest.mark.parametrize("channel", [-1, 16])
def test_channel_outside_pca9685_range_rejected(tmp_path, channel):
    with pytest.raises(ConfigError, match="servo.channel"):
        load_config(_write(tmp_path, f"[servo]\nchannel = {channel}"), environ=ENV)


def test_channel_bounds_accepted(tmp_path):
    assert load_config(_write(tmp_path, "[servo]\nchannel = 15"), environ=ENV).servo.channel == 15
    assert load_config(_write(tmp_path, "[servo]\nchannel = 0"), environ=ENV).servo.channel == 0


def test_zero_pwm_frequency_rejected(tmp_path):
    with pytest.raises(ConfigError, match="freq_hz"):
        load_config(_write(tmp_path, "[servo]\nfreq_hz = 0"), environ=ENV)
