"""Logging setup driven by ``logging_config.json``.

The JSON file has two sections:

``root``
    ``level``, ``format``, ``file`` (rotating log, ``null`` for none),
    ``max_bytes``, ``backup_count`` and ``echo_to_console``.

``modules``
    Logger-name prefix to level.  A prefix applies to the logger of that
    name and every child logger already created; ``"NONE"`` silences it.

``SERVOBOT_LOG_LEVEL`` in the environment overrides the root level.
CRITICAL records always reach stderr.
"""
from __future__ import annotations

import json
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, List, Mapping, Optional

CONFIG_PATH = Path(__file__).resolve().parent / "logging_config.json"
LEVEL_ENV = "SERVOBOT_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"

# Name given to every handler installed here, so a second setup replaces them.
_HANDLER_NAME = "servobot"

logger = logging.getLogger(__name__)


def _level_value(name: str) -> Optional[int]:
    value = logging.getLevelName(name.upper().strip())
    return value if isinstance(value, int) else None


def _load(config_path: Path) -> Dict:
    if not config_path.exists():
        raise FileNotFoundError(f"Logging configuration not found: {config_path}")
    with config_path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


def _build_handlers(root_cfg: Mapping) -> List[logging.Handler]:
    formatter = logging.Formatter(root_cfg.get("format", DEFAULT_FORMAT))
    handlers: List[logging.Handler] = []

    log_file = root_cfg.get("file", "servobot.log")
    if log_file:
        handlers.append(
            RotatingFileHandler(
                Path(log_file),
                maxBytes=int(root_cfg.get("max_bytes", 1_048_576)),
                backupCount=int(root_cfg.get("backup_count", 3)),
                encoding="utf-8",
                delay=True,
            )
        )
    if root_cfg.get("echo_to_console", False):
        handlers.append(logging.StreamHandler(sys.stdout))

    critical = logging.StreamHandler(sys.stderr)
    critical.setLevel(logging.CRITICAL)
    handlers.append(critical)

    for handler in handlers:
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(formatter)
    return handlers


def _install(root: logging.Logger, handlers: List[logging.Handler]) -> None:
    for old in [h for h in root.handlers if h.get_name() == _HANDLER_NAME]:
        root.removeHandler(old)
        old.close()
    for handler in handlers:
        root.addHandler(handler)


def _apply_module_level(prefix: str, level_name: str) -> str:
    level_name = str(level_name).upper().strip()
    known = [name for name in logging.root.manager.loggerDict if name.startswith(prefix + ".")]
    targets = [logging.getLogger(name) for name in [prefix, *known]]

    if level_name == "NONE":
        for lg in targets:
            lg.disabled = True
            lg.propagate = False
        return f"{prefix}: DISABLED"

    level = _level_value(level_name)
    if level is None:
        logger.warning("[LOGGING] Invalid level %r for %r, using INFO", level_name, prefix)
        level, level_name = logging.INFO, f"INVALID({level_name})->INFO"
    for lg in targets:
        lg.setLevel(level)
    return f"{prefix}: {level_name}"


def setup_logging(config_path=CONFIG_PATH, environ: Optional[Mapping[str, str]] = None) -> List[str]:
    """Configure logging from ``config_path`` and return the per-module summary."""
    environ = os.environ if environ is None else environ
    config_path = Path(config_path or CONFIG_PATH)
    config = _load(config_path)

    root_cfg = config.get("root", {})
    root = logging.getLogger()
    _install(root, _build_handlers(root_cfg))

    level_name = environ.get(LEVEL_ENV) or root_cfg.get("level", "INFO")
    root_level = _level_value(level_name)
    root.setLevel(logging.INFO if root_level is None else root_level)

    summary = [_apply_module_level(prefix, level) for prefix, level in config.get("modules", {}).items()]

    logger.info("[LOGGING] Configuration loaded from %s (root %s)", config_path, logging.getLevelName(root.level))
    for entry in summary:
        logger.info("[LOGGING]     - %s", entry)
    return summary
