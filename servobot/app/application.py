from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from .builder import build
from .config import CONFIG_PATH, ConfigError, load_config
from .logging_utils.logging_config import setup_logging
from .runtime import AppRuntime


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Chat-controlled servo bot")
    parser.add_argument(
        "--config",
        type=str,
        default=str(CONFIG_PATH),
        help="Path to the TOML configuration file.",
    )
    return parser.parse_args(argv)


def _fatal(exc: BaseException) -> int:
    print(f"Fatal error: {exc}", file=sys.stderr)
    return 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    try:
        cfg = load_config(args.config)
    except ConfigError as exc:
        return _fatal(exc)

    setup_logging(cfg.logging.config or None)
    app_logger = logging.getLogger("servobot.app.application")

    try:
        services = build(cfg)
    except OSError as exc:
        app_logger.error("[APP] Servo initialisation failed: %s", exc)
        return _fatal(exc)

    runtime = AppRuntime(services)
    try:
        runtime.start()
    except KeyboardInterrupt:
        app_logger.info("[APP] Ctrl-C received, shutting down...")
    return 0


if __name__ == "__main__":
    sys.exit(main())
