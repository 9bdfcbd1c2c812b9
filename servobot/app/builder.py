from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Optional

from ..core.movement.actuator import ActuatorState, step_size
from ..interface.base.servo_interface import IServo
from ..network.chat_client import ChatClient
from .config import AppConfig, ServoConfig
from .controllers.command_router import CommandRouter, build_command_table
from .controllers.event_dispatcher import EventDispatcher
from .services.interpolation import InterpolationLoop
from .services.reply_generator import ReplyGenerator


logger = logging.getLogger(__name__)


@dataclass
class AppServices:
    """Container for the services used by the application runtime."""

    cfg: AppConfig
    servo: IServo
    actuator: ActuatorState
    replies: ReplyGenerator
    router: CommandRouter
    chat: ChatClient
    interpolation: InterpolationLoop
    dispatcher: EventDispatcher


def _build_servo(mode: str, cfg: ServoConfig) -> IServo:
    if mode == "sandbox":
        from ..sandbox.mocks import MockServo

        logger.info("[BOOT] Sandbox mode, using mock servo")
        return MockServo()

    from ..core.movement.servo import Servo

    return Servo(
        channel=cfg.channel,
        address=cfg.address,
        i2c_bus=cfg.i2c_bus,
        pulse_min_us=cfg.pulse_min_us,
        pulse_max_us=cfg.pulse_max_us,
        freq_hz=cfg.freq_hz,
    )


def build(
    cfg: AppConfig,
    *,
    servo: Optional[IServo] = None,
    chat: Optional[ChatClient] = None,
) -> AppServices:
    """Wire every service from ``cfg``.

    Servo construction errors (``OSError`` from the I2C bus) propagate: a bot
    that cannot drive its servo must not start.
    """
    servo = servo or _build_servo(cfg.mode, cfg.servo)
    actuator = ActuatorState(
        servo,
        step=step_size(cfg.servo.sweep_deg, cfg.servo.increments),
        center=cfg.servo.center_deg,
    )
    replies = ReplyGenerator(random.Random(cfg.chat.seed))
    router = CommandRouter(
        actuator,
        replies,
        build_command_table(),
        policy=cfg.chat.match_policy,
    )
    chat = chat or ChatClient(
        cfg.chat.url,
        cfg.token,
        reconnect_delay=cfg.chat.reconnect_delay,
    )
    interpolation = InterpolationLoop(actuator, period=cfg.servo.tick_ms / 1000.0)
    dispatcher = EventDispatcher(chat, router, interpolation)

    return AppServices(
        cfg=cfg,
        servo=servo,
        actuator=actuator,
        replies=replies,
        router=router,
        chat=chat,
        interpolation=interpolation,
        dispatcher=dispatcher,
    )
