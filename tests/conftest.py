from __future__ import annotations

import asyncio
import random
from typing import List, Sequence, Tuple

import pytest

from servobot.app.controllers.command_router import CommandRouter
from servobot.app.services.reply_generator import ReplyGenerator
from servobot.core.movement.actuator import ActuatorState
from servobot.network.events import ChatEvent
from servobot.sandbox.mocks import MockServo


class FakeChat:
    """Chat channel replaying ``events`` then idling until closed."""

    def __init__(self, events: Sequence[ChatEvent] = ()) -> None:
        self._events = list(events)
        self.sent: List[Tuple[str, str]] = []
        self.closed = False

    async def events(self):
        for event in self._events:
            yield event
        await asyncio.Event().wait()

    async def send(self, reply_target: str, text: str) -> None:
        self.sent.append((reply_target, text))

    async def close(self) -> None:
        self.closed = True


@pytest.fixture()
def servo() -> MockServo:
    return MockServo()


@pytest.fixture()
def actuator(servo: MockServo) -> ActuatorState:
    return ActuatorState(servo, step=18.0, center=90.0)


@pytest.fixture()
def replies() -> ReplyGenerator:
    return ReplyGenerator(random.Random(1234))


@pytest.fixture()
def router(actuator: ActuatorState, replies: ReplyGenerator) -> CommandRouter:
    return CommandRouter(actuator, replies)
