import asyncio
import time

from servobot.app.controllers.command_router import CommandRouter
from servobot.app.controllers.event_dispatcher import EventDispatcher
from servobot.app.services.interpolation import InterpolationLoop
from servobot.app.services.reply_generator import ACK_REPLIES
from servobot.core.movement.actuator import ActuatorState
from servobot.network.events import FatalAuth, TextMessage, Tick, TransportError
from servobot.sandbox.mocks import MockServo

from conftest import FakeChat


def _dispatcher(router, actuator, events, period=0.2):
    chat = FakeChat(events)
    return EventDispatcher(chat, router, InterpolationLoop(actuator, period=period)), chat


def test_fatal_auth_ends_loop(router, actuator):
    dispatcher, chat = _dispatcher(router, actuator, [TextMessage("turn left", "C1"), FatalAuth()])

    asyncio.run(asyncio.wait_for(dispatcher.run(), timeout=5))

    assert len(chat.sent) == 1
    assert chat.sent[0][0] == "C1"
    assert chat.sent[0][1] in ACK_REPLIES
    assert actuator.angle == 72.0
    assert dispatcher.exit_reason == "invalid credentials"
    assert chat.closed is True
    assert not dispatcher.running


def test_transport_error_is_logged_and_loop_continues(router, actuator, caplog):
    dispatcher, chat = _dispatcher(
        router,
        actuator,
        [TransportError("socket hiccup"), TextMessage("angle", "C2"), FatalAuth()],
    )

    with caplog.at_level("WARNING"):
        asyncio.run(asyncio.wait_for(dispatcher.run(), timeout=5))

    assert "socket hiccup" in caplog.text
    assert chat.sent == [("C2", "Current angle:  90.00°")]


def test_unknown_text_gets_single_reply(router, actuator, servo):
    dispatcher, chat = _dispatcher(router, actuator, [TextMessage("banana", "C3"), FatalAuth()])

    asyncio.run(asyncio.wait_for(dispatcher.run(), timeout=5))

    assert len(chat.sent) == 1
    assert servo.history == [90.0]


def test_ticks_converge_then_stop(router, actuator, servo):
    dispatcher, chat = _dispatcher(router, actuator, [TextMessage("full left", "C4")], period=0.001)

    async def runner():
        task = asyncio.create_task(dispatcher.run())
        for _ in range(2000):
            if actuator.angle == 0.0:
                break
            await asyncio.sleep(0.005)
        dispatcher.stop()
        await asyncio.wait_for(task, timeout=5)

    asyncio.run(runner())

    assert servo.history == [90.0, 72.0, 54.0, 36.0, 18.0, 0.0]
    assert dispatcher.interpolation.tick_count >= 5
    assert dispatcher.exit_reason == "stop requested"
    assert chat.closed is True


def test_handle_single_events(router, actuator):
    dispatcher, chat = _dispatcher(router, actuator, [])
    actuator.set_target(100)

    async def runner():
        return [
            await dispatcher.handle(Tick()),
            await dispatcher.handle(TransportError("x")),
            await dispatcher.handle(FatalAuth()),
        ]

    assert asyncio.run(runner()) == [True, True, False]
    assert actuator.angle == 100.0


def test_stop_before_run_is_noop(router, actuator):
    dispatcher, _ = _dispatcher(router, actuator, [])
    dispatcher.stop()
    assert dispatcher.exit_reason is None


class SlowChat(FakeChat):
    """Chat channel whose every send takes ``delay`` seconds."""

    def __init__(self, events, delay):
        super().__init__(events)
        self.delay = delay

    async def send(self, reply_target, text):
        await asyncio.sleep(self.delay)
        await super().send(reply_target, text)


class TimedServo(MockServo):
    def __init__(self):
        super().__init__()
        self.stamps = []

    def write(self, angle_deg):
        super().write(angle_deg)
        self.stamps.append(time.monotonic())


def test_slow_send_does_not_bunch_steps(replies):
    period = 0.05
    servo = TimedServo()
    actuator = ActuatorState(servo, step=18.0, center=90.0)
    chat = SlowChat([TextMessage("full left", "C5")], delay=0.5)
    dispatcher = EventDispatcher(chat, CommandRouter(actuator, replies), InterpolationLoop(actuator, period=period))

    async def runner():
        task = asyncio.create_task(dispatcher.run())
        for _ in range(500):
            if actuator.angle == 0.0:
                break
            await asyncio.sleep(0.01)
        dispatcher.stop()
        await asyncio.wait_for(task, timeout=5)

    asyncio.run(runner())

    assert servo.history == [90.0, 72.0, 54.0, 36.0, 18.0, 0.0]
    moves = servo.stamps[1:]
    gaps = [later - earlier for earlier, later in zip(moves, moves[1:])]
    assert all(gap >= period * 0.5 for gap in gaps)
    assert moves[-1] - moves[0] >= 4 * period * 0.5
    # The reply still goes out before the connection closes.
    assert len(chat.sent) == 1
    assert chat.sent[0][1] in ACK_REPLIES
    assert chat.closed is True


def test_handle_does_not_wait_for_send(router, actuator):
    chat = SlowChat([], delay=5.0)
    dispatcher = EventDispatcher(chat, router, InterpolationLoop(actuator), flush_timeout=0.05)

    async def runner():
        task = asyncio.create_task(dispatcher.run())
        await asyncio.sleep(0)
        keep_going = await asyncio.wait_for(dispatcher.handle(TextMessage("center", "C6")), timeout=0.5)
        dispatcher.stop()
        await asyncio.wait_for(task, timeout=5)
        return keep_going

    assert asyncio.run(runner()) is True
    # The stuck send is abandoned after the flush timeout.
    assert chat.sent == []
    assert chat.closed is True
    assert not dispatcher.running


def test_reply_outside_run_is_dropped(router, actuator, caplog):
    dispatcher, chat = _dispatcher(router, actuator, [])

    with caplog.at_level("WARNING"):
        assert asyncio.run(dispatcher.handle(TextMessage("angle", "C7"))) is True

    assert chat.sent == []
    assert "dispatcher not running" in caplog.text
