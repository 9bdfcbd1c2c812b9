from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from ...core.movement.actuator import ANGLE_MAX, ANGLE_MIN, ActuatorState
from ..services.reply_generator import ReplyGenerator


logger = logging.getLogger(__name__)


class Action(Enum):
    NUDGE_LEFT = "nudge_left"
    NUDGE_RIGHT = "nudge_right"
    JUMP_ZERO = "jump_zero"
    JUMP_CENTER = "jump_center"
    JUMP_MAX = "jump_max"
    QUERY_ANGLE = "query_angle"
    SHOW_HELP = "show_help"


class MatchPolicy(Enum):
    """How many table entries may fire for one message."""

    ALL = "all"
    FIRST = "first"


@dataclass(frozen=True)
class CommandEntry:
    """A pattern searched for anywhere in the normalised text."""

    pattern: str
    action: Action

    def matches(self, text: str) -> bool:
        return re.search(self.pattern, text) is not None


DEFAULT_COMMANDS: Tuple[Tuple[str, Action], ...] = (
    ("turn left", Action.NUDGE_LEFT),
    ("turn right", Action.NUDGE_RIGHT),
    ("full left", Action.JUMP_ZERO),
    ("center", Action.JUMP_CENTER),
    ("full right", Action.JUMP_MAX),
    ("angle", Action.QUERY_ANGLE),
    ("help", Action.SHOW_HELP),
)


def build_command_table(
    commands: Iterable[Tuple[str, Action]] = DEFAULT_COMMANDS,
) -> Tuple[CommandEntry, ...]:
    """Build the immutable, ordered command table."""
    table = tuple(CommandEntry(pattern, action) for pattern, action in commands)
    for entry in table:
        re.compile(entry.pattern)
    return table


def normalize(text: str) -> str:
    return text.strip().lower()


class CommandRouter:
    """Turn chat text into actuator actions and reply strings.

    Every entry whose pattern occurs in the message fires, in table order,
    unless the router runs with :attr:`MatchPolicy.FIRST`.  A message that
    matches nothing produces exactly one "not understood" reply and leaves
    the actuator untouched.
    """

    def __init__(
        self,
        actuator: ActuatorState,
        replies: ReplyGenerator,
        table: Optional[Tuple[CommandEntry, ...]] = None,
        *,
        policy: MatchPolicy | str = MatchPolicy.ALL,
    ) -> None:
        self.actuator = actuator
        self.replies = replies
        self.table = table if table is not None else build_command_table()
        self.policy = MatchPolicy(policy)
        self._handlers: Dict[Action, Callable[[], str]] = {
            Action.NUDGE_LEFT: self._nudge_left,
            Action.NUDGE_RIGHT: self._nudge_right,
            Action.JUMP_ZERO: self._jump_zero,
            Action.JUMP_CENTER: self._jump_center,
            Action.JUMP_MAX: self._jump_max,
            Action.QUERY_ANGLE: self._query_angle,
            Action.SHOW_HELP: self._show_help,
        }

    # ------------------------------------------------------------------
    def match(self, text: str) -> List[CommandEntry]:
        text = normalize(text)
        matched = [entry for entry in self.table if entry.matches(text)]
        if self.policy is MatchPolicy.FIRST:
            return matched[:1]
        return matched

    def handle(self, text: str) -> List[str]:
        """Run every matching action and return the replies to send."""
        matched = self.match(text)
        if not matched:
            logger.info("[CMD] No command in %r", text)
            return [self.replies.not_understood()]

        logger.info("[CMD] %r -> %s", text, ", ".join(e.action.value for e in matched))
        return [self._handlers[entry.action]() for entry in matched]

    # ------------------------------------------------------------------
    def _nudge_left(self) -> str:
        self.actuator.set_angle_direct(self.actuator.angle - self.actuator.step_deg)
        return self.replies.acknowledge()

    def _nudge_right(self) -> str:
        self.actuator.set_angle_direct(self.actuator.angle + self.actuator.step_deg)
        return self.replies.acknowledge()

    def _jump_zero(self) -> str:
        self.actuator.set_target(ANGLE_MIN)
        return self.replies.acknowledge()

    def _jump_center(self) -> str:
        self.actuator.set_target(self.actuator.center)
        return self.replies.acknowledge()

    def _jump_max(self) -> str:
        self.actuator.set_target(ANGLE_MAX)
        return self.replies.acknowledge()

    def _query_angle(self) -> str:
        return self.replies.angle(self.actuator.angle)

    def _show_help(self) -> str:
        return self.replies.help()
