from __future__ import annotations

import random
from typing import Optional, Sequence


ACK_REPLIES = (
    "Umm ok, I can do that for you!",
    "You must be management, snooping around.",
    "Looking for waldo? Let me see what I can do.",
    "Getting right on that boss!",
)

ERROR_REPLIES = (
    "Not sure I know what you mean. Type `help` and such.",
    "You must be looking for the `help`?",
    "Are you sure that is a valid command?",
)

HELP_MESSAGE = (
    "I am a servo control bot! You can tell me to `turn left`, `turn right`, "
    "`center`, or ask me for my current `angle`. You can even say things like "
    "`full left` or `full right`."
)


class ReplyGenerator:
    """Build the text sent back to the chat.

    Reply variety comes from ``rng`` only, so seeding it makes every reply
    reproducible.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        *,
        acks: Sequence[str] = ACK_REPLIES,
        errors: Sequence[str] = ERROR_REPLIES,
        help_message: str = HELP_MESSAGE,
    ) -> None:
        if not acks or not errors:
            raise ValueError("reply pools must not be empty")
        self.rng = rng or random.Random()
        self.acks = tuple(acks)
        self.errors = tuple(errors)
        self.help_message = help_message

    def acknowledge(self) -> str:
        return self.rng.choice(self.acks)

    def not_understood(self) -> str:
        return self.rng.choice(self.errors)

    def angle(self, angle_deg: float) -> str:
        # The space flag pads positive values: 90 -> "Current angle:  90.00°".
        return f"Current angle: {angle_deg: .2f}°"

    def help(self) -> str:
        return self.help_message
