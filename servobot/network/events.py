"""Events consumed by the dispatcher.

The chat client turns raw transport frames into one of the chat events
below; the interpolation loop contributes :class:`Tick`.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class TextMessage:
    text: str
    reply_target: str


@dataclass(frozen=True)
class TransportError:
    detail: str


@dataclass(frozen=True)
class FatalAuth:
    detail: str = "invalid credentials"


@dataclass(frozen=True)
class Tick:
    pass


ChatEvent = Union[TextMessage, TransportError, FatalAuth]
Event = Union[TextMessage, TransportError, FatalAuth, Tick]
