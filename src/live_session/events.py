"""Client states and the events delivered to subscribers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable

from .messages import ServerMessage


class ClientState(str, Enum):
    """Lifecycle states for a live voice session."""
    IDLE = "IDLE"
    CONNECTING = "CONNECTING"
    OPEN = "OPEN"
    TALKING = "TALKING"
    THINKING = "THINKING"
    ERROR = "ERROR"
    CLOSED = "CLOSED"


# States in which the backend accepts realtime input
LIVE_STATES = frozenset({ClientState.OPEN, ClientState.TALKING, ClientState.THINKING})

# States from which connect() may start a new session
CONNECTABLE_STATES = frozenset({ClientState.IDLE, ClientState.CLOSED, ClientState.ERROR})


class EventType(str, Enum):
    STATE_CHANGE = "STATE_CHANGE"
    MESSAGE = "MESSAGE"
    ERROR = "ERROR"
    VOLUME = "VOLUME"


@dataclass(frozen=True)
class StateChange:
    """The client moved to a new state."""

    state: ClientState
    type: EventType = EventType.STATE_CHANGE


@dataclass(frozen=True)
class Message:
    """A decoded message arrived from the backend."""

    payload: ServerMessage
    type: EventType = EventType.MESSAGE


@dataclass(frozen=True)
class Error:
    """A terminal failure the UI should show to the user."""

    error: Exception
    type: EventType = EventType.ERROR


@dataclass(frozen=True)
class Volume:
    """RMS level of the latest captured microphone frame."""

    rms: float
    type: EventType = EventType.VOLUME


ClientEvent = StateChange | Message | Error | Volume

Listener = Callable[[ClientEvent], None]
