"""PlanifAI live voice session - realtime Live API client with calendar tool calling."""

from .audio import AudioFrame, AudioIO, AudioSink
from .client import LiveSessionClient, Session, ToolDispatcher
from .config import LiveSessionConfig, LiveSetupConfig
from .context import CalendarEventSummary, FriendSummary, SessionSnapshot
from .events import ClientState, Error, EventType, Message, StateChange, Volume
from .retry import RetryPolicy

__all__ = [
    "AudioFrame",
    "AudioIO",
    "AudioSink",
    "CalendarEventSummary",
    "ClientState",
    "Error",
    "EventType",
    "FriendSummary",
    "LiveSessionClient",
    "LiveSessionConfig",
    "LiveSetupConfig",
    "Message",
    "RetryPolicy",
    "Session",
    "SessionSnapshot",
    "StateChange",
    "ToolDispatcher",
    "Volume",
]
