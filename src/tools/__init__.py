"""Client-side capabilities the voice agent can call.

Each tool follows the Live API function-calling pattern:
- A function declaration sent once with the session setup
- Arguments validated with Pydantic models before execution
- A short string result the agent reads back to the user

Docs: https://ai.google.dev/gemini-api/docs/live-tools
"""

from .base_tool import InMemoryCalendar, UnknownToolError
from .calendar_tool import (
    MANAGE_CALENDAR,
    CalendarToolDispatcher,
    ManageCalendarArgs,
    calendar_tools,
    manage_calendar_declaration,
)

__all__ = [
    "MANAGE_CALENDAR",
    "CalendarToolDispatcher",
    "InMemoryCalendar",
    "ManageCalendarArgs",
    "UnknownToolError",
    "calendar_tools",
    "manage_calendar_declaration",
]
