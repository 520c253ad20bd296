"""Example 01: Live voice session with the calendar tool

Demonstrates how to:
- Build a session snapshot (user, friends, existing events)
- Connect the live session client with microphone and speaker
- Let the agent call manageCalendar against an in-memory calendar
- Observe state changes and terminal errors

Prerequisites:
- Set GEMINI_API_KEY in .env
- A working microphone and speaker (PortAudio)

Docs:
- Live API: https://ai.google.dev/gemini-api/docs/live
- Tool use: https://ai.google.dev/gemini-api/docs/live-tools
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime, timedelta
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from src.live_session import (  # noqa: E402
    CalendarEventSummary,
    ClientState,
    FriendSummary,
    LiveSessionClient,
    LiveSessionConfig,
    SessionSnapshot,
)
from src.live_session.events import EventType  # noqa: E402
from src.live_session.logging_setup import configure_logging  # noqa: E402
from src.live_session.pyaudio_io import PyAudioIO  # noqa: E402
from src.tools import CalendarToolDispatcher, InMemoryCalendar, calendar_tools  # noqa: E402

logger = logging.getLogger(__name__)

CATEGORIES = ["Trabajo", "Personal", "Deporte", "Social"]


def build_snapshot(calendar: InMemoryCalendar, language: str) -> SessionSnapshot:
    return SessionSnapshot(
        user_name="Ana",
        assistant_name="PlanifAI",
        language=language,
        events=calendar.events(),
        friends=[FriendSummary(name="Lucía Gómez", handle="lucia")],
        category_labels=CATEGORIES,
    )


async def main(voice: str, language: str, first_run: bool) -> None:
    config = LiveSessionConfig()
    configure_logging(config.log_level, log_dir="logs")

    tomorrow = (datetime.now() + timedelta(days=1)).replace(hour=9, minute=0, second=0, microsecond=0)
    calendar = InMemoryCalendar([
        CalendarEventSummary(
            id="EVT-0001",
            title="Reunión de equipo",
            start=tomorrow.isoformat(),
            end=(tomorrow + timedelta(hours=1)).isoformat(),
        ),
    ])

    client = LiveSessionClient(
        config,
        PyAudioIO(config.capture_sample_rate, config.playback_sample_rate),
        CalendarToolDispatcher(calendar.execute_action),
        tools_provider=lambda snapshot: calendar_tools(snapshot.category_labels),
    )

    closed = asyncio.Event()

    def on_event(event) -> None:
        if event.type is EventType.STATE_CHANGE:
            logger.info("State: %s", event.state.value)
            if event.state is ClientState.CLOSED:
                closed.set()
        elif event.type is EventType.ERROR:
            logger.error("Session error: %s", event.error)

    client.on(on_event)

    async with client:
        await client.connect(voice, is_first_interaction=first_run, snapshot=build_snapshot(calendar, language))
        logger.info("Speak into your microphone. Press Ctrl+C to exit.")
        try:
            await closed.wait()
        except asyncio.CancelledError:
            pass

    for event in calendar.events():
        logger.info("Calendar: %s", event.to_line())


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="PlanifAI live voice session")
    parser.add_argument("--voice", default="Zephyr")
    parser.add_argument("--language", choices=["es", "en"], default="es")
    parser.add_argument("--first-run", action="store_true", help="Send the onboarding greeting")
    args = parser.parse_args()
    try:
        asyncio.run(main(args.voice, args.language, args.first_run))
    except KeyboardInterrupt:
        print("\nGoodbye!")
