"""Tests for the session snapshot and system instruction."""

from datetime import datetime, timedelta, timezone

from src.live_session.context import (
    ONBOARDING_MESSAGES,
    CalendarEventSummary,
    FriendSummary,
    SessionSnapshot,
    build_system_instruction,
    format_utc_offset,
)

MADRID = timezone(timedelta(hours=2))


def _snapshot(**overrides) -> SessionSnapshot:
    values = dict(
        user_name="Ana",
        assistant_name="Nova",
        language="es",
        events=[
            CalendarEventSummary(
                id="EVT-1", title="Gimnasio", start="2024-01-01T10:00:00Z",
                end="2024-01-01T11:00:00Z", attendees=["Lucía"],
            ),
        ],
        friends=[FriendSummary(name="Lucía Gómez", handle="@lucia")],
        now=datetime(2024, 1, 1, 9, 30, tzinfo=MADRID),
    )
    values.update(overrides)
    return SessionSnapshot(**values)


class TestSummaries:
    def test_event_line(self):
        assert _snapshot().events_summary == (
            "- ID: EVT-1 | Titulo: Gimnasio | Inicio: 2024-01-01T10:00:00Z "
            "| Fin: 2024-01-01T11:00:00Z | Estado: pending | Participantes: Lucía"
        )

    def test_friend_line_normalises_handle(self):
        assert _snapshot().friends_summary == '* NOMBRE: "Lucía Gómez" | HANDLE: "@lucia"'

    def test_no_friends(self):
        assert _snapshot(friends=[]).friends_summary == "No tienes amigos agregados todavía."

    def test_tz_offset_minutes(self):
        assert _snapshot().tz_offset_minutes == 120
        assert _snapshot(now=datetime(2024, 1, 1, tzinfo=timezone(timedelta(hours=-5, minutes=-30)))).tz_offset_minutes == -330

    def test_format_utc_offset(self):
        assert format_utc_offset(120) == "UTC+2"
        assert format_utc_offset(0) == "UTC+0"
        assert format_utc_offset(-330) == "UTC-5:30"


class TestGreeting:
    def test_spanish(self):
        assert _snapshot().greeting() == f"Hola Ana, soy Nova. {ONBOARDING_MESSAGES['es']}"

    def test_english(self):
        assert _snapshot(language="en").greeting() == f"Hello Ana, I'm Nova. {ONBOARDING_MESSAGES['en']}"

    def test_custom_onboarding(self):
        assert _snapshot(onboarding_message="¡Vamos!").greeting() == "Hola Ana, soy Nova. ¡Vamos!"


class TestSystemInstruction:
    def test_contains_snapshot(self):
        text = _snapshot().system_instruction()
        assert "Eres Nova, el asistente inteligente de Ana" in text
        assert "EVT-1" in text
        assert "Lucía Gómez" in text
        assert "UTC+2" in text
        assert "La tarea ha sido confirmada" in text

    def test_english_confirmation(self):
        text = _snapshot(language="en").system_instruction()
        assert "The task has been confirmed" in text
        assert "Speak ALWAYS in English" in text

    def test_empty_events(self):
        assert "No hay eventos." in _snapshot(events=[]).system_instruction()

    def test_custom_generator_receives_all_fields(self):
        calls = []

        def generator(*args):
            calls.append(args)
            return "custom"

        snapshot = _snapshot()
        assert snapshot.system_instruction(generator) == "custom"
        user, assistant, language, events, friends, local_time, offset = calls[0]
        assert (user, assistant, language) == ("Ana", "Nova", "es")
        assert events == snapshot.events_summary
        assert friends == snapshot.friends_summary
        assert local_time.startswith("Mon Jan 01 2024 09:30:00")
        assert offset == 120

    def test_default_generator_is_build_system_instruction(self):
        snapshot = _snapshot()
        assert snapshot.system_instruction() == build_system_instruction(
            "Ana", "Nova", "es", snapshot.events_summary, snapshot.friends_summary,
            snapshot.local_time, 120,
        )
