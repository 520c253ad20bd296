"""Base utilities for tool implementations.

Provides the tool error types and an in-memory calendar for demos and tests.
In production the calendar actions are executed by the app's calendar data
layer.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from src.live_session.context import CalendarEventSummary

if TYPE_CHECKING:
    from .calendar_tool import ManageCalendarArgs

logger = logging.getLogger(__name__)


class UnknownToolError(LookupError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown tool: {name}")
        self.name = name


def _parse(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class InMemoryCalendar:
    """Simulated calendar backend for demo purposes."""

    def __init__(self, events: list[CalendarEventSummary] | None = None) -> None:
        self._events: dict[str, CalendarEventSummary] = {e.id: e for e in events or []}
        self._categories: dict[str, str | None] = {}
        self._counter = 1000

    def next_event_id(self) -> str:
        self._counter += 1
        return f"EVT-{self._counter}"

    def get(self, event_id: str) -> CalendarEventSummary | None:
        return self._events.get(event_id)

    def events(self) -> list[CalendarEventSummary]:
        return sorted(self._events.values(), key=lambda e: e.start)

    async def execute_action(self, action: ManageCalendarArgs) -> str:
        if action.action_type == "create":
            return self._create(action)
        if action.action_type == "update":
            return self._update(action)
        if action.action_type == "delete":
            return self._delete(action)
        return self._move(action)

    def _create(self, action: ManageCalendarArgs) -> str:
        data = action.event_data
        if data is None or not data.title:
            return "Error: Faltan los datos del evento."
        if not data.start:
            return "Error: Fecha de inicio obligatoria."
        try:
            start = _parse(data.start)
            end = _parse(data.end) if data.end else start + timedelta(hours=1)
        except ValueError:
            return "Error: Fecha de inicio inválida."

        if action.replace_event_id and self._events.pop(action.replace_event_id, None):
            logger.info("Replaced event %s", action.replace_event_id)

        event = CalendarEventSummary(
            id=self.next_event_id(),
            title=data.title,
            start=start.isoformat(),
            end=end.isoformat(),
            attendees=list(data.attendees),
        )
        self._events[event.id] = event
        self._categories[event.id] = data.type
        logger.info("Calendar create: %s (%s)", event.title, event.id)
        return "Evento creado"

    def _update(self, action: ManageCalendarArgs) -> str:
        if not action.event_id:
            return "Error: ID de evento requerido."
        event = self._events.get(action.event_id)
        if event is None:
            return "Error: Evento no encontrado."
        data = action.event_data
        if data is not None:
            if data.title:
                event.title = data.title
            if data.start:
                event.start = data.start
            if data.end:
                event.end = data.end
            if data.attendees:
                event.attendees = list(data.attendees)
            if data.type:
                self._categories[event.id] = data.type
        logger.info("Calendar update: %s", event.id)
        return "Evento actualizado"

    def _delete(self, action: ManageCalendarArgs) -> str:
        if not action.event_id:
            return "Error: ID de evento requerido."
        if self._events.pop(action.event_id, None) is None:
            return "Error: Evento no encontrado."
        self._categories.pop(action.event_id, None)
        logger.info("Calendar delete: %s", action.event_id)
        return "Evento eliminado"

    def _move(self, action: ManageCalendarArgs) -> str:
        if not action.event_id:
            return "Error: ID de evento requerido."
        event = self._events.get(action.event_id)
        if event is None:
            return "Error: Evento no encontrado."
        data = action.event_data
        if data is None or not data.start:
            return "Error: Nueva fecha de inicio obligatoria."
        try:
            new_start = _parse(data.start)
            if data.end:
                new_end = _parse(data.end)
            else:
                # Keep the original duration
                new_end = new_start + (_parse(event.end) - _parse(event.start))
        except ValueError:
            return "Error: Fecha de inicio inválida."
        event.start = new_start.isoformat()
        event.end = new_end.isoformat()
        logger.info("Calendar move: %s -> %s", event.id, event.start)
        return "Evento movido"
