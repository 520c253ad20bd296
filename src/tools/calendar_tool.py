"""The ``manageCalendar`` capability exposed to the voice agent.

The declaration is sent with the session setup; the dispatcher validates the
arguments of each tool call and hands them to the calendar data layer.

Example scenario (Spanish):
    Usuario: "Apúntame gimnasio mañana a las diez."
    Agente: → manageCalendar(actionType="create", eventData={title="Gimnasio", ...})
            → "La tarea ha sido confirmada."
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .base_tool import UnknownToolError

logger = logging.getLogger(__name__)

MANAGE_CALENDAR = "manageCalendar"

ActionType = Literal["create", "update", "delete", "move"]


class _ToolArgs(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class EventData(_ToolArgs):
    title: str | None = Field(default=None, description="Título de la tarea sin emojis")
    start: str | None = Field(default=None, description="Inicio en ISO 8601")
    end: str | None = Field(default=None, description="Fin en ISO 8601")
    type: str | None = Field(default=None, description="Categoría exacta del evento")
    location: str | None = None
    description_points: list[str] = Field(default_factory=list)
    all_day: bool = False
    attendees: list[str] = Field(default_factory=list)


class ManageCalendarArgs(_ToolArgs):
    action_type: ActionType
    event_id: str | None = None
    replace_event_id: str | None = None
    event_data: EventData | None = None


CalendarActionExecutor = Callable[[ManageCalendarArgs], Awaitable[str]]


def manage_calendar_declaration(category_labels: list[str]) -> dict:
    """Function declaration for ``manageCalendar``.

    ``category_labels`` comes from the caller's active category template, so
    the enum changes with the user's configuration.
    """
    event_type: dict[str, Any] = {
        "type": "STRING",
        "description": "Categoría exacta del evento.",
    }
    if category_labels:
        event_type["enum"] = list(category_labels)

    return {
        "name": MANAGE_CALENDAR,
        "description": (
            "Crea, actualiza, elimina o mueve eventos y tareas. "
            "Úsala para CUALQUIER cambio en la agenda."
        ),
        "parameters": {
            "type": "OBJECT",
            "properties": {
                "actionType": {
                    "type": "STRING",
                    "enum": ["create", "update", "delete", "move"],
                    "description": "Tipo de operación a realizar en el calendario.",
                },
                "eventId": {
                    "type": "STRING",
                    "description": "ID único del evento. OBLIGATORIO para update, delete y move.",
                },
                "replaceEventId": {
                    "type": "STRING",
                    "description": "Solo para conflictos: ID del evento a reemplazar.",
                },
                "eventData": {
                    "type": "OBJECT",
                    "properties": {
                        "title": {"type": "STRING", "description": "Título de la tarea sin emojis."},
                        "start": {"type": "STRING", "description": "Fecha y hora de inicio (ISO 8601)."},
                        "end": {
                            "type": "STRING",
                            "description": "Fecha y hora de fin (ISO 8601). Si no hay duración, asume 1 hora.",
                        },
                        "type": event_type,
                        "location": {"type": "STRING", "description": "Ubicación, si se menciona."},
                        "descriptionPoints": {
                            "type": "ARRAY",
                            "items": {"type": "STRING"},
                            "description": "Detalles, notas o subtareas mencionadas.",
                        },
                        "allDay": {"type": "BOOLEAN"},
                        "attendees": {
                            "type": "ARRAY",
                            "items": {"type": "STRING"},
                            "description": "Nombres EXACTOS de los amigos invitados.",
                        },
                    },
                    "required": ["title", "start", "end", "type"],
                },
            },
            "required": ["actionType"],
        },
    }


def calendar_tools(category_labels: list[str]) -> list[dict]:
    """Tool list for the session setup message."""
    return [{"functionDeclarations": [manage_calendar_declaration(category_labels)]}]


class CalendarToolDispatcher:
    """Routes ``manageCalendar`` calls to the calendar data layer.

    Usage::

        calendar = InMemoryCalendar()
        dispatcher = CalendarToolDispatcher(calendar.execute_action)
        result = await dispatcher.execute("manageCalendar", {"actionType": "delete", "eventId": "EVT-1"})
    """

    def __init__(self, executor: CalendarActionExecutor) -> None:
        self._executor = executor

    async def execute(self, name: str, args: dict[str, Any]) -> str:
        if name != MANAGE_CALENDAR:
            raise UnknownToolError(name)
        action = ManageCalendarArgs.model_validate(args)
        logger.info("manageCalendar %s (event=%s)", action.action_type, action.event_id)
        return await self._executor(action)
