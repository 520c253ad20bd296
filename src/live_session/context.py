"""App/user snapshot and the system instruction built from it.

The snapshot is captured once when a session is requested. Calendar changes
made during the conversation are not pushed back into the instruction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

SystemInstructionGenerator = Callable[[str, str, str, str, str, str, int], str]

ONBOARDING_MESSAGES = {
    "es": "Puedo crear, mover o eliminar tareas de tu agenda. ¿Qué quieres planificar hoy?",
    "en": "I can create, move or delete tasks in your calendar. What would you like to plan today?",
}

CONFIRMATION_PHRASES = {
    "es": "La tarea ha sido confirmada",
    "en": "The task has been confirmed",
}


@dataclass
class CalendarEventSummary:
    id: str
    title: str
    start: str
    end: str
    status: str = "pending"
    attendees: list[str] = field(default_factory=list)

    def to_line(self) -> str:
        line = (
            f"- ID: {self.id} | Titulo: {self.title} | Inicio: {self.start} "
            f"| Fin: {self.end} | Estado: {self.status}"
        )
        if self.attendees:
            line += f" | Participantes: {', '.join(self.attendees)}"
        return line


@dataclass
class FriendSummary:
    name: str
    handle: str

    def to_line(self) -> str:
        return f'* NOMBRE: "{self.name}" | HANDLE: "@{self.handle.lstrip("@")}"'


@dataclass
class SessionSnapshot:
    """Everything the assistant needs to know about the user at connect time."""

    user_name: str = ""
    assistant_name: str = "PlanifAI"
    language: str = "es"
    events: list[CalendarEventSummary] = field(default_factory=list)
    friends: list[FriendSummary] = field(default_factory=list)
    category_labels: list[str] = field(default_factory=list)
    onboarding_message: str | None = None
    now: datetime = field(default_factory=lambda: datetime.now().astimezone())

    @property
    def events_summary(self) -> str:
        return "\n".join(e.to_line() for e in self.events)

    @property
    def friends_summary(self) -> str:
        if not self.friends:
            return "No tienes amigos agregados todavía."
        return "\n".join(f.to_line() for f in self.friends)

    @property
    def local_time(self) -> str:
        return self.now.strftime("%a %b %d %Y %H:%M:%S %Z").strip()

    @property
    def tz_offset_minutes(self) -> int:
        """Minutes east of UTC (UTC+2 is 120)."""
        offset = self.now.utcoffset()
        return int(offset.total_seconds() // 60) if offset is not None else 0

    def greeting(self) -> str:
        onboarding = self.onboarding_message or ONBOARDING_MESSAGES.get(
            self.language, ONBOARDING_MESSAGES["en"]
        )
        if self.language == "es":
            return f"Hola {self.user_name}, soy {self.assistant_name}. {onboarding}"
        return f"Hello {self.user_name}, I'm {self.assistant_name}. {onboarding}"

    def system_instruction(self, generator: SystemInstructionGenerator | None = None) -> str:
        generator = generator or build_system_instruction
        return generator(
            self.user_name,
            self.assistant_name,
            self.language,
            self.events_summary,
            self.friends_summary,
            self.local_time,
            self.tz_offset_minutes,
        )


def format_utc_offset(minutes: int) -> str:
    sign = "+" if minutes >= 0 else "-"
    hours, mins = divmod(abs(minutes), 60)
    return f"UTC{sign}{hours}" + (f":{mins:02d}" if mins else "")


def build_system_instruction(
    user_name: str,
    assistant_name: str,
    language: str,
    events_summary: str,
    friends_summary: str,
    local_time: str,
    tz_offset_minutes: int,
) -> str:
    """Default system instruction for the calendar assistant."""
    confirmation = CONFIRMATION_PHRASES.get(language, CONFIRMATION_PHRASES["en"])
    if language == "es":
        lang_rule = (
            "Habla SIEMPRE en Español. Entiende formatos de hora españoles. "
            f'Tu confirmación debe ser SIEMPRE: "{confirmation}".'
        )
        spoken = "Español"
    else:
        lang_rule = (
            "Speak ALWAYS in English. Understand English time formats (AM/PM). "
            f'Your confirmation MUST ALWAYS be exactly: "{confirmation}".'
        )
        spoken = "Inglés"

    return f"""Eres {assistant_name}, el asistente inteligente de {user_name} en PlanifAI.

## Personalidad y Tono
- Habla de forma fluida y natural, como un amigo eficiente.
- Brevedad extrema: si puedes decir algo en 5 palabras, no uses 10.
- No repitas lo que ya has confirmado.

## Comportamiento
- Ayudas a gestionar el calendario: crear, mover, actualizar o eliminar tareas.
- {lang_rule}
- Si te piden algo que no puedes hacer con el calendario, responde que aún estás aprendiendo a hacerlo.
- No uses markdown en tus respuestas de voz.

## Protocolo de Acción
1. Cuando el usuario pida un cambio, llama a manageCalendar INMEDIATAMENTE.
2. Tras una acción exitosa, di SOLO: "{confirmation}".
3. Si algo falla, explica brevemente por qué y pregunta qué hacer.
4. Para editar una tarea existente usa actionType 'update', no crees una nueva.

## Contexto Temporal y Amigos
- Fecha actual: {local_time} ({format_utc_offset(tz_offset_minutes)}).
- Amigos disponibles:
{friends_summary}
- Eventos programados:
{events_summary or "No hay eventos."}

Habla siempre en {spoken} con gramática perfecta."""
