"""Wire messages for the Gemini Live ``BidiGenerateContent`` protocol.

Inbound server messages are validated with pydantic models; outbound client
messages are plain dicts serialised by the transport.

Docs:
- Protocol: https://ai.google.dev/api/live
"""

from __future__ import annotations

import binascii
import json
import logging
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from .audio import AudioFrame, decode_pcm
from .config import PLAYBACK_SAMPLE_RATE
from .errors import ProtocolError

logger = logging.getLogger(__name__)

_RATE_RE = re.compile(r"rate=(\d+)")


class _LiveModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class Blob(_LiveModel):
    mime_type: str = ""
    data: str = ""

    @property
    def is_audio(self) -> bool:
        return self.mime_type.startswith("audio/")

    @property
    def sample_rate(self) -> int:
        match = _RATE_RE.search(self.mime_type)
        return int(match.group(1)) if match else PLAYBACK_SAMPLE_RATE


class Part(_LiveModel):
    text: str | None = None
    inline_data: Blob | None = None


class Content(_LiveModel):
    role: str | None = None
    parts: list[Part] = Field(default_factory=list)


class Transcription(_LiveModel):
    text: str = ""


class ServerContent(_LiveModel):
    model_turn: Content | None = None
    turn_complete: bool = False
    generation_complete: bool = False
    interrupted: bool = False
    input_transcription: Transcription | None = None
    output_transcription: Transcription | None = None


class FunctionCall(_LiveModel):
    id: str
    name: str
    args: dict[str, Any] = Field(default_factory=dict)


class ToolCall(_LiveModel):
    function_calls: list[FunctionCall] = Field(default_factory=list)


class ToolCallCancellation(_LiveModel):
    ids: list[str] = Field(default_factory=list)


class GoAway(_LiveModel):
    time_left: str | None = None


class ServerMessage(_LiveModel):
    """One decoded unit received from the backend."""

    setup_complete: dict[str, Any] | None = None
    server_content: ServerContent | None = None
    tool_call: ToolCall | None = None
    tool_call_cancellation: ToolCallCancellation | None = None
    go_away: GoAway | None = None
    usage_metadata: dict[str, Any] | None = None

    @property
    def parts(self) -> list[Part]:
        if self.server_content and self.server_content.model_turn:
            return self.server_content.model_turn.parts
        return []

    @property
    def function_calls(self) -> list[FunctionCall]:
        return self.tool_call.function_calls if self.tool_call else []

    @property
    def text(self) -> str:
        return "".join(p.text for p in self.parts if p.text)

    @property
    def turn_complete(self) -> bool:
        return bool(self.server_content and self.server_content.turn_complete)

    @property
    def interrupted(self) -> bool:
        return bool(self.server_content and self.server_content.interrupted)

    def audio_frames(self) -> list[AudioFrame]:
        """Decode every inline audio part into PCM frames.

        Raises:
            ProtocolError: if an audio payload is not valid base64.
        """
        frames = []
        for part in self.parts:
            blob = part.inline_data
            if blob is None or not blob.is_audio or not blob.data:
                continue
            try:
                frames.append(decode_pcm(blob.data, blob.sample_rate))
            except (binascii.Error, ValueError) as exc:
                raise ProtocolError(f"Invalid audio payload: {exc}") from exc
        return frames


def decode_server_message(raw: str | bytes) -> ServerMessage:
    """Parse a raw WebSocket frame into a :class:`ServerMessage`.

    The Live API sends JSON, sometimes as binary frames.

    Raises:
        ProtocolError: if the frame is not a JSON object of the expected shape.
    """
    try:
        if isinstance(raw, (bytes, bytearray)):
            raw = raw.decode("utf-8")
        data = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ProtocolError(f"Malformed message: {exc}") from exc
    if not isinstance(data, dict):
        raise ProtocolError(f"Expected a JSON object, got {type(data).__name__}")
    try:
        return ServerMessage.model_validate(data)
    except ValidationError as exc:
        raise ProtocolError(f"Unexpected message shape: {exc.error_count()} error(s)") from exc


# -- Outbound -----------------------------------------------------------------

def realtime_audio_message(data_b64: str, mime_type: str) -> dict:
    return {
        "realtimeInput": {
            "mediaChunks": [{"mimeType": mime_type, "data": data_b64}],
        }
    }


def realtime_text_message(text: str) -> dict:
    return {"realtimeInput": {"text": text}}


def function_response(call: FunctionCall, *, result: str | None = None, error: str | None = None) -> dict:
    """Correlate a dispatcher outcome with the call id it answers."""
    response = {"error": error} if error is not None else {"result": result}
    return {"id": call.id, "name": call.name, "response": response}


def tool_response_message(responses: list[dict]) -> dict:
    return {"toolResponse": {"functionResponses": responses}}
