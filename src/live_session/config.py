"""Configuration for the PlanifAI live voice session.

Loads settings from environment variables or .env file.
See: https://ai.google.dev/gemini-api/docs/live
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()

DEFAULT_LIVE_URL = (
    "wss://generativelanguage.googleapis.com/ws/"
    "google.ai.generativelanguage.v1beta.GenerativeService.BidiGenerateContent"
)

CAPTURE_SAMPLE_RATE = 16000
PLAYBACK_SAMPLE_RATE = 24000


@dataclass
class LiveSetupConfig:
    """Per-session setup options sent in the opening ``setup`` message.

    Docs: https://ai.google.dev/api/live#bidigeneratecontentsetup
    """

    response_modalities: list[str] = field(default_factory=lambda: ["AUDIO"])
    input_transcription: bool = True
    output_transcription: bool = True

    def to_setup_message(
        self,
        model: str,
        voice_name: str,
        system_instruction: str,
        tools: list[dict],
    ) -> dict:
        """Build the ``setup`` payload that opens a Live session."""
        setup: dict = {
            "model": model if model.startswith("models/") else f"models/{model}",
            "generationConfig": {
                "responseModalities": list(self.response_modalities),
                "speechConfig": {
                    "voiceConfig": {
                        "prebuiltVoiceConfig": {"voiceName": voice_name},
                    },
                },
            },
            "systemInstruction": {"parts": [{"text": system_instruction}]},
            "tools": tools,
        }
        if self.input_transcription:
            setup["inputAudioTranscription"] = {}
        if self.output_transcription:
            setup["outputAudioTranscription"] = {}
        return {"setup": setup}


@dataclass
class LiveSessionConfig:
    """Top-level configuration for the live session client."""

    api_key: str = field(default_factory=lambda: os.getenv("GEMINI_API_KEY", ""))
    model: str = field(
        default_factory=lambda: os.getenv(
            "GEMINI_MODEL", "gemini-2.5-flash-native-audio-preview-12-2025"
        )
    )
    live_url: str = field(
        default_factory=lambda: os.getenv("GEMINI_LIVE_URL", DEFAULT_LIVE_URL)
    )
    default_voice: str = field(
        default_factory=lambda: os.getenv("LIVE_VOICE", "Zephyr")
    )

    # Connection lifecycle
    connect_timeout_s: float = field(
        default_factory=lambda: float(os.getenv("LIVE_CONNECT_TIMEOUT_S", "10"))
    )
    retry_base_s: float = field(
        default_factory=lambda: float(os.getenv("LIVE_RETRY_BASE_S", "1"))
    )
    retry_cap_s: float = field(
        default_factory=lambda: float(os.getenv("LIVE_RETRY_CAP_S", "10"))
    )
    max_reconnect_attempts: int = field(
        default_factory=lambda: int(os.getenv("LIVE_MAX_RECONNECT_ATTEMPTS", "5"))
    )

    # Audio is fixed configuration, not negotiated
    capture_sample_rate: int = CAPTURE_SAMPLE_RATE
    playback_sample_rate: int = PLAYBACK_SAMPLE_RATE

    setup: LiveSetupConfig = field(default_factory=LiveSetupConfig)

    # Logging
    log_level: str = field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO")
    )

    @property
    def live_ws_url(self) -> str:
        """Live API WebSocket URL with the API key as query parameter.

        Format: wss://generativelanguage.googleapis.com/ws/...BidiGenerateContent?key=<key>
        """
        return f"{self.live_url}?key={self.api_key}"

    @property
    def capture_mime_type(self) -> str:
        return f"audio/pcm;rate={self.capture_sample_rate}"
