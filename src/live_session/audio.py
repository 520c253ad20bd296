"""Audio I/O contract consumed by the session client, plus PCM helpers.

The client never touches a platform audio API directly. It receives captured
frames through ``AudioIO.start_capture`` and hands decoded server audio to the
``AudioSink`` returned by ``AudioIO.start_playback``.
"""

from __future__ import annotations

import base64
import math
import sys
from array import array
from dataclasses import dataclass
from typing import Callable, Protocol


@dataclass(frozen=True)
class AudioFrame:
    """A buffer of 16-bit little-endian mono PCM samples."""

    pcm: bytes
    sample_rate: int

    @property
    def sample_count(self) -> int:
        return len(self.pcm) // 2

    @property
    def duration_s(self) -> float:
        return self.sample_count / self.sample_rate if self.sample_rate else 0.0


CaptureCallback = Callable[[AudioFrame, float], None]
DrainedCallback = Callable[[], None]


class AudioSink(Protocol):
    def play(self, frame: AudioFrame) -> None: ...

    def clear(self) -> None: ...


class AudioIO(Protocol):
    """Duplex audio device owned for the lifetime of one session."""

    def start_capture(self, on_captured: CaptureCallback) -> None:
        """Begin delivering microphone frames. Raises AudioDeviceError."""
        ...

    def start_playback(self, on_drained: DrainedCallback) -> AudioSink:
        """Open the speaker; ``on_drained`` fires when its queue empties."""
        ...

    def stop(self) -> None:
        """Release both devices. Idempotent."""
        ...


# -- PCM helpers ---------------------------------------------------------------

def _samples(pcm: bytes) -> array:
    samples = array("h")
    samples.frombytes(pcm[: len(pcm) - len(pcm) % 2])
    if sys.byteorder == "big":
        samples.byteswap()
    return samples


def compute_rms(pcm: bytes) -> float:
    """Root-mean-square amplitude of a PCM16 buffer, normalised to 0..1."""
    samples = _samples(pcm)
    if not samples:
        return 0.0
    total = sum(s * s for s in samples)
    return math.sqrt(total / len(samples)) / 32768.0


def encode_pcm(frame: AudioFrame) -> str:
    return base64.b64encode(frame.pcm).decode("ascii")


def decode_pcm(data_b64: str, sample_rate: int) -> AudioFrame:
    return AudioFrame(pcm=base64.b64decode(data_b64, validate=True), sample_rate=sample_rate)


