"""PyAudio implementation of the AudioIO contract.

Captures 16 kHz microphone audio and plays 24 kHz speech through PortAudio
callback streams.
"""

from __future__ import annotations

import asyncio
import logging
import queue
from typing import Optional

import pyaudio

from .audio import AudioFrame, AudioSink, CaptureCallback, DrainedCallback, compute_rms
from .errors import AudioDeviceError

logger = logging.getLogger(__name__)


class _PyAudioSink:
    """Playback queue drained by the PortAudio output callback."""

    def __init__(self, io: PyAudioIO) -> None:
        self._io = io

    def play(self, frame: AudioFrame) -> None:
        self._io.queue_audio(frame.pcm)

    def clear(self) -> None:
        self._io.skip_pending_audio()


class PyAudioIO:
    """Handles real-time audio capture and playback via PyAudio.

    PortAudio callbacks run on their own thread; frames and the drained signal
    are handed back to the event loop with ``call_soon_threadsafe``.
    """

    class AudioPlaybackPacket:
        def __init__(self, seq_num: int, data: Optional[bytes]):
            self.seq_num = seq_num
            self.data = data

    def __init__(
        self,
        capture_rate: int = 16000,
        playback_rate: int = 24000,
        chunk_size: int = 1024,
    ) -> None:
        self.format = pyaudio.paInt16
        self.channels = 1
        self.capture_rate = capture_rate
        self.playback_rate = playback_rate
        self.chunk_size = chunk_size
        self._audio: Optional[pyaudio.PyAudio] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self.input_stream = None
        self.output_stream = None
        self.playback_queue: queue.Queue[PyAudioIO.AudioPlaybackPacket] = queue.Queue()
        self.playback_base = 0
        self.next_seq_num = 0
        self._playing = False

    def _pyaudio(self) -> pyaudio.PyAudio:
        if self._audio is None:
            self._audio = pyaudio.PyAudio()
        return self._audio

    def start_capture(self, on_captured: CaptureCallback) -> None:
        if self.input_stream:
            return
        self._loop = asyncio.get_running_loop()
        loop = self._loop
        rate = self.capture_rate

        def _deliver(data: bytes) -> None:
            frame = AudioFrame(pcm=data, sample_rate=rate)
            on_captured(frame, compute_rms(data))

        def _capture_callback(in_data, _frame_count, _time_info, _status_flags):
            loop.call_soon_threadsafe(_deliver, in_data)
            return (None, pyaudio.paContinue)

        try:
            self.input_stream = self._pyaudio().open(
                format=self.format,
                channels=self.channels,
                rate=self.capture_rate,
                input=True,
                frames_per_buffer=self.chunk_size,
                stream_callback=_capture_callback,
            )
        except OSError as exc:
            raise AudioDeviceError(f"Microphone unavailable: {exc}") from exc
        logger.info("Microphone capture started (%d Hz)", self.capture_rate)

    def start_playback(self, on_drained: DrainedCallback) -> AudioSink:
        sink = _PyAudioSink(self)
        if self.output_stream:
            return sink
        self._loop = self._loop or asyncio.get_running_loop()
        loop = self._loop
        remaining = bytes()
        remaining_seq = 0

        def _playback_callback(_in_data, frame_count, _time_info, _status_flags):
            nonlocal remaining, remaining_seq
            frame_count *= pyaudio.get_sample_size(pyaudio.paInt16)
            if remaining_seq < self.playback_base:
                remaining = bytes()
            out = remaining[:frame_count]
            remaining = remaining[frame_count:]

            while len(out) < frame_count:
                try:
                    packet = self.playback_queue.get_nowait()
                except queue.Empty:
                    if self._playing and not remaining:
                        self._playing = False
                        loop.call_soon_threadsafe(on_drained)
                    out = out + bytes(frame_count - len(out))
                    break
                if packet.seq_num < self.playback_base or not packet.data:
                    continue
                num_to_take = frame_count - len(out)
                out = out + packet.data[:num_to_take]
                remaining = packet.data[num_to_take:]
                remaining_seq = packet.seq_num

            return (out, pyaudio.paContinue)

        try:
            self.output_stream = self._pyaudio().open(
                format=self.format,
                channels=self.channels,
                rate=self.playback_rate,
                output=True,
                frames_per_buffer=self.chunk_size,
                stream_callback=_playback_callback,
            )
        except OSError as exc:
            raise AudioDeviceError(f"Speaker unavailable: {exc}") from exc
        logger.info("Speaker playback started (%d Hz)", self.playback_rate)
        return sink

    def _get_and_increase_seq_num(self) -> int:
        seq = self.next_seq_num
        self.next_seq_num += 1
        return seq

    def queue_audio(self, audio_data: Optional[bytes]) -> None:
        if not audio_data:
            return
        self.playback_queue.put(
            PyAudioIO.AudioPlaybackPacket(
                seq_num=self._get_and_increase_seq_num(), data=audio_data
            )
        )
        # Set after the put; the output callback reads both without a lock
        self._playing = True

    def skip_pending_audio(self) -> None:
        """Stops current audio playback immediately."""
        self.playback_base = self._get_and_increase_seq_num()

    def stop(self) -> None:
        if self.input_stream:
            self.input_stream.stop_stream()
            self.input_stream.close()
            self.input_stream = None
        if self.output_stream:
            self.output_stream.stop_stream()
            self.output_stream.close()
            self.output_stream = None
        if self._audio:
            self._audio.terminate()
            self._audio = None

        # Fresh playback state for the next session
        self.playback_queue = queue.Queue()
        self.playback_base = 0
        self.next_seq_num = 0
        self._playing = False
        self._loop = None
