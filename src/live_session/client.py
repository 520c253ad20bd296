"""Session protocol client for the PlanifAI voice assistant.

Owns one realtime session with the Live API: connection lifecycle and
reconnection, microphone audio out, speech and tool calls in, and the
state machine the UI observes.

Architecture:
    Microphone → AudioIO → LiveSessionClient → Transport → Live API
    Live API → Transport → LiveSessionClient → AudioSink (speech)
                                             → ToolDispatcher → toolResponse

States:
    IDLE → CONNECTING → OPEN ⇄ TALKING/THINKING → CLOSED
                      ↘ ERROR → CONNECTING (retry) or CLOSED (given up)
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Coroutine, Protocol

from .audio import AudioFrame, AudioIO, AudioSink, encode_pcm
from .config import LiveSessionConfig
from .context import SessionSnapshot, SystemInstructionGenerator
from .errors import (
    AudioDeviceError,
    ConnectionTimeoutError,
    LiveSessionError,
    MissingApiKeyError,
    RetryExhaustedError,
    SetupError,
    TransportClosedError,
)
from .events import (
    CONNECTABLE_STATES,
    LIVE_STATES,
    ClientEvent,
    ClientState,
    Error,
    Listener,
    Message,
    StateChange,
    Volume,
)
from .messages import (
    FunctionCall,
    ServerMessage,
    decode_server_message,
    function_response,
    realtime_audio_message,
    realtime_text_message,
    tool_response_message,
)
from .retry import RetryPolicy
from .scheduler import AsyncioScheduler, Scheduler, TimerHandle
from .transport import Transport, TransportFactory, WebSocketTransport

logger = logging.getLogger(__name__)

ToolsProvider = Callable[[SessionSnapshot], list[dict]]


class ToolDispatcher(Protocol):
    """Executes one backend-issued tool call and returns its result text."""

    async def execute(self, name: str, args: dict[str, Any]) -> str: ...


@dataclass
class Session:
    """The single live connection record, kept across reconnect attempts."""

    voice_profile: str
    tool_declarations: list[dict]
    system_context: str
    setup_message: dict
    greeting: str
    is_first_interaction: bool = False
    reconnect_attempts: int = 0
    greeted: bool = False
    # Set once the current connection has delivered server content
    healthy: bool = False
    transport: Transport | None = None
    cancelled_call_ids: set[str] = field(default_factory=set)


class LiveSessionClient:
    """Realtime voice session with tool calling and automatic reconnection.

    Public methods never raise; failures arrive as ``ERROR`` events.

    Usage::

        client = LiveSessionClient(config, PyAudioIO(), CalendarToolDispatcher(calendar.execute_action))
        unsubscribe = client.on(print)

        await client.connect("Zephyr", is_first_interaction=True, snapshot=snapshot)
        ...
        client.disconnect()
    """

    def __init__(
        self,
        config: LiveSessionConfig,
        audio: AudioIO,
        dispatcher: ToolDispatcher,
        *,
        tools_provider: ToolsProvider | None = None,
        instruction_generator: SystemInstructionGenerator | None = None,
        transport_factory: TransportFactory = WebSocketTransport,
        scheduler: Scheduler | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self._config = config
        self._audio = audio
        self._dispatcher = dispatcher
        self._tools_provider = tools_provider or (lambda snapshot: [])
        self._instruction_generator = instruction_generator
        self._transport_factory = transport_factory
        self._scheduler = scheduler or AsyncioScheduler()
        self._retry_policy = retry_policy or RetryPolicy.from_config(config)

        self._state = ClientState.IDLE
        self._session: Session | None = None
        self._listeners: list[Listener] = []

        self._timeout_timer: TimerHandle | None = None
        self._retry_timer: TimerHandle | None = None
        self._connect_task: asyncio.Future | None = None
        self._receive_task: asyncio.Task | None = None
        self._tasks: set[asyncio.Future] = set()
        self._closing: set[asyncio.Future] = set()

        self._audio_started = False
        self._playback: AudioSink | None = None
        # One tool batch at a time, FIFO across messages
        self._tool_lock = asyncio.Lock()

    @property
    def state(self) -> ClientState:
        return self._state

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def reconnect_attempts(self) -> int:
        return self._session.reconnect_attempts if self._session else 0

    # -- Subscription -------------------------------------------------------

    def on(self, listener: Listener) -> Callable[[], None]:
        """Subscribe to client events. Returns the unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: ClientEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Error in listener for %s", event.type.value)

    def _set_state(self, new_state: ClientState) -> None:
        if self._state is new_state:
            return
        self._cancel_timers()
        self._state = new_state
        logger.info("State transition -> %s", new_state.value)
        if new_state is ClientState.CONNECTING:
            self._timeout_timer = self._scheduler.call_later(
                self._config.connect_timeout_s, self._on_connect_timeout
            )
        self._emit(StateChange(new_state))

    # -- Lifecycle ----------------------------------------------------------

    async def connect(
        self,
        voice_profile: str | None = None,
        is_first_interaction: bool = False,
        snapshot: SessionSnapshot | None = None,
    ) -> None:
        """Open a session and wait until it is OPEN or has failed.

        A call while a session is CONNECTING/OPEN/TALKING/THINKING is a no-op.
        The snapshot is read once here; later app changes do not reach the
        running session.
        """
        if self._state not in CONNECTABLE_STATES:
            logger.warning("Already connecting or open (state=%s)", self._state.value)
            return

        if self._session is not None:
            # Leftover from a failed session waiting for its retry
            self._teardown_transport(self._session)
            self._session = None

        voice = voice_profile or self._config.default_voice
        snapshot = snapshot or SessionSnapshot()
        self._set_state(ClientState.CONNECTING)

        if not self._config.api_key:
            self._fail_permanently(MissingApiKeyError())
            return

        try:
            self._start_audio()
        except Exception as exc:
            if not isinstance(exc, AudioDeviceError):
                exc = AudioDeviceError(str(exc) or type(exc).__name__)
            self._fail_permanently(exc)
            return

        system_context = snapshot.system_instruction(self._instruction_generator)
        tools = self._tools_provider(snapshot)
        session = Session(
            voice_profile=voice,
            tool_declarations=tools,
            system_context=system_context,
            setup_message=self._config.setup.to_setup_message(
                self._config.model, voice, system_context, tools
            ),
            greeting=snapshot.greeting(),
            is_first_interaction=is_first_interaction,
        )
        self._session = session
        logger.info("Connecting with voice %s (%d tool declarations)", voice, len(tools))
        await self._open(session)

    def disconnect(self) -> None:
        """Force CLOSED. Idempotent; transport close completes in the background."""
        if self._session is not None or self._audio_started:
            logger.info("User requested disconnect")
        self._cleanup()
        self._set_state(ClientState.CLOSED)

    async def aclose(self) -> None:
        """Disconnect and wait for the transport to finish closing."""
        self.disconnect()
        if self._closing:
            await asyncio.gather(*self._closing, return_exceptions=True)

    async def __aenter__(self) -> LiveSessionClient:
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    # -- Sending ------------------------------------------------------------

    def send_audio(self, frame: AudioFrame) -> None:
        """Forward a captured PCM frame. Dropped unless the session is live."""
        if self._state not in LIVE_STATES:
            return
        self.send_audio_frame(encode_pcm(frame))

    def send_audio_frame(self, data_b64: str) -> None:
        if self._state not in LIVE_STATES or self._session is None:
            return
        message = realtime_audio_message(data_b64, self._config.capture_mime_type)
        self._spawn(self._send(self._session, message))

    async def send_text(self, text: str) -> None:
        """Send a text turn (bypasses speech recognition)."""
        if self._state not in LIVE_STATES or self._session is None:
            logger.warning("Cannot send text in state %s", self._state.value)
            return
        await self._send(self._session, realtime_text_message(text))

    async def send_tool_response(self, responses: list[dict]) -> None:
        """Send one batched tool response; each entry carries its call id."""
        if self._session is None:
            logger.warning("Cannot send tool response: no session")
            return
        await self._send(self._session, tool_response_message(responses))
        logger.info("Sent %d tool response(s)", len(responses))

    async def _send(self, session: Session, message: dict) -> None:
        transport = session.transport
        if transport is None:
            return
        try:
            await transport.send(message)
        except Exception as exc:
            # The receive loop reports the close
            logger.warning("Failed to send (socket might be closed): %s", exc)

    # -- Connection (internal) ----------------------------------------------

    async def _open(self, session: Session) -> None:
        if self._state is not ClientState.CONNECTING:
            self._set_state(ClientState.CONNECTING)

        transport = self._transport_factory(self._config)
        session.transport = transport
        session.healthy = False
        task = asyncio.ensure_future(transport.open(session.setup_message))
        self._connect_task = task
        await asyncio.wait({task})
        if self._connect_task is task:
            self._connect_task = None

        error = None if task.cancelled() else task.exception()
        if session is not self._session or session.transport is not transport:
            # Superseded by a timeout or disconnect while the handshake was in flight
            logger.debug("Discarding stale connection attempt")
            self._spawn_close(transport)
            return
        if error is not None:
            self._fail(session, error)
            return

        self._set_state(ClientState.OPEN)
        self._receive_task = asyncio.ensure_future(self._receive_loop(session, transport))
        logger.info("Live session open (voice=%s)", session.voice_profile)

        if session.is_first_interaction and not session.greeted:
            session.greeted = True
            await self.send_text(session.greeting)

    def _on_connect_timeout(self) -> None:
        self._timeout_timer = None
        if self._state is ClientState.CONNECTING and self._session is not None:
            self._fail(self._session, ConnectionTimeoutError(self._config.connect_timeout_s))

    def _fail(self, session: Session, error: BaseException) -> None:
        """Route a connection failure to retry or terminal handling."""
        if session is not self._session:
            return
        if isinstance(error, SetupError):
            self._fail_permanently(error)
            return

        logger.warning("Connection error: %s", error)
        self._teardown_transport(session)
        self._set_state(ClientState.ERROR)

        attempt = session.reconnect_attempts
        if not self._retry_policy.should_retry(attempt):
            self._terminate(RetryExhaustedError(attempt, error))
            return

        delay = self._retry_policy.delay(attempt)
        session.reconnect_attempts = attempt + 1
        logger.info(
            "Retrying in %.1fs (attempt %d/%d)",
            delay, session.reconnect_attempts, self._retry_policy.max_attempts,
        )
        self._retry_timer = self._scheduler.call_later(
            delay, lambda: self._spawn(self._retry(session))
        )

    async def _retry(self, session: Session) -> None:
        self._retry_timer = None
        if session is not self._session or self._state is not ClientState.ERROR:
            return
        await self._open(session)

    def _fail_permanently(self, error: Exception) -> None:
        logger.error("Setup error, not retrying: %s", error)
        self._set_state(ClientState.ERROR)
        self._terminate(error)

    def _terminate(self, error: Exception) -> None:
        self._emit(Error(error))
        self._cleanup()
        self._set_state(ClientState.CLOSED)

    # -- Receiving (internal) -------------------------------------------------

    async def _receive_loop(self, session: Session, transport: Transport) -> None:
        error: BaseException = TransportClosedError()
        try:
            async for raw in transport.frames():
                if session.transport is not transport:
                    return
                try:
                    message = decode_server_message(raw)
                except LiveSessionError as exc:
                    logger.warning("Dropping malformed message: %s", exc)
                    continue
                self._handle_message(session, message)
        except asyncio.CancelledError:
            raise
        except LiveSessionError as exc:
            error = exc
        except Exception as exc:
            logger.exception("Unexpected error in receive loop")
            error = exc

        if session is self._session and session.transport is transport:
            self._fail(session, error)

    def _handle_message(self, session: Session, message: ServerMessage) -> None:
        self._emit(Message(message))

        if message.server_content is not None or message.tool_call is not None:
            if not session.healthy:
                session.healthy = True
                session.reconnect_attempts = 0

        try:
            frames = message.audio_frames()
        except LiveSessionError as exc:
            logger.warning("Dropping audio: %s", exc)
            frames = []
        if frames:
            for frame in frames:
                if self._playback is not None:
                    self._playback.play(frame)
            self._set_state(ClientState.TALKING)

        if message.interrupted:
            logger.info("Model turn interrupted")
            if self._playback is not None:
                self._playback.clear()
            if self._state is ClientState.TALKING:
                self._set_state(ClientState.OPEN)

        if message.text:
            logger.info("Model text: %s", message.text[:100])

        if message.tool_call_cancellation is not None:
            ids = message.tool_call_cancellation.ids
            logger.info("Tool calls cancelled by server: %s", ids)
            session.cancelled_call_ids.update(ids)

        if message.go_away is not None:
            logger.warning("Server will close the session (time left: %s)", message.go_away.time_left)

        calls = message.function_calls
        if calls:
            logger.info("Tool call received: %s", [c.name for c in calls])
            self._set_state(ClientState.THINKING)
            self._spawn(self._run_tool_batch(session, calls))

    async def _run_tool_batch(self, session: Session, calls: list[FunctionCall]) -> None:
        async with self._tool_lock:
            transport = session.transport
            if session is not self._session or transport is None:
                logger.info("Session closed; skipping %d tool call(s)", len(calls))
                return
            if self._state in LIVE_STATES:
                self._set_state(ClientState.THINKING)

            responses = []
            for call in calls:
                if call.id in session.cancelled_call_ids:
                    logger.info("Skipping cancelled tool call %s", call.id)
                    continue
                responses.append(await self._dispatch(call))

            if session is not self._session or session.transport is not transport:
                logger.info("Discarding %d tool result(s); session closed", len(responses))
                return
            if responses:
                await self.send_tool_response(responses)
            if self._state is ClientState.THINKING:
                self._set_state(ClientState.OPEN)

    async def _dispatch(self, call: FunctionCall) -> dict:
        logger.info("Function: %s | Args: %s", call.name, call.args)
        try:
            result = await self._dispatcher.execute(call.name, call.args)
        except Exception as exc:
            logger.exception("Tool %s failed", call.name)
            return function_response(call, error=str(exc) or type(exc).__name__)
        logger.info("Tool %s result: %s", call.name, str(result)[:100])
        return function_response(call, result=str(result))

    # -- Audio (internal) -----------------------------------------------------

    def _start_audio(self) -> None:
        if self._audio_started:
            return
        self._audio_started = True
        self._audio.start_capture(self._on_captured)
        self._playback = self._audio.start_playback(self._on_playback_drained)

    def _on_captured(self, frame: AudioFrame, rms: float) -> None:
        self._emit(Volume(rms))
        self.send_audio(frame)

    def _on_playback_drained(self) -> None:
        if self._state is ClientState.TALKING:
            self._set_state(ClientState.OPEN)

    # -- Cleanup (internal) ---------------------------------------------------

    def _cancel_timers(self) -> None:
        if self._timeout_timer is not None:
            self._timeout_timer.cancel()
            self._timeout_timer = None
        if self._retry_timer is not None:
            self._retry_timer.cancel()
            self._retry_timer = None

    def _teardown_transport(self, session: Session) -> None:
        if self._connect_task is not None:
            self._connect_task.cancel()
            self._connect_task = None
        if self._receive_task is not None:
            if self._receive_task is not asyncio.current_task():
                self._receive_task.cancel()
            self._receive_task = None
        transport, session.transport = session.transport, None
        if transport is not None:
            self._spawn_close(transport)

    def _cleanup(self) -> None:
        """Release everything the session holds. Safe to call repeatedly."""
        session, self._session = self._session, None
        self._cancel_timers()
        if session is not None:
            self._teardown_transport(session)
        if self._audio_started:
            self._audio_started = False
            self._playback = None
            try:
                self._audio.stop()
            except Exception:
                logger.exception("Error releasing audio devices")
        if session is not None:
            logger.info("Session cleaned up")

    def _spawn_close(self, transport: Transport) -> None:
        task = self._spawn(self._close_transport(transport))
        if task is not None:
            self._closing.add(task)
            task.add_done_callback(self._closing.discard)

    async def _close_transport(self, transport: Transport) -> None:
        try:
            await transport.close()
        except Exception as exc:
            logger.warning("Error closing transport: %s", exc)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task | None:
        try:
            task = asyncio.get_running_loop().create_task(coro)
        except RuntimeError:
            # No running loop (e.g. disconnect() after the loop stopped)
            coro.close()
            logger.debug("No event loop; dropping background work")
            return None
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
