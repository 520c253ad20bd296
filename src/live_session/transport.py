"""WebSocket transport for the Gemini Live API.

The transport owns the socket and the setup handshake; it knows nothing about
session state. The client decodes the raw frames it yields.

Docs:
- Live API WebSockets: https://ai.google.dev/api/live
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from typing import Callable, Protocol

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidStatus

from .config import LiveSessionConfig
from .errors import (
    ProtocolError,
    SetupError,
    TransientConnectionError,
    TransportClosedError,
)
from .messages import decode_server_message

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """One bidirectional connection attempt."""

    async def open(self, setup_message: dict) -> None:
        """Connect, send ``setup_message`` and wait for ``setupComplete``."""
        ...

    async def send(self, message: dict) -> None: ...

    def frames(self) -> AsyncIterator[str | bytes]:
        """Yield raw inbound frames until the connection closes.

        Raises TransportClosedError on an abnormal close.
        """
        ...

    async def close(self) -> None: ...


TransportFactory = Callable[[LiveSessionConfig], Transport]


def _closed_error(exc: ConnectionClosed) -> TransportClosedError:
    frame = exc.rcvd
    if frame is None:
        return TransportClosedError()
    return TransportClosedError(frame.code, frame.reason)


class WebSocketTransport:
    """Async WebSocket connection to ``BidiGenerateContent``.

    Usage::

        transport = WebSocketTransport(config)
        await transport.open(setup_message)
        async for raw in transport.frames():
            ...
        await transport.close()
    """

    def __init__(self, config: LiveSessionConfig) -> None:
        self._config = config
        self._ws: ClientConnection | None = None

    async def open(self, setup_message: dict) -> None:
        logger.info("Connecting to Live API (model=%s)", self._config.model)
        try:
            self._ws = await connect(self._config.live_ws_url, max_size=None)
        except InvalidStatus as exc:
            status = exc.response.status_code
            if status in (401, 403):
                raise SetupError(f"Live API rejected the API key (HTTP {status})") from exc
            raise TransientConnectionError(f"Live API handshake failed (HTTP {status})") from exc
        except (InvalidHandshake, OSError) as exc:
            raise TransientConnectionError(f"Live API unreachable: {exc}") from exc

        await self.send(setup_message)
        try:
            raw = await self._ws.recv()
        except ConnectionClosed as exc:
            raise _closed_error(exc) from exc

        message = decode_server_message(raw)
        if message.setup_complete is None:
            raise ProtocolError("Expected setupComplete as first server message")
        logger.info("Live API setup complete")

    async def send(self, message: dict) -> None:
        """Serialize and send a JSON message over the WebSocket."""
        assert self._ws is not None, "Not connected"
        try:
            await self._ws.send(json.dumps(message))
        except ConnectionClosed as exc:
            raise _closed_error(exc) from exc

    async def frames(self) -> AsyncIterator[str | bytes]:
        ws = self._ws
        assert ws is not None, "Not connected"
        try:
            async for raw in ws:
                yield raw
        except ConnectionClosed as exc:
            raise _closed_error(exc) from exc
        # Clean close is still a server-initiated end of the session
        frame = ws.close_rcvd
        if frame is None:
            raise TransportClosedError()
        raise TransportClosedError(frame.code, frame.reason)

    async def close(self) -> None:
        """Close the WebSocket connection gracefully."""
        if self._ws:
            ws, self._ws = self._ws, None
            await ws.close()
            logger.info("Disconnected from Live API")
