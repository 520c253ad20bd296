"""Error taxonomy for the live session client.

Transient errors are retried with backoff, setup errors are terminal and
surfaced immediately, protocol errors are contained and logged.
"""

from __future__ import annotations


class LiveSessionError(Exception):
    """Base class for all live session failures."""


# -- Transient connectivity -------------------------------------------------

class TransientConnectionError(LiveSessionError):
    """Network-level failure that is eligible for reconnection."""


class ConnectionTimeoutError(TransientConnectionError):
    """The transport handshake did not complete in time."""

    def __init__(self, timeout_s: float) -> None:
        super().__init__(f"Connection timeout after {timeout_s:g}s")
        self.timeout_s = timeout_s


class TransportClosedError(TransientConnectionError):
    """The transport was closed by the server or the network."""

    def __init__(self, code: int | None = None, reason: str = "") -> None:
        detail = f"code={code}" if code is not None else "no close frame"
        if reason:
            detail = f"{detail}, reason={reason}"
        super().__init__(f"Connection closed ({detail})")
        self.code = code
        self.reason = reason


# -- Permanent setup ----------------------------------------------------------

class SetupError(LiveSessionError):
    """Failure that a retry cannot fix; the user has to act."""


class MissingApiKeyError(SetupError):
    def __init__(self) -> None:
        super().__init__("GEMINI_API_KEY is not configured")


class AudioDeviceError(SetupError):
    """Microphone or speaker could not be acquired (e.g. permission denied)."""


# -- Protocol / terminal -----------------------------------------------------

class ProtocolError(LiveSessionError):
    """An inbound message could not be decoded."""


class RetryExhaustedError(LiveSessionError):
    def __init__(self, attempts: int, last_error: BaseException | None = None) -> None:
        message = f"Connection lost after {attempts} reconnect attempts"
        if last_error is not None:
            message = f"{message}: {last_error}"
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error
