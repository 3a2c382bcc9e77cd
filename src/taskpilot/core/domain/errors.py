"""
Domain Errors

Every failure the engine can surface is one of the classes below. Each
carries an ``ErrorKind`` so consumers can dispatch on a closed set of
kinds instead of inspecting messages.

Only transient network failures, rate limiting and server errors are ever
retried, and only inside the request executor. Everything else is fatal
for the current run, except ``ToolInvocationError`` which the run loop
folds into the transcript as a failed tool result.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Closed set of failure kinds."""

    TRANSIENT_NETWORK = "transient_network"
    RATE_LIMITED = "rate_limited"
    AUTH_FAILURE = "auth_failure"
    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"
    DECODE_FAILURE = "decode_failure"
    UNEXPECTED_STATUS = "unexpected_status"
    SESSION_NOT_FOUND = "session_not_found"
    SESSION_STORAGE = "session_storage"
    MAX_STEPS_EXCEEDED = "max_steps_exceeded"
    CANCELLED = "cancelled"
    TOOL_INVOCATION = "tool_invocation"
    TRANSPORT_FAILURE = "transport_failure"


class AgentError(Exception):
    """Base class for all engine errors."""

    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class TransientNetworkError(AgentError):
    """Timeout or connection loss before a response was received."""

    kind = ErrorKind.TRANSIENT_NETWORK


class RateLimitedError(AgentError):
    """HTTP 429. ``retry_after`` is the server hint in seconds, if any."""

    kind = ErrorKind.RATE_LIMITED

    def __init__(self, retry_after: float | None = None):
        hint = f" (retry after {retry_after}s)" if retry_after is not None else ""
        super().__init__(f"Rate limited{hint}")
        self.retry_after = retry_after


class TransportFailureError(AgentError):
    """Request could not be sent at all (bad URL scheme, proxy or protocol misuse)."""

    kind = ErrorKind.TRANSPORT_FAILURE


class AuthFailureError(AgentError):
    kind = ErrorKind.AUTH_FAILURE

    def __init__(self, message: str = "Invalid API key"):
        super().__init__(message)


class ClientRequestError(AgentError):
    """HTTP 4xx other than 401 and 429."""

    kind = ErrorKind.CLIENT_ERROR

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code


class ServerError(AgentError):
    kind = ErrorKind.SERVER_ERROR

    def __init__(self, status_code: int):
        super().__init__(f"Server error: {status_code}")
        self.status_code = status_code


class DecodeFailureError(AgentError):
    """A success response whose body could not be decoded."""

    kind = ErrorKind.DECODE_FAILURE


class UnexpectedStatusError(AgentError):
    kind = ErrorKind.UNEXPECTED_STATUS

    def __init__(self, status_code: int):
        super().__init__(f"Unexpected status code: {status_code}")
        self.status_code = status_code


class SessionNotFoundError(AgentError):
    kind = ErrorKind.SESSION_NOT_FOUND

    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class SessionStorageError(AgentError):
    """A session could not be read from or written to its backing storage."""

    kind = ErrorKind.SESSION_STORAGE

    def __init__(self, session_id: str, message: str):
        super().__init__(f"Session storage failure for {session_id}: {message}")
        self.session_id = session_id


class MaxStepsExceededError(AgentError):
    kind = ErrorKind.MAX_STEPS_EXCEEDED

    def __init__(self, max_steps: int):
        super().__init__(f"Exceeded maximum steps ({max_steps})")
        self.max_steps = max_steps


class RunCancelledError(AgentError):
    kind = ErrorKind.CANCELLED

    def __init__(self, message: str = "cancelled"):
        super().__init__(message)


class ToolInvocationError(AgentError):
    """Raised by tool layers; recovered locally by the run loop."""

    kind = ErrorKind.TOOL_INVOCATION
