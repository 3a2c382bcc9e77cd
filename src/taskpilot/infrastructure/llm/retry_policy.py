"""
Retry Policy

Pure decision logic for the request executor: how an HTTP outcome is
classified, whether it may be retried, and how long to wait before the
next attempt. No I/O happens here.
"""

import math
from dataclasses import dataclass
from enum import Enum


class ResponseClass(str, Enum):
    """Classification of a single HTTP exchange."""

    SUCCESS = "success"
    RATE_LIMITED = "rate_limited"
    AUTH_FAILURE = "auth_failure"
    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"
    TRANSIENT_NETWORK = "transient_network"
    DECODE_FAILURE = "decode_failure"
    UNEXPECTED_STATUS = "unexpected_status"


# Every classification must appear here.
RETRYABLE: dict[ResponseClass, bool] = {
    ResponseClass.SUCCESS: False,
    ResponseClass.RATE_LIMITED: True,
    ResponseClass.AUTH_FAILURE: False,
    ResponseClass.CLIENT_ERROR: False,
    ResponseClass.SERVER_ERROR: True,
    ResponseClass.TRANSIENT_NETWORK: True,
    ResponseClass.DECODE_FAILURE: False,
    ResponseClass.UNEXPECTED_STATUS: False,
}


@dataclass(frozen=True)
class RetryConfiguration:
    """
    Retry settings for one request executor invocation.

    Attributes:
        max_attempts: Total attempts including the first one (>= 1)
        base_delay: Delay in seconds before the second attempt
        backoff_factor: Multiplier applied per further attempt (>= 1)
        max_delay: Upper bound for computed backoff delays
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    backoff_factor: float = 2.0
    max_delay: float = 30.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.base_delay < 0:
            raise ValueError(f"base_delay must be >= 0, got {self.base_delay}")
        if self.backoff_factor < 1:
            raise ValueError(f"backoff_factor must be >= 1, got {self.backoff_factor}")
        if self.max_delay < 0:
            raise ValueError(f"max_delay must be >= 0, got {self.max_delay}")


DEFAULT_RETRY_CONFIG = RetryConfiguration()


def classify_status(status_code: int) -> ResponseClass:
    """Map an HTTP status code to its classification."""
    if 200 <= status_code <= 299:
        return ResponseClass.SUCCESS
    if status_code == 429:
        return ResponseClass.RATE_LIMITED
    if status_code == 401:
        return ResponseClass.AUTH_FAILURE
    if 400 <= status_code <= 499:
        return ResponseClass.CLIENT_ERROR
    if 500 <= status_code <= 599:
        return ResponseClass.SERVER_ERROR
    return ResponseClass.UNEXPECTED_STATUS


def should_retry(
    classification: ResponseClass,
    attempt_index: int,
    config: RetryConfiguration = DEFAULT_RETRY_CONFIG,
) -> bool:
    """
    Decide whether another attempt follows attempt ``attempt_index`` (0-based).

    Only rate limiting, server errors and transient network failures are
    retried, and only while attempts remain.
    """
    return RETRYABLE[classification] and attempt_index < config.max_attempts - 1


def delay_for(
    attempt_index: int,
    config: RetryConfiguration = DEFAULT_RETRY_CONFIG,
    retry_after: float | None = None,
) -> float:
    """
    Seconds to wait after attempt ``attempt_index`` before the next one.

    A server-provided ``retry_after`` (rate limiting) wins over the
    exponential backoff and is not capped by ``max_delay``.
    """
    if retry_after is not None:
        return retry_after
    return min(config.base_delay * config.backoff_factor**attempt_index, config.max_delay)


def parse_retry_after(value: str | None) -> float | None:
    """Parse a Retry-After header holding integer or float seconds."""
    if value is None:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    if seconds < 0 or not math.isfinite(seconds):
        return None
    return seconds
