"""
Request Executor

Performs HTTP exchanges against the model API with classification, retry
and backoff. One call to ``execute`` covers all attempts for one logical
request; the executor keeps no per-call state on the instance, so a single
instance can serve any number of concurrent runs.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from taskpilot.core.domain.cancellation import CancellationToken
from taskpilot.core.domain.errors import (
    AgentError,
    AuthFailureError,
    ClientRequestError,
    DecodeFailureError,
    ErrorKind,
    RateLimitedError,
    ServerError,
    TransientNetworkError,
    TransportFailureError,
    UnexpectedStatusError,
)
from taskpilot.infrastructure.llm.retry_policy import (
    DEFAULT_RETRY_CONFIG,
    ResponseClass,
    RetryConfiguration,
    classify_status,
    delay_for,
    parse_retry_after,
    should_retry,
)

T = TypeVar("T")

Decoder = Callable[[bytes], T]
Sleeper = Callable[[float], Awaitable[None]]

# Error kinds produced by an HTTP exchange and their classification.
_CLASSIFICATION_BY_KIND: dict[ErrorKind, ResponseClass] = {
    ErrorKind.TRANSIENT_NETWORK: ResponseClass.TRANSIENT_NETWORK,
    ErrorKind.RATE_LIMITED: ResponseClass.RATE_LIMITED,
    ErrorKind.AUTH_FAILURE: ResponseClass.AUTH_FAILURE,
    ErrorKind.CLIENT_ERROR: ResponseClass.CLIENT_ERROR,
    ErrorKind.SERVER_ERROR: ResponseClass.SERVER_ERROR,
    ErrorKind.DECODE_FAILURE: ResponseClass.DECODE_FAILURE,
    ErrorKind.UNEXPECTED_STATUS: ResponseClass.UNEXPECTED_STATUS,
}

# Timeouts and lost or broken connections; other transport errors are fatal.
_TRANSIENT_TRANSPORT_ERRORS = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
)

_DEBUG_PREFIX_CHARS = 200


class ApiErrorDetail(BaseModel):
    message: str
    type: str | None = None
    code: str | int | None = None


class ApiErrorBody(BaseModel):
    """Structured error body returned by OpenAI-compatible APIs."""

    error: ApiErrorDetail


class RequestExecutor:
    """
    Resilient executor for model API requests.

    Attempts are classified structurally from the status code:
    - 2xx: decode the body; a decode error is fatal and never retried
    - 429: rate limited, honouring a Retry-After header
    - 401: authentication failure, fatal
    - other 4xx: client error with the API's error message, fatal
    - 5xx: server error, retried
    - anything else: unexpected status, fatal
    Timeouts and connection failures are retried; other transport errors
    (unsupported URL scheme, proxy or local protocol errors) are fatal.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        sleep: Sleeper = asyncio.sleep,
        debug_api: bool = False,
    ):
        """
        Args:
            http_client: Client used to send requests. A default client is
                created (and owned) when omitted.
            sleep: Coroutine used for retry suspensions
            debug_api: Log request and response body prefixes at debug level
        """
        self._client = http_client or httpx.AsyncClient()
        self._owns_client = http_client is None
        self._sleep = sleep
        self._debug_api = debug_api
        self.logger = structlog.get_logger().bind(component="request_executor")

    async def execute(
        self,
        request: httpx.Request,
        decode: Decoder[T],
        retry_config: RetryConfiguration | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> T:
        """
        Send ``request`` until it succeeds or no attempts remain.

        Args:
            request: Fully built request, re-sent unchanged on retries
            decode: Converts a success body into the expected type
            retry_config: Retry settings (defaults to DEFAULT_RETRY_CONFIG)
            cancel_token: Checked before each attempt and each suspension

        Returns:
            The decoded success body.

        Raises:
            AgentError: The classified error of the last attempt, or
                RunCancelledError if the token fired.
        """
        config = retry_config or DEFAULT_RETRY_CONFIG
        attempt = 0

        while True:
            if cancel_token:
                cancel_token.raise_if_cancelled()

            self.logger.debug(
                "request.attempt",
                method=request.method,
                url=str(request.url),
                attempt=attempt + 1,
                max_attempts=config.max_attempts,
            )

            try:
                result = await self._attempt(request, decode, cancel_token)
            except AgentError as error:
                classification = _CLASSIFICATION_BY_KIND.get(error.kind)
                if classification is None or not should_retry(classification, attempt, config):
                    self.logger.warning(
                        "request.failed",
                        url=str(request.url),
                        error_kind=error.kind.value,
                        error=error.message[:200],
                        attempts=attempt + 1,
                    )
                    raise

                retry_after = error.retry_after if isinstance(error, RateLimitedError) else None
                delay = delay_for(attempt, config, retry_after)
                self.logger.warning(
                    "request.retry_scheduled",
                    url=str(request.url),
                    classification=classification.value,
                    attempt=attempt + 1,
                    delay_seconds=delay,
                )
                await self._pause(delay, cancel_token)
                attempt += 1
                continue

            self.logger.debug("request.succeeded", url=str(request.url), attempts=attempt + 1)
            return result

    async def _attempt(
        self,
        request: httpx.Request,
        decode: Decoder[T],
        cancel_token: CancellationToken | None,
    ) -> T:
        """Perform one exchange and classify its outcome."""
        if self._debug_api:
            self.logger.debug(
                "request.body",
                method=request.method,
                url=str(request.url),
                body=request.content[:_DEBUG_PREFIX_CHARS].decode("utf-8", "replace"),
            )

        try:
            if cancel_token:
                cancel_token.raise_if_cancelled()
                response = await cancel_token.guard(self._client.send(request))
            else:
                response = await self._client.send(request)
        except _TRANSIENT_TRANSPORT_ERRORS as exc:
            raise TransientNetworkError(f"{type(exc).__name__}: {exc}") from exc
        except httpx.TransportError as exc:
            raise TransportFailureError(f"{type(exc).__name__}: {exc}") from exc

        status = response.status_code
        if self._debug_api:
            self.logger.debug(
                "response.body",
                status=status,
                body=response.text[:_DEBUG_PREFIX_CHARS],
            )

        classification = classify_status(status)
        if classification is ResponseClass.SUCCESS:
            try:
                return decode(response.content)
            except (ValueError, TypeError, KeyError, IndexError) as exc:
                raise DecodeFailureError(f"Failed to decode response: {exc}") from exc
        if classification is ResponseClass.RATE_LIMITED:
            raise RateLimitedError(parse_retry_after(response.headers.get("Retry-After")))
        if classification is ResponseClass.AUTH_FAILURE:
            raise AuthFailureError()
        if classification is ResponseClass.CLIENT_ERROR:
            raise ClientRequestError(status, self._client_error_message(response))
        if classification is ResponseClass.SERVER_ERROR:
            raise ServerError(status)
        raise UnexpectedStatusError(status)

    @staticmethod
    def _client_error_message(response: httpx.Response) -> str:
        try:
            return ApiErrorBody.model_validate_json(response.content).error.message
        except ValidationError:
            return f"Client error: {response.status_code}"

    async def _pause(self, delay: float, cancel_token: CancellationToken | None) -> None:
        if cancel_token is None:
            await self._sleep(delay)
            return
        cancel_token.raise_if_cancelled()
        await cancel_token.guard(self._sleep(delay))

    async def aclose(self) -> None:
        """Close the underlying client if this executor created it."""
        if self._owns_client:
            await self._client.aclose()
