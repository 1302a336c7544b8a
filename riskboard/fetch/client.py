"""Async downstream client with timeouts, retries, and typed fallbacks."""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import httpx
import structlog
from pydantic import ValidationError

from riskboard.fetch.constants import (
    DEFAULT_TIMEOUT_SECONDS,
    HTTP_STATUS_OK_MAX,
    HTTP_STATUS_OK_MIN,
    HTTP_STATUS_SERVER_ERROR_MAX,
    HTTP_STATUS_SERVER_ERROR_MIN,
)
from riskboard.fetch.errors import (
    DownstreamError,
    DownstreamTimeoutError,
    RetryableDownstreamError,
    UnretryableDownstreamError,
)
from riskboard.fetch.metrics import FetchMetrics
from riskboard.fetch.models import (
    FetchError,
    FetchErrorClass,
    FetchOutcome,
    FetchResult,
    FetchSpec,
    PayloadT,
    RetryPolicy,
)
from riskboard.fetch.state_machine import BranchStateMachine


logger = structlog.get_logger()

ValueT = TypeVar("ValueT")


@dataclass
class _AttemptSummary(Generic[ValueT]):
    """What the retry loop produced for one logical fetch."""

    succeeded: bool
    value: ValueT | None
    attempts: int
    error: FetchError | None


class DownstreamClient:
    """Resilient client for one downstream source.

    Every logical fetch:
    - applies a fixed per-call timeout
    - retries retryable failures (timeouts, connection errors, 5xx) with
      exponential backoff, up to the retry budget
    - fails immediately on client errors (4xx) and malformed bodies
    - resolves to the spec's fallback payload instead of raising

    The client holds no per-request state, so one instance may serve any
    number of concurrent fetches.
    """

    def __init__(
        self,
        source: str,
        http_client: httpx.AsyncClient,
        retry_policy: RetryPolicy | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        metrics: FetchMetrics | None = None,
    ) -> None:
        """Initialize the downstream client.

        Args:
            source: Name of the downstream source (risk, trading, ledger).
            http_client: Shared async HTTP client bound to the source's base URL.
            retry_policy: Retry configuration.
            timeout_seconds: Bound on each individual attempt.
            metrics: Optional metrics instance.
        """
        self._source = source
        self._http = http_client
        self._retry_policy = retry_policy or RetryPolicy()
        self._timeout_seconds = timeout_seconds
        self._metrics = metrics or FetchMetrics.get_instance()
        self._log = logger.bind(component="fetch", source=source)

    @property
    def source(self) -> str:
        """Name of the downstream source."""
        return self._source

    @property
    def retry_policy(self) -> RetryPolicy:
        """Retry configuration applied to every fetch."""
        return self._retry_policy

    async def fetch(self, spec: FetchSpec[PayloadT]) -> FetchResult[PayloadT]:
        """Fetch and decode one payload.

        Args:
            spec: Branch description (path, payload type, fallback).

        Returns:
            FetchResult holding the decoded payload, or the fallback payload
            when every attempt failed or the failure was not retryable.
        """

        async def attempt() -> PayloadT:
            body = await self._get_json(spec.path)
            try:
                return spec.decode(body)
            except ValidationError as e:
                raise UnretryableDownstreamError(
                    FetchError(
                        error_class=FetchErrorClass.DECODE_ERROR,
                        message=f"Unexpected payload shape: {e.error_count()} errors",
                    )
                ) from e

        return await self._resolve(spec.name, spec.path, attempt, spec.fallback)

    async def ping(self, name: str, path: str) -> FetchResult[float]:
        """Measure the round-trip time of a lightweight endpoint.

        Args:
            name: Branch name used in logs and metrics.
            path: Ping path relative to the base URL.

        Returns:
            FetchResult whose payload is the round-trip time in milliseconds
            of the successful attempt, or 0.0 on fallback.
        """

        async def attempt() -> float:
            start_ns = time.perf_counter_ns()
            await self._send(path)
            return (time.perf_counter_ns() - start_ns) / 1_000_000

        return await self._resolve(name, path, attempt, float)

    async def _resolve(
        self,
        branch: str,
        path: str,
        attempt: Callable[[], Awaitable[ValueT]],
        fallback: Callable[[], ValueT],
    ) -> FetchResult[ValueT]:
        start_time_ns = time.perf_counter_ns()
        log = self._log.bind(branch=branch, path=path)
        state = BranchStateMachine(branch)

        summary = await self._execute_with_retry(branch, attempt, state, log)

        duration_ms = (time.perf_counter_ns() - start_time_ns) / 1_000_000
        self._metrics.record_duration(duration_ms)

        if summary.succeeded:
            outcome = (
                FetchOutcome.SUCCESS
                if summary.attempts == 1
                else FetchOutcome.RETRIED_SUCCESS
            )
            payload = summary.value
            log.info(
                "fetch_complete",
                outcome=outcome.value,
                attempts=summary.attempts,
                duration_ms=round(duration_ms, 2),
            )
        else:
            outcome = FetchOutcome.FALLBACK
            payload = fallback()
            self._metrics.record_fallback(branch)
            log.error(
                "fetch_fallback",
                attempts=summary.attempts,
                duration_ms=round(duration_ms, 2),
                error_class=summary.error.error_class.value if summary.error else None,
                error=summary.error.message if summary.error else None,
            )

        return FetchResult(
            branch=branch,
            payload=payload,
            outcome=outcome,
            attempts=summary.attempts,
            elapsed_ms=duration_ms,
            error=summary.error,
        )

    async def _execute_with_retry(
        self,
        branch: str,
        attempt: Callable[[], Awaitable[ValueT]],
        state: BranchStateMachine,
        log: structlog.stdlib.BoundLogger,
    ) -> _AttemptSummary[ValueT]:
        """Run attempts until success, a non-retryable error, or exhaustion.

        Args:
            branch: Branch name for metrics.
            attempt: Coroutine factory performing one attempt.
            state: Branch state machine to drive.
            log: Bound logger.

        Returns:
            Summary of the attempts made.
        """
        policy = self._retry_policy
        last_error: FetchError | None = None

        for attempt_index in range(policy.max_attempts):
            if attempt_index > 0:
                delay_ms = policy.get_delay_ms(attempt_index - 1)
                self._metrics.record_retry()
                log.debug(
                    "retry_scheduled",
                    attempt=attempt_index + 1,
                    delay_ms=delay_ms,
                    max_retries=policy.max_retries,
                )
                await asyncio.sleep(delay_ms / 1000.0)

            self._metrics.record_attempt(branch)
            log.debug("fetch_attempt", attempt=attempt_index + 1)

            try:
                value = await attempt()
            except DownstreamError as e:
                last_error = e.error
                self._metrics.record_failure(e.error_class)
                log.warning(
                    "fetch_attempt_failed",
                    attempt=attempt_index + 1,
                    error_class=e.error_class.value,
                    status_code=e.error.status_code,
                    error=e.error.message,
                )
                if not policy.should_retry(e.error, attempt_index):
                    state.to_fallback()
                    return _AttemptSummary(
                        succeeded=False,
                        value=None,
                        attempts=attempt_index + 1,
                        error=last_error,
                    )
                state.to_retrying()
                continue

            state.to_succeeded()
            return _AttemptSummary(
                succeeded=True,
                value=value,
                attempts=attempt_index + 1,
                error=last_error,
            )

        # should_retry() refuses the last attempt, so the loop always returns
        state.to_fallback()
        return _AttemptSummary(
            succeeded=False,
            value=None,
            attempts=policy.max_attempts,
            error=last_error,
        )

    async def _get_json(self, path: str) -> Any:
        response = await self._send(path)
        try:
            return response.json()
        except ValueError as e:
            raise UnretryableDownstreamError(
                FetchError(
                    error_class=FetchErrorClass.DECODE_ERROR,
                    message=f"Response body is not valid JSON: {e}",
                    status_code=response.status_code,
                )
            ) from e

    async def _send(self, path: str) -> httpx.Response:
        """Execute a single GET bounded by the per-call timeout.

        Args:
            path: Request path.

        Returns:
            The 2xx response.

        Raises:
            DownstreamError: Classified failure of this attempt.
        """
        try:
            async with asyncio.timeout(self._timeout_seconds):
                response = await self._http.get(path, timeout=self._timeout_seconds)
        except (TimeoutError, httpx.TimeoutException) as e:
            raise DownstreamTimeoutError(
                FetchError(
                    error_class=FetchErrorClass.NETWORK_TIMEOUT,
                    message=f"No response within {self._timeout_seconds}s",
                )
            ) from e
        except httpx.TransportError as e:
            raise RetryableDownstreamError(
                FetchError(
                    error_class=FetchErrorClass.CONNECTION_ERROR,
                    message=f"Connection failed: {e!r}",
                )
            ) from e
        except httpx.HTTPError as e:
            raise RetryableDownstreamError(
                FetchError(
                    error_class=FetchErrorClass.UNKNOWN,
                    message=f"Unexpected error: {e!r}",
                )
            ) from e

        self._metrics.record_request(response.status_code)
        http_error = self._classify_http_error(response.status_code)
        if http_error is not None:
            raise DownstreamError.from_fetch_error(http_error)
        return response

    def _classify_http_error(self, status_code: int) -> FetchError | None:
        """Classify an HTTP status code.

        Args:
            status_code: HTTP status code.

        Returns:
            FetchError if status indicates error, None otherwise.
        """
        if HTTP_STATUS_OK_MIN <= status_code < HTTP_STATUS_OK_MAX:
            return None

        if HTTP_STATUS_SERVER_ERROR_MIN <= status_code < HTTP_STATUS_SERVER_ERROR_MAX:
            return FetchError(
                error_class=FetchErrorClass.HTTP_5XX,
                message=f"Server error: HTTP {status_code}",
                status_code=status_code,
            )

        # 4xx and anything else outside 2xx is not worth repeating
        return FetchError(
            error_class=FetchErrorClass.HTTP_4XX,
            message=f"Client error: HTTP {status_code}",
            status_code=status_code,
        )
