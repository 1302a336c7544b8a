"""Data models for the downstream fetch layer."""

import random
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Annotated, Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from riskboard.fetch.constants import DEFAULT_BASE_DELAY_MS, DEFAULT_MAX_RETRIES


PayloadT = TypeVar("PayloadT")


class FetchErrorClass(str, Enum):
    """Classification of fetch errors for metrics and retry decisions.

    - NETWORK_TIMEOUT: No response within the per-call timeout
    - CONNECTION_ERROR: Could not establish or keep the connection
    - HTTP_4XX: Non-retryable client error
    - HTTP_5XX: Retryable server error
    - DECODE_ERROR: Body did not match the expected payload shape
    - STORE_UNAVAILABLE: Ranked set store could not be reached
    - UNKNOWN: Unclassified transport error
    """

    NETWORK_TIMEOUT = "NETWORK_TIMEOUT"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    HTTP_4XX = "HTTP_4XX"
    HTTP_5XX = "HTTP_5XX"
    DECODE_ERROR = "DECODE_ERROR"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    UNKNOWN = "UNKNOWN"


RETRYABLE_ERROR_CLASSES = frozenset(
    {
        FetchErrorClass.NETWORK_TIMEOUT,
        FetchErrorClass.CONNECTION_ERROR,
        FetchErrorClass.HTTP_5XX,
        FetchErrorClass.UNKNOWN,
    }
)


class FetchOutcome(str, Enum):
    """Terminal outcome of one logical fetch."""

    SUCCESS = "SUCCESS"
    RETRIED_SUCCESS = "RETRIED_SUCCESS"
    FALLBACK = "FALLBACK"


class FetchError(BaseModel):
    """Typed error from a fetch attempt.

    Provides structured information about what went wrong, enabling
    retry decisions and error reporting.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    error_class: FetchErrorClass = Field(description="Classification of the error")
    message: Annotated[str, Field(min_length=1, description="Human-readable message")]
    status_code: int | None = Field(
        default=None, description="HTTP status code if available"
    )

    @property
    def is_retryable(self) -> bool:
        """Whether this class of error may succeed on a later attempt."""
        return self.error_class in RETRYABLE_ERROR_CLASSES


class FetchResult(BaseModel, Generic[PayloadT]):
    """Result of one logical fetch (all attempts included).

    The payload is either the decoded response or the fallback value of the
    same shape; a FetchResult is produced for every fetch, never an exception.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    branch: Annotated[str, Field(min_length=1)]
    payload: PayloadT
    outcome: FetchOutcome
    attempts: Annotated[int, Field(ge=1)] = 1
    elapsed_ms: Annotated[float, Field(ge=0.0)] = 0.0
    error: FetchError | None = Field(
        default=None, description="Last error seen, if any attempt failed"
    )

    @property
    def is_success(self) -> bool:
        """True when the payload came from the downstream, not the fallback."""
        return self.outcome != FetchOutcome.FALLBACK

    @property
    def is_fallback(self) -> bool:
        """True when the fallback value was applied."""
        return self.outcome == FetchOutcome.FALLBACK


class RetryPolicy(BaseModel):
    """Configuration for retry behavior.

    Uses exponential backoff: delay = base_delay_ms * (exponential_base ^ retry)
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_retries: Annotated[int, Field(ge=0, le=10)] = DEFAULT_MAX_RETRIES
    base_delay_ms: Annotated[int, Field(ge=0, le=60000)] = DEFAULT_BASE_DELAY_MS
    max_delay_ms: Annotated[int, Field(ge=0, le=300000)] = 5000
    exponential_base: Annotated[float, Field(ge=1.0, le=5.0)] = 2.0
    jitter_factor: Annotated[float, Field(ge=0.0, le=1.0)] = 0.1

    @property
    def max_attempts(self) -> int:
        """Total attempts including the first one."""
        return self.max_retries + 1

    def should_retry(self, error: FetchError, attempt: int) -> bool:
        """Determine if a request should be retried.

        Args:
            error: The error that occurred.
            attempt: Current attempt number (0-indexed).

        Returns:
            True if the request should be retried.
        """
        if attempt >= self.max_retries:
            return False
        return error.is_retryable

    def get_delay_ms(self, retry: int) -> int:
        """Calculate delay before the next retry.

        Args:
            retry: Retry number (0-indexed).

        Returns:
            Delay in milliseconds.
        """
        delay = self.base_delay_ms * (self.exponential_base**retry)
        delay = min(delay, self.max_delay_ms)

        jitter = delay * self.jitter_factor * random.random()  # noqa: S311
        return int(delay + jitter)


@dataclass(frozen=True)
class FetchSpec(Generic[PayloadT]):
    """Description of one downstream branch.

    Attributes:
        name: Branch name, used as key in the aggregation result map.
        path: Request path relative to the client's base URL.
        payload_type: Type the JSON body is validated into.
        fallback: Factory returning a fresh fallback payload.
    """

    name: str
    path: str
    payload_type: Any
    fallback: Callable[[], PayloadT]

    def decode(self, body: Any) -> PayloadT:
        """Validate a decoded JSON body into the payload type."""
        payload: PayloadT = _adapter_for(self.payload_type).validate_python(body)
        return payload


@lru_cache(maxsize=64)
def _adapter_for(payload_type: Any) -> TypeAdapter[Any]:
    return TypeAdapter(payload_type)
