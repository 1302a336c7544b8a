"""Exceptions raised by single downstream attempts.

These never leave DownstreamClient.fetch(): the retry loop catches them,
decides whether to retry, and turns exhaustion into a fallback payload.
"""

from riskboard.fetch.models import FetchError, FetchErrorClass


class DownstreamError(Exception):
    """Base exception for a failed downstream attempt.

    Carries the typed FetchError used for retry decisions and metrics.
    """

    def __init__(self, error: FetchError) -> None:
        """Initialize the downstream error.

        Args:
            error: Structured description of the failure.
        """
        self.error = error
        super().__init__(error.message)

    @property
    def error_class(self) -> FetchErrorClass:
        """Classification of the failure."""
        return self.error.error_class

    @staticmethod
    def from_fetch_error(error: FetchError) -> "DownstreamError":
        """Build the exception subclass matching an error's class.

        Args:
            error: Structured failure.

        Returns:
            DownstreamTimeoutError, RetryableDownstreamError or
            UnretryableDownstreamError.
        """
        if error.error_class == FetchErrorClass.NETWORK_TIMEOUT:
            return DownstreamTimeoutError(error)
        if error.is_retryable:
            return RetryableDownstreamError(error)
        return UnretryableDownstreamError(error)


class DownstreamTimeoutError(DownstreamError):
    """No response within the per-call timeout. Retryable."""


class RetryableDownstreamError(DownstreamError):
    """Transient or server-side failure (5xx, connection reset)."""


class UnretryableDownstreamError(DownstreamError):
    """Client-side or malformed-response failure. Fails immediately."""
