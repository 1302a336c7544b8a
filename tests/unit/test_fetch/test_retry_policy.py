"""Unit tests for retry policy decisions."""

import pytest
from pydantic import ValidationError

from riskboard.fetch.models import FetchError, FetchErrorClass, RetryPolicy


class TestRetryPolicy:
    """Tests for RetryPolicy model."""

    def test_default_values(self) -> None:
        """Defaults are two retries with a 100 ms base delay."""
        policy = RetryPolicy()

        assert policy.max_retries == 2
        assert policy.base_delay_ms == 100
        assert policy.max_delay_ms == 5000
        assert policy.exponential_base == 2.0
        assert policy.jitter_factor == 0.1
        assert policy.max_attempts == 3

    def test_custom_values(self) -> None:
        """Test custom retry policy values."""
        policy = RetryPolicy(
            max_retries=5,
            base_delay_ms=500,
            max_delay_ms=60000,
            exponential_base=1.5,
            jitter_factor=0.2,
        )

        assert policy.max_retries == 5
        assert policy.base_delay_ms == 500
        assert policy.max_delay_ms == 60000
        assert policy.exponential_base == 1.5
        assert policy.jitter_factor == 0.2
        assert policy.max_attempts == 6

    def test_negative_retries_rejected(self) -> None:
        """Retry budget cannot be negative."""
        with pytest.raises(ValidationError):
            RetryPolicy(max_retries=-1)


class TestShouldRetry:
    """Tests for retry decision logic."""

    @pytest.fixture
    def policy(self) -> RetryPolicy:
        """Create the default retry policy."""
        return RetryPolicy(max_retries=2)

    def test_retry_on_network_timeout(self, policy: RetryPolicy) -> None:
        """Network timeouts are retried until the budget is spent."""
        error = FetchError(
            error_class=FetchErrorClass.NETWORK_TIMEOUT,
            message="No response within 5.0s",
        )

        assert policy.should_retry(error, attempt=0) is True
        assert policy.should_retry(error, attempt=1) is True
        assert policy.should_retry(error, attempt=2) is False  # Max reached

    def test_retry_on_connection_error(self, policy: RetryPolicy) -> None:
        """Test that connection errors are retried."""
        error = FetchError(
            error_class=FetchErrorClass.CONNECTION_ERROR,
            message="Connection refused",
        )

        assert policy.should_retry(error, attempt=0) is True
        assert policy.should_retry(error, attempt=2) is False

    @pytest.mark.parametrize("status", [500, 502, 503, 504])
    def test_retry_on_5xx(self, policy: RetryPolicy, status: int) -> None:
        """Server errors are retried."""
        error = FetchError(
            error_class=FetchErrorClass.HTTP_5XX,
            message="Server error",
            status_code=status,
        )

        assert policy.should_retry(error, attempt=0) is True

    def test_retry_on_unknown(self, policy: RetryPolicy) -> None:
        """Unclassified transport errors are treated as transient."""
        error = FetchError(error_class=FetchErrorClass.UNKNOWN, message="boom")

        assert policy.should_retry(error, attempt=0) is True

    def test_no_retry_on_4xx(self, policy: RetryPolicy) -> None:
        """Client errors are never retried."""
        for status in [400, 401, 403, 404, 409, 422, 429]:
            error = FetchError(
                error_class=FetchErrorClass.HTTP_4XX,
                message=f"Client error {status}",
                status_code=status,
            )

            assert policy.should_retry(error, attempt=0) is False

    def test_no_retry_on_decode_error(self, policy: RetryPolicy) -> None:
        """Malformed bodies are not retried."""
        error = FetchError(
            error_class=FetchErrorClass.DECODE_ERROR,
            message="Unexpected payload shape",
        )

        assert policy.should_retry(error, attempt=0) is False

    def test_zero_max_retries(self) -> None:
        """Test policy with zero max retries."""
        policy = RetryPolicy(max_retries=0)
        error = FetchError(
            error_class=FetchErrorClass.HTTP_5XX,
            message="Server Error",
            status_code=500,
        )

        assert policy.should_retry(error, attempt=0) is False
        assert policy.max_attempts == 1


class TestGetDelayMs:
    """Tests for retry delay calculation."""

    def test_exponential_backoff(self) -> None:
        """Test that delays increase exponentially."""
        policy = RetryPolicy(
            base_delay_ms=100,
            exponential_base=2.0,
            jitter_factor=0.0,
        )

        assert policy.get_delay_ms(0) == 100
        assert policy.get_delay_ms(1) == 200
        assert policy.get_delay_ms(2) == 400

    def test_max_delay_cap(self) -> None:
        """Test that delay is capped at max_delay_ms."""
        policy = RetryPolicy(
            base_delay_ms=1000,
            max_delay_ms=5000,
            exponential_base=2.0,
            jitter_factor=0.0,
        )

        assert policy.get_delay_ms(2) == 4000
        assert policy.get_delay_ms(3) == 5000
        assert policy.get_delay_ms(10) == 5000

    def test_jitter_bounded(self) -> None:
        """Jittered delays stay within base * (1 + jitter_factor)."""
        policy = RetryPolicy(base_delay_ms=1000, jitter_factor=0.1)

        for _ in range(10):
            assert 1000 <= policy.get_delay_ms(0) <= 1100

    def test_zero_base_delay(self) -> None:
        """A zero base delay never waits."""
        policy = RetryPolicy(base_delay_ms=0)

        assert policy.get_delay_ms(0) == 0
        assert policy.get_delay_ms(5) == 0


class TestFetchError:
    """Tests for FetchError model."""

    def test_retryable_classes(self) -> None:
        """Only transient classes are retryable."""
        retryable = {
            cls
            for cls in FetchErrorClass
            if FetchError(error_class=cls, message="x").is_retryable
        }

        assert retryable == {
            FetchErrorClass.NETWORK_TIMEOUT,
            FetchErrorClass.CONNECTION_ERROR,
            FetchErrorClass.HTTP_5XX,
            FetchErrorClass.UNKNOWN,
        }

    def test_error_immutable(self) -> None:
        """Test that error is immutable (frozen)."""
        error = FetchError(
            error_class=FetchErrorClass.HTTP_4XX,
            message="Not Found",
            status_code=404,
        )

        with pytest.raises(ValidationError):
            error.status_code = 500  # type: ignore[misc]

    def test_empty_message_rejected(self) -> None:
        """Errors must describe what went wrong."""
        with pytest.raises(ValidationError):
            FetchError(error_class=FetchErrorClass.UNKNOWN, message="")
