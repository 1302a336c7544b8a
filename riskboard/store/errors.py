"""Exceptions for the ranked set store.

Infrastructure failures reaching the external ordered store are reported as
StoreUnavailableError so callers can apply their own fallback.
"""


class RankedStoreError(Exception):
    """Base exception for all ranked set store errors."""


class StoreUnavailableError(RankedStoreError):
    """Raised when the ranked set store cannot be read or written.

    Wraps connection, timeout and protocol errors from the backing store.
    """

    def __init__(self, operation: str, key: str, message: str) -> None:
        """Initialize the error.

        Args:
            operation: Store operation that failed (read or write).
            key: Sorted set key involved.
            message: Underlying failure description.
        """
        self.operation = operation
        self.key = key
        super().__init__(f"Ranked store {operation} failed for '{key}': {message}")
