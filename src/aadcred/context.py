"""Deadline and cancellation for a single handler invocation."""

import threading
import time


class OperationTimeoutError(TimeoutError):
    """Raised when an operation runs past its deadline."""


class OperationCancelledError(Exception):
    """Raised when the caller cancels an operation."""


class OperationContext:
    """Carries the deadline and cancel signal through every remote call.

    Args:
        timeout: Seconds the operation may run, or None for no deadline.
        cancel: Event the caller sets to abandon the operation.
    """

    def __init__(self, timeout: float | None = None, cancel: threading.Event | None = None) -> None:
        self._deadline = None if timeout is None else time.monotonic() + timeout
        self.cancel = cancel or threading.Event()

    def remaining(self) -> float | None:
        """Seconds left before the deadline (never negative), or None if unbounded."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    @property
    def cancelled(self) -> bool:
        return self.cancel.is_set()

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    def check(self, operation: str = "operation") -> None:
        """Raise if the operation was cancelled or its deadline has passed."""
        if self.cancelled:
            raise OperationCancelledError(f"{operation} was cancelled")
        if self.expired:
            raise OperationTimeoutError(f"{operation} timed out")
