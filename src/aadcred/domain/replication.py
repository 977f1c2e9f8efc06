"""Wait for a freshly written credential to become readable.

Directory writes are eventually consistent: an update can succeed before a
subsequent read reflects it.  ``wait_for_visibility`` polls until the key
shows up, tolerating transient read failures, and gives up only once the
deadline has actually passed.
"""

import logging
import threading
from collections.abc import Callable

from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception_type,
    retry_if_result,
    stop_after_delay,
    stop_any,
)

from aadcred.constants import DEFAULT_POLL_INTERVAL
from aadcred.context import OperationCancelledError
from aadcred.domain.credentials import find_by_key_id
from aadcred.models import Credential

logger = logging.getLogger(__name__)


class ReplicationTimeoutError(TimeoutError):
    """Raised when a written credential is not visible before the deadline.

    ``last_error`` holds the final poll failure, if the last poll failed.
    ``resource_id`` is filled in by the handler that performed the write.
    """

    def __init__(self, key_id: str, last_error: BaseException | None = None) -> None:
        message = f"credential with key ID {key_id!r} was not visible before the deadline"
        if last_error is not None:
            message += f" (last error: {last_error})"
        super().__init__(message)
        self.key_id = key_id
        self.last_error = last_error
        self.resource_id: str | None = None


def wait_for_visibility(
    key_id: str,
    timeout: float,
    poll: Callable[[], list[Credential]],
    *,
    interval: float = DEFAULT_POLL_INTERVAL,
    cancel: threading.Event | None = None,
) -> Credential:
    """Poll until ``key_id`` appears in the list returned by ``poll``.

    Args:
        key_id: Key ID of the credential that was written.
        timeout: Seconds to keep polling.
        poll: Fetches the current credential list; exceptions are retried.
        interval: Seconds between polls; the last wait is shortened so the
            final poll lands on the deadline.
        cancel: Optional event that aborts polling.

    Returns the credential as soon as a poll shows it.
    """
    cancel = cancel or threading.Event()

    def _probe() -> Credential | None:
        return find_by_key_id(poll(), key_id)

    def _wait(retry_state: RetryCallState) -> float:
        left = timeout - (retry_state.seconds_since_start or 0.0)
        return max(0.0, min(interval, left))

    def _cancelled(retry_state: RetryCallState) -> bool:
        return cancel.is_set()

    def _log_attempt(retry_state: RetryCallState) -> None:
        outcome = retry_state.outcome
        if outcome is not None and outcome.failed:
            logger.debug(
                "Poll %d for key ID %r failed: %s",
                retry_state.attempt_number,
                key_id,
                outcome.exception(),
            )
        else:
            logger.debug("Key ID %r not visible after poll %d", key_id, retry_state.attempt_number)

    retrying = Retrying(
        stop=stop_any(stop_after_delay(timeout), _cancelled),
        wait=_wait,
        retry=retry_if_exception_type(Exception) | retry_if_result(lambda found: found is None),
        sleep=cancel.wait,
        before_sleep=_log_attempt,
    )
    try:
        credential = retrying(_probe)
    except RetryError as exc:
        if cancel.is_set():
            raise OperationCancelledError(
                f"waiting for key ID {key_id!r} was cancelled"
            ) from None
        last = exc.last_attempt
        last_error = last.exception() if last.failed else None
        raise ReplicationTimeoutError(key_id, last_error) from last_error

    logger.debug("Key ID %r is visible", key_id)
    return credential
