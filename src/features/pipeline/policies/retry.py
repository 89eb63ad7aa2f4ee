"""Retry policies.

Both policies resend a fresh clone of the original request, strictly one
attempt after another. They differ only in which outcomes they consider
retryable:

- ``ExponentialRetryPolicy``: status 408 and 5xx (except 501 and 505),
  including the synthetic 503 the timeout policy attaches to its failures.
- ``SystemErrorRetryPolicy``: transport failures that never produced a
  response because the connection could not be made or was dropped.
"""

import time
from collections.abc import Callable

import structlog

from src.features.pipeline.chain import PolicyDescriptor
from src.features.pipeline.constants import (
    HTTP_STATUS_NOT_IMPLEMENTED,
    HTTP_STATUS_REQUEST_TIMEOUT,
    HTTP_STATUS_SERVER_ERROR_MIN,
    HTTP_STATUS_VERSION_NOT_SUPPORTED,
)
from src.features.pipeline.errors import (
    RequestAbortedError,
    RequestSendError,
    TransportErrorClass,
)
from src.features.pipeline.metrics import PipelineMetrics
from src.features.pipeline.models import HttpRequest, Outcome
from src.features.pipeline.options import RetryOptions
from src.features.pipeline.protocols import RequestSender


logger = structlog.get_logger()

SleepFunc = Callable[[float], None]
RetryPredicate = Callable[[Outcome], bool]

_SYSTEM_RETRYABLE_CLASSES = frozenset({TransportErrorClass.CONNECTION_ERROR})


def is_retryable_status(status_code: int | None) -> bool:
    """Check if a status code warrants a retry.

    Args:
        status_code: Response status or error status marker.

    Returns:
        True for 408 and 5xx, except 501 and 505.
    """
    if status_code is None:
        return False
    if status_code in (HTTP_STATUS_NOT_IMPLEMENTED, HTTP_STATUS_VERSION_NOT_SUPPORTED):
        return False
    return (
        status_code == HTTP_STATUS_REQUEST_TIMEOUT
        or status_code >= HTTP_STATUS_SERVER_ERROR_MIN
    )


def is_retryable_system_error(outcome: Outcome) -> bool:
    """Check if an outcome is a connection-level transport failure."""
    error = outcome.error
    return (
        isinstance(error, RequestSendError)
        and not error.cancelled
        and error.error_class in _SYSTEM_RETRYABLE_CLASSES
    )


class _RetryRunner:
    """Sequential resend loop shared by the retry policies."""

    def __init__(
        self,
        next_sender: RequestSender,
        options: RetryOptions,
        should_retry: RetryPredicate,
        sleep: SleepFunc,
        policy_name: str,
    ) -> None:
        self._next = next_sender
        self._options = options
        self._should_retry = should_retry
        self._sleep = sleep
        self._metrics = PipelineMetrics.get_instance()
        self._log = logger.bind(component="pipeline", subcomponent=policy_name)

    def run(self, request: HttpRequest) -> Outcome:
        outcome = self._next.send_request(request.clone())
        last_error = outcome.error
        retries = 0

        while self._wants_retry(request, outcome, retries):
            retries += 1
            delay_ms = self._options.get_delay_ms(retries)
            self._metrics.record_retry()
            self._log.info(
                "retry_attempt",
                retry=retries,
                max_retries=self._options.retry_count,
                delay_ms=round(delay_ms, 2),
                status_code=outcome.status_code,
                error=outcome.error.message if outcome.error else None,
            )

            # A discarded streamed response still holds a pooled connection
            if outcome.response is not None:
                outcome.response.close()

            if self._wait(request, delay_ms / 1000.0):
                aborted = RequestAbortedError(request)
                aborted.inner_error = last_error
                return Outcome.failure(aborted)

            outcome = self._next.send_request(request.clone())
            if outcome.error is not None:
                if last_error is not None and outcome.error is not last_error:
                    outcome.error.inner_error = last_error
                last_error = outcome.error

        return outcome

    def _wants_retry(self, request: HttpRequest, outcome: Outcome, retries: int) -> bool:
        if request.cancellation is not None and request.cancellation.is_cancelled:
            return False
        if retries >= self._options.retry_count:
            return False
        return self._should_retry(outcome)

    def _wait(self, request: HttpRequest, seconds: float) -> bool:
        """Wait before the next attempt.

        Returns:
            True if the request was cancelled while waiting.
        """
        if request.cancellation is not None:
            return request.cancellation.wait(seconds)
        self._sleep(seconds)
        return False


class ExponentialRetryPolicy:
    """Resends on retryable status codes with exponential backoff."""

    def __init__(
        self,
        next_sender: RequestSender,
        options: RetryOptions,
        sleep: SleepFunc = time.sleep,
    ) -> None:
        self.options = options
        self._runner = _RetryRunner(
            next_sender,
            options,
            lambda outcome: is_retryable_status(outcome.status_code),
            sleep,
            "exponential_retry",
        )

    def send_request(self, request: HttpRequest) -> Outcome:
        return self._runner.run(request)


class SystemErrorRetryPolicy:
    """Resends when the connection could not be made or was reset."""

    def __init__(
        self,
        next_sender: RequestSender,
        options: RetryOptions,
        sleep: SleepFunc = time.sleep,
    ) -> None:
        self.options = options
        self._runner = _RetryRunner(
            next_sender,
            options,
            is_retryable_system_error,
            sleep,
            "system_error_retry",
        )

    def send_request(self, request: HttpRequest) -> Outcome:
        return self._runner.run(request)


def exponential_retry_policy(
    options: RetryOptions | None = None,
    sleep: SleepFunc = time.sleep,
) -> PolicyDescriptor:
    """Create the exponential retry policy descriptor."""
    retry_options = options or RetryOptions()
    return PolicyDescriptor(
        name="exponential_retry",
        create=lambda next_sender: ExponentialRetryPolicy(
            next_sender, retry_options, sleep
        ),
    )


def system_error_retry_policy(
    options: RetryOptions | None = None,
    sleep: SleepFunc = time.sleep,
) -> PolicyDescriptor:
    """Create the system error retry policy descriptor."""
    retry_options = options or RetryOptions()
    return PolicyDescriptor(
        name="system_error_retry",
        create=lambda next_sender: SystemErrorRetryPolicy(
            next_sender, retry_options, sleep
        ),
    )
