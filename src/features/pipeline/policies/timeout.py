"""Policy imposing a per-attempt deadline and marking its expiry retryable."""

import math
import re

import structlog

from src.features.pipeline.chain import PolicyDescriptor
from src.features.pipeline.constants import (
    DEFAULT_CLIENT_REQUEST_TIMEOUT_MS,
    HTTP_STATUS_SERVICE_UNAVAILABLE,
)
from src.features.pipeline.errors import PipelineError, format_milliseconds
from src.features.pipeline.metrics import PipelineMetrics
from src.features.pipeline.models import HttpRequest, Outcome
from src.features.pipeline.protocols import RequestSender


logger = structlog.get_logger()


def resolve_request_timeout(request_timeout_ms: object) -> float:
    """Return the configured timeout if it is a positive number, else the default.

    Args:
        request_timeout_ms: Configured value, possibly None or invalid.

    Returns:
        Timeout in milliseconds.
    """
    if (
        isinstance(request_timeout_ms, int | float)
        and not isinstance(request_timeout_ms, bool)
        and math.isfinite(request_timeout_ms)
        and request_timeout_ms > 0
    ):
        return float(request_timeout_ms)
    return float(DEFAULT_CLIENT_REQUEST_TIMEOUT_MS)


class TimeoutPolicy:
    """Stamps each attempt with a deadline.

    A failure whose message reports that *this* deadline was exceeded gets a
    synthetic 503 status, so the exponential retry policy above resends it
    exactly as it would a Service Unavailable response. Failures mentioning
    another deadline (a nested call, a different policy) are left alone.

    The ``<ms>ms`` marker must not follow a digit or a decimal point, so a
    500 ms policy ignores ``timeout of 1500ms exceeded``. This is stricter
    than a plain substring test, which would claim that failure as its own.
    """

    def __init__(self, next_sender: RequestSender, request_timeout_ms: object) -> None:
        self._next = next_sender
        self.request_timeout_ms = resolve_request_timeout(request_timeout_ms)
        self._timeout_marker = re.compile(
            rf"(?<![\d.]){re.escape(format_milliseconds(self.request_timeout_ms))}ms"
        )
        self._metrics = PipelineMetrics.get_instance()
        self._log = logger.bind(component="pipeline", subcomponent="timeout")

    def send_request(self, request: HttpRequest) -> Outcome:
        attempt = request.clone()
        attempt.timeout_ms = self.request_timeout_ms

        outcome = self._next.send_request(attempt)
        if outcome.error is not None and self._is_own_timeout(outcome.error):
            outcome.error.status_code = HTTP_STATUS_SERVICE_UNAVAILABLE
            self._metrics.record_timeout_remapped()
            self._log.info(
                "request_timeout_remapped",
                timeout_ms=self.request_timeout_ms,
                status_code=HTTP_STATUS_SERVICE_UNAVAILABLE,
            )
        return outcome

    def _is_own_timeout(self, error: PipelineError) -> bool:
        message = error.message or ""
        if "timeout" not in message:
            return False
        return self._timeout_marker.search(message) is not None


def timeout_policy(request_timeout_ms: object = None) -> PolicyDescriptor:
    """Create the timeout policy descriptor."""
    return PolicyDescriptor(
        name="timeout",
        create=lambda next_sender: TimeoutPolicy(next_sender, request_timeout_ms),
    )
