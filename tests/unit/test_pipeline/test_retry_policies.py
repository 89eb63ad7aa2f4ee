"""Unit tests for the exponential and system error retry policies."""

import threading

import pytest

from src.features.pipeline.cancellation import CancellationToken
from src.features.pipeline.errors import (
    ErrorCode,
    RequestAbortedError,
    RequestSendError,
    TransportErrorClass,
)
from src.features.pipeline.headers import HttpHeaders
from src.features.pipeline.metrics import PipelineMetrics
from src.features.pipeline.models import HttpRequest, HttpResponse, Outcome
from src.features.pipeline.options import RetryOptions
from src.features.pipeline.policies.retry import (
    ExponentialRetryPolicy,
    SystemErrorRetryPolicy,
    exponential_retry_policy,
    is_retryable_status,
    is_retryable_system_error,
    system_error_retry_policy,
)
from src.features.pipeline.streams import ResponseBodyStream
from tests.helpers.senders import ScriptedSender, connection_error


def no_sleep(seconds: float) -> None:
    """Sleep replacement that returns immediately."""


def fast_options(retry_count: int = 3) -> RetryOptions:
    """Retry options with zero backoff."""
    return RetryOptions(
        retry_count=retry_count,
        retry_interval_ms=0,
        min_retry_interval_ms=0,
        max_retry_interval_ms=0,
    )


def failing_with_status(status_code: int):  # noqa: ANN201
    """Create a step failing with a status marker, like a remapped timeout."""

    def factory(request: HttpRequest) -> RequestSendError:
        error = RequestSendError(
            "timeout of 500ms exceeded",
            request=request,
            error_class=TransportErrorClass.NETWORK_TIMEOUT,
        )
        error.status_code = status_code
        return error

    return factory


def cancelled_error(request: HttpRequest) -> RequestSendError:
    """Create a failure from the cancellation path."""
    return RequestSendError(
        "The request was aborted",
        request=request,
        error_class=TransportErrorClass.CANCELLED,
        cancelled=True,
    )


class TestRetryableStatus:
    """Tests for the status retry decision."""

    @pytest.mark.parametrize("status", [408, 500, 502, 503, 504, 599])
    def test_retryable(self, status: int) -> None:
        """Test retryable status codes."""
        assert is_retryable_status(status) is True

    @pytest.mark.parametrize("status", [None, 200, 301, 400, 404, 429, 501, 505])
    def test_not_retryable(self, status: int | None) -> None:
        """Test non-retryable status codes."""
        assert is_retryable_status(status) is False


class TestRetryableSystemError:
    """Tests for the system error retry decision."""

    def test_connection_error_retryable(self) -> None:
        """Test that connection failures are retryable."""
        assert is_retryable_system_error(Outcome.failure(connection_error())) is True

    def test_cancelled_not_retryable(self) -> None:
        """Test that cancellation failures are not retried."""
        request = HttpRequest("GET", "https://example.com")

        assert is_retryable_system_error(Outcome.failure(cancelled_error(request))) is False

    def test_timeout_not_retryable(self) -> None:
        """Test that timeouts are left to the timeout policy."""
        error = RequestSendError(
            "timeout of 10000ms exceeded",
            error_class=TransportErrorClass.NETWORK_TIMEOUT,
        )

        assert is_retryable_system_error(Outcome.failure(error)) is False

    def test_aborted_not_retryable(self) -> None:
        """Test that an aborted request is not retried."""
        assert is_retryable_system_error(Outcome.failure(RequestAbortedError())) is False


class TestExponentialRetryPolicy:
    """Tests for ExponentialRetryPolicy."""

    def setup_method(self) -> None:
        """Reset metrics before each test."""
        PipelineMetrics.reset()

    def test_success_not_retried(self) -> None:
        """Test a first-attempt success."""
        sender = ScriptedSender([200])

        outcome = ExponentialRetryPolicy(sender, fast_options(), no_sleep).send_request(
            HttpRequest("GET", "https://example.com")
        )

        assert outcome.status_code == 200
        assert sender.calls == 1

    def test_retries_until_success(self) -> None:
        """Test 503, 503, 200 ends with the 200 after three attempts."""
        sender = ScriptedSender([503, 503, 200])

        outcome = ExponentialRetryPolicy(sender, fast_options(), no_sleep).send_request(
            HttpRequest("GET", "https://example.com")
        )

        assert outcome.status_code == 200
        assert sender.calls == 3
        assert PipelineMetrics.get_instance().http_retry_total == 2

    def test_stops_after_retry_count(self) -> None:
        """Test that the last retryable response is returned when retries run out."""
        sender = ScriptedSender([500])

        outcome = ExponentialRetryPolicy(
            sender, fast_options(retry_count=2), no_sleep
        ).send_request(HttpRequest("GET", "https://example.com"))

        assert outcome.response is not None
        assert outcome.response.status == 500
        assert sender.calls == 3

    @pytest.mark.parametrize("status", [400, 404, 501, 505])
    def test_non_retryable_status(self, status: int) -> None:
        """Test that non-retryable statuses are returned immediately."""
        sender = ScriptedSender([status, 200])

        outcome = ExponentialRetryPolicy(sender, fast_options(), no_sleep).send_request(
            HttpRequest("GET", "https://example.com")
        )

        assert outcome.status_code == status
        assert sender.calls == 1

    def test_retries_remapped_timeout(self) -> None:
        """Test that a failure marked 503 is retried like a response."""
        sender = ScriptedSender([failing_with_status(503), 200])

        outcome = ExponentialRetryPolicy(sender, fast_options(), no_sleep).send_request(
            HttpRequest("GET", "https://example.com")
        )

        assert outcome.status_code == 200
        assert sender.calls == 2

    def test_failure_without_status_not_retried(self) -> None:
        """Test that an unmarked failure is returned immediately."""
        sender = ScriptedSender([connection_error, 200])

        outcome = ExponentialRetryPolicy(sender, fast_options(), no_sleep).send_request(
            HttpRequest("GET", "https://example.com")
        )

        assert outcome.is_failure is True
        assert sender.calls == 1

    def test_failures_are_chained(self) -> None:
        """Test that the final failure links to the previous one."""
        sender = ScriptedSender([failing_with_status(503)])

        outcome = ExponentialRetryPolicy(
            sender, fast_options(retry_count=1), no_sleep
        ).send_request(HttpRequest("GET", "https://example.com"))

        assert outcome.error is not None
        assert outcome.error.inner_error is not None
        assert outcome.error.inner_error is not outcome.error

    def test_each_attempt_gets_fresh_clone(self) -> None:
        """Test that attempts never share a request object."""
        sender = ScriptedSender([503, 200])
        request = HttpRequest("GET", "https://example.com", headers=HttpHeaders({"A": "1"}))

        ExponentialRetryPolicy(sender, fast_options(), no_sleep).send_request(request)

        first, second = sender.requests
        assert first is not second
        assert first is not request
        assert first.headers is not request.headers

    def test_sleeps_between_attempts(self) -> None:
        """Test that the backoff delay is passed to sleep in seconds."""
        delays: list[float] = []
        options = RetryOptions(
            retry_count=2,
            retry_interval_ms=0,
            min_retry_interval_ms=250,
            max_retry_interval_ms=1000,
        )
        sender = ScriptedSender([503, 503, 200])

        ExponentialRetryPolicy(sender, options, delays.append).send_request(
            HttpRequest("GET", "https://example.com")
        )

        assert delays == [0.25, 0.25]

    def test_zero_retry_count(self) -> None:
        """Test that retry_count=0 disables retries."""
        sender = ScriptedSender([503, 200])

        outcome = ExponentialRetryPolicy(
            sender, fast_options(retry_count=0), no_sleep
        ).send_request(HttpRequest("GET", "https://example.com"))

        assert outcome.status_code == 503
        assert sender.calls == 1

    def test_cancelled_request_not_retried(self) -> None:
        """Test that a cancelled request ends the loop."""
        token = CancellationToken()
        token.cancel()
        sender = ScriptedSender([cancelled_error])

        outcome = ExponentialRetryPolicy(sender, fast_options(), no_sleep).send_request(
            HttpRequest("GET", "https://example.com", cancellation=token)
        )

        assert outcome.is_failure is True
        assert sender.calls == 1

    def test_cancel_during_backoff(self) -> None:
        """Test that cancelling while waiting returns an aborted failure."""
        token = CancellationToken()
        options = RetryOptions(
            retry_count=3,
            retry_interval_ms=0,
            min_retry_interval_ms=60_000,
            max_retry_interval_ms=60_000,
        )

        timer = threading.Timer(0.05, token.cancel)

        class CancellingSender(ScriptedSender):
            def send_request(self, request: HttpRequest) -> Outcome:
                outcome = super().send_request(request)
                timer.start()
                return outcome

        sender = CancellingSender([503])

        outcome = ExponentialRetryPolicy(sender, options, no_sleep).send_request(
            HttpRequest("GET", "https://example.com", cancellation=token)
        )

        assert sender.calls == 1
        assert isinstance(outcome.error, RequestAbortedError)
        assert outcome.error.code == ErrorCode.REQUEST_ABORTED_ERROR

    def test_discarded_stream_closed(self) -> None:
        """Test that a streamed response dropped for a retry is released."""
        closed: list[int] = []

        class StreamingSender(ScriptedSender):
            def send_request(self, request: HttpRequest) -> Outcome:
                self.requests.append(request)
                status = 503 if self.calls == 1 else 200
                stream = ResponseBodyStream(
                    iter([b"x"]), on_close=lambda: closed.append(status)
                )
                return Outcome.success(
                    HttpResponse(
                        request=request,
                        status=status,
                        headers=HttpHeaders(),
                        stream_body=stream,
                    )
                )

        sender = StreamingSender([200])

        outcome = ExponentialRetryPolicy(sender, fast_options(), no_sleep).send_request(
            HttpRequest("GET", "https://example.com", stream_response_body=True)
        )

        assert outcome.status_code == 200
        assert closed == [503]

    def test_descriptor(self) -> None:
        """Test the policy descriptor."""
        options = fast_options(retry_count=5)
        descriptor = exponential_retry_policy(options, no_sleep)
        policy = descriptor.create(ScriptedSender([200]))

        assert descriptor.name == "exponential_retry"
        assert isinstance(policy, ExponentialRetryPolicy)
        assert policy.options is options


class TestSystemErrorRetryPolicy:
    """Tests for SystemErrorRetryPolicy."""

    def test_retries_connection_errors(self) -> None:
        """Test that a refused connection is retried until success."""
        sender = ScriptedSender([connection_error, connection_error, 200])

        outcome = SystemErrorRetryPolicy(sender, fast_options(), no_sleep).send_request(
            HttpRequest("GET", "https://example.com")
        )

        assert outcome.status_code == 200
        assert sender.calls == 3

    def test_gives_up_after_retry_count(self) -> None:
        """Test the final failure is returned when retries run out."""
        sender = ScriptedSender([connection_error])

        outcome = SystemErrorRetryPolicy(
            sender, fast_options(retry_count=2), no_sleep
        ).send_request(HttpRequest("GET", "https://example.com"))

        assert isinstance(outcome.error, RequestSendError)
        assert outcome.error.error_class == TransportErrorClass.CONNECTION_ERROR
        assert sender.calls == 3

    def test_ignores_status_codes(self) -> None:
        """Test that HTTP responses are never retried here."""
        sender = ScriptedSender([503, 200])

        outcome = SystemErrorRetryPolicy(sender, fast_options(), no_sleep).send_request(
            HttpRequest("GET", "https://example.com")
        )

        assert outcome.status_code == 503
        assert sender.calls == 1

    def test_descriptor(self) -> None:
        """Test the policy descriptor."""
        descriptor = system_error_retry_policy(fast_options(), no_sleep)

        assert descriptor.name == "system_error_retry"
        assert isinstance(descriptor.create(ScriptedSender([200])), SystemErrorRetryPolicy)
