"""Unit tests for chain composition and the policy builder."""

from src.features.pipeline.builder import create_request_policy_factories
from src.features.pipeline.chain import PolicyDescriptor, TransportSender, compose
from src.features.pipeline.credentials import TokenCredentials
from src.features.pipeline.errors import RequestAbortedError
from src.features.pipeline.models import HttpRequest, HttpResponse, Outcome
from src.features.pipeline.options import PipelineOptions
from src.features.pipeline.policies.retry import (
    ExponentialRetryPolicy,
    SystemErrorRetryPolicy,
)
from src.features.pipeline.protocols import RequestSender
from tests.helpers.senders import RecordingTransport


def names(options: PipelineOptions | None = None, credentials: object = None) -> list[str]:
    """Get the policy names the builder produces."""
    return [
        d.name
        for d in create_request_policy_factories(credentials, options)  # type: ignore[arg-type]
    ]


class TestCompose:
    """Tests for compose()."""

    def test_outermost_runs_first(self) -> None:
        """Test that the first descriptor wraps all others."""
        order: list[str] = []

        def tracing(name: str) -> PolicyDescriptor:
            class Tracing:
                def __init__(self, next_sender: RequestSender) -> None:
                    self._next = next_sender

                def send_request(self, request: HttpRequest) -> Outcome:
                    order.append(name)
                    return self._next.send_request(request)

            return PolicyDescriptor(name=name, create=Tracing)

        sender = compose(
            [tracing("a"), tracing("b"), tracing("c")],
            TransportSender(RecordingTransport()),
        )
        sender.send_request(HttpRequest("GET", "https://example.com"))

        assert order == ["a", "b", "c"]

    def test_empty_chain_is_terminal(self) -> None:
        """Test composing no policies."""
        terminal = TransportSender(RecordingTransport())

        assert compose([], terminal) is terminal


class TestTransportSender:
    """Tests for TransportSender."""

    def test_wraps_response(self) -> None:
        """Test a successful transport call."""
        outcome = TransportSender(RecordingTransport(status=201)).send_request(
            HttpRequest("GET", "https://example.com")
        )

        assert outcome.status_code == 201

    def test_captures_pipeline_errors(self) -> None:
        """Test that transport failures are returned, not raised."""

        class AbortingTransport:
            def send(self, request: HttpRequest) -> HttpResponse:
                raise RequestAbortedError(request)

        outcome = TransportSender(AbortingTransport()).send_request(
            HttpRequest("GET", "https://example.com")
        )

        assert isinstance(outcome.error, RequestAbortedError)


class TestCreateRequestPolicyFactories:
    """Tests for the policy builder."""

    def test_default_order(self) -> None:
        """Test the chain for default options."""
        assert names() == [
            "user_agent",
            "exponential_retry",
            "timeout",
            "system_error_retry",
            "deserialization",
        ]

    def test_no_retry_policy(self) -> None:
        """Test that disabling retries drops retry and timeout policies."""
        assert names(PipelineOptions(no_retry_policy=True)) == [
            "user_agent",
            "deserialization",
        ]

    def test_full_chain(self) -> None:
        """Test the chain with request ids and credentials."""
        options = PipelineOptions(generate_client_request_id_header=True)

        assert names(options, TokenCredentials("t")) == [
            "client_request_id",
            "signing",
            "user_agent",
            "exponential_retry",
            "timeout",
            "system_error_retry",
            "deserialization",
        ]

    def test_retry_policies_share_options(self) -> None:
        """Test that both retry policies receive the configured retry options."""
        options = PipelineOptions(retry_count=7, retry_interval_ms=5)
        descriptors = {
            d.name: d for d in create_request_policy_factories(options=options)
        }
        transport = TransportSender(RecordingTransport())

        exponential = descriptors["exponential_retry"].create(transport)
        system = descriptors["system_error_retry"].create(transport)

        assert isinstance(exponential, ExponentialRetryPolicy)
        assert isinstance(system, SystemErrorRetryPolicy)
        assert exponential.options.retry_count == 7
        assert system.options.retry_interval_ms == 5

    def test_configured_headers_applied(self) -> None:
        """Test the user agent and request id reach the transport."""
        options = PipelineOptions(
            generate_client_request_id_header=True,
            client_request_id_header_name="x-request-id",
            user_agent="custom/1.0",
        )
        transport = RecordingTransport()
        sender = compose(
            create_request_policy_factories(None, options), TransportSender(transport)
        )

        sender.send_request(HttpRequest("GET", "https://example.com"))

        sent = transport.requests[0]
        assert sent.headers.get("User-Agent") == "custom/1.0"
        assert sent.headers.contains("x-request-id")
        assert sent.timeout_ms == 10000
