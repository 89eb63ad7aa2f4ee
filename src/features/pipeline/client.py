"""Caller-facing service client."""

import time

import structlog

from src.features.pipeline.builder import create_request_policy_factories
from src.features.pipeline.chain import PolicyDescriptor, TransportSender, compose
from src.features.pipeline.models import HttpRequest, HttpResponse
from src.features.pipeline.options import PipelineOptions
from src.features.pipeline.policies.retry import SleepFunc
from src.features.pipeline.protocols import HttpTransport, ServiceClientCredentials
from src.features.pipeline.redact import redact_url
from src.features.transport.client import HttpxTransport
from src.features.transport.config import TransportConfig, create_http_client


logger = structlog.get_logger()


class ServiceClient:
    """Sends requests through the policy chain.

    The chain is composed once here and reused for every request. When no
    transport is passed, the client creates an ``HttpxTransport`` over a new
    keep-alive ``httpx.Client`` and closes it in ``close()``.
    """

    def __init__(
        self,
        credentials: ServiceClientCredentials | None = None,
        options: PipelineOptions | None = None,
        transport: HttpTransport | None = None,
        transport_config: TransportConfig | None = None,
        sleep: SleepFunc = time.sleep,
    ) -> None:
        """Initialize the client.

        Args:
            credentials: Signing credentials, if the service needs them.
            options: Pipeline options.
            transport: Transport to use; a new httpx transport when None.
            transport_config: Settings for the transport created here.
            sleep: Backoff sleep used by retry policies.
        """
        self._options = options or PipelineOptions()
        self._owns_transport = transport is None
        if transport is None:
            config = transport_config or TransportConfig()
            transport = HttpxTransport(
                create_http_client(config),
                chunk_size=config.chunk_size,
                max_workers=config.max_connections,
            )
        self._transport = transport
        self._policies = create_request_policy_factories(
            credentials, self._options, sleep
        )
        self._sender = compose(self._policies, TransportSender(transport))
        self._log = logger.bind(component="pipeline", subcomponent="client")

    @property
    def policies(self) -> list[PolicyDescriptor]:
        """Policies of the chain, outermost first."""
        return list(self._policies)

    def send_request(self, request: HttpRequest) -> HttpResponse:
        """Send a logical request through the chain.

        Args:
            request: The request; it is never modified.

        Returns:
            The final response, whatever its status code.

        Raises:
            TypeError: If ``request`` is not an HttpRequest.
            PipelineError: If the request failed after all retries.
        """
        if not isinstance(request, HttpRequest):
            msg = "request cannot be None and must be an HttpRequest instance"
            raise TypeError(msg)

        outcome = self._sender.send_request(request)
        if outcome.error is not None:
            self._log.warning(
                "request_failed",
                method=request.method.upper(),
                url=redact_url(request.url),
                **outcome.error.to_dict(),
            )
        return outcome.unwrap()

    def close(self) -> None:
        """Close the transport if this client created it."""
        if self._owns_transport and isinstance(self._transport, HttpxTransport):
            self._transport.close()

    def __enter__(self) -> "ServiceClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
