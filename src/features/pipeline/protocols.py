"""Protocol interfaces for pipeline collaborators."""

from typing import Protocol, runtime_checkable

from src.features.pipeline.models import HttpRequest, HttpResponse, Outcome


@runtime_checkable
class RequestSender(Protocol):
    """Anything that can take a request one step further down the chain.

    Every policy and the terminal transport sender implement this. Failures
    are returned inside the ``Outcome`` rather than raised, so a policy can
    inspect or remap them without exception plumbing.
    """

    def send_request(self, request: HttpRequest) -> Outcome:
        """Send a request.

        Args:
            request: Request for this attempt.

        Returns:
            Outcome holding the response or the classified failure.
        """
        ...


@runtime_checkable
class HttpTransport(Protocol):
    """Protocol for the component performing the network call."""

    def send(self, request: HttpRequest) -> HttpResponse:
        """Send a request over the network.

        Args:
            request: Request to send.

        Returns:
            Response with any status code.

        Raises:
            TransportError: If the request could not be sent.
        """
        ...


@runtime_checkable
class ServiceClientCredentials(Protocol):
    """Protocol for request signing credentials."""

    def sign_request(self, request: HttpRequest) -> HttpRequest:
        """Sign a request for the current attempt.

        Args:
            request: Per-attempt clone, safe to modify.

        Returns:
            The signed request.
        """
        ...
