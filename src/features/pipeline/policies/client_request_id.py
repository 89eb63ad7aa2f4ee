"""Policy stamping every logical request with a client request id."""

import uuid

from src.features.observability.logging import request_context
from src.features.pipeline.chain import PolicyDescriptor
from src.features.pipeline.models import HttpRequest, Outcome
from src.features.pipeline.protocols import RequestSender


class ClientRequestIdPolicy:
    """Adds a random UUID under ``header_name`` unless the caller set one.

    The id is also bound to the log context for the rest of the chain.
    """

    def __init__(self, next_sender: RequestSender, header_name: str) -> None:
        self._next = next_sender
        self._header_name = header_name

    def send_request(self, request: HttpRequest) -> Outcome:
        request_id = request.headers.get(self._header_name)
        if request_id is None:
            request_id = str(uuid.uuid4())
            request = request.clone()
            request.headers.set(self._header_name, request_id)

        with request_context(request_id):
            return self._next.send_request(request)


def client_request_id_policy(header_name: str) -> PolicyDescriptor:
    """Create the client request id policy descriptor."""
    return PolicyDescriptor(
        name="client_request_id",
        create=lambda next_sender: ClientRequestIdPolicy(next_sender, header_name),
    )
