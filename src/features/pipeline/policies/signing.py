"""Policy signing each logical request with the configured credentials."""

from src.features.pipeline.chain import PolicyDescriptor
from src.features.pipeline.models import HttpRequest, Outcome
from src.features.pipeline.protocols import RequestSender, ServiceClientCredentials


class SigningPolicy:
    """Signs a clone of the request, then delegates.

    The policy sits outside the retry loops, so credentials are applied once
    per logical request and every retried attempt resends that signature.
    """

    def __init__(
        self,
        next_sender: RequestSender,
        credentials: ServiceClientCredentials,
    ) -> None:
        self._next = next_sender
        self._credentials = credentials

    def send_request(self, request: HttpRequest) -> Outcome:
        signed = self._credentials.sign_request(request.clone())
        return self._next.send_request(signed)


def signing_policy(credentials: ServiceClientCredentials) -> PolicyDescriptor:
    """Create the signing policy descriptor."""
    return PolicyDescriptor(
        name="signing",
        create=lambda next_sender: SigningPolicy(next_sender, credentials),
    )
