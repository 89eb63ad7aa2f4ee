"""Policy chain composition.

A chain is a strict linear order of policies ending at the transport. It is
composed once, at client setup, and reused for every request.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass

from src.features.pipeline.errors import PipelineError
from src.features.pipeline.models import HttpRequest, Outcome
from src.features.pipeline.protocols import HttpTransport, RequestSender


@dataclass(frozen=True)
class PolicyDescriptor:
    """Named chain position.

    Attributes:
        name: Stable policy name, used for logging and inspection.
        create: Wraps the next sender and returns this policy's sender.
    """

    name: str
    create: Callable[[RequestSender], RequestSender]


class TransportSender:
    """Terminal sender: calls the transport and captures its failures."""

    def __init__(self, transport: HttpTransport) -> None:
        self._transport = transport

    def send_request(self, request: HttpRequest) -> Outcome:
        try:
            return Outcome.success(self._transport.send(request))
        except PipelineError as exc:
            return Outcome.failure(exc)


def compose(
    descriptors: Sequence[PolicyDescriptor],
    terminal: RequestSender,
) -> RequestSender:
    """Compose policies around a terminal sender.

    Args:
        descriptors: Policies from outermost (closest to the caller) to
            innermost (closest to the transport).
        terminal: Sender at the end of the chain.

    Returns:
        The outermost sender.
    """
    sender = terminal
    for descriptor in reversed(descriptors):
        sender = descriptor.create(sender)
    return sender
