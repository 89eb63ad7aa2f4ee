"""Policy tagging requests with a User-Agent header."""

import platform

from src.features.pipeline.chain import PolicyDescriptor
from src.features.pipeline.constants import HEADER_USER_AGENT, SDK_NAME, SDK_VERSION
from src.features.pipeline.models import HttpRequest, Outcome
from src.features.pipeline.protocols import RequestSender


def get_default_user_agent_value() -> str:
    """Build the default User-Agent value.

    Returns:
        e.g. ``request-pipeline/1.0.0 Python/3.12.1 (Linux-6.8.0)``.
    """
    return (
        f"{SDK_NAME}/{SDK_VERSION} "
        f"Python/{platform.python_version()} "
        f"({platform.system()}-{platform.release()})"
    )


class UserAgentPolicy:
    """Sets the User-Agent header unless the caller already set it."""

    def __init__(
        self,
        next_sender: RequestSender,
        header_name: str,
        header_value: str,
    ) -> None:
        self._next = next_sender
        self._header_name = header_name
        self._header_value = header_value

    def send_request(self, request: HttpRequest) -> Outcome:
        if not request.headers.contains(self._header_name):
            request = request.clone()
            request.headers.set(self._header_name, self._header_value)
        return self._next.send_request(request)


def user_agent_policy(
    value: str | None = None,
    header_name: str = HEADER_USER_AGENT,
) -> PolicyDescriptor:
    """Create the user agent policy descriptor.

    Args:
        value: Header value; the default SDK value when empty.
        header_name: Header to set.
    """
    header_value = value or get_default_user_agent_value()
    return PolicyDescriptor(
        name="user_agent",
        create=lambda next_sender: UserAgentPolicy(
            next_sender, header_name, header_value
        ),
    )
