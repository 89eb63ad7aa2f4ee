"""Error types for the request pipeline.

Every failure that crosses a policy boundary is a ``PipelineError``. Transport
failures are further split into requests that never started
(``RequestAbortedError``) and requests that failed on the way
(``RequestSendError``).
"""

from enum import Enum
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from src.features.pipeline.models import HttpRequest, HttpResponse


class ErrorCode(str, Enum):
    """Machine-readable pipeline error codes."""

    REQUEST_ABORTED_ERROR = "REQUEST_ABORTED_ERROR"
    REQUEST_SEND_ERROR = "REQUEST_SEND_ERROR"
    PARSE_ERROR = "PARSE_ERROR"


class TransportErrorClass(str, Enum):
    """Classification of transport failures for metrics and retry decisions.

    - NETWORK_TIMEOUT: The per-request deadline was reached
    - CONNECTION_ERROR: Could not establish or keep a connection
    - SSL_ERROR: TLS certificate or handshake error
    - PROTOCOL_ERROR: Malformed HTTP exchange
    - CANCELLED: The caller cancelled the request mid-flight
    - UNKNOWN: Unclassified error
    """

    NETWORK_TIMEOUT = "NETWORK_TIMEOUT"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    SSL_ERROR = "SSL_ERROR"
    PROTOCOL_ERROR = "PROTOCOL_ERROR"
    CANCELLED = "CANCELLED"
    UNKNOWN = "UNKNOWN"


def format_milliseconds(value: float) -> str:
    """Render a millisecond value without a trailing ``.0``."""
    return str(int(value)) if float(value).is_integer() else str(value)


def timeout_exceeded_message(timeout_ms: float) -> str:
    """Message used for transport timeouts, e.g. ``timeout of 500ms exceeded``."""
    return f"timeout of {format_milliseconds(timeout_ms)}ms exceeded"


class PipelineError(Exception):
    """Base exception for request pipeline failures.

    ``status_code`` is mutable: the timeout policy attaches a
    synthetic status to failures it wants retried.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        status_code: int | None = None,
        request: "HttpRequest | None" = None,
        response: "HttpResponse | None" = None,
    ) -> None:
        """Initialize the pipeline error.

        Args:
            message: Human-readable error message.
            code: Machine-readable error code.
            status_code: HTTP status associated with the failure, if any.
            request: The request that was being sent.
            response: The response, when one was received.
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.request = request
        self.response = response
        self.inner_error: PipelineError | None = None

    def to_dict(self) -> dict[str, str | int | None]:
        """Convert error to dictionary for logging.

        Returns:
            Dictionary representation of the error.
        """
        return {
            "code": self.code.value,
            "message": self.message,
            "status_code": self.status_code,
        }


class TransportError(PipelineError):
    """Failure raised by the transport adapter."""


class RequestAbortedError(TransportError):
    """The request was cancelled before an attempt started.

    Terminal: never retried, no network activity took place.
    """

    def __init__(self, request: "HttpRequest | None" = None) -> None:
        """Initialize the error.

        Args:
            request: The aborted request.
        """
        super().__init__(
            "The request was aborted",
            code=ErrorCode.REQUEST_ABORTED_ERROR,
            request=request,
        )


class RequestSendError(TransportError):
    """Any transport-level failure while sending a request."""

    def __init__(
        self,
        message: str,
        request: "HttpRequest | None" = None,
        error_class: TransportErrorClass = TransportErrorClass.UNKNOWN,
        cancelled: bool = False,
    ) -> None:
        """Initialize the error.

        Args:
            message: Message of the underlying failure.
            request: The request that was being sent.
            error_class: Classification of the failure.
            cancelled: True when the failure came from the cancellation path.
        """
        super().__init__(message, code=ErrorCode.REQUEST_SEND_ERROR, request=request)
        self.error_class = error_class
        self.cancelled = cancelled

    def to_dict(self) -> dict[str, str | int | None]:
        """Convert error to dictionary for logging.

        Returns:
            Dictionary representation of the error.
        """
        data = super().to_dict()
        data["error_class"] = self.error_class.value
        return data


class ResponseParseError(PipelineError):
    """The response body could not be deserialized."""

    def __init__(self, message: str, response: "HttpResponse") -> None:
        """Initialize the error.

        Args:
            message: Description of the parse failure.
            response: The response whose body failed to parse.
        """
        super().__init__(
            message,
            code=ErrorCode.PARSE_ERROR,
            status_code=response.status,
            request=response.request,
            response=response,
        )
