"""Data models for the request pipeline."""

import dataclasses
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import IO, Any

from src.features.pipeline.cancellation import CancellationToken
from src.features.pipeline.constants import HTTP_STATUS_OK_MAX, HTTP_STATUS_OK_MIN
from src.features.pipeline.errors import PipelineError
from src.features.pipeline.headers import HttpHeaders
from src.features.pipeline.streams import (
    ProgressCallback,
    ReplayableBody,
    ResponseBodyStream,
    is_readable_stream,
)


BodyPayload = bytes | str | Iterable[bytes] | IO[bytes] | ReplayableBody
RequestBody = BodyPayload | Callable[[], BodyPayload] | None


@dataclass
class HttpRequest:
    """Abstract outbound HTTP request.

    Policies never mutate the request they receive; they work on ``clone()``
    so a retried attempt starts from the caller's original state.

    Attributes:
        method: HTTP method, any casing.
        url: Absolute request URL.
        headers: Request headers.
        body: Payload, or a zero-argument producer called once per attempt.
            Streams and iterators are wrapped in a ``ReplayableBody``.
        query: Query parameters appended to the URL by the transport.
        cancellation: Cancellation handle of the logical request.
        timeout_ms: Per-attempt deadline passed to the transport.
        stream_response_body: Return the body as a stream instead of text.
        on_upload_progress: Called with cumulative bytes sent.
        on_download_progress: Called with cumulative bytes received.
    """

    method: str
    url: str
    headers: HttpHeaders = field(default_factory=HttpHeaders)
    body: RequestBody = None
    query: Mapping[str, str] | None = None
    cancellation: CancellationToken | None = None
    timeout_ms: float | None = None
    stream_response_body: bool = False
    on_upload_progress: ProgressCallback | None = None
    on_download_progress: ProgressCallback | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.headers, HttpHeaders):
            self.headers = HttpHeaders(self.headers)
        if _is_one_shot(self.body):
            self.body = ReplayableBody(self.body)

    def clone(self) -> "HttpRequest":
        """Create a copy safe to modify for a single attempt.

        Headers are copied. The body source and the cancellation token are
        shared: lazy producers are re-invoked per attempt, streams and
        iterators were wrapped in a ``ReplayableBody`` at construction so
        every attempt reads the full payload, and cancellation belongs to the
        whole logical request.
        """
        return dataclasses.replace(self, headers=self.headers.clone())


@dataclass
class HttpResponse:
    """Normalized HTTP response.

    Exactly one of ``body_as_text`` and ``stream_body`` is populated,
    following the request's ``stream_response_body`` flag.
    """

    request: HttpRequest
    status: int
    headers: HttpHeaders
    body_as_text: str | None = None
    stream_body: ResponseBodyStream | None = None
    parsed_body: Any = None

    @property
    def is_success(self) -> bool:
        """Check if the status is 2xx."""
        return HTTP_STATUS_OK_MIN <= self.status < HTTP_STATUS_OK_MAX

    def close(self) -> None:
        """Release the response stream, if any."""
        if self.stream_body is not None:
            self.stream_body.close()


@dataclass(frozen=True)
class Outcome:
    """Result of one pass through a sender: a response or a failure."""

    response: HttpResponse | None = None
    error: PipelineError | None = None

    def __post_init__(self) -> None:
        if (self.response is None) == (self.error is None):
            msg = "Outcome requires exactly one of response or error"
            raise ValueError(msg)

    @classmethod
    def success(cls, response: HttpResponse) -> "Outcome":
        """Create a successful outcome."""
        return cls(response=response)

    @classmethod
    def failure(cls, error: PipelineError) -> "Outcome":
        """Create a failed outcome."""
        return cls(error=error)

    @property
    def is_failure(self) -> bool:
        """Check if the outcome carries an error."""
        return self.error is not None

    @property
    def status_code(self) -> int | None:
        """Response status, or the status marker attached to the error."""
        if self.response is not None:
            return self.response.status
        return self.error.status_code if self.error is not None else None

    def unwrap(self) -> HttpResponse:
        """Return the response or raise the error.

        Raises:
            PipelineError: If the outcome is a failure.
        """
        if self.error is not None:
            raise self.error
        assert self.response is not None  # noqa: S101
        return self.response


def _is_one_shot(body: object) -> bool:
    if body is None or callable(body) or isinstance(body, ReplayableBody):
        return False
    if isinstance(body, bytes | bytearray | memoryview | str):
        return False
    return is_readable_stream(body) or isinstance(body, Iterable)
