"""Transport adapter sending pipeline requests with httpx."""

import ssl
import threading
import time
from collections.abc import Iterator
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import ExitStack

import httpx
import structlog

from src.features.pipeline.constants import DEFAULT_CHUNK_SIZE, HEADER_CONTENT_LENGTH
from src.features.pipeline.errors import (
    RequestAbortedError,
    RequestSendError,
    TransportErrorClass,
    timeout_exceeded_message,
)
from src.features.pipeline.headers import HttpHeaders
from src.features.pipeline.metrics import PipelineMetrics
from src.features.pipeline.models import HttpRequest, HttpResponse
from src.features.pipeline.redact import redact_headers, redact_url
from src.features.pipeline.streams import (
    ReplayableBody,
    ResponseBodyStream,
    TransferProgress,
    iter_body_chunks,
    iter_with_progress,
)


logger = structlog.get_logger()

# Passed to httpx for requests without a body; never b"" which would be sent
# as a present-but-empty payload.
NO_BODY = None

_ABORTED_MESSAGE = "The request was aborted"


class _AttemptState:
    """Per-attempt state shared with the cancellation listener."""

    def __init__(self) -> None:
        self.cancelled = False
        self.response: httpx.Response | None = None
        self.wake = threading.Event()

    def abort(self) -> None:
        self.cancelled = True
        self.wake.set()
        if self.response is not None:
            self.response.close()


def _close_abandoned_response(future: Future[httpx.Response]) -> None:
    """Close a response that arrived after its attempt was cancelled."""
    if future.cancelled() or future.exception() is not None:
        return
    future.result().close()


class HttpxTransport:
    """Sends ``HttpRequest`` objects over a shared ``httpx.Client``.

    The adapter never raises on HTTP status codes and never enforces the
    deadline itself; it forwards ``timeout_ms`` to httpx and reports an
    expired deadline as ``timeout of <ms>ms exceeded`` so the timeout policy
    can recognise its own expiry.

    The client is created once at setup and passed in; the adapter keeps no
    per-request state, so one instance serves concurrent requests.

    A cancellable request is sent from a worker thread so that cancelling it
    returns control to the caller while httpx is still connecting or waiting
    for response headers. The abandoned call finishes in the background and
    its response, if any, is closed.
    """

    def __init__(
        self,
        client: httpx.Client,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        max_workers: int | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            client: Shared keep-alive client.
            chunk_size: Read size for response bodies.
            max_workers: Worker threads for cancellable sends.
        """
        self._client = client
        self._chunk_size = chunk_size
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="http-transport",
        )
        self._metrics = PipelineMetrics.get_instance()
        self._log = logger.bind(component="transport")

    def close(self) -> None:
        """Close the underlying client, its connection pool and workers."""
        self._executor.shutdown(wait=False, cancel_futures=True)
        self._client.close()

    def send(self, request: HttpRequest) -> HttpResponse:
        """Send a request.

        Args:
            request: Request for this attempt.

        Returns:
            Response with any status code.

        Raises:
            TypeError: If ``request`` is not an HttpRequest.
            RequestAbortedError: If the request was cancelled before sending.
            RequestSendError: If the request failed in flight.
        """
        if not isinstance(request, HttpRequest):
            msg = "request cannot be None and must be an HttpRequest instance"
            raise TypeError(msg)

        token = request.cancellation
        if token is not None and token.is_cancelled:
            raise RequestAbortedError(request)

        attempt = _AttemptState()
        with ExitStack() as cleanup:
            if token is not None:
                cleanup.enter_context(token.subscribe(attempt.abort))

            start_ns = time.perf_counter_ns()
            response = self._dispatch(request, attempt)
            cleanup.callback(response.close)

            if request.stream_response_body:
                # The stream now owns the connection and the subscription
                resources = cleanup.pop_all()
                try:
                    return self._streamed_response(request, response, attempt, resources)
                except BaseException:
                    resources.close()
                    raise

            result = self._buffered_response(request, response, attempt)
            duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
            self._metrics.record_duration(duration_ms)
            self._log.debug(
                "response_received",
                status_code=result.status,
                duration_ms=round(duration_ms, 2),
            )
            return result

    def _dispatch(self, request: HttpRequest, attempt: _AttemptState) -> httpx.Response:
        headers = request.headers.raw_headers()
        content = self._prepare_body(request, headers)
        log = self._log.bind(
            method=request.method.upper(),
            url=redact_url(request.url),
        )
        log.debug("request_sent", headers=redact_headers(headers.items()))

        try:
            http_request = self._client.build_request(
                method=request.method.upper(),
                url=request.url,
                params=request.query,
                headers=headers,
                content=content,
                timeout=self._timeout(request),
            )
            response = self._send(request, http_request, attempt)
        except Exception as exc:  # noqa: BLE001
            error = self._send_error(request, exc, attempt)
            log.warning("request_failed", **error.to_dict())
            raise error from exc

        if response is None:
            log.debug("request_abandoned")
            raise self._cancelled_error(request)
        attempt.response = response
        if attempt.cancelled:
            response.close()
            raise self._cancelled_error(request)
        return response

    def _send(
        self,
        request: HttpRequest,
        http_request: httpx.Request,
        attempt: _AttemptState,
    ) -> httpx.Response | None:
        """Send until response headers arrive.

        Returns:
            The response, or None when the attempt was cancelled first.
        """
        if request.cancellation is None:
            return self._client.send(http_request, stream=True)

        future = self._executor.submit(self._client.send, http_request, stream=True)
        future.add_done_callback(lambda _: attempt.wake.set())
        attempt.wake.wait()
        if future.done():
            return future.result()

        future.cancel()
        future.add_done_callback(_close_abandoned_response)
        return None

    def _prepare_body(
        self,
        request: HttpRequest,
        headers: dict[str, str],
    ) -> object:
        """Resolve the body for this attempt.

        A lazy body is produced here, exactly once per attempt. A replayable
        body is read again from its start. With an upload progress callback
        the payload is routed through a counting pass-through.
        """
        body = request.body
        if callable(body):
            body = body()
        if body is None:
            return NO_BODY
        if isinstance(body, ReplayableBody):
            body = body.iter_chunks(self._chunk_size)

        on_progress = request.on_upload_progress
        if on_progress is None or not _has_content(body):
            return body

        size = _known_length(body)
        if size is not None and not request.headers.contains(HEADER_CONTENT_LENGTH):
            headers[HEADER_CONTENT_LENGTH] = str(size)
        return iter_with_progress(iter_body_chunks(body, self._chunk_size), on_progress)

    def _timeout(self, request: HttpRequest) -> httpx.Timeout | None:
        if request.timeout_ms is None or request.timeout_ms <= 0:
            return None
        return httpx.Timeout(request.timeout_ms / 1000.0)

    def _buffered_response(
        self,
        request: HttpRequest,
        response: httpx.Response,
        attempt: _AttemptState,
    ) -> HttpResponse:
        content = b"".join(self._iter_response(request, response, attempt))
        encoding = response.encoding or "utf-8"
        text = content.decode(encoding, errors="replace")
        headers = HttpHeaders(response.headers.multi_items())

        on_progress = request.on_download_progress
        if on_progress is not None:
            length = _parse_content_length(headers) or len(content)
            if length:
                on_progress(TransferProgress(loaded_bytes=length))

        self._metrics.record_request(response.status_code, len(content))
        return HttpResponse(
            request=request,
            status=response.status_code,
            headers=headers,
            body_as_text=text,
        )

    def _streamed_response(
        self,
        request: HttpRequest,
        response: httpx.Response,
        attempt: _AttemptState,
        resources: ExitStack,
    ) -> HttpResponse:
        chunks: Iterator[bytes] = self._iter_response(request, response, attempt)
        if request.on_download_progress is not None:
            chunks = iter_with_progress(chunks, request.on_download_progress)

        self._metrics.record_request(response.status_code, 0)
        self._log.debug(
            "response_stream_opened",
            status_code=response.status_code,
        )
        return HttpResponse(
            request=request,
            status=response.status_code,
            headers=HttpHeaders(response.headers.multi_items()),
            stream_body=ResponseBodyStream(chunks, on_close=resources.close),
        )

    def _iter_response(
        self,
        request: HttpRequest,
        response: httpx.Response,
        attempt: _AttemptState,
    ) -> Iterator[bytes]:
        try:
            for chunk in response.iter_bytes(self._chunk_size):
                if attempt.cancelled:
                    raise self._cancelled_error(request)
                yield chunk
        except RequestSendError:
            raise
        except Exception as exc:  # noqa: BLE001
            error = self._send_error(request, exc, attempt)
            self._log.warning("response_read_failed", **error.to_dict())
            raise error from exc

        if attempt.cancelled:
            raise self._cancelled_error(request)

    def _cancelled_error(self, request: HttpRequest) -> RequestSendError:
        self._metrics.record_failure(TransportErrorClass.CANCELLED)
        return RequestSendError(
            _ABORTED_MESSAGE,
            request=request,
            error_class=TransportErrorClass.CANCELLED,
            cancelled=True,
        )

    def _send_error(
        self,
        request: HttpRequest,
        exc: Exception,
        attempt: _AttemptState,
    ) -> RequestSendError:
        if attempt.cancelled:
            return self._cancelled_error(request)

        error_class = classify_exception(exc)
        if error_class == TransportErrorClass.NETWORK_TIMEOUT and request.timeout_ms:
            message = timeout_exceeded_message(request.timeout_ms)
        else:
            message = str(exc) or type(exc).__name__

        self._metrics.record_failure(error_class)
        return RequestSendError(message, request=request, error_class=error_class)

    def __enter__(self) -> "HttpxTransport":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def classify_exception(exc: BaseException) -> TransportErrorClass:
    """Classify a transport exception.

    Args:
        exc: Exception raised by httpx or the network stack.

    Returns:
        The matching TransportErrorClass.
    """
    if isinstance(exc, httpx.TimeoutException):
        return TransportErrorClass.NETWORK_TIMEOUT
    if isinstance(exc, ssl.SSLError) or isinstance(exc.__cause__, ssl.SSLError):
        return TransportErrorClass.SSL_ERROR
    if isinstance(exc, httpx.ConnectError):
        message = str(exc).lower()
        if "ssl" in message or "certificate" in message:
            return TransportErrorClass.SSL_ERROR
        return TransportErrorClass.CONNECTION_ERROR
    if isinstance(exc, httpx.NetworkError | ConnectionError):
        return TransportErrorClass.CONNECTION_ERROR
    if isinstance(exc, httpx.ProtocolError):
        return TransportErrorClass.PROTOCOL_ERROR
    return TransportErrorClass.UNKNOWN


def _has_content(body: object) -> bool:
    if isinstance(body, bytes | bytearray | str):
        return len(body) > 0
    return True


def _known_length(body: object) -> int | None:
    if isinstance(body, str):
        return len(body.encode("utf-8"))
    if isinstance(body, bytes | bytearray):
        return len(body)
    return None


def _parse_content_length(headers: HttpHeaders) -> int | None:
    value = headers.get(HEADER_CONTENT_LENGTH)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None
