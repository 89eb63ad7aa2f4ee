"""Byte stream helpers: chunking, progress counting and response streams."""

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass

from src.features.pipeline.constants import DEFAULT_CHUNK_SIZE


@dataclass(frozen=True)
class TransferProgress:
    """Cumulative bytes transferred so far for one direction of an attempt."""

    loaded_bytes: int


ProgressCallback = Callable[[TransferProgress], None]


def is_readable_stream(body: object) -> bool:
    """Check if a body is a file-like object."""
    return callable(getattr(body, "read", None))


def iter_body_chunks(
    body: object,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Iterator[bytes]:
    """Iterate a request payload as byte chunks.

    Args:
        body: bytes, str, a file-like object or an iterable of chunks.
        chunk_size: Chunk size used for in-memory and file-like payloads.

    Yields:
        Byte chunks, in order.
    """
    if isinstance(body, str):
        body = body.encode("utf-8")
    if isinstance(body, bytes | bytearray | memoryview):
        data = bytes(body)
        for offset in range(0, len(data), chunk_size):
            yield data[offset : offset + chunk_size]
        return
    if is_readable_stream(body):
        while True:
            chunk = body.read(chunk_size)  # type: ignore[attr-defined]
            if not chunk:
                return
            yield chunk.encode("utf-8") if isinstance(chunk, str) else chunk
    for chunk in body:  # type: ignore[attr-defined]
        yield chunk.encode("utf-8") if isinstance(chunk, str) else chunk


class ReplayableBody:
    """One-shot request payload made readable once per attempt.

    A seekable file-like source is rewound to the position it had when it
    was wrapped. Any other stream or iterator is buffered as it is first
    read, so later passes replay the buffered chunks and then continue with
    whatever the source has left.
    """

    def __init__(self, source: object) -> None:
        """Wrap a payload source.

        Args:
            source: File-like object or iterable of byte chunks.
        """
        self._source = source
        self._start = _seek_position(source)
        self._buffered: list[bytes] = []
        self._pending: Iterator[bytes] | None = None
        self._exhausted = False

    @property
    def seekable(self) -> bool:
        """Check if passes rewind the source instead of buffering it."""
        return self._start is not None

    def __iter__(self) -> Iterator[bytes]:
        return self.iter_chunks()

    def iter_chunks(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
        """Iterate the whole payload from its start.

        Args:
            chunk_size: Read size for file-like sources.

        Yields:
            Byte chunks, in order.
        """
        if self._start is not None:
            self._source.seek(self._start)  # type: ignore[attr-defined]
            yield from iter_body_chunks(self._source, chunk_size)
            return

        index = 0
        while True:
            if index < len(self._buffered):
                chunk = self._buffered[index]
                index += 1
                yield chunk
                continue
            if self._exhausted:
                return
            if self._pending is None:
                self._pending = iter_body_chunks(self._source, chunk_size)
            try:
                chunk = next(self._pending)
            except StopIteration:
                self._exhausted = True
                return
            self._buffered.append(chunk)


def _seek_position(source: object) -> int | None:
    if not is_readable_stream(source):
        return None
    seekable = getattr(source, "seekable", None)
    if not callable(seekable):
        return None
    try:
        if not seekable():
            return None
        return source.tell()  # type: ignore[attr-defined]
    except (OSError, ValueError):
        # Closed or unpositioned streams are buffered instead
        return None


def iter_with_progress(
    chunks: Iterable[bytes],
    on_progress: ProgressCallback,
) -> Iterator[bytes]:
    """Pass chunks through unchanged, reporting the cumulative byte count.

    The callback fires after every chunk and before the chunk is forwarded.
    """
    loaded_bytes = 0
    for chunk in chunks:
        loaded_bytes += len(chunk)
        on_progress(TransferProgress(loaded_bytes=loaded_bytes))
        yield chunk


class ResponseBodyStream:
    """Streamed response body handed to the caller.

    Iterating yields byte chunks. The stream closes itself when exhausted or
    when iteration fails; ``on_close`` callbacks run exactly once.
    """

    def __init__(
        self,
        chunks: Iterator[bytes],
        on_close: Callable[[], None] | None = None,
    ) -> None:
        self._chunks = chunks
        self._on_close = on_close
        self._closed = False

    @property
    def closed(self) -> bool:
        """Check if the stream was closed."""
        return self._closed

    def __iter__(self) -> Iterator[bytes]:
        return self.iter_bytes()

    def iter_bytes(self) -> Iterator[bytes]:
        """Iterate the remaining body chunks."""
        try:
            for chunk in self._chunks:
                if self._closed:
                    return
                yield chunk
        finally:
            self.close()

    def read(self) -> bytes:
        """Read the remaining body into memory."""
        return b"".join(self.iter_bytes())

    def close(self) -> None:
        """Close the stream and release its resources."""
        if self._closed:
            return
        self._closed = True
        if self._on_close is not None:
            self._on_close()

    def __enter__(self) -> "ResponseBodyStream":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
