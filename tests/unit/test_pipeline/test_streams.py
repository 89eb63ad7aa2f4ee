"""Unit tests for body chunking, progress counting and response streams."""

import io

import pytest

from src.features.pipeline.streams import (
    ReplayableBody,
    ResponseBodyStream,
    TransferProgress,
    is_readable_stream,
    iter_body_chunks,
    iter_with_progress,
)


class TestIterBodyChunks:
    """Tests for iter_body_chunks."""

    def test_bytes_are_chunked(self) -> None:
        """Test splitting an in-memory payload."""
        assert list(iter_body_chunks(b"abcdefg", chunk_size=3)) == [b"abc", b"def", b"g"]

    def test_str_is_utf8_encoded(self) -> None:
        """Test that text payloads are encoded."""
        assert b"".join(iter_body_chunks("héllo")) == "héllo".encode()

    def test_file_like(self) -> None:
        """Test reading a file-like payload."""
        body = io.BytesIO(b"x" * 10)

        assert list(iter_body_chunks(body, chunk_size=4)) == [b"xxxx", b"xxxx", b"xx"]

    def test_iterable(self) -> None:
        """Test that iterables are passed through."""
        assert list(iter_body_chunks(iter([b"a", "b"]))) == [b"a", b"b"]

    def test_is_readable_stream(self) -> None:
        """Test file-like detection."""
        assert is_readable_stream(io.BytesIO()) is True
        assert is_readable_stream(b"data") is False


class TestReplayableBody:
    """Tests for ReplayableBody."""

    def test_seekable_source_rewound_to_start_offset(self) -> None:
        """Test that a file is replayed from where it was when wrapped."""
        source = io.BytesIO(b"skip:payload")
        source.seek(5)
        body = ReplayableBody(source)

        assert body.seekable is True
        assert list(body.iter_chunks(chunk_size=4)) == [b"payl", b"oad"]
        assert list(body.iter_chunks(chunk_size=4)) == [b"payl", b"oad"]

    def test_iterator_buffered_after_partial_read(self) -> None:
        """Test that an interrupted pass is completed by the next one."""
        body = ReplayableBody(iter([b"a", b"b", b"c"]))

        partial = body.iter_chunks()
        assert next(partial) == b"a"

        assert body.seekable is False
        assert list(body.iter_chunks()) == [b"a", b"b", b"c"]
        assert list(body) == [b"a", b"b", b"c"]

    def test_non_seekable_reader_buffered(self) -> None:
        """Test a read-only stream without seek support."""

        class Pipe:
            def __init__(self) -> None:
                self._data = [b"xy", b"z"]

            def read(self, size: int = -1) -> bytes:
                return self._data.pop(0) if self._data else b""

        body = ReplayableBody(Pipe())

        assert body.seekable is False
        assert b"".join(body) == b"xyz"
        assert b"".join(body) == b"xyz"


class TestIterWithProgress:
    """Tests for iter_with_progress."""

    def test_reports_cumulative_bytes(self) -> None:
        """Test that the count is cumulative and chunks are unchanged."""
        events: list[TransferProgress] = []

        chunks = list(iter_with_progress([b"ab", b"cde"], events.append))

        assert chunks == [b"ab", b"cde"]
        assert [e.loaded_bytes for e in events] == [2, 5]

    def test_is_lazy(self) -> None:
        """Test that nothing is reported before iteration."""
        events: list[TransferProgress] = []

        iter_with_progress([b"ab"], events.append)

        assert events == []


class TestResponseBodyStream:
    """Tests for ResponseBodyStream."""

    def test_read_closes_stream(self) -> None:
        """Test that exhausting the stream closes it once."""
        closes: list[int] = []
        stream = ResponseBodyStream(iter([b"a", b"b"]), on_close=lambda: closes.append(1))

        assert stream.read() == b"ab"
        assert stream.closed is True
        stream.close()
        assert closes == [1]

    def test_error_closes_stream(self) -> None:
        """Test that an iteration failure still closes the stream."""

        def broken() -> object:
            yield b"a"
            raise OSError("connection reset")

        closes: list[int] = []
        stream = ResponseBodyStream(broken(), on_close=lambda: closes.append(1))  # type: ignore[arg-type]

        with pytest.raises(OSError, match="reset"):
            stream.read()
        assert closes == [1]

    def test_context_manager(self) -> None:
        """Test closing an unread stream on exit."""
        closes: list[int] = []

        with ResponseBodyStream(iter([b"a"]), on_close=lambda: closes.append(1)) as stream:
            assert stream.closed is False

        assert stream.closed is True
        assert closes == [1]
