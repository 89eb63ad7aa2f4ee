"""Cooperative cancellation for logical requests."""

import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager

import structlog


logger = structlog.get_logger()

CancellationListener = Callable[[], None]


class CancellationToken:
    """Cancellation handle shared by every attempt of a logical request.

    Listeners are notified once when ``cancel`` is first called. Attempts
    subscribe through ``subscribe`` so the listener is always released,
    whichever way the attempt ends.

    Thread-safe: ``cancel`` is typically called from a thread other than the
    one sending the request.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._listeners: list[CancellationListener] = []

    @property
    def is_cancelled(self) -> bool:
        """Check if cancellation was requested."""
        return self._event.is_set()

    def cancel(self) -> None:
        """Request cancellation and notify current listeners."""
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener()
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "cancellation_listener_failed",
                    component="pipeline",
                    error=str(exc),
                )

    def add_listener(self, listener: CancellationListener) -> None:
        """Register a listener called on cancellation."""
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: CancellationListener) -> None:
        """Deregister a listener; unknown listeners are ignored."""
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    @property
    def listener_count(self) -> int:
        """Number of currently registered listeners."""
        with self._lock:
            return len(self._listeners)

    @contextmanager
    def subscribe(self, listener: CancellationListener) -> Iterator[None]:
        """Register ``listener`` for the duration of the ``with`` block."""
        self.add_listener(listener)
        try:
            yield
        finally:
            self.remove_listener(listener)

    def wait(self, timeout_seconds: float) -> bool:
        """Block up to ``timeout_seconds`` or until cancelled.

        Returns:
            True if the token was cancelled.
        """
        return self._event.wait(timeout_seconds)
