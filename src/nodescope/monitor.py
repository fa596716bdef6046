"""Background refresh loop feeding fetch results to a view."""

import logging
import threading
from collections.abc import Callable
from queue import Queue
from typing import Generic, TypeVar

from nodescope.config import MIN_POLL_RATE

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Refresher(Generic[T]):
    """
    Re-issues one fetch per interval and pushes each result to a Queue.

    Runs in a separate daemon thread with at most one call in flight.
    Results are pushed as returned, TransportFailure values included; the
    consumer decides what to show for them.
    """

    def __init__(
        self,
        fetch: Callable[[], T],
        update_queue: "Queue[T]",
        poll_rate: float = 2.0,
        name: str = "Refresher",
    ) -> None:
        """
        Initialize the Refresher.

        Args:
            fetch: Zero-argument callable performing one fetch.
            update_queue: Thread-safe queue to push results to.
            poll_rate: How often to fetch (in seconds). Default 2.0s.
            name: Name of the background thread.
        """
        self._fetch = fetch
        self._queue = update_queue
        self._poll_rate = max(MIN_POLL_RATE, poll_rate)
        self._name = name
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def poll_rate(self) -> float:
        """Get the current poll rate."""
        return self._poll_rate

    @poll_rate.setter
    def poll_rate(self, value: float) -> None:
        """Set the poll rate."""
        self._poll_rate = max(MIN_POLL_RATE, value)

    @property
    def fetch(self) -> Callable[[], T]:
        return self._fetch

    @fetch.setter
    def fetch(self, value: Callable[[], T]) -> None:
        """Swap the fetch used from the next iteration on."""
        self._fetch = value

    @property
    def is_running(self) -> bool:
        """Check if the refresh thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the refresh thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            daemon=True,
            name=self._name,
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the refresh thread.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def _poll_loop(self) -> None:
        """Main polling loop running in the background thread."""
        while not self._stop_event.is_set():
            try:
                self._queue.put(self._fetch())
            except Exception:
                # Keep refreshing; the next iteration may succeed
                logger.exception("Refresh in %s failed", self._name)

            self._stop_event.wait(timeout=self._poll_rate)
