"""Strategies for delivering callbacks from the extraction worker."""

import queue
from typing import Any, Callable, Optional, Protocol

Callback = Callable[..., Any]


class Deliver(Protocol):
    def __call__(self, callback: Callback, *args: Any) -> None: ...


def direct_delivery(callback: Callback, *args: Any) -> None:
    """Invoke the callback immediately on the calling thread."""
    callback(*args)


class QueueDelivery:
    """
    Enqueue callbacks for a consumer thread to run.

    The worker calls the instance like a function; the consumer (a UI loop,
    a CLI progress bar) calls ``drain()`` on its own thread.
    """

    def __init__(self):
        self._queue: "queue.Queue[tuple]" = queue.Queue()

    def __call__(self, callback: Callback, *args: Any) -> None:
        self._queue.put((callback, args))

    def drain(self, timeout: Optional[float] = None) -> int:
        """
        Run pending callbacks on the current thread.

        Args:
            timeout: Wait this long for the first callback if none is pending

        Returns:
            Number of callbacks run
        """
        count = 0

        if timeout is not None:
            try:
                callback, args = self._queue.get(timeout=timeout)
            except queue.Empty:
                return 0
            callback(*args)
            count += 1

        while True:
            try:
                callback, args = self._queue.get_nowait()
            except queue.Empty:
                return count
            callback(*args)
            count += 1

    @property
    def pending(self) -> int:
        return self._queue.qsize()
