"""Hand-off of asset groups from the grouper thread to the caller.

One producer (the grouper) pushes groups, one consumer iterates them. The
producer blocks while the buffer is full and gives up as soon as the scan is
cancelled. Ownership of a group's assets passes to the consumer when it
receives the group; groups still buffered when the stream is closed are
released by the stream.
"""

import logging
import queue
import threading
from typing import Iterator, List, Optional

from .assets import AssetGroup
from .errors import ScanCancelledError

logger = logging.getLogger(__name__)

# Seconds between cancellation checks while blocked
POLL_INTERVAL = 0.05


class GroupStream:
    """Single-producer, single-consumer stream of ``AssetGroup``.

    Args:
        maxsize: Groups buffered ahead of the consumer (0: unbounded)
        cancel_event: Cancellation signal shared with the producer

    Example:
        >>> stream = browser.browse()
        >>> for group in stream:   # raises the scan error, if any, at the end
        ...     upload(group)
    """

    def __init__(self, maxsize: int = 1, cancel_event: Optional[threading.Event] = None) -> None:
        self._queue: "queue.Queue[AssetGroup]" = queue.Queue(maxsize=maxsize)
        self.cancel_event = cancel_event or threading.Event()
        self._finished = threading.Event()
        self._error: Optional[BaseException] = None
        self._error_raised = False
        self.delivered = 0

    # Producer side

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def put(self, group: AssetGroup) -> bool:
        """Queue a group; False when the scan was cancelled before it could be queued."""
        while not self.cancel_event.is_set():
            try:
                self._queue.put(group, timeout=POLL_INTERVAL)
                return True
            except queue.Full:
                continue
        return False

    def finish(self, error: Optional[BaseException] = None) -> None:
        """Mark the end of the stream with its terminal result."""
        self._error = error
        self._finished.set()

    # Consumer side

    @property
    def finished(self) -> bool:
        return self._finished.is_set()

    @property
    def error(self) -> Optional[BaseException]:
        """Terminal error once the producer is done (None on success or while running)."""
        return self._error if self._finished.is_set() else None

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Wait for the producer to finish."""
        return self._finished.wait(timeout)

    def __iter__(self) -> Iterator[AssetGroup]:
        return self

    def __next__(self) -> AssetGroup:
        while True:
            if self.cancel_event.is_set():
                self._finished.wait()
                self._release_pending()
                self._raise_terminal(ScanCancelledError())
            try:
                group = self._queue.get(timeout=POLL_INTERVAL)
            except queue.Empty:
                if self._finished.is_set() and self._queue.empty():
                    self._raise_terminal(None)
                continue
            if self.cancel_event.is_set():
                group.close()
                continue
            self.delivered += 1
            return group

    def _raise_terminal(self, default: Optional[BaseException]) -> None:
        error = self._error or default
        if error is None or self._error_raised:
            raise StopIteration
        self._error_raised = True
        raise error

    def cancel(self) -> None:
        """Ask the producer to stop; groups not yet received are dropped."""
        self.cancel_event.set()

    def close(self, timeout: Optional[float] = None) -> None:
        """Cancel the scan and release every group not yet received."""
        self.cancel()
        self._finished.wait(timeout)
        released = self._release_pending()
        if released:
            logger.debug(f"Released undelivered groups: {{'count': {released}}}")

    def _release_pending(self) -> int:
        pending: List[AssetGroup] = []
        while True:
            try:
                pending.append(self._queue.get_nowait())
            except queue.Empty:
                break
        for group in pending:
            group.close()
        return len(pending)

    def __enter__(self) -> "GroupStream":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
