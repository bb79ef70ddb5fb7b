"""Stream consumers.

A consumer receives the decoded lines of one output stream followed by exactly
one terminal event. This module holds the protocol and the consumers the
supervisor wires up for every stream: the fan-out, the close latch and the
line logger.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from typing import Protocol

from simple_process.errors import ProcessInterruptedError, StreamCloseTimeoutError

logger = logging.getLogger(__name__)


class StreamConsumer(Protocol):
    """Protocol for receivers of process output lines."""

    def accept(self, line: str) -> None: ...

    def stream_finished(self) -> None: ...

    def stream_read_failed(self, exception: Exception) -> None: ...


class DelegatingConsumer:
    """Fan-out consumer forwarding every event to its delegates in list order."""

    def __init__(self, delegates: Sequence[StreamConsumer]) -> None:
        self._delegates = tuple(delegates)

    def accept(self, line: str) -> None:
        for delegate in self._delegates:
            delegate.accept(line)

    def stream_finished(self) -> None:
        for delegate in self._delegates:
            delegate.stream_finished()

    def stream_read_failed(self, exception: Exception) -> None:
        for delegate in self._delegates:
            delegate.stream_read_failed(exception)


class StreamCloseWaiter:
    """One-shot latch that closes when its stream finishes or fails.

    Waiting is safe from any thread; closing happens on the reader thread.
    Everything the reader delivered before the terminal event is visible to a
    thread that returns from ``await_closed``.
    """

    def __init__(self, name: str, pid: int, stream_close_timeout: float) -> None:
        """Initialize the latch.

        Args:
            name: Stream label used in messages, e.g. "stdout".
            pid: Process id of the child owning the stream.
            stream_close_timeout: Seconds ``wait_until_stream_closed`` waits before giving up.
        """
        self.name = name
        self.pid = pid
        self.stream_close_timeout = stream_close_timeout
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def accept(self, line: str) -> None:
        return None

    def stream_finished(self) -> None:
        self._closed.set()

    def stream_read_failed(self, exception: Exception) -> None:
        self._closed.set()

    def await_closed(self, timeout: float | None) -> bool:
        """Block until the stream closed.

        Args:
            timeout: Seconds to wait. None waits forever.

        Returns:
            True if the stream closed, False if the timeout elapsed first.
        """
        return self._closed.wait(timeout)

    def wait_until_stream_closed(self) -> None:
        """Wait for the stream to close within the configured timeout.

        Raises:
            StreamCloseTimeoutError: If the stream is still open after the timeout.
            ProcessInterruptedError: If the wait is interrupted.
        """
        logger.debug(
            "Waiting %ss for stream '%s' of process %d to close", self.stream_close_timeout, self.name, self.pid
        )
        try:
            closed = self.await_closed(self.stream_close_timeout)
        except KeyboardInterrupt as e:
            interrupted_msg = f"Interrupted while waiting for stream '{self.name}' of process {self.pid} to be closed"
            raise ProcessInterruptedError(interrupted_msg) from e
        if not closed:
            timeout_msg = (
                f"Stream '{self.name}' of process {self.pid} not closed within timeout of "
                f"{self.stream_close_timeout}s"
            )
            raise StreamCloseTimeoutError(timeout_msg)
        logger.debug("Stream '%s' of process %d closed", self.name, self.pid)


class StreamLogger:
    """Echoes every line to the log as ``<pid>:<stream>> <line>``."""

    def __init__(self, pid: int, stream_name: str, log_level: int = logging.DEBUG) -> None:
        self._pid = pid
        self._stream_name = stream_name
        self._log_level = log_level

    def accept(self, line: str) -> None:
        logger.log(self._log_level, "%d:%s> %s", self._pid, self._stream_name, line)

    def stream_finished(self) -> None:
        return None

    def stream_read_failed(self, exception: Exception) -> None:
        return None
