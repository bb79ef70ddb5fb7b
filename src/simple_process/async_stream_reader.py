"""Async stream reader module.

This module contains the AsyncStreamReader class that drains one output stream
of a child process in a dedicated task and forwards its lines to a consumer.
"""

from __future__ import annotations

import io
import logging
from typing import IO

from simple_process.stream_consumer import StreamConsumer

logger = logging.getLogger(__name__)

# Messages of read errors caused by the stream being closed concurrently,
# e.g. by destroy() racing an active read.
_STREAM_CLOSED_MESSAGES = ("closed file", "Bad file descriptor")


def _is_stream_closed_error(e: Exception) -> bool:
    error_str = str(e)
    return error_str == "Stream closed" or any(msg in error_str for msg in _STREAM_CLOSED_MESSAGES)


class AsyncStreamReader:
    """Reads UTF-8 lines from a binary stream until end-of-stream.

    Lines are forwarded without their line terminator. Exactly one terminal
    event (``stream_finished`` or ``stream_read_failed``) is delivered, always
    as the last event, and the stream is closed on every exit path. Nothing is
    raised to the caller of ``run``.
    """

    def __init__(self, name: str, pid: int, stream: IO[bytes], consumer: StreamConsumer) -> None:
        self.name = name
        self.pid = pid
        self._stream = stream
        self._consumer = consumer
        self._terminal_emitted: bool = False

    def _emit_finished_once(self) -> None:
        if not self._terminal_emitted:
            self._terminal_emitted = True
            self._consumer.stream_finished()

    def _emit_read_failed_once(self, e: Exception) -> None:
        if not self._terminal_emitted:
            self._terminal_emitted = True
            self._consumer.stream_read_failed(e)

    def _process_lines(self, reader: io.TextIOWrapper) -> None:
        """Forward lines to the consumer until EOF."""
        while True:
            line = reader.readline()
            if not line:  # EOF reached
                break
            if line.endswith("\n"):
                line = line[:-1]
            self._consumer.accept(line)

    def _handle_io_error(self, e: OSError | ValueError) -> None:
        """Log a read error at a level depending on whether it is a close race."""
        if _is_stream_closed_error(e):
            logger.debug("Stream '%s' of process %d was closed while reading: %s", self.name, self.pid, e)
        else:
            logger.warning("Reading stream '%s' of process %d failed: %s", self.name, self.pid, e, exc_info=True)

    def _cleanup_stream(self, reader: io.TextIOWrapper | None) -> None:
        """Close the stream safely."""
        closeable = reader if reader is not None else self._stream
        try:
            closeable.close()
        except (ValueError, OSError) as err:
            logger.debug("Closing stream '%s' of process %d failed: %s", self.name, self.pid, err)

    def run(self) -> None:
        """Read the stream to the end and deliver lines and the terminal event."""
        logger.debug("Start reading from '%s' stream of process %d...", self.name, self.pid)
        reader: io.TextIOWrapper | None = None
        try:
            reader = io.TextIOWrapper(self._stream, encoding="utf-8", errors="replace")
            self._process_lines(reader)
            logger.debug("Stream '%s' of process %d finished", self.name, self.pid)
            self._emit_finished_once()
        except (OSError, ValueError) as e:
            self._handle_io_error(e)
            self._emit_read_failed_once(e)
        except Exception as e:  # noqa: BLE001
            # A failing consumer must not leave the close latch open
            logger.warning(
                "Unexpected error while consuming stream '%s' of process %d: %s", self.name, self.pid, e, exc_info=True
            )
            self._emit_read_failed_once(e)
        finally:
            self._cleanup_stream(reader)
