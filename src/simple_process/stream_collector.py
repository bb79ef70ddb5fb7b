"""Stream collector module.

Collectors are the stream consumers that turn the lines of one output stream
into the result returned by ``SimpleProcess.stdout`` and ``SimpleProcess.stderr``.
"""

from __future__ import annotations

from collections import deque
from typing import Protocol, TypeVar

T_co = TypeVar("T_co", covariant=True)


class StreamCollector(Protocol[T_co]):
    """Protocol for consumers that turn a stream's lines into a result.

    ``accept`` is only ever called from the reader of a single stream. The
    result is complete once the stream's close latch has closed.
    """

    def accept(self, line: str) -> None: ...

    def stream_finished(self) -> None: ...

    def stream_read_failed(self, exception: Exception) -> None: ...

    def result(self) -> T_co: ...


class StringCollector:
    """Default collector concatenating lines, each followed by a newline.

    A final line without a trailing newline is normalized to end with one, so
    ``echo -n X`` yields ``"X\\n"``.
    """

    def __init__(self) -> None:
        self._parts: list[str] = []

    def accept(self, line: str) -> None:
        self._parts.append(line)
        self._parts.append("\n")

    def stream_finished(self) -> None:
        return None

    def stream_read_failed(self, exception: Exception) -> None:
        # Keep whatever was read before the failure
        return None

    def result(self) -> str:
        return "".join(self._parts)


class LineListCollector:
    """Collects lines into a list."""

    def __init__(self) -> None:
        self._lines: list[str] = []

    def accept(self, line: str) -> None:
        self._lines.append(line)

    def stream_finished(self) -> None:
        return None

    def stream_read_failed(self, exception: Exception) -> None:
        return None

    def result(self) -> list[str]:
        return list(self._lines)


class LineCountCollector:
    """Counts lines without keeping them."""

    def __init__(self) -> None:
        self._count = 0

    def accept(self, line: str) -> None:
        self._count += 1

    def stream_finished(self) -> None:
        return None

    def stream_read_failed(self, exception: Exception) -> None:
        return None

    def result(self) -> int:
        return self._count


class TailCollector:
    """Bounded collector keeping only the last ``max_lines`` lines.

    Useful for chatty children where only the end of the output matters, e.g.
    for an error message. Formats its result like ``StringCollector``.
    """

    def __init__(self, max_lines: int) -> None:
        if max_lines < 1:
            error_msg = f"max_lines must be at least 1, got {max_lines}"
            raise ValueError(error_msg)
        self._lines: deque[str] = deque(maxlen=max_lines)
        self._dropped = 0

    @property
    def dropped(self) -> int:
        """Number of lines discarded because the bound was reached."""
        return self._dropped

    def accept(self, line: str) -> None:
        if len(self._lines) == self._lines.maxlen:
            self._dropped += 1
        self._lines.append(line)

    def stream_finished(self) -> None:
        return None

    def stream_read_failed(self, exception: Exception) -> None:
        return None

    def result(self) -> str:
        return "".join(f"{line}\n" for line in self._lines)
