"""Process output supervisor module.

This module contains the ProcessOutputSupervisor class which owns the readers,
close latches and collectors for the stdout and stderr streams of one process.
"""

from __future__ import annotations

import enum
import io
import logging
from concurrent.futures import Executor
from typing import IO, Any, Generic, Protocol, TypeVar

from simple_process.async_stream_reader import AsyncStreamReader
from simple_process.stream_collector import StreamCollector
from simple_process.stream_consumer import DelegatingConsumer, StreamCloseWaiter, StreamLogger

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SupervisedProcess(Protocol):
    """The parts of ``subprocess.Popen`` the supervisor relies on."""

    pid: int
    stdout: IO[bytes] | None
    stderr: IO[bytes] | None


class SupervisorState(enum.Enum):
    CREATED = "created"
    RUNNING = "running"
    DRAINED = "drained"


class _SupervisedStream(Generic[T]):
    """Close latch, collector and reader of a single output stream."""

    def __init__(
        self,
        name: str,
        pid: int,
        stream: IO[bytes] | None,
        collector: StreamCollector[T],
        stream_close_timeout: float,
        stream_log_level: int,
    ) -> None:
        self.name = name
        self.collector = collector
        self.waiter = StreamCloseWaiter(name, pid, stream_close_timeout)
        # The latch comes first so waiters unblock as soon as the terminal event arrives
        consumer = DelegatingConsumer([self.waiter, collector, StreamLogger(pid, name, stream_log_level)])
        # A redirected stream has no pipe; reading an empty stream closes its latch right away
        self.reader = AsyncStreamReader(name, pid, stream if stream is not None else io.BytesIO(), consumer)


class ProcessOutputSupervisor(Generic[T]):
    """Reads stdout and stderr of a process in the background.

    Readers run on the given executor. Callers must call
    ``await_streams_closed`` after the process exited before reading
    ``stdout`` or ``stderr``.
    """

    def __init__(
        self,
        executor: Executor,
        process: SupervisedProcess,
        stream_close_timeout: float,
        stream_log_level: int,
        stdout_collector: StreamCollector[T],
        stderr_collector: StreamCollector[T],
    ) -> None:
        """
        Initialize the supervisor.

        Args:
            executor: Executor running the two reader tasks concurrently with the caller.
            process: Spawned child process providing pid and output pipes.
            stream_close_timeout: Seconds to wait for each stream to close after exit.
            stream_log_level: Logging level used to echo every consumed line.
            stdout_collector: Collector receiving the lines of stdout.
            stderr_collector: Collector receiving the lines of stderr.
        """
        self._executor = executor
        self._pid = process.pid
        self._started = False
        self._stdout = _SupervisedStream(
            "stdout", process.pid, process.stdout, stdout_collector, stream_close_timeout, stream_log_level
        )
        self._stderr = _SupervisedStream(
            "stderr", process.pid, process.stderr, stderr_collector, stream_close_timeout, stream_log_level
        )

    @property
    def state(self) -> SupervisorState:
        if not self._started:
            return SupervisorState.CREATED
        if self._stdout.waiter.closed and self._stderr.waiter.closed:
            return SupervisorState.DRAINED
        return SupervisorState.RUNNING

    def start(self) -> None:
        """Submit both stream readers to the executor.

        Raises:
            ValueError: If the supervisor was already started.
        """
        if self._started:
            error_message = f"Output supervisor of process {self._pid} already started."
            raise ValueError(error_message)
        self._started = True
        logger.debug("Start reading stdout and stderr streams of process %d in background...", self._pid)
        self._submit(self._stdout)
        self._submit(self._stderr)

    def _submit(self, stream: _SupervisedStream[Any]) -> None:
        # The future is not needed: completion is signalled through the close latch
        self._executor.submit(stream.reader.run)

    def await_streams_closed(self) -> None:
        """Wait for stdout, then stderr, to reach end-of-stream.

        Raises:
            StreamCloseTimeoutError: If a stream does not close within the stream-close timeout.
            ProcessInterruptedError: If the wait is interrupted.
        """
        self._stdout.waiter.wait_until_stream_closed()
        self._stderr.waiter.wait_until_stream_closed()

    @property
    def stdout(self) -> T:
        return self._stdout.collector.result()

    @property
    def stderr(self) -> T:
        return self._stderr.collector.result()
