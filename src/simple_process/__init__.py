"""Launch a child process and capture its stdout and stderr until fully drained."""

from __future__ import annotations

__version__ = "1.0.0"

from simple_process.errors import (
    ProcessInterruptedError,
    ProcessStartError,
    ProcessStillRunningError,
    ProcessTimeoutError,
    SimpleProcessError,
    StreamCloseTimeoutError,
    UnexpectedExitCodeError,
)
from simple_process.process_output_supervisor import ProcessOutputSupervisor, SupervisorState
from simple_process.simple_process import SimpleProcess
from simple_process.simple_process_builder import SimpleProcessBuilder, ThreadPerTaskExecutor
from simple_process.stream_collector import (
    LineCountCollector,
    LineListCollector,
    StreamCollector,
    StringCollector,
    TailCollector,
)
from simple_process.stream_consumer import StreamConsumer

__all__ = [
    "LineCountCollector",
    "LineListCollector",
    "ProcessInterruptedError",
    "ProcessOutputSupervisor",
    "ProcessStartError",
    "ProcessStillRunningError",
    "ProcessTimeoutError",
    "SimpleProcess",
    "SimpleProcessBuilder",
    "SimpleProcessError",
    "StreamCloseTimeoutError",
    "StreamCollector",
    "StreamConsumer",
    "StringCollector",
    "SupervisorState",
    "TailCollector",
    "ThreadPerTaskExecutor",
    "UnexpectedExitCodeError",
]
