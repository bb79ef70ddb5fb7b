"""Exceptions raised by simple_process.

Every error that carries a builtin meaning also subclasses that builtin, so
callers may catch ``TimeoutError`` or ``OSError`` without importing this module.
"""

from __future__ import annotations


class SimpleProcessError(Exception):
    """Base class for errors raised while starting or supervising a process."""


class ProcessStartError(SimpleProcessError, OSError):
    """Raised when the child process could not be spawned."""


class ProcessTimeoutError(SimpleProcessError, TimeoutError):
    """Raised when a timed wait elapses while the child is still alive.

    The child is not killed; use ``destroy()`` or ``destroy_forcibly()``.
    """


class StreamCloseTimeoutError(SimpleProcessError, TimeoutError):
    """Raised when an output stream did not reach end-of-stream in time after exit."""


class ProcessStillRunningError(SimpleProcessError, RuntimeError):
    """Raised when the exit value is requested before the child terminated."""


class UnexpectedExitCodeError(SimpleProcessError):
    """Raised when the child terminated with an exit code other than the expected one."""

    def __init__(self, pid: int, command: str, expected_exit_code: int, exit_code: int) -> None:
        self.pid = pid
        self.command = command
        self.expected_exit_code = expected_exit_code
        self.exit_code = exit_code
        super().__init__(
            f"Expected process {pid} (command '{command}') to terminate with exit code "
            f"{expected_exit_code} but was {exit_code}"
        )


class ProcessInterruptedError(KeyboardInterrupt):
    """Raised when a wait is interrupted by ``KeyboardInterrupt``.

    Subclasses ``KeyboardInterrupt`` so the interrupt keeps propagating past
    ``except Exception`` handlers.
    """
