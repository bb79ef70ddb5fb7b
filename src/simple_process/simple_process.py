"""Control over a spawned child process with fully drained output.

## Basic Usage

### Run and check the exit code
```python
process = SimpleProcess.builder().command("echo", "hello world").start()
process.wait_for_successful_termination()
print(process.stdout)  # "hello world\\n"
```

### Separate stdout and stderr
```python
process = SimpleProcess.builder().command("sh", "-c", "echo out && echo err >&2").start()
exit_code = process.wait_for_termination()
print(process.stdout, process.stderr)
```

### Timed waits
```python
process = SimpleProcess.builder().command("sleep", "10").start()
try:
    process.wait_for_termination(timeout=0.5)
except ProcessTimeoutError:
    process.destroy()  # the timeout does not kill the child
    process.wait_for_termination()  # 143
```

### Custom collectors
```python
process = SimpleProcess.builder().command("ls").start(stdout_collector=LineListCollector())
process.wait_for_successful_termination()
for name in process.stdout:
    ...
```

Every wait first waits for the child to exit and then for both output
streams to reach end-of-stream, so ``stdout`` and ``stderr`` are complete when
a wait returns.
"""

from __future__ import annotations

import logging
import subprocess
from datetime import timedelta
from typing import TYPE_CHECKING, Generic, TypeVar

from simple_process.errors import (
    ProcessInterruptedError,
    ProcessStillRunningError,
    ProcessTimeoutError,
    UnexpectedExitCodeError,
)
from simple_process.process_output_supervisor import ProcessOutputSupervisor
from simple_process.process_utils import exit_code_from_returncode, get_process_tree_info

if TYPE_CHECKING:
    from simple_process.simple_process_builder import SimpleProcessBuilder

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Timeouts are given in seconds or as a timedelta
Timeout = float | timedelta


def to_seconds(timeout: Timeout) -> float:
    """Convert a timeout to seconds."""
    if isinstance(timeout, timedelta):
        return timeout.total_seconds()
    return float(timeout)


class SimpleProcess(Generic[T]):
    """
    Handle of a running child process.

    Wraps a ``subprocess.Popen`` together with the supervisor reading its
    output. Waits always couple the process wait with draining both output
    streams. Create instances with ``SimpleProcess.builder()``.

    Type parameter ``T`` is the result type of the stdout and stderr
    collectors, ``str`` by default.
    """

    def __init__(
        self, proc: subprocess.Popen[bytes], supervisor: ProcessOutputSupervisor[T], command: str
    ) -> None:
        self.proc = proc
        self._supervisor = supervisor
        self._command = command

    @staticmethod
    def builder() -> SimpleProcessBuilder:
        """Create a new builder for configuring and starting a process."""
        from simple_process.simple_process_builder import SimpleProcessBuilder  # noqa: PLC0415

        return SimpleProcessBuilder()

    @property
    def pid(self) -> int:
        return self.proc.pid

    @property
    def command(self) -> str:
        """Program and arguments joined by spaces."""
        return self._command

    def _wait_for_process(self) -> int:
        logger.debug("Waiting for process %d (command '%s') to terminate...", self.pid, self._command)
        try:
            returncode = self.proc.wait()
        except KeyboardInterrupt as e:
            interrupted_msg = f"Interrupted while waiting for process {self.pid} (command '{self._command}') to finish"
            raise ProcessInterruptedError(interrupted_msg) from e
        return exit_code_from_returncode(returncode)

    def _wait_for_process_with_timeout(self, timeout: float) -> int:
        logger.debug("Waiting %ss for process %d (command '%s') to terminate...", timeout, self.pid, self._command)
        try:
            returncode = self.proc.wait(timeout=timeout)
        except subprocess.TimeoutExpired as e:
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug("Process %d still alive after %ss:\n%s", self.pid, timeout, self.process_info())
            timeout_msg = f"Timeout while waiting {timeout}s for process {self.pid} (command '{self._command}')"
            raise ProcessTimeoutError(timeout_msg) from e
        except KeyboardInterrupt as e:
            interrupted_msg = (
                f"Interrupted while waiting {timeout}s for process {self.pid} (command '{self._command}') to finish"
            )
            raise ProcessInterruptedError(interrupted_msg) from e
        return exit_code_from_returncode(returncode)

    def wait_for_termination(self, timeout: Timeout | None = None, *, expected_exit_code: int | None = None) -> int:
        """
        Wait until the process has terminated and its output is drained.

        A positional number is a timeout, not an exit code: ``wait_for_termination(1)``
        waits at most one second. Pass ``expected_exit_code=1`` to check the exit code.

        Args:
            timeout: Maximum time to wait for the process to exit, in seconds or as
                    a timedelta. None waits indefinitely. The stream-close timeout
                    applies on top of this while draining output.
            expected_exit_code: If given, the exit code the process must terminate with.

        Returns:
            Process exit code. Children killed by a signal report 128 + signal number.

        Raises:
            ProcessTimeoutError: If the process is still alive after the timeout. It is not killed.
            UnexpectedExitCodeError: If the exit code differs from expected_exit_code.
            StreamCloseTimeoutError: If an output stream does not close after the process exited.
            ProcessInterruptedError: If the wait is interrupted.
        """
        if timeout is None:
            exit_code = self._wait_for_process()
        else:
            exit_code = self._wait_for_process_with_timeout(to_seconds(timeout))
            logger.debug(
                "Process %d (command '%s') terminated with exit code %d", self.pid, self._command, exit_code
            )
        self._supervisor.await_streams_closed()
        if expected_exit_code is not None and exit_code != expected_exit_code:
            raise UnexpectedExitCodeError(self.pid, self._command, expected_exit_code, exit_code)
        return exit_code

    def wait_for_successful_termination(self, timeout: Timeout | None = None) -> None:
        """
        Wait until the process terminates with exit code 0.

        Raises:
            UnexpectedExitCodeError: If the exit code is not 0.
        """
        self.wait_for_termination(timeout, expected_exit_code=0)

    @property
    def stdout(self) -> T:
        """
        Get the standard output collected so far.

        Complete only after one of the wait methods returned.
        """
        return self._supervisor.stdout

    @property
    def stderr(self) -> T:
        """
        Get the standard error collected so far.

        Complete only after one of the wait methods returned. Empty when the
        error stream is redirected to stdout.
        """
        return self._supervisor.stderr

    def is_alive(self) -> bool:
        return self.proc.poll() is None

    def exit_value(self) -> int:
        """
        Get the exit value of the terminated process.

        Raises:
            ProcessStillRunningError: If the process has not terminated yet.
        """
        returncode = self.proc.poll()
        if returncode is None:
            error_message = f"Process {self.pid} (command '{self._command}') has not terminated yet."
            raise ProcessStillRunningError(error_message)
        return exit_code_from_returncode(returncode)

    def destroy(self) -> None:
        """Request graceful termination with SIGTERM."""
        logger.debug("Terminating process %d (command '%s')", self.pid, self._command)
        self.proc.terminate()

    def destroy_forcibly(self) -> None:
        """Kill the process immediately with SIGKILL."""
        logger.debug("Killing process %d (command '%s')", self.pid, self._command)
        self.proc.kill()

    def process_info(self) -> str:
        """Describe the process and its descendants for diagnostics."""
        return get_process_tree_info(self.pid)

    def __repr__(self) -> str:
        return f"SimpleProcess(pid={self.pid}, command={self._command!r})"
