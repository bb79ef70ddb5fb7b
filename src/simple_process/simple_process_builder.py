"""Builder for SimpleProcess instances and the default stream reader executor."""

from __future__ import annotations

import _thread
import contextlib
import logging
import subprocess
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import Executor, Future
from os import PathLike
from pathlib import Path
from typing import Any

from simple_process.errors import ProcessStartError
from simple_process.process_output_supervisor import ProcessOutputSupervisor
from simple_process.simple_process import SimpleProcess, Timeout, to_seconds
from simple_process.stream_collector import StreamCollector, StringCollector

logger = logging.getLogger(__name__)

DEFAULT_STREAM_CLOSE_TIMEOUT = 1.0


class ThreadPerTaskExecutor(Executor):
    """Executor starting a dedicated daemon thread for every submitted task.

    Threads are named ``SimpleProcess-<pid>``. Exceptions escaping a task are
    logged as warnings and set on the returned future.
    """

    def __init__(self, pid: int) -> None:
        self._thread_name = f"SimpleProcess-{pid}"

    def submit(self, fn: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Future[Any]:
        future: Future[Any] = Future()

        def _run() -> None:
            if not future.set_running_or_notify_cancel():
                return
            thread_name = threading.current_thread().name
            try:
                result = fn(*args, **kwargs)
            except KeyboardInterrupt as e:
                logger.warning("Thread %s caught KeyboardInterrupt", thread_name)
                future.set_exception(e)
                _thread.interrupt_main()
            except Exception as e:  # noqa: BLE001
                logger.warning("Exception occurred in thread '%s': %s", thread_name, e, exc_info=True)
                future.set_exception(e)
            else:
                future.set_result(result)

        thread = threading.Thread(target=_run, name=self._thread_name, daemon=True)
        thread.start()
        return future


class SimpleProcessBuilder:
    """
    Fluent configuration for starting a SimpleProcess.

    All setters return the builder. Create instances with
    ``SimpleProcess.builder()``.
    """

    def __init__(self) -> None:
        self._command: list[str] = []
        self._working_dir: Path | None = None
        self._redirect_error_stream = False
        self._stream_close_timeout: float = DEFAULT_STREAM_CLOSE_TIMEOUT
        self._executor: Executor | None = None
        self._stream_log_level = logging.DEBUG

    def command(self, *command: str | Sequence[str]) -> SimpleProcessBuilder:
        """
        Set program and arguments.

        Accepts either the program and arguments as separate arguments,
        ``command("echo", "hi")``, or a single list, ``command(["echo", "hi"])``.
        Path arguments are converted to strings in both forms.
        """
        parts = command[0] if len(command) == 1 and not isinstance(command[0], str) else command
        self._command = [str(part) for part in parts]
        return self

    def working_dir(self, working_dir: str | PathLike[str] | None) -> SimpleProcessBuilder:
        """Set the working directory of the child. None uses the current directory."""
        self._working_dir = Path(working_dir) if working_dir is not None else None
        return self

    def redirect_error_stream(self, redirect_error_stream: bool) -> SimpleProcessBuilder:
        """Merge stderr into stdout if True. The stderr result is then empty. Default: False."""
        self._redirect_error_stream = redirect_error_stream
        return self

    def stream_close_timeout(self, timeout: Timeout) -> SimpleProcessBuilder:
        """Set how long to wait for each output stream to close after exit. Default: 1 second."""
        self._stream_close_timeout = to_seconds(timeout)
        return self

    def stream_consumer_executor(self, executor: Executor) -> SimpleProcessBuilder:
        """
        Set a custom executor for the two stream reader tasks.

        The executor must be able to run both readers at the same time. A pool
        with a single worker blocks the stderr reader until stdout closes and can
        deadlock a child that fills its stderr pipe.
        """
        self._executor = executor
        return self

    def stream_log_level(self, level: int) -> SimpleProcessBuilder:
        """Set the level at which every output line is logged. Default: logging.DEBUG."""
        self._stream_log_level = level
        return self

    def _describe_working_dir(self) -> str:
        return str(self._working_dir) if self._working_dir is not None else "null"

    def _start_process(self, command: list[str]) -> subprocess.Popen[bytes]:
        try:
            return subprocess.Popen(  # noqa: S603
                command,
                cwd=self._working_dir,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT if self._redirect_error_stream else subprocess.PIPE,
            )
        except OSError as e:
            start_error_msg = (
                f"Failed to start process [{', '.join(command)}] in working dir {self._describe_working_dir()}: {e}"
            )
            raise ProcessStartError(start_error_msg) from e

    def _get_executor(self, pid: int) -> Executor:
        if self._executor is not None:
            return self._executor
        return ThreadPerTaskExecutor(pid)

    @staticmethod
    def _discard_process(proc: subprocess.Popen[bytes]) -> None:
        """Kill and reap a child whose output cannot be supervised and close its pipes."""
        logger.warning("Killing process %d because its output readers could not be started", proc.pid)
        with contextlib.suppress(ProcessLookupError, PermissionError, OSError):
            proc.kill()
        proc.wait()
        for stream in (proc.stdout, proc.stderr):
            if stream is not None:
                with contextlib.suppress(ValueError, OSError):
                    stream.close()

    def start(
        self,
        stdout_collector: StreamCollector[Any] | None = None,
        stderr_collector: StreamCollector[Any] | None = None,
    ) -> SimpleProcess[Any]:
        """
        Start the process and begin reading its output in the background.

        Args:
            stdout_collector: Collector for stdout lines. Defaults to a StringCollector.
            stderr_collector: Collector for stderr lines. Defaults to a StringCollector.

        Returns:
            Handle of the started process.

        Raises:
            ValueError: If no command was set.
            ProcessStartError: If the process could not be spawned.
        """
        if not self._command:
            error_message = "No command specified. Call command() before start()."
            raise ValueError(error_message)
        command = list(self._command)
        command_str = " ".join(command)
        proc = self._start_process(command)
        logger.debug("Started process %d (command '%s')", proc.pid, command_str)
        try:
            supervisor = ProcessOutputSupervisor(
                self._get_executor(proc.pid),
                proc,
                self._stream_close_timeout,
                self._stream_log_level,
                stdout_collector if stdout_collector is not None else StringCollector(),
                stderr_collector if stderr_collector is not None else StringCollector(),
            )
            supervisor.start()
        except BaseException:
            # Nobody would drain the pipes of the child
            self._discard_process(proc)
            raise
        return SimpleProcess(proc, supervisor, command_str)
