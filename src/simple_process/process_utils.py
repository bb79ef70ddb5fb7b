"""Process utilities for exit codes and process diagnostics."""

from __future__ import annotations

import psutil

# Exit code offset shells use for children terminated by a signal
_SIGNAL_EXIT_CODE_OFFSET = 128


def exit_code_from_returncode(returncode: int) -> int:
    """Convert a ``Popen.returncode`` to a shell-style exit code.

    ``Popen`` reports a child killed by signal N as ``-N``; shells and most
    tooling report ``128 + N`` instead (143 for SIGTERM, 137 for SIGKILL).
    """
    if returncode < 0:
        return _SIGNAL_EXIT_CODE_OFFSET - returncode
    return returncode


def _describe(process: psutil.Process, indent: str = "") -> list[str]:
    with process.oneshot():
        return [
            f"{indent}Process {process.pid} ({process.name()})",
            f"{indent}  Status: {process.status()}",
            f"{indent}  Command line: {' '.join(process.cmdline())}",
            f"{indent}  CPU Times: {process.cpu_times()}",
            f"{indent}  Memory: {process.memory_info()}",
        ]


def get_process_tree_info(pid: int) -> str:
    """Get information about a process and its descendants."""
    try:
        process = psutil.Process(pid)
        info = _describe(process)
        children = process.children(recursive=True)
        if children:
            info.append("Child processes:")
            for child in children:
                try:
                    info.extend(_describe(child, indent="  "))
                except psutil.Error:
                    info.append(f"  Child {child.pid} (gone)")
        return "\n".join(info)
    except psutil.Error:
        return f"Could not get process info for PID {pid}"
