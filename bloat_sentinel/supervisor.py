"""Process supervisor interface for the dependent gateway process."""

from __future__ import annotations

import logging
import os
import signal
import subprocess
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class ProcessSupervisor(Protocol):
    """
    Minimal process control used by the sentinel.

    The classifier and executor only talk to this interface, so tests can
    substitute a fake and the platform details stay in one place.
    """

    def find_by_pattern(self, pattern: str) -> int | None:
        """PID of the first process whose command line matches, or None."""
        ...

    def is_alive(self, pid: int) -> bool:
        """Whether a process with this PID exists."""
        ...

    def terminate(self, pid: int) -> bool:
        """Ask the process to exit (SIGTERM). Returns False if it was already gone."""
        ...

    def force_kill(self, pid: int) -> bool:
        """Kill the process (SIGKILL). Returns False if it was already gone."""
        ...

    def launch(self, command: list[str], cwd: Path, log_path: Path) -> int:
        """Start a detached process with output redirected to log_path; returns its PID."""
        ...


def pid_alive(pid: int) -> bool:
    """Signal-0 probe. A process we may not signal still counts as alive."""
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


class PosixProcessSupervisor:
    """ProcessSupervisor backed by pgrep and POSIX signals."""

    def __init__(self, pgrep: str = "pgrep", timeout: float = 5.0):
        self.pgrep = pgrep
        self.timeout = timeout

    def find_by_pattern(self, pattern: str) -> int | None:
        try:
            result = subprocess.run(
                [self.pgrep, "-f", pattern],
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (subprocess.TimeoutExpired, FileNotFoundError) as e:
            logger.warning(f"Process lookup for '{pattern}' failed: {e}")
            return None

        own_pid = os.getpid()
        for line in result.stdout.splitlines():
            line = line.strip()
            if line.isdigit() and int(line) != own_pid:
                return int(line)
        return None

    def is_alive(self, pid: int) -> bool:
        return pid_alive(pid)

    def _send(self, pid: int, sig: signal.Signals) -> bool:
        try:
            os.kill(pid, sig)
        except ProcessLookupError:
            return False
        return True

    def terminate(self, pid: int) -> bool:
        return self._send(pid, signal.SIGTERM)

    def force_kill(self, pid: int) -> bool:
        return self._send(pid, signal.SIGKILL)

    def launch(self, command: list[str], cwd: Path, log_path: Path) -> int:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        with open(log_path, "ab") as log:
            proc = subprocess.Popen(
                command,
                cwd=str(cwd),
                stdin=subprocess.DEVNULL,
                stdout=log,
                stderr=subprocess.STDOUT,
                start_new_session=True,
            )
        return proc.pid


__all__ = ["PosixProcessSupervisor", "ProcessSupervisor", "pid_alive"]
