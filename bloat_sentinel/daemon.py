"""
Sentinel scheduler and daemon lifecycle.

The foreground loop polls the sessions directory while the gateway is up
and backs off while it is down. ``daemon`` re-launches the foreground loop
as a detached child and records its PID; ``stop`` signals that PID.
"""

from __future__ import annotations

import logging
import signal
import subprocess
import sys
import time
from collections.abc import Callable
from pathlib import Path

from .classifier import LayeredClassifier, Verdict
from .config import SentinelConfig
from .growth_tracker import GrowthTracker
from .incident import SENTINEL_BANNER
from .intervention import InterventionExecutor
from .sentinel_log import ALERT
from .supervisor import PosixProcessSupervisor, ProcessSupervisor, pid_alive
from .transcript_reader import list_session_files

logger = logging.getLogger(__name__)


class SentinelStopped(BaseException):
    """
    Raised from the signal handler to unwind the polling loop.

    A BaseException so per-session error handling cannot swallow it.
    """

    def __init__(self, signum: int):
        super().__init__(signal.Signals(signum).name)
        self.signum = signum


class PidFile:
    """PID file holding a single integer; presence plus liveness means running."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def read(self) -> int | None:
        try:
            return int(self.path.read_text().strip())
        except (OSError, ValueError):
            return None

    def write(self, pid: int) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(f"{pid}\n")

    def remove(self) -> None:
        self.path.unlink(missing_ok=True)

    def exists(self) -> bool:
        return self.path.exists()

    def live_pid(self) -> int | None:
        """The recorded PID if that process is alive."""
        pid = self.read()
        if pid is not None and pid_alive(pid):
            return pid
        return None


class Sentinel:
    """
    Single-threaded polling loop over the sessions directory.

    Args:
        config: Sentinel configuration
        classifier: Classifier run against every session file
        supervisor: Used to check that the gateway is running
        sleep: Blocking sleep, injectable for tests
    """

    def __init__(
        self,
        config: SentinelConfig,
        classifier: LayeredClassifier,
        supervisor: ProcessSupervisor,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self.classifier = classifier
        self.supervisor = supervisor
        self.sleep = sleep
        self.cycles = 0

    @classmethod
    def from_config(cls, config: SentinelConfig, supervisor: ProcessSupervisor | None = None) -> "Sentinel":
        """Wire up tracker, executor and classifier with the real clock."""
        supervisor = supervisor or PosixProcessSupervisor()
        tracker = GrowthTracker(config.layer2_growth_window)
        executor = InterventionExecutor(config, supervisor, tracker)
        classifier = LayeredClassifier(config, tracker, executor)
        return cls(config, classifier, supervisor)

    def gateway_running(self) -> bool:
        return self.supervisor.find_by_pattern(self.config.gateway_pattern) is not None

    def run_cycle(self) -> float:
        """
        Run one poll over all sessions.

        Returns:
            Seconds to sleep before the next cycle
        """
        self.cycles += 1
        if not self.gateway_running():
            return self.config.idle_backoff_seconds

        for session_file in list_session_files(self.config.sessions_path):
            self.check_session(session_file)

        return self.config.check_interval

    def check_session(self, session_file: Path) -> Verdict | None:
        """Check one session; a failure here never affects its siblings."""
        try:
            return self.classifier.check_session(session_file)
        except Exception as e:
            logger.warning(f"Check failed for {session_file.name}: {e}", exc_info=True)
            return None

    def log_banner(self) -> None:
        logger.info(f"{SENTINEL_BANNER} started")
        for line in self.config.describe_layers():
            logger.info(line)
        logger.info(f"Monitoring: {self.config.sessions_path}")

    def run_forever(self, max_cycles: int | None = None) -> None:
        """
        Poll until terminated (or until max_cycles have run).

        SIGTERM and SIGINT end the loop with an exit log line. If a signal
        lands mid-intervention the interruption is logged at ALERT.
        """
        self.log_banner()
        previous = self._install_signal_handlers()
        try:
            while max_cycles is None or self.cycles < max_cycles:
                delay = self.run_cycle()
                self.sleep(delay)
        except SentinelStopped as e:
            executor = self.classifier.executor
            in_flight = getattr(executor, "in_flight", None)
            if in_flight:
                step = getattr(executor, "step", None) or "unknown step"
                logger.log(
                    ALERT,
                    f"Stopped by {e} during intervention on {in_flight} at {step}; manual check required",
                )
            logger.info(f"Sentinel stopping ({e})")
        finally:
            self._restore_signal_handlers(previous)

    def _install_signal_handlers(self) -> dict[int, object]:
        def handler(signum, frame):
            raise SentinelStopped(signum)

        previous: dict[int, object] = {}
        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                previous[sig] = signal.signal(sig, handler)
            except ValueError:
                # Not the main thread; rely on process termination
                pass
        return previous

    def _restore_signal_handlers(self, previous: dict[int, object]) -> None:
        for sig, old in previous.items():
            signal.signal(sig, old)


def start_daemon(config: SentinelConfig, config_path: Path | None = None) -> int:
    """
    Launch the foreground loop as a detached background process.

    Returns:
        Process exit status (1 if a live sentinel is already recorded)
    """
    pid_file = PidFile(config.pid_path)
    old_pid = pid_file.read()
    if old_pid is not None and pid_alive(old_pid):
        logger.warning(f"Sentinel already running (PID {old_pid})")
        print(f"Sentinel already running (PID {old_pid})")
        return 1
    if pid_file.exists():
        logger.info(f"Removing stale PID file ({old_pid})")
        pid_file.remove()

    for directory in (config.pid_path.parent, config.log_path.parent, config.incident_path):
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(f"Could not create {directory}: {e}")

    command = [sys.executable, "-m", "bloat_sentinel", "start"]
    if config_path is not None:
        command += ["--config", str(config_path)]

    with open(config.log_path, "ab") as log:
        proc = subprocess.Popen(
            command,
            stdin=subprocess.DEVNULL,
            stdout=log,
            stderr=subprocess.STDOUT,
            start_new_session=True,
        )
    pid_file.write(proc.pid)
    logger.info(f"Sentinel daemon launched (PID {proc.pid})")

    print(f"{SENTINEL_BANNER} started (PID {proc.pid})")
    print(f"Log: {config.log_path}")
    print(f"Interventions: {config.incident_path}")
    return 0


def stop_daemon(config: SentinelConfig, supervisor: ProcessSupervisor | None = None) -> int:
    """Terminate a recorded live sentinel; clean up stale PID files."""
    supervisor = supervisor or PosixProcessSupervisor()
    pid_file = PidFile(config.pid_path)
    pid = pid_file.read()

    if pid is None:
        if pid_file.exists():
            pid_file.remove()
        logger.info("Sentinel not running")
        print("Sentinel not running")
        return 0

    if supervisor.is_alive(pid):
        supervisor.terminate(pid)
        pid_file.remove()
        logger.info(f"Sentinel stopped (was PID {pid})")
        print(f"Sentinel stopped (was PID {pid})")
    else:
        pid_file.remove()
        logger.warning(f"Sentinel not running (stale PID {pid} removed)")
        print("Sentinel not running (stale PID removed)")
    return 0


__all__ = ["PidFile", "Sentinel", "SentinelStopped", "start_daemon", "stop_daemon"]
