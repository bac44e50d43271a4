"""
Intervention executor.

Runs once per positive classification, in a fixed order:

1. Snapshot the session into the incident directory
2. Write the incident record (stats from the snapshot, i.e. pre-reset)
3. Archive the session into the dated bloated-sessions directory
4. Reset the session file to a single session_start record
5. Restart the gateway (SIGTERM, wait, SIGKILL, relaunch, verify)
6. Clear the session's growth history

Steps 1-3 must succeed before the file is reset. A failed step is logged at
ALERT and returned in the result. A stop signal is not caught here: the
executor keeps ``in_flight`` and ``step`` set so the exit log can name the
unfinished step.
"""

from __future__ import annotations

import json
import logging
import shutil
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from .config import SentinelConfig
from .growth_tracker import GrowthTracker
from .incident import IncidentRecord, IncidentStats, human_size
from .marker_scanner import scan_session
from .sentinel_log import ALERT
from .supervisor import ProcessSupervisor
from .transcript_reader import count_lines

logger = logging.getLogger(__name__)


class InterventionError(Exception):
    """An intervention step failed."""

    def __init__(self, step: str, message: str):
        super().__init__(f"{step}: {message}")
        self.step = step


@dataclass
class InterventionResult:
    """What an intervention actually managed to do."""

    session: str
    layer: str
    reason: str
    snapshot_path: Path | None = None
    incident_path: Path | None = None
    archive_path: Path | None = None
    reset: bool = False
    gateway_restarted: bool | None = None  # None: restart not attempted
    error: str | None = None

    @property
    def completed(self) -> bool:
        return self.reset and bool(self.gateway_restarted) and self.error is None


def session_start_record(now: datetime) -> str:
    """A minimal valid first line for a fresh transcript."""
    stamp = now.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    return json.dumps({"type": "session_start", "timestamp": stamp}, separators=(",", ":")) + "\n"


class InterventionExecutor:
    """
    Archive, reset and restart for a bloated session.

    Args:
        config: Paths and gateway settings
        supervisor: Process control for the gateway
        tracker: Growth history to clear after the reset
        clock: Returns the current local datetime
        sleep: Blocking sleep, injectable for tests
    """

    def __init__(
        self,
        config: SentinelConfig,
        supervisor: ProcessSupervisor,
        tracker: GrowthTracker,
        clock: Callable[[], datetime] = datetime.now,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self.supervisor = supervisor
        self.tracker = tracker
        self.clock = clock
        self.sleep = sleep
        self.in_flight: str | None = None
        self.step: str | None = None

    def intervene(self, session_file: Path, layer_id: str, reason: str) -> InterventionResult:
        session_file = Path(session_file)
        basename = session_file.name
        result = InterventionResult(session=basename, layer=layer_id, reason=reason)

        logger.log(ALERT, f"LAYER {layer_id} INTERVENTION: {reason}", extra={"session": basename, "layer": layer_id})
        self.in_flight = basename
        # A stop signal unwinds past this block and leaves in_flight/step set for the exit log
        try:
            now = self.clock()
            try:
                self.step = "snapshot"
                result.snapshot_path = self._snapshot(session_file, now)
                self.step = "incident record"
                result.incident_path = self._write_incident(
                    session_file, result.snapshot_path, self._archive_target(session_file, now), layer_id, reason, now
                )
                self.step = "archive"
                result.archive_path = self._archive(session_file, now)
                self.step = "reset"
                self._reset(session_file, now)
            except InterventionError as e:
                result.error = str(e)
                logger.log(ALERT, f"Intervention on {basename} aborted at {e}")
                self._finish()
                return result
            result.reset = True

            self.step = "gateway restart"
            result.gateway_restarted = self.restart_gateway()
            self.tracker.clear(basename)
        except Exception:
            self._finish()
            raise
        self._finish()
        return result

    def _finish(self) -> None:
        self.in_flight = None
        self.step = None

    def _archive_target(self, session_file: Path, now: datetime) -> Path:
        archive_dir = self.config.archive_path / now.strftime("%Y-%m-%d")
        return archive_dir / f"{session_file.stem}.{now.strftime('%H%M%S')}{session_file.suffix}"

    def _snapshot(self, session_file: Path, now: datetime) -> Path:
        incident_dir = self.config.incident_path
        snapshot = incident_dir / f"{now.strftime('%Y%m%d-%H%M%S')}-{session_file.name}"
        try:
            incident_dir.mkdir(parents=True, exist_ok=True)
            shutil.copy2(session_file, snapshot)
        except OSError as e:
            raise InterventionError("snapshot", str(e)) from e
        return snapshot

    def _write_incident(
        self,
        session_file: Path,
        snapshot: Path,
        archive: Path,
        layer_id: str,
        reason: str,
        now: datetime,
    ) -> Path:
        try:
            size_bytes = snapshot.stat().st_size
            scan = scan_session(snapshot)
            record = IncidentRecord(
                timestamp=now.astimezone(),
                layer=layer_id,
                reason=reason,
                session=session_file.name,
                snapshot_name=snapshot.name,
                snapshot_path=str(snapshot),
                archive_path=str(archive),
                stats=IncidentStats(
                    size_bytes=size_bytes,
                    size_human=human_size(size_bytes),
                    line_count=count_lines(snapshot),
                    max_nested_blocks=scan.max_single_message_blocks,
                    total_blocks=scan.total_blocks,
                ),
            )
            report = record.write(self.config.incident_path)
        except OSError as e:
            raise InterventionError("incident record", str(e)) from e
        logger.info(f"Intervention log: {report}")
        return report

    def _archive(self, session_file: Path, now: datetime) -> Path:
        archive = self._archive_target(session_file, now)
        try:
            archive.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(session_file, archive)
        except OSError as e:
            raise InterventionError("archive", str(e)) from e
        logger.info(f"Session archived to {archive}")
        return archive

    def _reset(self, session_file: Path, now: datetime) -> None:
        try:
            with open(session_file, "w") as f:
                f.write(session_start_record(now))
        except OSError as e:
            raise InterventionError("reset", str(e)) from e
        logger.info("Session file reset")

    def restart_gateway(self) -> bool:
        """
        Restart the gateway: graceful stop, forced stop, relaunch, verify.

        Returns:
            True if a gateway process is running afterwards
        """
        cfg = self.config
        supervisor = self.supervisor
        logger.info("Restarting gateway...")

        pid = supervisor.find_by_pattern(cfg.gateway_pattern)
        if pid is not None:
            logger.info(f"Sending SIGTERM to gateway (PID {pid})")
            supervisor.terminate(pid)

            waited = 0.0
            while waited < cfg.gateway_stop_timeout and supervisor.is_alive(pid):
                self.sleep(1)
                waited += 1

            if supervisor.is_alive(pid):
                logger.warning("Gateway didn't stop gracefully, forcing...")
                supervisor.force_kill(pid)
                self.sleep(1)

        try:
            new_pid = supervisor.launch(
                list(cfg.gateway_command),
                Path(cfg.gateway_cwd).expanduser(),
                Path(cfg.gateway_log).expanduser(),
            )
        except OSError as e:
            logger.log(ALERT, f"Gateway failed to launch: {e}")
            return False
        logger.info(f"Gateway launch issued (PID {new_pid})")

        self.sleep(cfg.gateway_settle_seconds)
        if supervisor.find_by_pattern(cfg.gateway_pattern) is not None:
            logger.info("Gateway restarted - intervention complete")
            return True

        logger.log(ALERT, "Gateway failed to restart!")
        return False


__all__ = [
    "InterventionError",
    "InterventionExecutor",
    "InterventionResult",
    "session_start_record",
]
