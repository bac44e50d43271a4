"""
Shared fixtures for sentinel tests.

Provides a tmp-path configuration, a fake process supervisor and helpers
for writing session transcripts.
"""

import json
import logging
import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from bloat_sentinel.config import SentinelConfig
from bloat_sentinel.sentinel_log import LOGGER_NAME


def injection_block(depth: int = 1) -> str:
    """One recovered-context block as the agent's memory plugin injects it."""
    return f"[INJECTION-DEPTH:{depth}] ## Recovered Conversation Context\nEarlier turns follow.\n"


class FakeSupervisor:
    """In-memory ProcessSupervisor; every call is recorded in ``calls``."""

    def __init__(self, gateway_pid: int | None = 4242, pattern: str = "openclaw-gateway"):
        self.pattern = pattern
        self.procs: dict[int, str] = {}
        if gateway_pid is not None:
            self.procs[gateway_pid] = pattern
        self.stops_on_term = True
        self.relaunch_ok = True
        self.next_pid = 5000
        self.calls: list[tuple] = []

    def find_by_pattern(self, pattern: str) -> int | None:
        for pid, name in self.procs.items():
            if pattern in name:
                return pid
        return None

    def is_alive(self, pid: int) -> bool:
        return pid in self.procs

    def terminate(self, pid: int) -> bool:
        self.calls.append(("terminate", pid))
        if pid not in self.procs:
            return False
        if self.stops_on_term:
            del self.procs[pid]
        return True

    def force_kill(self, pid: int) -> bool:
        self.calls.append(("force_kill", pid))
        return self.procs.pop(pid, None) is not None

    def launch(self, command: list[str], cwd: Path, log_path: Path) -> int:
        self.calls.append(("launch", tuple(command), cwd, log_path))
        pid = self.next_pid
        self.next_pid += 1
        if self.relaunch_ok:
            self.procs[pid] = self.pattern
        return pid

    def actions(self) -> list[str]:
        return [call[0] for call in self.calls]


@pytest.fixture(autouse=True)
def package_logger():
    """Undo setup_logging(): drop its handlers and re-enable propagation for caplog."""
    logger = logging.getLogger(LOGGER_NAME)
    level = logger.level
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(level)


@pytest.fixture
def config(tmp_path: Path) -> SentinelConfig:
    """SentinelConfig with every path under tmp_path and no settle delay."""
    sessions = tmp_path / "sessions"
    sessions.mkdir()
    return SentinelConfig(
        sessions_dir=str(sessions),
        incident_dir=str(tmp_path / "intervention_logs"),
        archive_root=str(tmp_path / "archives" / "bloated"),
        pid_file=str(tmp_path / "octo" / "sentinel.pid"),
        log_file=str(tmp_path / "octo" / "logs" / "bloat-sentinel.log"),
        gateway_cwd=str(tmp_path),
        gateway_log=str(tmp_path / "gateway.log"),
        gateway_settle_seconds=0,
    )


@pytest.fixture
def fake_supervisor() -> FakeSupervisor:
    return FakeSupervisor()


@pytest.fixture
def block():
    return injection_block


@pytest.fixture
def write_session():
    """
    Write a transcript: a session_start record, then one record per message.

    Messages are strings (user text) or dicts (written verbatim).
    """

    def _write(path: Path, messages: list, padding: int = 0) -> Path:
        lines = [json.dumps({"type": "session_start", "timestamp": "2026-10-19T09:00:00Z"})]
        for message in messages:
            if isinstance(message, dict):
                lines.append(json.dumps(message))
            else:
                lines.append(json.dumps({
                    "type": "message",
                    "message": {"role": "user", "content": [{"type": "text", "text": message}]},
                }))
        if padding:
            lines.append(json.dumps({
                "type": "message",
                "message": {"role": "assistant", "content": "x" * padding},
            }))
        path.write_text("\n".join(lines) + "\n")
        return path

    return _write
