"""Status report: daemon state, thresholds, recent incidents, live session table."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from .classifier import status_tag
from .config import SentinelConfig
from .daemon import PidFile
from .incident import SENTINEL_BANNER, list_recent_incidents
from .marker_scanner import scan_session
from .sentinel_log import RESET
from .supervisor import pid_alive
from .transcript_reader import list_session_files

GREEN = "\033[0;32m"
YELLOW = "\033[1;33m"
RED = "\033[0;31m"


@dataclass
class SessionRow:
    """One line of the live session table."""

    name: str
    size_kb: int
    max_nested: int
    total_blocks: int
    tag: str

    @property
    def alarm(self) -> bool:
        return self.tag.endswith("!")


def daemon_state(config: SentinelConfig) -> tuple[str, int | None]:
    """Returns ("RUNNING" | "DEAD" | "NOT RUNNING", pid)."""
    pid_file = PidFile(config.pid_path)
    if not pid_file.exists():
        return "NOT RUNNING", None
    pid = pid_file.read()
    if pid is not None and pid_alive(pid):
        return "RUNNING", pid
    return "DEAD", pid


def session_rows(config: SentinelConfig) -> list[SessionRow]:
    rows = []
    for path in list_session_files(config.sessions_path):
        try:
            size_kb = path.stat().st_size // 1024
        except OSError:
            continue
        scan = scan_session(path)
        rows.append(
            SessionRow(
                name=path.name,
                size_kb=size_kb,
                max_nested=scan.max_single_message_blocks,
                total_blocks=scan.total_blocks,
                tag=status_tag(config, size_kb, scan),
            )
        )
    return rows


def _paint(text: str, color: str, use_color: bool) -> str:
    return f"{color}{text}{RESET}" if use_color else text


def _describe_incident(path: Path) -> str:
    stat = path.stat()
    modified = datetime.fromtimestamp(stat.st_mtime).strftime("%Y-%m-%d %H:%M:%S")
    return f"{modified}  {stat.st_size:>6}B  {path.name}"


def render_status(config: SentinelConfig, use_color: bool = False) -> str:
    """Build the full status report."""
    lines = [f"=== {SENTINEL_BANNER} Status ===", ""]

    state, pid = daemon_state(config)
    if state == "RUNNING":
        lines.append(f"Status: {_paint('RUNNING', GREEN, use_color)} (PID {pid})")
    elif state == "DEAD":
        lines.append(f"Status: {_paint('DEAD', RED, use_color)} (stale PID {pid})")
    else:
        lines.append(f"Status: {_paint('NOT RUNNING', YELLOW, use_color)}")

    lines += ["", "Detection Layers:"]
    lines += [f"  {line}" for line in config.describe_layers()]

    lines += ["", "Recent interventions:"]
    if config.incident_path.is_dir():
        reports = list_recent_incidents(config.incident_path, config.recent_incidents)
        if reports:
            lines += [f"  {_describe_incident(p)}" for p in reports]
        else:
            lines.append("  (none)")
    else:
        lines.append("  (no intervention log directory)")

    lines += ["", "Current sessions:"]
    rows = session_rows(config)
    if not rows:
        lines.append("  (none)")
    for row in rows:
        if row.alarm:
            color = RED
        elif row.tag == "OK":
            color = GREEN
        else:
            color = YELLOW
        lines.append(
            f"  {row.name:<45} {row.size_kb:>6}KB  nested:{row.max_nested} total:{row.total_blocks}  "
            + _paint(row.tag, color, use_color)
        )

    return "\n".join(lines)


__all__ = ["SessionRow", "daemon_state", "render_status", "session_rows"]
