"""
Incident record models.

Pydantic models for the record written once per intervention. Each incident
produces two files in the incident directory:
- intervention-{YYYYmmdd-HHMMSS}.json  (machine-readable record)
- intervention-{YYYYmmdd-HHMMSS}.md    (operator report)
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field

INCIDENT_PREFIX = "intervention-"
SENTINEL_BANNER = "OCTO Bloat Sentinel v3.0"


def human_size(size_bytes: int) -> str:
    """Format a byte count the way ``du -h`` does (1K, 2.5M, ...)."""
    size = float(size_bytes)
    for unit in ("B", "K", "M", "G"):
        if size < 1024 or unit == "G":
            if unit == "B":
                return f"{int(size)}B"
            return f"{size:.1f}{unit}" if size < 10 else f"{size:.0f}{unit}"
        size /= 1024
    return f"{size_bytes}B"


class IncidentStats(BaseModel):
    """Summary of the session file as it was before the reset."""

    size_bytes: int = 0
    size_human: str = "0B"
    line_count: int = 0
    max_nested_blocks: int = 0
    total_blocks: int = 0


class IncidentRecord(BaseModel):
    """
    Immutable record of one intervention.

    Statistics always describe the pre-reset snapshot.
    """

    timestamp: datetime
    layer: str
    reason: str
    session: str
    snapshot_name: str
    snapshot_path: str
    archive_path: str
    stats: IncidentStats = Field(default_factory=IncidentStats)

    model_config = {
        "frozen": True,
        "extra": "forbid",
    }

    @property
    def stamp(self) -> str:
        return self.timestamp.strftime("%Y%m%d-%H%M%S")

    def to_markdown(self) -> str:
        """Render the operator-facing report."""
        return f"""# Bloat Sentinel Intervention

**Timestamp:** {self.timestamp.isoformat(timespec="seconds")}
**Detection Layer:** {self.layer}
**Reason:** {self.reason}
**Session:** {self.session}
**Session Copy:** {self.snapshot_name}

## Session Analysis

- **File size:** {self.stats.size_human}
- **Lines:** {self.stats.line_count}
- **Max nested blocks:** {self.stats.max_nested_blocks}
- **Total injection blocks:** {self.stats.total_blocks}

## Action Taken

Original session preserved at: {self.snapshot_path}
Session archived to: {self.archive_path}
Session reset in-place
Gateway restart requested

---
*{SENTINEL_BANNER}*
"""

    def write(self, incident_dir: Path) -> Path:
        """
        Write the JSON record and Markdown report.

        Returns:
            Path to the Markdown report
        """
        incident_dir.mkdir(parents=True, exist_ok=True)
        name = f"{INCIDENT_PREFIX}{self.stamp}"
        base = incident_dir / name
        # Several sessions can be reset within the same second
        n = 1
        while base.with_suffix(".json").exists():
            base = incident_dir / f"{name}-{n}"
            n += 1
        base.with_suffix(".json").write_text(self.model_dump_json(indent=2))
        report = base.with_suffix(".md")
        report.write_text(self.to_markdown())
        return report


def load_incident(path: Path) -> IncidentRecord:
    """Load an incident from its JSON record."""
    return IncidentRecord.model_validate_json(path.read_text())


def list_recent_incidents(incident_dir: Path, limit: int = 5) -> list[Path]:
    """Markdown reports in the incident directory, most recent first."""
    if not incident_dir.is_dir():
        return []
    reports = [p for p in incident_dir.glob(f"{INCIDENT_PREFIX}*.md") if p.is_file()]
    reports.sort(key=lambda p: (p.stat().st_mtime, p.name), reverse=True)
    return reports[:limit]


__all__ = [
    "INCIDENT_PREFIX",
    "IncidentRecord",
    "IncidentStats",
    "human_size",
    "list_recent_incidents",
    "load_incident",
]
