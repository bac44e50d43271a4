"""Unit tests for incident records."""

import json
import os
from datetime import datetime

import pytest
from pydantic import ValidationError

from bloat_sentinel.incident import (
    IncidentRecord,
    IncidentStats,
    human_size,
    list_recent_incidents,
    load_incident,
)


@pytest.fixture
def record():
    return IncidentRecord(
        timestamp=datetime(2026, 10, 19, 14, 30, 5),
        layer="1 (Nested Blocks)",
        reason="Single message has 2 injection blocks (feedback loop detected)",
        session="abc.jsonl",
        snapshot_name="20261019-143005-abc.jsonl",
        snapshot_path="/logs/20261019-143005-abc.jsonl",
        archive_path="/archives/2026-10-19/abc.143005.jsonl",
        stats=IncidentStats(size_bytes=2048, size_human="2.0K", line_count=50, max_nested_blocks=2, total_blocks=3),
    )


class TestHumanSize:
    @pytest.mark.parametrize(
        "size, expected",
        [
            (0, "0B"),
            (512, "512B"),
            (2048, "2.0K"),
            (15 * 1024 * 1024, "15M"),
            (3 * 1024**3, "3.0G"),
        ],
    )
    def test_formats(self, size, expected):
        assert human_size(size) == expected


class TestIncidentRecord:
    """Tests for IncidentRecord rendering and persistence."""

    def test_stamp(self, record):
        assert record.stamp == "20261019-143005"

    def test_is_frozen(self, record):
        with pytest.raises(ValidationError):
            record.layer = "2 (Rapid Growth)"

    def test_rejects_unknown_fields(self):
        with pytest.raises(ValidationError):
            IncidentRecord(
                timestamp=datetime.now(),
                layer="1",
                reason="r",
                session="s",
                snapshot_name="n",
                snapshot_path="p",
                severity="high",
            )

    def test_markdown_report(self, record):
        report = record.to_markdown()
        assert report.startswith("# Bloat Sentinel Intervention")
        assert "**Detection Layer:** 1 (Nested Blocks)" in report
        assert "**Session:** abc.jsonl" in report
        assert "- **Lines:** 50" in report
        assert "- **Max nested blocks:** 2" in report
        assert "Original session preserved at: /logs/20261019-143005-abc.jsonl" in report
        assert "Session archived to: /archives/2026-10-19/abc.143005.jsonl" in report

    def test_write_both_files(self, record, tmp_path):
        report = record.write(tmp_path / "incidents")

        assert report == tmp_path / "incidents" / "intervention-20261019-143005.md"
        data = json.loads(report.with_suffix(".json").read_text())
        assert data["session"] == "abc.jsonl"
        assert data["stats"]["max_nested_blocks"] == 2

    def test_same_second_incidents_do_not_overwrite(self, record, tmp_path):
        first = record.write(tmp_path)
        second = record.model_copy(update={"session": "other.jsonl"}).write(tmp_path)

        assert first != second
        assert second.name == "intervention-20261019-143005-1.md"
        assert load_incident(first.with_suffix(".json")).session == "abc.jsonl"
        assert load_incident(second.with_suffix(".json")).session == "other.jsonl"

    def test_load_round_trip(self, record, tmp_path):
        report = record.write(tmp_path)
        assert load_incident(report.with_suffix(".json")) == record


class TestListRecentIncidents:
    def test_missing_directory(self, tmp_path):
        assert list_recent_incidents(tmp_path / "missing") == []

    def test_newest_first_and_limited(self, tmp_path):
        for i in range(7):
            path = tmp_path / f"intervention-2026101{i}-000000.md"
            path.write_text("report")
            os.utime(path, (1_000_000 + i, 1_000_000 + i))
        (tmp_path / "20261019-000000-abc.jsonl").write_text("snapshot")

        recent = list_recent_incidents(tmp_path, limit=5)

        assert [p.name[13:21] for p in recent] == ["20261016", "20261015", "20261014", "20261013", "20261012"]
