"""
Session transcript reader.

Reads the append-only JSONL transcripts the agent keeps at:
$OPENCLAW_HOME/agents/main/sessions/{session_id}.jsonl

Each line is one JSON record. Key record types:
- "session_start": first line of a fresh session
- "message": a user or assistant message; role/content live under
  ``message`` (``{"type": "message", "message": {"role": ..., "content": ...}}``),
  older writers put them at the top level

The agent appends to these files while we read them, so a trailing partial
line is normal and is skipped like any other unparseable line.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path
from typing import Any

SESSION_INDEX_NAME = "sessions.json"


def content_to_text(content: Any) -> str:
    """
    Flatten message content for scanning.

    Strings pass through unchanged; block lists and other structures are
    rendered as compact JSON so markers inside nested blocks stay visible.
    """
    if isinstance(content, str):
        return content
    if content is None:
        return ""
    return json.dumps(content, separators=(",", ":"), ensure_ascii=False)


def _role_and_content(record: dict[str, Any]) -> tuple[Any, Any]:
    message = record.get("message")
    if isinstance(message, dict):
        return message.get("role"), message.get("content")
    return record.get("role"), record.get("content")


def iter_records(path: str | Path) -> Iterator[dict[str, Any]]:
    """
    Yield every parseable JSON object in a transcript.

    Missing files yield nothing. Blank, partial and non-object lines are skipped.
    """
    path = Path(path)
    try:
        f = open(path, encoding="utf-8", errors="replace")
    except (FileNotFoundError, IsADirectoryError, PermissionError):
        return

    with f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError:
                continue
            if isinstance(record, dict):
                yield record


def iter_user_messages(path: str | Path) -> Iterator[str]:
    """Yield the flattened text of every user message in the transcript."""
    for record in iter_records(path):
        if record.get("type") != "message":
            continue
        role, content = _role_and_content(record)
        if role == "user":
            yield content_to_text(content)


def count_lines(path: str | Path) -> int:
    """Number of lines in a file (0 if missing)."""
    try:
        with open(path, "rb") as f:
            return sum(1 for _ in f)
    except OSError:
        return 0


def list_session_files(sessions_dir: str | Path) -> list[Path]:
    """Transcript files in a sessions directory, sorted by name."""
    sessions_dir = Path(sessions_dir)
    if not sessions_dir.is_dir():
        return []
    return sorted(
        p for p in sessions_dir.glob("*.jsonl")
        if p.is_file() and p.name != SESSION_INDEX_NAME
    )


__all__ = [
    "SESSION_INDEX_NAME",
    "content_to_text",
    "count_lines",
    "iter_records",
    "iter_user_messages",
    "list_session_files",
]
