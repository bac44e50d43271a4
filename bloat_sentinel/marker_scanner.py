"""
Injection block scanner.

An injection block is a ``[INJECTION-DEPTH:...]`` tag followed, within 200
characters, by the phrase ``Recovered Conversation Context``. Legitimate
conversation never nests one of these inside a single user message, so the
per-message maximum is the strongest feedback-loop signal we have.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from .transcript_reader import iter_user_messages

MAX_MARKER_GAP = 200
MARKER_PHRASE = "Recovered Conversation Context"

# Lazy gap so two adjacent blocks count as two matches, not one long one
INJECTION_BLOCK_PATTERN = re.compile(
    r"\[INJECTION-DEPTH:[^\]]*\].{0,%d}?%s" % (MAX_MARKER_GAP, re.escape(MARKER_PHRASE)),
    re.DOTALL,
)


def count_injection_blocks(text: str) -> int:
    """Count non-overlapping injection blocks in a piece of text."""
    if not text:
        return 0
    return sum(1 for _ in INJECTION_BLOCK_PATTERN.finditer(text))


@dataclass(frozen=True)
class SessionScan:
    """Marker aggregates over all user messages of one session."""

    max_single_message_blocks: int = 0
    total_blocks: int = 0
    user_messages: int = 0


def scan_messages(messages) -> SessionScan:
    max_blocks = 0
    total = 0
    count = 0
    for text in messages:
        blocks = count_injection_blocks(text)
        max_blocks = max(max_blocks, blocks)
        total += blocks
        count += 1
    return SessionScan(max_single_message_blocks=max_blocks, total_blocks=total, user_messages=count)


def scan_session(path: str | Path) -> SessionScan:
    """Scan a transcript file; a missing file scans as empty."""
    return scan_messages(iter_user_messages(path))


__all__ = [
    "INJECTION_BLOCK_PATTERN",
    "MARKER_PHRASE",
    "SessionScan",
    "count_injection_blocks",
    "scan_messages",
    "scan_session",
]
