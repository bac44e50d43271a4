"""
Sliding-window growth tracking for session transcripts.

Each session keeps an ordered list of (timestamp, size_kb) samples covering
the trailing window. Growth is measured from the oldest retained sample to
the newest one. History lives in memory only; a restarted sentinel needs a
fresh window before layer 2 can fire again.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SizeSample:
    """One observation of a session file's size."""

    timestamp: float
    size_kb: int


class GrowthTracker:
    """
    Per-session size history bounded to a trailing time window.

    Keyed by session basename. Timestamps are supplied by the caller so tests
    can drive the tracker with a synthetic clock.
    """

    def __init__(self, window_seconds: float):
        self.window_seconds = window_seconds
        self._history: dict[str, list[SizeSample]] = {}

    def observe(self, session_id: str, size_kb: int, timestamp: float) -> tuple[int, float] | None:
        """
        Record a sample and measure growth over the window.

        Args:
            session_id: Session basename
            size_kb: Current file size in KB
            timestamp: Observation time in seconds

        Returns:
            (growth_kb, elapsed_s) against the oldest retained sample, or None
            if no earlier sample is inside the window
        """
        samples = self._history.get(session_id, [])
        samples.append(SizeSample(timestamp, size_kb))

        cutoff = timestamp - self.window_seconds
        retained = [s for s in samples if s.timestamp >= cutoff]
        self._history[session_id] = retained

        oldest = retained[0]
        if oldest.timestamp >= timestamp:
            return None

        return size_kb - oldest.size_kb, timestamp - oldest.timestamp

    def history(self, session_id: str) -> list[SizeSample]:
        """Retained samples for a session, oldest first."""
        return list(self._history.get(session_id, []))

    def clear(self, session_id: str) -> None:
        """Forget a session's history (after it has been reset)."""
        self._history.pop(session_id, None)

    def __contains__(self, session_id: object) -> bool:
        return bool(self._history.get(session_id))  # type: ignore[arg-type]

    def __len__(self) -> int:
        return len(self._history)


__all__ = ["GrowthTracker", "SizeSample"]
