"""
Layered bloat classification.

Four layers, evaluated in order for every session on every poll:

- Layer 1 (definitive): a single user message holds more than one injection block
- Layer 2 (strong): rapid growth over the trailing window, with markers present
- Layer 3 (moderate): oversized file with multiple markers
- Layer 4 (monitor): many markers in total; logged, never acted on

The first positive actionable layer triggers exactly one intervention and
skips the remaining actionable layers. Layer 4 always runs afterwards.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from .config import SentinelConfig
from .growth_tracker import GrowthTracker
from .marker_scanner import SessionScan, scan_session
from .sentinel_log import MONITOR
from .transcript_reader import SESSION_INDEX_NAME

if TYPE_CHECKING:
    from .intervention import InterventionResult

logger = logging.getLogger(__name__)


class DetectionLayer(Enum):
    """Detection layers, in evaluation order."""

    NESTED_BLOCKS = 1  # definitive
    RAPID_GROWTH = 2  # strong
    SIZE_AND_MARKERS = 3  # moderate
    TOTAL_MARKERS = 4  # monitor only

    @property
    def actionable(self) -> bool:
        return self is not DetectionLayer.TOTAL_MARKERS


class Executor(Protocol):
    def intervene(self, session_file: Path, layer_id: str, reason: str) -> "InterventionResult": ...


@dataclass
class Verdict:
    """A positive classification for one session in one poll cycle."""

    layer: DetectionLayer
    label: str  # e.g. "1 (Nested Blocks)"
    reason: str
    scan: SessionScan
    size_kb: int
    intervention: "InterventionResult | None" = None


def status_tag(config: SentinelConfig, size_kb: int, scan: SessionScan) -> str:
    """
    Status tag for the live session table.

    Growth needs history, so the table only reflects layers 1, 3 and 4.
    """
    if scan.max_single_message_blocks > config.layer1_nested_blocks:
        return "L1:NESTED!"
    if size_kb > config.layer3_max_size_kb and scan.total_blocks >= config.layer3_min_markers:
        return "L3:SIZE+MARKERS!"
    if scan.total_blocks > config.layer4_total_markers:
        return "L4:monitor"
    return "OK"


class LayeredClassifier:
    """
    Evaluate the detection layers for a session file.

    Stateless across cycles except for the injected growth tracker.
    """

    def __init__(
        self,
        config: SentinelConfig,
        tracker: GrowthTracker,
        executor: Executor,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self.tracker = tracker
        self.executor = executor
        self.clock = clock

    def check_session(self, session_file: str | Path) -> Verdict | None:
        """
        Classify one session and intervene if an actionable layer fires.

        Returns:
            The verdict that triggered an intervention, or None
        """
        path = Path(session_file)
        if path.name == SESSION_INDEX_NAME:
            return None
        try:
            size_kb = path.stat().st_size // 1024
        except OSError:
            # Vanished between listing and checking; try again next poll
            return None
        if not path.is_file():
            return None

        scan = scan_session(path)
        verdict = self.classify(path.name, size_kb, scan)

        if verdict is not None:
            verdict.intervention = self.executor.intervene(path, verdict.label, verdict.reason)

        self._check_total_markers(path.name, scan)
        return verdict

    def classify(self, basename: str, size_kb: int, scan: SessionScan) -> Verdict | None:
        """Run the actionable layers in order; first hit wins."""
        verdict = self._check_nested(scan, size_kb)
        if verdict is None:
            verdict = self._check_growth(basename, size_kb, scan)
        if verdict is None:
            verdict = self._check_size(basename, size_kb, scan)
        return verdict

    def _check_nested(self, scan: SessionScan, size_kb: int) -> Verdict | None:
        max_nested = scan.max_single_message_blocks
        if max_nested > self.config.layer1_nested_blocks:
            return Verdict(
                layer=DetectionLayer.NESTED_BLOCKS,
                label="1 (Nested Blocks)",
                reason=f"Single message has {max_nested} injection blocks - feedback loop confirmed",
                scan=scan,
                size_kb=size_kb,
            )
        return None

    def _check_growth(self, basename: str, size_kb: int, scan: SessionScan) -> Verdict | None:
        cfg = self.config
        growth = self.tracker.observe(basename, size_kb, self.clock())
        if growth is None:
            return None

        growth_kb, elapsed = growth
        if growth_kb <= cfg.layer2_growth_kb:
            return None

        if not cfg.layer2_require_markers:
            return Verdict(
                layer=DetectionLayer.RAPID_GROWTH,
                label="2 (Rapid Growth)",
                reason=f"Session grew {growth_kb}KB in {elapsed:.0f}s",
                scan=scan,
                size_kb=size_kb,
            )

        if scan.total_blocks > 0:
            return Verdict(
                layer=DetectionLayer.RAPID_GROWTH,
                label="2 (Rapid Growth + Markers)",
                reason=f"Session grew {growth_kb}KB in {elapsed:.0f}s with {scan.total_blocks} injection blocks",
                scan=scan,
                size_kb=size_kb,
            )

        logger.log(
            MONITOR,
            f"Layer 2: {basename} grew {growth_kb}KB in {elapsed:.0f}s but has no injection blocks - likely legitimate",
            extra={"session": basename, "layer": 2},
        )
        return None

    def _check_size(self, basename: str, size_kb: int, scan: SessionScan) -> Verdict | None:
        cfg = self.config
        if size_kb <= cfg.layer3_max_size_kb:
            return None

        if scan.total_blocks >= cfg.layer3_min_markers:
            return Verdict(
                layer=DetectionLayer.SIZE_AND_MARKERS,
                label="3 (Size + Multiple Markers)",
                reason=f"Session is {size_kb}KB with {scan.total_blocks} injection blocks",
                scan=scan,
                size_kb=size_kb,
            )

        logger.log(
            MONITOR,
            f"Layer 3: {basename} is {size_kb}KB with only {scan.total_blocks} blocks - legitimate large session",
            extra={"session": basename, "layer": 3},
        )
        return None

    def _check_total_markers(self, basename: str, scan: SessionScan) -> None:
        threshold = self.config.layer4_total_markers
        if scan.total_blocks > threshold:
            logger.log(
                MONITOR,
                f"Layer 4: {basename} has {scan.total_blocks} injection blocks (threshold: {threshold})",
                extra={"session": basename, "layer": 4},
            )


__all__ = [
    "DetectionLayer",
    "LayeredClassifier",
    "Verdict",
    "status_tag",
]
