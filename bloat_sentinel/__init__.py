"""OCTO Bloat Sentinel: context-bloat detection for agent session transcripts.

Watches the append-only JSONL transcripts of the OpenClaw agent, classifies
each session against four layered heuristics and, on a positive verdict,
archives and resets the session and restarts the gateway.

Layers:
- 1: nested injection blocks in a single message (definitive)
- 2: rapid growth with injection markers (strong)
- 3: oversized session with multiple markers (moderate)
- 4: many markers in total (monitor only)
"""

__version__ = "3.0.0"

from .classifier import DetectionLayer, LayeredClassifier, Verdict
from .config import ConfigError, SentinelConfig
from .daemon import PidFile, Sentinel, start_daemon, stop_daemon
from .growth_tracker import GrowthTracker
from .incident import IncidentRecord, IncidentStats
from .intervention import InterventionError, InterventionExecutor, InterventionResult
from .marker_scanner import SessionScan, count_injection_blocks, scan_session
from .supervisor import PosixProcessSupervisor, ProcessSupervisor
from .transcript_reader import iter_user_messages

__all__ = [
    # Detection
    "DetectionLayer",
    "LayeredClassifier",
    "Verdict",
    "GrowthTracker",
    "SessionScan",
    "count_injection_blocks",
    "scan_session",
    "iter_user_messages",
    # Intervention
    "InterventionError",
    "InterventionExecutor",
    "InterventionResult",
    "IncidentRecord",
    "IncidentStats",
    "PosixProcessSupervisor",
    "ProcessSupervisor",
    # Daemon & config
    "PidFile",
    "Sentinel",
    "start_daemon",
    "stop_daemon",
    "ConfigError",
    "SentinelConfig",
]
