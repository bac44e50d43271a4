"""
Configuration management for the bloat sentinel.

Settings are resolved in priority order:
1. SENTINEL_<FIELD> environment variables (optionally from $OCTO_HOME/.env)
2. JSON config file ($SENTINEL_CONFIG or $OCTO_HOME/sentinel-config.json)
3. Dataclass defaults
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

ENV_PREFIX = "SENTINEL_"


class ConfigError(Exception):
    """A configuration value could not be parsed."""


def _filter_dataclass_fields(data: dict[str, Any], cls: type) -> dict[str, Any]:
    """Filter dict to only include fields that exist in the dataclass."""
    valid_fields = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in valid_fields}


def octo_home() -> Path:
    return Path(os.getenv("OCTO_HOME", str(Path.home() / ".octo"))).expanduser()


def openclaw_home() -> Path:
    return Path(os.getenv("OPENCLAW_HOME", str(Path.home() / ".openclaw"))).expanduser()


def default_config_path() -> Path:
    """Location of the JSON config file when none is given explicitly."""
    env_value = os.getenv("SENTINEL_CONFIG")
    if env_value:
        return Path(env_value).expanduser()
    return octo_home() / "sentinel-config.json"


def _coerce(raw: str, current: Any, name: str) -> Any:
    """Convert an environment string to the type of the field's current value."""
    try:
        if isinstance(current, bool):
            lowered = raw.strip().lower()
            if lowered in ("1", "true", "yes", "on"):
                return True
            if lowered in ("0", "false", "no", "off"):
                return False
            raise ValueError(raw)
        if isinstance(current, int):
            return int(raw)
        if isinstance(current, float):
            return float(raw)
        if isinstance(current, list):
            value = json.loads(raw)
            if not isinstance(value, list):
                raise ValueError(raw)
            return [str(v) for v in value]
    except (ValueError, json.JSONDecodeError) as e:
        raise ConfigError(f"Invalid value for {ENV_PREFIX}{name.upper()}: {raw!r}") from e
    return raw


@dataclass
class SentinelConfig:
    """
    Complete sentinel configuration.

    Paths default relative to OPENCLAW_HOME (agent data) and OCTO_HOME
    (sentinel state). Thresholds drive the four detection layers.
    """

    # Paths
    sessions_dir: str = field(default_factory=lambda: str(openclaw_home() / "agents" / "main" / "sessions"))
    incident_dir: str = field(default_factory=lambda: str(openclaw_home() / "workspace" / "intervention_logs"))
    archive_root: str = field(
        default_factory=lambda: str(openclaw_home() / "workspace" / "session-archives" / "bloated")
    )
    pid_file: str = field(default_factory=lambda: str(octo_home() / "sentinel.pid"))
    log_file: str = field(default_factory=lambda: str(octo_home() / "logs" / "bloat-sentinel.log"))

    # Layer thresholds
    layer1_nested_blocks: int = 1  # >N blocks in a single message
    layer2_growth_kb: int = 1000
    layer2_growth_window: int = 60  # seconds
    layer2_require_markers: bool = True
    layer3_max_size_kb: int = 10240  # 10MB
    layer3_min_markers: int = 2
    layer4_total_markers: int = 10  # monitor only

    # Scheduling
    check_interval: float = 10.0
    idle_backoff_seconds: float = 30.0

    # Gateway process
    gateway_pattern: str = "openclaw-gateway"
    gateway_command: list[str] = field(default_factory=lambda: ["openclaw", "gateway", "start"])
    gateway_cwd: str = field(default_factory=lambda: str(openclaw_home()))
    gateway_log: str = "/tmp/gateway.log"
    gateway_stop_timeout: float = 10.0
    gateway_settle_seconds: float = 3.0

    # Status report
    recent_incidents: int = 5

    @property
    def sessions_path(self) -> Path:
        return Path(self.sessions_dir).expanduser()

    @property
    def incident_path(self) -> Path:
        return Path(self.incident_dir).expanduser()

    @property
    def archive_path(self) -> Path:
        return Path(self.archive_root).expanduser()

    @property
    def pid_path(self) -> Path:
        return Path(self.pid_file).expanduser()

    @property
    def log_path(self) -> Path:
        return Path(self.log_file).expanduser()

    def apply_env(self, environ: dict[str, str] | None = None) -> "SentinelConfig":
        """
        Apply SENTINEL_<FIELD> overrides in place.

        Raises:
            ConfigError: If an override cannot be converted to the field's type
        """
        environ = os.environ if environ is None else environ
        for f in fields(self):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            setattr(self, f.name, _coerce(raw, getattr(self, f.name), f.name))
        return self

    @classmethod
    def load(cls, path: Path | None = None, environ: dict[str, str] | None = None) -> "SentinelConfig":
        """
        Load configuration from defaults, JSON file and environment.

        Args:
            path: Optional config file path. Defaults to default_config_path()
            environ: Environment mapping (defaults to os.environ)

        Returns:
            SentinelConfig with file values and env overrides merged over defaults
        """
        env_file = octo_home() / ".env"
        if environ is None and env_file.exists():
            load_dotenv(env_file)

        if path is None:
            path = default_config_path()

        data: dict[str, Any] = {}
        if path.exists():
            try:
                data = json.loads(path.read_text())
            except (json.JSONDecodeError, OSError):
                # Use defaults on error
                data = {}
            if not isinstance(data, dict):
                data = {}

        config = cls(**_filter_dataclass_fields(data, cls))
        return config.apply_env(environ)

    def save(self, path: Path | None = None) -> None:
        """Save configuration to file."""
        if path is None:
            path = default_config_path()

        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            json.dump(asdict(self), f, indent=2)

    def describe_layers(self) -> list[str]:
        """One human-readable line per detection layer."""
        return [
            f"Layer 1: Nested injection blocks >{self.layer1_nested_blocks} in single message (DEFINITIVE)",
            f"Layer 2: Growth >{self.layer2_growth_kb}KB in {self.layer2_growth_window}s "
            f"(requires markers: {str(self.layer2_require_markers).lower()}) (STRONG)",
            f"Layer 3: Size >{self.layer3_max_size_kb}KB with >={self.layer3_min_markers} blocks (MODERATE)",
            f"Layer 4: Total blocks >{self.layer4_total_markers} (MONITOR ONLY)",
        ]


__all__ = ["ConfigError", "SentinelConfig", "default_config_path", "octo_home", "openclaw_home"]
