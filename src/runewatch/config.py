"""Configuration parsing for runewatch.

Parses .rune/config.toml files for context-watch thresholds, metrics
storage settings and hook behaviour.
"""

from __future__ import annotations

import os
import tempfile
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

# Environment overrides for storage locations
STATE_DIR_ENV = "RUNE_STATE_DIR"
METRICS_DIR_ENV = "RUNE_METRICS_DIR"


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    """Return a config table, rejecting non-table values."""
    value = data.get(name, {})
    if not isinstance(value, dict):
        raise ValueError(f"[{name}] must be a table, got {type(value).__name__}")
    return value


def _positive_int(section: str, key: str, value: Any) -> int:
    """Validate that a config value is a positive integer."""
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(
            f"[{section}] '{key}' must be a positive integer, got {value!r}"
        )
    return value


@dataclass
class ContextWatchConfig:
    """Thresholds for context pressure advisories.

    Attributes:
        first_warning: Tool call count at which the first warning fires.
        repeat_interval: Minimum calls between two advisories.
        critical_threshold: Tool call count at which advisories turn critical.
    """

    first_warning: int = 40
    repeat_interval: int = 20
    critical_threshold: int = 80

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ContextWatchConfig:
        """Create a ContextWatchConfig from a dictionary.

        Raises:
            ValueError: If a threshold is not a positive integer or the
                warning threshold exceeds the critical one.
        """
        config = cls(
            first_warning=_positive_int(
                "context_watch", "first_warning", data.get("first_warning", 40)
            ),
            repeat_interval=_positive_int(
                "context_watch", "repeat_interval", data.get("repeat_interval", 20)
            ),
            critical_threshold=_positive_int(
                "context_watch",
                "critical_threshold",
                data.get("critical_threshold", 80),
            ),
        )
        if config.first_warning > config.critical_threshold:
            raise ValueError(
                "[context_watch] 'first_warning' must not exceed 'critical_threshold'"
            )
        return config


@dataclass
class MetricsConfig:
    """Configuration for durable metrics storage."""

    dir: str = ".rune/metrics"  # relative paths resolve against the session cwd
    history_cap: int = 100

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MetricsConfig:
        """Create a MetricsConfig from a dictionary."""
        metrics_dir = data.get("dir", ".rune/metrics")
        if not isinstance(metrics_dir, str) or not metrics_dir:
            raise ValueError("[metrics] 'dir' must be a non-empty string")
        return cls(
            dir=metrics_dir,
            history_cap=_positive_int(
                "metrics", "history_cap", data.get("history_cap", 100)
            ),
        )


@dataclass
class SessionEndConfig:
    """Configuration for the session-end hook."""

    checklist: bool = True


@dataclass
class LoggingConfig:
    """Configuration for hook logging."""

    file: str | None = None  # no log file unless configured
    level: str = "WARNING"


@dataclass
class Config:
    """Main configuration container."""

    version: str = "1"
    context_watch: ContextWatchConfig = field(default_factory=ContextWatchConfig)
    metrics: MetricsConfig = field(default_factory=MetricsConfig)
    session_end: SessionEndConfig = field(default_factory=SessionEndConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    config_path: Path | None = None

    @classmethod
    def load(cls, path: Path | None = None, cwd: Path | None = None) -> Config:
        """Load configuration from a file.

        Args:
            path: Path to config file. If None, searches for .rune/config.toml
                  in the working directory and its parents.
            cwd: Directory to start the search from. Defaults to Path.cwd().

        Returns:
            Loaded configuration.

        Raises:
            FileNotFoundError: If no config file found.
            ValueError: If config file is invalid.
        """
        if path is None:
            path = cls._find_config(cwd)

        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, "rb") as f:
            try:
                data = tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                raise ValueError(f"Invalid TOML in {path}: {e}") from e

        return cls._from_dict(data, path)

    @classmethod
    def load_or_default(cls, path: Path | None = None, cwd: Path | None = None) -> Config:
        """Load configuration or return default if missing or invalid.

        Hooks must never fail because of a bad config file, so invalid
        files fall back to defaults as well.
        """
        try:
            return cls.load(path, cwd)
        except (FileNotFoundError, ValueError, OSError):
            return cls()

    @classmethod
    def _find_config(cls, cwd: Path | None = None) -> Path:
        """Find config file by searching the directory and its parents."""
        start = cwd if cwd is not None else Path.cwd()
        for parent in [start, *start.parents]:
            config_path = parent / ".rune" / "config.toml"
            if config_path.exists():
                return config_path

        # Return expected path even if it doesn't exist
        return start / ".rune" / "config.toml"

    @classmethod
    def _from_dict(cls, data: dict[str, Any], path: Path) -> Config:
        """Create a Config from a dictionary."""
        rune_section = _section(data, "rune")
        version = str(rune_section.get("version", "1"))

        context_watch = ContextWatchConfig.from_dict(_section(data, "context_watch"))
        metrics = MetricsConfig.from_dict(_section(data, "metrics"))

        session_end_data = _section(data, "session_end")
        session_end = SessionEndConfig(
            checklist=bool(session_end_data.get("checklist", True)),
        )

        logging_data = _section(data, "logging")
        logging_config = LoggingConfig(
            file=logging_data.get("file"),
            level=str(logging_data.get("level", "WARNING")).upper(),
        )

        return cls(
            version=version,
            context_watch=context_watch,
            metrics=metrics,
            session_end=session_end,
            logging=logging_config,
            config_path=path,
        )

    def state_dir(self) -> Path:
        """Directory for ephemeral per-session state."""
        override = os.environ.get(STATE_DIR_ENV)
        if override:
            return Path(override)
        return Path(tempfile.gettempdir())

    def metrics_dir(self, cwd: Path) -> Path:
        """Directory for durable metrics, resolved against the session cwd."""
        override = os.environ.get(METRICS_DIR_ENV)
        metrics_dir = Path(override) if override else Path(self.metrics.dir).expanduser()
        if not metrics_dir.is_absolute():
            metrics_dir = cwd / metrics_dir
        return metrics_dir

    def get_value(self, key_path: str) -> Any:
        """Get a configuration value by dot-separated path.

        Args:
            key_path: Dot-separated path to value (e.g. "context_watch.first_warning").

        Returns:
            The configuration value.

        Raises:
            KeyError: If path is invalid.
        """
        parts = key_path.split(".")
        current: Any = self
        for part in parts:
            if hasattr(current, part) and not part.startswith("_"):
                current = getattr(current, part)
            elif isinstance(current, dict) and part in current:
                current = current[part]
            else:
                raise KeyError(f"Invalid config path: {key_path}")
        return current
