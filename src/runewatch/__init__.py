"""Runewatch - Session telemetry hooks for AI coding agents.

Runewatch counts tool calls to warn about context pressure, logs skill
invocations, and rolls each session into durable metrics under .rune/metrics/.
"""

__version__ = "0.1.0"
__author__ = "Rune Team"

from runewatch.config import Config, ContextWatchConfig, MetricsConfig
from runewatch.session import SessionContext, derive_session_key
from runewatch.store import FileStateStore, MemoryStateStore, ReadStatus, StateStore

__all__ = [
    "Config",
    "ContextWatchConfig",
    "MetricsConfig",
    "SessionContext",
    "derive_session_key",
    "FileStateStore",
    "MemoryStateStore",
    "ReadStatus",
    "StateStore",
]
