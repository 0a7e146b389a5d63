"""Session context shared by the telemetry components.

A session is identified by the working directory it runs in. The directory
is fingerprinted once into a SessionKey, which namespaces the ephemeral
state files so unrelated sessions never collide.
"""

from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from runewatch.store import FileStateStore, StateStore

if TYPE_CHECKING:
    from runewatch.config import Config

SESSION_KEY_LENGTH = 16

COUNTER_FILE_TEMPLATE = "rune-context-watch-{key}.json"
INVOCATIONS_FILE_TEMPLATE = "rune-metrics-{key}.jsonl"


def derive_session_key(cwd: str | os.PathLike[str]) -> str:
    """Derive a short, filesystem-safe key from a working directory.

    The key is a truncated SHA-256 of the absolute path. It is stable for
    a given path and only used to name files, not to protect them.

    Args:
        cwd: The working directory path.

    Returns:
        A 16-character lowercase hex string.
    """
    absolute = os.path.abspath(os.fspath(cwd))
    digest = hashlib.sha256(absolute.encode("utf-8", "surrogateescape")).hexdigest()
    return digest[:SESSION_KEY_LENGTH]


@dataclass(frozen=True)
class SessionContext:
    """Everything a component needs to locate a session's state.

    Attributes:
        cwd: The session's working directory.
        key: SessionKey derived from cwd.
        ephemeral: Store for per-session state (counter, invocation log).
        durable: Store for the project's accumulated metrics.
    """

    cwd: Path
    key: str
    ephemeral: StateStore
    durable: StateStore

    @property
    def counter_name(self) -> str:
        return COUNTER_FILE_TEMPLATE.format(key=self.key)

    @property
    def invocations_name(self) -> str:
        return INVOCATIONS_FILE_TEMPLATE.format(key=self.key)

    @classmethod
    def from_cwd(cls, cwd: Path | str | None, config: Config) -> SessionContext:
        """Build a file-backed context for a working directory.

        Args:
            cwd: Working directory. Defaults to the process cwd.
            config: Loaded configuration (for storage locations).
        """
        cwd_path = Path(cwd) if cwd else Path.cwd()
        cwd_path = Path(os.path.abspath(cwd_path))
        return cls(
            cwd=cwd_path,
            key=derive_session_key(cwd_path),
            ephemeral=FileStateStore(config.state_dir()),
            durable=FileStateStore(config.metrics_dir(cwd_path)),
        )
