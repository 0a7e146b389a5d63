"""Shared plumbing for the runewatch hooks.

Claude Code passes hook data as JSON on stdin. Older hook runners export
CLAUDE_TOOL_NAME / CLAUDE_TOOL_INPUT instead, so both are accepted.
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from typing import Any

from runewatch.config import Config
from runewatch.logs import configure_logging
from runewatch.session import SessionContext

TOOL_NAME_ENV = "CLAUDE_TOOL_NAME"
TOOL_INPUT_ENV = "CLAUDE_TOOL_INPUT"


def parse_stdin() -> dict[str, Any] | None:
    """Read and parse JSON from stdin.

    Returns:
        Parsed JSON dict, or None if input is empty/invalid.
    """
    try:
        if sys.stdin is None or sys.stdin.isatty():
            return None
        data = sys.stdin.read()
        if not data.strip():
            return None
        parsed = json.loads(data)
    except (json.JSONDecodeError, OSError, ValueError):
        return None
    return parsed if isinstance(parsed, dict) else None


def resolve_cwd(hook_data: dict[str, Any] | None) -> Path:
    """Working directory from the hook payload, else the process cwd."""
    if hook_data:
        cwd = hook_data.get("cwd")
        if isinstance(cwd, str) and cwd:
            return Path(cwd)
    return Path(os.getcwd())


def setup(hook_data: dict[str, Any] | None) -> tuple[Config, SessionContext]:
    """Load config, configure logging and build the session context."""
    cwd = resolve_cwd(hook_data)
    config = Config.load_or_default(cwd=cwd)
    configure_logging(config.logging)
    return config, SessionContext.from_cwd(cwd, config)
