"""Claude Code PostToolUse hook: skill invocation tracker.

Appends each Skill tool invocation to the session's ephemeral log for
aggregation at session end. Runs async and never blocks skill execution.

Usage (in .claude/settings.json):
    {
      "hooks": {
        "PostToolUse": [{
          "matcher": "Skill",
          "hooks": [{
            "type": "command",
            "command": "python -m runewatch.hooks.skill_tracker"
          }]
        }]
      }
    }
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

from runewatch.hooks.common import TOOL_INPUT_ENV, parse_stdin, setup
from runewatch.metrics.invocations import InvocationLogger

logger = logging.getLogger(__name__)


def resolve_tool_input(hook_data: dict[str, Any] | None) -> dict[str, Any] | str:
    """Tool input from the hook payload, else from CLAUDE_TOOL_INPUT."""
    if hook_data:
        tool_input = hook_data.get("tool_input")
        if isinstance(tool_input, (dict, str)) and tool_input:
            return tool_input
    return os.environ.get(TOOL_INPUT_ENV, "")


def main() -> int:
    """Main entry point.

    Returns:
        Always 0; metrics are best-effort.
    """
    try:
        hook_data = parse_stdin()
        _, context = setup(hook_data)
        InvocationLogger(context).record_invocation(resolve_tool_input(hook_data))
    except Exception as e:
        logger.warning("skill-tracker hook failed: %s", e)
    return 0


if __name__ == "__main__":
    sys.exit(main())
