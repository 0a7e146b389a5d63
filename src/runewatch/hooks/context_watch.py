"""Claude Code PreToolUse hook: context pressure watch.

Counts high-cost tool calls and prints an advisory when the session is
likely running out of context.

Usage (in .claude/settings.json):
    {
      "hooks": {
        "PreToolUse": [{
          "matcher": "Edit|Write",
          "hooks": [{
            "type": "command",
            "command": "python -m runewatch.hooks.context_watch"
          }]
        }]
      }
    }
"""

from __future__ import annotations

import logging
import os
import sys

from runewatch.hooks.common import TOOL_NAME_ENV, parse_stdin, setup
from runewatch.metrics.counter import PressureCounter

logger = logging.getLogger(__name__)


def main() -> int:
    """Main entry point.

    Returns:
        Always 0; the hook must never block the tool call.
    """
    try:
        hook_data = parse_stdin()
        tool_name = (hook_data or {}).get("tool_name") or os.environ.get(
            TOOL_NAME_ENV, "unknown"
        )

        config, context = setup(hook_data)
        counter = PressureCounter(context, config.context_watch, out=sys.stdout)
        counter.record_event(str(tool_name))
    except Exception as e:
        logger.warning("context-watch hook failed: %s", e)
    return 0


if __name__ == "__main__":
    sys.exit(main())
