"""Claude Code SessionStart hook: retire the previous session's counter.

The context-watch counter outlives the session that wrote it (the Stop hook
only reads it), so a new session starts by clearing it. This resets the tool
call count and the session start time. Resumed sessions keep their counter.
"""

from __future__ import annotations

import logging
import sys

from runewatch.hooks.common import parse_stdin, setup
from runewatch.metrics.counter import PressureCounter

logger = logging.getLogger(__name__)

# SessionStart sources that continue the previous conversation
KEEP_COUNTER_SOURCES = frozenset({"resume"})


def main() -> int:
    """Main entry point."""
    try:
        hook_data = parse_stdin()
        if (hook_data or {}).get("source") in KEEP_COUNTER_SOURCES:
            return 0
        config, context = setup(hook_data)
        PressureCounter(context, config.context_watch).reset()
    except Exception as e:
        logger.warning("session-start hook failed: %s", e)
    return 0


if __name__ == "__main__":
    sys.exit(main())
