"""Claude Code Stop hook: flush session metrics and show a checklist.

1. Flushes the session's telemetry into .rune/metrics/.
2. Prints a self-review checklist before the session closes.

Usage (in .claude/settings.json):
    {
      "hooks": {
        "Stop": [{
          "hooks": [{
            "type": "command",
            "command": "python -m runewatch.hooks.session_end"
          }]
        }]
      }
    }
"""

from __future__ import annotations

import logging
import sys

from runewatch.hooks.common import parse_stdin, setup
from runewatch.metrics.aggregator import SessionAggregator

logger = logging.getLogger(__name__)

CHECKLIST = """
+-----------------------------------------------------+
|  Rune Session End - Verification Checklist          |
+-----------------------------------------------------+
|  Before closing this session, confirm:              |
|                                                     |
|  [ ] All TodoWrite tasks marked complete?           |
|  [ ] Tests ran and passing?                         |
|  [ ] No hardcoded secrets introduced?               |
|  [ ] If schema changed: migration + rollback exist? |
|  [ ] Verification ran (lint + types + build)?       |
|                                                     |
|  If any item is unclear, address it now.            |
+-----------------------------------------------------+
"""


def main() -> int:
    """Main entry point.

    Returns:
        Always 0; telemetry must never block session shutdown.
    """
    show_checklist = True
    try:
        hook_data = parse_stdin()
        config, context = setup(hook_data)
        show_checklist = config.session_end.checklist

        aggregator = SessionAggregator(context, history_cap=config.metrics.history_cap)
        result = aggregator.flush()
        if result.summary_lines:
            print()
            for line in result.summary_lines:
                print(line)
            print()
    except Exception as e:
        logger.warning("session-end hook failed: %s", e)

    if show_checklist:
        try:
            print(CHECKLIST)
        except OSError:
            pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
