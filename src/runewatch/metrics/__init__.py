"""Session telemetry collection and aggregation for runewatch.

Architecture:
    PreToolUse hook (Edit/Write)          PostToolUse hook (Skill)
            |                                     |
            v                                     v
    PressureCounter (counter module)      InvocationLogger (invocations module)
            |                                     |
            v                                     v
    $TMPDIR/rune-context-watch-<key>.json $TMPDIR/rune-metrics-<key>.jsonl
            \\                                   /
             v (Stop hook, once per session)   v
             SessionAggregator (aggregator module)
                            |
                            v
    .rune/metrics/sessions.jsonl, skills.json, chains.jsonl
"""

from runewatch.metrics.counter import Advisory, CounterState, PressureCounter
from runewatch.metrics.invocations import (
    InvocationEntry,
    InvocationLogger,
    parse_skill_name,
)
from runewatch.metrics.aggregator import (
    ChainRecord,
    FlushResult,
    FlushStatus,
    SessionAggregator,
    SessionRecord,
    SkillTotal,
    SkillTotals,
    flush,
)

__all__ = [
    # Context pressure
    "Advisory",
    "CounterState",
    "PressureCounter",
    # Skill invocations
    "InvocationEntry",
    "InvocationLogger",
    "parse_skill_name",
    # Aggregation
    "ChainRecord",
    "FlushResult",
    "FlushStatus",
    "SessionAggregator",
    "SessionRecord",
    "SkillTotal",
    "SkillTotals",
    "flush",
]
