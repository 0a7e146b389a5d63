"""Context pressure counter for runewatch.

Counts tool invocations per session and emits advisories when the count
suggests the conversation context is filling up. Runs as a PreToolUse hook
on high-cost tools (Edit/Write), so it must stay cheap and must never fail
the tool call it observes.

Usage:
    python -m runewatch hook context-watch

Hook Configuration (.claude/settings.json):
    "PreToolUse": [{
      "matcher": "Edit|Write",
      "hooks": [{"type": "command", "command": "python -m runewatch hook context-watch"}]
    }]
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, TextIO

from runewatch.config import ContextWatchConfig
from runewatch.session import SessionContext
from runewatch.store import ReadStatus

logger = logging.getLogger(__name__)

WARNING = "warning"
CRITICAL = "critical"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CounterState:
    """Ephemeral per-session counter.

    Serialized with camelCase keys (count, lastWarning, sessionStart,
    toolCounts) so the file stays readable by other hook implementations.

    Attributes:
        count: Total tool invocations observed this session.
        last_warning: Count at which the last advisory fired (0 if none).
        session_start: ISO timestamp of the first observation.
        tool_counts: Invocations per tool kind.
    """

    count: int = 0
    last_warning: int = 0
    session_start: str | None = None
    tool_counts: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "lastWarning": self.last_warning,
            "sessionStart": self.session_start,
            "toolCounts": dict(self.tool_counts),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CounterState:
        """Build state from a parsed counter file.

        Raises:
            ValueError: If the document is not a counter object.
        """
        if not isinstance(data, dict):
            raise ValueError("counter state must be a JSON object")

        count = data.get("count", 0)
        last_warning = data.get("lastWarning", 0)
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            raise ValueError(f"invalid count: {count!r}")
        if isinstance(last_warning, bool) or not isinstance(last_warning, int):
            raise ValueError(f"invalid lastWarning: {last_warning!r}")

        # Older files may lack toolCounts
        tool_counts = data.get("toolCounts") or {}
        if not isinstance(tool_counts, dict):
            tool_counts = {}

        session_start = data.get("sessionStart")
        return cls(
            count=count,
            last_warning=min(max(last_warning, 0), count),
            session_start=session_start if isinstance(session_start, str) else None,
            tool_counts={
                str(k): v
                for k, v in tool_counts.items()
                if isinstance(v, int) and not isinstance(v, bool) and v >= 0
            },
        )


@dataclass
class Advisory:
    """A non-blocking context pressure message."""

    level: str
    count: int

    @property
    def lines(self) -> list[str]:
        if self.level == CRITICAL:
            return [
                f"[Rune context-watch] {self.count} tool calls, context likely RED (>85%).",
                "  RECOMMENDED: Invoke rune:context-engine for state save + /compact.",
                "  Risk: auto-compaction may lose critical decisions without state save.",
            ]
        return [
            f"[Rune context-watch] {self.count} tool calls, context filling up.",
            "  Consider invoking rune:context-engine at the next logical boundary.",
            "  Or run /compact manually if at a good stopping point.",
        ]

    @property
    def text(self) -> str:
        return "\n" + "\n".join(self.lines) + "\n"


def evaluate_thresholds(state: CounterState, config: ContextWatchConfig) -> str | None:
    """Decide which advisory level (if any) the current count warrants."""
    since_last = state.count - state.last_warning
    if since_last < config.repeat_interval:
        return None
    if state.count >= config.critical_threshold:
        return CRITICAL
    if state.count >= config.first_warning:
        return WARNING
    return None


class PressureCounter:
    """Counts tool calls for a session and raises context advisories."""

    def __init__(
        self,
        context: SessionContext,
        config: ContextWatchConfig | None = None,
        out: TextIO | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize the counter.

        Args:
            context: Session whose counter state is used.
            config: Advisory thresholds. Defaults to 40/20/80.
            out: Stream advisories are written to. None disables output.
            clock: Source of the current time.
        """
        self.context = context
        self.config = config or ContextWatchConfig()
        self.out = out
        self.clock = clock
        self.last_load_status: ReadStatus | None = None

    def load(self) -> CounterState:
        """Load the counter state, defaulting on missing or corrupt data."""
        result = self.context.ephemeral.read_json(self.context.counter_name)
        self.last_load_status = result.status

        state = None
        if result.ok:
            try:
                state = CounterState.from_dict(result.value)
            except ValueError as e:
                logger.debug("Resetting corrupt counter state: %s", e)
                self.last_load_status = ReadStatus.CORRUPT
        elif result.status is ReadStatus.CORRUPT:
            logger.debug("Resetting unreadable counter state: %s", result.error)

        if state is None:
            state = CounterState()
        if not state.session_start:
            state.session_start = self.clock().isoformat()
        return state

    def save(self, state: CounterState) -> bool:
        """Persist the counter state. Returns False if the write failed."""
        try:
            self.context.ephemeral.write_json(self.context.counter_name, state.to_dict())
            return True
        except OSError as e:
            # Counter resets on the next run
            logger.debug("Could not persist counter state: %s", e)
            return False

    def record_event(self, tool_kind: str) -> Advisory | None:
        """Record one tool invocation.

        Args:
            tool_kind: Name of the tool being invoked (Edit, Write, ...).

        Returns:
            The advisory emitted for this call, or None.
        """
        try:
            state = self.load()
            state.count += 1
            state.tool_counts[tool_kind] = state.tool_counts.get(tool_kind, 0) + 1

            advisory = None
            level = evaluate_thresholds(state, self.config)
            if level is not None:
                advisory = Advisory(level=level, count=state.count)
                state.last_warning = state.count

            self.save(state)
        except Exception as e:
            logger.warning("context-watch failed: %s", e)
            return None

        if advisory is not None and self.out is not None:
            try:
                self.out.write(advisory.text)
                self.out.flush()
            except (OSError, ValueError):
                pass
        return advisory

    def reset(self) -> bool:
        """Retire this session's counter state (called at session start)."""
        try:
            return self.context.ephemeral.delete(self.context.counter_name)
        except OSError as e:
            logger.debug("Could not remove counter state: %s", e)
            return False
