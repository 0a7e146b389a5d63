"""Session-end metrics aggregation for runewatch.

Rolls a session's ephemeral data (the context-watch counter and the skill
invocation log) into the project's durable metrics:

    .rune/metrics/sessions.jsonl   one SessionRecord per session, capped
    .rune/metrics/skills.json      running per-skill totals
    .rune/metrics/chains.jsonl     ordered skill chain per session

Usage:
    from runewatch.metrics import aggregator

    result = aggregator.flush(context)
    for line in result.summary_lines:
        print(line)
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

from runewatch.metrics.counter import CounterState
from runewatch.metrics.invocations import InvocationEntry
from runewatch.session import SessionContext
from runewatch.store import ReadStatus, parse_jsonl, to_jsonl

logger = logging.getLogger(__name__)

SESSIONS_FILE = "sessions.jsonl"
SKILLS_FILE = "skills.json"
CHAINS_FILE = "chains.jsonl"

DEFAULT_HISTORY_CAP = 100
SKILLS_VERSION = 1
NO_PRIMARY_SKILL = "none"


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO timestamp (accepting a trailing Z), or None."""
    if not value:
        return None
    try:
        ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, TypeError, AttributeError):
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def make_session_id(now: datetime) -> str:
    """Build a session id like s-20260105-103000 from the flush time."""
    return now.strftime("s-%Y%m%d-%H%M%S")


@dataclass
class SessionRecord:
    """Summary of one completed session.

    Attributes:
        id: Session id derived from the flush timestamp.
        date: Flush date (YYYY-MM-DD).
        duration_min: Minutes between session start and flush.
        tool_calls: Tool invocations counted by context-watch.
        tool_distribution: Invocations per tool kind.
        skill_invocations: Number of skill invocations logged.
        skills_used: Distinct skills, in first-use order.
        primary_skill: Most invoked skill, or "none".
    """

    id: str
    date: str
    duration_min: int = 0
    tool_calls: int = 0
    tool_distribution: dict[str, int] = field(default_factory=dict)
    skill_invocations: int = 0
    skills_used: list[str] = field(default_factory=list)
    primary_skill: str = NO_PRIMARY_SKILL

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date,
            "duration_min": self.duration_min,
            "tool_calls": self.tool_calls,
            "tool_distribution": dict(self.tool_distribution),
            "skill_invocations": self.skill_invocations,
            "skills_used": list(self.skills_used),
            "primary_skill": self.primary_skill,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SessionRecord:
        return cls(
            id=data["id"],
            date=data["date"],
            duration_min=data.get("duration_min", 0),
            tool_calls=data.get("tool_calls", 0),
            tool_distribution=dict(data.get("tool_distribution", {})),
            skill_invocations=data.get("skill_invocations", 0),
            skills_used=list(data.get("skills_used", [])),
            primary_skill=data.get("primary_skill", NO_PRIMARY_SKILL),
        )


@dataclass
class ChainRecord:
    """The ordered skills invoked during one session."""

    session: str
    chain: list[str] = field(default_factory=list)

    @property
    def depth(self) -> int:
        return len(self.chain)

    def to_dict(self) -> dict[str, Any]:
        return {"session": self.session, "chain": list(self.chain), "depth": self.depth}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChainRecord:
        return cls(session=data["session"], chain=list(data.get("chain", [])))


@dataclass
class SkillTotal:
    """Running totals for one skill."""

    total_invocations: int = 0
    last_used: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"total_invocations": self.total_invocations, "last_used": self.last_used}


@dataclass
class SkillTotals:
    """The durable skills.json table."""

    updated: str | None = None
    skills: dict[str, SkillTotal] = field(default_factory=dict)
    version: int = SKILLS_VERSION

    def merge(self, counts: dict[str, int], now: datetime) -> None:
        """Add one session's skill counts to the running totals."""
        today = now.date().isoformat()
        for skill, count in counts.items():
            total = self.skills.setdefault(skill, SkillTotal())
            total.total_invocations += count
            total.last_used = today
        self.updated = now.isoformat()

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "updated": self.updated,
            "skills": {name: total.to_dict() for name, total in self.skills.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SkillTotals:
        """Rebuild the table, skipping entries that are not well formed.

        Raises:
            ValueError: If the document is not a skills table at all.
        """
        if not isinstance(data, dict) or not isinstance(data.get("skills", {}), dict):
            raise ValueError("skills table must be an object with a 'skills' object")

        result = cls(
            updated=data.get("updated"),
            version=data.get("version", SKILLS_VERSION),
        )
        for name, entry in data.get("skills", {}).items():
            if not isinstance(entry, dict):
                continue
            total = entry.get("total_invocations", 0)
            if isinstance(total, bool) or not isinstance(total, int):
                total = 0
            result.skills[name] = SkillTotal(
                total_invocations=total,
                last_used=entry.get("last_used"),
            )
        return result


class FlushStatus(Enum):
    """Outcome of a session flush."""

    FLUSHED = "flushed"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass
class FlushResult:
    """What a flush did, for reporting and tests."""

    status: FlushStatus
    session: SessionRecord | None = None
    chain: ChainRecord | None = None
    skill_counts: dict[str, int] = field(default_factory=dict)
    log_removed: bool = False
    location: str = ".rune/metrics/"
    error: str | None = None

    @property
    def summary_lines(self) -> list[str]:
        """Human-readable report of a successful flush."""
        if self.status is not FlushStatus.FLUSHED or self.session is None:
            return []

        record = self.session
        lines = [
            f"[Rune metrics] Session {record.id}: {record.duration_min}min, "
            f"{record.tool_calls} tool calls, {record.skill_invocations} skill invocations"
        ]
        ranked = sorted(self.skill_counts.items(), key=lambda item: item[1], reverse=True)
        if ranked:
            skill_list = ", ".join(f"{skill}({count})" for skill, count in ranked)
            lines.append(f"   Skills: {skill_list}")
        lines.append(f"   Saved to {self.location}")
        return lines


class SessionAggregator:
    """Merges a session's ephemeral telemetry into the durable stores."""

    def __init__(
        self,
        context: SessionContext,
        history_cap: int = DEFAULT_HISTORY_CAP,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        """Initialize the aggregator.

        Args:
            context: Session whose ephemeral data is flushed.
            history_cap: Maximum number of records kept in sessions.jsonl.
            clock: Source of the flush time.
        """
        self.context = context
        self.history_cap = history_cap
        self.clock = clock

    def flush(self) -> FlushResult:
        """Flush the session. Never raises; failures lose this session's metrics."""
        try:
            return self._flush()
        except Exception as e:
            logger.warning("Metrics flush failed for session %s: %s", self.context.key, e)
            return FlushResult(status=FlushStatus.FAILED, error=str(e))

    def _flush(self) -> FlushResult:
        entries = self.load_invocations()
        state = self.load_counter()

        # Nothing to flush if no data
        if not entries and state.count == 0:
            return FlushResult(status=FlushStatus.EMPTY)

        now = self.clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        started = parse_timestamp(state.session_start) or now
        # Half minutes round up
        duration_min = math.floor((now - started).total_seconds() / 60 + 0.5)

        # Skill usage and chain, in invocation order
        skill_counts: dict[str, int] = {}
        skill_chain: list[str] = []
        for entry in entries:
            skill_counts[entry.skill] = skill_counts.get(entry.skill, 0) + 1
            skill_chain.append(entry.skill)

        # max() keeps the first key on ties
        primary_skill = (
            max(skill_counts, key=lambda s: skill_counts[s])
            if skill_counts
            else NO_PRIMARY_SKILL
        )

        session_id = make_session_id(now)
        record = SessionRecord(
            id=session_id,
            date=now.date().isoformat(),
            duration_min=duration_min,
            tool_calls=state.count,
            tool_distribution=dict(state.tool_counts),
            skill_invocations=len(entries),
            skills_used=list(skill_counts),
            primary_skill=primary_skill,
        )

        self.append_session(record)
        self.merge_skill_totals(skill_counts, now)

        chain = None
        if skill_chain:
            chain = ChainRecord(session=session_id, chain=skill_chain)
            self.context.durable.append_line(CHAINS_FILE, to_jsonl(chain.to_dict()))

        log_removed = self._remove_invocation_log()

        result = FlushResult(
            status=FlushStatus.FLUSHED,
            session=record,
            chain=chain,
            skill_counts=skill_counts,
            log_removed=log_removed,
        )
        root = getattr(self.context.durable, "root", None)
        if root is not None:
            result.location = f"{root}/"
        return result

    def load_invocations(self) -> list[InvocationEntry]:
        """Read this session's invocation log ([] if missing)."""
        try:
            lines = self.context.ephemeral.read_lines(self.context.invocations_name)
        except OSError as e:
            logger.debug("Could not read invocation log: %s", e)
            return []

        entries = []
        for data in parse_jsonl(lines):
            entry = InvocationEntry.from_dict(data)
            if entry is not None:
                entries.append(entry)
        return entries

    def load_counter(self) -> CounterState:
        """Read the context-watch state (zero state if missing or corrupt)."""
        result = self.context.ephemeral.read_json(self.context.counter_name)
        if result.status is not ReadStatus.OK:
            return CounterState()
        try:
            return CounterState.from_dict(result.value)
        except ValueError:
            return CounterState()

    def append_session(self, record: SessionRecord) -> None:
        """Append a session record and evict the oldest beyond the cap."""
        durable = self.context.durable
        durable.append_line(SESSIONS_FILE, to_jsonl(record.to_dict()))

        try:
            lines = durable.read_lines(SESSIONS_FILE)
            if len(lines) > self.history_cap:
                durable.rewrite_lines(SESSIONS_FILE, lines[-self.history_cap:])
        except OSError as e:
            # Cap is best-effort
            logger.debug("Could not rotate session history: %s", e)

    def load_skill_totals(self) -> SkillTotals:
        """Read skills.json, starting fresh if missing or corrupt."""
        result = self.context.durable.read_json(SKILLS_FILE)
        if result.status is not ReadStatus.OK:
            if result.status is ReadStatus.CORRUPT:
                logger.debug("Starting fresh skills table: %s", result.error)
            return SkillTotals()
        try:
            return SkillTotals.from_dict(result.value)
        except ValueError as e:
            logger.debug("Starting fresh skills table: %s", e)
            return SkillTotals()

    def merge_skill_totals(self, skill_counts: dict[str, int], now: datetime) -> SkillTotals:
        """Add this session's counts to skills.json and rewrite it."""
        totals = self.load_skill_totals()
        totals.merge(skill_counts, now)
        self.context.durable.write_json(SKILLS_FILE, totals.to_dict(), indent=2)
        return totals

    def _remove_invocation_log(self) -> bool:
        # The counter file is retired by the session-start hook, not here
        try:
            return self.context.ephemeral.delete(self.context.invocations_name)
        except OSError as e:
            logger.debug("Could not remove invocation log: %s", e)
            return False


def flush(
    context: SessionContext,
    history_cap: int = DEFAULT_HISTORY_CAP,
) -> FlushResult:
    """Convenience function to flush a session.

    Args:
        context: Session to flush.
        history_cap: Maximum number of records kept in sessions.jsonl.

    Returns:
        FlushResult describing what was written.
    """
    aggregator = SessionAggregator(context, history_cap=history_cap)
    return aggregator.flush()
