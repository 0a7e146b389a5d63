"""Skill invocation logger for runewatch.

Runs as a PostToolUse hook on the Skill tool and appends one JSONL entry per
invocation to the session's ephemeral log. The session-end aggregator
consumes the log.

Usage:
    python -m runewatch hook skill-tracker
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from runewatch.session import SessionContext
from runewatch.store import to_jsonl

logger = logging.getLogger(__name__)

UNKNOWN_SKILL = "unknown"
INVOKE_EVENT = "invoke"

# First word-like token, optionally namespaced ("rune:cook" -> "cook")
_SKILL_TOKEN_RE = re.compile(r"(?:[a-z][\w-]*:)?([a-z][\w-]*)", re.IGNORECASE)
_NAMESPACE_RE = re.compile(r"^[\w-]+:")


@dataclass
class InvocationEntry:
    """One skill invocation, as stored in the ephemeral log."""

    ts: str
    skill: str
    event: str = INVOKE_EVENT

    def to_dict(self) -> dict[str, Any]:
        return {"ts": self.ts, "skill": self.skill, "event": self.event}

    def to_json(self) -> str:
        return to_jsonl(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InvocationEntry | None:
        """Rebuild an entry from a log record, or None if it has no skill."""
        skill = data.get("skill")
        if not isinstance(skill, str) or not skill:
            return None
        return cls(
            ts=str(data.get("ts", "")),
            skill=skill,
            event=str(data.get("event", INVOKE_EVENT)),
        )


def strip_namespace(name: str) -> str:
    """Remove a leading "scope:" qualifier from a skill name."""
    return _NAMESPACE_RE.sub("", name.strip(), count=1)


def parse_skill_name(raw_tool_input: dict[str, Any] | str | None) -> str:
    """Resolve the skill name from a Skill tool input.

    Structured input (a dict, or text that parses as JSON) is read from its
    "skill" or "name" field. Other text falls back to the first word-like
    token, which is a heuristic and may misattribute free-form input.

    Args:
        raw_tool_input: Tool input as a dict or raw text.

    Returns:
        The normalized skill name, or "unknown" if none could be resolved.
    """
    if raw_tool_input is None:
        return UNKNOWN_SKILL

    parsed: Any
    if isinstance(raw_tool_input, dict):
        parsed = raw_tool_input
    else:
        try:
            parsed = json.loads(raw_tool_input)
        except (json.JSONDecodeError, TypeError):
            match = _SKILL_TOKEN_RE.search(str(raw_tool_input))
            return match.group(1) if match else UNKNOWN_SKILL

    if not isinstance(parsed, dict):
        return UNKNOWN_SKILL

    raw = parsed.get("skill") or parsed.get("name") or ""
    if not isinstance(raw, str):
        return UNKNOWN_SKILL
    name = strip_namespace(raw)
    return name or UNKNOWN_SKILL


class InvocationLogger:
    """Appends skill invocations to the session's ephemeral log."""

    def __init__(
        self,
        context: SessionContext,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.context = context
        self.clock = clock

    def record_invocation(
        self, raw_tool_input: dict[str, Any] | str | None
    ) -> InvocationEntry | None:
        """Log one skill invocation.

        Invocations whose skill cannot be resolved are dropped.

        Returns:
            The entry appended, or None if nothing was logged.
        """
        try:
            skill = parse_skill_name(raw_tool_input)
        except Exception as e:
            logger.debug("Could not parse skill input: %s", e)
            return None

        if not skill or skill == UNKNOWN_SKILL:
            return None

        entry = InvocationEntry(ts=self.clock().isoformat(), skill=skill)
        try:
            self.context.ephemeral.append_line(
                self.context.invocations_name, entry.to_json()
            )
        except OSError as e:
            # Metrics are best-effort
            logger.debug("Could not append invocation: %s", e)
            return None
        return entry
