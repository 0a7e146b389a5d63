"""Tests for the skill invocation logger."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from runewatch.metrics.invocations import (
    UNKNOWN_SKILL,
    InvocationEntry,
    InvocationLogger,
    parse_skill_name,
    strip_namespace,
)
from runewatch.session import SessionContext
from runewatch.store import FileStateStore, MemoryStateStore

NOW = datetime(2026, 1, 5, 10, 30, 0, tzinfo=timezone.utc)


class FailingStore(MemoryStateStore):
    """Store whose appends always fail."""

    def append_line(self, name, line):
        raise OSError("disk full")


def make_context(ephemeral=None) -> SessionContext:
    return SessionContext(
        cwd=Path("/work/project"),
        key="0123456789abcdef",
        ephemeral=ephemeral if ephemeral is not None else MemoryStateStore(),
        durable=MemoryStateStore(),
    )


def logged_entries(context: SessionContext) -> list[dict]:
    return [json.loads(line) for line in context.ephemeral.read_lines(context.invocations_name)]


class TestParseSkillName:
    """Tests for parse_skill_name."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ({"skill": "rune:cook"}, "cook"),
            ({"skill": "cook"}, "cook"),
            ({"name": "rune:plan"}, "plan"),
            ({"skill": "cook", "name": "plan"}, "cook"),
            ('{"skill": "rune:cook"}', "cook"),
            ('{"name": "review"}', "review"),
            ("rune:debug the failing test", "debug"),
            ("scout", "scout"),
            ("other:review", "review"),
            ("  Deploy-now please", "Deploy-now"),
        ],
    )
    def test_resolves(self, raw, expected):
        """Test structured and free-text inputs."""
        assert parse_skill_name(raw) == expected

    @pytest.mark.parametrize(
        "raw",
        [None, "", "{}", '{"args": "x"}', '"rune:cook"', "123 456", "!!!", {"skill": 42}, {}],
    )
    def test_unresolvable(self, raw):
        """Test inputs without a skill name resolve to the sentinel."""
        assert parse_skill_name(raw) == UNKNOWN_SKILL

    def test_strip_namespace(self):
        """Test only one leading qualifier is removed."""
        assert strip_namespace("rune:cook") == "cook"
        assert strip_namespace("cook") == "cook"
        assert strip_namespace("a:b:c") == "b:c"


class TestInvocationEntry:
    """Tests for InvocationEntry."""

    def test_to_json(self):
        """Test the on-disk record shape."""
        entry = InvocationEntry(ts=NOW.isoformat(), skill="cook")
        assert json.loads(entry.to_json()) == {
            "ts": NOW.isoformat(),
            "skill": "cook",
            "event": "invoke",
        }

    def test_from_dict_round_trip(self):
        """Test from_dict inverts to_dict."""
        entry = InvocationEntry(ts=NOW.isoformat(), skill="plan")
        assert InvocationEntry.from_dict(entry.to_dict()) == entry

    def test_from_dict_without_skill(self):
        """Test records without a skill are rejected."""
        assert InvocationEntry.from_dict({"ts": "x"}) is None
        assert InvocationEntry.from_dict({"skill": ""}) is None


class TestInvocationLogger:
    """Tests for InvocationLogger.record_invocation."""

    def test_logs_namespaced_skill(self):
        """Test {"skill": "rune:cook"} is logged as "cook"."""
        context = make_context()
        entry = InvocationLogger(context, clock=lambda: NOW).record_invocation(
            {"skill": "rune:cook"}
        )

        assert entry is not None
        assert logged_entries(context) == [
            {"ts": NOW.isoformat(), "skill": "cook", "event": "invoke"}
        ]

    def test_unknown_dropped(self):
        """Test unresolvable input appends nothing."""
        context = make_context()
        logger = InvocationLogger(context)

        assert logger.record_invocation("{}") is None
        assert logger.record_invocation("") is None
        assert logger.record_invocation({"skill": "unknown"}) is None
        assert not context.ephemeral.exists(context.invocations_name)

    def test_preserves_order(self):
        """Test entries are appended in invocation order, repeats included."""
        context = make_context()
        logger = InvocationLogger(context)
        for skill in ["plan", "cook", "rune:test", "cook"]:
            logger.record_invocation({"skill": skill})

        assert [e["skill"] for e in logged_entries(context)] == [
            "plan",
            "cook",
            "test",
            "cook",
        ]

    def test_append_failure_swallowed(self):
        """Test filesystem errors never reach the caller."""
        logger = InvocationLogger(make_context(FailingStore()))
        assert logger.record_invocation({"skill": "cook"}) is None

    def test_file_backed_lines(self, tmp_path):
        """Test each entry is its own line in the JSONL file."""
        context = SessionContext(
            cwd=tmp_path,
            key="feedface00000000",
            ephemeral=FileStateStore(tmp_path / "tmp"),
            durable=FileStateStore(tmp_path / "metrics"),
        )
        logger = InvocationLogger(context)
        logger.record_invocation('{"skill": "rune:cook"}')
        logger.record_invocation("rune:plan")

        lines = (tmp_path / "tmp" / context.invocations_name).read_text().splitlines()
        assert [json.loads(line)["skill"] for line in lines] == ["cook", "plan"]
