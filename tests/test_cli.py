"""Tests for the runewatch command line."""

from __future__ import annotations

import json
import sys
from io import StringIO
from unittest.mock import patch

import pytest

from runewatch import __version__
from runewatch.__main__ import create_parser, main
from runewatch.session import derive_session_key


def run_main(*argv: str) -> int:
    """Run the CLI and return its exit code."""
    with patch.object(sys, "argv", ["runewatch", *argv]):
        with pytest.raises(SystemExit) as exc_info:
            main()
    return exc_info.value.code


class TestParser:
    """Tests for argument parsing."""

    def test_hook_choices(self):
        """Test every hook name is accepted."""
        parser = create_parser()
        for name in ["context-watch", "skill-tracker", "session-start", "session-end"]:
            args = parser.parse_args(["hook", name])
            assert args.command == "hook"
            assert args.hook_name == name

    def test_unknown_hook_rejected(self):
        """Test an unknown hook name is a usage error."""
        with pytest.raises(SystemExit):
            create_parser().parse_args(["hook", "pre-tool-guard"])

    def test_version(self, capsys):
        """Test --version prints the package version."""
        assert run_main("--version") == 0
        assert __version__ in capsys.readouterr().out


class TestCommands:
    """Tests for command handlers."""

    def test_no_command_prints_help(self, capsys):
        """Test running without a command shows help and exits 0."""
        assert run_main() == 0
        assert "usage:" in capsys.readouterr().out

    def test_session_key(self, tmp_path, capsys):
        """Test session-key prints the derived key."""
        assert run_main("session-key", "--cwd", str(tmp_path)) == 0
        assert capsys.readouterr().out.strip() == derive_session_key(tmp_path)

    def test_hook_always_exits_zero(self, tmp_path, monkeypatch):
        """Test the hook command exits 0 even on garbage input."""
        monkeypatch.delenv("CLAUDE_TOOL_INPUT", raising=False)
        monkeypatch.setenv("RUNE_STATE_DIR", str(tmp_path / "state"))
        monkeypatch.chdir(tmp_path)
        with patch("sys.stdin", StringIO("not json")):
            assert run_main("hook", "skill-tracker") == 0

    def test_hook_runs_context_watch(self, tmp_path, monkeypatch):
        """Test the hook command dispatches to the hook module."""
        monkeypatch.setenv("RUNE_STATE_DIR", str(tmp_path / "state"))
        payload = json.dumps({"tool_name": "Edit", "cwd": str(tmp_path)})
        with patch("sys.stdin", StringIO(payload)):
            assert run_main("hook", "context-watch") == 0

        key = derive_session_key(tmp_path)
        state = json.loads((tmp_path / "state" / f"rune-context-watch-{key}.json").read_text())
        assert state["count"] == 1

    def test_config_get(self, tmp_path, monkeypatch, capsys):
        """Test config get prints a value."""
        monkeypatch.chdir(tmp_path)
        assert run_main("config", "get", "context_watch.first_warning") == 0
        assert capsys.readouterr().out.strip() == "40"

    def test_config_get_invalid(self, tmp_path, monkeypatch, capsys):
        """Test config get reports unknown keys."""
        monkeypatch.chdir(tmp_path)
        assert run_main("config", "get", "nope.nope") == 1
        assert "not found" in capsys.readouterr().err

    def test_config_validate_missing(self, tmp_path, monkeypatch, capsys):
        """Test a missing config is not an error."""
        monkeypatch.chdir(tmp_path)
        assert run_main("config", "validate") == 0
        assert "No configuration found" in capsys.readouterr().err

    def test_config_validate_valid(self, tmp_path, monkeypatch, capsys):
        """Test a valid config is summarized."""
        (tmp_path / ".rune").mkdir()
        (tmp_path / ".rune" / "config.toml").write_text("[metrics]\nhistory_cap = 25\n")
        monkeypatch.chdir(tmp_path)

        assert run_main("config", "validate") == 0
        out = capsys.readouterr().out
        assert "Configuration valid" in out
        assert "keep 25 sessions" in out

    def test_config_validate_invalid(self, tmp_path, monkeypatch, capsys):
        """Test an invalid config exits 1."""
        (tmp_path / ".rune").mkdir()
        (tmp_path / ".rune" / "config.toml").write_text("[metrics]\nhistory_cap = 0\n")
        monkeypatch.chdir(tmp_path)

        assert run_main("config", "validate") == 1
        assert "Configuration error" in capsys.readouterr().err

    def test_config_validate_non_table_section(self, tmp_path, monkeypatch, capsys):
        """Test a scalar where a table belongs is reported, not raised."""
        (tmp_path / ".rune").mkdir()
        (tmp_path / ".rune" / "config.toml").write_text('logging = "debug"\n')
        monkeypatch.chdir(tmp_path)

        assert run_main("config", "validate") == 1
        assert "[logging] must be a table" in capsys.readouterr().err
