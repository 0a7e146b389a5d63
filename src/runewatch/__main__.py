"""CLI entry point for runewatch.

Usage:
    python -m runewatch <command> [options]

Commands:
    hook context-watch      PreToolUse hook (Edit/Write)
    hook skill-tracker      PostToolUse hook (Skill)
    hook session-start      SessionStart hook
    hook session-end        Stop hook
    session-key [--cwd PATH]
    config validate
    config get <key>
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import NoReturn

from runewatch import __version__

HOOK_MODULES = {
    "context-watch": "runewatch.hooks.context_watch",
    "skill-tracker": "runewatch.hooks.skill_tracker",
    "session-start": "runewatch.hooks.session_start",
    "session-end": "runewatch.hooks.session_end",
}


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="runewatch",
        description="Session telemetry hooks for AI coding agents",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # hook command
    hook_parser = subparsers.add_parser("hook", help="Run a Claude Code hook")
    hook_parser.add_argument(
        "hook_name",
        choices=sorted(HOOK_MODULES),
        help="Hook to run (reads the hook payload from stdin)",
    )

    # session-key command
    key_parser = subparsers.add_parser(
        "session-key", help="Print the session key for a working directory"
    )
    key_parser.add_argument(
        "--cwd",
        help="Working directory (default: current directory)",
    )

    # config command
    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_subparsers = config_parser.add_subparsers(
        dest="config_command", help="Config subcommands"
    )

    # config validate
    config_subparsers.add_parser("validate", help="Validate configuration")

    # config get
    get_parser = config_subparsers.add_parser("get", help="Get configuration value")
    get_parser.add_argument(
        "key", help="Configuration key (e.g. context_watch.first_warning)"
    )

    return parser


def cmd_hook(args: argparse.Namespace) -> int:
    """Handle 'hook' command.

    Hooks always exit 0 so telemetry never blocks the host workflow.
    """
    import importlib

    module = importlib.import_module(HOOK_MODULES[args.hook_name])
    module.main()
    return 0


def cmd_session_key(args: argparse.Namespace) -> int:
    """Handle 'session-key' command."""
    from runewatch.session import derive_session_key

    cwd = Path(args.cwd) if args.cwd else Path.cwd()
    print(derive_session_key(cwd))
    return 0


def cmd_config_get(args: argparse.Namespace) -> int:
    """Handle 'config get' command."""
    from runewatch.config import Config

    try:
        config = Config.load_or_default()
        value = config.get_value(args.key)
        print(value)
        return 0
    except KeyError:
        print(f"Error: Config key not found: {args.key}", file=sys.stderr)
        return 1


def cmd_config_validate(args: argparse.Namespace) -> int:
    """Handle 'config validate' command."""
    from runewatch.config import Config

    try:
        config = Config.load()
    except FileNotFoundError as e:
        print(f"No configuration found: {e}", file=sys.stderr)
        return 0  # Missing config is not an error
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    watch = config.context_watch
    print(f"Configuration valid: {config.config_path}")
    print(f"  Version: {config.version}")
    print(
        f"  Context watch: warn at {watch.first_warning}, "
        f"critical at {watch.critical_threshold}, every {watch.repeat_interval}"
    )
    print(f"  Metrics dir: {config.metrics.dir} (keep {config.metrics.history_cap} sessions)")
    print(f"  Checklist: {'on' if config.session_end.checklist else 'off'}")
    return 0


def main() -> NoReturn:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "hook":
        sys.exit(cmd_hook(args))
    elif args.command == "session-key":
        sys.exit(cmd_session_key(args))
    elif args.command == "config":
        if args.config_command == "validate":
            sys.exit(cmd_config_validate(args))
        elif args.config_command == "get":
            sys.exit(cmd_config_get(args))
        else:
            parser.parse_args(["config", "--help"])
            sys.exit(1)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
