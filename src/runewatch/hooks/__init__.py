"""Claude Code hook entry points for runewatch."""
