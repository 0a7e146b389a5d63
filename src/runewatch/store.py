"""State stores for ephemeral and durable telemetry data.

Every component reads and writes through a StateStore instead of touching
paths directly, so tests can swap in MemoryStateStore. Names are flat file
names; a FileStateStore maps them to files under its root directory.

Read failures are reported as ReadResult values rather than raised. Write
failures raise OSError and the caller decides whether to swallow them.
"""

from __future__ import annotations

import json
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Iterable


class ReadStatus(Enum):
    """Outcome of reading a JSON document from a store."""

    OK = "ok"
    MISSING = "missing"
    CORRUPT = "corrupt"


@dataclass
class ReadResult:
    """Result of StateStore.read_json.

    Attributes:
        status: Whether the document was found and parsed.
        value: The parsed document when status is OK.
        error: Description of the failure for CORRUPT reads.
    """

    status: ReadStatus
    value: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is ReadStatus.OK


def parse_jsonl(lines: Iterable[str]) -> list[dict[str, Any]]:
    """Decode JSONL lines into dicts, skipping blank or malformed lines."""
    records = []
    for line in lines:
        line = line.strip()
        if not line:
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError:
            continue
        if isinstance(record, dict):
            records.append(record)
    return records


def to_jsonl(record: dict[str, Any]) -> str:
    """Encode a record as a single compact JSON line (without newline)."""
    return json.dumps(record, separators=(",", ":"))


class StateStore(ABC):
    """Read/modify/write interface over named text documents."""

    @abstractmethod
    def read_text(self, name: str) -> str | None:
        """Return the document text, or None if it does not exist.

        Raises:
            OSError: If the document exists but cannot be read.
        """

    @abstractmethod
    def write_text(self, name: str, text: str) -> None:
        """Overwrite a document."""

    @abstractmethod
    def append_line(self, name: str, line: str) -> None:
        """Append one line to a document as a single write."""

    @abstractmethod
    def delete(self, name: str) -> bool:
        """Delete a document. Returns False if it did not exist."""

    def exists(self, name: str) -> bool:
        try:
            return self.read_text(name) is not None
        except OSError:
            return True

    def read_json(self, name: str) -> ReadResult:
        """Read and parse a JSON document."""
        try:
            text = self.read_text(name)
        except OSError as e:
            return ReadResult(ReadStatus.CORRUPT, error=str(e))

        if text is None:
            return ReadResult(ReadStatus.MISSING)

        try:
            return ReadResult(ReadStatus.OK, value=json.loads(text))
        except json.JSONDecodeError as e:
            return ReadResult(ReadStatus.CORRUPT, error=str(e))

    def write_json(self, name: str, data: Any, indent: int | None = None) -> None:
        """Serialize and overwrite a JSON document."""
        if indent is None:
            text = json.dumps(data, separators=(",", ":"))
        else:
            text = json.dumps(data, indent=indent) + "\n"
        self.write_text(name, text)

    def read_lines(self, name: str) -> list[str]:
        """Return the non-empty lines of a document ([] if missing)."""
        text = self.read_text(name)
        if text is None:
            return []
        return [line for line in text.splitlines() if line.strip()]

    def rewrite_lines(self, name: str, lines: list[str]) -> None:
        """Overwrite a document with the given lines."""
        self.write_text(name, "".join(line + "\n" for line in lines))


class FileStateStore(StateStore):
    """StateStore backed by files in a directory."""

    def __init__(self, root: Path):
        """Initialize the store.

        Args:
            root: Directory holding the documents. Created on first write.
        """
        self.root = Path(root)

    def path(self, name: str) -> Path:
        return self.root / name

    def read_text(self, name: str) -> str | None:
        try:
            return self.path(name).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            raise OSError(f"Undecodable content in {self.path(name)}: {e}") from e

    def write_text(self, name: str, text: str) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        target = self.path(name)
        # Write beside the target and rename so readers never see a partial file
        fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=f".{name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.chmod(tmp_name, 0o644)
            os.replace(tmp_name, target)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise

    def append_line(self, name: str, line: str) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        data = (line.rstrip("\n") + "\n").encode("utf-8")
        # O_APPEND plus one write keeps lines whole across processes
        fd = os.open(self.path(name), os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o644)
        try:
            os.write(fd, data)
        finally:
            os.close(fd)

    def delete(self, name: str) -> bool:
        try:
            self.path(name).unlink()
            return True
        except FileNotFoundError:
            return False

    def __repr__(self) -> str:
        return f"FileStateStore({str(self.root)!r})"


class MemoryStateStore(StateStore):
    """In-memory StateStore, used by tests."""

    def __init__(self, documents: dict[str, str] | None = None):
        self.documents: dict[str, str] = dict(documents or {})

    def read_text(self, name: str) -> str | None:
        return self.documents.get(name)

    def write_text(self, name: str, text: str) -> None:
        self.documents[name] = text

    def append_line(self, name: str, line: str) -> None:
        self.documents[name] = self.documents.get(name, "") + line.rstrip("\n") + "\n"

    def delete(self, name: str) -> bool:
        return self.documents.pop(name, None) is not None
