"""Append-only install history (one JSON object per line)."""

import json
import logging
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path

from maziq.paths import get_history_path

_logging = logging.getLogger(__name__)


@dataclass
class HistoryRecord:
    software: str
    action: str
    version: str | None = None
    source: str | None = None
    timestamp: int = field(default_factory=lambda: int(time.time()))


def append(record: HistoryRecord, path: Path | None = None) -> bool:
    """Append a record to the history file.

    Failures are logged and reported through the return value; history is
    never allowed to break a provisioning run.
    """
    if path is None:
        path = get_history_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(asdict(record)) + "\n")
    except OSError as e:
        _logging.warning(f"Failed to write history record to {path}: {e}")
        return False
    return True


def read_all(path: Path | None = None) -> list[HistoryRecord]:
    """Return every readable record, oldest first. Malformed lines are skipped."""
    if path is None:
        path = get_history_path()
    if not path.exists():
        return []

    records = []
    try:
        with open(path, "r", encoding="utf-8") as f:
            lines = f.readlines()
    except OSError as e:
        _logging.warning(f"Failed to read history from {path}: {e}")
        return []

    for lineno, line in enumerate(lines, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            data = json.loads(line)
            records.append(
                HistoryRecord(
                    software=str(data["software"]),
                    action=str(data["action"]),
                    version=data.get("version"),
                    source=data.get("source"),
                    timestamp=int(data.get("timestamp", 0)),
                )
            )
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            _logging.debug(f"Skipping malformed history line {lineno} in {path}: {e}")
    return records


__all__ = ["HistoryRecord", "append", "read_all"]
