"""Append-only JSON history file used when no rates database is configured.

The file holds a JSON array of RatesEntry objects and is created empty
on first access. Unreadable or non-array contents read as no entries.
"""

import json
import time
from datetime import datetime, timezone
from pathlib import Path

from tasa.logging import get_logger
from tasa.models import RatesEntry

logger = get_logger(__name__)


class RatesHistoryFile:
    """Reads and appends RatesEntry records in a local JSON file."""

    def __init__(self, path: str = "data/rates.json") -> None:
        self._path = Path(path)

    def _ensure_file(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        if not self._path.exists():
            self._path.write_text("[]", encoding="utf-8")

    def read_entries(self) -> list[RatesEntry]:
        """Return all entries in insertion order."""
        self._ensure_file()
        raw = self._path.read_text(encoding="utf-8")
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("history_file_unreadable", path=str(self._path))
            return []
        if not isinstance(parsed, list):
            return []
        entries = []
        for index, item in enumerate(parsed):
            if not isinstance(item, dict):
                logger.warning("history_entry_skipped", path=str(self._path), index=index)
                continue
            entries.append(RatesEntry.from_dict(item))
        return entries

    def write_entries(self, entries: list[RatesEntry]) -> None:
        self._ensure_file()
        self._path.write_text(
            json.dumps([e.to_dict() for e in entries], indent=2, ensure_ascii=False),
            encoding="utf-8",
        )

    def add_entry(
        self,
        base: str,
        rates: dict[str, float],
        source: str | None = None,
        fetched_at: str | None = None,
    ) -> RatesEntry:
        """Append a new entry stamped with an epoch-millisecond id."""
        entries = self.read_entries()
        entry = RatesEntry(
            id=str(int(time.time() * 1000)),
            base=base,
            rates=rates,
            source=source,
            fetched_at=fetched_at or datetime.now(timezone.utc).isoformat(),
        )
        entries.append(entry)
        self.write_entries(entries)
        logger.info("history_entry_added", id=entry.id, base=base, count=len(rates))
        return entry

    def latest_entry(self) -> RatesEntry | None:
        """Return the most recently appended entry, or None when empty."""
        entries = self.read_entries()
        return entries[-1] if entries else None
