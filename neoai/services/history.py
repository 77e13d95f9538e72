"""History store — append-only JSON log of terminal jobs.

The whole log is one JSON array (most recent first) under a single named
store. Every append rewrites the file atomically, so a crash never leaves
a half-written log behind.
"""

from __future__ import annotations

import logging
import os
import tempfile

from pydantic import ValidationError

from neoai.schemas.job import HISTORY_ADAPTER, HistoryEntry

logger = logging.getLogger(__name__)


class HistoryStore:
    """Process-scoped history with an explicit open/close lifecycle."""

    def __init__(self, directory: str, store_name: str = "generationHistory") -> None:
        self.path = os.path.join(directory, f"{store_name}.json")
        self._entries: list[HistoryEntry] = []
        self._opened = False

    @property
    def is_open(self) -> bool:
        return self._opened

    def open(self) -> HistoryStore:
        """Load the persisted log. A corrupt file is set aside and the log starts empty."""
        self._entries = []
        if os.path.exists(self.path):
            try:
                with open(self.path, "rb") as f:
                    self._entries = HISTORY_ADAPTER.validate_json(f.read())
            except (OSError, ValidationError) as e:
                backup = f"{self.path}.corrupt"
                logger.error("Error reading history from %s: %s (moved to %s)", self.path, e, backup)
                try:
                    os.replace(self.path, backup)
                except OSError:
                    logger.warning("Could not move corrupt history file aside", exc_info=True)
        self._opened = True
        logger.info("History opened: %s (%d entries)", self.path, len(self._entries))
        return self

    def close(self) -> None:
        self._opened = False

    def append(self, entry: HistoryEntry) -> None:
        """Prepend ``entry`` and flush the log to disk."""
        self._require_open()
        entries = [entry, *self._entries]
        # Memory only changes once the file holds the new log
        self._flush(entries)
        self._entries = entries
        logger.debug("History entry %s recorded (%s)", entry.id, entry.status.value)

    def read_all(self) -> list[HistoryEntry]:
        """All entries, most recent first."""
        self._require_open()
        return list(self._entries)

    def get(self, entry_id: str) -> HistoryEntry | None:
        self._require_open()
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def _require_open(self) -> None:
        if not self._opened:
            raise RuntimeError("HistoryStore is not open; call open() first")

    def _flush(self, entries: list[HistoryEntry]) -> None:
        directory = os.path.dirname(self.path) or "."
        os.makedirs(directory, exist_ok=True)
        payload = HISTORY_ADAPTER.dump_json(entries, by_alias=True, indent=2)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".history-", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
