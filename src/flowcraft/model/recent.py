"""
Recent Files History
====================
Persists the list of recently opened/saved diagram files in QSettings.

The list is stored as one JSON string under ``recent/files`` so the INI
backend does not have to encode nested structures. Most recent entry first,
paths are unique, and the list is capped at ``config.RECENT_FILES_LIMIT``.
"""
from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from typing import Callable, List, Optional

from PySide6.QtCore import QSettings

from flowcraft import config
from flowcraft.model.state import RecentFileEntry

logger = logging.getLogger(__name__)

SETTINGS_KEY = "recent/files"


class RecentFilesStore:
    def __init__(
        self,
        settings: Optional[QSettings] = None,
        limit: int = config.RECENT_FILES_LIMIT,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._settings = settings if settings is not None else QSettings()
        self.limit = limit
        self._clock = clock

    def get_recent_files(self) -> List[RecentFileEntry]:
        raw = self._settings.value(SETTINGS_KEY, "", type=str)
        if not raw:
            return []
        try:
            items = json.loads(raw)
            return [RecentFileEntry.from_dict(item) for item in items][: self.limit]
        except (ValueError, TypeError, KeyError) as e:
            logger.warning(f"Ignoring unreadable recent files list: {e}")
            return []

    def touch(self, path: str) -> List[RecentFileEntry]:
        """Move ``path`` to the front of the list (adding it if new)."""
        path = os.path.abspath(path)
        entry = RecentFileEntry(path=path, name=os.path.basename(path), last_opened=self._clock())

        entries = [e for e in self.get_recent_files() if e.path != path]
        entries.insert(0, entry)
        entries = entries[: self.limit]

        self._write(entries)
        logger.debug(f"Recent files updated with: {path}")
        return entries

    def clear_recent_files(self) -> None:
        self._settings.remove(SETTINGS_KEY)
        self._settings.sync()
        logger.info("Recent files cleared.")

    def _write(self, entries: List[RecentFileEntry]) -> None:
        self._settings.setValue(SETTINGS_KEY, json.dumps([e.to_dict() for e in entries]))
        self._settings.sync()
