"""JSON snapshot files for prefetched lookup results.

A snapshot is a single JSON document::

    {
      "generatedAt": "2026-01-31T12:00:00+00:00",
      "artists": {"radiohead": {...}, "zzzznonexistentband123": null},
      "meta": {"stoppedEarly": false}
    }

with the section ``artists`` (Last.fm, keyed by normalized artist name) or
``locations`` (reverse geocoding, keyed by ``"{lat:.6f},{lon:.6f}"``).  A
missing or unreadable file reads as an empty section so a broken snapshot
never blocks a build.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from src.utils.logging import get_logger

ARTISTS_SECTION = "artists"
LOCATIONS_SECTION = "locations"


class PrefetchStore:
    """Reads and writes one snapshot file."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._logger = get_logger(__name__)

    @property
    def path(self) -> Path:
        return self._path

    def read(self, section: str) -> dict[str, Any]:
        """Return the *section* mapping, or ``{}`` if the file is missing or invalid."""
        try:
            with open(self._path, encoding="utf-8") as f:
                document = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as exc:
            self._logger.warning("prefetch_snapshot_unreadable", path=str(self._path), error=str(exc))
            return {}

        entries = document.get(section) if isinstance(document, dict) else None
        return dict(entries) if isinstance(entries, dict) else {}

    def write(self, section: str, entries: dict[str, Any], meta: dict[str, Any]) -> None:
        """Replace the snapshot with *entries* under *section*."""
        document = {
            "generatedAt": datetime.now(timezone.utc).isoformat(),
            section: entries,
            "meta": meta,
        }
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "w", encoding="utf-8") as f:
            json.dump(document, f)
        self._logger.info(
            "prefetch_snapshot_written", path=str(self._path), section=section, entries=len(entries)
        )
