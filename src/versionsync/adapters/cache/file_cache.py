"""
File Cache - Last observed store versions, persisted between runs.

The cache is advisory: a missing, unreadable, corrupt or stale file is
ignored and rewritten after the next successful lookup. It only saves
network calls on immediate retries.

File format (``<project>/.versionsync/observed.json``)::

    {
      "format": 1,
      "entries": {
        "app_store": {"version": "1.0.0+7", "confidence": "high", "stored_at": 1700000000.0}
      }
    }
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

from versionsync.adapters.descriptors.base import atomic_write
from versionsync.core.domain.entities import ObservedVersion
from versionsync.core.domain.enums import Confidence, VersionSource
from versionsync.core.domain.value_objects import VersionTag
from versionsync.core.exceptions import ParseError


CACHE_FILENAME = "observed.json"
CACHE_FORMAT = 1
CACHED_DETAIL = "cached"


class ObservedVersionCache:
    """
    File-backed cache of the last known store versions.

    Only known versions are stored; unknown observations never overwrite
    a previously cached version.
    """

    DEFAULT_TTL = 60.0

    def __init__(
        self,
        cache_dir: Path | str,
        ttl: float = DEFAULT_TTL,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the cache.

        Args:
            cache_dir: Directory holding the cache file
            ttl: Seconds an entry stays fresh
            clock: Source of the current Unix time
        """
        self.cache_dir = Path(cache_dir)
        self.path = self.cache_dir / CACHE_FILENAME
        self.ttl = ttl
        self._clock = clock
        self.logger = logging.getLogger("ObservedVersionCache")

        self._hits = 0
        self._misses = 0

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def _load_entries(self) -> dict[str, dict[str, Any]]:
        if not self.path.is_file():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            self.logger.warning(f"Ignoring unreadable cache {self.path}: {e}")
            return {}

        if not isinstance(data, dict) or data.get("format") != CACHE_FORMAT:
            self.logger.warning(f"Ignoring cache {self.path} with unknown format")
            return {}
        entries = data.get("entries")
        return entries if isinstance(entries, dict) else {}

    def _entry_to_observation(self, source: VersionSource, entry: Any) -> ObservedVersion | None:
        if not isinstance(entry, dict):
            return None
        try:
            version = VersionTag.parse(str(entry["version"]))
            stored_at = float(entry["stored_at"])
            confidence = Confidence(entry.get("confidence", Confidence.HIGH.value))
        except (KeyError, TypeError, ValueError, ParseError):
            return None

        age = self._clock() - stored_at
        if age < 0 or age > self.ttl:
            return None
        return ObservedVersion.known(source, version, confidence=confidence, detail=CACHED_DETAIL)

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def get(self, source: VersionSource) -> ObservedVersion | None:
        """Return a fresh cached observation for a store, or None."""
        observation = self._entry_to_observation(source, self._load_entries().get(source.value))
        if observation is None:
            self._misses += 1
        else:
            self._hits += 1
        return observation

    def get_many(self, sources: Iterable[VersionSource]) -> dict[VersionSource, ObservedVersion]:
        entries = self._load_entries()
        fresh: dict[VersionSource, ObservedVersion] = {}
        for source in sources:
            observation = self._entry_to_observation(source, entries.get(source.value))
            if observation is None:
                self._misses += 1
                continue
            self._hits += 1
            fresh[source] = observation
        return fresh

    def save(self, observations: Iterable[ObservedVersion]) -> None:
        """
        Store known store versions, rewriting the file wholesale.

        Entries for stores not observed this time are kept.
        Failures to write are logged and otherwise ignored.
        """
        entries = self._load_entries()
        now = self._clock()
        changed = False
        for observation in observations:
            if not observation.is_known or observation.is_cached or not observation.source.is_store:
                continue
            entries[observation.source.value] = {
                "version": str(observation.version),
                "confidence": observation.confidence.value,
                "stored_at": now,
            }
            changed = True

        if not changed:
            return

        payload = json.dumps({"format": CACHE_FORMAT, "entries": entries}, indent=2, sort_keys=True)
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            atomic_write(self.path, payload + "\n")
        except OSError as e:
            self.logger.warning(f"Could not write cache {self.path}: {e}")

    def clear(self) -> None:
        """Delete the cache file."""
        self.path.unlink(missing_ok=True)

    @property
    def hits(self) -> int:
        return self._hits

    @property
    def misses(self) -> int:
        return self._misses
