"""Capacity-bounded, persisted store of fetched experiment reports.

The store keeps no in-memory copy: every operation reads the single persisted
document from the ``KeyValueStorage`` backend, so the backend is always the
source of truth. Reads (``get``, ``list``, ``len``) never write. ``put``,
``delete`` and ``clear`` rewrite the whole document, which also drops entries
that failed to decode.

Document format (version 2)::

    {"version": 2, "data": [<CachedReport.to_dict()>, ...]}   # oldest-inserted first

A bare JSON list is the version-1 format written by the browser dashboard
(newest first, camelCase fields); it is still readable.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from evalboard.errors import CacheCorrupt
from evalboard.models import CachedReport, FilterKey
from evalboard.storage import KeyValueStorage, StorageQuotaExceeded

logger = logging.getLogger(__name__)

CACHE_STORAGE_KEY = "experiment_reports_cache"
CACHE_FORMAT_VERSION = 2
DEFAULT_CAPACITY = 10

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _decode(raw: str) -> tuple[list[CachedReport], int]:
    """Parse a persisted document into entries (oldest-inserted first) and a count of dropped entries."""
    try:
        doc: Any = json.loads(raw)
    except ValueError as exc:
        raise CacheCorrupt(f"cache document is not valid JSON: {exc}") from exc

    if isinstance(doc, list):
        # v1 entries are newest-first; reverse so the stable sort below keeps insertion order on ties.
        items = list(reversed(doc))
        parse = CachedReport.from_legacy
    elif isinstance(doc, dict) and doc.get("version") == CACHE_FORMAT_VERSION and isinstance(doc.get("data"), list):
        items = doc["data"]
        parse = CachedReport.from_dict
    else:
        raise CacheCorrupt("unrecognized cache document shape")

    entries: list[CachedReport] = []
    dropped = 0
    for idx, item in enumerate(items):
        try:
            entries.append(parse(item))
        except (ValueError, TypeError) as exc:
            dropped += 1
            logger.warning("Report cache: dropping invalid entry at index %d (%s)", idx, exc)

    if parse is CachedReport.from_legacy:
        entries.sort(key=lambda e: e.fetched_at or _EPOCH)

    deduped: dict[str, CachedReport] = {}
    for entry in entries:
        deduped.pop(entry.cache_key, None)
        deduped[entry.cache_key] = entry
    dropped += len(entries) - len(deduped)
    return list(deduped.values()), dropped


def _encode(entries: list[CachedReport]) -> str:
    return json.dumps(
        {"version": CACHE_FORMAT_VERSION, "data": [e.to_dict() for e in entries]},
        separators=(",", ":"),
    )


class ReportCacheStore:
    """Durable keyed storage for ``CachedReport`` entries.

    Args:
        storage: Backend holding the serialized document.
        capacity: Maximum number of entries; inserting beyond it evicts the
            oldest-inserted entry.
        storage_key: Backend key holding the document.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        capacity: int = DEFAULT_CAPACITY,
        storage_key: str = CACHE_STORAGE_KEY,
    ) -> None:
        if int(capacity) < 1:
            raise ValueError("capacity must be at least 1")
        self._storage = storage
        self.capacity = int(capacity)
        self.storage_key = storage_key

    # -- persistence --------------------------------------------------------

    def _load(self) -> tuple[list[CachedReport], bool]:
        """Read entries without writing; the flag is True when invalid or excess entries were dropped."""
        try:
            raw = self._storage.get(self.storage_key)
        except OSError as exc:
            logger.warning("Report cache: storage read failed (%s); treating cache as empty", exc)
            return [], False
        if raw is None:
            return [], False
        try:
            entries, dropped = _decode(raw)
        except CacheCorrupt as exc:
            logger.warning("Report cache is corrupt (%s); starting with an empty cache", exc)
            return [], True

        if len(entries) > self.capacity:
            dropped += len(entries) - self.capacity
            entries = entries[-self.capacity:]
        return entries, dropped > 0

    def _persist(self, entries: list[CachedReport], keep: str | None = None) -> None:
        """Write entries, dropping the oldest ones (never ``keep``) while the backend reports a quota error."""
        entries = list(entries)
        while True:
            try:
                self._storage.set(self.storage_key, _encode(entries))
                return
            except StorageQuotaExceeded as exc:
                droppable = [i for i, e in enumerate(entries) if e.cache_key != keep]
                if not droppable:
                    logger.error("Report cache: cannot save, entry exceeds storage quota (%s)", exc)
                    return
                evicted = entries.pop(droppable[0])
                logger.warning("Report cache: quota exceeded, evicting oldest entry %s", evicted.cache_key)

    # -- operations ---------------------------------------------------------

    def get(self, filter_key: FilterKey) -> CachedReport | None:
        """Return the stored report for ``filter_key`` or None. Never raises."""
        target = filter_key.cache_key
        entries, _ = self._load()
        for entry in entries:
            if entry.cache_key == target:
                logger.debug("Report cache HIT: %s", target)
                return entry
        return None

    def put(self, report: CachedReport) -> None:
        """Insert or replace ``report`` and persist, evicting the oldest entries beyond capacity."""
        report.filter_key.validate()
        loaded, _ = self._load()
        entries = [e for e in loaded if e.cache_key != report.cache_key]
        entries.append(report)
        while len(entries) > self.capacity:
            evicted = entries.pop(0)
            logger.info("Report cache: capacity %d reached, evicting %s", self.capacity, evicted.cache_key)
        self._persist(entries, keep=report.cache_key)

    def delete(self, filter_key: FilterKey) -> None:
        """Remove the entry if present; also writes back a cache that needed cleaning."""
        target = filter_key.cache_key
        entries, dirty = self._load()
        remaining = [e for e in entries if e.cache_key != target]
        if dirty or len(remaining) != len(entries):
            self._persist(remaining)

    def list(self) -> list[CachedReport]:
        """All entries, most recently fetched first."""
        entries, _ = self._load()
        ordered = sorted(
            enumerate(entries),
            key=lambda pair: (pair[1].fetched_at or _EPOCH, pair[0]),
            reverse=True,
        )
        return [entry for _, entry in ordered]

    def keys(self) -> list[FilterKey]:
        return [entry.filter_key for entry in self.list()]

    def clear(self) -> None:
        self._persist([])

    def __len__(self) -> int:
        return len(self._load()[0])

    def __contains__(self, filter_key: object) -> bool:
        return isinstance(filter_key, FilterKey) and self.get(filter_key) is not None
