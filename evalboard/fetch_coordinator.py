"""Single entry point for "give me the report for this filter key".

Cache hits return without awaiting anything, so no network call is made and
the event loop is never yielded. Misses run the injected ``fetch_fn`` once per
key: concurrent callers for the same missing key share one in-flight task.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from evalboard.data_helpers import utc_now
from evalboard.errors import FetchFailed
from evalboard.models import CachedReport, FilterKey
from evalboard.report_cache import ReportCacheStore

logger = logging.getLogger(__name__)

FetchFn = Callable[[FilterKey], Awaitable[Mapping[str, Any]]]


def _retrieve_exception(task: asyncio.Future) -> None:
    # Marks the failure as observed even if every awaiter went away.
    if not task.cancelled():
        task.exception()


class FetchCoordinator:
    """Serves reports from the store, fetching and storing on a miss.

    The coordinator is the store's only writer. Construct one per session and
    pass it (and the store) to whatever needs reports.
    """

    def __init__(self, store: ReportCacheStore) -> None:
        self.store = store
        self._in_flight: dict[str, asyncio.Task] = {}
        # Bumped on delete so a fetch that started before the delete is not stored.
        self._generation: dict[str, int] = {}
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def cached(self, filter_key: FilterKey) -> CachedReport | None:
        """Synchronous cache lookup; raises InvalidFilter on an incomplete key."""
        filter_key.validate()
        return self.store.get(filter_key)

    def in_flight(self, filter_key: FilterKey) -> bool:
        return filter_key.cache_key in self._in_flight

    async def load_report(self, filter_key: FilterKey, fetch_fn: FetchFn) -> CachedReport:
        """Return the report for ``filter_key``, calling ``fetch_fn`` only on a cache miss.

        Raises:
            InvalidFilter: the key lacks a tracker or subject (before any I/O).
            FetchFailed: ``fetch_fn`` raised or returned a malformed payload;
                nothing is written to the store.
        """
        filter_key.validate()
        hit = self.store.get(filter_key)
        if hit is not None:
            return hit

        key = filter_key.cache_key
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._fetch_and_store(filter_key, fetch_fn))
            self._in_flight[key] = task
            task.add_done_callback(_retrieve_exception)
            task.add_done_callback(lambda t, k=key: self._forget(k, t))
        else:
            logger.debug("Joining in-flight fetch for %s", key)
        return await asyncio.shield(task)

    def _forget(self, key: str, task: asyncio.Task) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]

    async def _fetch_and_store(self, filter_key: FilterKey, fetch_fn: FetchFn) -> CachedReport:
        key = filter_key.cache_key
        generation = self._generation.get(key, 0)
        logger.info("Fetching report %s", key)
        try:
            payload = await fetch_fn(filter_key)
        except FetchFailed:
            raise
        except Exception as exc:
            raise FetchFailed(f"Failed to load report for {filter_key.label}: {exc}", filter_key=filter_key) from exc

        try:
            report = CachedReport.from_payload(filter_key, payload, fetched_at=utc_now())
        except (ValueError, TypeError) as exc:
            raise FetchFailed(f"Report endpoint returned unusable data for {filter_key.label}: {exc}", filter_key=filter_key) from exc

        if self._closed:
            logger.info("Coordinator closed; not caching %s", key)
        elif self._generation.get(key, 0) != generation:
            logger.info("Report %s was deleted while loading; not caching", key)
        else:
            try:
                self.store.put(report)
            except OSError as exc:
                logger.warning("Failed to save report %s to cache (%s)", key, exc)
        return report

    def delete(self, filter_key: FilterKey) -> None:
        """Remove a cached report.

        A fetch already in flight for it still resolves for its awaiters but is
        not stored, and later loads start a fresh fetch instead of joining it.
        """
        key = filter_key.cache_key
        self._generation[key] = self._generation.get(key, 0) + 1
        self._in_flight.pop(key, None)
        self.store.delete(filter_key)

    def close(self) -> None:
        """Stop writing results; in-flight fetches still resolve for their awaiters."""
        self._closed = True
