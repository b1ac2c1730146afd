"""Tests for the persisted report cache store: capacity, ordering, corruption recovery."""

from __future__ import annotations

import json
import logging

from evalboard.models import FilterKey
from evalboard.report_cache import CACHE_STORAGE_KEY, ReportCacheStore
from evalboard.storage import FileStorage, MemoryStorage

from report_builders import make_payload, make_report, minutes, row_dict


def _store(capacity: int = 10, **kwargs) -> tuple[ReportCacheStore, MemoryStorage]:
    storage = MemoryStorage(**kwargs)
    return ReportCacheStore(storage, capacity=capacity), storage


# ---------------------------------------------------------------------------
# Basic operations
# ---------------------------------------------------------------------------


class TestPutGet:
    def test_put_then_get_returns_equal_report(self):
        store, _ = _store()
        report = make_report(samples=[("Easy", 0.9)])
        store.put(report)
        assert store.get(report.filter_key) == report

    def test_get_missing_returns_none(self):
        store, _ = _store()
        assert store.get(FilterKey("exp-A", "ela")) is None

    def test_duplicate_key_overwrites(self):
        store, _ = _store()
        store.put(make_report(rows=[row_dict("Easy", above=10)], fetched_at=minutes(0)))
        replacement = make_report(rows=[row_dict("Easy", above=90)], fetched_at=minutes(5))
        store.put(replacement)
        assert len(store) == 1
        assert store.get(FilterKey("exp-A", "ela")) == replacement

    def test_survives_new_store_instance(self, tmp_path):
        report = make_report()
        ReportCacheStore(FileStorage(tmp_path)).put(report)
        assert ReportCacheStore(FileStorage(tmp_path)).get(report.filter_key) == report

    def test_delete_removes_entry(self):
        store, _ = _store()
        report = make_report()
        store.put(report)
        store.delete(report.filter_key)
        assert store.get(report.filter_key) is None

    def test_delete_missing_is_noop(self):
        store, storage = _store()
        store.put(make_report())
        before = storage.get(CACHE_STORAGE_KEY)
        store.delete(FilterKey("other", "math"))
        assert storage.get(CACHE_STORAGE_KEY) == before

    def test_persisted_document_is_versioned(self):
        store, storage = _store()
        store.put(make_report())
        doc = json.loads(storage.get(CACHE_STORAGE_KEY))
        assert doc["version"] == 2
        assert len(doc["data"]) == 1


# ---------------------------------------------------------------------------
# Capacity and ordering
# ---------------------------------------------------------------------------


class TestCapacity:
    def test_oldest_inserted_entries_are_evicted(self):
        store, _ = _store(capacity=10)
        for i in range(13):
            store.put(make_report(tracker=f"exp-{i}", fetched_at=minutes(i)))

        listed = store.list()
        assert len(listed) == 10
        trackers = {r.filter_key.experiment_tracker for r in listed}
        assert trackers == {f"exp-{i}" for i in range(3, 13)}

    def test_eviction_follows_insertion_not_fetched_at(self):
        store, _ = _store(capacity=2)
        store.put(make_report(tracker="late-stamp", fetched_at=minutes(100)))
        store.put(make_report(tracker="early-stamp", fetched_at=minutes(0)))
        store.put(make_report(tracker="third", fetched_at=minutes(50)))
        assert {r.filter_key.experiment_tracker for r in store.list()} == {"early-stamp", "third"}

    def test_reinsert_refreshes_insertion_position(self):
        store, _ = _store(capacity=2)
        store.put(make_report(tracker="a", fetched_at=minutes(0)))
        store.put(make_report(tracker="b", fetched_at=minutes(1)))
        store.put(make_report(tracker="a", fetched_at=minutes(2)))
        store.put(make_report(tracker="c", fetched_at=minutes(3)))
        assert {r.filter_key.experiment_tracker for r in store.list()} == {"a", "c"}

    def test_list_is_most_recently_fetched_first(self):
        store, _ = _store()
        store.put(make_report(tracker="b", fetched_at=minutes(5)))
        store.put(make_report(tracker="a", fetched_at=minutes(1)))
        store.put(make_report(tracker="c", fetched_at=minutes(9)))
        assert [r.filter_key.experiment_tracker for r in store.list()] == ["c", "b", "a"]


# ---------------------------------------------------------------------------
# Corruption and legacy formats
# ---------------------------------------------------------------------------


class TestCorruption:
    def test_garbage_document_is_empty_cache(self, caplog):
        store, storage = _store()
        storage.set(CACHE_STORAGE_KEY, "{not json")
        with caplog.at_level(logging.WARNING, logger="evalboard.report_cache"):
            assert store.list() == []
            assert store.get(FilterKey("exp-A", "ela")) is None
        assert "corrupt" in caplog.text

    def test_unrecognized_shape_is_empty_cache(self):
        store, storage = _store()
        storage.set(CACHE_STORAGE_KEY, json.dumps({"version": 99, "data": []}))
        assert store.list() == []

    def test_put_after_corruption_recovers(self):
        store, storage = _store()
        storage.set(CACHE_STORAGE_KEY, "\x00\x01truncated")
        report = make_report()
        store.put(report)
        assert store.get(report.filter_key) == report

    def test_invalid_entries_are_skipped_without_writing_on_read(self):
        store, storage = _store()
        good = make_report()
        raw = json.dumps({"version": 2, "data": [{"filter_key": {"subject": "ela"}}, good.to_dict(), "junk"]})
        storage.set(CACHE_STORAGE_KEY, raw)

        assert store.list() == [good]
        assert store.get(good.filter_key) == good
        assert len(store) == 1
        assert storage.get(CACHE_STORAGE_KEY) == raw

    def test_invalid_entries_are_cleaned_on_next_write(self):
        store, storage = _store()
        good = make_report()
        storage.set(
            CACHE_STORAGE_KEY,
            json.dumps({"version": 2, "data": [{"filter_key": {"subject": "ela"}}, good.to_dict(), "junk"]}),
        )
        store.put(make_report(tracker="exp-B"))
        assert len(json.loads(storage.get(CACHE_STORAGE_KEY))["data"]) == 2

    def test_delete_of_absent_key_still_cleans_dirty_cache(self):
        store, storage = _store()
        good = make_report()
        storage.set(CACHE_STORAGE_KEY, json.dumps({"version": 2, "data": ["junk", good.to_dict()]}))
        store.delete(FilterKey("other", "math"))
        assert json.loads(storage.get(CACHE_STORAGE_KEY))["data"] == [good.to_dict()]

    def test_get_on_corrupt_document_does_not_write(self):
        store, storage = _store()
        storage.set(CACHE_STORAGE_KEY, "{not json")
        assert store.get(FilterKey("exp-A", "ela")) is None
        assert storage.get(CACHE_STORAGE_KEY) == "{not json"

    def test_legacy_bare_list_is_read(self):
        store, storage = _store()
        payload = make_payload()
        legacy = [
            {
                "experiment_tracker": "newer",
                "subject": "ela",
                "grade_level": "",
                "question_type": "",
                "timestamp": 1748779260000,
                "reportData": payload["report_rows"],
                "summaryData": None,
                "scoresData": [],
            },
            {
                "experiment_tracker": "older",
                "subject": "ela",
                "grade_level": "",
                "question_type": "",
                "timestamp": 1748779200000,
                "reportData": payload["report_rows"],
                "summaryData": None,
                "scoresData": [],
            },
        ]
        storage.set(CACHE_STORAGE_KEY, json.dumps(legacy))
        assert [r.filter_key.experiment_tracker for r in store.list()] == ["newer", "older"]


# ---------------------------------------------------------------------------
# Quota fallback
# ---------------------------------------------------------------------------


class TestQuota:
    def test_quota_evicts_oldest_to_fit_new_entry(self):
        one = len(json.dumps({"version": 2, "data": [make_report().to_dict()]}, separators=(",", ":")))
        store, _ = _store(max_bytes=int(one * 2.5))
        for i in range(4):
            store.put(make_report(tracker=f"exp-{i}", fetched_at=minutes(i)))
        trackers = [r.filter_key.experiment_tracker for r in store.list()]
        assert "exp-3" in trackers
        assert "exp-0" not in trackers
        assert len(trackers) <= 2

    def test_entry_larger_than_quota_leaves_cache_unchanged(self, caplog):
        store, storage = _store(max_bytes=10)
        with caplog.at_level(logging.ERROR, logger="evalboard.report_cache"):
            store.put(make_report())
        assert storage.get(CACHE_STORAGE_KEY) is None
        assert "exceeds storage quota" in caplog.text
