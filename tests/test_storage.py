"""Tests for the key-value storage backends."""

from __future__ import annotations

import pytest

from evalboard.storage import FileStorage, MemoryStorage, StorageQuotaExceeded


class TestMemoryStorage:
    def test_get_missing_returns_none(self):
        assert MemoryStorage().get("nope") is None

    def test_set_then_get(self):
        s = MemoryStorage()
        s.set("k", "v")
        assert s.get("k") == "v"

    def test_quota_rejects_large_values_and_keeps_previous(self):
        s = MemoryStorage(max_bytes=5)
        s.set("k", "small")
        with pytest.raises(StorageQuotaExceeded):
            s.set("k", "too large")
        assert s.get("k") == "small"


class TestFileStorage:
    def test_round_trip_creates_directory(self, tmp_path):
        s = FileStorage(tmp_path / "nested" / "cache")
        s.set("experiment_reports_cache", '{"version": 2, "data": []}')
        assert s.get("experiment_reports_cache") == '{"version": 2, "data": []}'
        assert (tmp_path / "nested" / "cache" / "experiment_reports_cache.json").exists()

    def test_missing_file_returns_none(self, tmp_path):
        assert FileStorage(tmp_path).get("absent") is None

    def test_key_is_sanitized_into_filename(self, tmp_path):
        s = FileStorage(tmp_path)
        assert s.path_for("../../etc/passwd").parent == tmp_path

    def test_no_temp_files_left_behind(self, tmp_path):
        s = FileStorage(tmp_path)
        s.set("k", "one")
        s.set("k", "two")
        assert [p.name for p in tmp_path.iterdir()] == ["k.json"]

    def test_quota_leaves_existing_file_untouched(self, tmp_path):
        s = FileStorage(tmp_path, max_bytes=3)
        s.set("k", "abc")
        with pytest.raises(StorageQuotaExceeded):
            s.set("k", "abcd")
        assert s.get("k") == "abc"
