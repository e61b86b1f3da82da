"""Tests for storage module."""

from datetime import timedelta

import pytest

from bugexplorer.analyzer import analyze_repository
from bugexplorer.models import RepositoryInfo, RepositorySnapshot
from bugexplorer.storage import MemoryStore


@pytest.fixture
def make_record(sample_commits, now):
    """Factory for analytics records of a given repository."""

    def _make(owner: str = "o", name: str = "r", commits=None):
        snapshot = RepositorySnapshot(
            owner=owner,
            name=name,
            info=RepositoryInfo(full_name=f"{owner}/{name}", html_url=""),
            commits=sample_commits if commits is None else commits,
        )
        return analyze_repository(snapshot, now)

    return _make


class TestMemoryStore:
    """Tests for MemoryStore class."""

    def test_get_missing(self) -> None:
        """Test lookup of an unknown key is a miss."""
        assert MemoryStore().get("o/r") is None

    def test_upsert_stamps_analyzed_at(self, make_record, now) -> None:
        """Test upsert returns the stored, timestamped record."""
        store = MemoryStore(clock=lambda: now)

        stored = store.upsert(make_record())

        assert stored.analyzed_at == now
        assert store.get("o/r") is stored

    def test_upsert_replaces_existing(self, make_record, now) -> None:
        """Test re-analysis replaces the record wholesale."""
        times = iter([now, now + timedelta(hours=2)])
        store = MemoryStore(clock=lambda: next(times))

        store.upsert(make_record())
        store.upsert(make_record(commits=[]))

        record = store.get("o/r")
        assert len(store) == 1
        assert record.total_commits == 0
        assert record.analyzed_at == now + timedelta(hours=2)

    def test_list_all(self, make_record) -> None:
        store = MemoryStore()
        store.upsert(make_record("a", "one"))
        store.upsert(make_record("b", "two"))

        assert {r.full_name for r in store.list_all()} == {"a/one", "b/two"}
