"""Tests for summary reports."""

import json
from pathlib import Path

import polars as pl
import pytest

from bugexplorer.analyzer import analyze_repository
from bugexplorer.models import RepositoryInfo, RepositorySnapshot
from bugexplorer.report import build_summary, write_summary
from bugexplorer.storage import MemoryStore


@pytest.fixture
def records(sample_commits, now):
    """Two stored analytics records."""
    store = MemoryStore(clock=lambda: now)
    for owner, name in [("zeta", "last"), ("alpha", "first")]:
        snapshot = RepositorySnapshot(
            owner=owner,
            name=name,
            info=RepositoryInfo(full_name=f"{owner}/{name}", html_url=""),
            commits=sample_commits,
        )
        store.upsert(analyze_repository(snapshot, now))
    return store.list_all()


class TestSummary:
    """Tests for build_summary and write_summary."""

    def test_build_summary(self, records) -> None:
        """Test one sorted row per repository."""
        df = build_summary(records)

        assert df["full_name"].to_list() == ["alpha/first", "zeta/last"]
        assert df["bug_fixes"].to_list() == [3, 3]
        assert df["risk_level"][0] == "low"

    def test_build_summary_empty(self) -> None:
        df = build_summary([])
        assert df.is_empty()
        assert "health_score" in df.columns

    def test_write_csv(self, records, tmp_path: Path) -> None:
        output = tmp_path / "reports" / "summary.csv"

        write_summary(build_summary(records), output)

        assert pl.read_csv(output)["full_name"].to_list() == ["alpha/first", "zeta/last"]

    def test_write_json(self, records, tmp_path: Path) -> None:
        output = tmp_path / "summary.json"

        write_summary(build_summary(records), output)

        assert len(json.loads(output.read_text())) == 2

    def test_unsupported_format(self, records, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="Unsupported output format"):
            write_summary(build_summary(records), tmp_path / "summary.xlsx")
