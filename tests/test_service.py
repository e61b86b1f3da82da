"""Tests for analysis orchestration."""

import asyncio
from datetime import timedelta

import pytest

from bugexplorer.github_client import NotFoundError
from bugexplorer.models import RawBranch
from bugexplorer.service import AnalysisService, RepositoryURLError
from bugexplorer.storage import MemoryStore


class Clock:
    """Settable time source shared by the service and the store."""

    def __init__(self, start):
        self.current = start

    def __call__(self):
        return self.current


@pytest.fixture
def clock(now) -> Clock:
    return Clock(now)


@pytest.fixture
def build_service(clock, fake_client_factory, sample_commits):
    """Create an AnalysisService backed by a fake client."""

    def _build(**client_kwargs):
        client_kwargs.setdefault("commits", sample_commits)
        factory = fake_client_factory(**client_kwargs)
        service = AnalysisService(
            store=MemoryStore(clock=clock),
            client_factory=factory,
            clock=clock,
        )
        return service, factory

    return _build


class TestAnalysisService:
    """Tests for AnalysisService."""

    @pytest.mark.asyncio
    async def test_invalid_url(self, build_service) -> None:
        """Test an unparseable URL is rejected before any fetch."""
        service, factory = build_service()

        with pytest.raises(RepositoryURLError, match="https://github.com/owner/repo"):
            await service.analyze_url("https://example.com/nothing")

        assert factory.created == []

    @pytest.mark.asyncio
    async def test_analyze_stores_record(self, build_service, now) -> None:
        """Test a miss fetches, analyzes and stores."""
        service, factory = build_service()

        record = await service.analyze_url("https://github.com/o/r.git")

        assert record.full_name == "o/r"
        assert record.analyzed_at == now
        assert record.bug_fix_count == 3
        assert service.store.get("o/r") is record
        assert len(factory.created) == 1

    @pytest.mark.asyncio
    async def test_cache_hit_within_ttl(self, build_service, clock) -> None:
        """Test a second request within the hour doesn't touch GitHub."""
        service, factory = build_service()

        first = await service.analyze_url("https://github.com/o/r")
        calls_after_first = list(factory.client.calls)
        clock.current += timedelta(minutes=59)
        second = await service.analyze_url("https://github.com/o/r")

        assert second is first
        assert second.to_dict() == first.to_dict()
        assert len(factory.created) == 1
        assert factory.client.calls == calls_after_first

    @pytest.mark.asyncio
    async def test_stale_record_reanalyzed(self, build_service, clock) -> None:
        """Test a record older than the TTL is replaced."""
        service, factory = build_service()

        first = await service.analyze("o", "r")
        clock.current += timedelta(hours=1, seconds=1)
        second = await service.analyze("o", "r")

        assert second is not first
        assert second.analyzed_at == clock.current
        assert len(factory.created) == 2
        assert len(service.list_repositories()) == 1

    @pytest.mark.asyncio
    async def test_concurrent_requests_analyze_once(self, build_service) -> None:
        """Test concurrent requests for one repository share a single analysis."""
        service, factory = build_service()

        results = await asyncio.gather(*(service.analyze("o", "r") for _ in range(3)))

        assert len(factory.created) == 1
        assert all(r is results[0] for r in results)

    @pytest.mark.asyncio
    async def test_upstream_errors_propagate(self, build_service) -> None:
        """Test GitHub errors reach the caller and nothing is stored."""
        service, _ = build_service(repository_error=NotFoundError("Repository not found.", 404))

        with pytest.raises(NotFoundError):
            await service.analyze("o", "missing")

        assert service.list_repositories() == []

    @pytest.mark.asyncio
    async def test_branch_failures_are_partial(
        self, build_service, make_commit, branch_error, now
    ) -> None:
        """Test a failing branch lookup still yields a record."""
        service, _ = build_service(
            branches=[RawBranch("dev"), RawBranch("broken")],
            branch_heads={
                "dev": make_commit("wip", now - timedelta(days=12)),
                "broken": branch_error,
            },
        )

        record = await service.analyze("o", "r")

        assert [b.name for b in record.stale_branches] == ["dev"]
        assert record.stale_branches[0].status == "inactive"
