"""Shared test fixtures."""

from datetime import UTC, datetime, timedelta

import pytest

from bugexplorer.github_client import GitHubAPIError
from bugexplorer.models import (
    RawBranch,
    RawCommit,
    RawContributor,
    RawIssue,
    RawPullRequest,
    RawRelease,
    RepositoryInfo,
)

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)


class FakeGitHubClient:
    """Stand-in for GitHubClient that serves canned data and records calls."""

    def __init__(
        self,
        commits: list[RawCommit] | None = None,
        issues: list[RawIssue] | None = None,
        pull_requests: list[RawPullRequest] | None = None,
        contributors: list[RawContributor] | None = None,
        branches: list[RawBranch] | None = None,
        releases: list[RawRelease] | None = None,
        branch_heads: dict[str, RawCommit | Exception | None] | None = None,
        repository_error: Exception | None = None,
    ):
        self.commits = commits or []
        self.issues = issues or []
        self.pull_requests = pull_requests or []
        self.contributors = contributors or []
        self.branches = branches or []
        self.releases = releases or []
        self.branch_heads = branch_heads or {}
        self.repository_error = repository_error
        self.calls: list[str] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        return None

    async def get_repository(self, owner, name):
        self.calls.append("repository")
        if self.repository_error:
            raise self.repository_error
        return RepositoryInfo(full_name=f"{owner}/{name}", html_url=f"https://github.com/{owner}/{name}")

    async def get_all_commits(self, owner, name, limit=1000):
        self.calls.append("commits")
        return self.commits[:limit]

    async def get_issues(self, owner, name):
        self.calls.append("issues")
        return self.issues

    async def get_pull_requests(self, owner, name):
        self.calls.append("pulls")
        return self.pull_requests

    async def get_contributors(self, owner, name):
        self.calls.append("contributors")
        return self.contributors

    async def get_branches(self, owner, name):
        self.calls.append("branches")
        return self.branches

    async def get_releases(self, owner, name):
        self.calls.append("releases")
        return self.releases

    async def get_branch_head(self, owner, name, branch):
        self.calls.append(f"head:{branch}")
        head = self.branch_heads.get(branch)
        if isinstance(head, Exception):
            raise head
        return head


@pytest.fixture
def now() -> datetime:
    """Fixed current time used across tests."""
    return NOW


@pytest.fixture
def make_commit():
    """Factory for RawCommit instances."""
    counter = iter(range(1, 10_000))

    def _make(
        message: str = "chore: tidy",
        date: datetime = NOW,
        login: str | None = "alice",
        name: str = "Alice",
        sha: str | None = None,
    ) -> RawCommit:
        return RawCommit(
            sha=sha or f"{next(counter):040x}",
            message=message,
            author_login=login,
            author_name=name,
            author_date=date,
        )

    return _make


@pytest.fixture
def sample_commits(make_commit) -> list[RawCommit]:
    """Mix of bug fixes and features by three authors."""
    return [
        make_commit("fix: crash on empty input", NOW - timedelta(days=1), "alice"),
        make_commit("feat: add export", NOW - timedelta(days=2), "alice"),
        make_commit("Fix bug in parser\n\nLong description", NOW - timedelta(days=3), "bob"),
        make_commit("docs: update readme", NOW - timedelta(days=40), "carol"),
        make_commit("hotfix: patch error handling", NOW - timedelta(days=400), None, "Ghost"),
    ]


@pytest.fixture
def fake_client_factory():
    """Build a FakeGitHubClient and a factory that counts invocations."""

    def _build(**kwargs):
        client = FakeGitHubClient(**kwargs)
        created = []

        def factory():
            created.append(client)
            return client

        factory.created = created
        factory.client = client
        return factory

    return _build


@pytest.fixture
def branch_error() -> GitHubAPIError:
    return GitHubAPIError("boom", status_code=500)


@pytest.fixture
def fake_client():
    """The FakeGitHubClient class, for building clients with canned data."""
    return FakeGitHubClient
