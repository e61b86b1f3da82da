"""Analysis orchestration: cache check, fetch, analyze, store."""

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from bugexplorer.analyzer import analyze_repository
from bugexplorer.collector import fetch_snapshot
from bugexplorer.config import Settings
from bugexplorer.github_client import GitHubClient, parse_repository_url
from bugexplorer.models import AnalyticsRecord
from bugexplorer.storage import MemoryStore, RepositoryStore

logger = logging.getLogger(__name__)

INVALID_URL_MESSAGE = (
    "Invalid GitHub repository URL. Please use format: https://github.com/owner/repo"
)


class RepositoryURLError(ValueError):
    """Raised when a submitted URL doesn't name a GitHub repository."""


class AnalysisService:
    """Serves analytics records, re-analyzing only when the cache is stale.

    At most one analysis per repository runs at a time; concurrent callers
    for the same repository wait and then get the freshly cached record.

    Attributes:
        store: Where analytics records are kept.
        client_factory: Creates a GitHub client (an async context manager).
        cache_ttl: How long a stored record counts as fresh.
    """

    def __init__(
        self,
        store: RepositoryStore,
        client_factory: Callable[[], GitHubClient],
        cache_ttl: timedelta = timedelta(hours=1),
        commit_limit: int = 1000,
        branch_limit: int = 20,
        clock: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self.client_factory = client_factory
        self.cache_ttl = cache_ttl
        self.commit_limit = commit_limit
        self.branch_limit = branch_limit
        self.clock = clock or (lambda: datetime.now(UTC))
        self._locks: dict[str, asyncio.Lock] = {}

    @classmethod
    def from_settings(
        cls, settings: Settings, store: RepositoryStore | None = None
    ) -> "AnalysisService":
        """Build a service talking to the real GitHub API.

        Args:
            settings: Application settings.
            store: Store to use, a fresh MemoryStore by default.

        Returns:
            Configured AnalysisService.
        """
        return cls(
            store=store if store is not None else MemoryStore(),
            client_factory=lambda: GitHubClient(
                token=settings.github_token,
                base_url=settings.api_base_url,
                timeout=settings.request_timeout,
            ),
            cache_ttl=timedelta(seconds=settings.cache_ttl_seconds),
            commit_limit=settings.commit_limit,
            branch_limit=settings.branch_limit,
        )

    def is_fresh(self, record: AnalyticsRecord) -> bool:
        if record.analyzed_at is None:
            return False
        return record.analyzed_at > self.clock() - self.cache_ttl

    async def analyze_url(self, url: str) -> AnalyticsRecord:
        """Analyze the repository a GitHub URL points at.

        Raises:
            RepositoryURLError: When the URL can't be parsed.
            GitHubAPIError: When fetching from GitHub fails.
        """
        parsed = parse_repository_url(url)
        if parsed is None:
            raise RepositoryURLError(INVALID_URL_MESSAGE)
        owner, name = parsed
        return await self.analyze(owner, name)

    async def analyze(self, owner: str, name: str) -> AnalyticsRecord:
        """Return analytics for a repository, from cache when fresh.

        Args:
            owner: Repository owner/organization.
            name: Repository name.

        Returns:
            The stored AnalyticsRecord.
        """
        full_name = f"{owner}/{name}"
        lock = self._locks.setdefault(full_name, asyncio.Lock())

        async with lock:
            cached = self.store.get(full_name)
            if cached is not None and self.is_fresh(cached):
                logger.info("Cache hit for %s (analyzed at %s)", full_name, cached.analyzed_at)
                return cached

            logger.info("Analyzing %s", full_name)
            async with self.client_factory() as client:
                snapshot = await fetch_snapshot(
                    client,
                    owner,
                    name,
                    commit_limit=self.commit_limit,
                    branch_limit=self.branch_limit,
                )

            record = analyze_repository(snapshot, self.clock())
            return self.store.upsert(record)

    def list_repositories(self) -> list[AnalyticsRecord]:
        return self.store.list_all()
