"""Async GitHub REST API client for repository history."""

import asyncio
import re
from datetime import UTC, datetime
from typing import Self

import httpx

from bugexplorer.models import (
    RawBranch,
    RawCommit,
    RawContributor,
    RawIssue,
    RawPullRequest,
    RawRelease,
    RepositoryInfo,
)

_REPO_URL_PATTERN = re.compile(r"github\.com/([^/]+)/([^/]+)")


class GitHubAPIError(Exception):
    """Base exception for GitHub API errors."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(GitHubAPIError):
    """Raised when repository doesn't exist or no access."""


class RateLimitError(GitHubAPIError):
    """Raised when rate limit is exceeded."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        reset_at: datetime | None = None,
    ):
        """Initialize with reset time.

        Args:
            message: Error message.
            status_code: HTTP status returned by GitHub.
            reset_at: When rate limit resets (UTC).
        """
        super().__init__(message, status_code)
        self.reset_at = reset_at


class UpstreamError(GitHubAPIError):
    """Raised for any other unsuccessful GitHub response."""


class AuthenticationError(UpstreamError):
    """Raised for authentication failures."""


def parse_repository_url(url: str) -> tuple[str, str] | None:
    """Extract (owner, name) from a GitHub repository URL.

    Args:
        url: URL such as "https://github.com/owner/repo.git".

    Returns:
        Tuple of owner and repository name, or None when the URL doesn't match.
    """
    match = _REPO_URL_PATTERN.search(url)
    if not match:
        return None
    owner, name = match.group(1), match.group(2)
    if name.endswith(".git"):
        name = name[: -len(".git")]
    return owner, name


class GitHubClient:
    """Async client for the GitHub repository endpoints.

    Every failure is raised immediately; nothing is retried.

    Attributes:
        BASE_URL: GitHub API base URL.
        PER_PAGE: Page size used for list endpoints.
    """

    BASE_URL = "https://api.github.com"
    PER_PAGE = 100

    def __init__(self, token: str = "", base_url: str | None = None, timeout: float = 30.0):
        """Initialize client.

        Args:
            token: GitHub personal access token. Empty for unauthenticated access.
            base_url: Override of the API base URL.
            timeout: Request timeout in seconds.
        """
        self.token = token
        self.base_url = base_url or self.BASE_URL
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> Self:
        """Enter async context manager."""
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": "bugexplorer",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=self.timeout,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context manager."""
        if self._client:
            await self._client.aclose()

    async def _request(self, path: str, params: dict | None = None) -> dict | list:
        """Execute a GET request.

        Args:
            path: API endpoint path.
            params: Query parameters.

        Returns:
            Parsed JSON response.

        Raises:
            NotFoundError: When resource not found.
            RateLimitError: When GitHub throttles the request.
            AuthenticationError: For auth failures.
            UpstreamError: For other API errors and transport failures.
        """
        if not self._client:
            raise RuntimeError("Client not initialized. Use async context manager.")

        try:
            response = await self._client.get(path, params=params)
        except httpx.RequestError as e:
            raise UpstreamError(f"Request failed: {e}") from e

        if response.is_success:
            return response.json()

        status = response.status_code
        if status == 404:
            raise NotFoundError(
                "Repository not found. Please check the repository URL.", status_code=status
            )

        if status in (403, 429):
            reset_at = None
            reset_header = response.headers.get("X-RateLimit-Reset")
            if reset_header and reset_header.isdigit():
                reset_at = datetime.fromtimestamp(int(reset_header), tz=UTC)
            raise RateLimitError(
                "API rate limit exceeded. Please try again later.",
                status_code=status,
                reset_at=reset_at,
            )

        if status == 401:
            raise AuthenticationError("Invalid or expired token", status_code=status)

        raise UpstreamError(
            f"GitHub API error: {status} {response.reason_phrase}".rstrip(),
            status_code=status,
        )

    async def _paginate(self, path: str, params: dict | None = None, limit: int = 100) -> list:
        """Follow numbered pages until a short page or the limit is reached.

        Args:
            path: API endpoint path of a list endpoint.
            params: Extra query parameters.
            limit: Maximum number of items to return.

        Returns:
            Raw JSON items, at most limit of them.
        """
        per_page = min(self.PER_PAGE, limit)
        items: list = []
        page = 1
        while len(items) < limit:
            data = await self._request(path, {**(params or {}), "page": page, "per_page": per_page})
            if not data:
                break
            items.extend(data)
            if len(data) < per_page:
                break
            page += 1
        return items[:limit]

    async def get_repository(self, owner: str, name: str) -> RepositoryInfo:
        """Fetch repository metadata.

        Args:
            owner: Repository owner/organization.
            name: Repository name.

        Returns:
            RepositoryInfo for the repository.
        """
        data = await self._request(f"/repos/{owner}/{name}")
        return RepositoryInfo.from_api(data)

    async def get_commits(
        self, owner: str, name: str, page: int = 1, per_page: int = PER_PAGE
    ) -> list[RawCommit]:
        """Fetch a single page of commits on the default branch."""
        data = await self._request(
            f"/repos/{owner}/{name}/commits", {"page": page, "per_page": per_page}
        )
        return [RawCommit.from_api(item) for item in data]

    async def get_all_commits(self, owner: str, name: str, limit: int = 1000) -> list[RawCommit]:
        """Fetch commits newest first, following pages up to limit.

        Args:
            owner: Repository owner/organization.
            name: Repository name.
            limit: Maximum number of commits to fetch.

        Returns:
            List of RawCommit, at most limit entries.
        """
        data = await self._paginate(f"/repos/{owner}/{name}/commits", limit=limit)
        return [RawCommit.from_api(item) for item in data]

    async def get_issues(self, owner: str, name: str, limit: int = 100) -> list[RawIssue]:
        """Fetch open and closed issues, open ones first."""
        path = f"/repos/{owner}/{name}/issues"
        open_items, closed_items = await asyncio.gather(
            self._paginate(path, {"state": "open"}, limit=limit),
            self._paginate(path, {"state": "closed"}, limit=limit),
        )
        return [RawIssue.from_api(item) for item in [*open_items, *closed_items]]

    async def get_pull_requests(
        self, owner: str, name: str, limit: int = 100
    ) -> list[RawPullRequest]:
        """Fetch open and closed pull requests, open ones first."""
        path = f"/repos/{owner}/{name}/pulls"
        open_items, closed_items = await asyncio.gather(
            self._paginate(path, {"state": "open"}, limit=limit),
            self._paginate(path, {"state": "closed"}, limit=limit),
        )
        return [RawPullRequest.from_api(item) for item in [*open_items, *closed_items]]

    async def get_contributors(
        self, owner: str, name: str, limit: int = 100
    ) -> list[RawContributor]:
        data = await self._paginate(f"/repos/{owner}/{name}/contributors", limit=limit)
        return [RawContributor.from_api(item) for item in data]

    async def get_branches(self, owner: str, name: str, limit: int = 100) -> list[RawBranch]:
        data = await self._paginate(f"/repos/{owner}/{name}/branches", limit=limit)
        return [RawBranch.from_api(item) for item in data]

    async def get_releases(self, owner: str, name: str, limit: int = 10) -> list[RawRelease]:
        """Fetch the most recent releases.

        Args:
            owner: Repository owner/organization.
            name: Repository name.
            limit: Number of releases to fetch.

        Returns:
            List of RawRelease in API order (newest first).
        """
        data = await self._paginate(f"/repos/{owner}/{name}/releases", limit=limit)
        return [RawRelease.from_api(item) for item in data]

    async def get_branch_head(self, owner: str, name: str, branch: str) -> RawCommit | None:
        """Fetch the most recent commit on a branch.

        Returns:
            The head commit, or None for a branch without commits.
        """
        data = await self._request(
            f"/repos/{owner}/{name}/commits", {"sha": branch, "per_page": 1}
        )
        if not data:
            return None
        return RawCommit.from_api(data[0])
