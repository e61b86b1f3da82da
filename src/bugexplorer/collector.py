"""Data collection from GitHub for a single repository."""

import asyncio
import logging

from bugexplorer.github_client import GitHubAPIError, GitHubClient
from bugexplorer.models import RawBranch, RawCommit, RepositorySnapshot

logger = logging.getLogger(__name__)


async def fetch_branch_heads(
    client: GitHubClient,
    owner: str,
    name: str,
    branches: list[RawBranch],
    limit: int = 20,
) -> list[tuple[RawBranch, RawCommit]]:
    """Fetch the latest commit of each branch, one request at a time.

    Only the first limit branches are looked up. A branch whose lookup
    fails is logged and left out.

    Args:
        client: Initialized GitHub client.
        owner: Repository owner/organization.
        name: Repository name.
        branches: Branches of the repository.
        limit: Maximum number of branches to look up.

    Returns:
        Pairs of branch and head commit, in branch order.
    """
    heads: list[tuple[RawBranch, RawCommit]] = []
    for branch in branches[:limit]:
        try:
            head = await client.get_branch_head(owner, name, branch.name)
        except GitHubAPIError as e:
            logger.warning("Could not analyze branch %s of %s/%s: %s", branch.name, owner, name, e)
            continue
        if head is not None:
            heads.append((branch, head))
    return heads


async def fetch_snapshot(
    client: GitHubClient,
    owner: str,
    name: str,
    commit_limit: int = 1000,
    branch_limit: int = 20,
) -> RepositorySnapshot:
    """Collect everything needed to analyze a repository.

    Args:
        client: Initialized GitHub client.
        owner: Repository owner/organization.
        name: Repository name.
        commit_limit: Maximum number of commits to fetch.
        branch_limit: Maximum number of branches to inspect.

    Returns:
        RepositorySnapshot with all raw collections.

    Raises:
        GitHubAPIError: When any of the repository-wide requests fails.
    """
    # Independent endpoints in parallel
    info, commits, issues, pull_requests, contributors, branches, releases = await asyncio.gather(
        client.get_repository(owner, name),
        client.get_all_commits(owner, name, limit=commit_limit),
        client.get_issues(owner, name),
        client.get_pull_requests(owner, name),
        client.get_contributors(owner, name),
        client.get_branches(owner, name),
        client.get_releases(owner, name),
    )
    logger.info(
        "Fetched %s/%s: %d commits, %d issues, %d pull requests, %d branches",
        owner,
        name,
        len(commits),
        len(issues),
        len(pull_requests),
        len(branches),
    )

    branch_heads = await fetch_branch_heads(client, owner, name, branches, limit=branch_limit)

    return RepositorySnapshot(
        owner=owner,
        name=name,
        info=info,
        commits=commits,
        issues=issues,
        pull_requests=pull_requests,
        contributors=contributors,
        branches=branches,
        releases=releases,
        branch_heads=branch_heads,
    )
