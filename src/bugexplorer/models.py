"""Data models for bugexplorer."""

from dataclasses import dataclass, field
from datetime import UTC, datetime


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a GitHub ISO-8601 timestamp into an aware UTC datetime.

    Args:
        value: Timestamp such as "2024-01-01T12:00:00Z", or None.

    Returns:
        Aware datetime in UTC, or None when value is empty.
    """
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def format_timestamp(value: datetime | None) -> str | None:
    """Format a datetime the way GitHub does (UTC, trailing Z)."""
    if value is None:
        return None
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass(frozen=True)
class RawCommit:
    """Commit as returned by the GitHub commits endpoint.

    Attributes:
        sha: Full commit SHA.
        message: Full commit message.
        author_login: GitHub login of the author, None when unlinked.
        author_name: Raw git author name.
        author_date: Git author date (UTC).
        author_avatar: Avatar URL of the linked GitHub user.
    """

    sha: str
    message: str
    author_login: str | None
    author_name: str
    author_date: datetime
    author_avatar: str = ""

    @classmethod
    def from_api(cls, item: dict) -> "RawCommit":
        commit = item.get("commit") or {}
        git_author = commit.get("author") or {}
        user = item.get("author") or {}
        return cls(
            sha=item.get("sha", ""),
            message=commit.get("message", ""),
            author_login=user.get("login"),
            author_name=git_author.get("name", ""),
            author_date=parse_timestamp(git_author.get("date")) or datetime.fromtimestamp(0, UTC),
            author_avatar=user.get("avatar_url") or "",
        )

    @property
    def first_line(self) -> str:
        return self.message.split("\n")[0]

    @property
    def short_sha(self) -> str:
        return self.sha[:7]

    @property
    def author(self) -> str:
        """Login when linked to a GitHub account, raw git name otherwise."""
        return self.author_login or self.author_name


@dataclass(frozen=True)
class RawIssue:
    """Issue summary (state and lifetime only)."""

    number: int
    state: str
    created_at: datetime
    closed_at: datetime | None = None

    @classmethod
    def from_api(cls, item: dict) -> "RawIssue":
        return cls(
            number=item.get("number", 0),
            state=item.get("state", "open"),
            created_at=parse_timestamp(item.get("created_at")) or datetime.fromtimestamp(0, UTC),
            closed_at=parse_timestamp(item.get("closed_at")),
        )


@dataclass(frozen=True)
class RawPullRequest:
    """Pull request summary."""

    number: int
    state: str
    created_at: datetime
    merged_at: datetime | None = None

    @classmethod
    def from_api(cls, item: dict) -> "RawPullRequest":
        return cls(
            number=item.get("number", 0),
            state=item.get("state", "open"),
            created_at=parse_timestamp(item.get("created_at")) or datetime.fromtimestamp(0, UTC),
            merged_at=parse_timestamp(item.get("merged_at")),
        )


@dataclass(frozen=True)
class RawBranch:
    """Branch name and the SHA its ref points at."""

    name: str
    head_sha: str = ""

    @classmethod
    def from_api(cls, item: dict) -> "RawBranch":
        return cls(
            name=item.get("name", ""),
            head_sha=(item.get("commit") or {}).get("sha", ""),
        )


@dataclass(frozen=True)
class RawRelease:
    """GitHub release information.

    Attributes:
        tag: Release version tag (e.g., "v1.0.0").
        published_at: When the release was published, None for drafts.
        name: Release title (may be empty).
    """

    tag: str
    published_at: datetime | None
    name: str = ""

    @classmethod
    def from_api(cls, item: dict) -> "RawRelease":
        return cls(
            tag=item.get("tag_name", ""),
            published_at=parse_timestamp(item.get("published_at")),
            name=item.get("name") or "",
        )


@dataclass(frozen=True)
class RawContributor:
    """Entry of the contributors endpoint."""

    login: str
    avatar_url: str = ""
    contributions: int = 0

    @classmethod
    def from_api(cls, item: dict) -> "RawContributor":
        return cls(
            login=item.get("login", ""),
            avatar_url=item.get("avatar_url") or "",
            contributions=item.get("contributions", 0),
        )


@dataclass(frozen=True)
class RepositoryInfo:
    """Repository metadata from the GitHub API.

    Attributes:
        full_name: "owner/name" as reported by GitHub.
        html_url: Browser URL of the repository.
        default_branch: Name of the default branch.
        open_issues_count: Open issues and pull requests.
    """

    full_name: str
    html_url: str
    default_branch: str = "main"
    open_issues_count: int = 0

    @classmethod
    def from_api(cls, item: dict) -> "RepositoryInfo":
        return cls(
            full_name=item.get("full_name", ""),
            html_url=item.get("html_url", ""),
            default_branch=item.get("default_branch") or "main",
            open_issues_count=item.get("open_issues_count", 0),
        )


@dataclass
class RepositorySnapshot:
    """Everything fetched from GitHub for one analysis run."""

    owner: str
    name: str
    info: RepositoryInfo
    commits: list[RawCommit] = field(default_factory=list)
    issues: list[RawIssue] = field(default_factory=list)
    pull_requests: list[RawPullRequest] = field(default_factory=list)
    contributors: list[RawContributor] = field(default_factory=list)
    branches: list[RawBranch] = field(default_factory=list)
    releases: list[RawRelease] = field(default_factory=list)
    branch_heads: list[tuple[RawBranch, RawCommit]] = field(default_factory=list)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass(frozen=True)
class HeatmapDay:
    """Commit count for one calendar day."""

    date: str
    count: int
    level: int

    def to_dict(self) -> dict:
        return {"date": self.date, "count": self.count, "level": self.level}


@dataclass(frozen=True)
class TopContributor:
    username: str
    commit_count: int
    initials: str
    avatar: str = ""

    def to_dict(self) -> dict:
        return {
            "username": self.username,
            "commitCount": self.commit_count,
            "initials": self.initials,
            "avatar": self.avatar,
        }


@dataclass(frozen=True)
class BugFixSummary:
    message: str
    author: str
    date: str
    short_sha: str

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "author": self.author,
            "date": self.date,
            "shortSha": self.short_sha,
        }


@dataclass(frozen=True)
class ContributorShare:
    """Share of all commits authored by one contributor."""

    username: str
    commit_count: int
    percentage: float
    avatar: str = ""

    def to_dict(self) -> dict:
        return {
            "username": self.username,
            "commitCount": self.commit_count,
            "percentage": self.percentage,
            "avatar": self.avatar,
        }


@dataclass(frozen=True)
class BusFactor:
    """Contributor concentration assessment.

    Attributes:
        risk_level: "low", "medium" or "high".
        primary_contributor_percentage: Share of the top contributor.
        contributor_distribution: Top contributors by commit count.
        recommendations: Fixed advice for the risk tier.
    """

    risk_level: str
    primary_contributor_percentage: float
    contributor_distribution: list[ContributorShare]
    recommendations: list[str]

    def to_dict(self) -> dict:
        return {
            "riskLevel": self.risk_level,
            "primaryContributorPercentage": self.primary_contributor_percentage,
            "contributorDistribution": [c.to_dict() for c in self.contributor_distribution],
            "recommendations": list(self.recommendations),
        }


@dataclass(frozen=True)
class StaleBranch:
    name: str
    last_commit_date: str
    short_sha: str
    days_since_last_commit: int
    status: str
    last_commit_message: str
    author: str

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "lastCommitDate": self.last_commit_date,
            "shortSha": self.short_sha,
            "daysSinceLastCommit": self.days_since_last_commit,
            "status": self.status,
            "lastCommitMessage": self.last_commit_message,
            "author": self.author,
        }


@dataclass(frozen=True)
class ChangelogEntry:
    """Synthesized changelog for one calendar month."""

    version: str
    date: str
    features: list[str]
    bug_fixes: list[str]
    improvements: list[str]
    breaking: list[str]

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "date": self.date,
            "features": list(self.features),
            "bugFixes": list(self.bug_fixes),
            "improvements": list(self.improvements),
            "breaking": list(self.breaking),
        }


@dataclass(frozen=True)
class MonthlyTrend:
    month: str
    bug_fixes: int
    features: int

    def to_dict(self) -> dict:
        return {"month": self.month, "bugFixes": self.bug_fixes, "features": self.features}


@dataclass(frozen=True)
class AnalyticsRecord:
    """Derived analytics for one repository, keyed by full_name.

    analyzed_at is None until the record is stored.
    """

    owner: str
    name: str
    full_name: str
    url: str
    total_commits: int
    bug_fix_count: int
    contributor_count: int
    health_score: int
    issues_open: int
    issues_closed: int
    pr_merge_rate: str
    avg_resolution_time: str
    commit_heatmap: list[HeatmapDay]
    bug_keyword_counts: dict[str, int]
    top_contributors: list[TopContributor]
    recent_bug_fixes: list[BugFixSummary]
    bus_factor_score: int
    bus_factor: BusFactor
    stale_branches: list[StaleBranch]
    changelog: list[ChangelogEntry]
    monthly_trends: list[MonthlyTrend] = field(default_factory=list)
    latest_release: RawRelease | None = None
    analyzed_at: datetime | None = None

    def to_dict(self) -> dict:
        """Convert to the JSON shape served over HTTP.

        Returns:
            Dictionary with camelCase keys.
        """
        latest_release = None
        if self.latest_release is not None:
            latest_release = {
                "tag": self.latest_release.tag,
                "publishedAt": format_timestamp(self.latest_release.published_at),
            }
        return {
            "owner": self.owner,
            "name": self.name,
            "fullName": self.full_name,
            "url": self.url,
            "analyzedAt": self.analyzed_at.isoformat() if self.analyzed_at else None,
            "totalCommits": self.total_commits,
            "bugFixCount": self.bug_fix_count,
            "contributorCount": self.contributor_count,
            "healthScore": self.health_score,
            "issuesOpen": self.issues_open,
            "issuesClosed": self.issues_closed,
            "prMergeRate": self.pr_merge_rate,
            "avgResolutionTime": self.avg_resolution_time,
            "commitHeatmap": [d.to_dict() for d in self.commit_heatmap],
            "bugKeywordCounts": dict(self.bug_keyword_counts),
            "topContributors": [c.to_dict() for c in self.top_contributors],
            "recentBugFixes": [b.to_dict() for b in self.recent_bug_fixes],
            "busFactorScore": self.bus_factor_score,
            "busFactor": self.bus_factor.to_dict(),
            "staleBranches": [b.to_dict() for b in self.stale_branches],
            "changelog": [e.to_dict() for e in self.changelog],
            "monthlyTrends": [t.to_dict() for t in self.monthly_trends],
            "latestRelease": latest_release,
        }
