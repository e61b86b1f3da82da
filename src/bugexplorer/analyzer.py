"""Analytics derived from fetched repository history.

Every function here is pure. The current time is always passed in as ``now``
(an aware UTC datetime) so results are reproducible.
"""

from collections import Counter
from datetime import UTC, date, datetime, timedelta

from bugexplorer.models import (
    AnalyticsRecord,
    BugFixSummary,
    BusFactor,
    ChangelogEntry,
    ContributorShare,
    HeatmapDay,
    MonthlyTrend,
    RawBranch,
    RawCommit,
    RawContributor,
    RawIssue,
    RawPullRequest,
    RawRelease,
    RepositorySnapshot,
    StaleBranch,
    TopContributor,
    format_timestamp,
)

BUG_KEYWORDS = ("fix", "bug", "patch", "hotfix", "bugfix", "error", "issue", "crash", "fail")
FEATURE_KEYWORDS = ("feat", "add", "implement")
IMPROVEMENT_KEYWORDS = ("improve", "update", "enhance")
BREAKING_KEYWORDS = ("break", "remove", "deprecate")

DEFAULT_BRANCHES = ("main", "master")
HEATMAP_DAYS = 366
RECENT_ACTIVITY_WINDOW = timedelta(days=30)

BUS_FACTOR_RECOMMENDATIONS = {
    "high": [
        "Critical: Knowledge is concentrated in one developer",
        "Implement pair programming and code reviews",
        "Document key processes and architectural decisions",
    ],
    "medium": [
        "Consider spreading contributions more evenly",
        "Encourage more contributors to participate",
    ],
    "low": [
        "Good distribution of contributions",
        "Continue encouraging diverse participation",
    ],
}
BUS_FACTOR_SCORES = {"high": 20, "medium": 50, "low": 80}


def _contains_any(text: str, keywords: tuple[str, ...]) -> bool:
    return any(keyword in text for keyword in keywords)


def is_bug_fix(message: str) -> bool:
    """Check whether a commit message mentions any bug keyword."""
    return _contains_any(message.lower(), BUG_KEYWORDS)


def count_bug_fixes(commits: list[RawCommit]) -> int:
    return sum(1 for c in commits if is_bug_fix(c.message))


def count_bug_keywords(commits: list[RawCommit]) -> dict[str, int]:
    """Count commits mentioning each bug keyword.

    Keywords are counted independently: "fix bug" increments both
    "fix" and "bug".

    Args:
        commits: Commits to scan.

    Returns:
        Mapping with every keyword present, zero when unused.
    """
    counts = dict.fromkeys(BUG_KEYWORDS, 0)
    for commit in commits:
        message = commit.message.lower()
        for keyword in BUG_KEYWORDS:
            if keyword in message:
                counts[keyword] += 1
    return counts


def _commit_day(commit: RawCommit) -> date:
    return commit.author_date.astimezone(UTC).date()


def build_commit_heatmap(commits: list[RawCommit], now: datetime) -> list[HeatmapDay]:
    """Build a gapless per-day commit count for the last 366 days.

    Args:
        commits: Commits to place on the calendar (by author date).
        now: Current time; its UTC date is the last day of the window.

    Returns:
        HeatmapDay entries, oldest first.
    """
    today = now.astimezone(UTC).date()
    start = today - timedelta(days=HEATMAP_DAYS - 1)

    counts: dict[date, int] = {start + timedelta(days=i): 0 for i in range(HEATMAP_DAYS)}
    for commit in commits:
        day = _commit_day(commit)
        if day in counts:
            counts[day] += 1

    return [
        HeatmapDay(date=day.isoformat(), count=count, level=min(4, count // 2))
        for day, count in counts.items()
    ]


def _commits_per_login(commits: list[RawCommit]) -> Counter:
    return Counter(c.author_login for c in commits if c.author_login)


def _sorted_by_count(per_login: Counter) -> list[tuple[str, int]]:
    # sorted() is stable, so ties keep first-appearance order
    return sorted(per_login.items(), key=lambda item: item[1], reverse=True)


def _avatar_lookup(
    commits: list[RawCommit], contributors: list[RawContributor]
) -> dict[str, str]:
    avatars = {
        c.author_login: c.author_avatar for c in commits if c.author_login and c.author_avatar
    }
    avatars.update({c.login: c.avatar_url for c in contributors if c.avatar_url})
    return avatars


def count_contributors(commits: list[RawCommit]) -> int:
    """Number of distinct linked commit authors."""
    return len({c.author_login for c in commits if c.author_login})


def top_contributors(
    commits: list[RawCommit],
    contributors: list[RawContributor],
    limit: int = 5,
) -> list[TopContributor]:
    """Rank commit authors by number of commits.

    Args:
        commits: Commits to attribute.
        contributors: Contributor list, used for avatars.
        limit: Number of contributors to return.

    Returns:
        Up to limit TopContributor, highest commit count first.
    """
    avatars = _avatar_lookup(commits, contributors)
    ranked = _sorted_by_count(_commits_per_login(commits))[:limit]
    return [
        TopContributor(
            username=username,
            commit_count=count,
            initials=username[:2].upper(),
            avatar=avatars.get(username, ""),
        )
        for username, count in ranked
    ]


def recent_bug_fixes(commits: list[RawCommit], limit: int = 5) -> list[BugFixSummary]:
    bug_fixes = [c for c in commits if is_bug_fix(c.message)]
    bug_fixes.sort(key=lambda c: c.author_date, reverse=True)
    return [
        BugFixSummary(
            message=c.first_line,
            author=c.author,
            date=format_timestamp(c.author_date),
            short_sha=c.short_sha,
        )
        for c in bug_fixes[:limit]
    ]


def health_score(
    commits: list[RawCommit],
    issues: list[RawIssue],
    pull_requests: list[RawPullRequest],
    now: datetime,
) -> int:
    """Score overall repository health from 0 to 100.

    Starts at 50, adds up to 20 for commits in the last 30 days, and up to
    15 each for the closed-issue ratio and the merged-PR ratio.

    Args:
        commits: All fetched commits.
        issues: Open and closed issues.
        pull_requests: Open and closed pull requests.
        now: Current time.

    Returns:
        Health score rounded half up.
    """
    score = 50.0

    cutoff = now - RECENT_ACTIVITY_WINDOW
    recent = sum(1 for c in commits if c.author_date >= cutoff)
    score += min(20, recent)

    if issues:
        closed = sum(1 for i in issues if i.state == "closed")
        score += closed / len(issues) * 15

    if pull_requests:
        merged = sum(1 for pr in pull_requests if pr.merged_at is not None)
        score += merged / len(pull_requests) * 15

    score = max(0.0, min(100.0, score))
    return int(score + 0.5)


def bus_factor_risk(primary_percentage: float, top_two_percentage: float) -> str:
    """Map contributor concentration to a risk tier."""
    if primary_percentage >= 80:
        return "high"
    if top_two_percentage >= 70:
        return "medium"
    return "low"


def bus_factor(
    commits: list[RawCommit], contributors: list[RawContributor]
) -> tuple[int, BusFactor]:
    """Assess how concentrated commits are among contributors.

    Percentages are relative to all commits, including ones without a
    linked author, so they may sum to less than 100.

    Args:
        commits: All fetched commits.
        contributors: Contributor list, used for avatars.

    Returns:
        Tuple of (bus factor score, BusFactor details).
    """
    total = len(commits)
    avatars = _avatar_lookup(commits, contributors)
    shares = [
        ContributorShare(
            username=username,
            commit_count=count,
            percentage=count * 100 / total,
            avatar=avatars.get(username, ""),
        )
        for username, count in _sorted_by_count(_commits_per_login(commits))
    ]

    primary = shares[0].percentage if shares else 0.0
    top_two = sum(s.percentage for s in shares[:2])
    risk_level = bus_factor_risk(primary, top_two)

    return BUS_FACTOR_SCORES[risk_level], BusFactor(
        risk_level=risk_level,
        primary_contributor_percentage=primary,
        contributor_distribution=shares[:8],
        recommendations=list(BUS_FACTOR_RECOMMENDATIONS[risk_level]),
    )


def classify_branch_age(days: int) -> str:
    if days <= 7:
        return "active"
    if days <= 30:
        return "inactive"
    return "abandoned"


def stale_branches(
    branch_heads: list[tuple[RawBranch, RawCommit]], now: datetime
) -> list[StaleBranch]:
    """Report branches by age of their latest commit.

    Every non-default branch is reported; main/master only once older
    than 7 days.

    Args:
        branch_heads: Pairs of branch and its latest commit.
        now: Current time.

    Returns:
        StaleBranch entries, oldest activity first.
    """
    result = []
    for branch, head in branch_heads:
        days = (now - head.author_date).days
        if days <= 7 and branch.name in DEFAULT_BRANCHES:
            continue
        result.append(
            StaleBranch(
                name=branch.name,
                last_commit_date=format_timestamp(head.author_date),
                short_sha=head.short_sha,
                days_since_last_commit=days,
                status=classify_branch_age(days),
                last_commit_message=head.first_line,
                author=head.author,
            )
        )
    result.sort(key=lambda b: b.days_since_last_commit, reverse=True)
    return result


def _month_start(now: datetime, months_back: int) -> date:
    index = now.year * 12 + (now.month - 1) - months_back
    return date(index // 12, index % 12 + 1, 1)


def _commits_in_month(commits: list[RawCommit], month: date) -> list[RawCommit]:
    return [c for c in commits if _commit_day(c).replace(day=1) == month]


def classify_change(line: str) -> str:
    """Pick the changelog bucket for a commit summary line.

    Returns:
        One of "bug_fixes", "features", "improvements" or "breaking".
    """
    text = line.lower()
    if _contains_any(text, BUG_KEYWORDS):
        return "bug_fixes"
    if _contains_any(text, FEATURE_KEYWORDS):
        return "features"
    if _contains_any(text, IMPROVEMENT_KEYWORDS):
        return "improvements"
    if _contains_any(text, BREAKING_KEYWORDS):
        return "breaking"
    return "improvements"


def generate_changelog(
    commits: list[RawCommit], now: datetime, months: int = 3
) -> list[ChangelogEntry]:
    """Synthesize monthly changelog entries from commit messages.

    Args:
        commits: All fetched commits.
        now: Current time; its month is the newest entry.
        months: How many months to cover, current month included.

    Returns:
        ChangelogEntry per month with commits, newest first.
    """
    entries = []
    for months_back in range(months):
        month = _month_start(now, months_back)
        month_commits = _commits_in_month(commits, month)
        if not month_commits:
            continue

        buckets: dict[str, list[str]] = {
            "features": [],
            "bug_fixes": [],
            "improvements": [],
            "breaking": [],
        }
        for commit in month_commits:
            line = commit.first_line
            buckets[classify_change(line)].append(line)

        entries.append(
            ChangelogEntry(
                version=f"v{month.year}.{month.month:02d}.0",
                date=month.isoformat(),
                features=buckets["features"][:5],
                bug_fixes=buckets["bug_fixes"][:5],
                improvements=buckets["improvements"][:3],
                breaking=buckets["breaking"][:2],
            )
        )
    return entries


def monthly_trends(
    commits: list[RawCommit], now: datetime, months: int = 6
) -> list[MonthlyTrend]:
    """Count bug-fix and feature commits per month, oldest month first."""
    trends = []
    for months_back in reversed(range(months)):
        month = _month_start(now, months_back)
        month_commits = _commits_in_month(commits, month)
        trends.append(
            MonthlyTrend(
                month=month.strftime("%Y-%m"),
                bug_fixes=sum(1 for c in month_commits if is_bug_fix(c.message)),
                features=sum(
                    1
                    for c in month_commits
                    if not is_bug_fix(c.message)
                    and _contains_any(c.message.lower(), FEATURE_KEYWORDS)
                ),
            )
        )
    return trends


def issue_summary(issues: list[RawIssue]) -> tuple[int, int, str]:
    """Summarize issue counts and time to close.

    Returns:
        Tuple of (open count, closed count, average resolution text).
    """
    open_count = sum(1 for i in issues if i.state == "open")
    closed = [i for i in issues if i.state == "closed"]

    resolved = [i for i in closed if i.closed_at is not None]
    avg_resolution = "0 days"
    if resolved:
        total_seconds = sum((i.closed_at - i.created_at).total_seconds() for i in resolved)
        avg_days = int(total_seconds / len(resolved) / 86400 + 0.5)
        avg_resolution = f"{avg_days} day{'' if avg_days == 1 else 's'}"

    return open_count, len(closed), avg_resolution


def pr_merge_rate(pull_requests: list[RawPullRequest]) -> str:
    if not pull_requests:
        return "0%"
    merged = sum(1 for pr in pull_requests if pr.merged_at is not None)
    return f"{merged / len(pull_requests) * 100:.1f}%"


def latest_release(releases: list[RawRelease]) -> RawRelease | None:
    published = [r for r in releases if r.published_at is not None]
    if not published:
        return None
    return max(published, key=lambda r: r.published_at)


def analyze_repository(snapshot: RepositorySnapshot, now: datetime) -> AnalyticsRecord:
    """Compute the full analytics record for a fetched repository.

    Args:
        snapshot: Raw collections fetched from GitHub.
        now: Current time used for all relative date math.

    Returns:
        AnalyticsRecord without analyzed_at; the store stamps it.
    """
    commits = snapshot.commits
    issues_open, issues_closed, avg_resolution = issue_summary(snapshot.issues)
    score, bus = bus_factor(commits, snapshot.contributors)

    return AnalyticsRecord(
        owner=snapshot.owner,
        name=snapshot.name,
        full_name=snapshot.full_name,
        url=snapshot.info.html_url or f"https://github.com/{snapshot.full_name}",
        total_commits=len(commits),
        bug_fix_count=count_bug_fixes(commits),
        contributor_count=count_contributors(commits),
        health_score=health_score(commits, snapshot.issues, snapshot.pull_requests, now),
        issues_open=issues_open,
        issues_closed=issues_closed,
        pr_merge_rate=pr_merge_rate(snapshot.pull_requests),
        avg_resolution_time=avg_resolution,
        commit_heatmap=build_commit_heatmap(commits, now),
        bug_keyword_counts=count_bug_keywords(commits),
        top_contributors=top_contributors(commits, snapshot.contributors),
        recent_bug_fixes=recent_bug_fixes(commits),
        bus_factor_score=score,
        bus_factor=bus,
        stale_branches=stale_branches(snapshot.branch_heads, now),
        changelog=generate_changelog(commits, now),
        monthly_trends=monthly_trends(commits, now),
        latest_release=latest_release(snapshot.releases),
    )
