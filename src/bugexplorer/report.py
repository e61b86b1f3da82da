"""Tabular summaries of analytics records."""

from pathlib import Path

import polars as pl

from bugexplorer.models import AnalyticsRecord

SUMMARY_SCHEMA = {
    "full_name": pl.Utf8,
    "total_commits": pl.Int64,
    "bug_fixes": pl.Int64,
    "contributors": pl.Int64,
    "health_score": pl.Int64,
    "bus_factor_score": pl.Int64,
    "risk_level": pl.Utf8,
    "issues_open": pl.Int64,
    "issues_closed": pl.Int64,
    "pr_merge_rate": pl.Utf8,
    "avg_resolution_time": pl.Utf8,
    "stale_branches": pl.Int64,
    "analyzed_at": pl.Utf8,
}


def summary_row(record: AnalyticsRecord) -> dict:
    return {
        "full_name": record.full_name,
        "total_commits": record.total_commits,
        "bug_fixes": record.bug_fix_count,
        "contributors": record.contributor_count,
        "health_score": record.health_score,
        "bus_factor_score": record.bus_factor_score,
        "risk_level": record.bus_factor.risk_level,
        "issues_open": record.issues_open,
        "issues_closed": record.issues_closed,
        "pr_merge_rate": record.pr_merge_rate,
        "avg_resolution_time": record.avg_resolution_time,
        "stale_branches": sum(1 for b in record.stale_branches if b.status != "active"),
        "analyzed_at": record.analyzed_at.isoformat() if record.analyzed_at else None,
    }


def build_summary(records: list[AnalyticsRecord]) -> pl.DataFrame:
    """Build one summary row per repository.

    Args:
        records: Analytics records to summarize.

    Returns:
        DataFrame sorted by repository name.
    """
    if not records:
        return pl.DataFrame(schema=SUMMARY_SCHEMA)
    return pl.DataFrame([summary_row(r) for r in records], schema=SUMMARY_SCHEMA).sort(
        "full_name"
    )


def write_summary(df: pl.DataFrame, output_path: Path) -> None:
    """Write a summary as CSV or JSON depending on the file suffix.

    Args:
        df: Summary DataFrame.
        output_path: Destination ending in .csv or .json.

    Raises:
        ValueError: For any other suffix.
    """
    suffix = output_path.suffix.lower()
    if suffix not in (".csv", ".json"):
        raise ValueError(f"Unsupported output format: {output_path.suffix or '(none)'}")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    if suffix == ".csv":
        df.write_csv(output_path)
    else:
        df.write_json(output_path)
