"""Command-line interface for bugexplorer."""

import asyncio
import json
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from bugexplorer.config import get_settings
from bugexplorer.github_client import GitHubAPIError
from bugexplorer.models import AnalyticsRecord
from bugexplorer.service import AnalysisService, RepositoryURLError

console = Console()


def configure_logging(level: str) -> None:
    """Route log records through rich."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
        force=True,
    )


def _summary_table(record: AnalyticsRecord) -> Table:
    table = Table(title=record.full_name)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Health score", str(record.health_score))
    table.add_row("Commits", str(record.total_commits))
    table.add_row("Bug fixes", str(record.bug_fix_count))
    table.add_row("Contributors", str(record.contributor_count))
    table.add_row("Open issues", str(record.issues_open))
    table.add_row("Closed issues", str(record.issues_closed))
    table.add_row("PR merge rate", record.pr_merge_rate)
    table.add_row("Avg. resolution", record.avg_resolution_time)
    table.add_row(
        "Bus factor",
        f"{record.bus_factor_score} ({record.bus_factor.risk_level} risk)",
    )
    table.add_row("Reported branches", str(len(record.stale_branches)))
    return table


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Bug-fix, contributor and branch analytics for GitHub repositories."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    settings = get_settings()
    configure_logging("DEBUG" if verbose else settings.log_level)


@main.command()
@click.option("--host", default=None, help="Bind address (default from settings)")
@click.option("--port", "-p", type=int, default=None, help="Port (default from settings)")
def serve(host: str | None, port: int | None) -> None:
    """Run the HTTP API.

    Examples:
        bugexplorer serve
        bugexplorer serve --port 9000
    """
    import uvicorn

    from bugexplorer.api import create_app

    settings = get_settings()
    app = create_app(settings)
    uvicorn.run(app, host=host or settings.host, port=port or settings.port, log_config=None)


@main.command()
@click.argument("url")
@click.option("--json", "as_json", is_flag=True, help="Print the full record as JSON")
def analyze(url: str, as_json: bool) -> None:
    """Analyze a single repository.

    Examples:
        bugexplorer analyze https://github.com/pallets/click
        bugexplorer analyze https://github.com/pallets/click --json
    """
    service = AnalysisService.from_settings(get_settings())

    try:
        record = asyncio.run(service.analyze_url(url))
    except (RepositoryURLError, GitHubAPIError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1) from e

    if as_json:
        click.echo(json.dumps(record.to_dict(), indent=2))
        return

    console.print(_summary_table(record))


async def _analyze_all(service: AnalysisService, repos: list) -> list[AnalyticsRecord]:
    records = []
    for repo in repos:
        console.print(f"[cyan]{repo.full_name}[/cyan]")
        try:
            records.append(await service.analyze(repo.owner, repo.name))
        except GitHubAPIError as e:
            console.print(f"  [red]Error: {e}[/red]")
    return records


@main.command()
@click.option("--repo", "-r", multiple=True, help="Specific repo(s) to analyze")
@click.option("--output", "-o", type=click.Path(path_type=Path), help="Summary file (.csv/.json)")
def collect(repo: tuple[str, ...], output: Path | None) -> None:
    """Analyze every configured repository.

    Examples:
        bugexplorer collect                       # All repos
        bugexplorer collect -r click              # Single repo
        bugexplorer collect -o reports/summary.csv
    """
    if output and output.suffix.lower() not in (".csv", ".json"):
        raise click.BadParameter("must end in .csv or .json", param_hint="--output")

    settings = get_settings()
    repos = settings.load_repos()

    if repo:
        repos = [r for r in repos if r.name in repo]

    if not repos:
        console.print("[yellow]No matching repositories configured in config/repos.yaml[/yellow]")
        return

    service = AnalysisService.from_settings(settings)
    records = asyncio.run(_analyze_all(service, repos))

    from bugexplorer.report import build_summary, write_summary

    summary = build_summary(records)
    table = Table(title=f"Analyzed {len(records)} of {len(repos)} repositories")
    for column in ("full_name", "health_score", "bug_fixes", "bus_factor_score", "risk_level"):
        table.add_column(column)
    for row in summary.iter_rows(named=True):
        table.add_row(
            row["full_name"],
            str(row["health_score"]),
            str(row["bug_fixes"]),
            str(row["bus_factor_score"]),
            row["risk_level"],
        )
    console.print(table)

    if output:
        write_summary(summary, output)
        console.print(f"[green]Exported summary to {output}[/green]")


@main.command("list")
def list_repos() -> None:
    """List configured repositories."""
    settings = get_settings()
    repos = settings.load_repos()

    if not repos:
        console.print("[yellow]No repositories configured in config/repos.yaml[/yellow]")
        return

    table = Table(title="Configured Repositories")
    table.add_column("Owner", style="cyan")
    table.add_column("Repository", style="green")

    for repo in repos:
        table.add_row(repo.owner, repo.name)

    console.print(table)


if __name__ == "__main__":
    main()
