"""Read-only catalog commands: ``jobs``, ``builds``, ``show``, ``failed``, ``lookup``."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from buildrepro.cli.common import DatabaseOption, DataDirOption, console, services
from buildrepro.cli.render import (
    artifacts_table,
    build_panel,
    builds_table,
    result_markup,
)


def jobs_cmd(
    data_dir: Optional[Path] = DataDirOption,
    db: Optional[Path] = DatabaseOption,
) -> None:
    """List jobs by section with their latest build."""
    with services(data_dir, db) as svc:
        sections = svc.catalog.jobs_by_section()
    if not sections:
        console.print("[dim]No builds recorded.[/dim]")
        return
    for section, summaries in sections.items():
        table = Table(title=section or "Jobs")
        table.add_column("Job", style="cyan")
        table.add_column("Synopsis")
        table.add_column("Latest build")
        table.add_column("Result")
        for summary in summaries:
            build = summary.latest_build
            table.add_row(
                summary.job.name,
                summary.job.synopsis or "",
                f"{build.start:%Y-%m-%d %H:%M} {build.platform}",
                result_markup(build),
            )
        console.print(table)


def builds_cmd(
    job: str = typer.Argument(..., help="Job name."),
    platform: Optional[str] = typer.Option(None, "--platform", "-p", help="Only this platform."),
    data_dir: Optional[Path] = DataDirOption,
    db: Optional[Path] = DatabaseOption,
) -> None:
    """List the builds of a job, newest first."""
    with services(data_dir, db) as svc:
        job_info = svc.catalog.get_job(job)
        builds = svc.catalog.list_builds(job, platform)
    if job_info.synopsis:
        console.print(f"[bold]{job_info.name}[/bold]: {job_info.synopsis}")
    console.print(builds_table(builds, title=f"Builds of {job}"))


def show_cmd(
    uuid: str = typer.Argument(..., help="Build UUID."),
    console_log: bool = typer.Option(False, "--console", help="Print the console output."),
    data_dir: Optional[Path] = DataDirOption,
    db: Optional[Path] = DatabaseOption,
) -> None:
    """Show one build and its artifacts."""
    with services(data_dir, db) as svc:
        build = svc.catalog.get_build(uuid)
        artifacts = svc.catalog.build_artifacts(uuid)
    console.print(build_panel(build))
    console.print(artifacts_table(artifacts))
    if console_log:
        console.print(build.console, markup=False, highlight=False)


def failed_cmd(
    start: int = typer.Option(0, "--start", min=0, help="Offset into the list."),
    count: int = typer.Option(10, "--count", min=0, help="Number of builds to show."),
    platform: Optional[str] = typer.Option(None, "--platform", "-p", help="Only this platform."),
    data_dir: Optional[Path] = DataDirOption,
    db: Optional[Path] = DatabaseOption,
) -> None:
    """List failed builds, most recent first."""
    with services(data_dir, db) as svc:
        builds = svc.catalog.failed_builds(start=start, count=count, platform=platform)
    console.print(builds_table(builds, title="Failed builds"))


def lookup_cmd(
    sha256: str = typer.Argument(..., help="SHA-256 hex digest of an artifact."),
    data_dir: Optional[Path] = DataDirOption,
    db: Optional[Path] = DatabaseOption,
) -> None:
    """Find the build that produced an artifact with this digest."""
    with services(data_dir, db) as svc:
        location = svc.catalog.find_by_hash(sha256)
    console.print(
        f"{location.job_name} build {location.build.uuid}: {location.artifact.filepath}"
    )
