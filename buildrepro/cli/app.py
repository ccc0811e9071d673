"""Main Typer application: imports and registers all CLI commands.

Entry point: ``buildrepro`` (configured via pyproject.toml console scripts).
"""

from __future__ import annotations

from typing import Optional

import typer

from buildrepro.cli.commands.admin import (
    build_remove_cmd,
    gc_cmd,
    job_remove_cmd,
    migrate_cmd,
)
from buildrepro.cli.commands.analyze import classify_cmd, compare_cmd
from buildrepro.cli.commands.query import (
    builds_cmd,
    failed_cmd,
    jobs_cmd,
    lookup_cmd,
    show_cmd,
)
from buildrepro.cli.commands.upload import upload_cmd
from buildrepro.cli.common import configure_logging
from buildrepro.config import BuildReproConfig

app = typer.Typer(
    name="buildrepro",
    help="buildrepro: record builds and check their reproducibility.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def main_callback(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Logging level (default: BUILDREPRO_LOG_LEVEL)."
    ),
) -> None:
    configure_logging(log_level or BuildReproConfig().log_level)


# Register subcommands
app.command(name="migrate", help="Create database, tables and store directories.")(migrate_cmd)
app.command(name="upload", help="Ingest an execution record.")(upload_cmd)
app.command(name="jobs", help="List jobs and their latest builds.")(jobs_cmd)
app.command(name="builds", help="List the builds of a job.")(builds_cmd)
app.command(name="show", help="Show a build and its artifacts.")(show_cmd)
app.command(name="failed", help="List failed builds.")(failed_cmd)
app.command(name="lookup", help="Find a build by artifact sha256.")(lookup_cmd)
app.command(name="classify", help="Classify builds relative to a reference build.")(classify_cmd)
app.command(name="compare", help="Compare the inputs of two builds.")(compare_cmd)
app.command(name="build-remove", help="Remove a build and its artifacts.")(build_remove_cmd)
app.command(name="job-remove", help="Remove a job and its builds and artifacts.")(job_remove_cmd)
app.command(name="gc", help="Delete unreferenced blobs.")(gc_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
