"""Shared option handling, error reporting and logging setup for commands."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from buildrepro.config import BuildReproConfig
from buildrepro.core.errors import BuildReproError, NotFound
from buildrepro.services import Services, open_services

console = Console()

DataDirOption = typer.Option(
    None, "--data-dir", "-d", help="Blob store root (default: BUILDREPRO_DATA_DIR)."
)
DatabaseOption = typer.Option(
    None, "--db", help="Catalog database (default: {data-dir}/builder.sqlite3)."
)


def configure_logging(level: str) -> None:
    """Route log records through Rich at the given level."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def load_config(data_dir: Path | None, db: Path | None) -> BuildReproConfig:
    overrides: dict[str, Path] = {}
    if data_dir is not None:
        overrides["data_dir"] = data_dir
    if db is not None:
        overrides["database_path"] = db
    return BuildReproConfig(**overrides)


@contextmanager
def handle_errors() -> Iterator[None]:
    """Print core errors in red and exit with status 1."""
    try:
        yield
    except NotFound as exc:
        console.print(f"[yellow]Not found:[/yellow] {exc}")
        raise typer.Exit(code=1) from exc
    except BuildReproError as exc:
        console.print(f"[bold red]{type(exc).__name__}:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc


@contextmanager
def services(
    data_dir: Path | None, db: Path | None, *, create: bool = False
) -> Iterator[Services]:
    """Open services for one command and close them afterwards."""
    with handle_errors():
        opened = open_services(load_config(data_dir, db), create=create)
        with opened:
            yield opened
