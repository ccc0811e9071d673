"""``buildrepro upload FILE``: ingest an execution record from a JSON file."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError

from buildrepro.cli.common import DatabaseOption, DataDirOption, console, services


def upload_cmd(
    record_file: Path = typer.Argument(
        ..., exists=True, dir_okay=False, help="Execution record in JSON."
    ),
    data_dir: Optional[Path] = DataDirOption,
    db: Optional[Path] = DatabaseOption,
) -> None:
    """Store the files of an execution record and register the build."""
    payload = record_file.read_bytes()
    with services(data_dir, db) as svc:
        try:
            build = svc.ingestor.ingest_json(payload)
        except ValidationError as exc:
            console.print(f"[bold red]Bad execution record:[/bold red] {exc}")
            raise typer.Exit(code=1) from exc
    console.print(f"[green]Success![/green] {build.job_name} build {build.uuid}")
