"""Administrative commands: ``migrate``, ``build-remove``, ``job-remove``, ``gc``."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from buildrepro.cli.common import DatabaseOption, DataDirOption, console, services
from buildrepro.core.gc import collect_garbage


def migrate_cmd(
    data_dir: Optional[Path] = DataDirOption,
    db: Optional[Path] = DatabaseOption,
) -> None:
    """Create the catalog database, its tables and the store directories."""
    with services(data_dir, db, create=True) as svc:
        console.print(f"[green]Catalog ready:[/green] {svc.pool.db_path}")
        console.print(f"[green]Store ready:[/green] {svc.store.base_path}")


def build_remove_cmd(
    uuid: str = typer.Argument(..., help="UUID of the build to remove."),
    reclaim: bool = typer.Option(
        False, "--reclaim", help="Delete blobs no longer referenced afterwards."
    ),
    data_dir: Optional[Path] = DataDirOption,
    db: Optional[Path] = DatabaseOption,
) -> None:
    """Remove one build and its artifacts."""
    with services(data_dir, db) as svc:
        report = svc.catalog.remove_build(uuid)
        console.print(f"Removed build {uuid} ({report.artifacts} artifact(s)).")
        if reclaim:
            gc = collect_garbage(svc.catalog, svc.store, candidates=report.sha256s)
            console.print(f"Reclaimed {len(gc.removed)} blob(s), {gc.bytes_freed} byte(s).")


def job_remove_cmd(
    job: str = typer.Argument(..., help="Name of the job to remove."),
    reclaim: bool = typer.Option(
        False, "--reclaim", help="Delete blobs no longer referenced afterwards."
    ),
    data_dir: Optional[Path] = DataDirOption,
    db: Optional[Path] = DatabaseOption,
) -> None:
    """Remove a job and all its builds and artifacts."""
    with services(data_dir, db) as svc:
        report = svc.catalog.remove_job(job)
        console.print(
            f"Removed job {job!r}: {report.builds} build(s), "
            f"{report.artifacts} artifact(s)."
        )
        if reclaim:
            gc = collect_garbage(svc.catalog, svc.store, candidates=report.sha256s)
            console.print(f"Reclaimed {len(gc.removed)} blob(s), {gc.bytes_freed} byte(s).")


def gc_cmd(
    dry_run: bool = typer.Option(
        False, "--dry-run", "-n", help="Only report what would be removed."
    ),
    data_dir: Optional[Path] = DataDirOption,
    db: Optional[Path] = DatabaseOption,
) -> None:
    """Delete every blob no artifact references."""
    with services(data_dir, db) as svc:
        report = collect_garbage(svc.catalog, svc.store, dry_run=dry_run)
        verb = "Would remove" if dry_run else "Removed"
        console.print(
            f"{verb} {len(report.removed)} of {report.scanned} blob(s), "
            f"{report.bytes_freed} byte(s)."
        )
