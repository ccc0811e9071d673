"""``classify`` and ``compare``: reproducibility analysis of recorded builds."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from buildrepro.cli.common import DatabaseOption, DataDirOption, console, services
from buildrepro.cli.render import print_classification, print_comparison
from buildrepro.core.classifier import ReproducibilityClassifier
from buildrepro.core.compare import compare_builds


def classify_cmd(
    uuid: str = typer.Argument(..., help="UUID of the reference build."),
    data_dir: Optional[Path] = DataDirOption,
    db: Optional[Path] = DatabaseOption,
) -> None:
    """Show which builds reproduce a build and which do not."""
    with services(data_dir, db) as svc:
        classification = ReproducibilityClassifier(svc.catalog).classify(uuid)
    print_classification(console, classification)
    if not classification.reproducible:
        raise typer.Exit(code=2)


def compare_cmd(
    left: str = typer.Argument(..., help="UUID of the left build."),
    right: str = typer.Argument(..., help="UUID of the right build."),
    data_dir: Optional[Path] = DataDirOption,
    db: Optional[Path] = DatabaseOption,
) -> None:
    """Explain how the inputs of two builds differ."""
    with services(data_dir, db) as svc:
        comparison = compare_builds(svc.catalog, svc.store, left, right)
    print_comparison(console, comparison)
