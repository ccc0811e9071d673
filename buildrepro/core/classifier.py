"""Reproducibility classifier.

Relative to a successful reference build with a main binary, partitions the
other successful builds of the same job and platform by whether their input
hash and their main-binary hash match the reference.

Only successful builds with a main binary are candidates. Builds without an
input hash, or a reference without one, take no part in the three
input-dependent categories; they still count for latest/next/previous.
"""

from __future__ import annotations

import logging

from buildrepro.core.catalog import BuildCatalog
from buildrepro.core.errors import IneligibleBuild
from buildrepro.models.catalog import Build
from buildrepro.models.classification import Classification

logger = logging.getLogger(__name__)


def partition(reference: Build, candidates: list[Build]) -> Classification:
    """Pure classification of ``candidates`` against ``reference``.

    ``candidates`` is expected oldest first and may include the reference
    itself, which is skipped.
    """
    output = reference.output_hash
    if not reference.successful or output is None:
        raise IneligibleBuild(
            f"Build {reference.uuid} needs a successful result and a main binary"
        )

    same_same: list[Build] = []
    diff_same: list[Build] = []
    same_diff: list[Build] = []
    next_diff: Build | None = None
    previous_diff: Build | None = None

    others = [
        b
        for b in candidates
        if b.uuid != reference.uuid and b.successful and b.output_hash is not None
    ]
    for build in others:
        same_output = build.output_hash == output
        if reference.input_hash is not None and build.input_hash is not None:
            if build.input_hash == reference.input_hash:
                (same_same if same_output else same_diff).append(build)
            elif same_output:
                diff_same.append(build)

        if not same_output:
            if build.start > reference.start and (
                next_diff is None or build.start < next_diff.start
            ):
                next_diff = build
            if build.start < reference.start and (
                previous_diff is None or build.start >= previous_diff.start
            ):
                previous_diff = build

    if same_diff:
        logger.warning(
            "Build %s(%s): %d build(s) with the same input but different output.",
            reference.job_name,
            reference.uuid,
            len(same_diff),
        )

    return Classification(
        reference=reference,
        same_input_same_output=same_same,
        different_input_same_output=diff_same,
        same_input_different_output=same_diff,
        next_different_output=next_diff,
        previous_different_output=previous_diff,
    )


class ReproducibilityClassifier:
    """Runs :func:`partition` against builds read from the catalog."""

    def __init__(self, catalog: BuildCatalog) -> None:
        self._catalog = catalog

    def classify(self, uuid: str) -> Classification:
        reference = self._catalog.get_build(uuid)
        candidates = self._catalog.successful_outputs(
            reference.job_name, reference.platform
        )
        classification = partition(reference, candidates)

        latest = self._catalog.latest_successful_build(
            reference.job_name, reference.platform
        )
        if latest is not None and latest.uuid == reference.uuid:
            latest = None
        return classification.model_copy(update={"latest": latest})
