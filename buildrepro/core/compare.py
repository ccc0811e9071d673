"""Compare the recorded inputs of two builds."""

from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar

from buildrepro.core.artifact_store import ContentAddressedStore
from buildrepro.core.catalog import BuildCatalog
from buildrepro.core.diff_engine import diff_map, diff_packages
from buildrepro.core.errors import NotFound
from buildrepro.core.metadata import (
    parse_environment,
    parse_switch_export,
    parse_system_packages,
)
from buildrepro.models.diff import BuildComparison

T = TypeVar("T")


def _load(
    catalog: BuildCatalog,
    store: ContentAddressedStore,
    uuid: str,
    filepath: str,
    parse: Callable[[str], T],
    empty: T,
) -> T:
    try:
        artifact = catalog.get_artifact(uuid, filepath)
    except NotFound:
        return empty
    return parse(store.get(artifact.localpath).decode("utf-8", errors="replace"))


def compare_builds(
    catalog: BuildCatalog,
    store: ContentAddressedStore,
    left_uuid: str,
    right_uuid: str,
) -> BuildComparison:
    """Diff environment, system packages and opam packages of two builds.

    A build missing one of the input files compares as if that file were
    empty. Raises ``NotFound`` if either build does not exist.
    """
    sides = []
    for uuid in (left_uuid, right_uuid):
        catalog.get_build(uuid)
        sides.append(
            (
                _load(catalog, store, uuid, "build-environment", parse_environment, {}),
                _load(catalog, store, uuid, "system-packages", parse_system_packages, {}),
                _load(catalog, store, uuid, "opam-switch", parse_switch_export, {}),
            )
        )
    (left_env, left_sys, left_pkgs), (right_env, right_sys, right_pkgs) = sides
    return BuildComparison(
        left_uuid=left_uuid,
        right_uuid=right_uuid,
        env=diff_map(left_env, right_env),
        system_packages=diff_map(left_sys, right_sys),
        packages=diff_packages(left_pkgs, right_pkgs),
    )
