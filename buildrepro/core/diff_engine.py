"""Structured differences between two builds' metadata.

Pure functions of their arguments: no I/O, no mutation. Swapping the two
sides swaps ``added``/``removed`` and the old/new halves of every change,
and leaves the unchanged part as it is.
"""

from __future__ import annotations

from collections.abc import Mapping

from buildrepro.models.diff import (
    Change,
    Command,
    CommandDiff,
    MapDiff,
    MetadataChange,
    Package,
    PackageDiff,
    UrlChange,
    VersionChange,
)


def diff_map(left: Mapping[str, str], right: Mapping[str, str]) -> MapDiff:
    """Partition the keys of two string maps (environment, system packages)."""
    added = {k: right[k] for k in sorted(right.keys() - left.keys())}
    removed = {k: left[k] for k in sorted(left.keys() - right.keys())}
    changed: list[Change] = []
    unchanged: dict[str, str] = {}
    for key in sorted(left.keys() & right.keys()):
        if left[key] == right[key]:
            unchanged[key] = left[key]
        else:
            changed.append(Change(key=key, old=left[key], new=right[key]))
    return MapDiff(added=added, removed=removed, changed=changed, unchanged=unchanged)


def diff_commands(old: list[Command], new: list[Command]) -> CommandDiff:
    """Drop the longest common leading run of commands from both sides."""
    shared = 0
    for left_cmd, right_cmd in zip(old, new):
        if left_cmd != right_cmd:
            break
        shared += 1
    return CommandDiff(old=list(old[shared:]), new=list(new[shared:]))


def diff_package_metadata(old: Package, new: Package) -> MetadataChange | None:
    """Field-level comparison of two packages with the same name and version."""
    build = diff_commands(old.build, new.build) if old.build != new.build else None
    install = diff_commands(old.install, new.install) if old.install != new.install else None
    url = UrlChange(old=old.url, new=new.url) if old.url != new.url else None
    if build is None and install is None and url is None:
        return None
    return MetadataChange(
        name=old.name, version=old.version, build=build, install=install, url=url
    )


def diff_packages(
    left: Mapping[str, Package], right: Mapping[str, Package]
) -> PackageDiff:
    """Partition the package name universe of two builds."""
    same: list[Package] = []
    version_changed: list[VersionChange] = []
    metadata_changed: list[MetadataChange] = []
    for name in sorted(left.keys() & right.keys()):
        old, new = left[name], right[name]
        if old.version != new.version:
            version_changed.append(
                VersionChange(name=name, old_version=old.version, new_version=new.version)
            )
            continue
        change = diff_package_metadata(old, new)
        if change is None:
            same.append(old)
        else:
            metadata_changed.append(change)
    return PackageDiff(
        same=same,
        added=[right[name] for name in sorted(right.keys() - left.keys())],
        removed=[left[name] for name in sorted(left.keys() - right.keys())],
        version_changed=version_changed,
        metadata_changed=metadata_changed,
    )
