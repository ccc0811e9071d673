"""Structured diff reports between two builds' metadata."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

Command = tuple[str, ...]


class Change(BaseModel):
    """A key present on both sides whose value differs."""

    model_config = ConfigDict(frozen=True)

    key: str
    old: str
    new: str


class MapDiff(BaseModel):
    model_config = ConfigDict(frozen=True)

    added: dict[str, str] = {}
    removed: dict[str, str] = {}
    changed: list[Change] = []
    unchanged: dict[str, str] = {}

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.changed)


class Package(BaseModel):
    """An installed language package and the parts of its metadata we compare."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    build: list[Command] = []
    install: list[Command] = []
    url: str | None = None

    def __str__(self) -> str:
        return f"{self.name}.{self.version}"


class VersionChange(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    old_version: str
    new_version: str


class CommandDiff(BaseModel):
    """Remaining command lists once the shared leading commands are stripped."""

    model_config = ConfigDict(frozen=True)

    old: list[Command] = []
    new: list[Command] = []


class UrlChange(BaseModel):
    model_config = ConfigDict(frozen=True)

    old: str | None = None
    new: str | None = None


class MetadataChange(BaseModel):
    """Same name and version, but build, install or source URL differ."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    build: CommandDiff | None = None
    install: CommandDiff | None = None
    url: UrlChange | None = None


class PackageDiff(BaseModel):
    model_config = ConfigDict(frozen=True)

    same: list[Package] = []
    added: list[Package] = []
    removed: list[Package] = []
    version_changed: list[VersionChange] = []
    metadata_changed: list[MetadataChange] = []


class BuildComparison(BaseModel):
    """Everything the presentation layer shows when comparing two builds."""

    model_config = ConfigDict(frozen=True)

    left_uuid: str
    right_uuid: str
    env: MapDiff
    system_packages: MapDiff
    packages: PackageDiff
