"""Execution records as produced by the build runner.

``ExecutionResult`` is a closed tagged union: a build either exited with a
code, was killed by a signal, or ran out of time. Only ``Exited(0)`` counts
as a successful build.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Exited(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["exited"] = "exited"
    code: int


class Signalled(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["signalled"] = "signalled"
    code: int


class TimedOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["timed_out"] = "timed_out"


ExecutionResult = Annotated[
    Union[Exited, Signalled, TimedOut], Field(discriminator="kind")
]


def is_success(result: Exited | Signalled | TimedOut) -> bool:
    """Whether a result makes the build eligible as a successful build."""
    if isinstance(result, Exited):
        return result.code == 0
    if isinstance(result, (Signalled, TimedOut)):
        return False
    raise TypeError(f"Unknown execution result: {result!r}")


def describe_result(result: Exited | Signalled | TimedOut) -> str:
    """Human-readable one-liner, e.g. ``exited 0`` or ``signalled 9``."""
    if isinstance(result, Exited):
        return f"exited {result.code}"
    if isinstance(result, Signalled):
        return f"signalled {result.code}"
    if isinstance(result, TimedOut):
        return "timed out"
    raise TypeError(f"Unknown execution result: {result!r}")


def result_to_columns(result: Exited | Signalled | TimedOut) -> tuple[str, int | None]:
    """Flatten a result into ``(result_kind, result_code)`` catalog columns."""
    if isinstance(result, (Exited, Signalled)):
        return result.kind, result.code
    if isinstance(result, TimedOut):
        return result.kind, None
    raise TypeError(f"Unknown execution result: {result!r}")


def result_from_columns(kind: str, code: int | None) -> Exited | Signalled | TimedOut:
    """Inverse of :func:`result_to_columns`."""
    if kind == "exited":
        return Exited(code=code if code is not None else 0)
    if kind == "signalled":
        return Signalled(code=code if code is not None else 0)
    if kind == "timed_out":
        return TimedOut()
    raise ValueError(f"Unknown result kind in catalog: {kind!r}")


class UploadedFile(BaseModel):
    """One output file of an execution: a relative path and its bytes.

    In the JSON wire format ``data`` is base64-encoded.
    """

    model_config = ConfigDict(
        frozen=True, val_json_bytes="base64", ser_json_bytes="base64"
    )

    filepath: str
    data: bytes
    sha256: str | None = None  # declared digest, checked when verification is on

    @field_validator("filepath")
    @classmethod
    def _safe_relative_path(cls, value: str) -> str:
        segments = value.split("/")
        if (
            not value
            or value.startswith("/")
            or any(seg in ("", ".", "..") for seg in segments)
        ):
            raise ValueError(f"unsafe path {value!r}")
        return value


class ExecutionRecord(BaseModel):
    """Everything the build runner reports about one execution of a job."""

    model_config = ConfigDict(
        frozen=True, val_json_bytes="base64", ser_json_bytes="base64"
    )

    uuid: str = Field(default_factory=lambda: str(uuid.uuid4()))
    job_name: str = Field(min_length=1)
    platform: str = Field(min_length=1)
    start: datetime
    finish: datetime
    result: ExecutionResult
    console: str = ""
    script: str = ""
    files: list[UploadedFile] = []
    main_binary: str | None = None  # filepath of the main binary, if declared

    @field_validator("uuid")
    @classmethod
    def _canonical_uuid(cls, value: str) -> str:
        return str(uuid.UUID(value))

    @field_validator("start", "finish")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @model_validator(mode="after")
    def _unique_filepaths(self) -> ExecutionRecord:
        seen: set[str] = set()
        for upload in self.files:
            if upload.filepath in seen:
                raise ValueError(f"duplicate file path {upload.filepath!r}")
            seen.add(upload.filepath)
        return self
