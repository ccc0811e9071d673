"""Hashing helpers for content addressing and build input identity."""

from __future__ import annotations

import hashlib
from collections.abc import Iterable

# Artifacts describing what went into a build, rather than what came out.
INPUT_FILES: tuple[str, ...] = ("build-environment", "opam-switch", "system-packages")


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def is_sha256_hex(value: str) -> bool:
    """Whether ``value`` looks like a lowercase SHA-256 hex digest."""
    if len(value) != 64:
        return False
    return all(c in "0123456789abcdef" for c in value)


def compute_input_hash(artifacts: Iterable[tuple[str, str]]) -> str | None:
    """SHA-256 over the sorted ``filepath:sha256`` lines of the input files.

    ``artifacts`` yields ``(filepath, sha256)`` pairs for every artifact of a
    build; only the input-describing ones take part. Returns ``None`` when
    the build carries none of them.
    """
    lines = sorted(
        f"{filepath}:{digest}"
        for filepath, digest in artifacts
        if filepath in INPUT_FILES
    )
    if not lines:
        return None
    return sha256_hex("\n".join(lines).encode("utf-8"))
