"""
Query and filter semantics over the store catalog.

Name omitted matches everything; version omitted matches every version of
the matching name(s). A given version matches exactly on (major, minor).
"""

from __future__ import annotations

import re
from typing import Iterable

from .models import ArtifactIdentity, ArtifactKind, ArtifactRecord

VERSION_PATTERN = re.compile(r"^\s*(\d+)\.(\d+)\s*$")


def parse_version(text: str) -> tuple[int, int]:
    """Parse `"1.0"` into `(1, 0)`."""
    match = VERSION_PATTERN.match(text or "")
    if match is None:
        raise ValueError(f"version must look like MAJOR.MINOR (got {text!r})")
    return int(match.group(1)), int(match.group(2))


def parse_identity(name: str, version: str) -> ArtifactIdentity:
    major, minor = parse_version(version)
    return ArtifactIdentity(name=name, major=major, minor=minor)


def matches(
    record: ArtifactRecord,
    kind: ArtifactKind,
    name: str | None = None,
    version: tuple[int, int] | None = None,
) -> bool:
    if record.kind is not kind:
        return False
    if name is not None and record.identity.name != name:
        return False
    if version is not None and (record.identity.major, record.identity.minor) != version:
        return False
    return True


def filter_records(
    records: Iterable[ArtifactRecord],
    kind: ArtifactKind,
    name: str | None = None,
    version: tuple[int, int] | None = None,
) -> list[ArtifactRecord]:
    return [r for r in records if matches(r, kind, name, version)]


def sort_records(records: Iterable[ArtifactRecord]) -> list[ArtifactRecord]:
    return sorted(records, key=lambda r: (r.kind.value, r.identity))
