"""Value types for rule artifacts held in the store."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any


class ArtifactKind(str, Enum):
    POLICY = "policy"
    VOCABULARY = "vocabulary"


@dataclass(frozen=True, order=True)
class ArtifactIdentity:
    """
    Name plus major.minor version.

    Two identities are equal iff name, major and minor all match.
    """

    name: str
    major: int
    minor: int

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("artifact name must be a non-empty string")
        if self.major < 0 or self.minor < 0:
            raise ValueError(f"invalid version for {self.name}: {self.major}.{self.minor}")

    @property
    def version(self) -> str:
        return f"{self.major}.{self.minor}"

    def __str__(self) -> str:
        return f"{self.name} {self.version}"

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "version": {"major": self.major, "minor": self.minor}}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ArtifactIdentity:
        """Build from the `{"name": ..., "version": {"major": .., "minor": ..}}` shape."""
        version = data.get("version")
        if not isinstance(version, dict):
            raise ValueError(f"missing version mapping for {data.get('name')!r}")
        return cls(
            name=str(data.get("name", "")),
            major=_as_uint(version.get("major"), "major"),
            minor=_as_uint(version.get("minor"), "minor"),
        )


def _as_uint(value: Any, label: str) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"version.{label} must be a non-negative integer (got {value!r})")
    return value


@dataclass(frozen=True)
class ArtifactDefinition:
    """One artifact definition parsed from an input file."""

    identity: ArtifactIdentity
    kind: ArtifactKind
    body: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def references(self) -> list[ArtifactIdentity]:
        """Vocabularies this definition references (policies only)."""
        if self.kind is not ArtifactKind.POLICY:
            return []
        raw = self.body.get("vocabularies") or []
        return [ArtifactIdentity.from_dict(r) for r in raw]


@dataclass(frozen=True)
class ArtifactRecord:
    """Store-side state of one artifact."""

    identity: ArtifactIdentity
    kind: ArtifactKind
    deployed: bool = False
    content_id: str | None = None
    published_at: datetime | None = None
    source_format: str = "json"

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            **self.identity.to_dict(),
            "kind": self.kind.value,
            "deployed": self.deployed,
            "source_format": self.source_format,
        }
        if self.content_id is not None:
            result["content_id"] = self.content_id
        if self.published_at is not None:
            result["published_at"] = self.published_at.isoformat()
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ArtifactRecord:
        published_at = data.get("published_at")
        return cls(
            identity=ArtifactIdentity.from_dict(data),
            kind=ArtifactKind(data["kind"]),
            deployed=bool(data.get("deployed", False)),
            content_id=data.get("content_id"),
            published_at=datetime.fromisoformat(published_at) if published_at else None,
            source_format=str(data.get("source_format", "json")),
        )


@dataclass(frozen=True)
class BackupEntry:
    """A policy evacuated during a replace: original identity + exported file."""

    identity: ArtifactIdentity
    path: Path

    def __str__(self) -> str:
        return f"{self.identity} -> {self.path}"
