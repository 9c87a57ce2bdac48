"""
Artifact store client protocol.

This is the whole surface the administrative operations depend on. Every
method is one synchronous round trip to the backing store; there is no
multi-call transaction, so callers sequence calls themselves.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from ..models import ArtifactIdentity, ArtifactKind, ArtifactRecord


class ArtifactStore(Protocol):
    """Gateway to a versioned policy/vocabulary repository."""

    def open(self) -> None:
        ...

    def close(self) -> None:
        ...

    def find(
        self,
        kind: ArtifactKind,
        name: str | None = None,
        version: tuple[int, int] | None = None,
    ) -> list[ArtifactRecord]:
        """
        Records of `kind`, optionally narrowed by exact name and (major, minor).
        """
        ...

    def get(self, kind: ArtifactKind, identity: ArtifactIdentity) -> ArtifactRecord | None:
        """The record with this identity, or None."""
        ...

    def dependents_of(self, vocabulary: ArtifactIdentity) -> list[ArtifactIdentity]:
        """Policies referencing `vocabulary`, in catalog order."""
        ...

    def export_to_file(self, record: ArtifactRecord, destination_dir: Path) -> Path:
        """
        Serialize `record` to `<token>_<name>.<major>.<minor>.<ext>`.

        Raises StoreIOError if the destination is not writable.
        """
        ...

    def remove_from_store(self, identity: ArtifactIdentity, kind: ArtifactKind) -> None:
        """
        Raises NotFoundError if absent, ConflictError if a vocabulary still
        has dependents or a policy is still deployed.
        """
        ...

    def deploy(self, policy: ArtifactIdentity) -> None:
        ...

    def undeploy(self, policy: ArtifactIdentity) -> None:
        ...

    def import_and_publish(self, path: Path) -> list[ArtifactRecord]:
        """
        Insert every artifact in `path` as a new record, all or nothing.

        Raises ParseError, ConflictError if any identity already exists, or
        NotFoundError if a policy references a missing vocabulary.
        """
        ...
