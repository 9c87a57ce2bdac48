"""
Error taxonomy for store administration.

Library code raises these; the command layer turns them into exit codes.
Errors raised once evacuation has started carry the backups that were
exported but not restored (`orphaned`) so an operator can finish by hand.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Sequence

from .models import ArtifactIdentity, BackupEntry


class RuleStoreError(Exception):
    """Base class for all store administration failures."""

    def __init__(self, message: str, *, orphaned: Iterable[BackupEntry] = ()):
        super().__init__(message)
        self.orphaned: tuple[BackupEntry, ...] = tuple(orphaned)


class ParseError(RuleStoreError):
    """Input artifact file is malformed or empty."""

    def __init__(self, path: Path | str, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = Path(path)
        self.reason = reason


class ConflictError(RuleStoreError):
    """An identity collision the caller did not authorize."""

    def __init__(
        self,
        message: str,
        identities: Sequence[ArtifactIdentity] = (),
        *,
        orphaned: Iterable[BackupEntry] = (),
    ):
        super().__init__(message, orphaned=orphaned)
        self.identities = tuple(identities)


class DeclinedError(ConflictError):
    """The caller declined to confirm a destructive step; nothing was mutated."""


class NotFoundError(RuleStoreError):
    """Operation target is absent from the store."""

    def __init__(self, message: str, identity: ArtifactIdentity | None = None):
        super().__init__(message)
        self.identity = identity


class StoreIOError(RuleStoreError):
    """I/O failure talking to the store or the backup location."""


class BackupFailedError(StoreIOError):
    """A dependent could not be exported; it was left in place."""

    def __init__(
        self,
        identity: ArtifactIdentity,
        reason: str,
        *,
        orphaned: Iterable[BackupEntry] = (),
    ):
        super().__init__(f"backup of policy {identity} failed: {reason}", orphaned=orphaned)
        self.identity = identity


class PublishFailedError(RuleStoreError):
    """Bulk import was rejected after conflicts had been cleared."""

    def __init__(self, path: Path, reason: str, *, orphaned: Iterable[BackupEntry] = ()):
        super().__init__(f"publish of {path} failed: {reason}", orphaned=orphaned)
        self.path = path


class RestoreFailedError(RuleStoreError):
    """Some evacuated policies could not be restored after publish."""

    def __init__(
        self,
        failures: Sequence[tuple[BackupEntry, str]],
        restored: Sequence[ArtifactIdentity] = (),
    ):
        names = ", ".join(str(entry.identity) for entry, _ in failures)
        super().__init__(
            f"{len(failures)} policy restore(s) failed: {names}",
            orphaned=[entry for entry, _ in failures],
        )
        self.failures = tuple(failures)
        self.restored = tuple(restored)
