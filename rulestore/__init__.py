"""
Administration for a versioned policy/vocabulary rule store.

The central operation is replacing a vocabulary in place: dependent
policies are exported, removed, and redeployed around the publish so no
policy is lost and no version bump is required.

- Store client protocol plus a directory-backed implementation
- Backup ledger (LIFO) scoped to one replace
- Replace orchestrator and policy replace helper
- Append-only audit log of every store mutation
"""

__version__ = "0.1.0"

from .backup import BackupLedger
from .errors import (
    BackupFailedError,
    ConflictError,
    DeclinedError,
    NotFoundError,
    ParseError,
    PublishFailedError,
    RestoreFailedError,
    RuleStoreError,
    StoreIOError,
)
from .models import ArtifactDefinition, ArtifactIdentity, ArtifactKind, ArtifactRecord, BackupEntry
from .replace import ConflictPolicy, replace_policies, replace_vocabularies
from .store import ArtifactStore, FileArtifactStore

__all__ = [
    "__version__",
    # Models
    "ArtifactDefinition",
    "ArtifactIdentity",
    "ArtifactKind",
    "ArtifactRecord",
    "BackupEntry",
    # Errors
    "BackupFailedError",
    "ConflictError",
    "DeclinedError",
    "NotFoundError",
    "ParseError",
    "PublishFailedError",
    "RestoreFailedError",
    "RuleStoreError",
    "StoreIOError",
    # Store
    "ArtifactStore",
    "FileArtifactStore",
    "BackupLedger",
    # Operations
    "ConflictPolicy",
    "replace_policies",
    "replace_vocabularies",
]
