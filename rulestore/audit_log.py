"""
Audit log for store mutations.

Every operation that removes or publishes artifacts appends one JSON line
to `<store>/audit.log`, recording what was erased and what was created.
The log is append-only; it is an account of changes, not a way to undo them.
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

from .models import ArtifactIdentity

logger = logging.getLogger(__name__)


@dataclass
class ErasureCost:
    """What an operation removed from the store."""
    policies: int = 0
    vocabularies: int = 0
    identities: list[str] = field(default_factory=list)


@dataclass
class CreationSummary:
    """What an operation added to the store."""
    policies: int = 0
    vocabularies: int = 0
    identities: list[str] = field(default_factory=list)


@dataclass
class AuditEntry:
    """A single audit log entry."""
    timestamp: str
    operation: str
    erased: ErasureCost
    created: CreationSummary
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "operation": self.operation,
            "erased": asdict(self.erased),
            "created": asdict(self.created),
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AuditEntry":
        return cls(
            timestamp=data["timestamp"],
            operation=data["operation"],
            erased=ErasureCost(**data.get("erased", {})),
            created=CreationSummary(**data.get("created", {})),
            metadata=data.get("metadata", {}),
        )


def summarize(
    policies: Iterable[ArtifactIdentity] = (),
    vocabularies: Iterable[ArtifactIdentity] = (),
) -> tuple[int, int, list[str]]:
    policies = list(policies)
    vocabularies = list(vocabularies)
    identities = [f"vocabulary:{v}" for v in vocabularies] + [f"policy:{p}" for p in policies]
    return len(policies), len(vocabularies), identities


def erased(
    policies: Iterable[ArtifactIdentity] = (),
    vocabularies: Iterable[ArtifactIdentity] = (),
) -> ErasureCost:
    return ErasureCost(*summarize(policies, vocabularies))


def created(
    policies: Iterable[ArtifactIdentity] = (),
    vocabularies: Iterable[ArtifactIdentity] = (),
) -> CreationSummary:
    return CreationSummary(*summarize(policies, vocabularies))


def get_audit_log_path(store_root: Path) -> Path:
    return store_root / "audit.log"


def log_operation(
    store_root: Path,
    operation: str,
    erased: ErasureCost | None = None,
    created: CreationSummary | None = None,
    metadata: dict[str, Any] | None = None,
) -> AuditEntry:
    """
    Append an operation to the audit log.

    Args:
        store_root: Store directory
        operation: Name of the operation (e.g., "vocabulary.replace")
        erased: What was removed
        created: What was published
        metadata: Additional context (source file, backup paths, ...)

    Returns:
        The written entry
    """
    entry = AuditEntry(
        timestamp=datetime.now(timezone.utc).isoformat(),
        operation=operation,
        erased=erased or ErasureCost(),
        created=created or CreationSummary(),
        metadata=metadata or {},
    )

    log_path = get_audit_log_path(store_root)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    with log_path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(entry.to_dict()) + "\n")

    return entry


def read_audit_log(store_root: Path, limit: int | None = None) -> list[AuditEntry]:
    """Read entries, most recent last."""
    log_path = get_audit_log_path(store_root)
    if not log_path.exists():
        return []

    entries = []
    with log_path.open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line:
                entries.append(AuditEntry.from_dict(json.loads(line)))

    if limit:
        entries = entries[-limit:]
    return entries


def record_operation(store_root: Path, operation: str, **kwargs: Any) -> AuditEntry | None:
    """
    `log_operation` for callers whose own outcome must not depend on the log.

    A write failure is logged as a warning and None is returned, so an error
    already in flight (and its orphaned backups) reaches the caller intact.
    """
    try:
        return log_operation(store_root, operation, **kwargs)
    except OSError as e:
        logger.warning("could not write audit entry %s to %s: %s", operation, get_audit_log_path(store_root), e)
        return None
