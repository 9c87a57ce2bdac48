"""
Administrative operations on the store: list, remove, deploy, export.

Replace operations live in `replace`. Destructive operations here take a
`confirm` capability and a `dry_run` flag; neither prompts on its own.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from . import audit_log
from .backup import BackupLedger
from .catalog import sort_records
from .config import default_backup_dir
from .errors import ConflictError, DeclinedError, NotFoundError, RuleStoreError, StoreIOError
from .models import ArtifactIdentity, ArtifactKind, ArtifactRecord, BackupEntry
from .replace import Confirm, always_confirm, evacuate_dependents
from .risk import requires_confirmation
from .store.base import ArtifactStore

logger = logging.getLogger(__name__)


@dataclass
class RemoveResult:
    identity: ArtifactIdentity
    kind: ArtifactKind
    undeployed: bool = False
    removed: bool = False
    dry_run: bool = False
    dependents: list[ArtifactIdentity] = field(default_factory=list)
    backups: list[BackupEntry] = field(default_factory=list)


def list_artifacts(
    store: ArtifactStore,
    kind: ArtifactKind,
    name: str | None = None,
    version: tuple[int, int] | None = None,
) -> list[ArtifactRecord]:
    return sort_records(store.find(kind, name, version))


def show_dependents(store: ArtifactStore, vocabulary: ArtifactIdentity) -> list[ArtifactRecord]:
    """Policy records referencing `vocabulary`, in catalog order."""
    if store.get(ArtifactKind.VOCABULARY, vocabulary) is None:
        raise NotFoundError(f"vocabulary {vocabulary} not found", vocabulary)
    records = []
    for identity in store.dependents_of(vocabulary):
        record = store.get(ArtifactKind.POLICY, identity)
        if record is not None:
            records.append(record)
    return records


def _require(store: ArtifactStore, kind: ArtifactKind, identity: ArtifactIdentity) -> ArtifactRecord:
    record = store.get(kind, identity)
    if record is None:
        raise NotFoundError(f"{kind.value} {identity} not found", identity)
    return record


def remove_policy(
    store: ArtifactStore,
    identity: ArtifactIdentity,
    *,
    delete: bool = False,
    confirm: Confirm = always_confirm,
    dry_run: bool = False,
    audit_root: Path | None = None,
) -> RemoveResult:
    """
    Undeploy a policy and, with `delete`, remove it from the store.

    Raises NotFoundError if the policy does not exist, so deleting the same
    identity twice fails on the second call without touching anything.
    """
    record = _require(store, ArtifactKind.POLICY, identity)
    result = RemoveResult(identity, ArtifactKind.POLICY, dry_run=dry_run)
    if dry_run:
        result.undeployed = record.deployed
        result.removed = delete
        return result
    if requires_confirmation("policy.remove", delete=delete) and not confirm("remove policy", str(identity)):
        raise DeclinedError(f"removal of policy {identity} declined", [identity])

    if record.deployed:
        store.undeploy(identity)
        result.undeployed = True
    if delete:
        store.remove_from_store(identity, ArtifactKind.POLICY)
        result.removed = True

    if audit_root is not None:
        audit_log.record_operation(
            audit_root,
            "policy.remove" if delete else "policy.undeploy",
            erased=audit_log.erased(policies=[identity] if delete else []),
            metadata={"undeployed": result.undeployed},
        )
    return result


def remove_vocabulary(
    store: ArtifactStore,
    identity: ArtifactIdentity,
    *,
    force: bool = False,
    backup_dir: Path | None = None,
    confirm: Confirm = always_confirm,
    dry_run: bool = False,
    audit_root: Path | None = None,
) -> RemoveResult:
    """
    Remove a vocabulary.

    Without `force`, a vocabulary with dependents raises ConflictError
    naming them. With `force`, dependents are exported to `backup_dir`,
    undeployed and removed first; the backups are returned so they can be
    restored later with `replace_policies`.
    """
    _require(store, ArtifactKind.VOCABULARY, identity)
    dependents = store.dependents_of(identity)
    result = RemoveResult(identity, ArtifactKind.VOCABULARY, dry_run=dry_run, dependents=dependents)

    if dependents:
        logger.warning("%d dependent policies found for vocabulary %s", len(dependents), identity)
        if not force:
            names = ", ".join(str(d) for d in dependents)
            raise ConflictError(f"vocabulary {identity} is referenced by {names}", dependents)
    if dry_run:
        result.removed = True
        return result

    target = str(identity)
    if dependents:
        target += f" and {len(dependents)} dependent policies"
    if requires_confirmation("vocabulary.remove", force=force) and not confirm("remove vocabulary", target):
        raise DeclinedError(f"removal of vocabulary {identity} declined", [identity])

    ledger = BackupLedger()
    if dependents:
        result.backups = evacuate_dependents(store, identity, ledger, backup_dir or default_backup_dir())
    try:
        store.remove_from_store(identity, ArtifactKind.VOCABULARY)
    except RuleStoreError as e:
        raise StoreIOError(f"removal of vocabulary {identity} failed: {e}", orphaned=ledger.snapshot()) from e
    result.removed = True

    if audit_root is not None:
        audit_log.record_operation(
            audit_root,
            "vocabulary.remove",
            erased=audit_log.erased(policies=[b.identity for b in result.backups], vocabularies=[identity]),
            metadata={"backups": [str(b.path) for b in result.backups]},
        )
    return result


def deploy_policy(store: ArtifactStore, identity: ArtifactIdentity, *, audit_root: Path | None = None) -> None:
    store.deploy(identity)
    if audit_root is not None:
        audit_log.record_operation(audit_root, "policy.deploy", metadata={"policy": str(identity)})


def undeploy_policy(store: ArtifactStore, identity: ArtifactIdentity, *, audit_root: Path | None = None) -> None:
    store.undeploy(identity)
    if audit_root is not None:
        audit_log.record_operation(audit_root, "policy.undeploy", metadata={"policy": str(identity)})


def export_artifacts(
    store: ArtifactStore,
    kind: ArtifactKind,
    destination: Path,
    name: str | None = None,
    version: tuple[int, int] | None = None,
) -> list[Path]:
    """Export every matching record to `destination`, one file each."""
    records = list_artifacts(store, kind, name, version)
    if not records:
        raise NotFoundError(f"no {kind.value} matches name={name!r} version={version!r}")
    return [store.export_to_file(record, destination) for record in records]
