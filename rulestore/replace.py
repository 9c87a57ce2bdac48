"""
Dependency-preserving replacement of vocabularies and policies.

The store refuses to import an artifact whose identity already exists, and
refuses to remove a vocabulary that policies still reference. Replacing a
vocabulary in place therefore runs as:

    pre-flight → evacuate dependents → remove → publish → restore (LIFO)

The store has no transaction spanning these calls. Pre-flight makes no
mutation, so an abort there leaves the catalog untouched. After that, any
failure stops forward progress and reports the evacuated policies that were
not restored (`orphaned`) so nothing is lost silently.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable

from . import audit_log
from .artifact_file import load_artifact_file
from .backup import BackupLedger
from .errors import (
    BackupFailedError,
    ConflictError,
    DeclinedError,
    PublishFailedError,
    RestoreFailedError,
    RuleStoreError,
    StoreIOError,
)
from .models import ArtifactIdentity, ArtifactKind, BackupEntry
from .store.base import ArtifactStore

logger = logging.getLogger(__name__)

# confirm(action, target) -> proceed?
Confirm = Callable[[str, str], bool]


def always_confirm(action: str, target: str) -> bool:
    return True


class ConflictPolicy(str, Enum):
    """What to do when an incoming identity already exists."""

    ABORT = "abort"
    REPLACE = "replace"


@dataclass(frozen=True)
class Conflict:
    identity: ArtifactIdentity
    dependents: tuple[ArtifactIdentity, ...] = ()


@dataclass
class ReplacePlan:
    """Pre-flight view of a vocabulary replace. Computing it mutates nothing."""

    path: Path
    identities: list[ArtifactIdentity]
    conflicts: list[Conflict] = field(default_factory=list)

    @property
    def dependents(self) -> list[ArtifactIdentity]:
        return [d for c in self.conflicts for d in c.dependents]

    def describe(self) -> str:
        if not self.conflicts:
            return f"{self.path.name}: no conflicts"
        parts = []
        for c in self.conflicts:
            suffix = f" ({len(c.dependents)} dependent policies)" if c.dependents else ""
            parts.append(f"{c.identity}{suffix}")
        return ", ".join(parts)


@dataclass
class ReplaceResult:
    plan: ReplacePlan
    published: list[ArtifactIdentity] = field(default_factory=list)
    evacuated: list[BackupEntry] = field(default_factory=list)
    restored: list[ArtifactIdentity] = field(default_factory=list)
    dry_run: bool = False
    cleanup_error: str | None = None


@dataclass
class PolicyReplaceResult:
    path: Path
    identities: list[ArtifactIdentity]
    replaced: list[ArtifactIdentity] = field(default_factory=list)
    deployed: list[ArtifactIdentity] = field(default_factory=list)
    dry_run: bool = False


# -----------------------------------------------------------------------------
# Policy replace (also the restoration primitive)
# -----------------------------------------------------------------------------


def replace_policies(
    store: ArtifactStore,
    path: Path,
    *,
    deploy: bool = False,
    on_conflict: ConflictPolicy = ConflictPolicy.ABORT,
    confirm: Confirm = always_confirm,
    dry_run: bool = False,
    audit_root: Path | None = None,
) -> PolicyReplaceResult:
    """
    Publish the policies in `path`, superseding same-identity policies.

    Policies have no dependents, so an existing policy is simply undeployed
    and removed before the file is imported. With ABORT an existing identity
    raises ConflictError before anything is mutated.
    """
    document = load_artifact_file(path, expected_kind=ArtifactKind.POLICY)
    result = PolicyReplaceResult(path=path, identities=document.identities, dry_run=dry_run)

    existing = [r for r in (store.get(ArtifactKind.POLICY, i) for i in document.identities) if r is not None]
    if existing and on_conflict is ConflictPolicy.ABORT:
        names = ", ".join(str(r.identity) for r in existing)
        raise ConflictError(f"policy already in store: {names}", [r.identity for r in existing])
    if dry_run:
        result.replaced = [r.identity for r in existing]
        return result
    if existing and not confirm("replace policy", ", ".join(str(r.identity) for r in existing)):
        raise DeclinedError(f"replace of {path} declined", [r.identity for r in existing])

    for record in existing:
        logger.info("removing existing policy %s", record.identity)
        store.undeploy(record.identity)
        store.remove_from_store(record.identity, ArtifactKind.POLICY)
        result.replaced.append(record.identity)

    store.import_and_publish(path)

    if deploy:
        for identity in document.identities:
            store.deploy(identity)
            result.deployed.append(identity)

    if audit_root is not None:
        audit_log.record_operation(
            audit_root,
            "policy.replace",
            erased=audit_log.erased(policies=result.replaced),
            created=audit_log.created(policies=result.identities),
            metadata={"source": str(path), "deployed": [str(i) for i in result.deployed]},
        )
    return result


# -----------------------------------------------------------------------------
# Vocabulary replace
# -----------------------------------------------------------------------------


def plan_vocabulary_replace(
    store: ArtifactStore,
    path: Path,
    on_conflict: ConflictPolicy,
) -> ReplacePlan:
    """
    Parse `path` and find conflicting vocabularies and their dependents.

    With ABORT, the first conflict (in file order) raises ConflictError and
    later definitions are not examined.
    """
    document = load_artifact_file(path, expected_kind=ArtifactKind.VOCABULARY)
    plan = ReplacePlan(path=path, identities=document.identities)

    for identity in document.identities:
        if store.get(ArtifactKind.VOCABULARY, identity) is None:
            continue
        if on_conflict is ConflictPolicy.ABORT:
            raise ConflictError(f"vocabulary {identity} already exists in store", [identity])
        dependents = store.dependents_of(identity)
        if dependents:
            logger.warning("%d dependent policies found for vocabulary %s", len(dependents), identity)
        plan.conflicts.append(Conflict(identity, tuple(dependents)))
    return plan


def evacuate_dependents(
    store: ArtifactStore,
    vocabulary: ArtifactIdentity,
    ledger: BackupLedger,
    backup_dir: Path,
) -> list[BackupEntry]:
    """
    Export, undeploy and remove every policy that references `vocabulary`.

    A policy is removed only after its export succeeded and was pushed onto
    the ledger.
    """
    entries: list[BackupEntry] = []
    for dependent in store.dependents_of(vocabulary):
        record = store.get(ArtifactKind.POLICY, dependent)
        if record is None:
            raise BackupFailedError(dependent, "policy vanished from catalog", orphaned=ledger.snapshot())
        try:
            exported = store.export_to_file(record, backup_dir)
        except RuleStoreError as e:
            raise BackupFailedError(dependent, str(e), orphaned=ledger.snapshot()) from e

        entry = BackupEntry(dependent, exported)
        ledger.push(entry)
        entries.append(entry)
        logger.info("evacuated policy %s to %s", dependent, exported)

        try:
            store.undeploy(dependent)
            store.remove_from_store(dependent, ArtifactKind.POLICY)
        except RuleStoreError as e:
            raise StoreIOError(f"removal of policy {dependent} failed: {e}", orphaned=ledger.snapshot()) from e
    return entries


def restore_backups(
    store: ArtifactStore,
    ledger: BackupLedger,
    *,
    keep_backups: bool = False,
) -> list[ArtifactIdentity]:
    """
    Re-import and redeploy evacuated policies, most recent first.

    Entries that fail to restore go back onto the ledger and are raised
    together as RestoreFailedError once every entry has been tried.
    """
    restored: list[ArtifactIdentity] = []
    failures: list[tuple[BackupEntry, str]] = []

    while True:
        entry = ledger.pop_or_none()
        if entry is None:
            break
        try:
            replace_policies(store, entry.path, deploy=True, on_conflict=ConflictPolicy.REPLACE)
        except RuleStoreError as e:
            logger.error("restore of policy %s from %s failed: %s", entry.identity, entry.path, e)
            failures.append((entry, str(e)))
            continue
        restored.append(entry.identity)
        logger.info("restored policy %s", entry.identity)
        if not keep_backups:
            _discard_backup(entry.path)

    if failures:
        # failures are in pop order; push back so the ledger keeps push order
        for entry, _ in reversed(failures):
            ledger.push(entry)
        raise RestoreFailedError(failures, restored)
    return restored


def _discard_backup(path: Path) -> None:
    try:
        path.unlink()
    except OSError as e:
        logger.warning("could not delete backup file %s: %s", path, e)


def replace_vocabularies(
    store: ArtifactStore,
    path: Path,
    *,
    on_conflict: ConflictPolicy = ConflictPolicy.ABORT,
    cleanup_source: bool = False,
    backup_dir: Path,
    confirm: Confirm = always_confirm,
    dry_run: bool = False,
    keep_backups: bool = False,
    ledger: BackupLedger | None = None,
    audit_root: Path | None = None,
) -> ReplaceResult:
    """
    Publish the vocabularies in `path`, superseding same-identity ones.

    Dependent policies of each superseded vocabulary are exported to
    `backup_dir`, removed, and after the publish re-imported and redeployed
    in reverse evacuation order.

    Raises:
        ParseError: malformed input (nothing mutated)
        ConflictError: conflict with ABORT, declined confirmation (nothing
            mutated), or dependents left after evacuation (invariant violation)
        BackupFailedError / StoreIOError: evacuation failed
        PublishFailedError: bulk import rejected after conflicts were cleared
        RestoreFailedError: some policies could not be restored
    """
    plan = plan_vocabulary_replace(store, path, on_conflict)
    result = ReplaceResult(plan=plan, dry_run=dry_run)
    if dry_run:
        return result
    if plan.conflicts and not confirm("replace vocabulary", plan.describe()):
        raise DeclinedError(f"replace of {path} declined", [c.identity for c in plan.conflicts])

    ledger = ledger if ledger is not None else BackupLedger()
    removed_vocabularies: list[ArtifactIdentity] = []
    status = "failed"
    try:
        for conflict in plan.conflicts:
            result.evacuated.extend(evacuate_dependents(store, conflict.identity, ledger, backup_dir))
            try:
                store.remove_from_store(conflict.identity, ArtifactKind.VOCABULARY)
            except ConflictError as e:
                raise ConflictError(
                    f"vocabulary {conflict.identity} still has dependents after evacuation: {e}",
                    e.identities,
                    orphaned=ledger.snapshot(),
                ) from e
            except RuleStoreError as e:
                raise StoreIOError(
                    f"removal of vocabulary {conflict.identity} failed: {e}", orphaned=ledger.snapshot()
                ) from e
            removed_vocabularies.append(conflict.identity)
            logger.info("removed vocabulary %s", conflict.identity)

        try:
            store.import_and_publish(path)
        except RuleStoreError as e:
            raise PublishFailedError(path, str(e), orphaned=ledger.snapshot()) from e
        result.published = list(plan.identities)
        logger.info("published %d vocabularies from %s", len(result.published), path)

        try:
            result.restored = restore_backups(store, ledger, keep_backups=keep_backups)
        except RestoreFailedError as e:
            result.restored = list(e.restored)
            raise
        status = "ok"
    finally:
        if audit_root is not None:
            audit_log.record_operation(
                audit_root,
                "vocabulary.replace",
                erased=audit_log.erased(
                    policies=[e.identity for e in result.evacuated],
                    vocabularies=removed_vocabularies,
                ),
                created=audit_log.created(vocabularies=result.published, policies=result.restored),
                metadata={
                    "source": str(path),
                    "status": status,
                    "unrestored": [str(e) for e in ledger.snapshot()],
                },
            )

    if cleanup_source:
        try:
            path.unlink()
        except OSError as e:
            logger.warning("could not delete source file %s: %s", path, e)
            result.cleanup_error = str(e)
    return result
