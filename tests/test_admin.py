from __future__ import annotations

from pathlib import Path

import pytest

from conftest import RecordingStore, ident, policy, vocab
from rulestore import audit_log
from rulestore.admin import (
    export_artifacts,
    list_artifacts,
    remove_policy,
    remove_vocabulary,
    show_dependents,
)
from rulestore.artifact_file import load_artifact_file
from rulestore.audit_log import read_audit_log
from rulestore.errors import ConflictError, DeclinedError, NotFoundError
from rulestore.models import ArtifactKind
from rulestore.replace import ConflictPolicy, replace_policies


def _decline(action: str, target: str) -> bool:
    return False


# -----------------------------------------------------------------------------
# Listing
# -----------------------------------------------------------------------------


def test_list_is_sorted_by_identity(store, write_artifacts) -> None:
    store.import_and_publish(
        write_artifacts("vocabulary", [vocab("Shapes"), vocab("Colors", 2, 0), vocab("Colors", 1, 5)], "v.json")
    )

    records = list_artifacts(store, ArtifactKind.VOCABULARY)

    assert [r.identity for r in records] == [ident("Colors", 1, 5), ident("Colors", 2, 0), ident("Shapes")]
    assert list_artifacts(store, ArtifactKind.VOCABULARY, "Shapes")[0].identity == ident("Shapes")


def test_show_dependents(colors_store) -> None:
    records = show_dependents(colors_store, ident("Colors"))
    assert [r.identity for r in records] == [ident("PaintRule")]
    assert records[0].deployed is True


def test_show_dependents_of_missing_vocabulary(store) -> None:
    with pytest.raises(NotFoundError, match="vocabulary Ghost 1.0 not found"):
        show_dependents(store, ident("Ghost"))


# -----------------------------------------------------------------------------
# Policy removal
# -----------------------------------------------------------------------------


def test_remove_policy_twice_fails_second_time(colors_store, store_root: Path) -> None:
    result = remove_policy(colors_store, ident("PaintRule"), delete=True, audit_root=store_root)
    assert result.undeployed and result.removed

    recording = RecordingStore(colors_store)
    with pytest.raises(NotFoundError, match="policy PaintRule 1.0 not found"):
        remove_policy(recording, ident("PaintRule"), delete=True, audit_root=store_root)

    assert recording.mutations == []
    assert [e.operation for e in read_audit_log(store_root)] == ["policy.remove"]


def test_remove_policy_without_delete_only_undeploys(colors_store) -> None:
    result = remove_policy(colors_store, ident("PaintRule"))

    assert result.undeployed is True
    assert result.removed is False
    record = colors_store.get(ArtifactKind.POLICY, ident("PaintRule"))
    assert record is not None and record.deployed is False


def test_remove_policy_dry_run_reports_without_mutating(colors_store) -> None:
    recording = RecordingStore(colors_store)

    result = remove_policy(recording, ident("PaintRule"), delete=True, dry_run=True)

    assert result.dry_run and result.undeployed and result.removed
    assert recording.mutations == []


def test_declined_policy_delete(colors_store) -> None:
    recording = RecordingStore(colors_store)

    with pytest.raises(DeclinedError):
        remove_policy(recording, ident("PaintRule"), delete=True, confirm=_decline)

    assert recording.mutations == []


def test_undeploy_only_does_not_ask_for_confirmation(colors_store) -> None:
    result = remove_policy(colors_store, ident("PaintRule"), confirm=_decline)
    assert result.undeployed is True


# -----------------------------------------------------------------------------
# Vocabulary removal
# -----------------------------------------------------------------------------


def test_remove_vocabulary_with_dependents_needs_force(colors_store) -> None:
    recording = RecordingStore(colors_store)

    with pytest.raises(ConflictError, match="referenced by PaintRule 1.0") as exc_info:
        remove_vocabulary(recording, ident("Colors"))

    assert exc_info.value.identities == (ident("PaintRule"),)
    assert recording.mutations == []


def test_forced_vocabulary_removal_backs_up_dependents(colors_store, backup_dir: Path, store_root: Path) -> None:
    result = remove_vocabulary(colors_store, ident("Colors"), force=True, backup_dir=backup_dir, audit_root=store_root)

    assert result.removed is True
    assert result.dependents == [ident("PaintRule")]
    (backup,) = result.backups
    assert backup.path.parent == backup_dir
    assert load_artifact_file(backup.path).identities == [ident("PaintRule")]
    assert colors_store.find(ArtifactKind.VOCABULARY) == []
    assert colors_store.find(ArtifactKind.POLICY) == []

    (entry,) = read_audit_log(store_root)
    assert entry.operation == "vocabulary.remove"
    assert entry.erased.identities == ["vocabulary:Colors 1.0", "policy:PaintRule 1.0"]


def test_backups_from_forced_removal_can_be_restored(colors_store, backup_dir: Path, write_artifacts) -> None:
    result = remove_vocabulary(colors_store, ident("Colors"), force=True, backup_dir=backup_dir)
    colors_store.import_and_publish(write_artifacts("vocabulary", [vocab("Colors")], "colors_again.json"))

    replace_policies(colors_store, result.backups[0].path, deploy=True, on_conflict=ConflictPolicy.REPLACE)

    record = colors_store.get(ArtifactKind.POLICY, ident("PaintRule"))
    assert record is not None and record.deployed is True


def test_remove_unreferenced_vocabulary(store, write_artifacts) -> None:
    store.import_and_publish(write_artifacts("vocabulary", [vocab("Loose")], "loose.json"))

    result = remove_vocabulary(store, ident("Loose"))

    assert result.removed and result.backups == []
    assert store.find(ArtifactKind.VOCABULARY) == []


def test_remove_vocabulary_dry_run(colors_store, backup_dir: Path) -> None:
    recording = RecordingStore(colors_store)

    result = remove_vocabulary(recording, ident("Colors"), force=True, backup_dir=backup_dir, dry_run=True)

    assert result.dry_run and result.dependents == [ident("PaintRule")]
    assert recording.mutations == []
    assert not backup_dir.exists()


def test_declined_vocabulary_removal(colors_store, backup_dir: Path) -> None:
    recording = RecordingStore(colors_store)

    with pytest.raises(DeclinedError):
        remove_vocabulary(recording, ident("Colors"), force=True, backup_dir=backup_dir, confirm=_decline)

    assert recording.mutations == []


def test_remove_missing_vocabulary(store) -> None:
    with pytest.raises(NotFoundError):
        remove_vocabulary(store, ident("Ghost"), force=True)


# -----------------------------------------------------------------------------
# Export
# -----------------------------------------------------------------------------


def test_export_every_matching_version(store, write_artifacts, tmp_path: Path) -> None:
    store.import_and_publish(
        write_artifacts("vocabulary", [vocab("Colors", 1, 0), vocab("Colors", 1, 1), vocab("Other")], "v.json")
    )

    paths = export_artifacts(store, ArtifactKind.VOCABULARY, tmp_path / "out", name="Colors")

    assert [load_artifact_file(p).identities for p in paths] == [[ident("Colors", 1, 0)], [ident("Colors", 1, 1)]]


def test_export_without_match(store, tmp_path: Path) -> None:
    with pytest.raises(NotFoundError, match="no policy matches"):
        export_artifacts(store, ArtifactKind.POLICY, tmp_path / "out", name="Ghost")
    assert not (tmp_path / "out").exists()


def test_export_policy_keeps_references(colors_store, tmp_path: Path) -> None:
    (path,) = export_artifacts(colors_store, ArtifactKind.POLICY, tmp_path / "out", "PaintRule", (1, 0))

    (definition,) = load_artifact_file(path).definitions
    assert definition.references == [ident("Colors")]
    assert definition.body["rules"] == ["paint it red"]


def test_exported_policy_can_replace_itself(colors_store, tmp_path: Path, write_artifacts) -> None:
    # A policy that references nothing exports and reimports cleanly
    colors_store.import_and_publish(write_artifacts("policy", [policy("Standalone", [])], "standalone.json"))
    (path,) = export_artifacts(colors_store, ArtifactKind.POLICY, tmp_path / "out", "Standalone")

    result = replace_policies(colors_store, path, on_conflict=ConflictPolicy.REPLACE)

    assert result.replaced == [ident("Standalone")]


def test_audit_write_failure_does_not_undo_reporting(colors_store, backup_dir: Path, store_root: Path, monkeypatch) -> None:
    def read_only(*args, **kwargs):
        raise PermissionError("audit.log is read-only")

    monkeypatch.setattr(audit_log, "log_operation", read_only)

    result = remove_vocabulary(colors_store, ident("Colors"), force=True, backup_dir=backup_dir, audit_root=store_root)

    (backup,) = result.backups
    assert backup.path.exists()
    assert result.removed is True
    assert read_audit_log(store_root) == []
