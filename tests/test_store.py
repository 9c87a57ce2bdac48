from __future__ import annotations

import json
import re
from datetime import date
from pathlib import Path

import pytest

from conftest import ident, policy, vocab
from rulestore.artifact_file import load_artifact_file
from rulestore.config import init_store
from rulestore.errors import ConflictError, NotFoundError, StoreIOError
from rulestore.models import ArtifactKind
from rulestore.store.content_store import ContentStore
from rulestore.store.filesystem import FileArtifactStore

EXPORT_NAME = re.compile(r"^[0-9A-HJKMNP-TV-Z]{26}_Colors\.1\.0\.json$")


# -----------------------------------------------------------------------------
# Queries
# -----------------------------------------------------------------------------


def test_find_filters_by_name_and_version(store, write_artifacts) -> None:
    store.import_and_publish(
        write_artifacts("vocabulary", [vocab("Colors", 1, 0), vocab("Colors", 2, 0), vocab("Shapes")], "v.json")
    )

    assert [r.identity for r in store.find(ArtifactKind.VOCABULARY)] == [
        ident("Colors", 1, 0),
        ident("Colors", 2, 0),
        ident("Shapes"),
    ]
    assert [r.identity for r in store.find(ArtifactKind.VOCABULARY, "Colors")] == [
        ident("Colors", 1, 0),
        ident("Colors", 2, 0),
    ]
    assert [r.identity for r in store.find(ArtifactKind.VOCABULARY, "Colors", (2, 0))] == [ident("Colors", 2, 0)]
    assert store.find(ArtifactKind.VOCABULARY, "Colors", (3, 0)) == []
    assert store.find(ArtifactKind.POLICY) == []


def test_get_returns_none_when_absent(colors_store) -> None:
    assert colors_store.get(ArtifactKind.VOCABULARY, ident("Colors")) is not None
    assert colors_store.get(ArtifactKind.VOCABULARY, ident("Colors", 1, 1)) is None
    # Same identity under the other kind is a different artifact
    assert colors_store.get(ArtifactKind.POLICY, ident("Colors")) is None


def test_dependents_of(colors_store, write_artifacts) -> None:
    colors_store.import_and_publish(write_artifacts("vocabulary", [vocab("Shapes")], "shapes.json"))
    colors_store.import_and_publish(
        write_artifacts("policy", [policy("ShapeRule", [("Shapes", 1, 0), ("Colors", 1, 0)])], "shape_rule.json")
    )

    assert colors_store.dependents_of(ident("Colors")) == [ident("PaintRule"), ident("ShapeRule")]
    assert colors_store.dependents_of(ident("Shapes")) == [ident("ShapeRule")]
    assert colors_store.dependents_of(ident("Colors", 9, 9)) == []


def test_closed_store_refuses_calls(store_root: Path) -> None:
    store = FileArtifactStore(store_root)
    with pytest.raises(StoreIOError, match="not open"):
        store.find(ArtifactKind.POLICY)


def test_open_missing_directory(tmp_path: Path) -> None:
    with pytest.raises(StoreIOError, match="not found"):
        FileArtifactStore(tmp_path / "nowhere").open()


def test_catalog_survives_reopen(store_root: Path, colors_store) -> None:
    colors_store.close()

    with FileArtifactStore(store_root) as reopened:
        record = reopened.get(ArtifactKind.POLICY, ident("PaintRule"))
        assert record is not None
        assert record.deployed is True
        assert record.published_at is not None


# -----------------------------------------------------------------------------
# Remove / deploy
# -----------------------------------------------------------------------------


def test_remove_missing_artifact(store) -> None:
    with pytest.raises(NotFoundError):
        store.remove_from_store(ident("Ghost"), ArtifactKind.POLICY)


def test_vocabulary_with_dependents_cannot_be_removed(colors_store) -> None:
    with pytest.raises(ConflictError, match="referenced by PaintRule 1.0") as exc_info:
        colors_store.remove_from_store(ident("Colors"), ArtifactKind.VOCABULARY)

    assert exc_info.value.identities == (ident("PaintRule"),)
    assert colors_store.get(ArtifactKind.VOCABULARY, ident("Colors")) is not None


def test_deployed_policy_cannot_be_removed(colors_store) -> None:
    with pytest.raises(ConflictError, match="undeploy it first"):
        colors_store.remove_from_store(ident("PaintRule"), ArtifactKind.POLICY)

    colors_store.undeploy(ident("PaintRule"))
    colors_store.remove_from_store(ident("PaintRule"), ArtifactKind.POLICY)
    colors_store.remove_from_store(ident("Colors"), ArtifactKind.VOCABULARY)

    assert colors_store.find(ArtifactKind.POLICY) == []
    assert colors_store.find(ArtifactKind.VOCABULARY) == []


def test_deploy_and_undeploy_are_idempotent(colors_store) -> None:
    colors_store.deploy(ident("PaintRule"))
    assert colors_store.get(ArtifactKind.POLICY, ident("PaintRule")).deployed is True

    colors_store.undeploy(ident("PaintRule"))
    colors_store.undeploy(ident("PaintRule"))
    assert colors_store.get(ArtifactKind.POLICY, ident("PaintRule")).deployed is False


def test_deploy_unknown_policy(store) -> None:
    with pytest.raises(NotFoundError):
        store.deploy(ident("Ghost"))
    with pytest.raises(NotFoundError):
        store.undeploy(ident("Ghost"))


# -----------------------------------------------------------------------------
# Import
# -----------------------------------------------------------------------------


def test_import_conflict_leaves_catalog_unchanged(colors_store, store_root: Path, write_artifacts) -> None:
    before = (store_root / "catalog.json").read_bytes()
    source = write_artifacts("vocabulary", [vocab("Fresh"), vocab("Colors")], "mixed.json")

    with pytest.raises(ConflictError, match="vocabulary already in store: Colors 1.0"):
        colors_store.import_and_publish(source)

    assert (store_root / "catalog.json").read_bytes() == before
    assert colors_store.get(ArtifactKind.VOCABULARY, ident("Fresh")) is None


def test_import_rejects_missing_vocabulary_reference(store, write_artifacts) -> None:
    source = write_artifacts(
        "policy", [policy("Good", []), policy("Bad", [("Missing", 2, 0)])], "rules.json"
    )

    with pytest.raises(NotFoundError, match="Bad 1.0 references missing vocabulary Missing 2.0") as exc_info:
        store.import_and_publish(source)

    assert exc_info.value.identity == ident("Missing", 2, 0)
    assert store.find(ArtifactKind.POLICY) == []


def test_import_returns_records_in_file_order(store, write_artifacts) -> None:
    created = store.import_and_publish(write_artifacts("vocabulary", [vocab("B"), vocab("A")], "v.json"))

    assert [r.identity for r in created] == [ident("B"), ident("A")]
    assert all(r.deployed is False and r.content_id for r in created)

    catalog = json.loads((store.root / "catalog.json").read_text(encoding="utf-8"))
    assert catalog["format_version"] == 1
    assert [a["name"] for a in catalog["artifacts"]] == ["B", "A"]


# -----------------------------------------------------------------------------
# Export
# -----------------------------------------------------------------------------


def test_export_file_name_and_contents(colors_store, tmp_path: Path) -> None:
    record = colors_store.get(ArtifactKind.VOCABULARY, ident("Colors"))

    target = colors_store.export_to_file(record, tmp_path / "out" / "nested")

    assert EXPORT_NAME.match(target.name)
    document = load_artifact_file(target)
    assert document.identities == [ident("Colors")]
    assert document.definitions[0].body["terms"] == {"red": "#f00"}


def test_repeated_exports_do_not_collide(colors_store, tmp_path: Path) -> None:
    record = colors_store.get(ArtifactKind.VOCABULARY, ident("Colors"))

    first = colors_store.export_to_file(record, tmp_path / "out")
    second = colors_store.export_to_file(record, tmp_path / "out")

    assert first != second
    assert first.exists() and second.exists()


def test_export_to_unwritable_destination(colors_store, tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    record = colors_store.get(ArtifactKind.VOCABULARY, ident("Colors"))

    with pytest.raises(StoreIOError, match="cannot export vocabulary Colors 1.0"):
        colors_store.export_to_file(record, blocker)


def test_export_of_removed_record(colors_store, tmp_path: Path) -> None:
    record = colors_store.get(ArtifactKind.POLICY, ident("PaintRule"))
    colors_store.undeploy(ident("PaintRule"))
    colors_store.remove_from_store(ident("PaintRule"), ArtifactKind.POLICY)

    with pytest.raises(NotFoundError):
        colors_store.export_to_file(record, tmp_path / "out")


def test_exported_files_republish_into_a_fresh_store(colors_store, tmp_path: Path) -> None:
    vocab_file = colors_store.export_to_file(
        colors_store.get(ArtifactKind.VOCABULARY, ident("Colors")), tmp_path / "out"
    )
    policy_file = colors_store.export_to_file(
        colors_store.get(ArtifactKind.POLICY, ident("PaintRule")), tmp_path / "out"
    )

    with FileArtifactStore(init_store(tmp_path / "other")) as fresh:
        fresh.import_and_publish(vocab_file)
        (record,) = fresh.import_and_publish(policy_file)

        assert record.identity == ident("PaintRule")
        assert fresh.dependents_of(ident("Colors")) == [ident("PaintRule")]
        assert record.content_id == colors_store.get(ArtifactKind.POLICY, ident("PaintRule")).content_id


# -----------------------------------------------------------------------------
# Content store
# -----------------------------------------------------------------------------


def test_content_store_is_idempotent_and_verifiable(tmp_path: Path) -> None:
    content = ContentStore(tmp_path)

    first = content.store({"body": {"name": "Colors"}, "notes": ""})
    second = content.store({"notes": "", "body": {"name": "Colors"}})

    assert first == second
    assert (tmp_path / "content" / first[:2] / f"{first}.json").exists()
    assert content.verify(first)
    assert content.get("0" * 64) is None
    assert not content.verify("0" * 64)


def test_content_store_detects_corruption(tmp_path: Path) -> None:
    content = ContentStore(tmp_path)
    content_id = content.store({"body": {"name": "Colors"}})

    path = tmp_path / "content" / content_id[:2] / f"{content_id}.json"
    path.write_text(json.dumps({"body": {"name": "Tampered"}}), encoding="utf-8")

    assert content.get(content_id) == {"body": {"name": "Tampered"}}
    assert not content.verify(content_id)


def test_content_store_rejects_non_json_content(tmp_path: Path) -> None:
    content = ContentStore(tmp_path)

    with pytest.raises(StoreIOError, match="not JSON-serializable"):
        content.store({"body": {"updated": date(2024, 5, 1)}})
    assert not (tmp_path / "content").exists()
