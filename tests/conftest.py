"""Pytest configuration and fixtures."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Iterator

import pytest

from rulestore.config import Settings, init_store, load_settings
from rulestore.models import ArtifactIdentity, ArtifactKind, ArtifactRecord
from rulestore.store.filesystem import FileArtifactStore

MUTATING_CALLS = frozenset({"export_to_file", "remove_from_store", "deploy", "undeploy", "import_and_publish"})


def vocab(name: str, major: int = 1, minor: int = 0, **extra: Any) -> dict[str, Any]:
    return {"name": name, "version": {"major": major, "minor": minor}, **extra}


def policy(name: str, uses: list[tuple[str, int, int]], major: int = 1, minor: int = 0, **extra: Any) -> dict[str, Any]:
    return {
        "name": name,
        "version": {"major": major, "minor": minor},
        "vocabularies": [vocab(n, ma, mi) for n, ma, mi in uses],
        **extra,
    }


def ident(name: str, major: int = 1, minor: int = 0) -> ArtifactIdentity:
    return ArtifactIdentity(name, major, minor)


class RecordingStore:
    """
    Wraps a real store and records every call as (method, label).

    `failures[(method, label)]` makes that call raise instead of reaching
    the wrapped store.
    """

    def __init__(self, inner: FileArtifactStore):
        self.inner = inner
        self.calls: list[tuple[str, str]] = []
        self.failures: dict[tuple[str, str], Exception] = {}

    def _call(self, method: str, label: str, *args: Any) -> Any:
        self.calls.append((method, label))
        exc = self.failures.get((method, label))
        if exc is not None:
            raise exc
        return getattr(self.inner, method)(*args)

    @property
    def mutations(self) -> list[tuple[str, str]]:
        return [c for c in self.calls if c[0] in MUTATING_CALLS]

    def labels(self, method: str) -> list[str]:
        return [label for m, label in self.calls if m == method]

    def open(self) -> None:
        self.inner.open()

    def close(self) -> None:
        self.inner.close()

    def find(self, kind: ArtifactKind, name: str | None = None, version: tuple[int, int] | None = None):
        return self._call("find", kind.value, kind, name, version)

    def get(self, kind: ArtifactKind, identity: ArtifactIdentity) -> ArtifactRecord | None:
        return self._call("get", str(identity), kind, identity)

    def dependents_of(self, vocabulary: ArtifactIdentity) -> list[ArtifactIdentity]:
        return self._call("dependents_of", str(vocabulary), vocabulary)

    def export_to_file(self, record: ArtifactRecord, destination_dir: Path) -> Path:
        return self._call("export_to_file", str(record.identity), record, destination_dir)

    def remove_from_store(self, identity: ArtifactIdentity, kind: ArtifactKind) -> None:
        return self._call("remove_from_store", str(identity), identity, kind)

    def deploy(self, policy: ArtifactIdentity) -> None:
        return self._call("deploy", str(policy), policy)

    def undeploy(self, policy: ArtifactIdentity) -> None:
        return self._call("undeploy", str(policy), policy)

    def import_and_publish(self, path: Path) -> list[ArtifactRecord]:
        return self._call("import_and_publish", path.name, path)


@pytest.fixture
def store_root(tmp_path: Path) -> Path:
    return init_store(tmp_path / ".rulestore")


@pytest.fixture
def backup_dir(tmp_path: Path) -> Path:
    return tmp_path / "backups"


@pytest.fixture
def settings(store_root: Path, backup_dir: Path) -> Settings:
    return load_settings(store_root, environ={"RULESTORE_BACKUP_DIR": str(backup_dir)})


@pytest.fixture
def store(store_root: Path) -> Iterator[FileArtifactStore]:
    with FileArtifactStore(store_root) as s:
        yield s


@pytest.fixture
def recording(store: FileArtifactStore) -> RecordingStore:
    return RecordingStore(store)


@pytest.fixture
def write_artifacts(tmp_path: Path) -> Callable[..., Path]:
    """Write an artifact file: write_artifacts("vocabulary", [vocab(...)], "colors.json")."""
    src = tmp_path / "src"
    src.mkdir()

    def _write(kind: str, artifacts: list[dict[str, Any]], filename: str) -> Path:
        path = src / filename
        path.write_text(json.dumps({"kind": kind, "artifacts": artifacts}, indent=2), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def colors_store(store: FileArtifactStore, write_artifacts: Callable[..., Path]) -> FileArtifactStore:
    """Colors 1.0 with deployed dependent PaintRule 1.0."""
    store.import_and_publish(
        write_artifacts("vocabulary", [vocab("Colors", terms={"red": "#f00"})], "colors_v1.json")
    )
    store.import_and_publish(
        write_artifacts("policy", [policy("PaintRule", [("Colors", 1, 0)], rules=["paint it red"])], "paint.json")
    )
    store.deploy(ident("PaintRule"))
    return store
