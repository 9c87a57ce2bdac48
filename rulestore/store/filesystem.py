"""
Directory-backed artifact store.

Layout:

    <root>/catalog.json        # ordered list of ArtifactRecord dicts
    <root>/content/ab/ab...    # definition bodies (content-addressed)

The catalog file is rewritten whole on every mutation (temp file, then
rename), so each public method is a single visible state change.
"""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..artifact_file import ArtifactDocument, load_artifact_file, write_artifact_file
from ..catalog import filter_records
from ..errors import ConflictError, NotFoundError, StoreIOError
from ..models import ArtifactDefinition, ArtifactIdentity, ArtifactKind, ArtifactRecord
from ..util import export_filename
from .content_store import ContentStore

logger = logging.getLogger(__name__)

CATALOG_FORMAT_VERSION = 1


class FileArtifactStore:
    """ArtifactStore implementation over a local directory."""

    def __init__(self, root: Path):
        self.root = root
        self.catalog_path = root / "catalog.json"
        self.content_store = ContentStore(root)
        self._records: list[ArtifactRecord] | None = None

    # -- lifecycle ---------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self._records is not None

    def open(self) -> None:
        if not self.root.is_dir():
            raise StoreIOError(f"store directory not found: {self.root}")
        self._records = self._load_catalog()
        logger.debug("opened store %s (%d records)", self.root, len(self._records))

    def close(self) -> None:
        self._records = None

    def __enter__(self) -> FileArtifactStore:
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _load_catalog(self) -> list[ArtifactRecord]:
        if not self.catalog_path.exists():
            return []
        try:
            data = json.loads(self.catalog_path.read_text(encoding="utf-8"))
            return [ArtifactRecord.from_dict(raw) for raw in data.get("artifacts", [])]
        except (OSError, ValueError, KeyError) as e:
            raise StoreIOError(f"cannot read catalog {self.catalog_path}: {e}") from e

    def _require_open(self) -> list[ArtifactRecord]:
        if self._records is None:
            raise StoreIOError(f"store {self.root} is not open")
        return self._records

    def _save(self, records: list[ArtifactRecord]) -> None:
        payload = {
            "format_version": CATALOG_FORMAT_VERSION,
            "artifacts": [r.to_dict() for r in records],
        }
        temp_path = self.catalog_path.with_suffix(".tmp")
        try:
            temp_path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
            temp_path.replace(self.catalog_path)
        except OSError as e:
            raise StoreIOError(f"cannot write catalog {self.catalog_path}: {e}") from e
        self._records = records

    def _index_of(self, kind: ArtifactKind, identity: ArtifactIdentity) -> int | None:
        for idx, record in enumerate(self._require_open()):
            if record.kind is kind and record.identity == identity:
                return idx
        return None

    def _content(self, record: ArtifactRecord) -> dict[str, Any]:
        content = self.content_store.get(record.content_id) if record.content_id else None
        if content is None:
            raise StoreIOError(f"missing content for {record.kind.value} {record.identity}")
        return content

    def _references(self, record: ArtifactRecord) -> list[ArtifactIdentity]:
        body = self._content(record).get("body", {})
        return ArtifactDefinition(record.identity, record.kind, body).references

    # -- queries -----------------------------------------------------------

    def find(
        self,
        kind: ArtifactKind,
        name: str | None = None,
        version: tuple[int, int] | None = None,
    ) -> list[ArtifactRecord]:
        return filter_records(self._require_open(), kind, name, version)

    def get(self, kind: ArtifactKind, identity: ArtifactIdentity) -> ArtifactRecord | None:
        idx = self._index_of(kind, identity)
        return None if idx is None else self._require_open()[idx]

    def dependents_of(self, vocabulary: ArtifactIdentity) -> list[ArtifactIdentity]:
        return [
            record.identity
            for record in self.find(ArtifactKind.POLICY)
            if vocabulary in self._references(record)
        ]

    # -- export ------------------------------------------------------------

    def export_to_file(self, record: ArtifactRecord, destination_dir: Path) -> Path:
        current = self.get(record.kind, record.identity)
        if current is None:
            raise NotFoundError(f"{record.kind.value} {record.identity} not found", record.identity)

        content = self._content(current)
        document = ArtifactDocument(
            kind=current.kind,
            definitions=(ArtifactDefinition(current.identity, current.kind, content.get("body", {})),),
            notes=str(content.get("notes", "")),
            format=current.source_format,
        )
        target = destination_dir / export_filename(current.identity, current.source_format)
        try:
            destination_dir.mkdir(parents=True, exist_ok=True)
            write_artifact_file(target, document)
        except OSError as e:
            raise StoreIOError(f"cannot export {current.kind.value} {current.identity} to {destination_dir}: {e}") from e
        logger.debug("exported %s %s to %s", current.kind.value, current.identity, target)
        return target

    # -- mutations ---------------------------------------------------------

    def remove_from_store(self, identity: ArtifactIdentity, kind: ArtifactKind) -> None:
        idx = self._index_of(kind, identity)
        if idx is None:
            raise NotFoundError(f"{kind.value} {identity} not found", identity)
        record = self._require_open()[idx]

        if kind is ArtifactKind.VOCABULARY:
            dependents = self.dependents_of(identity)
            if dependents:
                names = ", ".join(str(d) for d in dependents)
                raise ConflictError(f"vocabulary {identity} is referenced by {names}", dependents)
        elif record.deployed:
            raise ConflictError(f"policy {identity} is deployed; undeploy it first", [identity])

        records = list(self._require_open())
        del records[idx]
        self._save(records)

    def _set_deployed(self, policy: ArtifactIdentity, deployed: bool) -> None:
        idx = self._index_of(ArtifactKind.POLICY, policy)
        if idx is None:
            raise NotFoundError(f"policy {policy} not found", policy)
        record = self._require_open()[idx]
        if record.deployed == deployed:
            return

        if deployed:
            for ref in self._references(record):
                if self.get(ArtifactKind.VOCABULARY, ref) is None:
                    raise NotFoundError(f"policy {policy} references missing vocabulary {ref}", ref)

        records = list(self._require_open())
        records[idx] = replace(record, deployed=deployed)
        self._save(records)

    def deploy(self, policy: ArtifactIdentity) -> None:
        self._set_deployed(policy, True)

    def undeploy(self, policy: ArtifactIdentity) -> None:
        self._set_deployed(policy, False)

    def import_and_publish(self, path: Path) -> list[ArtifactRecord]:
        records = self._require_open()
        document = load_artifact_file(path)

        existing = [i for i in document.identities if self.get(document.kind, i) is not None]
        if existing:
            names = ", ".join(str(i) for i in existing)
            raise ConflictError(f"{document.kind.value} already in store: {names}", existing)

        if document.kind is ArtifactKind.POLICY:
            for definition in document.definitions:
                for ref in definition.references:
                    if self.get(ArtifactKind.VOCABULARY, ref) is None:
                        raise NotFoundError(
                            f"policy {definition.identity} references missing vocabulary {ref}", ref
                        )

        now = datetime.now(timezone.utc)
        created: list[ArtifactRecord] = []
        for definition in document.definitions:
            content_id = self.content_store.store({"body": dict(definition.body), "notes": document.notes})
            created.append(
                ArtifactRecord(
                    identity=definition.identity,
                    kind=definition.kind,
                    deployed=False,
                    content_id=content_id,
                    published_at=now,
                    source_format=document.format,
                )
            )

        self._save([*records, *created])
        logger.debug("published %d %s artifact(s) from %s", len(created), document.kind.value, path)
        return created
