"""
Reading and writing serialized artifact files.

Two formats are accepted:

- JSON (`.json`): `{"kind": "vocabulary", "artifacts": [{...}, ...]}`
- Markdown (`.md`): the same mapping as YAML front matter; the Markdown
  body is kept as free-form notes and written back on export.

Each artifact needs `name` and `version.major` / `version.minor`. Policies
may list the vocabularies they reference under `vocabularies`. One file
holds artifacts of a single kind; file order is preserved.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import frontmatter
import yaml

from .errors import ParseError
from .models import ArtifactDefinition, ArtifactIdentity, ArtifactKind

MARKDOWN_SUFFIXES = frozenset({".md", ".markdown"})


@dataclass(frozen=True)
class ArtifactDocument:
    """Parsed contents of one artifact file."""

    kind: ArtifactKind
    definitions: tuple[ArtifactDefinition, ...]
    notes: str = ""
    format: str = "json"

    @property
    def identities(self) -> list[ArtifactIdentity]:
        return [d.identity for d in self.definitions]

    def to_mapping(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "artifacts": [dict(d.body) for d in self.definitions],
        }


def format_for(path: Path) -> str:
    return "md" if path.suffix.lower() in MARKDOWN_SUFFIXES else "json"


def load_artifact_file(path: Path, expected_kind: ArtifactKind | None = None) -> ArtifactDocument:
    """
    Parse an artifact file.

    Raises:
        ParseError: unreadable or malformed file, zero artifacts, mixed or
            unexpected kind, or the same identity declared twice.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ParseError(path, f"cannot read file ({e.strerror or e})") from e

    fmt = format_for(path)
    notes = ""
    try:
        if fmt == "md":
            post = frontmatter.loads(text)
            data: Any = dict(post.metadata)
            notes = post.content.strip()
        else:
            data = json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ParseError(path, f"not well-formed: {e}") from e

    return parse_artifact_mapping(data, path, expected_kind=expected_kind, notes=notes, fmt=fmt)


def parse_artifact_mapping(
    data: Any,
    path: Path,
    *,
    expected_kind: ArtifactKind | None = None,
    notes: str = "",
    fmt: str = "json",
) -> ArtifactDocument:
    if not isinstance(data, dict):
        raise ParseError(path, "top level must be a mapping")

    raw_kind = str(data.get("kind", "")).strip().lower()
    try:
        kind = ArtifactKind(raw_kind)
    except ValueError:
        raise ParseError(path, f"unknown artifact kind {raw_kind!r}") from None
    if expected_kind is not None and kind is not expected_kind:
        raise ParseError(path, f"expected {expected_kind.value} artifacts, found {kind.value}")

    raw_artifacts = data.get("artifacts")
    if not isinstance(raw_artifacts, list) or not raw_artifacts:
        raise ParseError(path, "file contains no artifact definitions")

    definitions: list[ArtifactDefinition] = []
    seen: set[ArtifactIdentity] = set()
    for idx, raw in enumerate(raw_artifacts):
        if not isinstance(raw, dict):
            raise ParseError(path, f"artifact #{idx + 1} is not a mapping")
        if "kind" in raw and str(raw["kind"]).strip().lower() != kind.value:
            raise ParseError(path, f"artifact #{idx + 1} has kind {raw['kind']!r}; mixed kinds are not supported")
        try:
            definition = ArtifactDefinition(ArtifactIdentity.from_dict(raw), kind, dict(raw))
            # Validate references eagerly so a bad policy fails before any store call
            definition.references
        except (ValueError, TypeError, AttributeError) as e:
            raise ParseError(path, f"artifact #{idx + 1}: {e}") from e
        try:
            # Bodies are stored as JSON; YAML dates and the like must fail here
            json.dumps(raw)
        except (TypeError, ValueError) as e:
            raise ParseError(path, f"artifact #{idx + 1} is not JSON-compatible: {e}") from e
        if definition.identity in seen:
            raise ParseError(path, f"{kind.value} {definition.identity} is declared more than once")
        seen.add(definition.identity)
        definitions.append(definition)

    return ArtifactDocument(kind=kind, definitions=tuple(definitions), notes=notes, format=fmt)


def dumps_artifact_document(document: ArtifactDocument) -> str:
    if document.format == "md":
        post = frontmatter.Post(document.notes, **document.to_mapping())
        return frontmatter.dumps(post, sort_keys=False) + "\n"
    return json.dumps(document.to_mapping(), indent=2) + "\n"


def write_artifact_file(path: Path, document: ArtifactDocument) -> Path:
    """Write `document` to `path` (temp file, then rename)."""
    temp_path = path.with_name(path.name + ".tmp")
    temp_path.write_text(dumps_artifact_document(document), encoding="utf-8")
    temp_path.replace(path)
    return path
