"""
Content-addressed storage (CAS) for artifact definitions.

Definitions are stored by the sha256 of their canonical JSON, so
republishing identical content is free and corruption is detectable.
The catalog references content by content_id.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

from ..errors import StoreIOError


class ContentStore:
    """
    Content-addressed storage for definition payloads.

    Blobs live in a two-level directory keyed by the first 2 characters
    of the hash:

        <store>/content/ab/ab1234...json
    """

    def __init__(self, root: Path):
        self.root = root
        self.content_dir = root / "content"

    def _content_path(self, content_id: str) -> Path:
        return self.content_dir / content_id[:2] / f"{content_id}.json"

    @staticmethod
    def compute_hash(content: dict[str, Any]) -> str:
        # Canonical JSON serialization for deterministic hashing
        canonical = json.dumps(content, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

    def store(self, content: dict[str, Any]) -> str:
        """
        Store content and return its content_id.

        Idempotent: storing the same content twice is a no-op.
        """
        try:
            content_id = self.compute_hash(content)
        except (TypeError, ValueError) as e:
            raise StoreIOError(f"content is not JSON-serializable: {e}") from e
        content_path = self._content_path(content_id)
        if content_path.exists():
            return content_id

        try:
            content_path.parent.mkdir(parents=True, exist_ok=True)
            temp_path = content_path.with_suffix(".tmp")
            temp_path.write_text(json.dumps(content, indent=2, sort_keys=True), encoding="utf-8")
            temp_path.replace(content_path)
        except OSError as e:
            raise StoreIOError(f"cannot write content {content_id[:12]}: {e}") from e
        return content_id

    def get(self, content_id: str) -> dict[str, Any] | None:
        """Return stored content, or None if absent."""
        content_path = self._content_path(content_id)
        if not content_path.exists():
            return None
        try:
            data = json.loads(content_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise StoreIOError(f"cannot read content {content_id[:12]}: {e}") from e
        return data if isinstance(data, dict) else None

    def verify(self, content_id: str) -> bool:
        """True if content exists and still hashes to content_id."""
        content = self.get(content_id)
        if content is None:
            return False
        return self.compute_hash(content) == content_id
