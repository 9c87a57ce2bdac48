"""Artifact store client and its directory-backed implementation."""

from .base import ArtifactStore
from .content_store import ContentStore
from .filesystem import FileArtifactStore

__all__ = ["ArtifactStore", "ContentStore", "FileArtifactStore"]
