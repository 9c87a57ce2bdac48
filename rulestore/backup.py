"""
Backup ledger for policies evacuated during a replace.

A strict stack scoped to one operation: the last policy exported is the
first one restored. Nothing is persisted; if the process dies mid-replace
the exported files under the backup directory are the only record.
"""

from __future__ import annotations

from .errors import BackupFailedError
from .models import BackupEntry


class BackupLedger:
    """Push/pop-only stack of BackupEntry, optionally bounded."""

    def __init__(self, capacity: int | None = None):
        if capacity is not None and capacity < 0:
            raise ValueError("capacity must be non-negative")
        self._capacity = capacity
        self._entries: list[BackupEntry] = []

    def push(self, entry: BackupEntry) -> None:
        if self._capacity is not None and len(self._entries) >= self._capacity:
            raise BackupFailedError(
                entry.identity,
                f"backup ledger is full ({self._capacity} entries)",
                orphaned=self.snapshot(),
            )
        self._entries.append(entry)

    def pop_or_none(self) -> BackupEntry | None:
        return self._entries.pop() if self._entries else None

    def is_empty(self) -> bool:
        return not self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def snapshot(self) -> tuple[BackupEntry, ...]:
        """Current entries in push order (read-only, for reporting)."""
        return tuple(self._entries)
