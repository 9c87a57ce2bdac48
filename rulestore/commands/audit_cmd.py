"""Audit log CLI command."""

from __future__ import annotations

import json

from rich.console import Console
from rich.table import Table

from ..audit_log import read_audit_log
from ..config import Settings


def run_audit_show(settings: Settings, *, limit: int | None = 20, output_json: bool = False) -> int:
    entries = read_audit_log(settings.store_root, limit=limit)

    if output_json:
        print(json.dumps([e.to_dict() for e in entries], indent=2))
        return 0

    table = Table(title="Audit Log")
    table.add_column("timestamp", style="dim")
    table.add_column("operation", style="cyan")
    table.add_column("erased")
    table.add_column("created")
    table.add_column("status")

    for e in entries:
        table.add_row(
            e.timestamp[:19].replace("T", " "),
            e.operation,
            f"{e.erased.vocabularies} vocab / {e.erased.policies} policy",
            f"{e.created.vocabularies} vocab / {e.created.policies} policy",
            str(e.metadata.get("status", "")),
        )

    console = Console()
    console.print(table)
    console.print(f"\nEntries: {len(entries)} shown")
    return 0
