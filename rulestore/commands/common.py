"""Helpers shared by the command implementations."""

from __future__ import annotations

import json
from typing import Iterable

import click
from rich.console import Console
from rich.table import Table

from ..config import Settings
from ..errors import RuleStoreError
from ..models import ArtifactKind, ArtifactRecord
from ..replace import Confirm, always_confirm
from ..risk import RiskClass, compute_risk
from ..store.filesystem import FileArtifactStore


def store_for(settings: Settings) -> FileArtifactStore:
    """Unopened store handle; use it as a context manager."""
    return FileArtifactStore(settings.store_root)


def make_confirm(assume_yes: bool) -> Confirm:
    if assume_yes:
        return always_confirm

    def prompt(action: str, target: str) -> bool:
        return click.confirm(f"Proceed to {action}: {target}?", default=False)

    return prompt


def print_governance_notice(operation: str, *, force: bool = False, delete: bool = False) -> None:
    """Explain why `operation` is destructive before it prompts or runs."""
    risk, reasons = compute_risk(operation, force=force, delete=delete)
    if risk is not RiskClass.MUTATION_DESTRUCTIVE:
        return
    console = Console(stderr=True)
    console.print(f"[yellow]⚠ Governance notice:[/] {operation} is {risk.value}", style="dim")
    for reason in reasons:
        console.print(f"  - {reason}", style="dim", markup=False)


def print_error(err: RuleStoreError) -> None:
    console = Console(stderr=True)
    console.print(str(err), style="bold red", markup=False)
    if err.orphaned:
        console.print("Backups not restored (restore manually with `rulestore policy replace FILE --deploy`):", style="yellow")
        for entry in err.orphaned:
            console.print(f"  {entry.identity}: {entry.path}", style="yellow", markup=False)


def records_table(records: Iterable[ArtifactRecord], title: str) -> Table:
    table = Table(title=title)
    table.add_column("name", style="cyan", no_wrap=True)
    table.add_column("version")
    table.add_column("deployed")
    table.add_column("format", style="dim")
    table.add_column("published", style="dim")
    table.add_column("content_id", style="dim")

    for r in records:
        table.add_row(
            r.identity.name,
            r.identity.version,
            ("yes" if r.deployed else "no") if r.kind is ArtifactKind.POLICY else "",
            r.source_format,
            r.published_at.strftime("%Y-%m-%d %H:%M:%S") if r.published_at else "",
            (r.content_id[:12] + "…") if r.content_id else "",
        )
    return table


def print_records(records: list[ArtifactRecord], title: str, *, output_json: bool) -> None:
    if output_json:
        print(json.dumps([r.to_dict() for r in records], indent=2))
        return
    console = Console()
    console.print(records_table(records, title))
