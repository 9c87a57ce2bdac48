"""Vocabulary CLI commands."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console

from ..admin import export_artifacts, list_artifacts, remove_vocabulary, show_dependents
from ..config import Settings
from ..errors import RuleStoreError
from ..models import ArtifactIdentity, ArtifactKind
from ..replace import ConflictPolicy, replace_vocabularies
from .common import make_confirm, print_error, print_governance_notice, print_records, store_for


def run_vocabulary_list(
    settings: Settings,
    *,
    name: str | None = None,
    version: tuple[int, int] | None = None,
    output_json: bool = False,
) -> int:
    try:
        with store_for(settings) as store:
            records = list_artifacts(store, ArtifactKind.VOCABULARY, name, version)
    except RuleStoreError as e:
        print_error(e)
        return 1
    print_records(records, "Vocabularies", output_json=output_json)
    return 0


def run_vocabulary_replace(
    settings: Settings,
    path: Path,
    *,
    force: bool = False,
    cleanup: bool = False,
    dry_run: bool = False,
    assume_yes: bool = False,
) -> int:
    err = Console(stderr=True)
    on_conflict = ConflictPolicy.REPLACE if force else ConflictPolicy.ABORT
    if not dry_run:
        print_governance_notice("vocabulary.replace", force=force)
    try:
        with store_for(settings) as store:
            result = replace_vocabularies(
                store,
                path,
                on_conflict=on_conflict,
                cleanup_source=cleanup,
                backup_dir=settings.backup_dir,
                confirm=make_confirm(assume_yes),
                dry_run=dry_run,
                keep_backups=settings.keep_backups,
                audit_root=None if dry_run else settings.store_root,
            )
    except RuleStoreError as e:
        print_error(e)
        return 1

    plan = result.plan
    if result.dry_run:
        err.print(f"\\[dry-run] would publish: {', '.join(str(i) for i in plan.identities)}", style="dim")
        for conflict in plan.conflicts:
            err.print(f"\\[dry-run] would replace vocabulary {conflict.identity}", style="yellow")
            for dependent in conflict.dependents:
                err.print(f"  would evacuate and restore policy {dependent}", style="dim")
        return 0

    err.print(f"published: {', '.join(str(i) for i in result.published)}", style="green")
    for identity in result.restored:
        err.print(f"  restored and deployed policy {identity}", style="dim")
    if result.cleanup_error:
        err.print(f"source file not removed: {result.cleanup_error}", style="yellow")
    return 0


def run_vocabulary_remove(
    settings: Settings,
    identity: ArtifactIdentity,
    *,
    force: bool = False,
    dry_run: bool = False,
    assume_yes: bool = False,
) -> int:
    err = Console(stderr=True)
    if not dry_run:
        print_governance_notice("vocabulary.remove", force=force)
    try:
        with store_for(settings) as store:
            result = remove_vocabulary(
                store,
                identity,
                force=force,
                backup_dir=settings.backup_dir,
                confirm=make_confirm(assume_yes),
                dry_run=dry_run,
                audit_root=None if dry_run else settings.store_root,
            )
    except RuleStoreError as e:
        print_error(e)
        return 1

    prefix = "\\[dry-run] would remove" if result.dry_run else "removed"
    err.print(f"{prefix} vocabulary {identity}", style="dim" if result.dry_run else "green")
    for dependent in result.dependents:
        err.print(f"  {prefix} dependent policy {dependent}", style="yellow")
    for backup in result.backups:
        err.print(f"  backup: {backup.path}", style="dim")
    return 0


def run_vocabulary_export(
    settings: Settings,
    destination: Path,
    *,
    name: str | None = None,
    version: tuple[int, int] | None = None,
) -> int:
    err = Console(stderr=True)
    try:
        with store_for(settings) as store:
            paths = export_artifacts(store, ArtifactKind.VOCABULARY, destination, name, version)
    except RuleStoreError as e:
        print_error(e)
        return 1
    for path in paths:
        err.print(f"exported: {path}", style="green")
    return 0


def run_vocabulary_dependents(
    settings: Settings,
    identity: ArtifactIdentity,
    *,
    output_json: bool = False,
) -> int:
    try:
        with store_for(settings) as store:
            records = show_dependents(store, identity)
    except RuleStoreError as e:
        print_error(e)
        return 1
    print_records(records, f"Policies referencing {identity}", output_json=output_json)
    return 0
