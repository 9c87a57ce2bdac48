"""Policy CLI commands."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console

from ..admin import deploy_policy, export_artifacts, list_artifacts, remove_policy, undeploy_policy
from ..config import Settings
from ..errors import RuleStoreError
from ..models import ArtifactIdentity, ArtifactKind
from ..replace import ConflictPolicy, replace_policies
from .common import make_confirm, print_error, print_governance_notice, print_records, store_for


def run_policy_list(
    settings: Settings,
    *,
    name: str | None = None,
    version: tuple[int, int] | None = None,
    output_json: bool = False,
) -> int:
    try:
        with store_for(settings) as store:
            records = list_artifacts(store, ArtifactKind.POLICY, name, version)
    except RuleStoreError as e:
        print_error(e)
        return 1
    print_records(records, "Policies", output_json=output_json)
    return 0


def run_policy_replace(
    settings: Settings,
    path: Path,
    *,
    deploy: bool = False,
    force: bool = False,
    dry_run: bool = False,
    assume_yes: bool = False,
) -> int:
    err = Console(stderr=True)
    if not dry_run:
        print_governance_notice("policy.replace", force=force)
    try:
        with store_for(settings) as store:
            result = replace_policies(
                store,
                path,
                deploy=deploy,
                on_conflict=ConflictPolicy.REPLACE if force else ConflictPolicy.ABORT,
                confirm=make_confirm(assume_yes),
                dry_run=dry_run,
                audit_root=None if dry_run else settings.store_root,
            )
    except RuleStoreError as e:
        print_error(e)
        return 1

    if result.dry_run:
        err.print(f"\\[dry-run] would publish: {', '.join(str(i) for i in result.identities)}", style="dim")
        for identity in result.replaced:
            err.print(f"\\[dry-run] would replace policy {identity}", style="yellow")
        return 0

    err.print(f"published: {', '.join(str(i) for i in result.identities)}", style="green")
    for identity in result.deployed:
        err.print(f"  deployed {identity}", style="dim")
    return 0


def run_policy_remove(
    settings: Settings,
    identity: ArtifactIdentity,
    *,
    delete: bool = False,
    dry_run: bool = False,
    assume_yes: bool = False,
) -> int:
    err = Console(stderr=True)
    if not dry_run:
        print_governance_notice("policy.remove", delete=delete)
    try:
        with store_for(settings) as store:
            result = remove_policy(
                store,
                identity,
                delete=delete,
                confirm=make_confirm(assume_yes),
                dry_run=dry_run,
                audit_root=None if dry_run else settings.store_root,
            )
    except RuleStoreError as e:
        print_error(e)
        return 1

    prefix = "\\[dry-run] would " if result.dry_run else ""
    if result.undeployed:
        err.print(f"{prefix}undeploy policy {identity}", style="dim")
    if result.removed:
        err.print(f"{prefix}remove policy {identity}", style="dim" if result.dry_run else "green")
    if not result.undeployed and not result.removed:
        err.print(f"policy {identity} is not deployed; nothing to do", style="dim")
    return 0


def run_policy_deploy(settings: Settings, identity: ArtifactIdentity, *, deploy: bool = True) -> int:
    err = Console(stderr=True)
    try:
        with store_for(settings) as store:
            if deploy:
                deploy_policy(store, identity, audit_root=settings.store_root)
            else:
                undeploy_policy(store, identity, audit_root=settings.store_root)
    except RuleStoreError as e:
        print_error(e)
        return 1
    err.print(f"{'deployed' if deploy else 'undeployed'}: {identity}", style="green")
    return 0


def run_policy_export(
    settings: Settings,
    destination: Path,
    *,
    name: str | None = None,
    version: tuple[int, int] | None = None,
) -> int:
    err = Console(stderr=True)
    try:
        with store_for(settings) as store:
            paths = export_artifacts(store, ArtifactKind.POLICY, destination, name, version)
    except RuleStoreError as e:
        print_error(e)
        return 1
    for path in paths:
        err.print(f"exported: {path}", style="green")
    return 0
