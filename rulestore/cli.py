"""CLI entrypoint for rulestore."""

import sys
from pathlib import Path

import click

from . import __version__
from .catalog import parse_identity, parse_version
from .config import LOG_LEVELS, STORE_DIRNAME, Settings, auto_detect_store, load_settings
from .models import ArtifactIdentity


def _version_option(ctx: click.Context, param: click.Parameter, value: str | None) -> tuple[int, int] | None:
    if value is None:
        return None
    try:
        return parse_version(value)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e


def _identity(name: str, version: str) -> ArtifactIdentity:
    try:
        return parse_identity(name, version)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="NAME VERSION") from e


def _settings(ctx: click.Context) -> Settings:
    return ctx.obj["settings"]


@click.group()
@click.version_option(__version__, prog_name="rulestore")
@click.option(
    "--store",
    "-s",
    type=click.Path(exists=False, file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    envvar="RULESTORE_PATH",
    help=f"Path to the store directory (defaults to auto-detected ./{STORE_DIRNAME}, or RULESTORE_PATH)",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Logging verbosity (overrides rulestore.toml / RULESTORE_LOG_LEVEL)",
)
@click.pass_context
def cli(ctx: click.Context, store: Path | None, log_level: str | None) -> None:
    """rulestore - administer a versioned policy/vocabulary store.

    Replace vocabularies in place without losing the policies that depend
    on them, and list, remove, deploy, and export artifacts.
    """
    from .log import setup_logging

    ctx.ensure_object(dict)
    ctx.obj["store"] = store
    if ctx.invoked_subcommand == "init":
        setup_logging(log_level or "WARNING")
        return

    if store is None:
        store = auto_detect_store(Path.cwd())
        if store is None:
            raise click.ClickException(
                f"Store not found. Pass --store /path/to/{STORE_DIRNAME}, set RULESTORE_PATH, or run `rulestore init`."
            )
    if not store.exists() or not store.is_dir():
        raise click.BadParameter(f"Directory '{store}' does not exist.", param_hint="--store / -s")

    try:
        settings = load_settings(store.resolve())
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    setup_logging(log_level or settings.log_level)
    ctx.obj["settings"] = settings


@cli.command()
@click.argument("path", required=False, type=click.Path(file_okay=False, path_type=Path))
@click.pass_context
def init(ctx: click.Context, path: Path | None) -> None:
    """Create an empty store with a default rulestore.toml.

    Examples:

        rulestore init

        rulestore init /srv/rules/.rulestore
    """
    from rich.console import Console
    from .config import init_store

    target = path or ctx.obj.get("store") or (Path.cwd() / STORE_DIRNAME)
    created = init_store(target)
    Console(stderr=True).print(f"store ready: {created.resolve()}", style="green")


# -----------------------------------------------------------------------------
# Vocabulary commands
# -----------------------------------------------------------------------------


@cli.group()
def vocabulary() -> None:
    """Vocabulary administration (shared definitions referenced by policies)."""
    pass


@vocabulary.command("list")
@click.option("--name", type=str, default=None, help="Exact vocabulary name")
@click.option("--version", "version", type=str, default=None, callback=_version_option, help="MAJOR.MINOR")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def vocabulary_list(ctx: click.Context, name: str | None, version: tuple[int, int] | None, output_json: bool) -> None:
    """List vocabularies in the store."""
    from .commands.vocabulary_cmd import run_vocabulary_list

    sys.exit(run_vocabulary_list(_settings(ctx), name=name, version=version, output_json=output_json))


@vocabulary.command("replace")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--force",
    is_flag=True,
    help="Replace same-identity vocabularies, evacuating and restoring their dependent policies",
)
@click.option("--cleanup", is_flag=True, help="Delete FILE after a successful replace")
@click.option(
    "--dry-run",
    is_flag=True,
    help="Show what would be done without executing (diagnostic only)",
)
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Skip confirmation prompts")
@click.pass_context
def vocabulary_replace(
    ctx: click.Context,
    file: Path,
    force: bool,
    cleanup: bool,
    dry_run: bool,
    assume_yes: bool,
) -> None:
    """Publish the vocabularies in FILE.

    Without --force an existing vocabulary with the same name and version
    aborts the whole operation before anything changes. With --force the
    existing vocabulary is superseded: its dependent policies are exported,
    removed, and redeployed after the new definitions are published.

    Examples:

        rulestore vocabulary replace Colors.json

        rulestore vocabulary replace Colors.json --force --dry-run
    """
    from .commands.vocabulary_cmd import run_vocabulary_replace

    sys.exit(
        run_vocabulary_replace(
            _settings(ctx),
            file,
            force=force,
            cleanup=cleanup,
            dry_run=dry_run,
            assume_yes=assume_yes,
        )
    )


@vocabulary.command("remove")
@click.argument("name")
@click.argument("version")
@click.option("--force", is_flag=True, help="Also evacuate (export + remove) dependent policies")
@click.option(
    "--dry-run",
    is_flag=True,
    help="Show what would be done without executing (diagnostic only)",
)
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Skip confirmation prompts")
@click.pass_context
def vocabulary_remove(
    ctx: click.Context,
    name: str,
    version: str,
    force: bool,
    dry_run: bool,
    assume_yes: bool,
) -> None:
    """Remove vocabulary NAME at VERSION (MAJOR.MINOR)."""
    from .commands.vocabulary_cmd import run_vocabulary_remove

    sys.exit(
        run_vocabulary_remove(
            _settings(ctx),
            _identity(name, version),
            force=force,
            dry_run=dry_run,
            assume_yes=assume_yes,
        )
    )


@vocabulary.command("dependents")
@click.argument("name")
@click.argument("version")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def vocabulary_dependents(ctx: click.Context, name: str, version: str, output_json: bool) -> None:
    """List policies that reference vocabulary NAME at VERSION."""
    from .commands.vocabulary_cmd import run_vocabulary_dependents

    sys.exit(run_vocabulary_dependents(_settings(ctx), _identity(name, version), output_json=output_json))


@vocabulary.command("export")
@click.argument("destination", type=click.Path(file_okay=False, path_type=Path))
@click.option("--name", type=str, default=None, help="Exact vocabulary name")
@click.option("--version", "version", type=str, default=None, callback=_version_option, help="MAJOR.MINOR")
@click.pass_context
def vocabulary_export(
    ctx: click.Context,
    destination: Path,
    name: str | None,
    version: tuple[int, int] | None,
) -> None:
    """Export matching vocabularies to DESTINATION, one file each."""
    from .commands.vocabulary_cmd import run_vocabulary_export

    sys.exit(run_vocabulary_export(_settings(ctx), destination, name=name, version=version))


# -----------------------------------------------------------------------------
# Policy commands
# -----------------------------------------------------------------------------


@cli.group()
def policy() -> None:
    """Policy administration (rule sets)."""
    pass


@policy.command("list")
@click.option("--name", type=str, default=None, help="Exact policy name")
@click.option("--version", "version", type=str, default=None, callback=_version_option, help="MAJOR.MINOR")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def policy_list(ctx: click.Context, name: str | None, version: tuple[int, int] | None, output_json: bool) -> None:
    """List policies in the store."""
    from .commands.policy_cmd import run_policy_list

    sys.exit(run_policy_list(_settings(ctx), name=name, version=version, output_json=output_json))


@policy.command("replace")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--deploy", is_flag=True, help="Deploy every published policy, in file order")
@click.option("--force", is_flag=True, help="Undeploy and remove same-identity policies first")
@click.option(
    "--dry-run",
    is_flag=True,
    help="Show what would be done without executing (diagnostic only)",
)
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Skip confirmation prompts")
@click.pass_context
def policy_replace(
    ctx: click.Context,
    file: Path,
    deploy: bool,
    force: bool,
    dry_run: bool,
    assume_yes: bool,
) -> None:
    """Publish the policies in FILE.

    Examples:

        rulestore policy replace PaintRule.json --deploy

        rulestore policy replace backups/01J..._PaintRule.1.0.json --deploy --force
    """
    from .commands.policy_cmd import run_policy_replace

    sys.exit(
        run_policy_replace(
            _settings(ctx),
            file,
            deploy=deploy,
            force=force,
            dry_run=dry_run,
            assume_yes=assume_yes,
        )
    )


@policy.command("remove")
@click.argument("name")
@click.argument("version")
@click.option("--delete", is_flag=True, help="Delete the policy after undeploying it")
@click.option(
    "--dry-run",
    is_flag=True,
    help="Show what would be done without executing (diagnostic only)",
)
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Skip confirmation prompts")
@click.pass_context
def policy_remove(
    ctx: click.Context,
    name: str,
    version: str,
    delete: bool,
    dry_run: bool,
    assume_yes: bool,
) -> None:
    """Undeploy policy NAME at VERSION; with --delete also remove it."""
    from .commands.policy_cmd import run_policy_remove

    sys.exit(
        run_policy_remove(
            _settings(ctx),
            _identity(name, version),
            delete=delete,
            dry_run=dry_run,
            assume_yes=assume_yes,
        )
    )


@policy.command("deploy")
@click.argument("name")
@click.argument("version")
@click.pass_context
def policy_deploy(ctx: click.Context, name: str, version: str) -> None:
    """Deploy policy NAME at VERSION for rule evaluation."""
    from .commands.policy_cmd import run_policy_deploy

    sys.exit(run_policy_deploy(_settings(ctx), _identity(name, version), deploy=True))


@policy.command("undeploy")
@click.argument("name")
@click.argument("version")
@click.pass_context
def policy_undeploy(ctx: click.Context, name: str, version: str) -> None:
    """Undeploy policy NAME at VERSION (the record is kept)."""
    from .commands.policy_cmd import run_policy_deploy

    sys.exit(run_policy_deploy(_settings(ctx), _identity(name, version), deploy=False))


@policy.command("export")
@click.argument("destination", type=click.Path(file_okay=False, path_type=Path))
@click.option("--name", type=str, default=None, help="Exact policy name")
@click.option("--version", "version", type=str, default=None, callback=_version_option, help="MAJOR.MINOR")
@click.pass_context
def policy_export(
    ctx: click.Context,
    destination: Path,
    name: str | None,
    version: tuple[int, int] | None,
) -> None:
    """Export matching policies to DESTINATION, one file each."""
    from .commands.policy_cmd import run_policy_export

    sys.exit(run_policy_export(_settings(ctx), destination, name=name, version=version))


# -----------------------------------------------------------------------------
# Audit
# -----------------------------------------------------------------------------


@cli.command("audit")
@click.option("--limit", type=int, default=20, show_default=True, help="Max entries to show")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def audit(ctx: click.Context, limit: int, output_json: bool) -> None:
    """Show recent store mutations from the audit log."""
    from .commands.audit_cmd import run_audit_show

    sys.exit(run_audit_show(_settings(ctx), limit=limit, output_json=output_json))


def main() -> None:
    """Main entrypoint."""
    cli()


if __name__ == "__main__":
    main()
