"""
Commit status propagator — CLI entrypoint.

Usage:
    python -m commit_status.main --help
    commitstatus propagate --state success --from-env
    commitstatus resolve git@gitlab.example.com:group/project.git
    commitstatus config check
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from commit_status import __version__
from commit_status.core.models.build import CommitState
from commit_status.core.observability.logging_config import resolve_level, setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="commitstatus")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to connections.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """Commit status propagator — report build results to GitLab."""
    ctx.ensure_object(dict)
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    setup_logging(resolve_level(debug=debug, verbose=verbose, quiet=quiet))


@cli.command()
@click.option(
    "--state",
    "state",
    required=True,
    type=click.Choice([s.value for s in CommitState]),
    help="Commit state to report.",
)
@click.option("--sha", default=None, help="Built commit (default: from CI environment).")
@click.option("--build-url", default=None, help="Build URL (default: from CI environment).")
@click.option("--branch", default=None, help="Source branch of the triggering webhook.")
@click.option("--remote", "remotes", multiple=True, help="Remote URL (repeatable).")
@click.option("--connection", default=None, help="Named connection (default: the default one).")
@click.option("--from-env", is_flag=True, help="Fill unset values from CI environment variables.")
@click.option("--workers", default=1, show_default=True, type=click.IntRange(1, 16),
              help="Projects updated in parallel.")
@click.option("--mock", is_flag=True, help="Use an in-memory GitLab instead of the real API.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def propagate(
    ctx: click.Context,
    state: str,
    sha: str | None,
    build_url: str | None,
    branch: str | None,
    remotes: tuple[str, ...],
    connection: str | None,
    from_env: bool,
    workers: int,
    mock: bool,
    as_json: bool,
) -> None:
    """Post a commit status to every GitLab project of this build.

    Always exits 0 once configuration is readable, even if some projects
    could not be updated: a missed status must not fail the build.
    """
    from commit_status.adapters.registry import ConnectionRegistry
    from commit_status.core.build_context import StaticBuildContext, build_info_from_env
    from commit_status.core.config.loader import ConfigError, load_config_or_empty
    from commit_status.core.models.build import BuildInfo, TriggerCause
    from commit_status.core.observability.build_log import BuildLog
    from commit_status.core.observability.logging_config import use_json_console
    from commit_status.core.use_cases.propagate import DEFAULT_CONTEXT
    from commit_status.core.use_cases.propagate import propagate as run_propagate

    if as_json:
        use_json_console()

    try:
        config = load_config_or_empty(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    if from_env:
        info = build_info_from_env(os.environ, connection=connection)
    else:
        info = BuildInfo(environment=dict(os.environ), connection=connection)

    updates: dict = {}
    if sha:
        updates["commit_sha"] = sha
    if build_url:
        updates["build_url"] = build_url
    if remotes:
        updates["remote_urls"] = list(remotes)
    if branch:
        updates["trigger"] = TriggerCause(source_branch=branch)
    info = info.model_copy(update=updates)

    registry = ConnectionRegistry(config, mock_mode=mock)
    try:
        service = registry.get(info.connection)
        conn = config.get_connection(service.name) if service else None
        status_context = conn.status_context if conn else DEFAULT_CONTEXT

        # JSON mode keeps stdout for the report; the build log goes to stderr
        log = BuildLog(sys.stderr if as_json else sys.stdout)
        report = run_propagate(
            StaticBuildContext(info, service),
            state,
            log=log,
            context=status_context,
            max_workers=workers,
        )
    finally:
        registry.close()

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        return

    if ctx.obj.get("quiet") or not report.configured or report.aborted:
        return

    click.echo(
        f"Commit status '{state}': {report.updated} updated, "
        f"{report.skipped} skipped, {report.failed} failed"
    )
    for outcome in report.outcomes:
        color = {"updated": "green", "skipped": "yellow", "failed": "red"}[outcome.status]
        detail = outcome.error or outcome.reason
        click.secho(f"   • {outcome.project_id}: {outcome.status}", fg=color, nl=not detail)
        if detail:
            click.echo(f" ({detail})")


@cli.command()
@click.argument("urls", nargs=-1, required=True)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def resolve(urls: tuple[str, ...], as_json: bool) -> None:
    """Show the GitLab project path for each remote URL."""
    from commit_status.core.services.project_id import (
        ProjectIdResolutionError,
        needs_lookup,
        retrieve_project_id,
    )

    results = []
    for url in urls:
        try:
            ref = retrieve_project_id(url)
            results.append({"url": url, "project": ref, "needs_lookup": needs_lookup(ref)})
        except ProjectIdResolutionError as e:
            results.append({"url": url, "error": e.reason})

    if as_json:
        click.echo(json.dumps(results, indent=2))
        return

    for r in results:
        if "error" in r:
            click.secho(f"✗ {r['url']}: {r['error']}", fg="red")
        else:
            suffix = " (looked up by path)" if r["needs_lookup"] else ""
            click.secho(f"✓ {r['url']} → {r['project']}{suffix}", fg="green")


@cli.group()
def config() -> None:
    """Connection configuration commands."""


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate connections.yml."""
    from commit_status.core.config.loader import ConfigError, find_config_file, load_config

    path = ctx.obj.get("config_path") or find_config_file()
    if path is None:
        error = "No connections.yml found."
        if as_json:
            click.echo(json.dumps({"valid": False, "errors": [error]}, indent=2))
        else:
            click.secho(f"❌ {error}", fg="red")
        sys.exit(1)

    try:
        cfg = load_config(path)
    except ConfigError as e:
        if as_json:
            click.echo(json.dumps({"valid": False, "errors": [str(e)]}, indent=2))
        else:
            click.secho("❌ Configuration errors:", fg="red", bold=True)
            click.echo(f"   • {e}")
        sys.exit(1)

    warnings = [
        f"Connection '{c.name}': {c.token_env} is not set"
        for c in cfg.connections
        if not c.token()
    ]

    if as_json:
        click.echo(json.dumps({
            "valid": True,
            "path": str(path),
            "connections": [c.name for c in cfg.connections],
            "default": cfg.default().name if cfg.default() else None,
            "warnings": warnings,
        }, indent=2))
        return

    click.secho("✅ Configuration is valid", fg="green", bold=True)
    click.echo(f"   File: {path}")
    click.echo(f"   Connections: {len(cfg.connections)}")
    for c in cfg.connections:
        marker = " (default)" if cfg.default() and cfg.default().name == c.name else ""
        click.echo(f"     • {c.name}{marker}  → {c.url}")

    if warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in warnings:
            click.echo(f"   • {warn}")


# ── Sub-groups ──────────────────────────────────────────────────

from commit_status.ui.cli.gitlab import gitlab  # noqa: E402

cli.add_command(gitlab)


if __name__ == "__main__":
    cli()
