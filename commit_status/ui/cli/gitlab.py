"""
CLI commands for poking the GitLab API directly.

Thin wrappers over ``commit_status.adapters.gitlab.client``. Handy for
checking a connection before wiring it into a build.
"""

from __future__ import annotations

import json
import sys
from collections.abc import Iterator
from contextlib import contextmanager

import click

from commit_status.adapters.base import RemoteProjectService, RemoteServiceError


@contextmanager
def _service(ctx: click.Context, connection: str | None) -> Iterator[RemoteProjectService]:
    """Yield the service for a named (or the default) connection, or exit.

    The registry, and any HTTP client it built, is closed on the way out.
    """
    from commit_status.adapters.registry import ConnectionRegistry
    from commit_status.core.config.loader import ConfigError, load_config_or_empty

    try:
        config = load_config_or_empty(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    registry = ConnectionRegistry(config)
    try:
        service = registry.get(connection)
        if service is None:
            click.secho("❌ No GitLab connection configured", fg="red", err=True)
            sys.exit(1)
        yield service
    finally:
        registry.close()


@click.group()
@click.option("--connection", default=None, help="Named connection (default: the default one).")
@click.pass_context
def gitlab(ctx: click.Context, connection: str | None) -> None:
    """GitLab API — project lookup and commit checks."""
    ctx.ensure_object(dict)
    ctx.obj["connection"] = connection


@gitlab.command()
@click.argument("path")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def project(ctx: click.Context, path: str, as_json: bool) -> None:
    """Look up the numeric id of a project path."""
    with _service(ctx, ctx.obj.get("connection")) as service:
        try:
            project_id = service.lookup_project_id(path)
        except RemoteServiceError as e:
            if as_json:
                click.echo(json.dumps({"path": path, "error": str(e)}, indent=2))
            else:
                click.secho(f"❌ {e}", fg="red")
            sys.exit(1)

    if as_json:
        click.echo(json.dumps({"path": path, "id": project_id}, indent=2))
    else:
        click.echo(f"{path} → {project_id}")


@gitlab.command()
@click.argument("project_id")
@click.argument("sha")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def commit(ctx: click.Context, project_id: str, sha: str, as_json: bool) -> None:
    """Check whether a commit exists in a project."""
    with _service(ctx, ctx.obj.get("connection")) as service:
        try:
            exists = service.commit_exists(project_id, sha)
        except RemoteServiceError as e:
            if as_json:
                click.echo(json.dumps({"project": project_id, "sha": sha, "error": str(e)}, indent=2))
            else:
                click.secho(f"❌ {e}", fg="red")
            sys.exit(1)

    if as_json:
        click.echo(json.dumps({"project": project_id, "sha": sha, "exists": exists}, indent=2))
        return

    if exists:
        click.secho(f"✓ {sha} exists in {project_id}", fg="green")
    else:
        click.secho(f"✗ {sha} not found in {project_id}", fg="yellow")
        sys.exit(1)
