"""
Propagate use case — report a build's state to every GitLab project it built.

This is the top-level orchestrator. For one build and one commit state:

    remote URLs → expand ${VARS} → project refs → project ids
                → commit exists? → post commit status

Each project is handled on its own. A remote that is not a GitLab
project is skipped, a project missing the commit is skipped, and a
failed API call is logged and recorded; none of these stop the others.
Only an unknown state or unreadable build metadata aborts the run.
Nothing is ever raised to the caller: a missed status update must not
fail a build.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from commit_status.adapters.base import NotFoundError, RemoteProjectService
from commit_status.core.build_context import BuildContext, expand_vars
from commit_status.core.models.build import CommitState
from commit_status.core.models.outcome import ProjectOutcome, PropagationReport
from commit_status.core.observability.build_log import BuildLog
from commit_status.core.services.project_id import (
    ProjectIdResolutionError,
    needs_lookup,
    retrieve_project_id,
)

logger = logging.getLogger(__name__)

DEFAULT_CONTEXT = "build"


@dataclass(frozen=True)
class ProjectTarget:
    """A resolved project to report to."""

    project_id: str
    project_ref: str
    remote_url: str


@dataclass(frozen=True)
class _RunParams:
    commit_sha: str
    build_url: str
    branch: str | None
    state: CommitState
    context: str


def propagate(
    build: BuildContext,
    state: CommitState | str,
    log: BuildLog | None = None,
    context: str = DEFAULT_CONTEXT,
    max_workers: int = 1,
) -> PropagationReport:
    """Post ``state`` for the build's commit to every matching GitLab project.

    Args:
        build: Read-only build state.
        state: Commit state to report.
        log: Build console sink. Defaults to a log with no stream.
        context: Status name shown next to the commit in GitLab.
        max_workers: Projects updated in parallel; 1 keeps it sequential.

    Returns:
        PropagationReport with one outcome per project touched.
    """
    log = log or BuildLog()
    report = PropagationReport()

    try:
        state = CommitState(state)
    except ValueError as e:
        return _abort(report, log, e)
    report.state = state

    # ── Connection ───────────────────────────────────────────────
    try:
        service = build.connection_config()
    except Exception as e:
        return _abort(report, log, e)

    if service is None:
        log.println("No GitLab connection configured")
        report.configured = False
        return report

    # ── Build metadata ───────────────────────────────────────────
    try:
        commit_sha = build.last_built_revision_sha1()
        build_url = build.build_url()
        branch = build.trigger_source_branch()
        env = build.environment()
        remote_urls = [expand_vars(url, env) for url in build.remote_urls()]
    except Exception as e:
        return _abort(report, log, e)

    report.commit_sha = commit_sha
    report.build_url = build_url

    # ── Resolve projects ─────────────────────────────────────────
    targets = resolve_targets(service, remote_urls, report, log)
    if not targets:
        logger.debug("No GitLab projects found among %d remote(s)", len(remote_urls))
        return report

    # ── Update ──────────────────────────────────────────────────
    params = _RunParams(commit_sha, build_url, branch, state, context)
    workers = max(1, min(max_workers, len(targets)))
    if workers == 1:
        outcomes = [_update_project(service, t, params, log) for t in targets]
    else:
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="commit-status") as pool:
            outcomes = list(pool.map(lambda t: _update_project(service, t, params, log), targets))

    for outcome in outcomes:
        report.add(outcome)

    logger.info(
        "Commit status '%s' for %s: %d updated, %d skipped, %d failed",
        state.value,
        commit_sha[:12],
        report.updated,
        report.skipped,
        report.failed,
    )
    return report


def resolve_targets(
    service: RemoteProjectService,
    remote_urls: list[str],
    report: PropagationReport,
    log: BuildLog,
) -> list[ProjectTarget]:
    """Turn expanded remote URLs into distinct project targets.

    Unrecognized remotes are skipped without a report entry. Refs that
    need a server-side lookup are looked up once per run; a failed
    lookup adds a 'failed' outcome to ``report``.
    """
    targets: list[ProjectTarget] = []
    seen: set[str] = set()
    lookups: dict[str, str | None] = {}

    for url in remote_urls:
        try:
            ref = retrieve_project_id(url)
        except ProjectIdResolutionError as e:
            logger.debug("Skipping remote: %s", e)
            continue

        if needs_lookup(ref):
            if ref not in lookups:
                lookups[ref] = _lookup(service, ref, url, report, log)
            project_id = lookups[ref]
            if project_id is None:
                continue
        else:
            project_id = ref

        if project_id in seen:
            continue
        seen.add(project_id)
        targets.append(ProjectTarget(project_id=project_id, project_ref=ref, remote_url=url))

    return targets


def _lookup(
    service: RemoteProjectService,
    ref: str,
    url: str,
    report: PropagationReport,
    log: BuildLog,
) -> str | None:
    try:
        return str(service.lookup_project_id(ref))
    except Exception as e:
        log.printf("Failed to look up GitLab project '%s': %s", ref, e)
        logger.warning("Failed to look up GitLab project '%s': %s", ref, e)
        report.add(ProjectOutcome.failure(ref, error=str(e), project_ref=ref, remote_url=url))
        return None


def _update_project(
    service: RemoteProjectService,
    target: ProjectTarget,
    params: _RunParams,
    log: BuildLog,
) -> ProjectOutcome:
    """Check the commit exists, then post the status. Never raises."""
    fields = {"project_ref": target.project_ref, "remote_url": target.remote_url}
    project_id = target.project_id

    try:
        try:
            exists = service.commit_exists(project_id, params.commit_sha)
        except NotFoundError:
            exists = False

        if not exists:
            logger.debug(
                "Project (%s) and commit (%s) combination not found", project_id, params.commit_sha
            )
            return ProjectOutcome.skip(project_id, reason="commit not found", **fields)

        service.update_status(
            project_id,
            params.commit_sha,
            params.state,
            params.branch,
            params.context,
            params.build_url,
            None,
        )
        return ProjectOutcome.success(project_id, **fields)
    except Exception as e:
        log.printf("Failed to update Gitlab commit status for project '%s': %s", project_id, e)
        logger.error(
            "Failed to update Gitlab commit status for project '%s'", project_id, exc_info=True
        )
        return ProjectOutcome.failure(str(project_id), error=str(e), **fields)


def _abort(report: PropagationReport, log: BuildLog, error: Exception) -> PropagationReport:
    log.printf("Failed to update Gitlab commit status: %s", error)
    logger.error("Commit status propagation aborted: %s", error)
    report.aborted = True
    report.error = str(error)
    return report

