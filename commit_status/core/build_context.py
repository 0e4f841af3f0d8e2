"""
Build context — the read-only view of a build that propagation works from.

The build host (a CI server, a CLI invocation, a test) supplies an
object implementing ``BuildContext``. The orchestrator only ever reads
from it. Any accessor may raise ``BuildMetadataError``; that aborts the
propagation run.

``StaticBuildContext`` is the stock implementation over a ``BuildInfo``
model. ``build_info_from_env`` fills a BuildInfo from the variables
common CI servers export.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Mapping

from commit_status.adapters.base import RemoteProjectService
from commit_status.core.models.build import BuildInfo, TriggerCause


class BuildMetadataError(Exception):
    """The build's own metadata (revision, URL, environment) is unreadable."""


class BuildContext(ABC):
    """Read-only build state supplied by the build host."""

    @abstractmethod
    def remote_urls(self) -> list[str]:
        """Every remote URL the build checked out from."""

    @abstractmethod
    def last_built_revision_sha1(self) -> str:
        """SHA-1 of the commit that was built."""

    @abstractmethod
    def build_url(self) -> str:
        """Externally visible URL of this build."""

    @abstractmethod
    def trigger_source_branch(self) -> str | None:
        """Source branch of the triggering webhook, None for other builds."""

    @abstractmethod
    def environment(self) -> Mapping[str, str]:
        """Build environment, used to expand placeholders in remote URLs."""

    @abstractmethod
    def connection_config(self) -> RemoteProjectService | None:
        """The service to report to, or None when none is configured."""


class StaticBuildContext(BuildContext):
    """BuildContext over a BuildInfo snapshot and a service handle."""

    def __init__(self, info: BuildInfo, service: RemoteProjectService | None = None):
        self._info = info
        self._service = service

    @property
    def info(self) -> BuildInfo:
        return self._info

    def remote_urls(self) -> list[str]:
        return list(self._info.remote_urls)

    def last_built_revision_sha1(self) -> str:
        if not self._info.commit_sha:
            raise BuildMetadataError("No built revision recorded for this build")
        return self._info.commit_sha

    def build_url(self) -> str:
        url = self._info.absolute_build_url
        if not url:
            raise BuildMetadataError("No build URL recorded for this build")
        return url

    def trigger_source_branch(self) -> str | None:
        trigger = self._info.trigger
        return trigger.source_branch if trigger else None

    def environment(self) -> Mapping[str, str]:
        return dict(self._info.environment)

    def connection_config(self) -> RemoteProjectService | None:
        return self._service


# ── Placeholder expansion ───────────────────────────────────────

_VAR_RE = re.compile(r"\$\{(?P<braced>[A-Za-z_][A-Za-z0-9_.]*)\}|\$(?P<bare>[A-Za-z_][A-Za-z0-9_]*)")


def expand_vars(value: str, env: Mapping[str, str]) -> str:
    """Expand ``${VAR}`` and ``$VAR`` placeholders from ``env``.

    Unknown variables are left in place, unexpanded.
    """

    def _sub(m: re.Match[str]) -> str:
        key = m.group("braced") or m.group("bare")
        return env.get(key, m.group(0))

    return _VAR_RE.sub(_sub, value)


# ── CI environment ──────────────────────────────────────────────

_SHA_VARS = ("GIT_COMMIT", "CI_COMMIT_SHA", "gitlabAfter")
_BUILD_URL_VARS = ("BUILD_URL", "CI_JOB_URL")
_BRANCH_VARS = ("gitlabSourceBranch",)


def build_info_from_env(env: Mapping[str, str], connection: str | None = None) -> BuildInfo:
    """Derive a BuildInfo from CI environment variables.

    Reads the built commit from ``GIT_COMMIT``/``CI_COMMIT_SHA``, the build
    URL from ``BUILD_URL``/``CI_JOB_URL``, and remotes from ``GIT_URL`` plus
    the numbered ``GIT_URL_1..N`` set for multi-remote checkouts (or
    ``CI_REPOSITORY_URL``). A source branch is only recorded when the
    build was triggered by a GitLab webhook (``gitlabSourceBranch``).
    """
    remotes: list[str] = []
    if env.get("GIT_URL"):
        remotes.append(env["GIT_URL"])
    n = 1
    while env.get(f"GIT_URL_{n}"):
        url = env[f"GIT_URL_{n}"]
        if url not in remotes:
            remotes.append(url)
        n += 1
    if not remotes and env.get("CI_REPOSITORY_URL"):
        remotes.append(env["CI_REPOSITORY_URL"])

    trigger = None
    branch = _first(env, _BRANCH_VARS)
    if branch:
        trigger = TriggerCause(
            kind=env.get("gitlabActionType", "push").lower(),
            source_branch=branch,
            target_branch=env.get("gitlabTargetBranch") or None,
            source_project=env.get("gitlabSourceRepoName") or None,
        )

    return BuildInfo(
        commit_sha=_first(env, _SHA_VARS) or "",
        build_url=_first(env, _BUILD_URL_VARS) or "",
        remote_urls=remotes,
        environment=dict(env),
        trigger=trigger,
        connection=connection,
    )


def _first(env: Mapping[str, str], names: tuple[str, ...]) -> str | None:
    for name in names:
        if env.get(name):
            return env[name]
    return None
