"""
Mock remote service — in-memory test double for the GitLab API.

Used by the tests and by ``propagate --mock`` to exercise a full run
without touching a server. Configurable per project: which commits
exist, which paths resolve to which ids, and which calls fail.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass

from commit_status.adapters.base import (
    LookupFailure,
    RemoteProjectService,
    RemoteServiceError,
    UpdateFailure,
)
from commit_status.core.models.build import CommitState


@dataclass(frozen=True)
class StatusCall:
    """One recorded update_status call."""

    project_id: str
    sha: str
    state: CommitState
    branch: str | None
    context: str
    target_url: str
    description: str | None = None


class MockRemoteProjectService(RemoteProjectService):
    """In-memory RemoteProjectService.

    By default every commit exists everywhere and every update succeeds.
    Lookups succeed only for paths registered with ``add_project``.
    """

    def __init__(self, service_name: str = "mock", all_commits_exist: bool = True):
        self._name = service_name
        self._all_commits_exist = all_commits_exist
        self._commits: dict[str, set[str]] = {}
        self._missing: set[tuple[str, str]] = set()
        self._projects: dict[str, str] = {}
        self._update_failures: dict[str, str] = {}
        self._commit_failures: dict[str, str] = {}
        self._lock = threading.Lock()

        self.calls: list[tuple[str, tuple]] = []
        self.status_calls: list[StatusCall] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_count(self) -> int:
        return len(self.calls)

    # ── Configuration ───────────────────────────────────────────

    def add_project(self, path: str, project_id: str) -> None:
        """Make ``lookup_project_id(path)`` return ``project_id``."""
        self._projects[path] = project_id

    def add_commit(self, project_id: str, sha: str) -> None:
        """Register a commit; used when ``all_commits_exist`` is False."""
        self._commits.setdefault(project_id, set()).add(sha)

    def remove_commit(self, project_id: str, sha: str) -> None:
        """Make a commit missing from one project."""
        self._missing.add((project_id, sha))

    def fail_updates(self, project_id: str, error: str = "Mock update failure") -> None:
        self._update_failures[project_id] = error

    def fail_commit_checks(self, project_id: str, error: str = "Mock commit check failure") -> None:
        self._commit_failures[project_id] = error

    def reset(self) -> None:
        """Clear recorded calls (configuration is kept)."""
        self.calls.clear()
        self.status_calls.clear()

    # ── RemoteProjectService ─────────────────────────────────────

    def commit_exists(self, project_id: str, sha: str) -> bool:
        self._record("commit_exists", project_id, sha)
        if project_id in self._commit_failures:
            raise RemoteServiceError(self._commit_failures[project_id], project_id=project_id)
        if (project_id, sha) in self._missing:
            return False
        if self._all_commits_exist:
            return True
        return sha in self._commits.get(project_id, set())

    def lookup_project_id(self, namespaced_path: str) -> str:
        self._record("lookup_project_id", namespaced_path)
        if namespaced_path not in self._projects:
            raise LookupFailure(
                f"404 Project Not Found: {namespaced_path}",
                project_id=namespaced_path,
                status_code=404,
            )
        return self._projects[namespaced_path]

    def update_status(
        self,
        project_id: str,
        sha: str,
        state: CommitState,
        branch: str | None,
        context: str,
        target_url: str,
        description: str | None = None,
    ) -> None:
        self._record("update_status", project_id, sha, state)
        if project_id in self._update_failures:
            raise UpdateFailure(self._update_failures[project_id], project_id=project_id)
        with self._lock:
            self.status_calls.append(
                StatusCall(project_id, sha, state, branch, context, target_url, description)
            )

    def _record(self, method: str, *args: object) -> None:
        with self._lock:
            self.calls.append((method, args))

    def methods_called(self) -> list[str]:
        """Names of the methods called, in order."""
        return [name for name, _ in self.calls]
