"""
Build models — what the build host tells us about a finished (or running) build.

These are plain data: the commit that was built, where the build lives,
which remotes it pulled from, and the webhook cause that triggered it.
They never reach back into the host.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field


class CommitState(StrEnum):
    """Commit status values accepted by the GitLab statuses API."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELED = "canceled"


class TriggerCause(BaseModel):
    """The webhook event that started the build.

    Only present for builds triggered by a GitLab webhook (push or
    merge request). Manual and scheduled builds have no cause.
    """

    kind: str = "push"                   # push | merge_request | note | pipeline
    source_branch: str | None = None
    target_branch: str | None = None
    source_project: str | None = None


class BuildInfo(BaseModel):
    """Read-only snapshot of a build, as supplied by the build host."""

    commit_sha: str = ""
    build_url: str = ""                  # absolute, or relative to root_url
    root_url: str = ""
    remote_urls: list[str] = Field(default_factory=list)
    environment: dict[str, str] = Field(default_factory=dict)
    trigger: TriggerCause | None = None
    connection: str | None = None       # named connection; None = default

    @property
    def absolute_build_url(self) -> str:
        """Build URL joined onto the host's root URL when it is relative."""
        if not self.root_url or "://" in self.build_url:
            return self.build_url
        return self.root_url.rstrip("/") + "/" + self.build_url.lstrip("/")
