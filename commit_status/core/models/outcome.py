"""
Project outcomes — the result contract of a propagation run.

Every project a run touches ends in exactly one ProjectOutcome:
updated, skipped, or failed. The orchestrator never raises; failures
are captured here and summed up in the PropagationReport.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from commit_status.core.models.build import CommitState


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class ProjectOutcome(BaseModel):
    """Result of processing one project in a propagation run."""

    project_id: str
    project_ref: str = ""            # namespace/project as parsed from the remote
    remote_url: str = ""
    status: Literal["updated", "skipped", "failed"] = "updated"

    reason: str = ""                 # why it was skipped
    error: str | None = None
    finished_at: str = Field(default_factory=_now_iso)

    @property
    def ok(self) -> bool:
        return self.status == "updated"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @classmethod
    def success(cls, project_id: str, **kwargs: Any) -> ProjectOutcome:
        """Create an 'updated' outcome."""
        return cls(project_id=project_id, status="updated", **kwargs)

    @classmethod
    def skip(cls, project_id: str, reason: str = "", **kwargs: Any) -> ProjectOutcome:
        """Create a 'skipped' outcome."""
        return cls(project_id=project_id, status="skipped", reason=reason, **kwargs)

    @classmethod
    def failure(cls, project_id: str, error: str, **kwargs: Any) -> ProjectOutcome:
        """Create a 'failed' outcome."""
        return cls(project_id=project_id, status="failed", error=error, **kwargs)


@dataclass
class PropagationReport:
    """Everything one propagation run did."""

    state: CommitState | None = None
    commit_sha: str = ""
    build_url: str = ""
    outcomes: list[ProjectOutcome] = field(default_factory=list)

    configured: bool = True          # False when no connection was configured
    aborted: bool = False            # bad state or unreadable build metadata
    error: str | None = None

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def updated(self) -> int:
        return sum(1 for o in self.outcomes if o.ok)

    @property
    def skipped(self) -> int:
        return sum(1 for o in self.outcomes if o.status == "skipped")

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.failed)

    def add(self, outcome: ProjectOutcome) -> None:
        self.outcomes.append(outcome)

    def get(self, project_id: str) -> ProjectOutcome | None:
        """Look up the outcome for a project id."""
        for outcome in self.outcomes:
            if outcome.project_id == project_id:
                return outcome
        return None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "state": self.state.value if self.state else None,
            "commit_sha": self.commit_sha,
            "build_url": self.build_url,
            "configured": self.configured,
            "aborted": self.aborted,
            "summary": {
                "total": self.total,
                "updated": self.updated,
                "skipped": self.skipped,
                "failed": self.failed,
            },
            "projects": [o.model_dump() for o in self.outcomes],
        }
        if self.error:
            result["error"] = self.error
        return result
