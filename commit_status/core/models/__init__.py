"""
Domain models — Pydantic types for status propagation.

All models are re-exported here for convenient access:

    from commit_status.core.models import BuildInfo, CommitState, ProjectOutcome
"""

from commit_status.core.models.build import BuildInfo, CommitState, TriggerCause
from commit_status.core.models.connection import Connection, StatusConfig
from commit_status.core.models.outcome import ProjectOutcome, PropagationReport

__all__ = [
    # build.py
    "BuildInfo",
    "CommitState",
    "TriggerCause",
    # connection.py
    "Connection",
    "StatusConfig",
    # outcome.py
    "ProjectOutcome",
    "PropagationReport",
]
