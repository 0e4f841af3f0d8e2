"""Adapters — bindings to GitLab-compatible project APIs.

Public re-exports for convenient access.
"""

from commit_status.adapters.base import (
    LookupFailure,
    NotFoundError,
    RemoteProjectService,
    RemoteServiceError,
    UpdateFailure,
)
from commit_status.adapters.mock import MockRemoteProjectService
from commit_status.adapters.registry import ConnectionRegistry

__all__ = [
    "ConnectionRegistry",
    "LookupFailure",
    "MockRemoteProjectService",
    "NotFoundError",
    "RemoteProjectService",
    "RemoteServiceError",
    "UpdateFailure",
]
