"""
Remote project service — the contract between the orchestrator and a GitLab API.

The orchestrator only talks to the hosting service through this
interface. Implementations: ``GitLabClient`` (HTTP) and
``MockRemoteProjectService`` (tests, --mock runs).
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from commit_status.core.models.build import CommitState


class RemoteServiceError(Exception):
    """Base class for every failure talking to the remote API.

    Attributes:
        project_id: The project the call was about, when known.
        status_code: HTTP status of the failed response, when there was one.
    """

    def __init__(
        self,
        message: str,
        project_id: str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.project_id = project_id
        self.status_code = status_code


class NotFoundError(RemoteServiceError):
    """The project or commit does not exist (HTTP 404)."""


class LookupFailure(RemoteServiceError):
    """A namespaced path could not be resolved to a project id."""


class UpdateFailure(RemoteServiceError):
    """A commit status could not be posted."""


class RemoteProjectService(ABC):
    """Abstract base class for GitLab-compatible project APIs.

    Implementations must be safe to call from several threads at once
    (or be stateless), since project updates may run in parallel.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Connection name this service talks through."""

    @abstractmethod
    def commit_exists(self, project_id: str, sha: str) -> bool:
        """Whether ``sha`` exists in the project.

        A "not found" answer returns False. Any other failure raises
        RemoteServiceError.
        """

    @abstractmethod
    def lookup_project_id(self, namespaced_path: str) -> str:
        """Resolve ``group/project`` to the server's project id.

        Raises:
            LookupFailure: Unknown path or transport error.
        """

    @abstractmethod
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
        """Post a commit status.

        Repeating an identical call is harmless.

        Raises:
            UpdateFailure: Transport, authentication or remote error.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
