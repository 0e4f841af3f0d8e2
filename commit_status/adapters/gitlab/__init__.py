"""GitLab REST adapter."""

from commit_status.adapters.gitlab.client import GitLabClient

__all__ = ["GitLabClient"]
