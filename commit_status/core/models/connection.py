"""
Connection model — named GitLab API endpoints, loaded from connections.yml.

A build points at one connection by name (or uses the default). The
token itself is never stored here, only the name of the environment
variable that holds it.
"""

from __future__ import annotations

import os

from pydantic import BaseModel, Field, field_validator


class Connection(BaseModel):
    """One GitLab API endpoint."""

    name: str
    url: str
    token_env: str = "GITLAB_API_TOKEN"
    ignore_certificate_errors: bool = False
    connection_timeout: float = 10.0
    read_timeout: float = 10.0
    status_context: str = "build"

    # Retry policy for transient failures
    max_attempts: int = Field(default=3, ge=1)
    retry_base_delay: float = 0.5
    retry_max_delay: float = 8.0

    @field_validator("url")
    @classmethod
    def _strip_url(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"connection url must be http(s), got {v!r}")
        return v

    @property
    def api_url(self) -> str:
        """Base URL of the v4 REST API."""
        return f"{self.url}/api/v4"

    def token(self) -> str:
        """Read the API token from the environment (empty when unset)."""
        return os.environ.get(self.token_env, "")


class StatusConfig(BaseModel):
    """Root configuration — every known connection plus the default."""

    version: int = 1
    default_connection: str | None = None
    connections: list[Connection] = Field(default_factory=list)

    def get_connection(self, name: str) -> Connection | None:
        """Look up a connection by name."""
        for conn in self.connections:
            if conn.name == name:
                return conn
        return None

    def default(self) -> Connection | None:
        """The default connection, or the first one declared."""
        if self.default_connection:
            return self.get_connection(self.default_connection)
        return self.connections[0] if self.connections else None
