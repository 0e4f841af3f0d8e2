"""
Connection registry — named RemoteProjectService instances.

A build refers to its GitLab connection by name, or falls back to the
default. The registry builds HTTP clients lazily from the loaded
configuration, and in mock mode hands out a single in-memory service
instead.
"""

from __future__ import annotations

import logging

from commit_status.adapters.base import RemoteProjectService
from commit_status.core.models.connection import StatusConfig

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Central lookup for the services a build can report to."""

    def __init__(
        self,
        config: StatusConfig | None = None,
        mock_mode: bool = False,
        mock_service: RemoteProjectService | None = None,
    ):
        self._config = config or StatusConfig()
        self._services: dict[str, RemoteProjectService] = {}
        self._mock_mode = mock_mode
        self._mock_service = mock_service

    @property
    def mock_mode(self) -> bool:
        return self._mock_mode

    @property
    def config(self) -> StatusConfig:
        return self._config

    def register(self, service: RemoteProjectService) -> None:
        """Register a ready-made service under its own name."""
        name = service.name
        if name in self._services:
            logger.warning("Overwriting existing connection: %s", name)
        self._services[name] = service
        logger.debug("Registered connection: %s", name)

    def unregister(self, name: str) -> None:
        self._services.pop(name, None)

    def list_connections(self) -> list[str]:
        """Names of every registered or configured connection."""
        names = list(self._services)
        for conn in self._config.connections:
            if conn.name not in names:
                names.append(conn.name)
        return names

    def get(self, name: str | None = None) -> RemoteProjectService | None:
        """The service for ``name``, or the default connection's service.

        Returns None when nothing matches; that means "not configured".
        """
        if self._mock_mode:
            if self._mock_service is None:
                from commit_status.adapters.mock import MockRemoteProjectService

                self._mock_service = MockRemoteProjectService()
            return self._mock_service

        if name is None:
            if self._config.connections:
                default = self._config.default()
                name = default.name if default else None
            elif len(self._services) == 1:
                name = next(iter(self._services))
        if name is None:
            return None

        if name in self._services:
            return self._services[name]

        conn = self._config.get_connection(name)
        if conn is None:
            logger.warning("Unknown GitLab connection '%s'", name)
            return None

        from commit_status.adapters.gitlab.client import GitLabClient

        service = GitLabClient(conn)
        self._services[name] = service
        return service

    def close(self) -> None:
        """Close every HTTP client the registry built."""
        for service in self._services.values():
            close = getattr(service, "close", None)
            if close is not None:
                close()
