"""
Shared test fixtures and configuration.
"""

import io
import logging
import textwrap
from pathlib import Path

import pytest

from commit_status.adapters.mock import MockRemoteProjectService
from commit_status.core.build_context import StaticBuildContext
from commit_status.core.models.build import BuildInfo, TriggerCause
from commit_status.core.observability.build_log import BuildLog

SHA = "4f8c2a1d9e0b7c6a5f4e3d2c1b0a9f8e7d6c5b4a"


@pytest.fixture(autouse=True)
def _restore_root_logger():
    """CLI runs install handlers on the root logger; drop them after each test."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in root.handlers[:]:
        if handler.get_name() == "commit_status.console" or isinstance(handler, logging.FileHandler):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


@pytest.fixture
def mock_service() -> MockRemoteProjectService:
    return MockRemoteProjectService()


@pytest.fixture
def console() -> io.StringIO:
    """Captured build console output."""
    return io.StringIO()


@pytest.fixture
def build_log(console: io.StringIO) -> BuildLog:
    return BuildLog(console)


@pytest.fixture
def make_build(mock_service: MockRemoteProjectService):
    """Factory for a StaticBuildContext wired to the mock service."""

    def _make(
        remotes: list[str],
        service=mock_service,
        branch: str | None = "feature/x",
        env: dict[str, str] | None = None,
        sha: str = SHA,
    ) -> StaticBuildContext:
        info = BuildInfo(
            commit_sha=sha,
            build_url="https://ci.example.com/job/app/42/",
            remote_urls=remotes,
            environment=env or {},
            trigger=TriggerCause(source_branch=branch) if branch else None,
        )
        return StaticBuildContext(info, service)

    return _make


@pytest.fixture
def connections_yml(tmp_path: Path) -> Path:
    """A valid connections.yml with two connections."""
    content = textwrap.dedent("""\
        default_connection: main
        connections:
          - name: main
            url: https://gitlab.example.com/
            token_env: TEST_GITLAB_TOKEN
            status_context: jenkins
          - name: mirror
            url: https://mirror.example.com
            ignore_certificate_errors: true
            max_attempts: 1
    """)
    path = tmp_path / "connections.yml"
    path.write_text(content)
    return path
