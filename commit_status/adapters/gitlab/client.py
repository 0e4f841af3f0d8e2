"""
GitLab client — the RemoteProjectService over the GitLab v4 REST API.

Calls used:
    GET  /projects/:id/repository/commits/:sha   (commit existence)
    GET  /projects/:path                         (path → numeric id)
    POST /projects/:id/statuses/:sha             (commit status)

Transient failures (transport errors, 429, 5xx) are retried with the
connection's retry policy. Everything else maps straight onto the
RemoteServiceError hierarchy.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from commit_status import __version__
from commit_status.adapters.base import (
    LookupFailure,
    RemoteProjectService,
    RemoteServiceError,
    UpdateFailure,
)
from commit_status.core.models.build import CommitState
from commit_status.core.models.connection import Connection
from commit_status.core.reliability.retry import RetryPolicy

logger = logging.getLogger(__name__)


def encode_project_id(project_id: str) -> str:
    """URL-encode a project id; ``group/project`` becomes ``group%2Fproject``."""
    return quote(str(project_id), safe="")


def is_transient(error: Exception) -> bool:
    """Whether an httpx error is worth retrying."""
    if isinstance(error, httpx.TransportError):
        return True
    if isinstance(error, httpx.HTTPStatusError):
        code = error.response.status_code
        return code == 429 or code >= 500
    return False


class GitLabClient(RemoteProjectService):
    """HTTP client for one GitLab connection.

    Args:
        connection: The endpoint, timeouts and retry settings.
        token: API token; defaults to the connection's token env var.
        transport: Optional httpx transport (tests use ``httpx.MockTransport``).
        retry: Optional retry policy overriding the connection's.
    """

    def __init__(
        self,
        connection: Connection,
        token: str | None = None,
        transport: httpx.BaseTransport | None = None,
        retry: RetryPolicy | None = None,
    ):
        self._connection = connection
        self._retry = retry or RetryPolicy(
            max_attempts=connection.max_attempts,
            base_delay=connection.retry_base_delay,
            max_delay=connection.retry_max_delay,
        )

        headers = {"User-Agent": f"commit-status/{__version__}"}
        token = token if token is not None else connection.token()
        if token:
            headers["PRIVATE-TOKEN"] = token
        else:
            logger.warning("Connection '%s' has no API token (%s unset)",
                           connection.name, connection.token_env)

        self._http = httpx.Client(
            base_url=connection.api_url,
            headers=headers,
            timeout=httpx.Timeout(connection.read_timeout, connect=connection.connection_timeout),
            verify=not connection.ignore_certificate_errors,
            transport=transport,
        )

    @property
    def name(self) -> str:
        return self._connection.name

    @property
    def connection(self) -> Connection:
        return self._connection

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> GitLabClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # ── RemoteProjectService ─────────────────────────────────────

    def commit_exists(self, project_id: str, sha: str) -> bool:
        path = f"/projects/{encode_project_id(project_id)}/repository/commits/{quote(sha, safe='')}"
        try:
            resp = self._request("GET", path)
        except httpx.HTTPError as e:
            raise RemoteServiceError(
                f"Commit check failed: {e}", project_id=project_id, status_code=_status_of(e)
            ) from e

        if resp.status_code == 404:
            logger.debug("Project (%s) and commit (%s) combination not found", project_id, sha)
            return False
        if not resp.is_success:
            raise RemoteServiceError(
                f"Commit check failed: HTTP {resp.status_code} {_error_message(resp)}",
                project_id=project_id,
                status_code=resp.status_code,
            )
        return True

    def lookup_project_id(self, namespaced_path: str) -> str:
        try:
            resp = self._request("GET", f"/projects/{encode_project_id(namespaced_path)}")
        except httpx.HTTPError as e:
            raise LookupFailure(
                f"Project lookup failed for '{namespaced_path}': {e}",
                project_id=namespaced_path,
                status_code=_status_of(e),
            ) from e

        if not resp.is_success:
            raise LookupFailure(
                f"Project lookup failed for '{namespaced_path}': "
                f"HTTP {resp.status_code} {_error_message(resp)}",
                project_id=namespaced_path,
                status_code=resp.status_code,
            )

        try:
            project_id = resp.json()["id"]
        except (ValueError, KeyError, TypeError) as e:
            raise LookupFailure(
                f"Project lookup for '{namespaced_path}' returned no id",
                project_id=namespaced_path,
                status_code=resp.status_code,
            ) from e

        logger.debug("Resolved project '%s' to id %s", namespaced_path, project_id)
        return str(project_id)

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
        payload: dict[str, Any] = {
            "state": CommitState(state).value,
            "name": context,
            "target_url": target_url,
        }
        if branch:
            payload["ref"] = branch
        if description is not None:
            payload["description"] = description

        path = f"/projects/{encode_project_id(project_id)}/statuses/{quote(sha, safe='')}"
        try:
            resp = self._request("POST", path, json=payload)
        except httpx.HTTPError as e:
            raise UpdateFailure(
                f"Status update failed: {e}", project_id=project_id, status_code=_status_of(e)
            ) from e

        if not resp.is_success:
            raise UpdateFailure(
                f"Status update failed: HTTP {resp.status_code} {_error_message(resp)}",
                project_id=project_id,
                status_code=resp.status_code,
            )
        logger.info("Set %s status '%s' on %s@%s", context, payload["state"], project_id, sha[:12])

    # ── Helpers ─────────────────────────────────────────────────

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send a request, retrying transient failures.

        Returns the response for any non-transient status; raises
        httpx.HTTPError once retries are exhausted.
        """

        def send() -> httpx.Response:
            resp = self._http.request(method, path, **kwargs)
            if resp.status_code == 429 or resp.status_code >= 500:
                resp.raise_for_status()
            return resp

        return self._retry.call(send, is_transient, label=f"{method} {path}")


def _status_of(error: httpx.HTTPError) -> int | None:
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    return None


def _error_message(resp: httpx.Response) -> str:
    """Best-effort error text from a GitLab error response."""
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200]
    if isinstance(body, dict):
        message = body.get("message") or body.get("error")
        if message is not None:
            return str(message)
    return str(body)[:200]
