"""
Tests for the GitLab HTTP client — request shapes, error mapping, retries.
"""

import json

import httpx
import pytest

from commit_status.adapters.base import LookupFailure, RemoteServiceError, UpdateFailure
from commit_status.adapters.gitlab.client import GitLabClient, encode_project_id, is_transient
from commit_status.core.models.build import CommitState
from commit_status.core.models.connection import Connection
from commit_status.core.reliability.retry import RetryPolicy

SHA = "0123456789abcdef0123456789abcdef01234567"


def _client(handler, max_attempts: int = 3, token: str = "s3cret") -> GitLabClient:
    conn = Connection(name="main", url="https://gitlab.example.com", max_attempts=max_attempts)
    retry = RetryPolicy(max_attempts=max_attempts, base_delay=0, max_delay=0, sleep=lambda _: None)
    return GitLabClient(conn, token=token, transport=httpx.MockTransport(handler), retry=retry)


class TestEncoding:
    def test_path_encoded(self):
        assert encode_project_id("group/sub/project") == "group%2Fsub%2Fproject"

    def test_numeric_untouched(self):
        assert encode_project_id("1234") == "1234"


class TestCommitExists:
    def test_exists(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"id": SHA})

        with _client(handler) as client:
            assert client.commit_exists("group/project", SHA)

        req = seen[0]
        assert req.method == "GET"
        assert req.url.raw_path.decode() == (
            f"/api/v4/projects/group%2Fproject/repository/commits/{SHA}"
        )
        assert req.headers["PRIVATE-TOKEN"] == "s3cret"

    def test_not_found_is_false(self):
        client = _client(lambda r: httpx.Response(404, json={"message": "404 Commit Not Found"}))
        assert client.commit_exists("group/project", SHA) is False

    def test_forbidden_raises(self):
        client = _client(lambda r: httpx.Response(403, json={"message": "403 Forbidden"}))
        with pytest.raises(RemoteServiceError) as exc_info:
            client.commit_exists("group/project", SHA)
        assert exc_info.value.status_code == 403
        assert "403 Forbidden" in str(exc_info.value)


class TestLookup:
    def test_returns_id_as_string(self):
        def handler(request):
            assert request.url.raw_path.decode() == "/api/v4/projects/ns.project"
            return httpx.Response(200, json={"id": 42, "path_with_namespace": "ns.project"})

        assert _client(handler).lookup_project_id("ns.project") == "42"

    def test_unknown_path(self):
        client = _client(lambda r: httpx.Response(404, json={"message": "404 Project Not Found"}))
        with pytest.raises(LookupFailure) as exc_info:
            client.lookup_project_id("group/missing.project")
        assert exc_info.value.status_code == 404
        assert exc_info.value.project_id == "group/missing.project"

    def test_missing_id_field(self):
        client = _client(lambda r: httpx.Response(200, json={"name": "x"}))
        with pytest.raises(LookupFailure):
            client.lookup_project_id("ns.project")

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(LookupFailure):
            _client(handler, max_attempts=1).lookup_project_id("ns.project")


class TestUpdateStatus:
    def test_payload(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(201, json={"id": 1, "status": "success"})

        _client(handler).update_status(
            "group/project", SHA, CommitState.SUCCESS, "main", "build", "https://ci/1", None
        )

        req = seen[0]
        assert req.method == "POST"
        assert req.url.raw_path.decode() == f"/api/v4/projects/group%2Fproject/statuses/{SHA}"
        body = json.loads(req.content)
        assert body == {
            "state": "success",
            "name": "build",
            "target_url": "https://ci/1",
            "ref": "main",
        }

    def test_optional_fields(self):
        seen = []

        def handler(request):
            seen.append(json.loads(request.content))
            return httpx.Response(201, json={})

        _client(handler).update_status(
            "7", SHA, CommitState.PENDING, None, "build", "https://ci/1", "queued"
        )
        assert "ref" not in seen[0]
        assert seen[0]["description"] == "queued"

    def test_unauthorized_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(401, json={"message": "401 Unauthorized"})

        with pytest.raises(UpdateFailure) as exc_info:
            _client(handler).update_status(
                "7", SHA, CommitState.FAILED, None, "build", "https://ci/1"
            )
        assert len(calls) == 1
        assert exc_info.value.status_code == 401
        assert "401 Unauthorized" in str(exc_info.value)

    def test_non_json_error_body(self):
        client = _client(lambda r: httpx.Response(400, text="bad request"))
        with pytest.raises(UpdateFailure, match="bad request"):
            client.update_status("7", SHA, CommitState.FAILED, None, "build", "u")


class TestRetry:
    def test_5xx_then_success(self):
        responses = [httpx.Response(502), httpx.Response(503), httpx.Response(201, json={})]
        calls = []

        def handler(request):
            calls.append(request)
            return responses[len(calls) - 1]

        _client(handler).update_status("7", SHA, CommitState.SUCCESS, None, "build", "u")
        assert len(calls) == 3

    def test_exhausted_raises_update_failure(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500)

        with pytest.raises(UpdateFailure) as exc_info:
            _client(handler, max_attempts=2).update_status(
                "7", SHA, CommitState.SUCCESS, None, "build", "u"
            )
        assert len(calls) == 2
        assert exc_info.value.status_code == 500

    def test_rate_limited_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(429)
            return httpx.Response(200, json={"id": SHA})

        assert _client(handler).commit_exists("7", SHA)
        assert len(calls) == 2

    def test_not_found_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(404)

        assert _client(handler).commit_exists("7", SHA) is False
        assert len(calls) == 1


class TestTransient:
    def test_classification(self):
        request = httpx.Request("GET", "https://x")
        assert is_transient(httpx.ConnectError("x", request=request))
        assert is_transient(httpx.ReadTimeout("x", request=request))
        for code, expected in ((500, True), (503, True), (429, True), (404, False), (401, False)):
            err = httpx.HTTPStatusError("x", request=request, response=httpx.Response(code))
            assert is_transient(err) is expected
        assert not is_transient(ValueError("x"))


class TestClientSetup:
    def test_name(self):
        assert _client(lambda r: httpx.Response(200)).name == "main"

    def test_no_token_header_when_unset(self, monkeypatch):
        monkeypatch.delenv("GITLAB_API_TOKEN", raising=False)
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={})

        conn = Connection(name="anon", url="https://gitlab.example.com")
        client = GitLabClient(conn, transport=httpx.MockTransport(handler))
        client.commit_exists("7", SHA)
        assert "PRIVATE-TOKEN" not in seen[0].headers

    def test_token_from_env(self, monkeypatch):
        monkeypatch.setenv("MY_TOKEN", "from-env")
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={})

        conn = Connection(name="env", url="https://gitlab.example.com", token_env="MY_TOKEN")
        GitLabClient(conn, transport=httpx.MockTransport(handler)).commit_exists("7", SHA)
        assert seen[0].headers["PRIVATE-TOKEN"] == "from-env"
