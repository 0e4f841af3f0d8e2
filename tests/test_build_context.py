"""
Tests for the build context — static builds, placeholder expansion, CI environment.
"""

import pytest

from commit_status.adapters.mock import MockRemoteProjectService
from commit_status.core.build_context import (
    BuildMetadataError,
    StaticBuildContext,
    build_info_from_env,
    expand_vars,
)
from commit_status.core.models.build import BuildInfo, TriggerCause


class TestExpandVars:
    def test_braced(self):
        assert expand_vars("git@${HOST}:g/p.git", {"HOST": "h"}) == "git@h:g/p.git"

    def test_bare(self):
        assert expand_vars("https://$HOST/$GROUP/p", {"HOST": "h", "GROUP": "g"}) == "https://h/g/p"

    def test_unknown_left_alone(self):
        assert expand_vars("git@${NOPE}:g/p.git", {}) == "git@${NOPE}:g/p.git"

    def test_no_placeholders(self):
        assert expand_vars("git@h:g/p.git", {"X": "y"}) == "git@h:g/p.git"

    def test_value_not_reexpanded(self):
        assert expand_vars("${A}", {"A": "$B", "B": "x"}) == "$B"


class TestStaticBuildContext:
    def test_accessors(self):
        service = MockRemoteProjectService()
        info = BuildInfo(
            commit_sha="abc",
            build_url="job/x/1/",
            root_url="https://ci.example.com",
            remote_urls=["git@h:g/p.git"],
            environment={"A": "1"},
            trigger=TriggerCause(source_branch="feature"),
        )
        build = StaticBuildContext(info, service)
        assert build.last_built_revision_sha1() == "abc"
        assert build.build_url() == "https://ci.example.com/job/x/1/"
        assert build.remote_urls() == ["git@h:g/p.git"]
        assert build.trigger_source_branch() == "feature"
        assert build.environment() == {"A": "1"}
        assert build.connection_config() is service

    def test_remote_urls_is_a_copy(self):
        build = StaticBuildContext(BuildInfo(remote_urls=["a"]))
        build.remote_urls().append("b")
        assert build.remote_urls() == ["a"]

    def test_no_trigger(self):
        assert StaticBuildContext(BuildInfo()).trigger_source_branch() is None

    def test_missing_revision(self):
        with pytest.raises(BuildMetadataError):
            StaticBuildContext(BuildInfo(build_url="u")).last_built_revision_sha1()

    def test_missing_build_url(self):
        with pytest.raises(BuildMetadataError):
            StaticBuildContext(BuildInfo(commit_sha="abc")).build_url()


class TestBuildInfoFromEnv:
    def test_jenkins_style(self):
        env = {
            "GIT_COMMIT": "abc123",
            "BUILD_URL": "https://ci.example.com/job/app/7/",
            "GIT_URL": "git@gitlab.example.com:group/app.git",
            "GIT_URL_1": "git@gitlab.example.com:group/app.git",
            "GIT_URL_2": "https://mirror.example.com/group/app.git",
            "gitlabSourceBranch": "feature/login",
            "gitlabTargetBranch": "main",
            "gitlabActionType": "MERGE",
        }
        info = build_info_from_env(env, connection="main")
        assert info.commit_sha == "abc123"
        assert info.build_url == "https://ci.example.com/job/app/7/"
        assert info.remote_urls == [
            "git@gitlab.example.com:group/app.git",
            "https://mirror.example.com/group/app.git",
        ]
        assert info.trigger.source_branch == "feature/login"
        assert info.trigger.target_branch == "main"
        assert info.trigger.kind == "merge"
        assert info.connection == "main"
        assert info.environment["GIT_COMMIT"] == "abc123"

    def test_gitlab_ci_style(self):
        env = {
            "CI_COMMIT_SHA": "def456",
            "CI_JOB_URL": "https://gitlab.example.com/group/app/-/jobs/9",
            "CI_REPOSITORY_URL": "https://gitlab-ci-token:x@gitlab.example.com/group/app.git",
        }
        info = build_info_from_env(env)
        assert info.commit_sha == "def456"
        assert info.build_url.endswith("/jobs/9")
        assert info.remote_urls == [env["CI_REPOSITORY_URL"]]
        assert info.trigger is None

    def test_empty_env(self):
        info = build_info_from_env({})
        assert info.commit_sha == ""
        assert info.remote_urls == []
