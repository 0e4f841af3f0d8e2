"""
Project id resolution — map a git remote URL to a GitLab project path.

Pure string work, no I/O. Handles the remote shapes git itself accepts:

    git@gitlab.example.com:group/sub/project.git     (scp-like ssh)
    ssh://git@gitlab.example.com:2222/group/project  (ssh URL)
    https://gitlab.example.com/group/project.git     (http/https)
    git://gitlab.example.com/group/project.git       (git protocol)
    /srv/git/group/project.git, file:///srv/...      (local path)

The result is the ``namespace/project`` path with scheme, user, host,
port and any trailing ``.git`` removed. Nested groups are kept.
"""

from __future__ import annotations

import re
from urllib.parse import urlsplit

SUPPORTED_SCHEMES = frozenset({"http", "https", "ssh", "git", "git+ssh", "ssh+git", "file"})

_SCHEME_RE = re.compile(r"^(?P<scheme>[A-Za-z][A-Za-z0-9+.\-]*)://(?P<rest>.*)$")

# user@host:path, but not scheme://
_SCP_RE = re.compile(r"^(?:(?P<user>[^@/\s]+)@)?(?P<host>[^@/:\s]+):(?!//)(?P<path>.*)$")


class ProjectIdResolutionError(ValueError):
    """Raised when a remote URL does not look like a hosted git project."""

    def __init__(self, remote_url: str, reason: str):
        self.remote_url = remote_url
        self.reason = reason
        super().__init__(f"Cannot resolve project id from '{remote_url}': {reason}")


def retrieve_project_id(remote_url: str) -> str:
    """Extract the ``namespace/project`` path from a git remote URL.

    Args:
        remote_url: Remote URL, with any ``${VAR}`` placeholders already expanded.

    Returns:
        The project path, e.g. ``group/sub/project``.

    Raises:
        ProjectIdResolutionError: If the URL is not a recognized remote shape.
    """
    url = (remote_url or "").strip()
    if not url:
        raise ProjectIdResolutionError(remote_url, "empty URL")
    if any(c.isspace() for c in url):
        raise ProjectIdResolutionError(remote_url, "URL contains whitespace")

    m = _SCHEME_RE.match(url)
    if m:
        path = _path_from_scheme_url(remote_url, m.group("scheme").lower(), url)
    elif url.startswith("/"):
        path = url
    else:
        scp = _SCP_RE.match(url)
        if scp is None:
            raise ProjectIdResolutionError(remote_url, "unrecognized remote shape")
        path = scp.group("path")

    return _normalize_path(remote_url, path)


def needs_lookup(project_ref: str) -> bool:
    """Whether a project ref must be resolved to a numeric id server-side.

    Refs containing a literal dot are looked up through the API instead
    of being used directly as the project id.
    """
    return "." in project_ref


# ── Helpers ─────────────────────────────────────────────────────


def _path_from_scheme_url(remote_url: str, scheme: str, url: str) -> str:
    if scheme not in SUPPORTED_SCHEMES:
        raise ProjectIdResolutionError(remote_url, f"unsupported scheme '{scheme}'")

    try:
        parts = urlsplit(url)
        # Accessing .port validates it
        parts.port
    except ValueError as e:
        raise ProjectIdResolutionError(remote_url, f"malformed URL: {e}") from e

    if scheme != "file" and not parts.hostname:
        raise ProjectIdResolutionError(remote_url, "missing host")
    return parts.path


def _normalize_path(remote_url: str, path: str) -> str:
    path = path.strip("/")
    path = path.removesuffix(".git").rstrip("/")
    if path.startswith("~"):
        # ssh://host/~user/repo — user-relative, not a hosted project
        raise ProjectIdResolutionError(remote_url, "user-relative path")
    if not path:
        raise ProjectIdResolutionError(remote_url, "empty project path")

    segments = path.split("/")
    if any(not s or s in (".", "..") for s in segments):
        raise ProjectIdResolutionError(remote_url, f"invalid project path '{path}'")
    return path
