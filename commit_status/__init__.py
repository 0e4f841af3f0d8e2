"""Commit status propagation for GitLab-compatible hosts."""

__version__ = "0.1.0"
