"""
Logging setup for the ``commitstatus`` CLI.

A run writes two streams: the build log (``BuildLog``, what the CI job
shows) and process diagnostics through ``logging``. Diagnostics always
go to stderr. When ``propagate --json`` puts a report on stdout, the
diagnostics switch to one JSON object per line so both can be parsed.

Level precedence:
    --debug / --verbose / --quiet  >  CSP_LOG_LEVEL  >  WARNING

CSP_LOG_FILE adds a file handler at CSP_LOG_FILE_LEVEL (default: the
console level).
"""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import Mapping

ENV_LEVEL = "CSP_LOG_LEVEL"
ENV_FILE = "CSP_LOG_FILE"
ENV_FILE_LEVEL = "CSP_LOG_FILE_LEVEL"

_CONSOLE_HANDLER = "commit_status.console"

_FMT_DETAIL = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_FMT_BRIEF = "%(levelname)s: %(message)s"

# httpx logs every request at INFO
_NOISY_LOGGERS = ("httpx", "httpcore")


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record, for ``--json`` runs."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def resolve_level(
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    env: Mapping[str, str] | None = None,
) -> int:
    """Pick the console level from CLI flags, then the environment."""
    if debug:
        return logging.DEBUG
    if verbose:
        return logging.INFO
    if quiet:
        return logging.ERROR
    env = os.environ if env is None else env
    return _parse_level(env.get(ENV_LEVEL))


def setup_logging(level: int = logging.WARNING, env: Mapping[str, str] | None = None) -> None:
    """Install the stderr console handler and the optional log file.

    Safe to call more than once; earlier root handlers are replaced.
    """
    env = os.environ if env is None else env

    console = logging.StreamHandler(sys.stderr)
    console.set_name(_CONSOLE_HANDLER)
    console.setLevel(level)
    if level <= logging.INFO:
        console.setFormatter(logging.Formatter(_FMT_DETAIL, datefmt="%H:%M:%S"))
    else:
        console.setFormatter(logging.Formatter(_FMT_BRIEF))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)

    effective = level
    log_file = env.get(ENV_FILE)
    if log_file:
        file_level = _parse_level(env.get(ENV_FILE_LEVEL), default=level)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FMT_DETAIL))
        root.addHandler(fh)
        effective = min(effective, file_level)

    root.setLevel(effective)

    noisy_level = logging.NOTSET if level <= logging.DEBUG else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(noisy_level)


def use_json_console() -> None:
    """Switch the console handler to JSON lines."""
    for handler in logging.getLogger().handlers:
        if handler.get_name() == _CONSOLE_HANDLER:
            handler.setFormatter(JsonLineFormatter())


def _parse_level(name: str | None, default: int = logging.WARNING) -> int:
    if not name:
        return default
    numeric = logging.getLevelName(name.strip().upper())
    return numeric if isinstance(numeric, int) else default
