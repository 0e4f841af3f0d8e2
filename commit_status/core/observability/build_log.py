"""
Build log — the build-scoped output sink.

Messages written here end up in the build's console output, where the
people looking at the build will see them. When there is no console
(for example when propagation runs outside a build), the message is
routed to the process logger at DEBUG so nothing raises.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, TextIO

logger = logging.getLogger(__name__)


class BuildLog:
    """Line-oriented writer over an optional text stream."""

    def __init__(self, stream: TextIO | None = None):
        self._stream = stream
        self._lock = threading.Lock()

    @property
    def stream(self) -> TextIO | None:
        return self._stream

    def println(self, message: str) -> None:
        """Write one line."""
        if self._stream is None:
            logger.debug("No build log attached, dropping message: %s", message)
            return
        with self._lock:
            self._stream.write(f"{message}\n")
            self._stream.flush()

    def printf(self, message: str, *args: Any) -> None:
        """Write one %-formatted line."""
        self.println(message % args if args else message)

