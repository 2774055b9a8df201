"""Detached background tasks.

A detached task is spawned and never joined by the pipeline that started
it. Finishing a build therefore does not imply the task has finished;
anything depending on its output must treat a missing result as "not
written yet". Failures are reported on the ``pkgbridge.detached`` logger.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

error_logger = logging.getLogger("pkgbridge.detached")


class DetachedTask:
    """A fire-and-forget unit of work on a daemon thread.

    Attributes:
        name: Name used in logs and as the thread name.
        error: Exception raised by the work, if any.
    """

    def __init__(self, name: str, fn: Callable[..., Any], *args: Any) -> None:
        self.name = name
        self.error: Exception | None = None
        self._fn = fn
        self._args = args
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    def _run(self) -> None:
        try:
            self._fn(*self._args)
        except Exception as e:
            self.error = e
            error_logger.exception("Detached task %s failed", self.name)

    def start(self) -> DetachedTask:
        self._thread.start()
        return self

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the task; returns True if it has finished."""
        self._thread.join(timeout)
        return not self._thread.is_alive()

    @property
    def done(self) -> bool:
        return self._thread.ident is not None and not self._thread.is_alive()


def spawn_detached(name: str, fn: Callable[..., Any], *args: Any) -> DetachedTask:
    """Start a detached task and return its handle without waiting."""
    return DetachedTask(name, fn, *args).start()


__all__ = ["DetachedTask", "spawn_detached"]
