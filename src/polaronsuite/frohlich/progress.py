"""
Progress reporting for polaron sweeps.

The sweep reports what it is doing through an observer with two events:
``stage_entered`` when a new stage starts and ``point_completed`` when one
sweep point has been stored.  The solvers themselves never write to a
console.
"""

import time
from typing import Protocol

from polaronsuite.libpolaron.logger import get_logger

log = get_logger(__name__)


class SweepObserver(Protocol):
    def stage_entered(self, stage: str, total: int) -> None: ...

    def point_completed(self, stage: str, index: int, total: int, **info) -> None: ...


class NullObserver:
    """Observer that ignores every event."""

    def stage_entered(self, stage, total):
        pass

    def point_completed(self, stage, index, total, **info):
        pass


class LoggingObserver:
    """
    Observer that reports progress at INFO level.

    Parameters
    ----------
    logger : logging.Logger, optional
        Destination (defaults to this module's logger).
    """

    def __init__(self, logger=None):
        self.log = logger or log
        self._start = {}
        self._done = {}

    def stage_entered(self, stage, total):
        self._start[stage] = time.time()
        self._done[stage] = 0
        self.log.info("%s: %d point(s)", stage, total)

    def point_completed(self, stage, index, total, **info):
        self._done[stage] = self._done.get(stage, 0) + 1
        done = self._done[stage]
        elapsed = time.time() - self._start.get(stage, time.time())
        detail = "  ".join(f"{k}={_fmt(v)}" for k, v in info.items())
        self.log.info("  [%d/%d] %s #%d (%.1fs) %s", done, total, stage, index, elapsed, detail)


def _fmt(value):
    if isinstance(value, float):
        return f"{value:.6g}"
    if isinstance(value, complex):
        return f"{value.real:.6g}{value.imag:+.6g}j"
    return str(value)
