"""
Logging for polaronsuite.

Everything logs under the ``polaronsuite`` root.  Two levels below DEBUG
carry the inner loops of a sweep:

    ITERATE    (9)  optimiser iterates and per-sample error reports
    QUADRATURE (8)  every individual numerical integral

Verbosity can be given as a Python level, a level name, or one of the
sweep-oriented names of :data:`VERBOSITY` ("quiet", "sweep", "points",
"iterates", "quadrature").

>>> from polaronsuite.libpolaron.logger import get_logger, setup
>>> setup("iterates")
>>> log = get_logger(__name__)
>>> log.iterate("L-BFGS-B iterate v=%g w=%g", 3.3, 2.7)
"""

import logging
import sys

ITERATE = 9
QUADRATURE = 8

logging.addLevelName(ITERATE, "ITERATE")
logging.addLevelName(QUADRATURE, "QUAD")

ROOT_LOGGER = "polaronsuite"

VERBOSITY = {
    "quiet": logging.WARNING,
    "sweep": logging.INFO,
    "points": logging.DEBUG,
    "iterates": ITERATE,
    "quadrature": QUADRATURE,
}

_FORMAT = "%(levelname)-7s %(name)s: %(message)s"


class _PolaronLogger(logging.Logger):
    """Logger with ``iterate`` and ``quadrature`` methods for the two inner levels."""

    def iterate(self, msg, *args, **kwargs):
        if self.isEnabledFor(ITERATE):
            self._log(ITERATE, msg, args, **kwargs)

    def quadrature(self, msg, *args, **kwargs):
        if self.isEnabledFor(QUADRATURE):
            self._log(QUADRATURE, msg, args, **kwargs)


logging.setLoggerClass(_PolaronLogger)


def get_logger(name: str | None = None) -> _PolaronLogger:
    """Logger for a module under the ``polaronsuite`` root (the root itself by default)."""
    return logging.getLogger(name or ROOT_LOGGER)


def _level(level):
    if isinstance(level, str) and level.lower() in VERBOSITY:
        return VERBOSITY[level.lower()]
    if isinstance(level, str):
        return level.upper()
    return level


def set_level(level: int | str = logging.INFO) -> None:
    """Set the level of every polaronsuite logger at once."""
    logging.getLogger(ROOT_LOGGER).setLevel(_level(level))


def setup(level: int | str = "sweep", stream=None) -> None:
    """Attach one stream handler to the polaronsuite root; later calls only change the level."""
    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT))
        root.addHandler(handler)
    set_level(level)
