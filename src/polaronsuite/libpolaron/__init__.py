"""libpolaron sub-package for logging, quadrature and database utilities."""

# Import modules themselves (allows: from polaronsuite.libpolaron import quadrature)
from . import logger
from . import helpers
from . import quadrature
from . import materialproperties

__all__ = [
    "logger",
    "helpers",
    "quadrature",
    "materialproperties",
]
