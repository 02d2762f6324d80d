"""core sub-package: physical constants, polaron data types and solver settings."""

from . import constants
from . import typepolaron
from . import config

__all__ = [
    "constants",
    "typepolaron",
    "config",
]
