"""
PolaronSuite: finite-temperature Feynman polaron transport.

This package computes the mobility, complex impedance and optical
conductivity of a Frohlich polaron coupled to one or more polar-optical
phonon branches, using the Feynman variational path integral extended to
finite temperature (Osaka free energy) and to many phonon modes.
"""

# Import main sub-packages
from . import core
from . import libpolaron
from . import frohlich

__all__ = [
    "core",
    "libpolaron",
    "frohlich",
]
