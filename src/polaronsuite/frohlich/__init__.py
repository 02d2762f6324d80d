"""frohlich sub-package: coupling, variational solver, response and sweeps."""

from . import coupling
from . import hellwarth
from . import freeenergy
from . import variational
from . import response
from . import diagnostics
from . import progress
from . import sweep
from . import tabulate

from .coupling import reduce_coupling, single_mode_coupling
from .hellwarth import collapse_effective_mode, effective_coupling
from .variational import solve_variational
from .response import evaluate_response, polaron_mobility
from .sweep import make_polaron, material_polaron, run_sweep
from .tabulate import write_polaron_table

__all__ = [
    "coupling",
    "hellwarth",
    "freeenergy",
    "variational",
    "response",
    "diagnostics",
    "progress",
    "sweep",
    "tabulate",
    "reduce_coupling",
    "single_mode_coupling",
    "collapse_effective_mode",
    "effective_coupling",
    "solve_variational",
    "evaluate_response",
    "polaron_mobility",
    "run_sweep",
    "make_polaron",
    "material_polaron",
    "write_polaron_table",
]
