"""
Solver settings.

All numerical tolerances and iteration budgets are collected in one frozen
record that is passed explicitly to every solver.  Settings can be read from
the ``[SOLVER]`` section of an INI-style parameter file using the same
``tag=value`` / ``::`` comment format as the materials database:

    [SOLVER]
    :: relative free-energy tolerance
    rtol=1e-8
    max_iter=500
    threads=true
"""

from dataclasses import dataclass, fields, replace
from typing import Optional

from polaronsuite.libpolaron.materialproperties import read_ini_section


@dataclass(frozen=True)
class SolverConfig:
    """
    Numerical settings for the variational and response solvers.

    Attributes
    ----------
    rtol : float
        Relative free-energy change between optimiser iterations below which
        the variational solution counts as converged.
    gtol : float
        Projected-gradient tolerance of the optimiser (reduced units).
    max_iter : int
        Optimiser iteration budget.
    epsabs, epsrel : float
        Absolute and relative error targets of every adaptive quadrature.
    limit : int
        Maximum number of adaptive subintervals.
    limlst : int
        Maximum number of cycles of a semi-infinite Fourier integral.
    response_rtol : float
        Relative accuracy, judged by the quadrature error estimate, below
        which a memory-function sample counts as converged.
    laguerre_nodes : int
        Order of the fixed Gauss-Laguerre rule of the athermal B term.
    tail_start : float
        Reduced time beyond which real-time integrals switch to Fourier
        quadrature.
    v0, w0 : float
        Default initial guess of the variational parameters.
    threads : bool
        Evaluate independent driving frequencies in a process pool.
    max_workers : int, optional
        Pool size (``None`` lets the executor decide).
    verbose : bool
        Report sweep progress through the logger.
    """

    rtol: float = 1e-8
    gtol: float = 1e-7
    max_iter: int = 500
    epsabs: float = 1e-12
    epsrel: float = 1e-10
    limit: int = 200
    limlst: int = 200
    response_rtol: float = 1e-5
    laguerre_nodes: int = 64
    tail_start: float = 1.0
    v0: float = 3.11
    w0: float = 2.87
    threads: bool = False
    max_workers: Optional[int] = None
    verbose: bool = False

    def __post_init__(self):
        if not self.rtol > 0.0:
            raise ValueError(f"rtol must be positive, got {self.rtol}")
        if not self.gtol > 0.0:
            raise ValueError(f"gtol must be positive, got {self.gtol}")
        if self.max_iter < 1:
            raise ValueError(f"max_iter must be at least 1, got {self.max_iter}")
        if self.epsabs < 0.0 or self.epsrel < 0.0:
            raise ValueError("Quadrature tolerances must be non-negative")
        if self.limit < 1 or self.limlst < 3:
            raise ValueError("Quadrature limits are too small")
        if not self.response_rtol > 0.0:
            raise ValueError(f"response_rtol must be positive, got {self.response_rtol}")
        if self.laguerre_nodes < 2:
            raise ValueError(f"laguerre_nodes must be at least 2, got {self.laguerre_nodes}")
        if not self.tail_start > 0.0:
            raise ValueError(f"tail_start must be positive, got {self.tail_start}")
        if not self.v0 > self.w0 > 0.0:
            raise ValueError(f"Initial guess needs v0 > w0 > 0, got v0={self.v0}, w0={self.w0}")
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {self.max_workers}")

    def with_options(self, **changes) -> "SolverConfig":
        """Copy with some settings replaced (``None`` values are ignored)."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


DEFAULT_CONFIG = SolverConfig()


def _parse(raw: str, default):
    if isinstance(default, bool):
        low = raw.strip().lower()
        if low in ("1", "true", "yes", "on", "t"):
            return True
        if low in ("0", "false", "no", "off", "f"):
            return False
        raise ValueError(f"Cannot interpret '{raw}' as a boolean")
    if isinstance(default, int):
        return int(float(raw))
    return float(raw)


def read_solver_config(path: str, section: str = "SOLVER") -> SolverConfig:
    """
    Read solver settings from an INI-style parameter file.

    Missing tags keep their default values.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    ValueError
        If a value cannot be parsed or is out of range.
    """
    try:
        entries = read_ini_section(path, section) or {}
    except FileNotFoundError as exc:
        raise FileNotFoundError(f"Solver parameter file not found: {path}") from exc
    values = {}
    for f in fields(SolverConfig):
        raw = entries.get(f.name)
        if raw is None:
            continue
        default = getattr(DEFAULT_CONFIG, f.name)
        if f.name == "max_workers":
            values[f.name] = None if raw.lower() == "none" else int(raw)
            continue
        try:
            values[f.name] = _parse(raw, default)
        except ValueError as exc:
            raise ValueError(f"Bad value for '{f.name}' in {path}: {raw!r}") from exc
    return SolverConfig(**values)
