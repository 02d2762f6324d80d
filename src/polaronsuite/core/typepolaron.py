"""
Data types for the multi-mode Feynman polaron problem.

Physics reference:
    A polar-optical phonon branch j is described by its angular frequency
    omega_j (rad/ps) and its dimensionless Frohlich coupling alpha_j.  The
    thermodynamic state enters only through the per-mode reduced inverse
    temperature beta_j = hbar omega_j / (kB T); T = 0 is the athermal limit
    where every beta_j is infinite.

    The Feynman trial action is parametrised by the two frequencies v >= w > 0
    (units of the phonon frequency).  The fictitious particle has spring
    constant kappa = v^2 - w^2 and mass M = kappa / w^2 (Feynman 1962).

    The linear response of the polaron to a driving field of frequency Omega is
    stored as the memory function chi(Omega), the impedance
    Z = -i Omega + i chi and the conductivity sigma = 1 / Z.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np

from polaronsuite.core.constants import CODATA, PhysicalConstants


# ---------------------------------------------------------------------------
# Phonon modes and coupling sets
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Mode:
    """
    One polar-optical phonon branch.

    Parameters
    ----------
    frequency : float
        Angular frequency omega_j in reduced units (rad/ps). Must be > 0.
    alpha : float
        Dimensionless Frohlich coupling alpha_j. Must be >= 0.
    """

    frequency: float
    alpha: float

    def __post_init__(self):
        if not np.isfinite(self.frequency) or self.frequency <= 0.0:
            raise ValueError(f"Phonon frequency must be positive and finite, got {self.frequency}")
        if not np.isfinite(self.alpha) or self.alpha < 0.0:
            raise ValueError(f"Frohlich coupling must be non-negative and finite, got {self.alpha}")


@dataclass(frozen=True)
class CouplingSet:
    """
    Ordered collection of phonon modes seen by one carrier.

    A single-mode problem is a CouplingSet of size 1; every solver takes the
    same code path for one or many modes.

    Parameters
    ----------
    modes : sequence of Mode
        Phonon modes (at least one).
    m_eff : float
        Band effective mass in electron masses.
    omega_unit : float
        Angular frequency (rad/s) represented by a reduced frequency of 1.
    ionic : tuple of float, optional
        Per-mode ionic dielectric contributions, when the set was built from
        an infrared-activity table.
    """

    modes: Tuple[Mode, ...]
    m_eff: float = 1.0
    omega_unit: float = 1e12
    ionic: Optional[Tuple[float, ...]] = None

    def __post_init__(self):
        modes = tuple(self.modes)
        if len(modes) == 0:
            raise ValueError("A CouplingSet needs at least one phonon mode")
        for j, m in enumerate(modes):
            if not isinstance(m, Mode):
                raise ValueError(f"Mode {j} is not a Mode instance: {m!r}")
        object.__setattr__(self, "modes", modes)
        if not self.m_eff > 0.0:
            raise ValueError(f"Effective mass must be positive, got {self.m_eff}")
        if self.ionic is not None:
            ionic = tuple(float(x) for x in self.ionic)
            if len(ionic) != len(modes):
                raise ValueError(
                    f"Got {len(ionic)} ionic dielectric contributions for {len(modes)} modes"
                )
            object.__setattr__(self, "ionic", ionic)

    @classmethod
    def from_arrays(cls, frequencies, alphas, **kwargs) -> "CouplingSet":
        """Build a CouplingSet from parallel frequency and coupling arrays."""
        frequencies = np.atleast_1d(np.asarray(frequencies, dtype=np.float64))
        alphas = np.atleast_1d(np.asarray(alphas, dtype=np.float64))
        if frequencies.shape != alphas.shape:
            raise ValueError(
                f"Frequency and coupling arrays differ in length: "
                f"{frequencies.size} vs {alphas.size}"
            )
        modes = []
        for j, (f, a) in enumerate(zip(frequencies, alphas)):
            try:
                modes.append(Mode(float(f), float(a)))
            except ValueError as err:
                raise ValueError(f"Mode {j}: {err}") from err
        return cls(tuple(modes), **kwargs)

    def __len__(self) -> int:
        return len(self.modes)

    @property
    def n_modes(self) -> int:
        return len(self.modes)

    @property
    def frequencies(self) -> np.ndarray:
        return np.array([m.frequency for m in self.modes], dtype=np.float64)

    @property
    def alphas(self) -> np.ndarray:
        return np.array([m.alpha for m in self.modes], dtype=np.float64)

    @property
    def alpha_total(self) -> float:
        """Total coupling strength sum(alpha_j)."""
        return float(np.sum(self.alphas))

    @property
    def reference_frequency(self) -> float:
        """
        Coupling-weighted mean frequency sum(alpha_j omega_j) / sum(alpha_j).

        Used to express the shared (v, w) structure quantities in SI units.
        Falls back to the plain mean for an uncoupled set.
        """
        alphas = self.alphas
        if np.sum(alphas) == 0.0:
            return float(np.mean(self.frequencies))
        return float(np.sum(alphas * self.frequencies) / np.sum(alphas))


# ---------------------------------------------------------------------------
# Thermodynamic state
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ThermodynamicPoint:
    """
    Temperature together with the per-mode reduced inverse temperatures.

    ``betas is None`` marks the athermal (T = 0) point.  A point built from
    reduced inverse temperatures alone has ``temperature = nan``.
    """

    temperature: float
    betas: Optional[Tuple[float, ...]] = None

    def __post_init__(self):
        unknown = np.isnan(self.temperature) and self.betas is not None
        if not unknown and (not np.isfinite(self.temperature) or self.temperature < 0.0):
            raise ValueError(f"Temperature must be finite and >= 0, got {self.temperature}")
        if self.betas is not None:
            betas = tuple(float(b) for b in np.atleast_1d(self.betas))
            for j, b in enumerate(betas):
                if np.isnan(b) or b <= 0.0:
                    raise ValueError(f"Inverse temperature of mode {j} must be positive, got {b}")
            if all(np.isinf(b) for b in betas):
                betas = None
                if unknown:
                    object.__setattr__(self, "temperature", 0.0)
            object.__setattr__(self, "betas", betas)

    @classmethod
    def athermal(cls) -> "ThermodynamicPoint":
        return cls(0.0, None)

    @classmethod
    def from_temperature(
        cls,
        temperature: float,
        coupling: CouplingSet,
        constants: PhysicalConstants = CODATA,
    ) -> "ThermodynamicPoint":
        """beta_j = hbar omega_j omega_unit / (kB T); T = 0 gives the athermal point."""
        if not np.isfinite(temperature) or temperature < 0.0:
            raise ValueError(f"Temperature must be finite and >= 0, got {temperature}")
        if temperature == 0.0:
            return cls.athermal()
        betas = (constants.hbar * coupling.frequencies * coupling.omega_unit
                 / (constants.kB * temperature))
        return cls(float(temperature), tuple(betas))

    @classmethod
    def from_betas(cls, betas: Sequence[float], temperature: float = np.nan) -> "ThermodynamicPoint":
        """Build a point directly from reduced inverse temperatures (T unknown unless given)."""
        return cls(float(temperature), tuple(np.atleast_1d(np.asarray(betas, dtype=np.float64))))

    def __str__(self):
        if self.betas is None:
            return "T=0 K"
        if np.isnan(self.temperature):
            return "beta=(" + ", ".join(f"{b:.4g}" for b in self.betas) + ")"
        return f"T={self.temperature:g} K"

    @property
    def is_athermal(self) -> bool:
        return self.betas is None

    def beta_array(self, n_modes: int) -> np.ndarray:
        """Per-mode beta as an array (``inf`` for the athermal point)."""
        if self.betas is None:
            return np.full(n_modes, np.inf)
        if len(self.betas) != n_modes:
            raise ValueError(
                f"Got {len(self.betas)} inverse temperatures for {n_modes} phonon modes"
            )
        return np.array(self.betas, dtype=np.float64)


# ---------------------------------------------------------------------------
# Solver outputs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class VariationalSolution:
    """
    Optimal Feynman trial parameters at one thermodynamic point.

    F = -(A + B + C) in units of hbar * omega_unit.
    """

    v: float
    w: float
    A: float
    B: float
    C: float
    F: float
    converged: bool = True
    iterations: int = 0
    message: str = ""

    @property
    def kappa(self) -> float:
        """Fictitious spring constant v^2 - w^2."""
        return self.v ** 2 - self.w ** 2

    @property
    def mass(self) -> float:
        """Fictitious particle mass (v^2 - w^2) / w^2."""
        return self.kappa / self.w ** 2

    @property
    def radius(self) -> float:
        """Polaron radius sqrt(3 v / kappa^2) in units of sqrt(hbar / (2 m_b omega))."""
        if self.kappa == 0.0:
            return np.inf
        return float(np.sqrt(3.0 * self.v / self.kappa ** 2))


@dataclass(frozen=True)
class ResponseSample:
    """
    Linear response at one driving frequency.

    Always construct through :meth:`from_memory` so that
    ``impedance = -i Omega + i chi`` and ``conductivity = 1 / impedance``.
    """

    frequency: float
    chi: complex
    impedance: complex
    conductivity: complex
    converged: bool = True
    error: float = 0.0

    @classmethod
    def from_memory(cls, frequency, chi, converged=True, error=0.0) -> "ResponseSample":
        chi = complex(chi)
        impedance = -1j * frequency + 1j * chi
        if impedance == 0.0:
            conductivity = complex(np.inf, 0.0)
        else:
            conductivity = 1.0 / impedance
        return cls(float(frequency), chi, impedance, conductivity, bool(converged), float(error))

    @property
    def mobility(self) -> float:
        """DC mobility 1 / Re Z (only meaningful at zero driving frequency)."""
        if self.frequency != 0.0:
            raise ValueError("Mobility is defined by the zero-frequency response only")
        if self.impedance.real == 0.0:
            return np.inf
        return 1.0 / self.impedance.real


@dataclass
class PolaronResult:
    """
    Sweep results stored in arrays pre-sized from the sweep inputs.

    Row ``i`` belongs to ``temperatures[i]`` and column ``k`` to
    ``frequencies[k]`` regardless of the order in which they were computed.
    """

    coupling: CouplingSet
    temperatures: np.ndarray
    frequencies: np.ndarray
    betas: np.ndarray
    v: np.ndarray
    w: np.ndarray
    A: np.ndarray
    B: np.ndarray
    C: np.ndarray
    F: np.ndarray
    converged: np.ndarray
    mobility: np.ndarray
    chi: np.ndarray
    impedance: np.ndarray
    conductivity: np.ndarray
    response_converged: np.ndarray
    response_error: np.ndarray
    diagnostics: dict = field(default_factory=dict)
    solutions: List[Optional[VariationalSolution]] = field(default_factory=list)
    samples: List[List[Optional[ResponseSample]]] = field(default_factory=list)
    ground_state: Optional[VariationalSolution] = None

    @classmethod
    def allocate(cls, coupling: CouplingSet, temperatures, frequencies) -> "PolaronResult":
        temperatures = np.atleast_1d(np.asarray(temperatures, dtype=np.float64))
        frequencies = np.atleast_1d(np.asarray(frequencies, dtype=np.float64))
        nT, nW, nM = temperatures.size, frequencies.size, coupling.n_modes

        def _real(*shape):
            return np.full(shape, np.nan, dtype=np.float64)

        def _cplx(*shape):
            return np.full(shape, np.nan + 1j * np.nan, dtype=np.complex128)

        return cls(
            coupling=coupling,
            temperatures=temperatures,
            frequencies=frequencies,
            betas=_real(nT, nM),
            v=_real(nT),
            w=_real(nT),
            A=_real(nT),
            B=_real(nT),
            C=_real(nT),
            F=_real(nT),
            converged=np.zeros(nT, dtype=bool),
            mobility=_real(nT),
            chi=_cplx(nT, nW),
            impedance=_cplx(nT, nW),
            conductivity=_cplx(nT, nW),
            response_converged=np.zeros((nT, nW), dtype=bool),
            response_error=_real(nT, nW),
            solutions=[None] * nT,
            samples=[[None] * nW for _ in range(nT)],
        )

    @property
    def alpha(self) -> np.ndarray:
        return self.coupling.alphas

    def store_solution(self, i: int, solution: VariationalSolution) -> None:
        self.solutions[i] = solution
        self.v[i] = solution.v
        self.w[i] = solution.w
        self.A[i] = solution.A
        self.B[i] = solution.B
        self.C[i] = solution.C
        self.F[i] = solution.F
        self.converged[i] = solution.converged

    def store_sample(self, i: int, k: int, sample: ResponseSample) -> None:
        self.samples[i][k] = sample
        self.chi[i, k] = sample.chi
        self.impedance[i, k] = sample.impedance
        self.conductivity[i, k] = sample.conductivity
        self.response_converged[i, k] = sample.converged
        self.response_error[i, k] = sample.error
