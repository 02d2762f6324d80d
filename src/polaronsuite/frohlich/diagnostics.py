"""
Diagnostic closed forms reported alongside the variational solution.

These are low-temperature mobility estimates and structure quantities used
for comparison only; the Hellwarth contour mobility of
:mod:`polaronsuite.frohlich.response` is the reference result.

Physics reference:
    Feynman, Hellwarth, Iddings & Platzman (1962); Kadanoff, Phys. Rev. 130,
    1364 (1963); Devreese, "Frohlich polarons" lecture notes eqs. (1.60),
    (1.61); Schultz, Phys. Rev. 116, 526 (1959); Feynman (1955) eqs. (46-47).

    Per branch, in units of e / (m_b omega_j), with R = (v^2 - w^2)/(w^2 v):

        FHIP       mu~ = 3 / (4 alpha beta) (w/v)^3 e^{beta + R}
        Kadanoff   mu~ = 1 / (2 alpha) (w/v)^3 e^{beta + R}

    Kadanoff (1963) relaxation rate, with M = (v^2 - w^2)/w^2:

        Gamma_0 = 2 alpha Nbar sqrt(M + 1) e^{-M/v},   mu = 1 / ((M + 1) Gamma_0)

    where the phonon population is taken as Nbar = e^{-beta} rather than the
    Bose factor 1/(e^beta - 1).  Only this form reproduces the FHIP and
    Devreese statements of the Kadanoff mobility; it is kept deliberately.

    Branches are combined by Matthiessen's rule, 1/mu = sum_j omega_j / mu~_j.
"""

from dataclasses import dataclass

import numpy as np

from polaronsuite.core.constants import CODATA, PhysicalConstants, PolaronUnits, twopi
from polaronsuite.core.typepolaron import CouplingSet, ThermodynamicPoint, VariationalSolution
from polaronsuite.libpolaron.logger import get_logger

log = get_logger(__name__)


# ---------------------------------------------------------------------------
# Structure of the trial system
# ---------------------------------------------------------------------------

def spring_constant(v, w):
    """Fictitious spring constant kappa = v^2 - w^2."""
    return v * v - w * w


def fictitious_mass(v, w):
    """Fictitious particle mass M = (v^2 - w^2) / w^2 (band masses)."""
    return (v * v - w * w) / (w * w)


def polaron_radius(v, w):
    """Polaron radius sqrt(3 v / (v^2 - w^2)^2) in units of sqrt(hbar / (2 m_b omega))."""
    kappa = v * v - w * w
    if kappa == 0.0:
        return np.inf
    return np.sqrt(3.0 * v / kappa ** 2)


def schultz_radius(v, w):
    """
    Schultz (1959) eq. (2.4) polaron size rf = sqrt(3 / (2 mu v)).

    mu = (v^2 - w^2) / v^2 is the reduced mass of the trial system; rf is the
    standard deviation of the Gaussian polaron wavefunction in units of
    sqrt(hbar / (m_b omega)).
    """
    mu = (v * v - w * w) / (v * v)
    if mu == 0.0:
        return np.inf
    return np.sqrt(3.0 / (2.0 * mu * v))


def feynman_mass_small_alpha(alpha):
    """Feynman (1955) eq. (46): mass enhancement alpha/6 + 0.025 alpha^2."""
    return alpha / 6.0 + 0.025 * alpha ** 2


def feynman_mass_large_alpha(alpha):
    """Feynman (1955) eq. (47): mass enhancement 16 alpha^4 / (81 pi^4)."""
    return 16.0 * alpha ** 4 / (81.0 * np.pi ** 4)


# ---------------------------------------------------------------------------
# Low-temperature mobilities
# ---------------------------------------------------------------------------

def matthiessen(frequencies, inverse_mobilities):
    """
    Combine per-branch inverse mobilities (units e/(m_b omega_j)) into one
    mobility in units of e/(m_b omega_unit).
    """
    total = float(np.sum(np.asarray(frequencies) * np.asarray(inverse_mobilities)))
    if total == 0.0:
        return np.inf
    return 1.0 / total


def _boltzmann_factor(v, w, beta):
    R = (v * v - w * w) / (w * w * v)
    return (v / w) ** 3 * np.exp(-beta - R)


def fhip_mobility(v, w, coupling: CouplingSet, point: ThermodynamicPoint):
    """FHIP (1962) low-temperature mobility in units of e/(m_b omega_unit)."""
    if point.is_athermal:
        return np.inf
    betas = point.beta_array(coupling.n_modes)
    inv = 4.0 * coupling.alphas * betas / 3.0 * _boltzmann_factor(v, w, betas)
    return matthiessen(coupling.frequencies, inv)


def kadanoff_mobility(v, w, coupling: CouplingSet, point: ThermodynamicPoint):
    """Kadanoff Boltzmann-equation mobility (Devreese form) in e/(m_b omega_unit)."""
    if point.is_athermal:
        return np.inf
    betas = point.beta_array(coupling.n_modes)
    inv = 2.0 * coupling.alphas * _boltzmann_factor(v, w, betas)
    return matthiessen(coupling.frequencies, inv)


@dataclass(frozen=True)
class KadanoffRelaxation:
    """Kadanoff (1963) relaxation rate Gamma_0 (rad/ps), time (ps) and mobility."""

    gamma: float
    tau: float
    mobility: float


def kadanoff_relaxation(v, w, coupling: CouplingSet, point: ThermodynamicPoint):
    """
    Kadanoff (1963) eq. (23-25) relaxation rate, relaxation time 2 pi / Gamma_0
    and the corresponding mobility.

    Returns
    -------
    KadanoffRelaxation
        Rate in units of omega_unit, time in 1/omega_unit, mobility in
        e/(m_b omega_unit).  Infinite time and mobility at T = 0.
    """
    if point.is_athermal:
        return KadanoffRelaxation(0.0, np.inf, np.inf)
    M = fictitious_mass(v, w)
    betas = point.beta_array(coupling.n_modes)
    nbar = np.exp(-betas)
    gamma = float(np.sum(coupling.frequencies * 2.0 * coupling.alphas * nbar
                         * np.sqrt(M + 1.0) * np.exp(-M / v)))
    if gamma == 0.0:
        return KadanoffRelaxation(0.0, np.inf, np.inf)
    return KadanoffRelaxation(gamma, twopi / gamma, 1.0 / ((M + 1.0) * gamma))


# ---------------------------------------------------------------------------
# Collected report
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PolaronDiagnostics:
    """
    Diagnostic quantities at one temperature.

    Mobilities are in cm^2/Vs, ``tau`` in ps, ``rf_si`` in m; ``kappa``,
    ``mass`` and ``radius`` are in reduced units.  ``mass_weak`` and
    ``mass_strong`` are Feynman's asymptotic mass enhancements at the total
    coupling, to compare with ``mass``.
    """

    kappa: float
    mass: float
    radius: float
    rf: float
    rf_si: float
    fhip_mobility: float
    kadanoff_mobility: float
    kadanoff1963_mobility: float
    gamma: float
    tau: float
    mass_weak: float
    mass_strong: float


def polaron_diagnostics(solution: VariationalSolution, coupling: CouplingSet,
                        point: ThermodynamicPoint,
                        constants: PhysicalConstants = CODATA) -> PolaronDiagnostics:
    """
    Structure quantities and diagnostic mobilities for one solution.

    The Schultz radius is expressed in SI with the oscillator length of the
    coupling-weighted reference frequency.
    """
    v, w = solution.v, solution.w
    units = PolaronUnits(coupling.m_eff, coupling.omega_unit, constants)
    rf = schultz_radius(v, w)
    rf_si = rf * units.length / np.sqrt(coupling.reference_frequency)
    kad = kadanoff_relaxation(v, w, coupling, point)
    diag = PolaronDiagnostics(
        kappa=spring_constant(v, w),
        mass=fictitious_mass(v, w),
        radius=polaron_radius(v, w),
        rf=rf,
        rf_si=rf_si,
        fhip_mobility=fhip_mobility(v, w, coupling, point) * units.mobility_cm2,
        kadanoff_mobility=kadanoff_mobility(v, w, coupling, point) * units.mobility_cm2,
        kadanoff1963_mobility=kad.mobility * units.mobility_cm2,
        gamma=kad.gamma,
        tau=kad.tau,
        mass_weak=feynman_mass_small_alpha(coupling.alpha_total),
        mass_strong=feynman_mass_large_alpha(coupling.alpha_total),
    )
    log.debug("%s: kappa=%.6g M=%.6g rf=%.4g m  mu(FHIP)=%.4g mu(Kadanoff)=%.4g cm^2/Vs "
              "tau=%.4g ps", point, diag.kappa, diag.mass, rf_si,
              diag.fhip_mobility, diag.kadanoff_mobility, diag.tau)
    return diag
