"""
Frohlich coupling of polar-optical phonon modes.

Reduces a raw infrared-activity table (frequency, IR activity) into the
per-mode ionic dielectric contributions and dimensionless Frohlich
couplings alpha_j of a multi-mode polaron.

Physics reference:
    Ionic dielectric contribution of an IR-active mode with frequency f_j
    (THz) and activity S_j (e^2/amu) in a cell of volume V
    (Frost, PRB 96, 195202 (2017)):

        eps_j = S_j e^2 / amu / (3 eps0 V omega_j^2),   omega_j = 2 pi f_j

    Single-mode Frohlich coupling (Frohlich 1952):

        alpha = 1/2 / (4 pi eps0) (1/eps_inf - 1/eps_S) e^2/(hbar omega)
                * sqrt(2 m_b omega / hbar)

    Multi-mode decomposition, every mode screened by the complete
    low-frequency environment eps' = eps_inf + sum_k eps_k:

        alpha_j = e^2 / (4 pi eps0 hbar) sqrt(m_b / (2 hbar omega_j))
                  * eps_j / (eps_inf eps')

Author: Rahul R. Sah
"""

import logging

import numpy as np

from polaronsuite.core.constants import CODATA, PhysicalConstants, pi, twopi
from polaronsuite.core.typepolaron import CouplingSet, Mode

log = logging.getLogger(__name__)

# eps_inf + sum(eps_ionic) further than this from eps_S raises a warning
_STATIC_MISMATCH = 0.1


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------

def _check_positive(name, value):
    if not np.isfinite(value) or value <= 0.0:
        raise ValueError(f"{name} must be positive and finite, got {value}")


def validate_mode_table(modes_raw):
    """
    Split and validate a raw (frequency THz, IR activity) table.

    Parameters
    ----------
    modes_raw : array_like, shape (n_modes, 2)

    Returns
    -------
    freq, activity : ndarray
    """
    table = np.asarray(modes_raw, dtype=np.float64)
    if table.ndim == 1 and table.size == 2:
        table = table.reshape(1, 2)
    if table.ndim != 2 or table.shape[1] != 2 or table.shape[0] == 0:
        raise ValueError(
            f"Phonon table must have shape (n_modes, 2), got {np.shape(modes_raw)}"
        )
    freq, activity = table[:, 0].copy(), table[:, 1].copy()
    for j in range(freq.size):
        if not np.isfinite(freq[j]) or freq[j] <= 0.0:
            raise ValueError(f"Mode {j}: phonon frequency must be positive, got {freq[j]}")
        if not np.isfinite(activity[j]) or activity[j] < 0.0:
            raise ValueError(f"Mode {j}: IR activity must be non-negative, got {activity[j]}")
    return freq, activity


# ---------------------------------------------------------------------------
# Dielectric contributions and couplings
# ---------------------------------------------------------------------------

def ionic_dielectric(freq, activity, volume, constants: PhysicalConstants = CODATA):
    """
    Ionic dielectric contribution of one IR-active mode.

    Parameters
    ----------
    freq : float or ndarray
        Phonon frequency (THz).
    activity : float or ndarray
        Infrared activity (e^2 / amu).
    volume : float
        Unit-cell volume (m^3).

    Returns
    -------
    float or ndarray
        Dimensionless dielectric contribution.
    """
    omega = twopi * np.asarray(freq, dtype=np.float64) * 1e12
    ir = np.asarray(activity, dtype=np.float64) * constants.e0 ** 2 / constants.amu
    return ir / (omega ** 2 * volume) / (3.0 * constants.eps0)


def frohlich_alpha(eps_optic, eps_static, freq, m_eff, constants: PhysicalConstants = CODATA):
    """
    Single-mode Frohlich coupling alpha.

    Parameters
    ----------
    eps_optic, eps_static : float
        High-frequency and static dielectric constants.
    freq : float
        Phonon frequency (THz).
    m_eff : float
        Band effective mass (electron masses).
    """
    _check_positive("Optical dielectric constant", eps_optic)
    _check_positive("Static dielectric constant", eps_static)
    _check_positive("Phonon frequency", freq)
    _check_positive("Effective mass", m_eff)
    c = constants
    omega = twopi * freq * 1e12
    mb = m_eff * c.me0
    return (0.5 / (4.0 * pi * c.eps0) * (1.0 / eps_optic - 1.0 / eps_static)
            * (c.e0 ** 2 / (c.hbar * omega)) * np.sqrt(2.0 * mb * omega / c.hbar))


def multi_frohlich_alpha(eps_optic, eps_ionic, eps_total, freq, m_eff,
                         constants: PhysicalConstants = CODATA):
    """
    Frohlich coupling of one mode in a multi-mode decomposition.

    Parameters
    ----------
    eps_optic : float
        High-frequency dielectric constant.
    eps_ionic : float or ndarray
        Ionic dielectric contribution of the mode(s).
    eps_total : float
        Sum of the ionic contributions of all modes.
    freq : float or ndarray
        Phonon frequency (THz).
    m_eff : float
        Band effective mass (electron masses).
    """
    c = constants
    omega = twopi * np.asarray(freq, dtype=np.float64) * 1e12
    mb = m_eff * c.me0
    eps_static = eps_optic + eps_total
    return (np.asarray(eps_ionic) / (eps_optic * eps_static)
            * c.e0 ** 2 / (4.0 * pi * c.eps0 * c.hbar) * np.sqrt(mb / (2.0 * omega * c.hbar)))


# ---------------------------------------------------------------------------
# Coupling sets
# ---------------------------------------------------------------------------

def reduce_coupling(modes_raw, eps_optic, eps_static, volume, m_eff,
                    constants: PhysicalConstants = CODATA):
    """
    Reduce an IR-activity table to a multi-mode CouplingSet.

    Modes are processed, and returned, in descending frequency order (ties
    keep their input order).  The screening of every mode uses
    eps_inf + sum(eps_ionic); a warning is logged when that differs from
    ``eps_static`` by more than 10 %.

    Parameters
    ----------
    modes_raw : array_like, shape (n_modes, 2)
        Phonon frequencies (THz) and IR activities (e^2/amu).
    eps_optic, eps_static : float
        High-frequency and static dielectric constants.
    volume : float
        Unit-cell volume (m^3).
    m_eff : float
        Band effective mass (electron masses).

    Returns
    -------
    CouplingSet
        Frequencies in rad/ps, with the ionic contributions attached.
    """
    freq, activity = validate_mode_table(modes_raw)
    _check_positive("Optical dielectric constant", eps_optic)
    _check_positive("Static dielectric constant", eps_static)
    _check_positive("Unit-cell volume", volume)
    _check_positive("Effective mass", m_eff)
    if eps_static < eps_optic:
        raise ValueError(
            f"Static dielectric constant {eps_static} is below the optical one {eps_optic}"
        )

    order = np.argsort(-freq, kind="stable")
    freq, activity = freq[order], activity[order]

    eps_ionic = ionic_dielectric(freq, activity, volume, constants)
    eps_total = float(np.sum(eps_ionic))
    alphas = multi_frohlich_alpha(eps_optic, eps_ionic, eps_total, freq, m_eff, constants)

    eps_check = eps_optic + eps_total
    if abs(eps_check - eps_static) > _STATIC_MISMATCH * eps_static:
        log.warning(
            "eps_inf + sum(eps_ionic) = %.3f differs from eps_static = %.3f by more than %d%%",
            eps_check, eps_static, int(100 * _STATIC_MISMATCH),
        )
    log.info("Reduced %d phonon modes: alpha_total = %.6f", freq.size, float(np.sum(alphas)))
    for j in range(freq.size):
        log.debug("  mode %2d: f = %.4f THz  eps_ionic = %.5f  alpha = %.6f",
                  j, freq[j], eps_ionic[j], alphas[j])

    modes = tuple(Mode(twopi * f, float(a)) for f, a in zip(freq, alphas))
    return CouplingSet(modes, m_eff=m_eff, omega_unit=1e12, ionic=tuple(eps_ionic))


def single_mode_coupling(eps_optic, eps_static, freq, m_eff,
                         constants: PhysicalConstants = CODATA):
    """Size-1 CouplingSet from dielectric data and one phonon frequency (THz)."""
    alpha = frohlich_alpha(eps_optic, eps_static, freq, m_eff, constants)
    log.info("Single-mode coupling: f = %.4f THz  alpha = %.6f", freq, alpha)
    return CouplingSet((Mode(twopi * freq, float(alpha)),), m_eff=m_eff, omega_unit=1e12)
