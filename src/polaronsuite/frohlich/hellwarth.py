"""
Effective-mode collapse of a multi-mode phonon spectrum.

Physics reference:
    Hellwarth & Biaggio, PRB 60, 299 (1999), athermal "B" scheme.  With
    IR activities S_j and frequencies f_j:

        (58)  sum_j S_j^2 / f_j^2
        (59)  sum_j S_j^2 ,        W_e = sqrt((59))
        (61)  Omega_e = sqrt((59) / (58))

    A single mode collapses onto itself.
"""

import logging

import numpy as np

from polaronsuite.core.constants import CODATA, PhysicalConstants
from polaronsuite.frohlich.coupling import single_mode_coupling, validate_mode_table

log = logging.getLogger(__name__)


def hellwarth_b_scheme(modes_raw):
    """
    Effective phonon frequency of the Hellwarth B scheme.

    Parameters
    ----------
    modes_raw : array_like, shape (n_modes, 2)
        Phonon frequencies (THz) and IR activities.

    Returns
    -------
    float
        Effective frequency Omega_e (THz).

    Raises
    ------
    ValueError
        If the table is malformed or every activity is zero.
    """
    freq, activity = validate_mode_table(modes_raw)
    H58 = np.sum(activity ** 2 / freq ** 2)
    H59 = np.sum(activity ** 2)
    if H59 == 0.0:
        raise ValueError("All IR activities are zero; no effective mode exists")
    W_e = np.sqrt(H59)
    Omega_e = np.sqrt(H59 / H58)
    log.debug("Hellwarth (58) = %g  (59) = %g  W_e = %g  Omega_e = %g THz", H58, H59, W_e, Omega_e)
    return float(Omega_e)


def collapse_effective_mode(modes_raw):
    """
    Collapse a phonon table to one (frequency, activity) pair.

    Returns
    -------
    (float, float)
        Effective frequency (THz) and effective activity W_e = sqrt(sum_j S_j^2).
    """
    freq, activity = validate_mode_table(modes_raw)
    return hellwarth_b_scheme(modes_raw), float(np.sqrt(np.sum(activity ** 2)))


def effective_coupling(modes_raw, eps_optic, eps_static, m_eff,
                       constants: PhysicalConstants = CODATA):
    """Size-1 CouplingSet at the Hellwarth B effective frequency."""
    Omega_e = hellwarth_b_scheme(modes_raw)
    log.info("Hellwarth B effective phonon frequency: %.4f THz", Omega_e)
    return single_mode_coupling(eps_optic, eps_static, Omega_e, m_eff, constants)
