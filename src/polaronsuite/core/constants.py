"""
Physical constants and the polaron unit system.

All SI values are taken from ``scipy.constants`` (CODATA) and collected in
an immutable record so that every component receives its constants
explicitly instead of reading mutable module globals.

Reduced (polaron) units used throughout the package
----------------------------------------------------
- frequencies in rad/ps, i.e. in units of ``omega_unit = 1e12`` rad/s
- energies in hbar * omega_unit
- times in 1 / omega_unit (ps)
- masses in the band mass m_b = m_eff * m_e
- mobilities in e / (m_b * omega_unit)

Author: Rahul R. Sah
"""

from dataclasses import dataclass, field

import numpy as np
from scipy import constants as _sc

pi = np.pi
twopi = 2.0 * np.pi


@dataclass(frozen=True)
class PhysicalConstants:
    """Immutable record of the SI constants used by the polaron solvers."""

    hbar: float = _sc.hbar          # J s
    e0: float = _sc.e               # C
    me0: float = _sc.m_e            # kg
    kB: float = _sc.k               # J / K
    eps0: float = _sc.epsilon_0     # F / m
    c0: float = _sc.c               # m / s
    amu: float = _sc.atomic_mass    # kg


CODATA = PhysicalConstants()


@dataclass(frozen=True)
class PolaronUnits:
    """
    Conversion factors from reduced polaron units to SI.

    Parameters
    ----------
    m_eff : float
        Band effective mass in electron masses.
    omega_unit : float
        Angular frequency (rad/s) represented by a reduced frequency of 1.
    constants : PhysicalConstants
        Constants record used for the conversion.
    """

    m_eff: float
    omega_unit: float = 1e12
    constants: PhysicalConstants = field(default=CODATA)

    def __post_init__(self):
        if not self.m_eff > 0.0:
            raise ValueError(f"Effective mass must be positive, got {self.m_eff}")
        if not self.omega_unit > 0.0:
            raise ValueError(f"Unit frequency must be positive, got {self.omega_unit}")

    @property
    def mb(self) -> float:
        """Band mass (kg)."""
        return self.m_eff * self.constants.me0

    @property
    def energy(self) -> float:
        """Reduced energy unit hbar * omega_unit (J)."""
        return self.constants.hbar * self.omega_unit

    @property
    def energy_meV(self) -> float:
        """Reduced energy unit in meV."""
        return 1e3 * self.energy / self.constants.e0

    @property
    def time(self) -> float:
        """Reduced time unit (s)."""
        return 1.0 / self.omega_unit

    @property
    def length(self) -> float:
        """Oscillator length a0 = sqrt(hbar / (m_b omega_unit)) (m)."""
        return np.sqrt(self.constants.hbar / (self.mb * self.omega_unit))

    @property
    def mobility(self) -> float:
        """Reduced mobility unit e / (m_b omega_unit) (m^2 / V s)."""
        return self.constants.e0 / (self.mb * self.omega_unit)

    @property
    def mobility_cm2(self) -> float:
        """Reduced mobility unit in cm^2 / V s."""
        return 1e4 * self.mobility

    def beta(self, frequency, temperature):
        """
        Reduced inverse temperature hbar * omega / (kB * T).

        ``frequency`` is a reduced angular frequency; ``temperature`` in K.
        A zero temperature gives ``inf``.
        """
        frequency = np.asarray(frequency, dtype=np.float64)
        if temperature == 0.0:
            return np.full_like(frequency, np.inf)
        return self.constants.hbar * frequency * self.omega_unit / (self.constants.kB * temperature)
