"""
Plain-text tables of sweep results.

One whitespace-delimited row per temperature, for gnuplot or
``numpy.loadtxt``.  The header names the material, the SI scales and the
total coupling, followed by the column names and their 1-based numbers:

    # Ts, βreds, Kμs, Hμs, FHIPμs, vs, ws, ks, Ms, As, Bs, Cs, Fs, Taus, rfsis
    #  1    2     3    4     5      6   7   8   9  10  11  12  13    14     15

Mobilities are in cm^2/Vs, A, B, C and F in hbar * omega_unit, Tau in ps and
rf in m.  The reduced inverse temperature is that of the coupling-weighted
reference frequency.
"""

import numpy as np

from polaronsuite.core.constants import CODATA, PhysicalConstants, PolaronUnits
from polaronsuite.core.typepolaron import PolaronResult
from polaronsuite.libpolaron.logger import get_logger

log = get_logger(__name__)

COLUMNS = ("Ts", "βreds", "Kμs", "Hμs", "FHIPμs", "vs", "ws", "ks", "Ms",
           "As", "Bs", "Cs", "Fs", "Taus", "rfsis")


def table_columns(result: PolaronResult, constants: PhysicalConstants = CODATA):
    """
    Columns of the sweep table as a list of arrays, in ``COLUMNS`` order.
    """
    coupling = result.coupling
    units = PolaronUnits(coupling.m_eff, coupling.omega_unit, constants)
    T = result.temperatures
    with np.errstate(divide="ignore"):
        beta_ref = np.where(
            T > 0.0,
            constants.hbar * coupling.reference_frequency * coupling.omega_unit
            / (constants.kB * np.where(T > 0.0, T, 1.0)),
            np.inf,
        )
    diag = result.diagnostics
    return [
        T,
        beta_ref,
        diag["kadanoff_mobility"],
        result.mobility * units.mobility_cm2,
        diag["fhip_mobility"],
        result.v,
        result.w,
        diag["kappa"],
        diag["mass"],
        result.A,
        result.B,
        result.C,
        result.F,
        diag["tau"] * units.time * 1e12,
        diag["rf_si"],
    ]


def write_polaron_table(path, result: PolaronResult, name="polaron",
                        constants: PhysicalConstants = CODATA) -> None:
    """
    Write a sweep result as a whitespace-delimited table.

    Parameters
    ----------
    path : str or Path
        Output file.
    result : PolaronResult
        Output of :func:`run_sweep`.
    name : str
        Material or run name written in the first header line.
    """
    coupling = result.coupling
    units = PolaronUnits(coupling.m_eff, coupling.omega_unit, constants)
    cols = table_columns(result, constants)
    omega_ref = coupling.reference_frequency * coupling.omega_unit

    with open(path, "w", encoding="utf-8") as fh:
        fh.write(f"# {name}\n")
        fh.write(f"# Params in SI: ω ={omega_ref:g} mb={units.mb:g} \n")
        fh.write(f"# Alpha parameter: α = {coupling.alpha_total:f}  \n")
        fh.write("# " + ", ".join(COLUMNS) + "\n")
        fh.write("# " + " ".join(f"{n:>2d}" for n in range(1, len(COLUMNS) + 1)) + "\n")
        for i in range(result.temperatures.size):
            fh.write(" ".join(f"{float(c[i]):g}" for c in cols) + "\n")
    log.info("Wrote %d row(s) to %s", result.temperatures.size, path)


def read_polaron_table(path):
    """
    Read a table written by :func:`write_polaron_table`.

    Returns
    -------
    dict
        Column name -> 1-D array.
    """
    data = np.loadtxt(path, comments="#", ndmin=2, encoding="utf-8")
    if data.shape[1] != len(COLUMNS):
        raise ValueError(f"{path}: expected {len(COLUMNS)} columns, found {data.shape[1]}")
    return {name: data[:, j] for j, name in enumerate(COLUMNS)}
