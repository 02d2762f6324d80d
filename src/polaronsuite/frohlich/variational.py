"""
Variational minimisation of the Feynman polaron free energy.

The trial parameters are searched as (d, w) with v = w + d, d >= 0 and
w > 0, so that v >= w holds at every iterate.  The minimiser is L-BFGS-B
driven by the analytic gradient of the free energy; convergence is a
relative free-energy change below ``rtol`` between iterations (or a
vanishing projected gradient).  Exhausting the iteration budget is not an
error: the best iterate is returned with ``converged=False``.

Physics reference:
    Feynman, Phys. Rev. 97, 660 (1955); Osaka (1959); Hellwarth & Biaggio,
    PRB 60, 299 (1999).
"""

import numpy as np
from scipy.optimize import minimize

from polaronsuite.core.config import DEFAULT_CONFIG, SolverConfig
from polaronsuite.core.typepolaron import CouplingSet, ThermodynamicPoint, VariationalSolution
from polaronsuite.frohlich.freeenergy import multi_F
from polaronsuite.libpolaron.logger import get_logger

log = get_logger(__name__)

_W_MIN = 1e-6


def _initial_guess(v0, w0, config):
    if v0 is None or w0 is None or not np.isfinite(v0) or not np.isfinite(w0) or w0 <= 0.0:
        return config.v0 - config.w0, config.w0
    return max(v0 - w0, 0.0), max(w0, _W_MIN)


def solve_variational(coupling: CouplingSet, point: ThermodynamicPoint = None,
                      v0=None, w0=None, rtol=None, max_iter=None,
                      config: SolverConfig = DEFAULT_CONFIG) -> VariationalSolution:
    """
    Optimal (v, w) at one thermodynamic point.

    Parameters
    ----------
    coupling : CouplingSet
        Phonon branches.
    point : ThermodynamicPoint, optional
        Temperature; ``None`` selects the athermal ground state.
    v0, w0 : float, optional
        Initial guess, typically the solution at the previous temperature.
        Missing or invalid guesses fall back to ``config.v0, config.w0``.
    rtol : float, optional
        Relative free-energy tolerance (overrides ``config.rtol``).
    max_iter : int, optional
        Iteration budget (overrides ``config.max_iter``).
    config : SolverConfig
        Numerical settings.

    Returns
    -------
    VariationalSolution
    """
    config = config.with_options(rtol=rtol, max_iter=max_iter)
    if point is None:
        point = ThermodynamicPoint.athermal()
    point.beta_array(coupling.n_modes)  # one beta per branch

    # F is scaled to O(1) so that the tolerances are meaningful for any mode set
    scale = float(np.sum(coupling.frequencies))

    def objective(x):
        d, w = float(x[0]), float(x[1])
        fe = multi_F(w + d, w, coupling, point, config)
        log.iterate("  v=%.10g w=%.10g F=%.12g", w + d, w, fe.F)
        return fe.F / scale, np.array([fe.dFdv, fe.dFdv + fe.dFdw]) / scale

    x0 = np.array(_initial_guess(v0, w0, config), dtype=np.float64)
    res = minimize(
        objective, x0, jac=True, method="L-BFGS-B",
        bounds=[(0.0, None), (_W_MIN, None)],
        options={"ftol": config.rtol, "gtol": config.gtol, "maxiter": config.max_iter},
    )

    d, w = float(res.x[0]), float(res.x[1])
    v = w + d
    fe = multi_F(v, w, coupling, point, config)
    converged = bool(res.success) and fe.converged
    message = str(res.message)
    if not res.success and res.nit > 0:
        # line search stalls at the quadrature noise floor near the minimum
        pg = np.abs(np.asarray(res.jac))
        if np.max(pg) < np.sqrt(config.gtol) and "ABNORMAL" in message.upper():
            converged = fe.converged
    if not fe.converged:
        message = f"{message}; free-energy quadrature error {fe.abserr:.3g}"

    if converged:
        log.debug("Variational solution v=%.8g w=%.8g F=%.10g after %d iterations",
                  v, w, fe.F, res.nit)
    else:
        log.warning("Variational solve not converged at %s (v=%.6g, w=%.6g): %s",
                    point, v, w, message)
    return VariationalSolution(
        v=v, w=w, A=fe.A, B=fe.B, C=fe.C, F=fe.F,
        converged=converged, iterations=int(res.nit), message=message,
    )
