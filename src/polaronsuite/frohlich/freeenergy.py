"""
Osaka finite-temperature free energy of the multi-mode Feynman polaron.

Physics reference:
    Osaka, Prog. Theor. Phys. 22, 437 (1959); Hellwarth & Biaggio,
    PRB 60, 299 (1999) eq. (62-65), generalised to N phonon branches that
    share one pair of trial parameters (v, w).  For branch j, in units of
    its own frequency omega_j and with beta_j = hbar omega_j / kB T:

        A_j = 3/(beta_j N) [ ln(v/w) - 1/2 ln(2 pi beta_j)
                             - ln( sinh(v beta_j/2) / sinh(w beta_j/2) ) ]

        B_j = alpha_j / sqrt(pi) int_0^{beta_j/2}
                  cosh(beta_j/2 - tau) / sinh(beta_j/2) D_j(tau)^{-1/2} dtau

        C_j = 3/(4N) (v^2 - w^2)/v ( coth(v beta_j/2) - 2/(v beta_j) )

        D_j(tau) = w^2/v^2 tau (1 - tau/beta_j)
                   + (v^2 - w^2)/v^3 (1 - e^{-v tau})(1 - e^{-v(beta_j - tau)})
                                     / (1 - e^{-v beta_j})

    F = -(A + B + C) with A = sum_j omega_j A_j (likewise B, C).

    Athermal limit (beta -> inf), the ground-state energy:

        A_j = -3 (v - w) / (2N),   C_j = 3/(4N) (v^2 - w^2)/v

        B_j = alpha_j / sqrt(pi) int_0^inf e^{-tau} D0(tau)^{-1/2} dtau,
        D0(tau) = w^2/v^2 tau + (v^2 - w^2)/v^3 (1 - e^{-v tau})

    The athermal B_j is evaluated with a fixed generalised Gauss-Laguerre
    rule for the weight tau^{-1/2} e^{-tau}: the remaining factor
    sqrt(tau / D0(tau)) is smooth and bounded (1 at tau = 0, v/w at
    infinity).  The thermal B_j uses the substitution tau = beta x^2 / 2,
    x in [0, 1], which removes the tau^{-1/2} endpoint singularity so that
    all branches and both gradient components integrate in one adaptive pass.
"""

import math
from dataclasses import dataclass
from functools import lru_cache

import numpy as np
from numba import jit
from scipy.special import roots_genlaguerre

from polaronsuite.core.config import DEFAULT_CONFIG, SolverConfig
from polaronsuite.core.typepolaron import CouplingSet, ThermodynamicPoint
from polaronsuite.libpolaron.helpers import coth, csch2, log_sinh_ratio, one_minus_exp
from polaronsuite.libpolaron.logger import get_logger
from polaronsuite.libpolaron.quadrature import QuadratureResult, integrate_vector

log = get_logger(__name__)

_SQRT_PI = math.sqrt(math.pi)


# ---------------------------------------------------------------------------
# D(tau) and its gradient
# ---------------------------------------------------------------------------

@jit(nopython=True, cache=True)
def Dtau(tau, v, w, beta):
    """
    Feynman D(tau) of one branch; ``beta = inf`` gives the athermal D0.

    Parameters
    ----------
    tau : float
        Imaginary time in [0, beta].
    v, w : float
        Trial parameters.
    beta : float
        Reduced inverse temperature of the branch.
    """
    R = (v * v - w * w) / (v * v * v)
    if math.isinf(beta):
        return w * w / (v * v) * tau + R * one_minus_exp(v * tau)
    g = tau * (1.0 - tau / beta)
    h = one_minus_exp(v * tau) * one_minus_exp(v * (beta - tau)) / one_minus_exp(v * beta)
    return w * w / (v * v) * g + R * h


@jit(nopython=True, cache=True)
def _D_grad(tau, v, w, beta):
    """D(tau) with its partial derivatives with respect to v and w."""
    v2 = v * v
    w2 = w * w
    R = (v2 - w2) / (v2 * v)
    dRv = -1.0 / v2 + 3.0 * w2 / (v2 * v2)
    if math.isinf(beta):
        g = tau
        e1 = math.exp(-v * tau)
        h = one_minus_exp(v * tau)
        dh = tau * e1
    else:
        g = tau * (1.0 - tau / beta)
        e1 = math.exp(-v * tau)
        e2 = math.exp(-v * (beta - tau))
        eb = math.exp(-v * beta)
        m1 = one_minus_exp(v * tau)
        m2 = one_minus_exp(v * (beta - tau))
        Dn = one_minus_exp(v * beta)
        N = m1 * m2
        h = N / Dn
        dN = tau * e1 * m2 + m1 * (beta - tau) * e2
        dh = (dN * Dn - N * beta * eb) / (Dn * Dn)
    D = w2 / v2 * g + R * h
    dDv = -2.0 * w2 / (v2 * v) * g + dRv * h + R * dh
    dDw = 2.0 * w / v2 * g - 2.0 * w / (v2 * v) * h
    return D, dDv, dDw


# ---------------------------------------------------------------------------
# A and C terms
# ---------------------------------------------------------------------------

@jit(nopython=True, cache=True)
def _AC_terms(v, w, betas, n_modes):
    """
    Per-branch A_j, C_j and their (v, w) gradients.

    Returns an array of shape (6, len(betas)):
    A, dA/dv, dA/dw, C, dC/dv, dC/dw.
    """
    out = np.zeros((6, betas.size))
    q = v - w * w / v
    dqv = 1.0 + w * w / (v * v)
    dqw = -2.0 * w / v
    for j in range(betas.size):
        beta = betas[j]
        if math.isinf(beta):
            out[0, j] = -3.0 * (v - w) / (2.0 * n_modes)
            out[1, j] = -3.0 / (2.0 * n_modes)
            out[2, j] = 3.0 / (2.0 * n_modes)
            r = 1.0
            drv = 0.0
        else:
            pref = 3.0 / (beta * n_modes)
            out[0, j] = pref * (math.log(v / w) - 0.5 * math.log(2.0 * math.pi * beta)
                                - log_sinh_ratio(v * beta / 2.0, w * beta / 2.0))
            out[1, j] = pref * (1.0 / v - 0.5 * beta * coth(v * beta / 2.0))
            out[2, j] = pref * (-1.0 / w + 0.5 * beta * coth(w * beta / 2.0))
            r = coth(v * beta / 2.0) - 2.0 / (v * beta)
            drv = -0.5 * beta * csch2(v * beta / 2.0) + 2.0 / (v * v * beta)
        c = 3.0 / (4.0 * n_modes)
        out[3, j] = c * q * r
        out[4, j] = c * (dqv * r + q * drv)
        out[5, j] = c * dqw * r
    return out


def Aterm(v, w, beta, n_modes=1):
    """A_j of one branch (``beta = inf`` for the athermal limit)."""
    return float(_AC_terms(v, w, np.array([beta], dtype=np.float64), n_modes)[0, 0])


def Cterm(v, w, beta, n_modes=1):
    """C_j of one branch (``beta = inf`` for the athermal limit)."""
    return float(_AC_terms(v, w, np.array([beta], dtype=np.float64), n_modes)[3, 0])


# ---------------------------------------------------------------------------
# B term
# ---------------------------------------------------------------------------

@jit(nopython=True, cache=True)
def _b_integrand(x, v, w, betas):
    """
    Integrand of the thermal B_j and its gradients for all branches.

    Uses tau = beta x^2 / 2, so x runs over [0, 1] for every branch.
    Returns [B_1..B_N, dB/dv_1..N, dB/dw_1..N] without the alpha_j/sqrt(pi)
    prefactor.
    """
    n = betas.size
    out = np.zeros(3 * n)
    for j in range(n):
        beta = betas[j]
        if x == 0.0:
            # D ~ tau near the origin
            out[j] = math.sqrt(2.0 * beta) * coth(beta / 2.0)
            continue
        tau = 0.5 * beta * x * x
        kern = (math.exp(-tau) + math.exp(tau - beta)) / one_minus_exp(beta)
        D, dDv, dDw = _D_grad(tau, v, w, beta)
        jac = beta * x
        s = jac * kern / math.sqrt(D)
        out[j] = s
        out[n + j] = -0.5 * s * dDv / D
        out[2 * n + j] = -0.5 * s * dDw / D
    return out


@lru_cache(maxsize=8)
def laguerre_rule(n):
    """Nodes and weights of the n-point Gauss-Laguerre rule for tau^{-1/2} e^{-tau}."""
    nodes, weights = roots_genlaguerre(n, -0.5)
    return np.asarray(nodes, dtype=np.float64), np.asarray(weights, dtype=np.float64)


@jit(nopython=True, cache=True)
def _b_athermal(v, w, nodes, weights):
    """Athermal B integral and gradients without the alpha/sqrt(pi) prefactor."""
    s0 = 0.0
    sv = 0.0
    sw = 0.0
    for i in range(nodes.size):
        tau = nodes[i]
        D, dDv, dDw = _D_grad(tau, v, w, np.inf)
        q = math.sqrt(tau / D)
        s0 += weights[i] * q
        # e^{-tau} (-1/2) D^{-3/2} dD = tau^{-1/2} e^{-tau} * (-1/2) q dD / D
        sv += weights[i] * (-0.5) * q * dDv / D
        sw += weights[i] * (-0.5) * q * dDw / D
    return s0, sv, sw


def Bterm(v, w, alpha, beta, config: SolverConfig = DEFAULT_CONFIG):
    """
    B_j of one branch (``beta = inf`` for the athermal limit).

    Returns
    -------
    float
    """
    b, _ = _B_terms(v, w, np.array([alpha], dtype=np.float64),
                    np.array([beta], dtype=np.float64), config)
    return float(b[0, 0])


def _B_terms(v, w, alphas, betas, config):
    """
    B_j and gradients for every branch.

    Returns
    -------
    out : ndarray, shape (3, N)
        B, dB/dv, dB/dw per branch.
    quad : QuadratureResult
        Diagnostics of the thermal adaptive integration.
    """
    n = betas.size
    out = np.zeros((3, n))
    pref = alphas / _SQRT_PI

    cold = np.isinf(betas)
    if np.any(cold):
        nodes, weights = laguerre_rule(config.laguerre_nodes)
        s0, sv, sw = _b_athermal(v, w, nodes, weights)
        out[0, cold] = pref[cold] * s0
        out[1, cold] = pref[cold] * sv
        out[2, cold] = pref[cold] * sw

    quad = QuadratureResult(0.0, 0.0)
    hot = ~cold
    if np.any(hot):
        hot_betas = np.ascontiguousarray(betas[hot])
        m = hot_betas.size
        vals, quad = integrate_vector(
            _b_integrand, 0.0, 1.0, args=(v, w, hot_betas),
            epsabs=config.epsabs, epsrel=config.epsrel, limit=config.limit * 10,
        )
        out[0, hot] = pref[hot] * vals[:m]
        out[1, hot] = pref[hot] * vals[m:2 * m]
        out[2, hot] = pref[hot] * vals[2 * m:]
    return out, quad


# ---------------------------------------------------------------------------
# Total free energy
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FreeEnergy:
    """Free energy F = -(A + B + C) and its gradient at one (v, w)."""

    A: float
    B: float
    C: float
    F: float
    dFdv: float
    dFdw: float
    converged: bool = True
    abserr: float = 0.0


def _check_vw(v, w):
    if not (np.isfinite(v) and np.isfinite(w)) or w <= 0.0 or v < w:
        raise ValueError(f"Trial parameters need v >= w > 0, got v={v}, w={w}")


def multi_F(v, w, coupling: CouplingSet, point: ThermodynamicPoint = None,
            config: SolverConfig = DEFAULT_CONFIG) -> FreeEnergy:
    """
    Free energy of the multi-branch polaron at trial parameters (v, w).

    Parameters
    ----------
    v, w : float
        Trial parameters, v >= w > 0.
    coupling : CouplingSet
        Phonon branches.
    point : ThermodynamicPoint, optional
        Temperature; ``None`` or an athermal point gives the ground-state
        enthalpy.
    config : SolverConfig
        Quadrature settings.

    Returns
    -------
    FreeEnergy
        Energies in units of hbar * omega_unit.
    """
    _check_vw(v, w)
    if point is None:
        point = ThermodynamicPoint.athermal()
    n = coupling.n_modes
    betas = point.beta_array(n)
    omegas = coupling.frequencies
    alphas = coupling.alphas

    ac = _AC_terms(float(v), float(w), betas, n)
    b, quad = _B_terms(float(v), float(w), alphas, betas, config)

    A = float(np.dot(omegas, ac[0]))
    B = float(np.dot(omegas, b[0]))
    C = float(np.dot(omegas, ac[3]))
    dFdv = -float(np.dot(omegas, ac[1] + b[1] + ac[4]))
    dFdw = -float(np.dot(omegas, ac[2] + b[2] + ac[5]))
    abserr = quad.abserr * float(np.max(omegas * alphas)) / _SQRT_PI
    log.quadrature("F(v=%.8g, w=%.8g) = %.10g  [A=%.6g B=%.6g C=%.6g]", v, w, -(A + B + C), A, B, C)
    return FreeEnergy(A, B, C, -(A + B + C), dFdv, dFdw, quad.converged, abserr)
