"""
Linear response of the multi-mode Feynman polaron.

Physics reference:
    Feynman, Hellwarth, Iddings & Platzman (FHIP), Phys. Rev. 127, 1004
    (1962); Hellwarth & Biaggio, PRB 60, 299 (1999).

    For branch j, in units of its own frequency, with Omega~ = Omega/omega_j
    and C = 2 alpha_j / (3 sqrt(pi)), the memory function is

        chi~(Omega~) = -C / Omega~ int_0^inf (1 - e^{i Omega~ t}) Im P(t) dt

        P(t)  = [coth(beta/2) cos t - i sin t] D(it)^{-3/2}
        D(it) = w^2/v^2 (t^2/beta + i t)
                + (v^2 - w^2)/v^3 [coth(v beta/2)(1 - cos v t) + i sin v t]

    (at T = 0: coth -> 1 and t^2/beta -> 0).  The branches add as
    chi(Omega) = sum_j omega_j chi~_j(Omega/omega_j), the impedance is
    Z = -i Omega + i chi and the conductivity sigma = 1/Z.

    Shifting the contour to tau = beta/2 + i u turns the dissipative part at
    T > 0 into a non-oscillatory form (Hellwarth 1999 eq. 2 at Omega = 0):

        Re Z~ = C/2 beta^{3/2} (v/w)^3 sinh(Omega~ beta/2) / (Omega~ sinh(beta/2))
                * [K(1 + Omega~) + K(|1 - Omega~|)]

        K(k) = int_0^inf cos(k u) (u^2 + a^2 - b cos v u)^{-3/2} du
        R = (v^2 - w^2)/(w^2 v),  a^2 = beta^2/4 + R beta coth(beta v/2),
        b = R beta / sinh(beta v/2)

    and the DC mobility 1/mu = sum_j omega_j Re Z~_j(0) with

        Re Z~_j(0) = alpha_j/(3 sqrt(pi)) beta^{5/2}/sinh(beta/2) (v/w)^3 K(1).

    For negligible b, K(k) = k K_1(k a)/a (modified Bessel function), which is
    evaluated in log space so that cold branches neither underflow nor lose
    their relative accuracy.

    Real-time integrals are split at a small time t1: the singular piece
    [0, t1] is integrated with t = s^2; the tail is expanded into Fourier
    integrals of Re and Im D(it)^{-3/2} evaluated with QAWF.
"""

import cmath
import math

import numpy as np
from numba import jit
from scipy.special import k1e

from polaronsuite.core.config import DEFAULT_CONFIG, SolverConfig
from polaronsuite.core.typepolaron import (
    CouplingSet,
    ResponseSample,
    ThermodynamicPoint,
    VariationalSolution,
)
from polaronsuite.libpolaron.helpers import coth, inv_sinh
from polaronsuite.libpolaron.logger import get_logger
from polaronsuite.libpolaron.quadrature import (
    ZERO,
    QuadratureResult,
    fourier_integral,
    integrate,
)

log = get_logger(__name__)

_SQRT_PI = math.sqrt(math.pi)

# b / a^2 below which the cos(v u) term of the Hellwarth integrand is dropped
_B_NEGLIGIBLE = 1e-12
# largest |1 - Omega~| a for which K(|1 - Omega~|) is trusted from quadrature
_CONTOUR_MAX = 10.0


# ---------------------------------------------------------------------------
# Hellwarth contour integral
# ---------------------------------------------------------------------------

def hellwarth_ab(v, w, beta):
    """Hellwarth (a^2, b) of one branch at finite beta."""
    R = (v * v - w * w) / (w * w * v)
    a2 = 0.25 * beta * beta + R * beta * coth(0.5 * beta * v)
    b = R * beta * inv_sinh(0.5 * beta * v)
    return a2, b


@jit(nopython=True, cache=True)
def _hellwarth_h(u, a2, b, v):
    return (u * u + a2 - b * math.cos(v * u)) ** -1.5


def hellwarth_K(k, v, a2, b, config: SolverConfig = DEFAULT_CONFIG) -> QuadratureResult:
    """
    K(k) = int_0^inf cos(k u) (u^2 + a^2 - b cos v u)^{-3/2} du by quadrature.

    Note a^2 - b > 0 for every physical (v, w, beta).  The absolute error
    target follows the b = 0 value at the larger radius sqrt(a^2 + b), a
    lower bound of K for small k.
    """
    scale = math.exp(_log_K_bessel(k, math.sqrt(a2 + abs(b))))
    return fourier_integral(
        _hellwarth_h, 0.0, k, "cos", args=(a2, b, v),
        epsabs=max(config.epsrel * scale, 1e-300), epsrel=config.epsrel,
        limit=config.limit, limlst=config.limlst,
    )


def _log_K_bessel(k, a):
    """ln K(k) for b = 0: K(k) = k K_1(k a) / a, K(0) = 1/a^2."""
    if k == 0.0:
        return -2.0 * math.log(a)
    ka = k * a
    return math.log(k) + math.log(k1e(ka)) - ka - math.log(a)


def _log_sinh_factor(Om, beta):
    """ln[ sinh(Om beta/2) / (Om sinh(beta/2)) ], with the Om -> 0 limit."""
    lden = 0.5 * beta + math.log1p(-math.exp(-beta))
    if Om == 0.0:
        return math.log(beta) - lden
    x = Om * beta
    return 0.5 * x + math.log1p(-math.exp(-x)) - math.log(Om) - lden


def _contour_re_z(Om, v, w, alpha, beta, config):
    """
    Dissipative Re Z~ of one branch from the contour-shifted form.

    Returns ``None`` when the quadrature route would lose its accuracy.
    """
    a2, b = hellwarth_ab(v, w, beta)
    a = math.sqrt(a2)
    lpref = (math.log(alpha / (3.0 * _SQRT_PI)) + 1.5 * math.log(beta)
             + 3.0 * math.log(v / w) + _log_sinh_factor(Om, beta))
    ks = (1.0 + Om, abs(1.0 - Om))

    if b < _B_NEGLIGIBLE * a2:
        value = sum(math.exp(lpref + _log_K_bessel(k, a)) for k in ks)
        return QuadratureResult(value, 0.0)

    if Om == 0.0:
        # DC has no real-time fallback
        return hellwarth_K(1.0, v, a2, b, config).scaled(2.0 * math.exp(lpref))
    if ks[1] * a > _CONTOUR_MAX:
        return None
    res = hellwarth_K(ks[0], v, a2, b, config) + hellwarth_K(ks[1], v, a2, b, config)
    return res.scaled(math.exp(lpref))


def hellwarth_mobility(v, w, alpha, beta, config: SolverConfig = DEFAULT_CONFIG):
    """
    DC mobility of one branch in units of e / (m_b omega_j).

    Hellwarth 1999 eq. (1-2); infinite for alpha = 0 or T = 0.
    """
    if alpha == 0.0 or math.isinf(beta):
        return np.inf
    res = _contour_re_z(0.0, v, w, alpha, beta, config)
    if res.value == 0.0:
        return np.inf
    return 1.0 / res.value


# ---------------------------------------------------------------------------
# Real-time kernel
# ---------------------------------------------------------------------------

@jit(nopython=True, cache=True)
def _g_realtime(t, v, w, beta):
    """D(it)^{-3/2} on the principal branch (Re D(it) >= 0)."""
    R = (v * v - w * w) / (v * v * v)
    r2 = w * w / (v * v)
    if math.isinf(beta):
        cv = 1.0
        tb = 0.0
    else:
        cv = coth(0.5 * v * beta)
        tb = t * t / beta
    sv = math.sin(0.5 * v * t)
    re = r2 * tb + R * cv * 2.0 * sv * sv
    im = r2 * t + R * math.sin(v * t)
    D = complex(re, im)
    return 1.0 / (D * cmath.sqrt(D))


@jit(nopython=True, cache=True)
def _g_re(t, v, w, beta):
    return _g_realtime(t, v, w, beta).real


@jit(nopython=True, cache=True)
def _g_im(t, v, w, beta):
    return _g_realtime(t, v, w, beta).imag


@jit(nopython=True, cache=True)
def _im_P(t, v, w, beta, cb):
    g = _g_realtime(t, v, w, beta)
    return cb * g.imag * math.cos(t) - g.real * math.sin(t)


@jit(nopython=True, cache=True)
def _near_sin(s, Om, v, w, beta, cb):
    """2 s sin(Om t) Im P(t) with t = s^2."""
    if s == 0.0:
        # Im P ~ -coth(beta/2) t^{-3/2} / sqrt(2) at small t
        return -math.sqrt(2.0) * cb * Om
    t = s * s
    return 2.0 * s * math.sin(Om * t) * _im_P(t, v, w, beta, cb)


@jit(nopython=True, cache=True)
def _near_cos(s, Om, v, w, beta, cb):
    """2 s (1 - cos(Om t)) Im P(t) with t = s^2."""
    if s == 0.0:
        return 0.0
    t = s * s
    h = math.sin(0.5 * Om * t)
    return 4.0 * s * h * h * _im_P(t, v, w, beta, cb)


def _realtime_integrals(Om, v, w, beta, config, need_sin=True):
    """
    I_sin = int_0^inf sin(Om t) Im P dt and I_cos = int_0^inf (1 - cos Om t) Im P dt.

    Returns
    -------
    (QuadratureResult or None, QuadratureResult)
    """
    cb = 1.0 if math.isinf(beta) else coth(0.5 * beta)
    t1 = config.tail_start / (1.0 + Om)
    s1 = math.sqrt(t1)
    args = (Om, v, w, beta, cb)
    kw = dict(epsabs=config.epsabs, epsrel=config.epsrel, limit=config.limit)

    gargs = (v, w, beta)
    gscale = abs(_g_realtime(t1, v, w, beta)) * t1
    fkw = dict(args=gargs, epsabs=config.epsrel * max(gscale, 1.0), epsrel=config.epsrel,
               limit=config.limit, limlst=config.limlst)
    cache = {}

    def G(part, kind, k):
        key = (part, kind, k)
        if key not in cache:
            f = _g_re if part == "r" else _g_im
            cache[key] = fourier_integral(f, t1, k, kind, **fkw)
        return cache[key]

    near_cos = integrate(_near_cos, 0.0, s1, args=args, **kw)
    tail_cos = (
        (G("i", "cos", 1.0)
         + G("i", "cos", Om + 1.0).scaled(-0.5)
         + G("i", "cos", Om - 1.0).scaled(-0.5)).scaled(cb)
        + (G("r", "sin", 1.0)
           + G("r", "sin", 1.0 + Om).scaled(-0.5)
           + G("r", "sin", 1.0 - Om).scaled(-0.5)).scaled(-1.0)
    )
    I_cos = near_cos + tail_cos

    I_sin = None
    if need_sin:
        near_sin = integrate(_near_sin, 0.0, s1, args=args, **kw)
        tail_sin = (
            (G("i", "sin", Om + 1.0) + G("i", "sin", Om - 1.0)).scaled(0.5 * cb)
            + (G("r", "cos", Om - 1.0) + G("r", "cos", Om + 1.0).scaled(-1.0)).scaled(-0.5)
        )
        I_sin = near_sin + tail_sin
    return I_sin, I_cos


# ---------------------------------------------------------------------------
# Memory function
# ---------------------------------------------------------------------------

def mode_memory(Om, v, w, alpha, beta, config: SolverConfig = DEFAULT_CONFIG, method="auto"):
    """
    Memory function chi~ of one branch in its own reduced units.

    Parameters
    ----------
    Om : float
        Reduced driving frequency Omega / omega_j >= 0.
    v, w : float
        Trial parameters.
    alpha : float
        Frohlich coupling of the branch.
    beta : float
        Reduced inverse temperature (``inf`` at T = 0).
    method : {'auto', 'contour', 'realtime'}
        Route for the dissipative part at T > 0.

    Returns
    -------
    chi : complex
    result : QuadratureResult
        Combined diagnostics (``value`` is |chi|).
    """
    if method not in ("auto", "contour", "realtime"):
        raise ValueError(f"Unknown memory-function method '{method}'")
    if alpha == 0.0:
        return 0j, ZERO
    C = 2.0 * alpha / (3.0 * _SQRT_PI)
    athermal = math.isinf(beta)

    if Om == 0.0:
        if athermal:
            return 0j, ZERO
        re_z = _contour_re_z(0.0, v, w, alpha, beta, config)
        return complex(0.0, -re_z.value), _judged(re_z, config)

    re_z = None
    if not athermal and method != "realtime":
        re_z = _contour_re_z(Om, v, w, alpha, beta, config)
        if re_z is None and method == "contour":
            raise ValueError(
                f"Contour form is not accurate at Omega~={Om:g}, beta={beta:g}; use 'realtime'"
            )
    elif athermal and method == "contour":
        raise ValueError("The contour form needs a finite temperature")

    I_sin, I_cos = _realtime_integrals(Om, v, w, beta, config, need_sin=re_z is None)
    re_chi = -C * I_cos.value / Om
    parts = I_cos.scaled(C / Om)
    if re_z is None:
        im_chi = C * I_sin.value / Om
        parts = parts + I_sin.scaled(C / Om)
    else:
        im_chi = -re_z.value
        parts = parts + re_z
    chi = complex(re_chi, im_chi)
    return chi, _judged(QuadratureResult(abs(chi), parts.abserr, parts.converged,
                                         parts.neval, parts.message), config)


def _judged(res, config):
    """Converged flag of a memory-function sample from its achieved error."""
    ok = res.within(config.response_rtol, config.epsabs)
    if not ok:
        log.iterate("memory function error %.3g on |chi|=%.3g: %s",
                    res.abserr, res.value, res.message.splitlines()[0] if res.message else "")
    return QuadratureResult(res.value, res.abserr, ok, res.neval, res.message)


def memory_function(Omega, v, w, coupling: CouplingSet, point: ThermodynamicPoint = None,
                    config: SolverConfig = DEFAULT_CONFIG):
    """
    Multi-branch memory function chi(Omega) = sum_j omega_j chi~_j(Omega/omega_j).

    Returns
    -------
    chi : complex
        In units of omega_unit.
    result : QuadratureResult
        Combined diagnostics.
    """
    if not np.isfinite(Omega) or Omega < 0.0:
        raise ValueError(f"Driving frequency must be finite and >= 0, got {Omega}")
    if point is None:
        point = ThermodynamicPoint.athermal()
    betas = point.beta_array(coupling.n_modes)
    chi = 0j
    total = ZERO
    for omega_j, alpha_j, beta_j in zip(coupling.frequencies, coupling.alphas, betas):
        chi_j, res = mode_memory(Omega / omega_j, v, w, alpha_j, beta_j, config)
        chi += omega_j * chi_j
        total = total + res.scaled(omega_j)
    return chi, QuadratureResult(abs(chi), total.abserr, total.converged, total.neval, total.message)


def evaluate_response(solution: VariationalSolution, coupling: CouplingSet,
                      point: ThermodynamicPoint, Omega,
                      config: SolverConfig = DEFAULT_CONFIG) -> ResponseSample:
    """
    Impedance and conductivity at one driving frequency (rad/ps).

    Returns
    -------
    ResponseSample
        ``impedance = -i Omega + i chi`` and ``conductivity = 1/impedance``;
        at T = 0 and Omega = 0 the impedance vanishes and the conductivity is
        infinite.
    """
    chi, res = memory_function(Omega, solution.v, solution.w, coupling, point, config)
    if not res.converged:
        log.warning("Memory function quadrature not converged at Omega=%g (error %.3g)",
                    Omega, res.abserr)
    log.debug("chi(%g) = %s", Omega, chi)
    return ResponseSample.from_memory(Omega, chi, res.converged, res.abserr)


def polaron_mobility(solution: VariationalSolution, coupling: CouplingSet,
                     point: ThermodynamicPoint, config: SolverConfig = DEFAULT_CONFIG):
    """
    DC mobility 1 / sum_j omega_j Re Z~_j(0) in units of e / (m_b omega_unit).

    Infinite at T = 0.
    """
    if point is None or point.is_athermal:
        return np.inf
    betas = point.beta_array(coupling.n_modes)
    inv_mu = 0.0
    for omega_j, alpha_j, beta_j in zip(coupling.frequencies, coupling.alphas, betas):
        inv_mu += omega_j / hellwarth_mobility(solution.v, solution.w, alpha_j, beta_j, config)
    if inv_mu == 0.0:
        return np.inf
    return 1.0 / inv_mu
