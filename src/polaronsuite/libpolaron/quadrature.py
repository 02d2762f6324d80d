"""
Adaptive quadrature wrappers.

Thin layer over ``scipy.integrate`` that never warns and never raises on a
missed error target: the outcome of every integration is returned as a
:class:`QuadratureResult` carrying the achieved error estimate, so that
the caller can flag its own result as unconverged.

Three integration shapes are needed by the polaron kernels:

- ``integrate``           : QUADPACK QAGS/QAGI on a finite or infinite range
- ``fourier_integral``    : int_a^inf f(t) cos(k t) dt or sin(k t) via QAWF,
                            with k = 0 and k < 0 handled by parity
- ``integrate_vector``    : ``quad_vec`` for a value and its gradient in one
                            adaptive pass
"""

from dataclasses import dataclass

import numpy as np
from scipy import integrate as _integrate

from polaronsuite.libpolaron.logger import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class QuadratureResult:
    """Value and diagnostics of one numerical integration."""

    value: float
    abserr: float
    converged: bool = True
    neval: int = 0
    message: str = ""

    def __add__(self, other):
        if not isinstance(other, QuadratureResult):
            return NotImplemented
        return QuadratureResult(
            self.value + other.value,
            self.abserr + other.abserr,
            self.converged and other.converged,
            self.neval + other.neval,
            self.message or other.message,
        )

    def scaled(self, factor: float) -> "QuadratureResult":
        return QuadratureResult(
            factor * self.value, abs(factor) * self.abserr,
            self.converged, self.neval, self.message,
        )

    def within(self, rtol: float, atol: float = 0.0) -> bool:
        """
        Whether the error estimate meets max(atol, rtol |value|).

        QUADPACK raises its warning flag for reasons other than a missed
        target (e.g. QAWF on an amplitude that oscillates itself), so sums
        of several integrals are judged on the achieved error instead.
        """
        return self.abserr <= max(atol, rtol * abs(self.value))


ZERO = QuadratureResult(0.0, 0.0)


def _unpack(out) -> QuadratureResult:
    # quad(full_output=1) appends a message only when ier > 0
    value, abserr, info = out[0], out[1], out[2]
    converged = len(out) == 3
    message = "" if converged else str(out[3])
    neval = int(info.get("neval", 0)) if isinstance(info, dict) else 0
    if not converged:
        log.quadrature("QUADPACK flagged the integral (error %.3g): %s",
                       abserr, message.splitlines()[0])
    return QuadratureResult(float(value), float(abserr), converged, neval, message)


def integrate(f, a, b, args=(), epsabs=1e-12, epsrel=1e-10, limit=200, points=None):
    """
    Adaptive Gauss-Kronrod integral of ``f`` over [a, b].

    ``b`` may be ``np.inf``.
    """
    kw = dict(args=args, full_output=1, epsabs=epsabs, epsrel=epsrel, limit=limit)
    if points is not None:
        kw["points"] = points
    res = _unpack(_integrate.quad(f, a, b, **kw))
    log.quadrature("quad [%g, %g]: %g +/- %g (%d evals)", a, b, res.value, res.abserr, res.neval)
    return res


def fourier_integral(f, a, k, kind="cos", args=(), epsabs=1e-12, epsrel=1e-10,
                     limit=200, limlst=100):
    """
    Semi-infinite Fourier integral int_a^inf f(t) w(k t) dt.

    Parameters
    ----------
    f : callable
        Non-oscillatory (or slowly oscillating) decaying amplitude.
    a : float
        Finite lower limit.
    k : float
        Angular frequency of the weight; any sign.
    kind : {'cos', 'sin'}
        Weight function.

    Returns
    -------
    QuadratureResult
    """
    if kind not in ("cos", "sin"):
        raise ValueError(f"Unknown Fourier weight '{kind}'")
    sign = 1.0
    if k < 0.0:
        k = -k
        if kind == "sin":
            sign = -1.0
    if k == 0.0:
        if kind == "sin":
            return ZERO
        return integrate(f, a, np.inf, args=args, epsabs=epsabs, epsrel=epsrel, limit=limit)
    out = _integrate.quad(f, a, np.inf, args=args, weight=kind, wvar=k,
                          full_output=1, epsabs=epsabs, limit=limit, limlst=limlst)
    res = _unpack(out)
    log.quadrature("QAWF %s(%g t) from %g: %g +/- %g", kind, k, a, res.value, res.abserr)
    return res.scaled(sign)


def integrate_vector(f, a, b, args=(), epsabs=1e-12, epsrel=1e-10, limit=2000):
    """
    Adaptive integral of a vector-valued ``f`` over [a, b].

    Returns
    -------
    values : ndarray
        Integral of every component.
    result : QuadratureResult
        Diagnostics; ``value`` holds the norm of ``values``.
    """
    values, err, info = _integrate.quad_vec(
        f, a, b, args=args, epsabs=epsabs, epsrel=epsrel, limit=limit, full_output=True,
    )
    converged = bool(info.success)
    message = "" if converged else str(info.message)
    if not converged:
        log.quadrature("quad_vec did not reach tolerance: %s", message)
    res = QuadratureResult(float(np.max(np.abs(values))), float(err), converged,
                           int(info.neval), message)
    return np.asarray(values), res
