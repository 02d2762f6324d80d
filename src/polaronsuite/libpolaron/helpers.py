"""
Helper functions module.

Numerically stable hyperbolic functions used by the free-energy and
response kernels.  Every function is compiled with numba so that it can be
called from inside other nopython kernels; arguments are scalars.

The stable forms rewrite each ratio in terms of exp(-x) so that large
reduced inverse temperatures (beta >> 1) never overflow:

    coth(x)            = (1 + e^{-2x}) / (1 - e^{-2x})
    csch(x)^2          = 4 e^{-2x} / (1 - e^{-2x})^2
    ln(sinh a/sinh b)  = (a - b) + ln(1 - e^{-2a}) - ln(1 - e^{-2b})

Author: Rahul R. Sah
"""

import math

from numba import jit


@jit(nopython=True, cache=True)
def coth(x):
    """
    Hyperbolic cotangent for x > 0.

    Returns 1 for ``x = inf``.
    """
    if x > 20.0:
        e = math.exp(-2.0 * x)
        return (1.0 + e) / (1.0 - e)
    return 1.0 / math.tanh(x)


@jit(nopython=True, cache=True)
def csch2(x):
    """Square of the hyperbolic cosecant for x > 0 (0 for ``x = inf``)."""
    if x > 350.0:
        return 0.0
    e = math.exp(-2.0 * x)
    d = -math.expm1(-2.0 * x)
    return 4.0 * e / (d * d)


@jit(nopython=True, cache=True)
def log_sinh_ratio(a, b):
    """ln(sinh(a) / sinh(b)) for finite a, b > 0."""
    return (a - b) + math.log1p(-math.exp(-2.0 * a)) - math.log1p(-math.exp(-2.0 * b))


@jit(nopython=True, cache=True)
def inv_sinh(x):
    """1 / sinh(x) for x > 0 (0 for large x)."""
    if x > 700.0:
        return 0.0
    return 2.0 * math.exp(-x) / (-math.expm1(-2.0 * x))


@jit(nopython=True, cache=True)
def one_minus_exp(x):
    """1 - e^{-x} without cancellation for small x."""
    return -math.expm1(-x)
