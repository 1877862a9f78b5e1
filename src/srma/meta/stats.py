"""Statistical primitives used for pooled p-values.

Both functions are closed-form approximations rather than calls into a
numerical library so that results are reproducible across platforms:

* :func:`normal_cdf` uses the Abramowitz-Stegun 7.1.26 approximation of
  the error function (absolute error around 1e-7).
* :func:`chi_squared_cdf` uses a truncated series for the incomplete
  gamma function.
"""

from __future__ import annotations

import math

_A1 = 0.254829592
_A2 = -0.284496736
_A3 = 1.421413741
_A4 = -1.453152027
_A5 = 1.061405429
_P = 0.3275911

_MAX_ITERATIONS = 200
_TOLERANCE = 1e-10


def normal_cdf(z: float) -> float:
    """Standard normal cumulative distribution function Φ(z)."""
    sign = -1.0 if z < 0 else 1.0
    x = abs(z) / math.sqrt(2.0)
    t = 1.0 / (1.0 + _P * x)
    y = 1.0 - (((((_A5 * t + _A4) * t) + _A3) * t + _A2) * t + _A1) * t * math.exp(-x * x)
    return 0.5 * (1.0 + sign * y)


def chi_squared_cdf(x: float, df: float) -> float:
    """Chi-squared CDF approximation at ``x`` with ``df`` degrees of freedom.

    Returns 0 for ``x < 0`` or ``df < 1``.  The series can overshoot for
    small ``df``, so the result is clamped to [0, 1].
    """
    if x < 0 or df < 1:
        return 0.0
    k = df / 2.0
    x2 = x / 2.0
    total = 0.0
    term = math.exp(-x2)
    for i in range(_MAX_ITERATIONS):
        term *= x2 / (k + i)
        total += term
        if term < _TOLERANCE:
            break
    return min(1.0, max(0.0, 1.0 - total))


def two_sided_p(z: float) -> float:
    """Two-sided p-value of a standard normal test statistic."""
    p = 2.0 * (1.0 - normal_cdf(abs(z)))
    return min(1.0, max(0.0, p))
