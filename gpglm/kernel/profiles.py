# gpglm/kernel/profiles.py
# --------------------------------------------------------------
# Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
# Copyright (c) 2022-2026, CentraleSupelec
# License: GPLv3 (see LICENSE)
# --------------------------------------------------------------
"""
Correlation profiles of stationary covariance models.

Each profile maps scaled distances h >= 0 to correlations, with
value 1 at h = 0.
"""
from math import sqrt
import gpglm.num as gnp


def exponential_kernel(h):
    """Exponential profile.

    .. math::
        r(h) = \\exp(-h)

    Parameters
    ----------
    h : gnp.array
        Scaled distances.

    Returns
    -------
    gnp.array
        Correlations, same shape as h.
    """
    return gnp.exp(-h)


def squared_exponential_kernel(h):
    """Squared exponential (Gaussian) profile, r(h) = exp(-h^2 / 2)."""
    return gnp.exp(-0.5 * h * h)


def _matern_coefficients(p: int):
    # a_i = p! (p+i)! / ((2p)! i! (p-i)!), i = 0..p, highest power first
    gln = gnp.compute_gammaln(p)
    i = gnp.arange(p + 1)
    return gnp.exp(
        gln[p + 1] - gln[2 * p + 1] + gln[p + i + 1] - gln[i + 1] - gln[p - i + 1]
    )


def matern_kernel(p: int, h):
    """Matérn profile with half-integer regularity :math:`\\nu = p + 1/2`.

    .. math::
        r(h) = \\exp(-c h) \\sum_{i=0}^{p} a_i \\, (2 c h)^{p-i},
        \\qquad c = 2\\sqrt{\\nu}

    with :math:`a_i = p!\\,(p+i)! / ((2p)!\\, i!\\, (p-i)!)`; p = 1 gives
    (1 + sqrt(6) h) exp(-sqrt(6) h).

    Parameters
    ----------
    p : int
        Nonnegative integer.
    h : gnp.array
        Scaled distances.

    Returns
    -------
    gnp.array
        Correlations, same shape as h.
    """
    if p < 0:
        raise ValueError(f"p must be a nonnegative integer, got {p}")
    h = gnp.inftobigf(h)
    c = 2.0 * sqrt(p + 0.5)
    polynomial = gnp.polyval(_matern_coefficients(p), 2.0 * c * h)
    return gnp.exp(-c * h) * polynomial
