# gpglm/core/utils.py
# --------------------------------------------------------------
# Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
# Copyright (c) 2022-2026, CentraleSupelec
# License: GPLv3 (see LICENSE)
# --------------------------------------------------------------
"""
Small utilities used across `gpglm.core` modules.

This file hosts:
- Shape/type validation & conversion helpers for samples
- Validation of observation noise
"""
import gpglm.num as gnp
from gpglm.errors import DimensionMismatchError


def as_sample(x, name="sample"):
    """Convert `x` to a 2D float array of shape (n, d).

    A 1D array is interpreted as a sample of n scalar points.

    Parameters
    ----------
    x : array_like, shape (n,) or (n, d)
    name : str
        Used in error messages.

    Returns
    -------
    gnp.array, shape (n, d)
    """
    x = gnp.asarray(x, dtype=gnp.float64)
    if x.ndim == 1:
        x = x.reshape(-1, 1)
    if x.ndim != 2:
        raise DimensionMismatchError(f"{name} should be a 2D array, got ndim={x.ndim}")
    return x


def ensure_samples(input_sample, output_sample):
    """Validate and convert an (input, output) pair of samples.

    Returns
    -------
    tuple
        (x, y) as 2D arrays with the same number of rows.

    Raises
    ------
    DimensionMismatchError
        If the sample sizes differ.
    """
    x = as_sample(input_sample, "input sample")
    y = as_sample(output_sample, "output sample")
    if x.shape[0] != y.shape[0]:
        raise DimensionMismatchError(
            f"input sample size={x.shape[0]} does not match "
            f"output sample size={y.shape[0]}"
        )
    return x, y


def check_noise(noise, size):
    """Validate a vector of observation noise variances.

    Parameters
    ----------
    noise : array_like, shape (size,)
        Nonnegative variances, one per sample point.
    size : int
        Sample size.

    Returns
    -------
    gnp.array, shape (size,)
    """
    noise = gnp.asarray(noise, dtype=gnp.float64).reshape(-1)
    if noise.shape[0] != size:
        raise DimensionMismatchError(
            f"noise size={noise.shape[0]} does not match sample size={size}"
        )
    if not gnp.all(noise >= 0.0):
        raise DimensionMismatchError("noise variances must be nonnegative")
    return noise
