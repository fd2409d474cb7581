# gpglm/num/numpy_backend.py
# --------------------------------------------------------------
# Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
# Copyright (c) 2022-2026, CentraleSupelec
# License: GPLv3 (see LICENSE)
# --------------------------------------------------------------
"""NumPy numerical backend for GPglm.

This module defines the NumPy implementation of the gpglm.num API.
"""

import builtins
from typing import Any, Union
from gpglm.config import get_config, init_backend, get_logger

Scalar = Union[int, float]
ArrayLike = Any

_gpglm_backend_: str = init_backend()
_config = get_config()
_logger = get_logger()
_logger.debug("Using backend: %s", _gpglm_backend_)

_LINALG_ERROR_KEYWORDS = (
    "singular",
    "not positive definite",
    "not positive-definite",
    "leading minor",
    "svd did not converge",
    "lapack",
)


# -----------------------------------------------------
#
#                      NUMPY
#
# -----------------------------------------------------

import numpy
from numpy.typing import NDArray

_np_dtype = numpy.float64
_config.dtype_resolved = _np_dtype

ndarray = NDArray[numpy.floating]
from numpy import (
    copy,
    array_equal,
    reshape,
    where,
    any,
    isscalar,
    isnan,
    isinf,
    isfinite,
    isclose,
    allclose,
    hstack,
    vstack,
    stack,
    tile,
    repeat,
    concatenate,
    expand_dims,
    zeros_like,
    diag,
    arange,
    linspace,
    abs,
    sqrt,
    exp,
    log,
    sum,
    prod,
    mean,
    std,
    var,
    sort,
    min,
    max,
    argmin,
    argmax,
    argsort,
    minimum,
    maximum,
    clip,
    einsum,
    matmul,
    kron,
    outer,
    polyval,
    ptp,
    all,
)
from numpy.linalg import norm, LinAlgError
from numpy import pi, inf, nan
from numpy import finfo, float64
from scipy.special import gammaln
from scipy.linalg import solve_triangular, qr, svd, lstsq
from scipy.spatial.distance import cdist

# ..................................................

eps = finfo(_np_dtype).eps
fmax = finfo(_np_dtype).max
tiny = finfo(_np_dtype).tiny

# ..................................................

def _is_linalg_exception(exc: Exception) -> bool:
    if isinstance(exc, numpy.linalg.LinAlgError):
        return True
    msg = str(exc).lower()
    return builtins.any(keyword in msg for keyword in _LINALG_ERROR_KEYWORDS)

# ..................................................

def array(x, dtype=None):
    if dtype is not None:
        return numpy.array(x, dtype=dtype)
    out = numpy.array(x)
    if numpy.issubdtype(out.dtype, numpy.floating):
        return out.astype(_np_dtype, copy=False)
    return out

def asarray(x, dtype=None):
    if dtype is not None:
        return numpy.asarray(x, dtype=dtype)
    if isinstance(x, numpy.ndarray):
        if numpy.issubdtype(x.dtype, numpy.floating):
            return x.astype(_np_dtype, copy=False)
        return x
    elif isinstance(x, (int, float)):
        dt = _np_dtype if isinstance(x, float) else None
        return numpy.array([x], dtype=dt)
    else:
        out = numpy.asarray(x)
        if numpy.issubdtype(out.dtype, numpy.floating):
            return out.astype(_np_dtype, copy=False)
        return out

def asint(x):
    return numpy.asarray(x).astype(int, copy=False)

def empty(shape, dtype=None):
    return numpy.empty(shape, dtype=_np_dtype if dtype is None else dtype)

def zeros(shape, dtype=None):
    return numpy.zeros(shape, dtype=_np_dtype if dtype is None else dtype)

def ones(shape, dtype=None):
    return numpy.ones(shape, dtype=_np_dtype if dtype is None else dtype)

def full(shape, fill_value, dtype=None):
    return numpy.full(
        shape, fill_value, dtype=_np_dtype if dtype is None else dtype
    )

def eye(n, m=None, k=0, dtype=None):
    return numpy.eye(n, M=m, k=k, dtype=_np_dtype if dtype is None else dtype)

def to_np(x):
    return x

def isarray(x):
    return isinstance(x, numpy.ndarray)

def inftobigf(a, bigf=fmax / 1000.0):
    a = where(numpy.isinf(a), numpy.full_like(a, bigf), a)
    return a

def add_to_diagonal(A, values):
    """In-place A[i, i] += values[i] (or a scalar)."""
    idx = numpy.diag_indices_from(A)
    A[idx] += values
    return A

# ..................................................

def scaled_distance(scale: ArrayLike, x: ArrayLike, y: ArrayLike) -> ArrayLike:
    """Euclidean distance between the rows of x / scale and y / scale."""
    xs = x / scale
    ys = y / scale
    return cdist(xs, ys)

def scaled_squared_distance(scale: ArrayLike, x: ArrayLike, y: ArrayLike) -> ArrayLike:
    xs = x / scale
    ys = y / scale
    return cdist(xs, ys, "sqeuclidean")

# ..................................................

def cholesky(A):
    """Lower Cholesky factor; raises LinAlgError if A is not positive definite."""
    return numpy.linalg.cholesky(A)

def least_squares(A, b):
    """Minimizer of ||A x - b||_2."""
    x, _, _, _ = lstsq(A, b)
    return x
