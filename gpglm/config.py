# gpglm/config.py
# --------------------------------------------------------------
# Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
# Copyright (c) 2022-2026, CentraleSupelec
# License: GPLv3 (see LICENSE)
# --------------------------------------------------------------
"""
Process-wide settings (version, backend, logger, caches) and the
explicit fitting configuration `GLMConfig`.
"""
import os
import copy
import logging

# Read version from VERSION file
_version_file = os.path.join(os.path.dirname(__file__), "..", "VERSION")
try:
    with open(os.path.abspath(_version_file), "r") as f:
        __version__ = f.read().strip()
except FileNotFoundError:
    __version__ = "0.0.0"


class _GPglmConfig:
    def __init__(self):
        self.version = __version__
        self.backend = None
        self.dtype = float
        self.dtype_resolved = None
        self.caches = {}
        # logger lives in config
        self.logger = logging.getLogger("gpglm")
        if not self.logger.handlers:
            h = logging.StreamHandler()
            h.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
            self.logger.addHandler(h)
        self.logger.setLevel(logging.INFO)

    def __str__(self):
        return (
            f"GPglmConfig("
            f"version={self.version}, "
            f"backend={self.backend}, "
            f"dtype={self.dtype}, "
            f"caches={list(self.caches.keys())})"
        )

    def __repr__(self):
        return (
            f"<GPglmConfig "
            f"version={self.version!r}, "
            f"backend={self.backend!r}, "
            f"dtype={self.dtype!r}, "
            f"caches={list(self.caches.keys())}>"
        )

    def update(self, **kwargs):
        for k, v in kwargs.items():
            setattr(self, k, v)
        return self

    def clear_caches(self, name=None):
        if name is None:
            self.caches.clear()
        else:
            self.caches.pop(name, None)


_config = _GPglmConfig()


def get_config():
    return _config


def init_backend():
    """Idempotent. Only the numpy backend is available."""
    if _config.backend is None:
        backend = os.environ.get("GPGLM_BACKEND", "numpy")
        if backend != "numpy":
            raise ValueError("backend must be 'numpy'")
        _config.backend = backend
    return _config.backend


def clear_caches(name=None):
    _config.clear_caches(name)


def get_logger():
    return _config.logger


def set_log_level(level):
    _config.logger.setLevel(level)


# ----------------------------------------------------------------------
#                       Fitting configuration
# ----------------------------------------------------------------------
_LINEAR_ALGEBRA_METHODS = ("lapack", "hmat")
_OPTIMIZATION_METHODS = ("TNC", "L-BFGS-B", "SLSQP", "Nelder-Mead")
_COMPRESSION_METHODS = ("aca", "svd")


class GLMConfig:
    """Configuration of a `gpglm.core.GLMAlgorithm`.

    An instance is passed to the fitting engine at construction time
    and copied there, so that later changes to the caller's object do
    not affect an engine already built.

    Attributes
    ----------
    optimize_parameters : bool, default True
        If False, the covariance parameters are kept at their current
        values and no optimization is performed.
    use_analytical_amplitude : bool, default True
        For scalar-output models, estimate the amplitude with the
        closed-form maximum-likelihood formula instead of searching it
        numerically.
    unbiased_variance : bool, default True
        Divide by N - q instead of N in the closed-form amplitude,
        where q is the number of trend coefficients.
    optimization_lower_bound, optimization_upper_bound : float
        Default box bounds (1e-2, 1e2) applied to each optimized
        covariance parameter.
    starting_scaling : float, default 1e-13
        First diagonal shift tried when the Cholesky factorization
        fails. Doubled at each retry.
    maximal_scaling : float, default 1e5
        Ceiling on the cumulated diagonal shift.
    mean_epsilon : float, default 1e-12
        Tolerance on the output mean when no trend is given.
    linear_algebra : {"lapack", "hmat"}, default "lapack"
        Dense or hierarchical factorization backend.
    optimization_method : str, default "TNC"
        Method of the default optimizer.
    gradient_epsilon : float, default 1e-7
        Step of the non-centered finite-difference gradient. With the
        "hmat" backend the likelihood is only accurate to about the
        compression tolerances, and the default optimizer uses at least
        the square root of the larger of them.
    cache_max_size : int, default 1024
        Capacity of the objective-function cache.
    hmatrix_assembly_epsilon, hmatrix_recompression_epsilon : float
        Compression tolerances of the hierarchical backend (1e-5).
    hmatrix_max_leaf_size : int, default 100
        Maximum number of points in a leaf of the cluster tree.
    hmatrix_compression_method : {"aca", "svd"}, default "aca"
        Low-rank approximation used for off-diagonal blocks.
    """

    def __init__(self, **kwargs):
        self.optimize_parameters = True
        self.use_analytical_amplitude = True
        self.unbiased_variance = True
        self.optimization_lower_bound = 1e-2
        self.optimization_upper_bound = 1e2
        self.starting_scaling = 1e-13
        self.maximal_scaling = 1e5
        self.mean_epsilon = 1e-12
        self.linear_algebra = "lapack"
        self.optimization_method = "TNC"
        self.gradient_epsilon = 1e-7
        self.cache_max_size = 1024
        self.hmatrix_assembly_epsilon = 1e-5
        self.hmatrix_recompression_epsilon = 1e-5
        self.hmatrix_max_leaf_size = 100
        self.hmatrix_compression_method = "aca"
        self.update(**kwargs)

    def __repr__(self):
        items = ", ".join(f"{k}={v!r}" for k, v in vars(self).items())
        return f"GLMConfig({items})"

    def update(self, **kwargs):
        for k, v in kwargs.items():
            if not hasattr(self, k):
                raise AttributeError(f"Unknown configuration key: {k}")
            setattr(self, k, v)
        self._validate()
        return self

    def copy(self):
        return copy.copy(self)

    def _validate(self):
        if self.linear_algebra not in _LINEAR_ALGEBRA_METHODS:
            raise ValueError(
                f"linear_algebra must be one of {_LINEAR_ALGEBRA_METHODS}, "
                f"got {self.linear_algebra!r}"
            )
        if self.optimization_method not in _OPTIMIZATION_METHODS:
            raise ValueError(
                f"optimization_method must be one of {_OPTIMIZATION_METHODS}, "
                f"got {self.optimization_method!r}"
            )
        if self.hmatrix_compression_method not in _COMPRESSION_METHODS:
            raise ValueError(
                f"hmatrix_compression_method must be one of {_COMPRESSION_METHODS}"
            )
        if not self.starting_scaling > 0.0:
            raise ValueError("starting_scaling must be positive")
        if not self.maximal_scaling > self.starting_scaling:
            raise ValueError("maximal_scaling must be larger than starting_scaling")
        if not self.optimization_lower_bound < self.optimization_upper_bound:
            raise ValueError("optimization bounds must satisfy lower < upper")
        if int(self.cache_max_size) < 0:
            raise ValueError("cache_max_size must be nonnegative")
        if int(self.hmatrix_max_leaf_size) < 1:
            raise ValueError("hmatrix_max_leaf_size must be at least 1")
