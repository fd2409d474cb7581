# gpglm/core/likelihood.py
# --------------------------------------------------------------
# Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
# Copyright (c) 2022-2026, CentraleSupelec
# License: GPLv3 (see LICENSE)
# --------------------------------------------------------------
"""
Reduced log-likelihood of the covariance parameters.

For a covariance matrix C = L L^T and a design matrix F, the trend
coefficients are profiled out by generalized least squares and the
reduced log-likelihood reads (up to an additive constant)

    ell(theta) = -1/2 (log det C + ||rho||^2),    rho = L^{-1} (y - F beta).

In analytical-amplitude mode the model is evaluated with amplitude 1
and the amplitude is set to its closed-form maximum-likelihood value

    sigma^2 = ||rho||^2 / (N - q)    (or / N),

where N is the number of scalar observations and q the number of
trend coefficients. Then log det C gains 2 N log sigma and rho is
divided by sigma.
"""
from collections import OrderedDict

import gpglm.num as gnp
from gpglm.config import get_logger
from gpglm.errors import DimensionMismatchError, LOG_MIN_SCALAR, MAX_SCALAR

logger = get_logger()


class LikelihoodState:
    """Quantities derived from the last evaluation of the likelihood.

    Attributes
    ----------
    factor : gnp.array or HMatrix
        Factor of the covariance matrix, computed with amplitude 1 in
        analytical-amplitude mode.
    rho : gnp.array
        Whitened residuals, divided by sigma in analytical-amplitude mode.
    beta : gnp.array
        Trend coefficients.
    log_likelihood : float
    parameter : gnp.array
        Active parameters of the evaluation.
    sigma : float
        Closed-form amplitude (1 when not in analytical-amplitude mode).
    regularization : float
        Diagonal shift used by the factorization.
    """

    def __init__(self):
        self.invalidate()

    def invalidate(self):
        self.factor = None
        self.rho = None
        self.beta = None
        self.log_likelihood = None
        self.parameter = None
        self.sigma = 1.0
        self.regularization = 0.0

    @property
    def is_valid(self):
        return self.log_likelihood is not None

    def matches(self, parameter):
        return self.is_valid and gnp.array_equal(self.parameter, parameter)


class ReducedLogLikelihood:
    """Reduced log-likelihood as a function of the active parameters.

    Parameters
    ----------
    model : CovarianceModel
        Reduced model, mutated at each evaluation.
    x : gnp.array, shape (n, d)
        Normalized inputs.
    y : gnp.array, shape (n * p,)
        Flattened outputs.
    F : gnp.array, shape (n * p, q)
        Design matrix.
    backend : DenseCholeskyBackend or HMatrixCholeskyBackend
    noise : gnp.array, shape (n,), optional
    analytical_amplitude : bool
    unbiased_variance : bool
    cache_max_size : int
        Number of evaluations memoized by `__call__`.

    Notes
    -----
    Evaluations are not reentrant: they share the model and the state.
    """

    def __init__(
        self,
        model,
        x,
        y,
        F,
        backend,
        noise=None,
        analytical_amplitude=False,
        unbiased_variance=True,
        cache_max_size=1024,
    ):
        self.model = model
        self.x = x
        self.y = y
        self.F = F
        self.backend = backend
        self.noise = noise
        self.analytical_amplitude = analytical_amplitude
        self.unbiased_variance = unbiased_variance
        self.cache_max_size = int(cache_max_size)
        self.state = LikelihoodState()
        self._cache = OrderedDict()
        self.evaluation_count = 0

    @property
    def input_dimension(self):
        return len(self.model.get_active_parameter())

    @property
    def last_log_likelihood(self):
        return self.state.log_likelihood

    def clear_cache(self):
        self._cache.clear()

    def _check_parameter(self, parameter):
        parameter = gnp.asarray(parameter, dtype=gnp.float64).reshape(-1)
        if parameter.shape[0] != self.input_dimension:
            raise DimensionMismatchError(
                f"parameter of size {parameter.shape[0]} given, "
                f"the reduced covariance model expects {self.input_dimension}"
            )
        return parameter

    def __call__(self, parameter):
        """Memoized evaluation, returns an array of shape (1,)."""
        parameter = self._check_parameter(parameter)
        key = tuple(parameter.tolist())
        if key in self._cache:
            self._cache.move_to_end(key)
            return gnp.array([self._cache[key]])
        value = self.compute(parameter)
        if self.cache_max_size > 0:
            self._cache[key] = float(value[0])
            if len(self._cache) > self.cache_max_size:
                self._cache.popitem(last=False)
        return value

    def compute(self, parameter):
        """Evaluate the reduced log-likelihood, bypassing the cache.

        Side effects: sets the parameters (and, in analytical-amplitude
        mode, the amplitude) of the model and updates the state.

        Returns
        -------
        gnp.array, shape (1,)
        """
        parameter = self._check_parameter(parameter)
        self.state.invalidate()
        if self.analytical_amplitude:
            self.model.set_amplitude(gnp.ones(1))
        self.model.set_parameter(parameter)

        factorization = self.backend.discretize_and_factor(
            self.model, self.x, self.y, self.F, self.noise
        )
        rho = factorization.rho
        beta = factorization.beta
        log_determinant = factorization.log_determinant

        sigma = 1.0
        if self.analytical_amplitude:
            N = self.y.shape[0]
            denominator = N - beta.shape[0] if self.unbiased_variance else N
            if denominator <= 0:
                denominator = N
            sigma = float(gnp.sqrt(gnp.sum(rho * rho) / denominator))
            if sigma > 0.0:
                self.model.set_amplitude(gnp.array([sigma]))
                if log_determinant < MAX_SCALAR:
                    log_determinant += 2.0 * N * float(gnp.log(sigma))
                rho = rho / sigma

        epsilon = float(gnp.sum(rho * rho))
        if epsilon <= 0.0:
            log_likelihood = LOG_MIN_SCALAR
        else:
            log_likelihood = -0.5 * (log_determinant + epsilon)

        state = self.state
        state.factor = factorization.factor
        state.rho = rho
        state.beta = beta
        state.log_likelihood = log_likelihood
        state.parameter = gnp.copy(parameter)
        state.sigma = sigma
        state.regularization = factorization.regularization
        self.evaluation_count += 1
        logger.debug(
            "log-likelihood=%.6e at parameter=%s (sigma=%.6e)",
            log_likelihood,
            parameter.tolist(),
            sigma,
        )
        return gnp.array([log_likelihood])
