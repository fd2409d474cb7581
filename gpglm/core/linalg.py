# gpglm/core/linalg.py
# --------------------------------------------------------------
# Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
# Copyright (c) 2022-2026, CentraleSupelec
# License: GPLv3 (see LICENSE)
# --------------------------------------------------------------
"""
Dense factorization backend of the reduced log-likelihood.

A factorization backend turns a covariance model, a sample, a design
matrix and an optional noise vector into a `Factorization`:

    factor           lower Cholesky factor L of C (+ regularization)
    rho              whitened residuals L^{-1} (y - F beta)
    beta             generalized least-squares trend coefficients
    log_determinant  log det C, or MAX_SCALAR if the factor is invalid
    regularization   diagonal shift that was needed to factorize C

Both backends share the regularization ladder of `regularized_factor`.
"""
import warnings
from collections import namedtuple

import gpglm.num as gnp
from gpglm.config import get_logger
from gpglm.errors import MAX_SCALAR, NumericalInstabilityError, RegularizationWarning

logger = get_logger()

Factorization = namedtuple(
    "Factorization", ["factor", "rho", "beta", "log_determinant", "regularization"]
)


def regularized_factor(factorize, starting_scaling, maximal_scaling):
    """Run `factorize(shift, attempt)` until it succeeds.

    Parameters
    ----------
    factorize : callable
        ``factorize(cumulated_scaling, attempt)`` returns a factor of the
        matrix with `cumulated_scaling` added to its diagonal, or raises
        `LinAlgError`.
    starting_scaling : float
        First shift tried after a failure, doubled at each retry.
    maximal_scaling : float
        The ladder stops when the cumulated shift would exceed it.

    Returns
    -------
    factor, cumulated_scaling

    Raises
    ------
    NumericalInstabilityError
        When the ladder is exhausted.
    """
    cumulated_scaling = 0.0
    scaling = starting_scaling
    attempt = 0
    while True:
        try:
            factor = factorize(cumulated_scaling, attempt)
            break
        except gnp.LinAlgError as e:
            if cumulated_scaling + scaling > maximal_scaling:
                raise NumericalInstabilityError(
                    f"could not stabilize the covariance matrix, "
                    f"cumulated scaling={cumulated_scaling:.3e} "
                    f"reached the maximal scaling={maximal_scaling:.3e}",
                    cumulated_scaling,
                ) from e
            cumulated_scaling += scaling
            scaling *= 2.0
            attempt += 1
            logger.debug(
                "Cholesky factorization failed, retrying with a diagonal shift of %.3e",
                cumulated_scaling,
            )

    if cumulated_scaling > 0.0:
        message = (
            f"Warning! Scaling up to {cumulated_scaling:.3e} was needed "
            f"in order to get an admissible covariance."
        )
        logger.warning(message)
        warnings.warn(RegularizationWarning(message, cumulated_scaling))
    return factor, cumulated_scaling


def log_determinant_from_diagonal(diagonal):
    """2 sum log d_i, or MAX_SCALAR if some d_i is not positive."""
    if gnp.any(diagonal <= 0.0):
        return MAX_SCALAR
    return 2.0 * float(gnp.sum(gnp.log(diagonal)))


def noise_diagonal(noise, output_dimension):
    """Noise variance of point i repeated for its output_dimension entries."""
    return gnp.repeat(noise, output_dimension)


def generalized_least_squares(rho, Phi):
    """Project the whitened observations on the whitened trend.

    Returns
    -------
    rho : gnp.array
        rho - Phi beta
    beta : gnp.array
    """
    if Phi.shape[1] == 0:
        return rho, gnp.zeros(0)
    beta = gnp.least_squares(Phi, rho)
    return rho - gnp.matmul(Phi, beta), beta


class DenseCholeskyBackend:
    """LAPACK Cholesky factorization of the full covariance matrix.

    Parameters
    ----------
    starting_scaling, maximal_scaling : float
        Regularization ladder, see `regularized_factor`.
    """

    name = "lapack"

    def __init__(self, starting_scaling=1e-13, maximal_scaling=1e5):
        self.starting_scaling = starting_scaling
        self.maximal_scaling = maximal_scaling

    @classmethod
    def from_config(cls, config):
        return cls(config.starting_scaling, config.maximal_scaling)

    def discretize(self, model, x, noise=None):
        """Covariance matrix of the observations."""
        C = model.discretize(x)
        if noise is not None:
            gnp.add_to_diagonal(C, noise_diagonal(noise, model.dimension))
        return C

    def factor(self, C):
        """Regularized Cholesky factor of C.

        Returns
        -------
        L : gnp.array
            Lower factor of C + s I.
        s : float
            Cumulated diagonal shift.
        """

        def factorize(shift, attempt):
            if shift == 0.0:
                return gnp.cholesky(C)
            A = gnp.copy(C)
            gnp.add_to_diagonal(A, shift)
            return gnp.cholesky(A)

        return regularized_factor(factorize, self.starting_scaling, self.maximal_scaling)

    def discretize_and_factor(self, model, x, y, F, noise=None):
        """Factorize the covariance of the observations and whiten them.

        Parameters
        ----------
        model : CovarianceModel
        x : gnp.array, shape (n, d)
            Normalized inputs.
        y : gnp.array, shape (n * p,)
            Flattened outputs, entry i * p + k for point i and output k.
        F : gnp.array, shape (n * p, q)
            Design matrix, possibly with zero columns.
        noise : gnp.array, shape (n,), optional

        Returns
        -------
        Factorization
        """
        C = self.discretize(model, x, noise)
        L, regularization = self.factor(C)
        rho = gnp.solve_triangular(L, y, lower=True)
        Phi = gnp.solve_triangular(L, F, lower=True) if F.shape[1] > 0 else F
        rho, beta = generalized_least_squares(rho, Phi)
        log_determinant = log_determinant_from_diagonal(gnp.diag(L))
        return Factorization(L, rho, beta, log_determinant, regularization)

    def solve_lower(self, factor, b):
        return gnp.solve_triangular(factor, b, lower=True)

    def solve_upper(self, factor, b):
        """Solve L^T z = b."""
        return gnp.solve_triangular(factor.T, b, lower=False)

    def scale_factor(self, factor, sigma):
        """Factor of sigma^2 C given the factor of C."""
        return sigma * factor
