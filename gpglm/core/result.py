# gpglm/core/result.py
# --------------------------------------------------------------
# Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
# Copyright (c) 2022-2026, CentraleSupelec
# License: GPLv3 (see LICENSE)
# --------------------------------------------------------------
"""Fitted generalized linear model."""
import gpglm.num as gnp


class GLMResult:
    """Snapshot of a fit produced by `GLMAlgorithm.run`.

    Attributes
    ----------
    input_sample, output_sample : gnp.array
        Training data, inputs not normalized.
    metamodel : TrendFunction
        Fitted trend x -> F(x) beta, zero without trend basis.
    residuals : gnp.array, shape (p,)
        Root mean squared error of the metamodel on the training data.
    relative_errors : gnp.array, shape (p,)
        Mean squared error divided by the output variance.
    basis_collection : list of Basis
    trend_coefficients : list of gnp.array
        One array per basis of the collection.
    covariance_model : CovarianceModel
        Fitted (reduced) covariance model.
    optimal_log_likelihood : float
    transformation : callable or None
        Input normalization, None when inputs are not normalized.
    cholesky_factor : gnp.array, HMatrix or None
        Factor of the covariance matrix of the observations, kept on
        request only.
    regularization : float
        Diagonal shift applied to the covariance matrix at the optimum.
    """

    def __init__(
        self,
        input_sample,
        output_sample,
        metamodel,
        residuals,
        relative_errors,
        basis_collection,
        trend_coefficients,
        covariance_model,
        optimal_log_likelihood,
        transformation=None,
        cholesky_factor=None,
        regularization=0.0,
        kriging_weights=None,
    ):
        self._input_sample = input_sample
        self._output_sample = output_sample
        self._metamodel = metamodel
        self._residuals = residuals
        self._relative_errors = relative_errors
        self._basis_collection = list(basis_collection)
        self._trend_coefficients = [gnp.copy(c) for c in trend_coefficients]
        self._covariance_model = covariance_model
        self._optimal_log_likelihood = optimal_log_likelihood
        self._transformation = transformation
        self._cholesky_factor = cholesky_factor
        self._regularization = regularization
        self._kriging_weights = kriging_weights

    @property
    def input_sample(self):
        return self._input_sample

    @property
    def output_sample(self):
        return self._output_sample

    @property
    def metamodel(self):
        return self._metamodel

    @property
    def residuals(self):
        return self._residuals

    @property
    def relative_errors(self):
        return self._relative_errors

    @property
    def basis_collection(self):
        return list(self._basis_collection)

    @property
    def trend_coefficients(self):
        return [gnp.copy(c) for c in self._trend_coefficients]

    @property
    def covariance_model(self):
        return self._covariance_model

    @property
    def optimal_log_likelihood(self):
        return self._optimal_log_likelihood

    @property
    def transformation(self):
        return self._transformation

    @property
    def cholesky_factor(self):
        return self._cholesky_factor

    @property
    def regularization(self):
        return self._regularization

    def _normalize(self, x):
        x = gnp.asarray(x, dtype=gnp.float64)
        if x.ndim == 1:
            x = x.reshape(-1, 1)
        return x if self._transformation is None else self._transformation(x)

    def predict(self, x):
        """Kriging conditional mean at the points of x.

        .. math::
            m(x) = F(x) \\beta + k(x, X) \\gamma,
            \\qquad \\gamma = C^{-1} (y - F \\beta)

        It interpolates the training data when there is no observation
        noise.

        Parameters
        ----------
        x : array_like, shape (m, d)

        Returns
        -------
        gnp.array, shape (m, p)
        """
        x = gnp.asarray(x, dtype=gnp.float64)
        if x.ndim == 1:
            x = x.reshape(-1, 1)
        trend = self._metamodel(x)
        if self._kriging_weights is None:
            return trend
        K = self._covariance_model.discretize_cross(
            self._normalize(x), self._normalize(self._input_sample)
        )
        return trend + gnp.matmul(K, self._kriging_weights).reshape(trend.shape)

    def __str__(self):
        return (
            f"GLMResult(\n"
            f"  covariance_model={self._covariance_model},\n"
            f"  trend_coefficients={[c.tolist() for c in self._trend_coefficients]},\n"
            f"  optimal_log_likelihood={self._optimal_log_likelihood:.6e},\n"
            f"  residuals={gnp.asarray(self._residuals).tolist()},\n"
            f"  relative_errors={gnp.asarray(self._relative_errors).tolist()},\n"
            f"  regularization={self._regularization:.3e}\n"
            f")"
        )

    __repr__ = __str__
