# gpglm/core/algorithm.py
# --------------------------------------------------------------
# Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
# Copyright (c) 2022-2026, CentraleSupelec
# License: GPLv3 (see LICENSE)
# --------------------------------------------------------------
"""
Fitting of generalized linear models with correlated errors.

The observations are modeled as y = F(x) beta + Z(x), where Z is a
zero-mean Gaussian process with covariance given by a parametric model.
`GLMAlgorithm` estimates the covariance parameters by maximizing the
reduced log-likelihood, the trend coefficients by generalized least
squares, and assembles a `GLMResult`.
"""
import gpglm.num as gnp
from gpglm.config import GLMConfig, get_logger
from gpglm.errors import DimensionMismatchError
from .basis import (
    TrendFunction,
    assemble_design_matrix,
    make_basis_collection,
    split_coefficients,
)
from .hmatrix import HMatrixCholeskyBackend
from .likelihood import ReducedLogLikelihood
from .linalg import DenseCholeskyBackend
from .optimizer import OptimizationProblem, Optimizer
from .reduction import (
    adapt_covariance_model,
    default_optimization_bounds,
    reduce_covariance_model,
)
from .result import GLMResult
from .transformation import AffineTransformation
from .utils import check_noise, ensure_samples

logger = get_logger()


def make_backend(config):
    """Factorization backend selected by `config.linear_algebra`."""
    if config.linear_algebra == "hmat":
        return HMatrixCholeskyBackend.from_config(config)
    return DenseCholeskyBackend.from_config(config)


def gradient_step(config):
    """Finite-difference step of the default optimizer.

    The hierarchical backend evaluates the likelihood only to about its
    compression tolerance, so the step is raised to the square root of
    that tolerance.
    """
    if config.linear_algebra == "hmat":
        tolerance = max(config.hmatrix_assembly_epsilon, config.hmatrix_recompression_epsilon)
        return max(config.gradient_epsilon, tolerance**0.5)
    return config.gradient_epsilon


def residual_statistics(y, predicted):
    """Root mean squared residual and relative error per output.

    The relative error is the mean squared residual divided by the
    unbiased variance of the output; it is 0 when both vanish and inf
    when only the variance does.
    """
    r2 = gnp.mean((y - predicted) ** 2, axis=0)
    residuals = gnp.sqrt(r2)
    if y.shape[0] > 1:
        variance = gnp.var(y, axis=0, ddof=1)
    else:
        variance = gnp.zeros(y.shape[1])
    relative_errors = gnp.zeros(y.shape[1])
    for k in range(y.shape[1]):
        if variance[k] > 0.0:
            relative_errors[k] = r2[k] / variance[k]
        elif r2[k] > 0.0:
            relative_errors[k] = gnp.inf
    return residuals, relative_errors


class GLMAlgorithm:
    """Maximum-likelihood fitting of a Gaussian-process regression model.

    Parameters
    ----------
    input_sample : array_like, shape (n, d)
    output_sample : array_like, shape (n, p)
    covariance_model : CovarianceModel
        Either of spatial dimension d and dimension p, or a scalar model
        that is replicated (see `adapt_covariance_model`). It is copied.
    basis : Basis or list of Basis, optional
        Trend basis. A single basis is used for all outputs. Without
        basis the outputs are assumed centered.
    normalize : bool, default False
        Normalize the inputs before evaluating bases and covariance.
    keep_cholesky_factor : bool, default False
        Store the factor of the covariance matrix in the result.
    input_transformation : callable, optional
        User normalization of the inputs, mapping (n, d) arrays to (n, d)
        arrays. Implies ``normalize=True``.
    config : GLMConfig, optional
        Copied at construction.
    optimizer : Optimizer, optional
        Defaults to ``Optimizer(config.optimization_method)``.

    Examples
    --------
    >>> algo = GLMAlgorithm(x, y, MaternModel(scale=[1.0], p=2), basis=constant_basis(1))
    >>> algo.run()
    >>> result = algo.get_result()
    >>> result.predict(xt)
    """

    def __init__(
        self,
        input_sample,
        output_sample,
        covariance_model,
        basis=None,
        normalize=False,
        keep_cholesky_factor=False,
        input_transformation=None,
        config=None,
        optimizer=None,
    ):
        self.config = GLMConfig() if config is None else config.copy()
        self._input_sample, self._output_sample = ensure_samples(input_sample, output_sample)
        n, d = self._input_sample.shape
        p = self._output_sample.shape[1]

        self._basis_collection = make_basis_collection(basis, p)
        if not self._basis_collection:
            mean = gnp.mean(self._output_sample, axis=0)
            if gnp.any(gnp.abs(mean) > self.config.mean_epsilon):
                logger.warning(
                    "Basis is empty and output sample is not centered, mean=%s", mean.tolist()
                )

        if input_transformation is not None:
            xt = gnp.asarray(input_transformation(self._input_sample))
            if xt.shape != (n, d):
                raise DimensionMismatchError(
                    f"input transformation maps points of dimension {d} to "
                    f"an array of shape {xt.shape}, expected {(n, d)}"
                )
            normalize = True
        self._normalize = normalize
        self._input_transformation = input_transformation
        self._keep_cholesky_factor = keep_cholesky_factor

        self._covariance_model = adapt_covariance_model(covariance_model, d, p)
        self._optimizer = (
            Optimizer(
                self.config.optimization_method,
                gradient_epsilon=gradient_step(self.config),
            )
            if optimizer is None
            else optimizer
        )
        self._backend = make_backend(self.config)
        self._noise = None
        self._normalized_input_sample = None
        self._F = None
        self._reset_reduction()

    # ------------------------------------------------------------------
    # State management
    # ------------------------------------------------------------------
    def _reset(self):
        self._objective = None
        self._result = None
        self._has_run = False

    def _reset_reduction(self):
        self._reduced_covariance_model, self._analytical_amplitude = reduce_covariance_model(
            self._covariance_model.copy(),
            self.config.optimize_parameters,
            self.config.use_analytical_amplitude,
        )
        self._optimization_bounds = default_optimization_bounds(
            len(self._reduced_covariance_model.get_active_parameter()),
            self.config.optimization_lower_bound,
            self.config.optimization_upper_bound,
        )
        self._reset()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def input_dimension(self):
        return self._input_sample.shape[1]

    @property
    def output_dimension(self):
        return self._output_sample.shape[1]

    @property
    def analytical_amplitude(self):
        return self._analytical_amplitude

    def get_input_sample(self):
        return gnp.copy(self._input_sample)

    def get_output_sample(self):
        return gnp.copy(self._output_sample)

    def get_basis_collection(self):
        return list(self._basis_collection)

    def get_covariance_model(self):
        return self._covariance_model.copy()

    def get_reduced_covariance_model(self):
        return self._reduced_covariance_model.copy()

    def set_noise(self, noise):
        """Independent observation noise variances, one per point."""
        self._noise = check_noise(noise, self._input_sample.shape[0])
        self._reset()

    def get_noise(self):
        return None if self._noise is None else gnp.copy(self._noise)

    def set_optimize_parameters(self, optimize_parameters):
        self.config.optimize_parameters = bool(optimize_parameters)
        self._reset_reduction()

    def get_optimize_parameters(self):
        return self.config.optimize_parameters

    def set_optimization_bounds(self, bounds):
        """Box bounds on the reduced parameters, array of shape (k, 2)."""
        bounds = gnp.asarray(bounds, dtype=gnp.float64)
        k = len(self._reduced_covariance_model.get_active_parameter())
        if bounds.size == 0 and k == 0:
            bounds = bounds.reshape(0, 2)
        if bounds.ndim != 2 or bounds.shape != (k, 2):
            raise DimensionMismatchError(
                f"optimization bounds of shape {bounds.shape} given, expected {(k, 2)}"
            )
        if gnp.any(bounds[:, 0] > bounds[:, 1]):
            raise ValueError("optimization bounds must satisfy lower <= upper")
        self._optimization_bounds = gnp.copy(bounds)
        self._reset()

    def get_optimization_bounds(self):
        return gnp.copy(self._optimization_bounds)

    def set_optimizer(self, optimizer):
        self._optimizer = optimizer
        self._reset()

    def get_optimizer(self):
        return self._optimizer

    def get_input_transformation(self):
        """Normalization of the inputs (identity when not normalizing)."""
        if not self._normalize:
            return AffineTransformation.identity(self.input_dimension)
        if self._input_transformation is None:
            self._input_transformation = AffineTransformation.from_sample(self._input_sample)
        return self._input_transformation

    def get_rho(self):
        """Whitened residuals of the last likelihood evaluation (None before)."""
        if self._objective is None:
            return None
        return self._objective.state.rho

    # ------------------------------------------------------------------
    # Fitting
    # ------------------------------------------------------------------
    def _get_normalized_input_sample(self):
        if self._normalized_input_sample is None:
            if self._normalize:
                transformation = self.get_input_transformation()
                self._normalized_input_sample = gnp.asarray(transformation(self._input_sample))
            else:
                self._normalized_input_sample = self._input_sample
        return self._normalized_input_sample

    def _get_design_matrix(self):
        if self._F is None:
            self._F = assemble_design_matrix(
                self._get_normalized_input_sample(),
                self._basis_collection,
                self.output_dimension,
            )
        return self._F

    def get_objective_function(self):
        """Reduced log-likelihood of the current reduced model."""
        if self._objective is None:
            self._objective = ReducedLogLikelihood(
                self._reduced_covariance_model,
                self._get_normalized_input_sample(),
                self._output_sample.reshape(-1),
                self._get_design_matrix(),
                self._backend,
                noise=self._noise,
                analytical_amplitude=self._analytical_amplitude,
                unbiased_variance=self.config.unbiased_variance,
                cache_max_size=self.config.cache_max_size,
            )
        return self._objective

    def _maximize_log_likelihood(self):
        objective = self.get_objective_function()
        parameter = self._reduced_covariance_model.get_parameter()
        if parameter.shape[0] == 0:
            logger.info("No covariance parameter to optimize")
            value = float(objective(parameter)[0])
            if not objective.state.matches(parameter):
                value = float(objective.compute(parameter)[0])
            return value

        logger.info(
            "Optimizing %s with %s",
            self._reduced_covariance_model.get_parameter_description(),
            self._optimizer,
        )
        problem = OptimizationProblem(objective, self._optimization_bounds, minimization=False)
        self._optimizer.starting_point = parameter
        result = self._optimizer.run(problem)
        optimal_point = result.optimal_point
        optimal_value = result.optimal_value
        if objective.last_log_likelihood != optimal_value or not objective.state.matches(
            optimal_point
        ):
            logger.debug("Re-evaluating the log-likelihood at the optimal point")
            optimal_value = float(objective.compute(optimal_point)[0])
        return optimal_value

    def run(self):
        """Fit the model. Does nothing if the model is already fitted."""
        if self._has_run:
            return
        n, d = self._input_sample.shape
        p = self.output_dimension
        logger.info(
            "Fitting a GLM on %d points, input dimension=%d, output dimension=%d, backend=%s",
            n,
            d,
            p,
            self._backend.name,
        )
        optimal_log_likelihood = self._maximize_log_likelihood()
        state = self._objective.state

        model = self._reduced_covariance_model
        self._covariance_model.set_full_parameter(model.get_full_parameter())

        coefficients = split_coefficients(state.beta, self._basis_collection)
        transformation = self.get_input_transformation() if self._normalize else None
        metamodel = TrendFunction(self._basis_collection, coefficients, p, transformation)
        residuals, relative_errors = residual_statistics(
            self._output_sample, metamodel(self._input_sample)
        )

        factor = self._backend.scale_factor(state.factor, state.sigma)
        kriging_weights = self._backend.solve_upper(factor, state.rho)
        result = GLMResult(
            self._input_sample,
            self._output_sample,
            metamodel,
            residuals,
            relative_errors,
            self._basis_collection,
            coefficients,
            model.copy(),
            optimal_log_likelihood,
            transformation=transformation,
            cholesky_factor=factor if self._keep_cholesky_factor else None,
            regularization=state.regularization,
            kriging_weights=kriging_weights,
        )
        logger.info(
            "Fit done: log-likelihood=%.6e, residuals=%s",
            optimal_log_likelihood,
            residuals.tolist(),
        )
        self._result = result
        self._has_run = True

    def get_result(self):
        """Fitted model, running the fit if needed."""
        if not self._has_run:
            self.run()
        return self._result

    def __repr__(self):
        return (
            f"GLMAlgorithm(size={self._input_sample.shape[0]}, "
            f"input_dimension={self.input_dimension}, "
            f"output_dimension={self.output_dimension}, "
            f"covariance_model={self._reduced_covariance_model}, "
            f"basis={self._basis_collection}, normalize={self._normalize})"
        )
