import logging

import numpy as np
import pytest

import gpglm.num as gnp
from gpglm import GLMAlgorithm, GLMConfig
from gpglm.errors import DimensionMismatchError
from gpglm.kernel import ExponentialModel, MaternModel, TensorizedCovarianceModel
from gpglm.core import (
    AffineTransformation,
    HMatrix,
    Optimizer,
    constant_basis,
    linear_basis,
)
from gpglm.core.algorithm import gradient_step, residual_statistics

X3 = [[0.0], [1.0], [2.0]]
Y3 = [[0.0], [1.0], [0.0]]


def _prediction_error(algo):
    result = algo.get_result()
    return float(np.max(np.abs(result.predict(result.input_sample) - result.output_sample)))


def test_interpolation_without_noise():
    algo = GLMAlgorithm(X3, Y3, MaternModel(scale=[1.0], p=1))
    assert gnp.allclose(algo.get_optimization_bounds(), [[0.01, 100.0]])
    algo.run()
    result = algo.get_result()
    assert np.isfinite(result.optimal_log_likelihood)
    assert result.predict(X3).shape == (3, 1)
    assert gnp.allclose(result.predict(X3), Y3, atol=1e-6)


def test_noise_relaxes_interpolation():
    noiseless = GLMAlgorithm(X3, Y3, MaternModel(scale=[1.0], p=1))
    noisy = GLMAlgorithm(X3, Y3, MaternModel(scale=[1.0], p=1))
    noisy.set_noise([1e-3, 1e-3, 1e-3])
    assert gnp.allclose(noisy.get_noise(), 1e-3)
    assert _prediction_error(noisy) > _prediction_error(noiseless)
    assert gnp.allclose(noisy.get_result().predict(X3), Y3, atol=0.1)


def test_run_is_idempotent():
    algo = GLMAlgorithm(X3, Y3, MaternModel(scale=[1.0], p=1))
    algo.run()
    result = algo.get_result()
    count = algo.get_objective_function().evaluation_count
    algo.run()
    assert algo.get_result() is result
    assert algo.get_objective_function().evaluation_count == count


def test_setters_reset_the_fit():
    algo = GLMAlgorithm(X3, Y3, MaternModel(scale=[1.0], p=1))
    result = algo.get_result()
    algo.set_noise([0.0, 0.0, 0.0])
    assert algo.get_result() is not result


def test_no_trend_gives_zero_metamodel():
    x = [[0.0], [1.0], [3.0]]
    y = [[-1.0], [0.5], [0.5]]
    algo = GLMAlgorithm(x, y, MaternModel(scale=[1.0], p=1))
    result = algo.get_result()
    assert algo.get_objective_function().state.beta.shape == (0,)
    assert result.trend_coefficients == []
    assert gnp.allclose(result.metamodel([[0.5], [7.0]]), 0.0)
    assert gnp.allclose(result.residuals, np.sqrt(np.mean(np.asarray(y) ** 2)))


def test_uncentered_output_without_trend_warns(caplog):
    with caplog.at_level(logging.WARNING, logger="gpglm"):
        GLMAlgorithm(X3, Y3, MaternModel(scale=[1.0], p=1))
    assert "not centered" in caplog.text


def test_linear_trend():
    x = np.linspace(0.0, 1.0, 10).reshape(-1, 1)
    y = 2.0 + 3.0 * x + 0.05 * np.sin(20.0 * x)
    algo = GLMAlgorithm(x, y, MaternModel(scale=[0.5], p=1), basis=linear_basis(1))
    result = algo.get_result()
    assert len(result.trend_coefficients) == 1
    assert gnp.allclose(result.trend_coefficients[0], [2.0, 3.0], atol=0.2)
    assert result.residuals.shape == (1,)
    assert result.relative_errors[0] < 0.1
    assert gnp.allclose(result.predict(x), y, atol=1e-4)


def test_analytical_amplitude():
    algo = GLMAlgorithm(X3, Y3, MaternModel(scale=[1.0], amplitude=[5.0], p=1))
    assert algo.analytical_amplitude
    assert algo.get_reduced_covariance_model().get_parameter_description() == ["scale_0"]
    result = algo.get_result()
    amplitude = result.covariance_model.get_amplitude()
    assert amplitude[0] > 0.0
    assert gnp.allclose(algo.get_covariance_model().get_amplitude(), amplitude)


def test_fixed_parameters():
    config = GLMConfig(optimize_parameters=False)
    model = MaternModel(scale=[0.7], amplitude=[2.0], p=1)
    algo = GLMAlgorithm(X3, Y3, model, basis=constant_basis(1), config=config)
    assert not algo.analytical_amplitude
    assert algo.get_optimization_bounds().shape == (0, 2)
    result = algo.get_result()
    assert algo.get_objective_function().evaluation_count == 1
    assert gnp.allclose(result.covariance_model.get_full_parameter(), [0.7, 2.0])
    assert result.optimal_log_likelihood == pytest.approx(
        algo.get_objective_function().last_log_likelihood
    )

    algo.set_optimize_parameters(True)
    assert algo.get_optimize_parameters()
    assert algo.analytical_amplitude


def test_keep_cholesky_factor():
    x = np.linspace(0.0, 1.0, 6).reshape(-1, 1)
    y = np.cos(4.0 * x)
    algo = GLMAlgorithm(
        x, y, MaternModel(scale=[0.3], p=1), basis=constant_basis(1), keep_cholesky_factor=True
    )
    result = algo.get_result()
    L = result.cholesky_factor
    assert L.shape == (6, 6)
    if result.regularization == 0.0:
        C = result.covariance_model.discretize(x)
        assert gnp.allclose(L @ L.T, C, rtol=1e-8, atol=1e-10)
    assert GLMAlgorithm(x, y, MaternModel(scale=[0.3], p=1)).get_result().cholesky_factor is None


def test_multioutput_model_is_tensorized():
    x = np.linspace(0.0, 1.0, 10).reshape(-1, 1)
    y = np.hstack((np.sin(3.0 * x), np.cos(2.0 * x)))
    algo = GLMAlgorithm(x, y, MaternModel(scale=[1.0], p=1), basis=constant_basis(1))
    assert isinstance(algo.get_covariance_model(), TensorizedCovarianceModel)
    assert not algo.analytical_amplitude
    assert algo.get_optimization_bounds().shape == (4, 2)
    result = algo.get_result()
    assert len(result.trend_coefficients) == 2
    assert result.residuals.shape == (2,)
    xt = np.array([[0.25], [0.75]])
    assert result.predict(xt).shape == (2, 2)
    assert gnp.allclose(result.predict(x), y, atol=1e-2)


def test_normalization():
    x = np.linspace(0.0, 100.0, 7).reshape(-1, 1)
    y = np.sin(x / 20.0)
    algo = GLMAlgorithm(x, y, MaternModel(scale=[1.0], p=1), basis=linear_basis(1), normalize=True)
    transformation = algo.get_input_transformation()
    assert isinstance(transformation, AffineTransformation)
    assert gnp.allclose(transformation.center, [50.0])
    result = algo.get_result()
    assert result.transformation is transformation
    assert gnp.allclose(result.predict(x), y, atol=1e-3)


def test_user_input_transformation():
    x = np.linspace(0.0, 1.0, 5).reshape(-1, 1)
    y = np.sin(3.0 * x)

    def transformation(z):
        return 2.0 * z

    algo = GLMAlgorithm(x, y, MaternModel(scale=[1.0]), input_transformation=transformation)
    assert algo.get_input_transformation() is transformation
    identity = GLMAlgorithm(x, y, MaternModel(scale=[1.0])).get_input_transformation()
    assert gnp.allclose(identity(x), x)

    with pytest.raises(DimensionMismatchError):
        GLMAlgorithm(
            np.hstack((x, x)), y, MaternModel(scale=[1.0]), input_transformation=lambda z: z[:, :1]
        )


def test_optimization_bounds():
    algo = GLMAlgorithm(X3, Y3, MaternModel(scale=[1.0], p=1))
    algo.set_optimization_bounds([[0.5, 2.0]])
    assert gnp.allclose(algo.get_optimization_bounds(), [[0.5, 2.0]])
    scale = algo.get_result().covariance_model.scale[0]
    assert 0.5 <= scale <= 2.0
    with pytest.raises(DimensionMismatchError):
        algo.set_optimization_bounds([[0.5, 2.0], [0.5, 2.0]])
    with pytest.raises(ValueError):
        algo.set_optimization_bounds([[2.0, 0.5]])


def test_fitted_scale_respects_upper_bound():
    x = np.linspace(0.0, 1.0, 10).reshape(-1, 1)
    y = x - 0.5
    algo = GLMAlgorithm(x, y, MaternModel(scale=[0.05], p=2))
    algo.set_optimization_bounds([[0.01, 0.2]])
    result = algo.get_result()
    scale = result.covariance_model.scale[0]
    assert 0.01 <= scale <= 0.2
    assert result.optimal_log_likelihood == pytest.approx(
        algo.get_objective_function().last_log_likelihood
    )


def test_gradient_step_follows_backend():
    dense = GLMAlgorithm(X3, Y3, MaternModel(scale=[1.0]))
    assert dense.get_optimizer().gradient_epsilon == 1e-7
    config = GLMConfig(linear_algebra="hmat", hmatrix_assembly_epsilon=1e-4)
    hmat = GLMAlgorithm(X3, Y3, MaternModel(scale=[1.0]), config=config)
    assert hmat.get_optimizer().gradient_epsilon == pytest.approx(1e-2)
    assert gradient_step(GLMConfig(linear_algebra="hmat", gradient_epsilon=0.1)) == 0.1


def test_user_optimizer():
    optimizer = Optimizer(method="Nelder-Mead")
    algo = GLMAlgorithm(X3, Y3, MaternModel(scale=[1.0], p=1), optimizer=optimizer)
    assert algo.get_optimizer() is optimizer
    algo.set_optimizer(Optimizer(method="L-BFGS-B"))
    assert algo.get_optimizer().method == "L-BFGS-B"
    assert np.isfinite(algo.get_result().optimal_log_likelihood)


def test_config_is_copied():
    config = GLMConfig()
    algo = GLMAlgorithm(X3, Y3, MaternModel(scale=[1.0]), config=config)
    config.update(optimization_method="SLSQP")
    assert algo.config.optimization_method == "TNC"
    assert algo.get_optimizer().method == "TNC"


@pytest.mark.parametrize(
    "x, y, model",
    [
        ([[0.0], [1.0], [2.0]], [[0.0], [1.0]], MaternModel(scale=[1.0])),
        ([[0.0, 0.0, 0.0]], [[1.0]], MaternModel(scale=[1.0, 1.0])),
        ([[0.0]], [[1.0, 2.0, 3.0]], MaternModel(scale=[1.0], amplitude=[1.0, 1.0])),
    ],
)
def test_dimension_mismatch(x, y, model):
    with pytest.raises(DimensionMismatchError):
        GLMAlgorithm(x, y, model)


def test_invalid_noise():
    algo = GLMAlgorithm(X3, Y3, MaternModel(scale=[1.0]))
    with pytest.raises(DimensionMismatchError):
        algo.set_noise([1e-3, 1e-3])
    with pytest.raises(ValueError):
        algo.set_noise([1e-3, -1e-3, 1e-3])


def test_hierarchical_backend_matches_dense():
    rng = np.random.default_rng(0)
    x = rng.uniform(size=(40, 2))
    y = np.sin(3.0 * x[:, :1]) + x[:, 1:] ** 2
    model = ExponentialModel(scale=[0.5, 0.5], amplitude=[1.2])
    common = dict(optimize_parameters=False)
    dense = GLMAlgorithm(
        x, y, model, basis=constant_basis(2), config=GLMConfig(**common)
    ).get_result()
    algo = GLMAlgorithm(
        x,
        y,
        model,
        basis=constant_basis(2),
        keep_cholesky_factor=True,
        config=GLMConfig(
            linear_algebra="hmat",
            hmatrix_max_leaf_size=8,
            hmatrix_compression_method="svd",
            hmatrix_assembly_epsilon=1e-12,
            hmatrix_recompression_epsilon=1e-12,
            **common,
        ),
    )
    hmat = algo.get_result()
    assert isinstance(hmat.cholesky_factor, HMatrix)
    assert hmat.optimal_log_likelihood == pytest.approx(
        dense.optimal_log_likelihood, rel=1e-6, abs=1e-6
    )
    assert gnp.allclose(hmat.trend_coefficients[0], dense.trend_coefficients[0], atol=1e-6)
    xt = rng.uniform(size=(5, 2))
    assert gnp.allclose(hmat.predict(xt), dense.predict(xt), atol=1e-6)


def test_residual_statistics():
    y = gnp.asarray([[1.0, 2.0], [3.0, 2.0]])
    residuals, relative_errors = residual_statistics(y, gnp.asarray([[1.0, 2.0], [1.0, 2.0]]))
    assert gnp.allclose(residuals, [np.sqrt(2.0), 0.0])
    assert relative_errors[0] == pytest.approx(1.0)
    assert relative_errors[1] == 0.0
    _, relative_errors = residual_statistics(y[:, 1:], gnp.zeros((2, 1)))
    assert relative_errors[0] == np.inf
