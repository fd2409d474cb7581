import numpy as np
import pytest

import gpglm.num as gnp
from gpglm.errors import DimensionMismatchError, NumericalInstabilityError
from gpglm.core import OptimizationProblem, Optimizer


def concave(p):
    p = np.asarray(p)
    return np.array([-((p[0] - 1.0) ** 2) - (p[1] + 0.5) ** 2])


@pytest.mark.parametrize("method", ["TNC", "L-BFGS-B", "SLSQP", "Nelder-Mead"])
def test_maximization(method):
    optimizer = Optimizer(method=method)
    optimizer.starting_point = [0.0, 0.0]
    problem = OptimizationProblem(concave, [[-2.0, 2.0], [-2.0, 2.0]])
    result = optimizer.run(problem)
    assert gnp.allclose(result.optimal_point, [1.0, -0.5], atol=1e-3)
    assert result.optimal_value == pytest.approx(0.0, abs=1e-5)
    assert result.nfev == len(result.history_values)
    assert result.optimal_value >= max(result.history_values) - 1e-12


def test_minimization():
    optimizer = Optimizer()
    optimizer.starting_point = [0.0, 0.0]
    problem = OptimizationProblem(lambda p: -concave(p), [[-2.0, 2.0], [-2.0, 2.0]], minimization=True)
    result = optimizer.run(problem)
    assert gnp.allclose(result.optimal_point, [1.0, -0.5], atol=1e-3)
    assert result.optimal_value == pytest.approx(0.0, abs=1e-5)


def test_starting_point_outside_bounds_is_clipped():
    optimizer = Optimizer(method="L-BFGS-B")
    optimizer.starting_point = [10.0, -10.0]
    problem = OptimizationProblem(concave, [[-2.0, 2.0], [-2.0, 2.0]])
    assert np.allclose(optimizer.run(problem).history_params[0], [2.0, -2.0])


@pytest.mark.parametrize("method", ["TNC", "L-BFGS-B", "SLSQP"])
def test_active_bound(method):
    optimizer = Optimizer(method=method)
    optimizer.starting_point = [0.0, 0.0]
    problem = OptimizationProblem(concave, [[-2.0, 0.5], [-2.0, 2.0]])
    result = optimizer.run(problem)
    assert result.optimal_point[0] <= 0.5
    assert result.optimal_point[0] == pytest.approx(0.5, abs=1e-5)


@pytest.mark.parametrize("method", ["TNC", "L-BFGS-B", "SLSQP"])
def test_optimum_beyond_upper_bound_stays_feasible(method):
    def increasing(p):
        return np.array([float(np.sum(p))])

    optimizer = Optimizer(method=method, gradient_epsilon=1e-3)
    optimizer.starting_point = [0.1, 0.1]
    result = optimizer.run(OptimizationProblem(increasing, [[0.0, 0.2], [0.0, 1.0]]))
    assert np.all(result.optimal_point <= [0.2, 1.0])
    assert np.all(result.optimal_point >= 0.0)
    assert result.optimal_value == pytest.approx(1.2)


def test_linalg_failures_are_infeasible_points():
    def objective(p):
        if p[0] > 1.9:
            raise np.linalg.LinAlgError("Matrix is not positive definite")
        return np.array([-((p[0] - 1.0) ** 2)])

    optimizer = Optimizer(method="Nelder-Mead")
    optimizer.starting_point = [0.0]
    result = optimizer.run(OptimizationProblem(objective, [[-2.0, 3.0]]))
    assert result.optimal_point[0] == pytest.approx(1.0, abs=1e-3)


def test_numerical_instability_propagates():
    def objective(p):
        raise NumericalInstabilityError("ladder exhausted", 1.0)

    optimizer = Optimizer()
    optimizer.starting_point = [0.0]
    with pytest.raises(NumericalInstabilityError):
        optimizer.run(OptimizationProblem(objective, [[-1.0, 1.0]]))


def test_other_errors_propagate():
    def objective(p):
        raise KeyError("boom")

    optimizer = Optimizer()
    optimizer.starting_point = [0.0]
    with pytest.raises(KeyError):
        optimizer.run(OptimizationProblem(objective, [[-1.0, 1.0]]))


def test_invalid_settings():
    with pytest.raises(ValueError):
        Optimizer(method="BFGS")
    optimizer = Optimizer()
    with pytest.raises(ValueError):
        optimizer.run(OptimizationProblem(concave, [[-2.0, 2.0], [-2.0, 2.0]]))
    optimizer.starting_point = [0.0]
    with pytest.raises(DimensionMismatchError):
        optimizer.run(OptimizationProblem(concave, [[-2.0, 2.0], [-2.0, 2.0]]))
