import warnings

import numpy as np
import pytest

import gpglm.num as gnp
from gpglm.errors import MAX_SCALAR, NumericalInstabilityError, RegularizationWarning
from gpglm.kernel import ExponentialModel, MaternModel
from gpglm.core import DenseCholeskyBackend, assemble_design_matrix, linear_basis
from gpglm.core.linalg import log_determinant_from_diagonal, noise_diagonal


def _sample(n=20, d=2, seed=0):
    rng = np.random.default_rng(seed)
    x = rng.uniform(size=(n, d))
    y = np.sin(3.0 * x[:, 0]) + x[:, 1] ** 2
    return x, y


def test_dense_factor():
    x, _ = _sample()
    model = MaternModel(scale=[0.3, 0.5], amplitude=[1.5], p=1)
    backend = DenseCholeskyBackend()
    C = backend.discretize(model, x)
    L, shift = backend.factor(C)
    assert shift == 0.0
    assert gnp.allclose(L, np.tril(L))
    assert gnp.allclose(gnp.matmul(L, L.T), C, atol=1e-10)


def test_generalized_least_squares():
    x, y = _sample()
    model = ExponentialModel(scale=[0.4, 0.4], amplitude=[2.0])
    F = assemble_design_matrix(x, [linear_basis(2)], 1)
    backend = DenseCholeskyBackend()
    factorization = backend.discretize_and_factor(model, x, y, F)

    C = model.discretize(x)
    Ci = np.linalg.inv(C)
    beta = np.linalg.solve(F.T @ Ci @ F, F.T @ Ci @ y)
    residual = y - F @ beta
    assert gnp.allclose(factorization.beta, beta, rtol=1e-6)
    assert np.sum(factorization.rho**2) == pytest.approx(residual @ Ci @ residual, rel=1e-8)
    assert factorization.log_determinant == pytest.approx(np.linalg.slogdet(C)[1], rel=1e-8)
    assert factorization.regularization == 0.0


def test_no_trend_keeps_whitened_observations():
    x, y = _sample(n=10)
    model = ExponentialModel(scale=[0.4, 0.4])
    factorization = DenseCholeskyBackend().discretize_and_factor(
        model, x, y, gnp.zeros((10, 0))
    )
    assert factorization.beta.shape == (0,)
    L = factorization.factor
    assert gnp.allclose(gnp.matmul(L, factorization.rho), y)


def test_noise_is_added_per_point():
    x, _ = _sample(n=4)
    model = ExponentialModel(scale=[1.0, 1.0], amplitude=[1.0, 1.0], nugget_factor=0.0)
    noise = gnp.asarray([0.1, 0.2, 0.3, 0.4])
    assert gnp.allclose(noise_diagonal(noise, 2), [0.1, 0.1, 0.2, 0.2, 0.3, 0.3, 0.4, 0.4])
    C = DenseCholeskyBackend().discretize(model, x, noise)
    assert gnp.allclose(gnp.diag(C), 1.0 + noise_diagonal(noise, 2))


def test_regularization_of_an_indefinite_matrix():
    C = gnp.asarray([[1.0, 2.0], [2.0, 1.0]])
    backend = DenseCholeskyBackend()
    with pytest.warns(RegularizationWarning):
        L, shift = backend.factor(C)
    assert 1.0 < shift <= 1e5
    assert gnp.allclose(gnp.matmul(L, L.T), C + shift * gnp.eye(2))


def test_regularization_ladder_is_bounded():
    C = gnp.asarray([[1.0, 2.0], [2.0, 1.0]])
    backend = DenseCholeskyBackend(starting_scaling=1e-13, maximal_scaling=1e-3)
    with pytest.raises(NumericalInstabilityError) as excinfo:
        backend.factor(C)
    assert 0.0 < excinfo.value.cumulated_scaling <= 1e-3


def test_duplicated_points_terminate():
    x = gnp.asarray([[0.0], [0.0], [1.0]])
    y = gnp.asarray([1.0, 1.0, 0.0])
    model = MaternModel(scale=[1.0], p=2, nugget_factor=0.0)
    backend = DenseCholeskyBackend()
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", RegularizationWarning)
        try:
            factorization = backend.discretize_and_factor(model, x, y, gnp.zeros((3, 0)))
        except NumericalInstabilityError as e:
            assert e.cumulated_scaling <= backend.maximal_scaling
        else:
            assert gnp.all(gnp.diag(factorization.factor) > 0.0)
            assert factorization.log_determinant < MAX_SCALAR


def test_log_determinant_sentinel():
    assert log_determinant_from_diagonal(gnp.asarray([1.0, 0.0])) == MAX_SCALAR
    assert log_determinant_from_diagonal(gnp.asarray([2.0, 3.0])) == pytest.approx(
        2.0 * np.log(6.0)
    )


def test_triangular_solves():
    x, y = _sample(n=12)
    model = MaternModel(scale=[0.3, 0.3], p=1)
    backend = DenseCholeskyBackend()
    C = backend.discretize(model, x)
    L, _ = backend.factor(C)
    z = backend.solve_upper(L, backend.solve_lower(L, y))
    assert gnp.allclose(gnp.matmul(C, z), y, atol=1e-8)
    assert gnp.allclose(backend.scale_factor(L, 2.0), 2.0 * L)
