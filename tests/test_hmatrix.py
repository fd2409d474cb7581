import numpy as np
import pytest

import gpglm.num as gnp
from gpglm.kernel import ExponentialModel, MaternModel, SquaredExponentialModel
from gpglm.core import (
    DenseCholeskyBackend,
    HMatrix,
    HMatrixCholeskyBackend,
    HMatrixParameters,
    assemble_design_matrix,
    linear_basis,
)
from gpglm.core import hmatrix
from gpglm.core.hmatrix import aca, cluster_tree, truncated_svd
from gpglm.errors import NumericalInstabilityError, RegularizationWarning

TIGHT = HMatrixParameters(
    assembly_epsilon=1e-12,
    recompression_epsilon=1e-12,
    max_leaf_size=16,
    compression_method="svd",
)


def _sample(n=120, d=2, seed=0):
    rng = np.random.default_rng(seed)
    x = rng.uniform(size=(n, d))
    y = np.sin(4.0 * x[:, 0]) * np.cos(3.0 * x[:, 1])
    return x, y


def _leaf_sizes(r):
    start, stop, children = r
    if children is None:
        return [stop - start]
    return _leaf_sizes(children[0]) + _leaf_sizes(children[1])


def test_cluster_tree():
    x, _ = _sample(n=100)
    permutation, root = cluster_tree(x, 10)
    assert gnp.array_equal(np.sort(permutation), np.arange(100))
    sizes = _leaf_sizes(root)
    assert sum(sizes) == 100
    assert max(sizes) <= 10


def test_parameters():
    tightened = HMatrixParameters().tightened()
    assert tightened.assembly_epsilon == pytest.approx(1e-6)
    assert tightened.recompression_epsilon == pytest.approx(1e-6)
    with pytest.raises(ValueError):
        HMatrixParameters(compression_method="lu")


def test_low_rank_approximations():
    rng = np.random.default_rng(3)
    A = rng.normal(size=(30, 4)) @ rng.normal(size=(4, 25))
    U, V = truncated_svd(A, 1e-12)
    assert U.shape[1] == 4
    assert gnp.allclose(U @ V.T, A, atol=1e-10)
    U, V = aca(lambda i: A[i], lambda j: A[:, j], A.shape, 1e-12)
    assert gnp.allclose(U @ V.T, A, atol=1e-8)


def test_assembly_matches_dense():
    x, _ = _sample()
    model = ExponentialModel(scale=[0.3, 0.3])
    H = HMatrix(TIGHT).assemble(model, x)
    P = H.permutation
    C = model.discretize(x)
    assert gnp.allclose(H.to_dense(), C[P][:, P], atol=1e-8)
    assert gnp.allclose(H.get_diagonal(), gnp.diag(C)[P])


def test_factorization_and_solves():
    x, y = _sample()
    model = ExponentialModel(scale=[0.3, 0.3])
    H = HMatrix(TIGHT).assemble(model, x).factorize()
    P = H.permutation
    C = model.discretize(x)
    L = H.to_dense()
    assert gnp.allclose(L, np.tril(L))
    assert gnp.allclose(L @ L.T, C[P][:, P], atol=1e-8)
    z = H.solve_upper(H.solve_lower(y))
    assert gnp.allclose(z, np.linalg.solve(C, y), rtol=1e-6, atol=1e-8)


def test_vector_model_permutation():
    x, _ = _sample(n=40)
    model = MaternModel(
        scale=[0.4, 0.4],
        amplitude=[1.0, 2.0],
        spatial_correlation=[[1.0, 0.3], [0.3, 1.0]],
        p=1,
    )
    H = HMatrix(HMatrixParameters(1e-12, 1e-12, 8, "svd")).assemble(model, x)
    P = H.permutation
    C = model.discretize(x)
    assert H.size == 80
    assert gnp.allclose(H.to_dense(), C[P][:, P], atol=1e-8)


def test_scale():
    x, _ = _sample(n=50)
    model = ExponentialModel(scale=[0.3, 0.3])
    H = HMatrix(TIGHT).assemble(model, x).factorize()
    L = H.to_dense()
    H.scale(2.0)
    assert gnp.allclose(H.to_dense(), 2.0 * L)


def test_compression():
    x, _ = _sample(n=400)
    model = SquaredExponentialModel(scale=[0.3, 0.3])
    H = HMatrix(HMatrixParameters(max_leaf_size=25)).assemble(model, x)
    assert H.compression_ratio < 1.0
    assert "assembled" in repr(H)


@pytest.mark.parametrize(
    "parameters, rtol",
    [
        (TIGHT, 1e-6),
        (HMatrixParameters(1e-10, 1e-10, 20, "aca"), 1e-4),
    ],
)
def test_backend_matches_dense(parameters, rtol):
    x, y = _sample()
    model = ExponentialModel(scale=[0.3, 0.3], amplitude=[1.5])
    F = assemble_design_matrix(x, [linear_basis(2)], 1)
    dense = DenseCholeskyBackend().discretize_and_factor(model, x, y, F)
    hmat = HMatrixCholeskyBackend(parameters).discretize_and_factor(model, x, y, F)
    assert hmat.log_determinant == pytest.approx(dense.log_determinant, rel=rtol)
    assert np.sum(hmat.rho**2) == pytest.approx(np.sum(dense.rho**2), rel=rtol)
    assert gnp.allclose(hmat.beta, dense.beta, rtol=max(rtol, 1e-6), atol=1e-6)


def test_backend_with_noise():
    x, y = _sample(n=60)
    model = ExponentialModel(scale=[0.3, 0.3])
    noise = np.linspace(0.01, 0.1, 60)
    F = gnp.zeros((60, 0))
    dense = DenseCholeskyBackend().discretize_and_factor(model, x, y, F, noise)
    hmat = HMatrixCholeskyBackend(TIGHT).discretize_and_factor(model, x, y, F, noise)
    assert hmat.log_determinant == pytest.approx(dense.log_determinant, rel=1e-6)
    assert np.sum(hmat.rho**2) == pytest.approx(np.sum(dense.rho**2), rel=1e-6)


def _recording_hmatrix(monkeypatch, fail=False):
    attempts = []

    class RecordingHMatrix(HMatrix):
        def factorize(self):
            attempts.append(self.parameters)
            if fail:
                raise np.linalg.LinAlgError("Matrix is not positive definite")
            return super().factorize()

    monkeypatch.setattr(hmatrix, "HMatrix", RecordingHMatrix)
    return attempts


def test_backend_regularizes_duplicated_points(monkeypatch):
    attempts = _recording_hmatrix(monkeypatch)
    # identical points give an exactly singular matrix of ones
    x = gnp.zeros((6, 1))
    model = ExponentialModel(scale=[1.0], nugget_factor=0.0)
    parameters = HMatrixParameters(1e-8, 1e-8, max_leaf_size=2, compression_method="svd")
    backend = HMatrixCholeskyBackend(parameters)
    with pytest.warns(RegularizationWarning) as record:
        H, shift = backend.factor(model, x)
    assert 0.0 < shift <= backend.maximal_scaling
    warned = [w.message for w in record if isinstance(w.message, RegularizationWarning)]
    assert warned[-1].cumulated_scaling == shift
    assert gnp.all(H.get_diagonal() > 0.0)
    assert len(attempts) >= 2
    for k, used in enumerate(attempts):
        assert used.assembly_epsilon == pytest.approx(1e-8 / 10**k)
        assert used.recompression_epsilon == pytest.approx(1e-8 / 10**k)
        assert used.max_leaf_size == 2


def test_backend_ladder_is_bounded(monkeypatch):
    attempts = _recording_hmatrix(monkeypatch, fail=True)
    x, _ = _sample(n=20)
    model = MaternModel(scale=[0.5, 0.5], p=1)
    backend = HMatrixCholeskyBackend(
        HMatrixParameters(max_leaf_size=8), starting_scaling=1e-13, maximal_scaling=1e-10
    )
    with pytest.raises(NumericalInstabilityError) as excinfo:
        backend.factor(model, x)
    assert 0.0 < excinfo.value.cumulated_scaling <= 1e-10
    assert len(attempts) > 2
    assert attempts[-1].assembly_epsilon == pytest.approx(1e-5 / 10 ** (len(attempts) - 1))
