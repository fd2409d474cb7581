# gpglm/core/hmatrix.py
# --------------------------------------------------------------
# Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
# Copyright (c) 2022-2026, CentraleSupelec
# License: GPLv3 (see LICENSE)
# --------------------------------------------------------------
"""
Hierarchical factorization backend of the reduced log-likelihood.

The covariance matrix is stored as a hierarchical off-diagonal
low-rank (HODLR) matrix:

- the points are ordered along a binary cluster tree obtained by
  recursive bisection of their bounding box along its widest axis;
- a leaf of the tree holds its diagonal block densely;
- a split node holds the lower off-diagonal block A21 = U V^T between
  its right and left children, compressed by adaptive cross
  approximation or truncated SVD.

The Cholesky factorization keeps the same structure. With

    A = [[A11, A21^T], [A21, A22]],   L11 L11^T = A11,

the lower off-diagonal factor is L21 = A21 L11^{-T} = U W^T with
W = L11^{-1} V, and the Schur complement A22 - U (W^T W) U^T is a
low-rank update X X^T of A22, with X = U R^T and W = Q R.

All the block operations work in the ordering of the cluster tree
("cluster coordinates"). `HMatrix.solve_lower` takes a right-hand side
in the original ordering and returns its solution in cluster
coordinates, `HMatrix.solve_upper` goes back to the original ordering,
so that ``solve_upper(solve_lower(b))`` solves A z = b.
"""
from dataclasses import dataclass, replace

import gpglm.num as gnp
from gpglm.config import get_logger
from .linalg import (
    Factorization,
    generalized_least_squares,
    log_determinant_from_diagonal,
    regularized_factor,
)

logger = get_logger()


@dataclass
class HMatrixParameters:
    """Compression settings of a hierarchical matrix."""

    assembly_epsilon: float = 1e-5
    recompression_epsilon: float = 1e-5
    max_leaf_size: int = 100
    compression_method: str = "aca"

    def __post_init__(self):
        if self.compression_method not in ("aca", "svd"):
            raise ValueError(
                f"compression_method must be 'aca' or 'svd', got {self.compression_method!r}"
            )
        if int(self.max_leaf_size) < 1:
            raise ValueError("max_leaf_size must be at least 1")

    def tightened(self, factor=10.0):
        """Same parameters with both tolerances divided by `factor`."""
        return replace(
            self,
            assembly_epsilon=self.assembly_epsilon / factor,
            recompression_epsilon=self.recompression_epsilon / factor,
        )


# ----------------------------------------------------------------------
#                          Low-rank helpers
# ----------------------------------------------------------------------
def truncated_svd(A, epsilon):
    """Low-rank factors (U, V) with A ~ U V^T, relative accuracy epsilon."""
    if A.size == 0:
        return gnp.zeros((A.shape[0], 0)), gnp.zeros((A.shape[1], 0))
    W, s, Zt = gnp.svd(A, full_matrices=False)
    if s[0] <= 0.0:
        return gnp.zeros((A.shape[0], 0)), gnp.zeros((A.shape[1], 0))
    r = int(gnp.sum(s > epsilon * s[0]))
    return W[:, :r] * s[:r], Zt[:r].T


def recompress(U, V, epsilon):
    """Reduce the rank of U V^T with QR factorizations and a small SVD."""
    if U.shape[1] == 0:
        return U, V
    Qu, Ru = gnp.qr(U, mode="economic")
    Qv, Rv = gnp.qr(V, mode="economic")
    Us, Vs = truncated_svd(gnp.matmul(Ru, Rv.T), epsilon)
    return gnp.matmul(Qu, Us), gnp.matmul(Qv, Vs)


def aca(get_row, get_column, shape, epsilon):
    """Adaptive cross approximation with partial pivoting.

    Parameters
    ----------
    get_row, get_column : callable
        ``get_row(i)`` and ``get_column(j)`` return row i and column j
        of the block to approximate.
    shape : tuple of int
    epsilon : float
        Stop when the last cross is below epsilon times the Frobenius
        norm estimate of the approximation.

    Returns
    -------
    U, V : gnp.array
        A ~ U V^T.
    """
    m, n = shape
    us, vs = [], []
    norm2 = 0.0
    unused_rows = set(range(m))
    i = 0
    while unused_rows and len(us) < min(m, n):
        unused_rows.discard(i)
        r = get_row(i)
        for u, v in zip(us, vs):
            r = r - u[i] * v
        j = int(gnp.argmax(gnp.abs(r)))
        if abs(r[j]) <= gnp.tiny:
            # zero residual row, try another pivot row
            if not unused_rows:
                break
            i = min(unused_rows)
            continue
        v = r / r[j]
        u = get_column(j)
        for uk, vk in zip(us, vs):
            u = u - vk[j] * uk
        for uk, vk in zip(us, vs):
            norm2 += 2.0 * float(gnp.matmul(uk, u) * gnp.matmul(vk, v))
        cross2 = float(gnp.matmul(u, u) * gnp.matmul(v, v))
        norm2 += cross2
        us.append(u)
        vs.append(v)
        if cross2 <= (epsilon**2) * abs(norm2):
            break
        if not unused_rows:
            break
        candidates = sorted(unused_rows)
        i = candidates[int(gnp.argmax(gnp.abs(u[candidates])))]
    if not us:
        return gnp.zeros((m, 0)), gnp.zeros((n, 0))
    return gnp.stack(us, axis=1), gnp.stack(vs, axis=1)


# ----------------------------------------------------------------------
#                            Cluster tree
# ----------------------------------------------------------------------
class _Node:
    """Node of a HODLR matrix, over the scalar range [start, stop)."""

    def __init__(self, start, stop):
        self.start = start
        self.stop = stop
        self.left = None
        self.right = None
        self.D = None
        self.U = None
        self.V = None

    @property
    def is_leaf(self):
        return self.left is None

    @property
    def size(self):
        return self.stop - self.start


def cluster_tree(x, max_leaf_size):
    """Recursive bisection of a set of points.

    Parameters
    ----------
    x : gnp.array, shape (n, d)
    max_leaf_size : int

    Returns
    -------
    permutation : gnp.array of int, shape (n,)
        Points in cluster order.
    ranges : list
        Nested tuples ``(start, stop, children)`` over the permuted
        points, children being None for a leaf or a pair of ranges.
    """
    order = []

    def split(indices):
        start = len(order)
        if indices.shape[0] <= max_leaf_size:
            order.extend(indices.tolist())
            return (start, len(order), None)
        points = x[indices]
        axis = int(gnp.argmax(gnp.ptp(points, axis=0)))
        sorted_indices = indices[gnp.argsort(points[:, axis], kind="stable")]
        half = indices.shape[0] // 2
        left = split(sorted_indices[:half])
        right = split(sorted_indices[half:])
        return (start, len(order), (left, right))

    root = split(gnp.arange(x.shape[0]))
    return gnp.asint(gnp.array(order)), root


# ----------------------------------------------------------------------
#                          Hierarchical matrix
# ----------------------------------------------------------------------
class HMatrix:
    """Symmetric positive definite HODLR matrix and its Cholesky factor.

    Parameters
    ----------
    parameters : HMatrixParameters, optional

    Examples
    --------
    >>> H = HMatrix(HMatrixParameters(max_leaf_size=50))
    >>> H.assemble(model, x)
    >>> H.factorize()
    >>> rho = H.solve_lower(y)
    """

    def __init__(self, parameters=None):
        self.parameters = HMatrixParameters() if parameters is None else parameters
        self.root = None
        self.permutation = None
        self.factorized = False

    # ------------------------------------------------------------------
    # Assembly
    # ------------------------------------------------------------------
    def assemble(self, model, x, diagonal_shift=0.0, noise=None):
        """Compressed representation of model.discretize(x) + shift I + noise.

        Parameters
        ----------
        model : CovarianceModel
        x : gnp.array, shape (n, d)
        diagonal_shift : float
        noise : gnp.array, shape (n,), optional
            Variance added to the p diagonal entries of each point.
        """
        p = model.dimension
        point_permutation, ranges = cluster_tree(x, int(self.parameters.max_leaf_size))
        xp = x[point_permutation]
        noise_p = None if noise is None else noise[point_permutation]
        self.permutation = (point_permutation[:, None] * p + gnp.arange(p)).reshape(-1)

        def build(r):
            start, stop, children = r
            node = _Node(start * p, stop * p)
            if children is None:
                D = model.discretize(xp[start:stop])
                extra = gnp.full(node.size, float(diagonal_shift))
                if noise_p is not None:
                    extra = extra + gnp.repeat(noise_p[start:stop], p)
                node.D = gnp.add_to_diagonal(D, extra)
                return node
            left, right = children
            node.left = build(left)
            node.right = build(right)
            node.U, node.V = self._compress(
                model, xp[right[0] : right[1]], xp[left[0] : left[1]]
            )
            return node

        self.root = build(ranges)
        self.factorized = False
        return self

    def _compress(self, model, x_rows, x_cols):
        epsilon = self.parameters.assembly_epsilon
        if self.parameters.compression_method == "svd":
            return truncated_svd(model.discretize_cross(x_rows, x_cols), epsilon)
        p = model.dimension

        def get_row(i):
            return model.discretize_cross(x_rows[i // p : i // p + 1], x_cols)[i % p]

        def get_column(j):
            return model.discretize_cross(x_rows, x_cols[j // p : j // p + 1])[:, j % p]

        U, V = aca(get_row, get_column, (x_rows.shape[0] * p, x_cols.shape[0] * p), epsilon)
        return recompress(U, V, self.parameters.recompression_epsilon)

    # ------------------------------------------------------------------
    # Factorization
    # ------------------------------------------------------------------
    def factorize(self):
        """In-place Cholesky factorization.

        Raises
        ------
        LinAlgError
            If a diagonal block is not positive definite.
        """
        if self.factorized:
            return self
        self._factorize(self.root)
        self.factorized = True
        return self

    def _factorize(self, node):
        if node.is_leaf:
            node.D = gnp.cholesky(node.D)
            return
        self._factorize(node.left)
        W = self._solve_lower(node.left, node.V)
        if W.shape[1] > 0:
            _, R = gnp.qr(W, mode="economic")
            self._subtract_gram(node.right, gnp.matmul(node.U, R.T))
        self._factorize(node.right)
        node.V = W

    def _subtract_gram(self, node, X):
        # A <- A - X X^T on the block of node
        if node.is_leaf:
            node.D = node.D - gnp.matmul(X, X.T)
            return
        m = node.left.size
        X1, X2 = X[:m], X[m:]
        node.U, node.V = recompress(
            gnp.hstack((node.U, X2)),
            gnp.hstack((node.V, -X1)),
            self.parameters.recompression_epsilon,
        )
        self._subtract_gram(node.left, X1)
        self._subtract_gram(node.right, X2)

    # ------------------------------------------------------------------
    # Triangular solves
    # ------------------------------------------------------------------
    def _solve_lower(self, node, B):
        if node.is_leaf:
            return gnp.solve_triangular(node.D, B, lower=True)
        m = node.left.size
        X1 = self._solve_lower(node.left, B[:m])
        B2 = B[m:] - gnp.matmul(node.U, gnp.matmul(node.V.T, X1))
        X2 = self._solve_lower(node.right, B2)
        return gnp.concatenate((X1, X2), axis=0)

    def _solve_upper(self, node, B):
        if node.is_leaf:
            return gnp.solve_triangular(node.D.T, B, lower=False)
        m = node.left.size
        X2 = self._solve_upper(node.right, B[m:])
        B1 = B[:m] - gnp.matmul(node.V, gnp.matmul(node.U.T, X2))
        X1 = self._solve_upper(node.left, B1)
        return gnp.concatenate((X1, X2), axis=0)

    def _check_factorized(self):
        if not self.factorized:
            raise RuntimeError("the hierarchical matrix must be factorized first")

    def solve_lower(self, b):
        """Solve L z = b[permutation], z in cluster coordinates."""
        self._check_factorized()
        return self._solve_lower(self.root, gnp.asarray(b)[self.permutation])

    def solve_upper(self, b):
        """Solve L^T z = b for b in cluster coordinates, z in the original ordering."""
        self._check_factorized()
        z = self._solve_upper(self.root, gnp.asarray(b))
        out = gnp.empty(z.shape)
        out[self.permutation] = z
        return out

    # ------------------------------------------------------------------
    # Miscellaneous
    # ------------------------------------------------------------------
    def _leaves(self, node=None):
        node = self.root if node is None else node
        if node.is_leaf:
            yield node
        else:
            yield from self._leaves(node.left)
            yield from self._leaves(node.right)

    def _splits(self, node=None):
        node = self.root if node is None else node
        if not node.is_leaf:
            yield node
            yield from self._splits(node.left)
            yield from self._splits(node.right)

    @property
    def size(self):
        return self.root.size

    def get_diagonal(self):
        """Diagonal in cluster coordinates."""
        return gnp.concatenate([gnp.diag(leaf.D) for leaf in self._leaves()])

    def scale(self, s):
        """Multiply the represented matrix (or factor) by s, in place."""
        for leaf in self._leaves():
            leaf.D = s * leaf.D
        for node in self._splits():
            node.U = s * node.U
        return self

    def to_dense(self):
        """Dense matrix in cluster coordinates.

        The factor L (lower triangular) once factorized, the full
        symmetric matrix before.
        """
        A = gnp.zeros((self.size, self.size))
        for leaf in self._leaves():
            A[leaf.start : leaf.stop, leaf.start : leaf.stop] = leaf.D
        for node in self._splits():
            rows = slice(node.right.start, node.right.stop)
            cols = slice(node.left.start, node.left.stop)
            A21 = gnp.matmul(node.U, node.V.T)
            A[rows, cols] = A21
            if not self.factorized:
                A[cols, rows] = A21.T
        return A

    @property
    def compression_ratio(self):
        """Stored entries over the number of entries of the dense matrix."""
        stored = sum(leaf.D.size for leaf in self._leaves())
        stored += sum(node.U.size + node.V.size for node in self._splits())
        return stored / float(self.size**2)

    def __repr__(self):
        state = "factorized" if self.factorized else "assembled"
        return (
            f"HMatrix(size={self.size}, {state}, "
            f"compression_ratio={self.compression_ratio:.3f}, {self.parameters})"
        )


# ----------------------------------------------------------------------
#                               Backend
# ----------------------------------------------------------------------
class HMatrixCholeskyBackend:
    """Hierarchical counterpart of `DenseCholeskyBackend`.

    Each retry of the regularization ladder also divides both
    compression tolerances by 10.
    """

    name = "hmat"

    def __init__(self, parameters=None, starting_scaling=1e-13, maximal_scaling=1e5):
        self.parameters = HMatrixParameters() if parameters is None else parameters
        self.starting_scaling = starting_scaling
        self.maximal_scaling = maximal_scaling

    @classmethod
    def from_config(cls, config):
        parameters = HMatrixParameters(
            assembly_epsilon=config.hmatrix_assembly_epsilon,
            recompression_epsilon=config.hmatrix_recompression_epsilon,
            max_leaf_size=config.hmatrix_max_leaf_size,
            compression_method=config.hmatrix_compression_method,
        )
        return cls(parameters, config.starting_scaling, config.maximal_scaling)

    def factor(self, model, x, noise=None):
        def factorize(shift, attempt):
            parameters = self.parameters
            for _ in range(attempt):
                parameters = parameters.tightened()
            H = HMatrix(parameters)
            H.assemble(model, x, diagonal_shift=shift, noise=noise)
            return H.factorize()

        return regularized_factor(factorize, self.starting_scaling, self.maximal_scaling)

    def discretize_and_factor(self, model, x, y, F, noise=None):
        """Same contract as `DenseCholeskyBackend.discretize_and_factor`.

        rho is returned in the cluster coordinates of the factor.
        """
        H, regularization = self.factor(model, x, noise)
        logger.debug("Hierarchical factor: %s", H)
        rho = H.solve_lower(y)
        Phi = H.solve_lower(F) if F.shape[1] > 0 else F
        rho, beta = generalized_least_squares(rho, Phi)
        log_determinant = log_determinant_from_diagonal(H.get_diagonal())
        return Factorization(H, rho, beta, log_determinant, regularization)

    def solve_lower(self, factor, b):
        return factor.solve_lower(b)

    def solve_upper(self, factor, b):
        return factor.solve_upper(b)

    def scale_factor(self, factor, sigma):
        return factor.scale(sigma)
