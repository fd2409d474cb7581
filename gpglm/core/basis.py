# gpglm/core/basis.py
# --------------------------------------------------------------
# Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
# Copyright (c) 2022-2026, CentraleSupelec
# License: GPLv3 (see LICENSE)
# --------------------------------------------------------------
"""
Trend bases, design matrices and trend metamodels.

A basis is an ordered collection of scalar functions of x in R^d. A
*basis collection* holds one basis per output marginal: the trend of
output k is a linear combination of the functions of basis k.

For a sample of n points and p outputs, the design matrix F has
n * p rows, row ``k + i * p`` referring to point i and output k, and
one column per basis function of the collection (bases stacked in
output order).
"""
import gpglm.num as gnp
from gpglm.config import get_logger
from gpglm.errors import DimensionMismatchError

logger = get_logger()


class Basis:
    """Ordered collection of scalar functions.

    Parameters
    ----------
    functions : sequence of callable
        Each function maps a (n, d) array to a (n,) array (a (n, 1)
        result is accepted, further columns are ignored).
    names : sequence of str, optional
        Names used in reports.
    """

    def __init__(self, functions=(), names=None):
        self._functions = list(functions)
        for f in self._functions:
            if not callable(f):
                raise TypeError(f"basis elements must be callable, got {f!r}")
        if names is None:
            names = [f"f_{j}" for j in range(len(self._functions))]
        if len(names) != len(self._functions):
            raise DimensionMismatchError("basis names and functions differ in number")
        self.names = list(names)

    @property
    def size(self):
        return len(self._functions)

    def __len__(self):
        return self.size

    def __getitem__(self, j):
        return self._functions[j]

    def __call__(self, x):
        """Evaluate all the functions, returns an array of shape (n, size)."""
        x = gnp.asarray(x, dtype=gnp.float64)
        n = x.shape[0]
        columns = []
        for f in self._functions:
            v = gnp.asarray(f(x), dtype=gnp.float64)
            if v.ndim == 2:
                v = v[:, 0]
            columns.append(v.reshape(n))
        if not columns:
            return gnp.zeros((n, 0))
        return gnp.stack(columns, axis=1)

    def __repr__(self):
        return f"Basis({self.names})"


def constant_basis(d):
    """Basis {1} on R^d."""
    return Basis([lambda x: gnp.ones(x.shape[0])], names=["1"])


def linear_basis(d):
    """Basis {1, x_0, ..., x_{d-1}} on R^d."""
    functions = [lambda x: gnp.ones(x.shape[0])]
    functions += [(lambda x, j=j: x[:, j]) for j in range(d)]
    return Basis(functions, names=["1"] + [f"x_{j}" for j in range(d)])


def quadratic_basis(d):
    """Basis of the polynomials of total degree at most 2 on R^d."""
    basis = linear_basis(d)
    functions = list(basis._functions)
    names = list(basis.names)
    for i in range(d):
        for j in range(i, d):
            functions.append(lambda x, i=i, j=j: x[:, i] * x[:, j])
            names.append(f"x_{i}*x_{j}")
    return Basis(functions, names=names)


def make_basis_collection(basis, output_dimension):
    """Normalize the trend specification given to the fitting engine.

    Parameters
    ----------
    basis : None, Basis or sequence of Basis
        A single basis is used for every output marginal. A sequence
        must have one basis per output marginal.
    output_dimension : int

    Returns
    -------
    list of Basis
        Empty when there is no trend.
    """
    if basis is None:
        return []
    if isinstance(basis, Basis):
        if basis.size == 0:
            return []
        if output_dimension > 1:
            logger.warning("The basis of functions will be applied to all output marginals")
        return [basis] * output_dimension
    collection = list(basis)
    if len(collection) == 0:
        return []
    if len(collection) != output_dimension:
        raise DimensionMismatchError(
            f"output sample dimension={output_dimension} does not match "
            f"basis collection size={len(collection)}"
        )
    for b in collection:
        if not isinstance(b, Basis):
            raise TypeError(f"expected a Basis, got {type(b).__name__}")
    if all(b.size == 0 for b in collection):
        raise DimensionMismatchError("basis collection contains only empty bases")
    return collection


def assemble_design_matrix(x, basis_collection, output_dimension):
    """Design matrix of a basis collection over a sample.

    Parameters
    ----------
    x : gnp.array, shape (n, d)
    basis_collection : list of Basis
    output_dimension : int

    Returns
    -------
    F : gnp.array, shape (n * output_dimension, total basis size)
    """
    n = x.shape[0]
    p = output_dimension
    total_size = sum(b.size for b in basis_collection)
    F = gnp.zeros((n * p, total_size))
    column = 0
    for k, b in enumerate(basis_collection):
        if b.size == 0:
            continue
        F[k::p, column : column + b.size] = b(x)
        column += b.size
    return F


def split_coefficients(beta, basis_collection):
    """Split a flat coefficient vector into one array per marginal."""
    coefficients = []
    offset = 0
    for b in basis_collection:
        coefficients.append(gnp.copy(beta[offset : offset + b.size]))
        offset += b.size
    return coefficients


class TrendFunction:
    """Trend metamodel x -> F(x) beta.

    Parameters
    ----------
    basis_collection : list of Basis
        Possibly empty, in which case the function is zero.
    coefficients : list of gnp.array
        One coefficient array per basis.
    output_dimension : int
    transformation : callable, optional
        Applied to the inputs before evaluating the bases.
    """

    def __init__(self, basis_collection, coefficients, output_dimension, transformation=None):
        self.basis_collection = list(basis_collection)
        self.coefficients = [gnp.copy(c) for c in coefficients]
        self.output_dimension = output_dimension
        self.transformation = transformation

    def __call__(self, x):
        """Evaluate the trend, returns an array of shape (m, output_dimension)."""
        x = gnp.asarray(x, dtype=gnp.float64)
        if x.ndim == 1:
            x = x.reshape(-1, 1)
        m = x.shape[0]
        if not self.basis_collection:
            return gnp.zeros((m, self.output_dimension))
        if self.transformation is not None:
            x = self.transformation(x)
        values = gnp.zeros((m, self.output_dimension))
        for k, (b, c) in enumerate(zip(self.basis_collection, self.coefficients)):
            if b.size > 0:
                values[:, k] = gnp.matmul(b(x), c)
        return values

    def __repr__(self):
        return (
            f"TrendFunction(output_dimension={self.output_dimension}, "
            f"basis={self.basis_collection}, coefficients={[c.tolist() for c in self.coefficients]})"
        )
