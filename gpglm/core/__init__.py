# gpglm/core/__init__.py
# --------------------------------------------------------------
# Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
# Copyright (c) 2022-2026, CentraleSupelec
# License: GPLv3 (see LICENSE)
# --------------------------------------------------------------

"""
Core components of the gpglm package.

This subpackage contains the fitting engine: trend bases and design
matrices, input normalization, covariance-model reduction, the dense
and hierarchical factorization backends, the reduced log-likelihood,
the optimizer, and the fitting driver.

Public API
----------
GLMAlgorithm : class
    Fitting driver.
GLMResult : class
    Fitted model.
"""

from .basis import (
    Basis,
    TrendFunction,
    assemble_design_matrix,
    constant_basis,
    linear_basis,
    quadratic_basis,
)
from .transformation import AffineTransformation
from .reduction import (
    adapt_covariance_model,
    reduce_covariance_model,
    default_optimization_bounds,
)
from .linalg import DenseCholeskyBackend, Factorization
from .hmatrix import HMatrix, HMatrixParameters, HMatrixCholeskyBackend
from .likelihood import LikelihoodState, ReducedLogLikelihood
from .optimizer import OptimizationProblem, OptimizationResult, Optimizer
from .result import GLMResult
from .algorithm import GLMAlgorithm

__all__ = [
    "Basis",
    "TrendFunction",
    "assemble_design_matrix",
    "constant_basis",
    "linear_basis",
    "quadratic_basis",
    "AffineTransformation",
    "adapt_covariance_model",
    "reduce_covariance_model",
    "default_optimization_bounds",
    "DenseCholeskyBackend",
    "Factorization",
    "HMatrix",
    "HMatrixParameters",
    "HMatrixCholeskyBackend",
    "LikelihoodState",
    "ReducedLogLikelihood",
    "OptimizationProblem",
    "OptimizationResult",
    "Optimizer",
    "GLMResult",
    "GLMAlgorithm",
]
