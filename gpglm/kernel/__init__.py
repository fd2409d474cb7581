# gpglm/kernel/__init__.py
# --------------------------------------------------------------
# Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
# Copyright (c) 2022-2026, CentraleSupelec
# License: GPLv3 (see LICENSE)
# --------------------------------------------------------------
"""
Covariance models of the fitting engine.

Modules
-------
profiles
    Correlation profiles (exponential, squared exponential, Matérn).
model
    Base covariance model and stationary models.
composition
    Product and tensorized compositions.

Public API
-----------
- Profiles:
    exponential_kernel, squared_exponential_kernel, matern_kernel
- Models:
    CovarianceModel, StationaryCovarianceModel, ExponentialModel,
    SquaredExponentialModel, MaternModel,
    ProductCovarianceModel, TensorizedCovarianceModel
"""

from .profiles import exponential_kernel, squared_exponential_kernel, matern_kernel
from .model import (
    DEFAULT_NUGGET_FACTOR,
    CovarianceModel,
    StationaryCovarianceModel,
    ExponentialModel,
    SquaredExponentialModel,
    MaternModel,
)
from .composition import ProductCovarianceModel, TensorizedCovarianceModel

__all__ = [
    # Profiles
    "exponential_kernel",
    "squared_exponential_kernel",
    "matern_kernel",
    # Models
    "DEFAULT_NUGGET_FACTOR",
    "CovarianceModel",
    "StationaryCovarianceModel",
    "ExponentialModel",
    "SquaredExponentialModel",
    "MaternModel",
    "ProductCovarianceModel",
    "TensorizedCovarianceModel",
]
