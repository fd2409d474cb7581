# gpglm/errors.py
# --------------------------------------------------------------
# Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
# Copyright (c) 2022-2026, CentraleSupelec
# License: GPLv3 (see LICENSE)
# --------------------------------------------------------------
"""
Error types, warnings and sentinel values of the fitting engine.

Three outcomes are distinguished:

- `DimensionMismatchError`: invalid shapes, raised as soon as the
  offending value is given (constructors and setters).
- `NumericalInstabilityError`: the covariance matrix could not be
  factorized even after the whole regularization ladder.
- Degenerate fits are not errors: the log-likelihood takes one of the
  sentinel values below, so that optimizers move away from them.
"""
import gpglm.num as gnp

# log of the smallest positive normal number
LOG_MIN_SCALAR = float(gnp.log(gnp.tiny))
# largest finite number
MAX_SCALAR = float(gnp.fmax)


class GLMError(Exception):
    """Base class of the errors raised by gpglm."""


class DimensionMismatchError(GLMError, ValueError):
    """Sizes or dimensions of the inputs are inconsistent."""


class NumericalInstabilityError(GLMError, RuntimeError):
    """The covariance matrix could not be made positive definite.

    Attributes
    ----------
    cumulated_scaling : float
        Total diagonal shift tried before giving up.
    """

    def __init__(self, message, cumulated_scaling):
        super().__init__(message)
        self.cumulated_scaling = cumulated_scaling


class RegularizationWarning(RuntimeWarning):
    """A diagonal shift was needed to factorize the covariance matrix.

    Attributes
    ----------
    cumulated_scaling : float
        Total diagonal shift applied.
    """

    def __init__(self, message, cumulated_scaling=0.0):
        super().__init__(message)
        self.cumulated_scaling = cumulated_scaling
