# gpglm/core/reduction.py
# --------------------------------------------------------------
# Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
# Copyright (c) 2022-2026, CentraleSupelec
# License: GPLv3 (see LICENSE)
# --------------------------------------------------------------
"""
Preparation of the covariance model before fitting.

- `adapt_covariance_model` matches the model with the input and output
  dimensions of the sample, building product and tensorized
  compositions when a scalar model of R is given.
- `reduce_covariance_model` selects the parameters to be optimized and
  removes the amplitude of scalar models, which is then estimated in
  closed form.
- `default_optimization_bounds` builds the box bounds on the reduced
  parameters.
"""
import gpglm.num as gnp
from gpglm.config import get_logger
from gpglm.errors import DimensionMismatchError
from gpglm.kernel import ProductCovarianceModel, TensorizedCovarianceModel

logger = get_logger()

AMPLITUDE_PARAMETER_NAME = "amplitude_0"


def _product(model, input_dimension):
    return ProductCovarianceModel(
        [model] * input_dimension,
        amplitude=model.get_amplitude(),
        nugget_factor=getattr(model, "nugget_factor", 0.0),
    )


def adapt_covariance_model(model, input_dimension, output_dimension):
    """Return a copy of `model` with the dimensions of the problem.

    The admissible cases, tried in this order, are:

    1. the model already has the right spatial dimension and dimension;
    2. a scalar model of R, for a scalar problem on R^d: product of d
       copies of the model;
    3. a scalar model of R^d, for a problem with p outputs: tensorized
       model of p copies;
    4. a scalar model of R, for a problem on R^d with p outputs:
       tensorized model of p copies of the product model.

    Raises
    ------
    DimensionMismatchError
        In any other case.
    """
    s, p = model.spatial_dimension, model.dimension
    if s == input_dimension and p == output_dimension:
        return model.copy()
    if s == 1 and p == 1 and output_dimension == 1:
        logger.info(
            "Covariance model of spatial dimension 1 replicated as a product over %d inputs",
            input_dimension,
        )
        return _product(model, input_dimension)
    if s == input_dimension and p == 1:
        logger.info(
            "Covariance model of dimension 1 tensorized over %d outputs", output_dimension
        )
        return TensorizedCovarianceModel([model] * output_dimension)
    if s == 1 and p == 1:
        logger.info(
            "Covariance model replicated as a product over %d inputs, "
            "then tensorized over %d outputs",
            input_dimension,
            output_dimension,
        )
        return TensorizedCovarianceModel([_product(model, input_dimension)] * output_dimension)
    raise DimensionMismatchError(
        f"covariance model has spatial dimension={s} and dimension={p}, "
        f"expected spatial dimension={input_dimension} (or 1) and "
        f"dimension={output_dimension} (or 1)"
    )


def reduce_covariance_model(model, optimize_parameters=True, use_analytical_amplitude=True):
    """Select the parameters to be estimated numerically.

    Parameters
    ----------
    model : CovarianceModel
        Modified in place.
    optimize_parameters : bool
        If False, the active set is cleared.
    use_analytical_amplitude : bool
        If True, a scalar model with an active ``amplitude_0`` loses this
        parameter, which is fixed to 1 and estimated in closed form.

    Returns
    -------
    model : CovarianceModel
    analytical_amplitude : bool
    """
    if not optimize_parameters:
        model.set_active_parameter([])
        return model, False
    if not use_analytical_amplitude or model.dimension != 1:
        return model, False
    active = model.get_active_parameter()
    description = model.get_parameter_description()
    if AMPLITUDE_PARAMETER_NAME not in description:
        return model, False
    index = description.index(AMPLITUDE_PARAMETER_NAME)
    del active[index]
    model.set_active_parameter(active)
    model.set_amplitude(gnp.ones(1))
    logger.debug("Amplitude removed from the active parameters, estimated in closed form")
    return model, True


def default_optimization_bounds(size, lower, upper):
    """Box bounds [lower, upper]^size as an array of shape (size, 2)."""
    bounds = gnp.empty((size, 2))
    bounds[:, 0] = lower
    bounds[:, 1] = upper
    return bounds
