# gpglm/kernel/model.py
# --------------------------------------------------------------
# Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
# Copyright (c) 2022-2026, CentraleSupelec
# License: GPLv3 (see LICENSE)
# --------------------------------------------------------------
"""
Parametric covariance models.

A covariance model C(s, t) maps two points of R^d (d is the spatial
dimension) to a (p, p) symmetric matrix (p is the dimension). Its
scalar parameters are gathered in a *full* parameter vector, of which
an *active* subset is exposed through `get_parameter` and
`set_parameter` for estimation.

Discretization over a sample x of n points returns a (n p, n p) matrix
whose row and column index `i * p + k` refers to point i and output k.

Classes
-------
CovarianceModel
    Common machinery (active parameters, discretization).
StationaryCovarianceModel
    C(s, t) = diag(a) R diag(a) r(||(s - t) / scale||).
ExponentialModel, SquaredExponentialModel, MaternModel
    Stationary models built on the profiles of `gpglm.kernel.profiles`.
"""
import copy

import gpglm.num as gnp
from gpglm.errors import DimensionMismatchError
from .profiles import exponential_kernel, squared_exponential_kernel, matern_kernel

DEFAULT_NUGGET_FACTOR = 1e-12


class CovarianceModel:
    """Base class of covariance models.

    Subclasses define `spatial_dimension`, `dimension`, the full
    parameter accessors, the amplitude accessors, `_covariance(x, y)`
    (cross covariance without nugget) and `_nugget_diagonal(n)`.
    """

    def __init__(self):
        self._active_parameter = list(range(len(self.get_full_parameter_description())))

    # ------------------------------------------------------------------
    # Interface to be provided by subclasses
    # ------------------------------------------------------------------
    @property
    def spatial_dimension(self):
        raise NotImplementedError

    @property
    def dimension(self):
        raise NotImplementedError

    def get_full_parameter(self):
        raise NotImplementedError

    def set_full_parameter(self, parameter):
        raise NotImplementedError

    def get_full_parameter_description(self):
        raise NotImplementedError

    def get_amplitude(self):
        raise NotImplementedError

    def set_amplitude(self, amplitude):
        raise NotImplementedError

    def _covariance(self, x, y):
        raise NotImplementedError

    def _nugget_diagonal(self, n):
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Active parameters
    # ------------------------------------------------------------------
    def get_active_parameter(self):
        return list(self._active_parameter)

    def set_active_parameter(self, active):
        size = len(self.get_full_parameter_description())
        active = [int(i) for i in active]
        for i in active:
            if i < 0 or i >= size:
                raise DimensionMismatchError(
                    f"active parameter index {i} out of range for a model "
                    f"with {size} parameters"
                )
        if len(set(active)) != len(active):
            raise ValueError(f"active parameter indices must be unique, got {active}")
        self._active_parameter = active

    def get_parameter(self):
        full = self.get_full_parameter()
        return gnp.asarray(full[self._active_parameter], dtype=gnp.float64)

    def set_parameter(self, parameter):
        parameter = gnp.asarray(parameter, dtype=gnp.float64).reshape(-1)
        if parameter.shape[0] != len(self._active_parameter):
            raise DimensionMismatchError(
                f"covariance model requires a parameter of size "
                f"{len(self._active_parameter)}, got {parameter.shape[0]}"
            )
        if parameter.shape[0] == 0:
            return
        full = gnp.copy(self.get_full_parameter())
        full[self._active_parameter] = parameter
        self.set_full_parameter(full)

    def get_parameter_description(self):
        description = self.get_full_parameter_description()
        return [description[i] for i in self._active_parameter]

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------
    def __call__(self, s, t):
        """Covariance matrix (p, p) between two points."""
        s = gnp.asarray(s, dtype=gnp.float64).reshape(1, -1)
        t = gnp.asarray(t, dtype=gnp.float64).reshape(1, -1)
        return self.discretize_cross(s, t)

    def discretize(self, x):
        """Covariance matrix over the points of x, nugget included.

        Parameters
        ----------
        x : gnp.array, shape (n, spatial_dimension)

        Returns
        -------
        gnp.array, shape (n * dimension, n * dimension)
        """
        x = self._check_points(x)
        C = self._covariance(x, x)
        return gnp.add_to_diagonal(C, self._nugget_diagonal(x.shape[0]))

    def discretize_cross(self, x, y):
        """Cross covariance between the points of x and y.

        Returns
        -------
        gnp.array, shape (nx * dimension, ny * dimension)
        """
        return self._covariance(self._check_points(x), self._check_points(y))

    def _check_points(self, x):
        x = gnp.asarray(x, dtype=gnp.float64)
        if x.ndim == 1:
            x = x.reshape(-1, 1)
        if x.shape[1] != self.spatial_dimension:
            raise DimensionMismatchError(
                f"points of dimension {x.shape[1]} given to a covariance model "
                f"of spatial dimension {self.spatial_dimension}"
            )
        return x

    def copy(self):
        return copy.deepcopy(self)

    def __repr__(self):
        return (
            f"{type(self).__name__}(spatial_dimension={self.spatial_dimension}, "
            f"dimension={self.dimension}, "
            f"parameter={dict(zip(self.get_full_parameter_description(), self.get_full_parameter().tolist()))}, "
            f"active={self.get_parameter_description()})"
        )


class StationaryCovarianceModel(CovarianceModel):
    """Stationary model C(s, t) = diag(a) R diag(a) r(||(s - t) / scale||).

    Parameters
    ----------
    scale : array_like, shape (spatial_dimension,)
        Positive length scales.
    amplitude : array_like, shape (dimension,), optional
        Positive standard deviations of the outputs (default ones).
    spatial_correlation : array_like, shape (dimension, dimension), optional
        Correlation R between outputs (default identity).
    nugget_factor : float, optional
        Relative diagonal term added at coinciding points.

    The full parameter vector is [scale_0, ..., amplitude_0, ...].
    """

    def __init__(
        self,
        scale=None,
        amplitude=None,
        spatial_correlation=None,
        nugget_factor=DEFAULT_NUGGET_FACTOR,
    ):
        self._scale = self._positive(
            gnp.ones(1) if scale is None else scale, "scale"
        )
        self._amplitude = self._positive(
            gnp.ones(1) if amplitude is None else amplitude, "amplitude"
        )
        p = self._amplitude.shape[0]
        if spatial_correlation is None:
            self._spatial_correlation = gnp.eye(p)
        else:
            R = gnp.asarray(spatial_correlation, dtype=gnp.float64)
            if R.shape != (p, p):
                raise DimensionMismatchError(
                    f"spatial correlation of shape {R.shape} given for a model "
                    f"of dimension {p}"
                )
            if not gnp.allclose(R, R.T) or not gnp.allclose(gnp.diag(R), 1.0):
                raise ValueError("spatial correlation must be a symmetric correlation matrix")
            self._spatial_correlation = R
        self.nugget_factor = nugget_factor
        super().__init__()

    @staticmethod
    def _positive(v, name):
        v = gnp.asarray(v, dtype=gnp.float64).reshape(-1)
        if v.shape[0] == 0 or not gnp.all(v > 0.0):
            raise ValueError(f"{name} must be a nonempty vector of positive values, got {v}")
        return gnp.copy(v)

    @property
    def spatial_dimension(self):
        return self._scale.shape[0]

    @property
    def dimension(self):
        return self._amplitude.shape[0]

    @property
    def scale(self):
        return gnp.copy(self._scale)

    @scale.setter
    def scale(self, scale):
        scale = self._positive(scale, "scale")
        if scale.shape[0] != self.spatial_dimension:
            raise DimensionMismatchError(
                f"scale of size {scale.shape[0]} given for spatial dimension "
                f"{self.spatial_dimension}"
            )
        self._scale = scale

    @property
    def amplitude(self):
        return self.get_amplitude()

    @amplitude.setter
    def amplitude(self, amplitude):
        self.set_amplitude(amplitude)

    @property
    def spatial_correlation(self):
        return gnp.copy(self._spatial_correlation)

    @property
    def nugget_factor(self):
        return self._nugget_factor

    @nugget_factor.setter
    def nugget_factor(self, nugget_factor):
        if not nugget_factor >= 0.0:
            raise ValueError(f"nugget factor must be nonnegative, got {nugget_factor}")
        self._nugget_factor = float(nugget_factor)

    def get_amplitude(self):
        return gnp.copy(self._amplitude)

    def set_amplitude(self, amplitude):
        amplitude = self._positive(amplitude, "amplitude")
        if amplitude.shape[0] != self.dimension:
            raise DimensionMismatchError(
                f"amplitude of size {amplitude.shape[0]} given for dimension {self.dimension}"
            )
        self._amplitude = amplitude

    def get_full_parameter(self):
        return gnp.concatenate((self._scale, self._amplitude))

    def set_full_parameter(self, parameter):
        parameter = gnp.asarray(parameter, dtype=gnp.float64).reshape(-1)
        d = self.spatial_dimension
        if parameter.shape[0] != d + self.dimension:
            raise DimensionMismatchError(
                f"full parameter of size {parameter.shape[0]} given, "
                f"expected {d + self.dimension}"
            )
        self.scale = parameter[:d]
        self.set_amplitude(parameter[d:])

    def get_full_parameter_description(self):
        return [f"scale_{j}" for j in range(self.spatial_dimension)] + [
            f"amplitude_{k}" for k in range(self.dimension)
        ]

    def spatial_covariance(self):
        """(p, p) covariance between outputs at coinciding points."""
        a = self._amplitude
        return a[:, None] * self._spatial_correlation * a[None, :]

    def profile(self, h):
        raise NotImplementedError

    def correlation(self, x, y):
        """Scalar correlation matrix r(||(x_i - y_j) / scale||), shape (nx, ny)."""
        return self.profile(gnp.scaled_distance(self._scale, x, y))

    def _covariance(self, x, y):
        R = self.correlation(x, y)
        if self.dimension == 1:
            return (self._amplitude[0] ** 2) * R
        return gnp.kron(R, self.spatial_covariance())

    def _nugget_diagonal(self, n):
        return self._nugget_factor * gnp.tile(self._amplitude**2, n)


class ExponentialModel(StationaryCovarianceModel):
    """Stationary model with the exponential profile exp(-h)."""

    def profile(self, h):
        return exponential_kernel(h)


class SquaredExponentialModel(StationaryCovarianceModel):
    """Stationary model with the squared exponential profile exp(-h^2 / 2)."""

    def profile(self, h):
        return squared_exponential_kernel(h)

    def correlation(self, x, y):
        return gnp.exp(-0.5 * gnp.scaled_squared_distance(self._scale, x, y))


class MaternModel(StationaryCovarianceModel):
    """Stationary Matérn model with regularity nu = p + 1/2.

    Parameters
    ----------
    p : int, default 1
        Nonnegative integer, nu = p + 1/2 (p = 1 is Matérn 3/2).
    scale, amplitude, spatial_correlation, nugget_factor
        See `StationaryCovarianceModel`.
    """

    def __init__(self, scale=None, amplitude=None, p=1, **kwargs):
        if int(p) != p or p < 0:
            raise ValueError(f"p must be a nonnegative integer, got {p}")
        self.p = int(p)
        super().__init__(scale, amplitude, **kwargs)

    @property
    def nu(self):
        return self.p + 0.5

    def profile(self, h):
        return matern_kernel(self.p, h)
