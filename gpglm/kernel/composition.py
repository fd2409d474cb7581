# gpglm/kernel/composition.py
# --------------------------------------------------------------
# Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
# Copyright (c) 2022-2026, CentraleSupelec
# License: GPLv3 (see LICENSE)
# --------------------------------------------------------------
"""
Covariance models built from other covariance models.

ProductCovarianceModel
    Scalar model on R^(d_1 + ... + d_m) whose correlation is the
    product of the marginal correlations, each acting on its own block
    of coordinates.
TensorizedCovarianceModel
    Vector model whose outputs are independent, output block k being
    driven by marginal model k.
"""
import gpglm.num as gnp
from gpglm.errors import DimensionMismatchError
from .model import CovarianceModel, DEFAULT_NUGGET_FACTOR


class ProductCovarianceModel(CovarianceModel):
    """Product of scalar covariance models over coordinate blocks.

    .. math::
        C(s, t) = a^2 \\prod_{j} r_j(s_{(j)}, t_{(j)})

    where :math:`s_{(j)}` is the block of coordinates of s seen by
    marginal j and :math:`r_j` its correlation.

    Parameters
    ----------
    models : list of CovarianceModel
        Scalar marginals (dimension 1). They are copied and their
        amplitude is set to 1.
    amplitude : float, optional
        Global amplitude (default 1).
    nugget_factor : float, optional
        Relative diagonal term added at coinciding points.

    Full parameters are the marginal scales, renumbered
    ``scale_0, ..., scale_{d-1}``, followed by ``amplitude_0``.
    """

    def __init__(self, models, amplitude=None, nugget_factor=DEFAULT_NUGGET_FACTOR):
        if len(models) == 0:
            raise ValueError("a product covariance model needs at least one marginal")
        self._models = []
        for m in models:
            if m.dimension != 1:
                raise DimensionMismatchError(
                    f"product marginals must be scalar, got a model of dimension {m.dimension}"
                )
            m = m.copy()
            m.set_amplitude(gnp.ones(1))
            self._models.append(m)
        amplitude = gnp.ones(1) if amplitude is None else gnp.asarray(amplitude, dtype=gnp.float64)
        self._amplitude = gnp.ones(1)
        self.set_amplitude(amplitude)
        if not nugget_factor >= 0.0:
            raise ValueError(f"nugget factor must be nonnegative, got {nugget_factor}")
        self.nugget_factor = float(nugget_factor)
        super().__init__()

    @property
    def models(self):
        return [m.copy() for m in self._models]

    @property
    def spatial_dimension(self):
        return sum(m.spatial_dimension for m in self._models)

    @property
    def dimension(self):
        return 1

    @property
    def scale(self):
        return gnp.concatenate([m.scale for m in self._models])

    @property
    def amplitude(self):
        return self.get_amplitude()

    def get_amplitude(self):
        return gnp.copy(self._amplitude)

    def set_amplitude(self, amplitude):
        amplitude = gnp.asarray(amplitude, dtype=gnp.float64).reshape(-1)
        if amplitude.shape[0] != 1:
            raise DimensionMismatchError(
                f"amplitude of size {amplitude.shape[0]} given for a scalar model"
            )
        if not amplitude[0] > 0.0:
            raise ValueError(f"amplitude must be positive, got {amplitude[0]}")
        self._amplitude = gnp.copy(amplitude)

    def get_full_parameter(self):
        return gnp.concatenate((self.scale, self._amplitude))

    def set_full_parameter(self, parameter):
        parameter = gnp.asarray(parameter, dtype=gnp.float64).reshape(-1)
        d = self.spatial_dimension
        if parameter.shape[0] != d + 1:
            raise DimensionMismatchError(
                f"full parameter of size {parameter.shape[0]} given, expected {d + 1}"
            )
        offset = 0
        for m in self._models:
            dj = m.spatial_dimension
            m.scale = parameter[offset : offset + dj]
            offset += dj
        self.set_amplitude(parameter[d:])

    def get_full_parameter_description(self):
        return [f"scale_{j}" for j in range(self.spatial_dimension)] + ["amplitude_0"]

    def correlation(self, x, y):
        R = gnp.ones((x.shape[0], y.shape[0]))
        offset = 0
        for m in self._models:
            dj = m.spatial_dimension
            # marginal amplitudes are 1, so their covariance is their correlation
            R = R * m._covariance(x[:, offset : offset + dj], y[:, offset : offset + dj])
            offset += dj
        return R

    def _covariance(self, x, y):
        return (self._amplitude[0] ** 2) * self.correlation(x, y)

    def _nugget_diagonal(self, n):
        return self.nugget_factor * (self._amplitude[0] ** 2) * gnp.ones(n)


class TensorizedCovarianceModel(CovarianceModel):
    """Block-diagonal covariance model over independent outputs.

    Parameters
    ----------
    models : list of CovarianceModel
        Marginal models sharing the same spatial dimension. They are
        copied. Output k of the tensorized model belongs to the marginal
        whose output block contains k.

    Full parameters are the concatenation of the marginal full
    parameters, named ``marginal_<k>.<name>``.
    """

    def __init__(self, models):
        if len(models) == 0:
            raise ValueError("a tensorized covariance model needs at least one marginal")
        d = models[0].spatial_dimension
        for m in models:
            if m.spatial_dimension != d:
                raise DimensionMismatchError(
                    f"tensorized marginals must share their spatial dimension, "
                    f"got {m.spatial_dimension} and {d}"
                )
        self._models = [m.copy() for m in models]
        super().__init__()

    @property
    def models(self):
        return [m.copy() for m in self._models]

    @property
    def spatial_dimension(self):
        return self._models[0].spatial_dimension

    @property
    def dimension(self):
        return sum(m.dimension for m in self._models)

    @property
    def amplitude(self):
        return self.get_amplitude()

    def get_amplitude(self):
        return gnp.concatenate([m.get_amplitude() for m in self._models])

    def set_amplitude(self, amplitude):
        amplitude = gnp.asarray(amplitude, dtype=gnp.float64).reshape(-1)
        if amplitude.shape[0] != self.dimension:
            raise DimensionMismatchError(
                f"amplitude of size {amplitude.shape[0]} given for dimension {self.dimension}"
            )
        offset = 0
        for m in self._models:
            m.set_amplitude(amplitude[offset : offset + m.dimension])
            offset += m.dimension

    def get_full_parameter(self):
        return gnp.concatenate([m.get_full_parameter() for m in self._models])

    def set_full_parameter(self, parameter):
        parameter = gnp.asarray(parameter, dtype=gnp.float64).reshape(-1)
        sizes = [len(m.get_full_parameter_description()) for m in self._models]
        if parameter.shape[0] != sum(sizes):
            raise DimensionMismatchError(
                f"full parameter of size {parameter.shape[0]} given, expected {sum(sizes)}"
            )
        offset = 0
        for m, size in zip(self._models, sizes):
            m.set_full_parameter(parameter[offset : offset + size])
            offset += size

    def get_full_parameter_description(self):
        return [
            f"marginal_{k}.{name}"
            for k, m in enumerate(self._models)
            for name in m.get_full_parameter_description()
        ]

    def _covariance(self, x, y):
        nx, ny, p = x.shape[0], y.shape[0], self.dimension
        C = gnp.zeros((nx, p, ny, p))
        offset = 0
        for m in self._models:
            pk = m.dimension
            Ck = m._covariance(x, y).reshape(nx, pk, ny, pk)
            C[:, offset : offset + pk, :, offset : offset + pk] = Ck
            offset += pk
        return C.reshape(nx * p, ny * p)

    def _nugget_diagonal(self, n):
        blocks = [m._nugget_diagonal(n).reshape(n, m.dimension) for m in self._models]
        return gnp.hstack(blocks).reshape(-1)
