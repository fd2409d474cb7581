# gpglm/core/transformation.py
# --------------------------------------------------------------
# Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
# Copyright (c) 2022-2026, CentraleSupelec
# License: GPLv3 (see LICENSE)
# --------------------------------------------------------------
"""Affine normalization of input samples."""
import gpglm.num as gnp


class AffineTransformation:
    """Affine map x -> (x - center) @ linear.T, applied row-wise.

    Parameters
    ----------
    center : array_like, shape (d,)
    linear : array_like, shape (d, d)
    """

    def __init__(self, center, linear):
        self.center = gnp.asarray(center, dtype=gnp.float64).reshape(-1)
        self.linear = gnp.asarray(linear, dtype=gnp.float64)
        d = self.center.shape[0]
        if self.linear.shape != (d, d):
            raise ValueError(
                f"linear part of shape {self.linear.shape} given for a center of size {d}"
            )

    @classmethod
    def from_sample(cls, x):
        """Normalization (x - mean) / std computed on a sample.

        A component whose standard deviation is below machine
        epsilon is centered but not scaled.
        """
        x = gnp.asarray(x, dtype=gnp.float64)
        mean = gnp.mean(x, axis=0)
        std = gnp.std(x, axis=0, ddof=1) if x.shape[0] > 1 else gnp.zeros(x.shape[1])
        inv_std = gnp.where(std < gnp.eps, 1.0, 1.0 / gnp.where(std < gnp.eps, 1.0, std))
        return cls(mean, gnp.diag(inv_std))

    @classmethod
    def identity(cls, d):
        return cls(gnp.zeros(d), gnp.eye(d))

    @property
    def input_dimension(self):
        return self.center.shape[0]

    def __call__(self, x):
        x = gnp.asarray(x, dtype=gnp.float64)
        if x.ndim == 1:
            x = x.reshape(-1, 1)
        return gnp.matmul(x - self.center, self.linear.T)

    def __repr__(self):
        return f"AffineTransformation(center={self.center.tolist()}, linear={self.linear.tolist()})"
