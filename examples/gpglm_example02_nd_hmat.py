"""
Fit a Gaussian-process model on a 2D sample with the hierarchical
backend, then display the fit report.

Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
Copyright (c) 2022-2026, CentraleSupelec
License: GPLv3 (see LICENSE)
"""

import numpy as np

import gpglm as gg
from gpglm.kernel import MaternModel
from gpglm.core import linear_basis
import gpglm.modeldiagnosis as gd


def branin(x):
    x1 = 15.0 * x[:, 0] - 5.0
    x2 = 15.0 * x[:, 1]
    return (
        (x2 - 5.1 / (4 * np.pi**2) * x1**2 + 5.0 / np.pi * x1 - 6.0) ** 2
        + 10.0 * (1.0 - 1.0 / (8.0 * np.pi)) * np.cos(x1)
        + 10.0
    )


def main(n=300, show=True):
    rng = np.random.default_rng(0)
    xi = rng.uniform(size=(n, 2))
    zi = branin(xi).reshape(-1, 1)

    config = gg.GLMConfig(linear_algebra="hmat", hmatrix_max_leaf_size=50)
    algo = gg.GLMAlgorithm(
        xi,
        zi,
        MaternModel(scale=[0.5], p=2),
        basis=linear_basis(2),
        normalize=True,
        config=config,
    )
    report = gd.diag(algo)

    if show:
        gd.plot_fit(algo.get_result())
    return report


if __name__ == "__main__":
    main()
