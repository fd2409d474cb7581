"""
Fit a Matérn model with a constant trend on a 1D function and plot the
kriging prediction.

Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
Copyright (c) 2022-2026, CentraleSupelec
License: GPLv3 (see LICENSE)
"""

import numpy as np
import matplotlib.pyplot as plt

import gpglm as gg
import gpglm.num as gnp
from gpglm.kernel import MaternModel
from gpglm.core import constant_basis


def twobumps(x):
    x = x[:, 0]
    return (0.8 * x - 0.2) ** 2 + np.exp(-0.5 * (np.abs(x + 0.1) / 0.1) ** 1.95) + np.exp(
        -0.5 * (x - 0.6) ** 2 / 0.04
    )


def generate_data():
    """
    Data generation.

    Returns
    -------
    tuple
        (xt, zt): target data
        (xi, zi): input dataset
    """
    xt = np.linspace(-1.0, 1.0, 200).reshape(-1, 1)
    zt = twobumps(xt)

    xi = np.array([[-0.9], [-0.55], [-0.2], [0.1], [0.45], [0.8]])
    zi = twobumps(xi)
    return xt, zt, xi, zi


def main(show=True):
    xt, zt, xi, zi = generate_data()

    algo = gg.GLMAlgorithm(xi, zi, MaternModel(scale=[0.5], p=2), basis=constant_basis(1))
    algo.run()
    result = algo.get_result()
    print(result)

    zpm = gnp.to_np(result.predict(xt))[:, 0]

    fig, ax = plt.subplots(1, 1, figsize=(8, 5))
    ax.plot(xt[:, 0], zt, "k", linewidth=0.8, label="truth")
    ax.plot(xi[:, 0], zi, "rs", label="data")
    ax.plot(xt[:, 0], zpm, "b", label="prediction")
    ax.plot(xt[:, 0], result.metamodel(xt)[:, 0], "b--", linewidth=0.8, label="trend")
    ax.set_xlabel("x")
    ax.legend()
    if show:
        plt.show()
    return result


if __name__ == "__main__":
    main()
