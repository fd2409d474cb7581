# gpglm/modeldiagnosis/plotting.py
# --------------------------------------------------------------
# Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
# Copyright (c) 2022-2026, CentraleSupelec
# License: GPLv3 (see LICENSE)
# --------------------------------------------------------------
"""
Plotting helpers for fit diagnosis.

Defines
-------
plot_fit
    Observed outputs against the trend and the kriging prediction.
plot_log_likelihood_profile
    One-dimensional cross sections of the reduced log-likelihood.

Notes
-----
Matplotlib is imported inside this module. Importing gpglm.modeldiagnosis.plotting
will import matplotlib. Other diagnosis submodules do not import matplotlib.
"""

from __future__ import annotations

import sys
from typing import Any, Optional, Sequence

import numpy as np

import gpglm.num as gnp

import matplotlib.pyplot as plt


def _interactive():
    try:
        interpreter = sys.ps1
    except AttributeError:
        interpreter = sys.flags.interactive
    if interpreter:
        plt.ion()


def plot_fit(result: Any, output_index: int = 0, show: bool = True) -> Any:
    """
    Plot observed outputs against fitted values at the training points.

    Parameters
    ----------
    result : GLMResult
    output_index : int, optional
        Output to display.
    show : bool, optional
        Call plt.show() at the end.

    Returns
    -------
    fig : matplotlib.figure.Figure
    """
    _interactive()
    xi = result.input_sample
    yi = gnp.to_np(result.output_sample)[:, output_index]
    trend = gnp.to_np(result.metamodel(xi))[:, output_index]
    prediction = gnp.to_np(result.predict(xi))[:, output_index]

    fig, ax = plt.subplots(1, 1, figsize=(6, 6))
    ax.plot(yi, trend, "o", label="trend")
    ax.plot(yi, prediction, "x", label="kriging prediction")
    lo, hi = float(np.min(yi)), float(np.max(yi))
    ax.plot([lo, hi], [lo, hi], "k--", linewidth=0.8)
    ax.set_xlabel("observed")
    ax.set_ylabel("fitted")
    ax.set_title(
        f"Output {output_index}: residual={float(result.residuals[output_index]):.3e}"
    )
    ax.legend()
    if show:
        plt.show()
    return fig


def plot_log_likelihood_profile(
    objective: Any,
    parameter: Any,
    *,
    n_points: int = 50,
    param_names: Optional[Sequence[str]] = None,
    bounds: Optional[Any] = None,
    log_scale: bool = True,
    show: bool = True,
) -> Any:
    """
    Plot 1D cross sections of the reduced log-likelihood around a point.

    Parameters
    ----------
    objective : ReducedLogLikelihood
        Evaluations go through its cache and leave its state (and its
        covariance model) at the last evaluated point. A fitted
        `GLMResult` is not affected.
    parameter : array_like, shape (k,)
        Reference point, usually the optimum.
    n_points : int, optional
        Number of evaluation points per cross section.
    param_names : sequence of str, optional
        Names used in the titles.
    bounds : array_like, shape (k, 2), optional
        Range of each cross section (default: [p / 10, 10 p]).
    log_scale : bool, optional
        Use a logarithmic axis for the parameter.
    show : bool, optional

    Returns
    -------
    fig : matplotlib.figure.Figure
    """
    _interactive()
    param_opt = gnp.asarray(parameter, dtype=gnp.float64).reshape(-1)
    n_params = int(param_opt.shape[0])
    if n_params == 0:
        raise ValueError("no parameter to profile")

    fig, axes = plt.subplots(n_params, 1, figsize=(8, min(9, 3 * n_params)))
    if n_params == 1:
        axes = [axes]

    for i in range(n_params):
        if bounds is not None:
            lo, hi = (float(v) for v in np.asarray(bounds)[i])
        else:
            lo, hi = float(param_opt[i]) / 10.0, float(param_opt[i]) * 10.0
        if log_scale:
            grid = np.logspace(np.log10(lo), np.log10(hi), n_points)
        else:
            grid = np.linspace(lo, hi, n_points)
        values = np.empty(n_points)
        for j, v in enumerate(grid):
            p = gnp.copy(param_opt)
            p[i] = v
            values[j] = float(objective(p)[0])
        ax = axes[i]
        ax.plot(grid, values)
        ax.axvline(float(param_opt[i]), color="red", linestyle="--", label="reference")
        if log_scale:
            ax.set_xscale("log")
        name = param_names[i] if param_names is not None else f"parameter {i}"
        ax.set_title(f"Reduced log-likelihood along {name}")
        ax.legend()

    fig.tight_layout()
    if show:
        plt.show()
    return fig


__all__ = ["plot_fit", "plot_log_likelihood_profile"]
