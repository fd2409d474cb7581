# gpglm/modeldiagnosis/utils.py
# --------------------------------------------------------------
# Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
# Copyright (c) 2022-2026, CentraleSupelec
# License: GPLv3 (see LICENSE)
# --------------------------------------------------------------
"""
Utilities for fit diagnosis.

Defines
-------
describe_array
    Build a DataFrame of basic descriptive statistics for an array.
pretty_print_dictionary
    Print a dictionary with aligned keys and formatted floats.
parameter_dictionary
    Named full parameters of a covariance model.
"""

from __future__ import annotations

from typing import Any, Dict

import numpy as np

import gpglm.num as gnp
from .dataframe import DataFrame, ftos


def describe_array(x, rownames, scale=None):
    """
    Build simple descriptive statistics for an array.

    Parameters
    ----------
    x : array_like
        Input data. Shape (n,) or (n, d).
    rownames : list of str
        Row names for the output DataFrame. Length 1 if x is 1D, else d.
    scale : array_like, optional
        Length scales, one per column. When given, a last column holds
        the range of each column divided by its scale.

    Returns
    -------
    DataFrame
        Statistics per dimension.
    """
    x = np.asarray(x, dtype=float)
    if x.ndim == 1:
        x = x.reshape(-1, 1)
    colnames = ["min", "max", "delta", "mean", "std"]
    xmin = np.min(x, axis=0)
    xmax = np.max(x, axis=0)
    columns = [xmin, xmax, xmax - xmin, np.mean(x, axis=0), np.std(x, axis=0)]

    if scale is not None:
        scale = np.asarray(scale, dtype=float).reshape(-1)
        if scale.size == 1:
            scale = np.full((x.shape[1],), scale[0])
        if scale.size != x.shape[1]:
            raise ValueError("scale must be a scalar or have one entry per column of x.")
        colnames.append("delta_over_scale")
        columns.append((xmax - xmin) / scale)

    return DataFrame(np.stack(columns, axis=1), colnames, rownames)


def pretty_print_dictionary(d: Dict[str, Any], fp: int = 4) -> None:
    """
    Print a dictionary with aligned keys.

    Parameters
    ----------
    d : dict
        Values can be scalars, one-element arrays or anything printable.
    fp : int, optional
        Number of decimal places for float formatting.
    """
    if not d:
        return

    max_key_length = max(15, max(len(str(k)) for k in d.keys()) + 2)

    for k, v in d.items():
        if gnp.isarray(v) and v.size == 1:
            v = v.item()
        if isinstance(v, float):
            print(f"{str(k):>{max_key_length}s}: {ftos(v, fp)}")
        else:
            print(f"{str(k):>{max_key_length}s}: {v}")


def parameter_dictionary(model) -> Dict[str, float]:
    """Full parameters of a covariance model, keyed by their names."""
    return {
        name: float(value)
        for name, value in zip(
            model.get_full_parameter_description(), model.get_full_parameter().tolist()
        )
    }


__all__ = [
    "describe_array",
    "pretty_print_dictionary",
    "parameter_dictionary",
]
