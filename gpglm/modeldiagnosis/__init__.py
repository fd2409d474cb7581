"""
Fit diagnosis utilities for GPglm.

Defines
-------
This package groups helpers for:
- report construction and display
- plotting helpers
- small utilities for printing and data description

Public API
----------
The most common entry points are re-exported at package level.
Importing `gpglm.modeldiagnosis` does not import matplotlib. Plotting
functions are imported lazily via the `plotting` submodule.

Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
Copyright (c) 2022-2026, CentraleSupelec
License: GPLv3 (see LICENSE)
"""

from __future__ import annotations

from .dataframe import DataFrame, ftos
from .report import diag, fit_report, fit_report_disp
from .utils import describe_array, parameter_dictionary, pretty_print_dictionary

__all__ = [
    "DataFrame",
    "ftos",
    "diag",
    "fit_report",
    "fit_report_disp",
    "describe_array",
    "parameter_dictionary",
    "pretty_print_dictionary",
]

# Lazy access to plotting functions to avoid importing matplotlib on import.
_PLOTTING_EXPORTS = {
    "plot_fit",
    "plot_log_likelihood_profile",
}


def __getattr__(name: str):
    if name in _PLOTTING_EXPORTS:
        from . import plotting as _plotting

        obj = getattr(_plotting, name)
        globals()[name] = obj  # cache for subsequent lookups
        return obj
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__():
    return sorted(list(__all__) + list(_PLOTTING_EXPORTS))
