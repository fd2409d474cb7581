"""
Fit report assembly and display.

Defines
-------
fit_report
    Build a report dictionary from a fitted result and, optionally, the
    algorithm that produced it.
fit_report_disp
    Print a compact report: fit summary, covariance parameters, trend
    coefficients, and basic data description.
diag
    Convenience wrapper: fit if needed, build the report then display it.

Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
Copyright (c) 2022-2026, CentraleSupelec
License: GPLv3 (see LICENSE)
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import numpy as np

from .utils import describe_array, parameter_dictionary, pretty_print_dictionary


def fit_report(result: Any, algorithm: Optional[Any] = None) -> Dict[str, Any]:
    """
    Build a report dictionary from a fitted model.

    Parameters
    ----------
    result : GLMResult
    algorithm : GLMAlgorithm, optional
        When given, the report also describes the optimization.

    Returns
    -------
    report : dict
        Keys:
        - "fit" : dict (log-likelihood, regularization, residuals, relative errors)
        - "parameters" : dict (full covariance parameters)
        - "trend" : dict (coefficients per output)
        - "optimization" : dict (empty without algorithm)
        - "data" : dict (input and output samples)
    """
    report: Dict[str, Any] = {
        "fit": {},
        "parameters": {},
        "trend": {},
        "optimization": {},
        "data": {},
    }

    report["fit"] = {"log_likelihood": float(result.optimal_log_likelihood)}
    report["fit"]["regularization"] = float(result.regularization)
    for k, (r, e) in enumerate(zip(result.residuals.tolist(), result.relative_errors.tolist())):
        report["fit"][f"residual_{k}"] = float(r)
        report["fit"][f"relative_error_{k}"] = float(e)

    report["parameters"] = parameter_dictionary(result.covariance_model)

    for k, (basis, coefficients) in enumerate(
        zip(result.basis_collection, result.trend_coefficients)
    ):
        for name, c in zip(basis.names, coefficients.tolist()):
            report["trend"][f"output_{k}.{name}"] = float(c)

    if algorithm is not None:
        model = algorithm.get_reduced_covariance_model()
        objective = algorithm.get_objective_function()
        report["optimization"] = {
            "active_parameters": ", ".join(model.get_parameter_description()) or "none",
            "analytical_amplitude": algorithm.analytical_amplitude,
            "n_evals": objective.evaluation_count,
            "backend": objective.backend.name,
        }
        bounds = algorithm.get_optimization_bounds()
        for name, (lo, hi) in zip(model.get_parameter_description(), bounds.tolist()):
            report["optimization"][f"bounds.{name}"] = f"[{lo:g}, {hi:g}]"

    report["data"] = {"xi": result.input_sample, "yi": result.output_sample}
    return report


def fit_report_disp(report: Dict[str, Any]) -> None:
    """
    Print a fit report.

    Parameters
    ----------
    report : dict
        Output of fit_report.
    """
    print("[Fit diagnosis]")
    print("  * Fit")
    pretty_print_dictionary(report["fit"])

    if report["optimization"]:
        print("  * Optimization")
        pretty_print_dictionary(report["optimization"])

    print("  * Covariance parameters")
    pretty_print_dictionary(report["parameters"])

    if report["trend"]:
        print("  * Trend coefficients")
        pretty_print_dictionary(report["trend"])

    xi = np.asarray(report["data"]["xi"])
    yi = np.asarray(report["data"]["yi"])
    print("  * Data")
    print("    {:>0}: {:d}".format("count", int(yi.shape[0])))
    print("    -----")

    # ranges are compared with the scales of scalar models only
    d = xi.shape[1]
    scale = [v for k, v in report["parameters"].items() if k.startswith("scale_")]
    if len(scale) != d:
        scale = None
    df_yi = describe_array(yi, [f"yi_{j}" for j in range(yi.shape[1])])
    df_xi = describe_array(xi, [f"xi_{j}" for j in range(d)], scale)
    print(df_yi)
    print(df_xi)


def diag(algorithm: Any) -> Dict[str, Any]:
    """
    Fit if needed, then build and display the fit report.

    Parameters
    ----------
    algorithm : GLMAlgorithm

    Returns
    -------
    report : dict
    """
    result = algorithm.get_result()
    report = fit_report(result, algorithm)
    fit_report_disp(report)
    return report


__all__ = ["fit_report", "fit_report_disp", "diag"]
