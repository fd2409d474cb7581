# gpglm/core/optimizer.py
# --------------------------------------------------------------
# Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
# Copyright (c) 2022-2026, CentraleSupelec
# License: GPLv3 (see LICENSE)
# --------------------------------------------------------------
"""
Bounded optimization of the likelihood with SciPy.

`OptimizationProblem` couples an objective (a callable returning an
array of shape (1,)) with box bounds and a direction. `Optimizer` runs
`scipy.optimize.minimize` on it from a starting point and returns the
best point visited.
"""
import time
from collections import namedtuple

import numpy as np
from scipy.optimize import minimize

import gpglm.num as gnp
from gpglm.config import get_logger
from gpglm.errors import DimensionMismatchError, NumericalInstabilityError

logger = get_logger()

OptimizationResult = namedtuple(
    "OptimizationResult",
    [
        "optimal_point",
        "optimal_value",
        "success",
        "nfev",
        "history_params",
        "history_values",
        "total_time",
    ],
)


class OptimizationProblem:
    """Box-constrained optimization problem.

    Parameters
    ----------
    objective : callable
        ``objective(p)`` returns an array of shape (1,).
    bounds : array_like, shape (k, 2)
        Lower and upper bounds of each of the k variables.
    minimization : bool, default False
        Direction of the problem.
    """

    def __init__(self, objective, bounds, minimization=False):
        self.objective = objective
        self.bounds = gnp.asarray(bounds, dtype=gnp.float64).reshape(-1, 2)
        self.minimization = minimization

    @property
    def dimension(self):
        return self.bounds.shape[0]


class Optimizer:
    """Optimizer based on `scipy.optimize.minimize`.

    Parameters
    ----------
    method : {"TNC", "L-BFGS-B", "SLSQP", "Nelder-Mead"}, default "TNC"
    options : dict, optional
        Passed to SciPy on top of the method defaults.
    gradient_epsilon : float, default 1e-7
        Absolute step of the forward-difference gradient computed by
        SciPy, taken backward at an upper bound. Unused by Nelder-Mead.
    silent : bool, default True
    """

    _DEFAULT_OPTIONS = {
        "TNC": dict(maxfun=1000, ftol=1e-10, xtol=1e-10),
        "L-BFGS-B": dict(maxcor=20, ftol=1e-10, gtol=1e-8, maxfun=1000, maxiter=1000, maxls=40),
        "SLSQP": dict(ftol=1e-10, maxiter=1000),
        "Nelder-Mead": dict(maxfev=1000, xatol=1e-8, fatol=1e-10),
    }

    def __init__(self, method="TNC", options=None, gradient_epsilon=1e-7, silent=True):
        if method not in self._DEFAULT_OPTIONS:
            raise ValueError(f"Optimization method {method!r} not implemented.")
        self.method = method
        self.options = {} if options is None else dict(options)
        self.gradient_epsilon = gradient_epsilon
        self.silent = silent
        self.starting_point = None

    def __repr__(self):
        return f"Optimizer(method={self.method!r}, options={self.options})"

    def run(self, problem):
        """Solve `problem` from `self.starting_point`.

        Returns
        -------
        OptimizationResult
            `optimal_value` and `history_values` are values of the
            objective itself, whatever the direction of the problem.
        """
        if self.starting_point is None:
            raise ValueError("the starting point of the optimizer is not set")
        p0 = np.asarray(self.starting_point, dtype=float).reshape(-1)
        if p0.shape[0] != problem.dimension:
            raise DimensionMismatchError(
                f"starting point of size {p0.shape[0]} given for a problem "
                f"of dimension {problem.dimension}"
            )
        tic = time.time()
        sign = 1.0 if problem.minimization else -1.0

        history_params, history_values = [], []
        best_params, best_criterion = None, float("inf")
        lower, upper = problem.bounds[:, 0], problem.bounds[:, 1]

        def record(p, J):
            nonlocal best_params, best_criterion
            history_params.append(p.copy())
            history_values.append(sign * J)
            feasible = np.all(p >= lower) and np.all(p <= upper)
            if feasible and J < best_criterion:
                best_criterion, best_params = J, p.copy()

        def criterion(p):
            try:
                J = sign * float(problem.objective(p)[0])
            except NumericalInstabilityError:
                raise
            except Exception as exc:
                if gnp._is_linalg_exception(exc):
                    J = np.inf
                else:
                    raise
            record(p, J)
            return J

        options = {} if self.silent else {"disp": True}
        if self.method != "Nelder-Mead":
            # forward differences by scipy, stepping backward at an upper bound
            options["eps"] = self.gradient_epsilon
        options.update(self._DEFAULT_OPTIONS[self.method])
        options.update(self.options)
        bounds = [tuple(b) for b in np.asarray(problem.bounds).tolist()]
        p0 = np.clip(p0, lower, upper)

        r = minimize(
            criterion,
            p0,
            method=self.method,
            jac=None,
            bounds=bounds,
            options=options,
        )

        # ensure returning best seen
        x, fun = r.x, float(np.asarray(r.fun).reshape(-1)[0])
        feasible = np.all(x >= lower) and np.all(x <= upper)
        if best_params is not None and (
            not feasible or not np.isfinite(fun) or fun > best_criterion
        ):
            x, fun = best_params, best_criterion

        total_time = time.time() - tic
        logger.info(
            "Optimization (%s) finished: value=%.6e, nfev=%d, time=%.2fs, message=%s",
            self.method,
            sign * fun,
            len(history_values),
            total_time,
            r.message,
        )
        return OptimizationResult(
            gnp.asarray(x, dtype=gnp.float64),
            float(sign * fun),
            bool(r.success),
            len(history_values),
            history_params,
            history_values,
            total_time,
        )
