"""Numerical solver backends.

A backend is the pluggable "Solver capability": it receives the free-variable
start vector and residual oracles and returns a candidate vector.  The facade
decides convergence from the residuals, not from the backend's own flag.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np
from scipy.optimize import least_squares, minimize

from .math_utils import max_abs, numeric_jacobian, pad_rows
from .options import Algorithm, SolveOptions

logger = logging.getLogger(__name__)

ResidualOracle = Callable[[np.ndarray], np.ndarray]

_EPS = float(np.finfo(float).eps)


@dataclass
class Problem:
    """Free-variable problem handed to a backend.

    ``residual`` maps free values to the hard (driving, non-temporary)
    residual rows.  ``objective`` maps them to the temporary rows and is only
    set for SQP solves.
    """

    x0: np.ndarray
    residual: ResidualOracle
    objective: Optional[ResidualOracle] = None


@dataclass
class BackendResult:
    x: np.ndarray
    success: bool
    iterations: int
    message: str


class SolverBackend:
    """Interface of a solver capability."""

    name = "abstract"

    def run(self, problem: Problem, algorithm: Algorithm, options: SolveOptions) -> BackendResult:
        raise NotImplementedError


def _tolerance(options: SolveOptions) -> float:
    return max(options.convergence * 1e-2, 2.0 * _EPS)


class ScipyBackend(SolverBackend):
    """Backend built on :mod:`scipy.optimize`."""

    name = "scipy"

    def run(self, problem: Problem, algorithm: Algorithm, options: SolveOptions) -> BackendResult:
        x0 = np.asarray(problem.x0, dtype=float)
        if x0.size == 0:
            return BackendResult(x0.copy(), True, 0, "no free parameters")
        if algorithm is Algorithm.SQP:
            return self._run_sqp(problem, options)
        if np.asarray(problem.residual(x0)).size == 0:
            return BackendResult(x0.copy(), True, 0, "no residuals")
        if algorithm is Algorithm.BFGS:
            return self._run_bfgs(problem, options)
        method = "lm" if algorithm is Algorithm.LEVENBERG_MARQUARDT else "dogbox"
        return self._run_least_squares(problem.residual, x0, method, options)

    def _run_least_squares(
        self, residual: ResidualOracle, x0: np.ndarray, method: str, options: SolveOptions
    ) -> BackendResult:
        n = x0.shape[0]
        step = options.jacobian_step

        if method == "lm":
            # MINPACK needs at least as many rows as unknowns
            def fun(vec: np.ndarray) -> np.ndarray:
                return pad_rows(np.asarray(residual(vec), dtype=float), n)
        else:
            def fun(vec: np.ndarray) -> np.ndarray:
                return np.asarray(residual(vec), dtype=float)

        def jac(vec: np.ndarray) -> np.ndarray:
            return numeric_jacobian(fun, vec, step)

        tol = _tolerance(options)
        result = least_squares(
            fun,
            x0,
            jac=jac,
            method=method,
            ftol=tol,
            xtol=tol,
            gtol=tol,
            max_nfev=options.max_iterations,
        )
        logger.debug(
            "least_squares(method=%s) status=%s nfev=%d cost=%.3e",
            method,
            result.status,
            result.nfev,
            float(result.cost),
        )
        return BackendResult(result.x, bool(result.success), int(result.nfev), str(result.message))

    def _run_bfgs(self, problem: Problem, options: SolveOptions) -> BackendResult:
        residual = problem.residual
        step = options.jacobian_step

        def objective(vec: np.ndarray) -> float:
            values = np.asarray(residual(vec), dtype=float)
            return 0.5 * float(np.dot(values, values))

        def gradient(vec: np.ndarray) -> np.ndarray:
            values = np.asarray(residual(vec), dtype=float)
            return numeric_jacobian(residual, vec, step).T @ values

        result = minimize(
            objective,
            problem.x0,
            jac=gradient,
            method="BFGS",
            options={"maxiter": options.max_iterations, "gtol": _tolerance(options)},
        )
        logger.debug("BFGS status=%s nit=%d fun=%.3e", result.status, result.nit, float(result.fun))
        return BackendResult(result.x, bool(result.success), int(result.nit), str(result.message))

    def _run_sqp(self, problem: Problem, options: SolveOptions) -> BackendResult:
        step = options.jacobian_step
        hard = problem.residual
        soft = problem.objective
        x0 = np.asarray(problem.x0, dtype=float)

        def objective(vec: np.ndarray) -> float:
            if soft is None:
                return 0.0
            values = np.asarray(soft(vec), dtype=float)
            return 0.5 * float(np.dot(values, values))

        def gradient(vec: np.ndarray) -> np.ndarray:
            if soft is None:
                return np.zeros_like(vec)
            values = np.asarray(soft(vec), dtype=float)
            if values.size == 0:
                return np.zeros_like(vec)
            return numeric_jacobian(soft, vec, step).T @ values

        constraints = []
        if np.asarray(hard(x0)).size:
            constraints.append(
                {
                    "type": "eq",
                    "fun": lambda vec: np.asarray(hard(vec), dtype=float),
                    "jac": lambda vec: numeric_jacobian(hard, vec, step),
                }
            )

        try:
            result = minimize(
                objective,
                x0,
                jac=gradient,
                method="SLSQP",
                constraints=constraints,
                options={"maxiter": options.max_iterations, "ftol": _tolerance(options)},
            )
        except (ValueError, np.linalg.LinAlgError) as exc:
            logger.warning("SLSQP failed to start: %s", exc)
            return BackendResult(x0.copy(), False, 0, f"SLSQP error: {exc}")

        x = np.asarray(result.x, dtype=float)
        iterations = int(result.nit)
        message = str(result.message)
        success = bool(result.success)
        logger.debug("SLSQP status=%s nit=%d fun=%.3e", result.status, iterations, float(result.fun))

        if options.sqp_refine and constraints and max_abs(np.asarray(hard(x))) > options.convergence:
            logger.debug("Refining SQP result on hard constraints")
            refined = self._run_least_squares(hard, x, "dogbox", options)
            if max_abs(np.asarray(hard(refined.x))) < max_abs(np.asarray(hard(x))):
                x = refined.x
                iterations += refined.iterations
                message = f"{message}; refined: {refined.message}"
                success = refined.success
        return BackendResult(x, success, iterations, message)


__all__ = ["BackendResult", "Problem", "ScipyBackend", "SolverBackend"]
