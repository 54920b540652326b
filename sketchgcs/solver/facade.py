"""Solve orchestration: variable selection, algorithm choice and diagnostics."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Set, Union

import numpy as np

from ..constraints import Constraint, ConstraintRegistry
from ..logging_utils import IterationTracer
from ..params import ParameterStore
from .backends import BackendResult, Problem, ScipyBackend, SolverBackend
from .diagnosis import Diagnosis, diagnose
from .math_utils import max_abs
from .options import Algorithm, DebugMode, SolveOptions

logger = logging.getLogger(__name__)


@dataclass
class SolveStatus:
    """Outcome of one solve attempt; non-convergence is a normal status."""

    converged: bool
    algorithm: Algorithm
    dof: int
    conflicting: Set[int] = field(default_factory=set)
    redundant: Set[int] = field(default_factory=set)
    partially_redundant: Set[int] = field(default_factory=set)
    max_residual: float = 0.0
    iterations: int = 0
    message: str = ""

    def __bool__(self) -> bool:
        return self.converged


def _evaluator(constraints: List[Constraint], full: np.ndarray, free: np.ndarray) -> Callable[[np.ndarray], np.ndarray]:
    def func(values: np.ndarray) -> np.ndarray:
        vec = full.copy()
        vec[free] = values
        blocks = [c.evaluate(vec) for c in constraints]
        if not blocks:
            return np.zeros(0, dtype=float)
        return np.concatenate(blocks)

    return func


class SolverFacade:
    """Runs solves for one session and keeps the latest diagnostics."""

    def __init__(
        self,
        store: ParameterStore,
        registry: ConstraintRegistry,
        options: Optional[SolveOptions] = None,
        backend: Optional[SolverBackend] = None,
    ) -> None:
        self.store = store
        self.registry = registry
        self.options = options or SolveOptions()
        self.backend = backend or ScipyBackend()
        self.last_status: Optional[SolveStatus] = None
        self.last_diagnosis: Optional[Diagnosis] = None
        self._free: Optional[np.ndarray] = None
        self._solution: Optional[np.ndarray] = None
        self._generation = store.generation

    def effective_algorithm(self, requested: Union[Algorithm, str, int]) -> Algorithm:
        algorithm = Algorithm.parse_request(requested)
        if self.registry.has_temporary():
            if algorithm is not Algorithm.SQP:
                logger.info(
                    "Temporary constraints present: overriding algorithm %s with %s",
                    algorithm.value,
                    Algorithm.SQP.value,
                )
            return Algorithm.SQP
        return algorithm

    def solve(self, algorithm: Union[Algorithm, str, int] = Algorithm.DOGLEG) -> SolveStatus:
        options = self.options
        effective = self.effective_algorithm(algorithm)
        full = self.store.snapshot()
        free = self.store.free_indices()
        hard = self.registry.hard()
        temporary = self.registry.temporary() if effective is Algorithm.SQP else []

        verbose = options.debug_mode is not DebugMode.NONE
        tracer = IterationTracer(logger, "residual", enabled=options.debug_mode is DebugMode.ITERATION)
        hard_eval = _evaluator(hard, full, free)
        problem = Problem(
            x0=full[free].copy(),
            residual=tracer.wrap(hard_eval),
            objective=_evaluator(temporary, full, free) if temporary else None,
        )
        log = logger.info if verbose else logger.debug
        log(
            "Solving with algorithm=%s backend=%s free=%d fixed=%d hard=%d temporary=%d",
            effective.value,
            self.backend.name,
            free.size,
            self.store.size() - free.size,
            len(hard),
            len(temporary),
        )

        result: BackendResult = self.backend.run(problem, effective, options)
        solution = np.asarray(result.x, dtype=float)
        max_res = max_abs(hard_eval(solution))
        converged = bool(np.isfinite(max_res) and max_res <= options.convergence)

        finite = bool(np.all(np.isfinite(solution)))
        solved_full = full.copy()
        if finite:
            solved_full[free] = solution
        diagnosis = diagnose(hard, solved_full, free, options)

        self._free = free
        self._solution = solution if finite else None
        self._generation = self.store.generation
        self.last_diagnosis = diagnosis
        status = SolveStatus(
            converged=converged,
            algorithm=effective,
            dof=diagnosis.dof,
            conflicting=set(diagnosis.conflicting),
            redundant=set(diagnosis.redundant),
            partially_redundant=set(diagnosis.partially_redundant),
            max_residual=max_res,
            iterations=result.iterations,
            message=result.message,
        )
        self.last_status = status
        log(
            "Solve finished converged=%s max_residual=%.3e iterations=%d evaluations=%d dof=%d",
            converged,
            max_res,
            result.iterations,
            tracer.evaluations,
            diagnosis.dof,
        )
        if diagnosis.conflicting or diagnosis.redundant or diagnosis.partially_redundant:
            log(
                "Diagnostics conflicting=%s redundant=%s partially_redundant=%s",
                sorted(diagnosis.conflicting),
                sorted(diagnosis.redundant),
                sorted(diagnosis.partially_redundant),
            )
        return status

    def apply(self, best_effort: bool = False) -> bool:
        """Commit the last solution into the store.

        Returns ``False`` (and changes nothing) when no solve ran, when the
        store was cleared since, or when the solve failed and ``best_effort``
        is not set.
        """

        status = self.last_status
        if status is None or self._solution is None or self._free is None:
            return False
        if self._generation != self.store.generation:
            logger.debug("Store was cleared after the last solve; nothing to apply")
            return False
        if not status.converged and not best_effort:
            return False
        self.store.update(self._free, self._solution)
        self.registry.commit_measurements(self.store.snapshot())
        return True

    def reset(self) -> None:
        self.last_status = None
        self.last_diagnosis = None
        self._free = None
        self._solution = None
        self._generation = self.store.generation

    # ------------------------------------------------------------------
    # Diagnostics of the last attempt

    def _diagnosis(self) -> Diagnosis:
        return self.last_diagnosis or Diagnosis()

    def degrees_of_freedom(self) -> int:
        return self._diagnosis().dof

    def has_conflicting(self) -> bool:
        return bool(self._diagnosis().conflicting_ids)

    def has_redundant(self) -> bool:
        return bool(self._diagnosis().redundant_ids)

    def has_partially_redundant(self) -> bool:
        return bool(self._diagnosis().partially_redundant_ids)

    def conflicting(self) -> Set[int]:
        return set(self._diagnosis().conflicting)

    def redundant(self) -> Set[int]:
        return set(self._diagnosis().redundant)

    def partially_redundant(self) -> Set[int]:
        return set(self._diagnosis().partially_redundant)


__all__ = ["SolveStatus", "SolverFacade"]
