"""Solver façade, configuration, backends and diagnostics."""

from .backends import BackendResult, Problem, ScipyBackend, SolverBackend
from .diagnosis import Diagnosis, diagnose
from .facade import SolverFacade, SolveStatus
from .options import Algorithm, DebugMode, SolveOptions

__all__ = [
    "Algorithm",
    "BackendResult",
    "DebugMode",
    "Diagnosis",
    "Problem",
    "ScipyBackend",
    "SolveOptions",
    "SolveStatus",
    "SolverBackend",
    "SolverFacade",
    "diagnose",
]
