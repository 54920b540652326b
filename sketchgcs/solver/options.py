"""Solver configuration values and the algorithm / debug-mode selectors."""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Dict, Mapping, Union

from ..errors import UnknownKind


class Algorithm(Enum):
    DOGLEG = "dogleg"
    LEVENBERG_MARQUARDT = "levenberg_marquardt"
    BFGS = "bfgs"
    SQP = "sqp"

    @classmethod
    def parse(cls, value: Union["Algorithm", str, int]) -> "Algorithm":
        """Accept an enum member, a name (``"DogLeg"``, ``"lm"``) or a legacy code."""

        return _parse_enum(cls, value, _ALGORITHM_ALIASES, _ALGORITHM_CODES, "algorithm")

    @classmethod
    def parse_request(cls, value: Union["Algorithm", str, int]) -> "Algorithm":
        """Like :meth:`parse` but only for algorithms a caller may ask for."""

        algorithm = cls.parse(value)
        if algorithm is cls.SQP:
            raise UnknownKind(
                "algorithm 'sqp' cannot be requested; it is selected when temporary constraints exist"
            )
        return algorithm


class DebugMode(Enum):
    NONE = "none"
    MINIMAL = "minimal"
    ITERATION = "iteration"

    @classmethod
    def parse(cls, value: Union["DebugMode", str, int]) -> "DebugMode":
        return _parse_enum(cls, value, _DEBUG_ALIASES, _DEBUG_CODES, "debug mode")


_ALGORITHM_ALIASES: Dict[str, Algorithm] = {
    "dogleg": Algorithm.DOGLEG,
    "dl": Algorithm.DOGLEG,
    "levenberg_marquardt": Algorithm.LEVENBERG_MARQUARDT,
    "levenbergmarquardt": Algorithm.LEVENBERG_MARQUARDT,
    "lm": Algorithm.LEVENBERG_MARQUARDT,
    "bfgs": Algorithm.BFGS,
    "sqp": Algorithm.SQP,
}
# historical integer selectors
_ALGORITHM_CODES: Dict[int, Algorithm] = {
    0: Algorithm.BFGS,
    1: Algorithm.LEVENBERG_MARQUARDT,
    2: Algorithm.DOGLEG,
}

_DEBUG_ALIASES: Dict[str, DebugMode] = {
    "none": DebugMode.NONE,
    "nodebug": DebugMode.NONE,
    "minimal": DebugMode.MINIMAL,
    "iteration": DebugMode.ITERATION,
    "iterationlevel": DebugMode.ITERATION,
    "periteration": DebugMode.ITERATION,
}
_DEBUG_CODES: Dict[int, DebugMode] = {0: DebugMode.NONE, 1: DebugMode.MINIMAL, 2: DebugMode.ITERATION}


def _parse_enum(enum_cls, value, aliases: Mapping[str, Any], codes: Mapping[int, Any], label: str):
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        key = value.strip().lower().replace("-", "_")
        if key in aliases:
            return aliases[key]
        if key.replace("_", "") in aliases:
            return aliases[key.replace("_", "")]
    elif isinstance(value, numbers.Integral) and not isinstance(value, bool):
        if int(value) in codes:
            return codes[int(value)]
    valid_names = ", ".join(member.value for member in enum_cls)
    valid_codes = ", ".join(f"{code}={member.value}" for code, member in codes.items())
    raise UnknownKind(f"invalid {label} {value!r} (expected one of: {valid_names}; or code {valid_codes})")


@dataclass(frozen=True)
class SolveOptions:
    """Plain configuration handed to the solver backend and diagnosis."""

    max_iterations: int = 100
    convergence: float = 1e-10
    debug_mode: DebugMode = DebugMode.NONE
    rank_tolerance: float = 1e-8
    conflict_tolerance: float = 1e-6
    jacobian_step: float = 1e-7
    sqp_refine: bool = True

    def __post_init__(self) -> None:
        if isinstance(self.max_iterations, bool) or not isinstance(self.max_iterations, numbers.Integral):
            raise ValueError(f"max_iterations must be an integer, got {self.max_iterations!r}")
        if self.max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {self.max_iterations}")
        for name in ("convergence", "rank_tolerance", "conflict_tolerance", "jacobian_step"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, numbers.Real):
                raise ValueError(f"{name} must be a real number, got {value!r}")
            if not math.isfinite(float(value)) or float(value) <= 0.0:
                raise ValueError(f"{name} must be positive and finite, got {value!r}")
        object.__setattr__(self, "debug_mode", DebugMode.parse(self.debug_mode))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "SolveOptions":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"unknown solver option(s): {', '.join(unknown)}")
        return cls(**dict(data))

    def with_changes(self, **changes: Any) -> "SolveOptions":
        return replace(self, **changes)


__all__ = ["Algorithm", "DebugMode", "SolveOptions"]
