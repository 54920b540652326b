"""Constraint registration against geometry views and scalar references."""

from __future__ import annotations

import logging
import math
import numbers
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Set, Tuple, Union

import numpy as np

from .errors import InvalidConstraint, UnresolvedReference
from .geometry import GeometryTable, GeometryView, check_view
from .logging_utils import debug_log_call
from .params import ParameterStore
from .properties import property_index
from .residuals import SCALAR, SLOT_KINDS, ConstraintCatalog, ConstraintKind, ResidualSpec, describe_operand

logger = logging.getLogger(__name__)

_MEASURE_STEPS = 25


@dataclass(frozen=True)
class Modifiers:
    """Per-constraint flags: ``driving``, ``temporary`` and residual ``scale``."""

    driving: bool = True
    temporary: bool = False
    scale: float = 1.0

    def __post_init__(self) -> None:
        if not isinstance(self.scale, numbers.Real) or isinstance(self.scale, bool):
            raise InvalidConstraint(f"scale must be a real number, got {self.scale!r}")
        if not math.isfinite(float(self.scale)) or float(self.scale) <= 0.0:
            raise InvalidConstraint(f"scale must be positive and finite, got {self.scale!r}")


@dataclass(frozen=True)
class Literal:
    value: float


@dataclass(frozen=True)
class Param:
    name: str


@dataclass(frozen=True)
class PropertyRef:
    geometry_id: int
    property: str


ScalarRef = Union[Literal, Param, PropertyRef, float, int, str]


@dataclass(frozen=True)
class _PendingLiteral:
    value: float


@dataclass
class Constraint:
    """A registered constraint with its resolved operands."""

    id: int
    kind: str
    operands: Tuple[object, ...]
    modifiers: Modifiers
    tag: int
    residual: ResidualSpec
    owned_params: Tuple[int, ...] = ()
    value_index: Optional[int] = None

    @property
    def driving(self) -> bool:
        return self.modifiers.driving

    @property
    def temporary(self) -> bool:
        return self.modifiers.temporary

    @property
    def scale(self) -> float:
        return float(self.modifiers.scale)

    @property
    def size(self) -> int:
        return self.residual.size

    def evaluate(self, x: np.ndarray) -> np.ndarray:
        vals = np.atleast_1d(np.asarray(self.residual.func(x), dtype=float))
        if vals.shape[0] != self.residual.size:
            raise ValueError(
                f"Residual {self.residual.key} expected size {self.residual.size}, got {vals.shape[0]}"
            )
        return vals * self.scale


class ConstraintRegistry:
    """Owns the constraints of one session and their residual blocks."""

    def __init__(
        self, store: ParameterStore, geometries: GeometryTable, catalog: Optional[ConstraintCatalog] = None
    ) -> None:
        self.store = store
        self.geometries = geometries
        self.catalog = catalog if catalog is not None else ConstraintCatalog()
        self.named_params: Dict[str, int] = {}
        self._constraints: Dict[int, Constraint] = {}

    # ------------------------------------------------------------------
    # Named parameters

    def define_param(self, name: str, value: float, fixed: bool = False, tag: int = 0) -> int:
        if not isinstance(name, str) or not name:
            raise ValueError(f"parameter name must be a non-empty string, got {name!r}")
        if name in self.named_params:
            raise ValueError(f"parameter {name!r} is already defined")
        index = self.store.push(value, fixed, tag)
        self.named_params[name] = index
        return index

    def param_index(self, name: str) -> int:
        try:
            return self.named_params[name]
        except KeyError:
            raise UnresolvedReference(f"unknown parameter {name!r}") from None

    def register_kind(self, name: str, *slots: str, size: int = 1):
        return self.catalog.register(name, *slots, size=size)

    # ------------------------------------------------------------------
    # Operand resolution (no mutation)

    def _resolve_object(self, object_id: object, new_id: int, what: str) -> GeometryView:
        if isinstance(object_id, bool) or not isinstance(object_id, (int, np.integer)):
            raise InvalidConstraint(f"{what} must be a geometry id or view, got {object_id!r}")
        object_id = int(object_id)
        if object_id >= new_id:
            raise UnresolvedReference(f"{what} references #{object_id}, which is not constructed yet")
        if object_id in self._constraints:
            raise UnresolvedReference(f"{what} references constraint #{object_id}, not a geometry")
        if object_id not in self.geometries:
            raise UnresolvedReference(f"{what} references unknown geometry #{object_id}")
        return self.geometries.get(object_id)

    def _resolve_geometry(self, slot: str, operand: object, new_id: int, position: int) -> GeometryView:
        what = f"operand {position}"
        if isinstance(operand, GeometryView):
            view = check_view(self.store, operand)
        else:
            view = self._resolve_object(operand, new_id, what)
        if view.kind not in SLOT_KINDS[slot]:
            expected = ", ".join(sorted(kind.value for kind in SLOT_KINDS[slot]))
            raise InvalidConstraint(f"{what} must be one of ({expected}), got <{view.kind.value}>")
        return view

    def _resolve_scalar(self, operand: object, new_id: int, position: int) -> Union[int, _PendingLiteral]:
        if isinstance(operand, bool):
            raise InvalidConstraint(f"operand {position}: booleans are not scalar values")
        if isinstance(operand, Literal):
            operand = operand.value
        if isinstance(operand, numbers.Real):
            value = float(operand)
            if not math.isfinite(value):
                raise InvalidConstraint(f"operand {position}: literal must be finite, got {operand!r}")
            return _PendingLiteral(value)
        if isinstance(operand, str):
            operand = Param(operand)
        if isinstance(operand, Param):
            if operand.name not in self.named_params:
                raise UnresolvedReference(f"operand {position}: unknown parameter {operand.name!r}")
            return self.named_params[operand.name]
        if isinstance(operand, PropertyRef):
            view = self._resolve_object(operand.geometry_id, new_id, f"operand {position}")
            return property_index(view, operand.property)
        raise InvalidConstraint(f"operand {position}: cannot use {operand!r} as a scalar")

    # ------------------------------------------------------------------
    # Registration

    @debug_log_call(logger)
    def add(
        self,
        kind: str,
        operands: Sequence[object],
        modifiers: Optional[Modifiers] = None,
        tag: int = 0,
    ) -> int:
        spec: ConstraintKind = self.catalog.lookup(kind)
        modifiers = modifiers or Modifiers()
        operands = tuple(operands)
        if len(operands) != len(spec.slots):
            raise InvalidConstraint(
                f"constraint {kind!r} takes {len(spec.slots)} operand(s), got {len(operands)}"
            )

        new_id = self.geometries.next_id
        resolved: List[object] = []
        for position, (slot, operand) in enumerate(zip(spec.slots, operands)):
            if slot == SCALAR:
                resolved.append(self._resolve_scalar(operand, new_id, position))
            else:
                resolved.append(self._resolve_geometry(slot, operand, new_id, position))

        # everything validated; from here on only allocation
        owned: List[int] = []
        value_index: Optional[int] = None
        for position, item in enumerate(resolved):
            if isinstance(item, _PendingLiteral):
                index = self.store.push(item.value, fixed=True, tag=tag)
                resolved[position] = index
                owned.append(index)
                if position == spec.value_slot:
                    value_index = index

        constraint_id = self.geometries.reserve_id()
        key = f"{kind}#{constraint_id}(" + ",".join(describe_operand(op) for op in resolved) + ")"
        residual = ResidualSpec(
            key=key,
            func=spec.build(*resolved),
            size=spec.size,
            kind=kind,
            source=constraint_id,
        )
        self._constraints[constraint_id] = Constraint(
            id=constraint_id,
            kind=kind,
            operands=tuple(resolved),
            modifiers=modifiers,
            tag=int(tag),
            residual=residual,
            owned_params=tuple(owned),
            value_index=value_index,
        )
        logger.debug(
            "Registered constraint #%d %s tag=%d driving=%s temporary=%s scale=%g",
            constraint_id,
            kind,
            tag,
            modifiers.driving,
            modifiers.temporary,
            modifiers.scale,
        )
        return constraint_id

    def remove_by_tag(self, tag: int) -> List[int]:
        removed = [cid for cid, constraint in self._constraints.items() if constraint.tag == tag]
        for constraint_id in removed:
            del self._constraints[constraint_id]
        retired = self.store.retire(tag)
        logger.info(
            "Removed %d constraint(s) and retired %d parameter(s) with tag=%d",
            len(removed),
            len(retired),
            tag,
        )
        return removed

    def clear(self) -> None:
        self._constraints.clear()
        self.named_params.clear()

    # ------------------------------------------------------------------
    # Queries

    def get(self, constraint_id: int) -> Constraint:
        try:
            return self._constraints[constraint_id]
        except KeyError:
            raise UnresolvedReference(f"constraint #{constraint_id} does not exist") from None

    def __len__(self) -> int:
        return len(self._constraints)

    def __contains__(self, constraint_id: object) -> bool:
        return constraint_id in self._constraints

    def __iter__(self) -> Iterator[Constraint]:
        for constraint_id in sorted(self._constraints):
            yield self._constraints[constraint_id]

    def tags(self) -> Set[int]:
        return {constraint.tag for constraint in self._constraints.values()}

    def has_temporary(self) -> bool:
        return any(constraint.temporary for constraint in self._constraints.values())

    def hard(self) -> List[Constraint]:
        """Driving, non-temporary constraints in construction order."""

        return [c for c in self if c.driving and not c.temporary]

    def temporary(self) -> List[Constraint]:
        return [c for c in self if c.driving and c.temporary]

    # ------------------------------------------------------------------
    # Measurement of non-driving constraints

    def measure(self, x: np.ndarray) -> Dict[int, float]:
        """Return measured values for non-driving constraints at ``x``.

        The value parameter of each non-driving constraint is moved until its
        residual vanishes while every other parameter is held at ``x``.
        """

        measured: Dict[int, float] = {}
        for constraint in self:
            index = constraint.value_index
            if constraint.driving or index is None or constraint.size != 1:
                continue
            measured[index] = _measure_value(constraint, index, x)
        return measured

    def commit_measurements(self, x: np.ndarray) -> Dict[int, float]:
        measured = self.measure(x)
        for index, value in measured.items():
            if math.isfinite(value):
                self.store.set(index, value, fixed=True)
        return measured


def _measure_value(constraint: Constraint, index: int, x: np.ndarray) -> float:
    vec = np.array(x, dtype=float)
    for _ in range(_MEASURE_STEPS):
        r = float(constraint.residual.func(vec)[0])
        if abs(r) <= 1e-14:
            break
        step = 1e-7 * max(1.0, abs(vec[index]))
        vec[index] += step
        r_step = float(constraint.residual.func(vec)[0])
        vec[index] -= step
        slope = (r_step - r) / step
        if abs(slope) <= 1e-14:
            logger.debug("Cannot measure %s: residual does not depend on its value", constraint.residual.key)
            break
        vec[index] -= r / slope
    return float(vec[index])


__all__ = [
    "Constraint",
    "ConstraintRegistry",
    "Literal",
    "Modifiers",
    "Param",
    "PropertyRef",
    "ScalarRef",
]
