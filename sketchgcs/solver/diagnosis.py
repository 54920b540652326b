"""Rank-based classification of conflicting and redundant constraints."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Set

import numpy as np

from ..constraints import Constraint
from .math_utils import numeric_jacobian
from .options import SolveOptions

logger = logging.getLogger(__name__)


@dataclass
class Diagnosis:
    """Outcome of analysing the hard-constraint Jacobian at one point."""

    rank: int = 0
    dof: int = 0
    conflicting_ids: Set[int] = field(default_factory=set)
    redundant_ids: Set[int] = field(default_factory=set)
    partially_redundant_ids: Set[int] = field(default_factory=set)
    conflicting: Set[int] = field(default_factory=set)
    redundant: Set[int] = field(default_factory=set)
    partially_redundant: Set[int] = field(default_factory=set)
    groups: List[Set[int]] = field(default_factory=list)


def _stack(constraints: Sequence[Constraint], full: np.ndarray) -> np.ndarray:
    blocks = [c.evaluate(full) for c in constraints]
    if not blocks:
        return np.zeros(0, dtype=float)
    return np.concatenate(blocks)


def diagnose(
    constraints: Sequence[Constraint],
    full: np.ndarray,
    free: np.ndarray,
    options: SolveOptions,
) -> Diagnosis:
    """Classify ``constraints`` (hard ones, in construction order) at ``full``.

    Rows are scanned in order; a row lying in the span of the earlier
    independent rows is dependent and forms a group with the constraints its
    expansion uses.  Unsatisfied groups are conflicting, satisfied ones
    redundant.
    """

    free = np.asarray(free, dtype=int)
    full = np.asarray(full, dtype=float)
    owners: List[int] = []
    for position, constraint in enumerate(constraints):
        owners.extend([position] * constraint.size)

    def sub_residual(values: np.ndarray) -> np.ndarray:
        vec = full.copy()
        vec[free] = values
        return _stack(constraints, vec)

    residuals = _stack(constraints, full)
    jac = numeric_jacobian(sub_residual, full[free], options.jacobian_step)
    rows, cols = jac.shape

    scale = max(1.0, float(np.max(np.linalg.norm(jac, axis=1)))) if rows else 1.0
    tol = options.rank_tolerance * scale
    basis: List[np.ndarray] = []
    independent: List[int] = []
    dependent: List[int] = []
    for i in range(rows):
        v = jac[i].copy()
        for _ in range(2):
            for q in basis:
                v -= float(np.dot(q, v)) * q
        norm = float(np.linalg.norm(v)) if cols else 0.0
        if norm <= tol:
            dependent.append(i)
        else:
            basis.append(v / norm)
            independent.append(i)

    rank = len(independent)
    diagnosis = Diagnosis(rank=rank, dof=int(free.size) - rank)
    if not dependent:
        return diagnosis

    satisfied: Dict[int, bool] = {}
    offset = 0
    for position, constraint in enumerate(constraints):
        block = residuals[offset : offset + constraint.size]
        satisfied[position] = bool(np.all(np.abs(block) <= options.conflict_tolerance))
        offset += constraint.size

    indep_matrix = jac[independent].T if independent else np.zeros((cols, 0))
    redundant_rows: Dict[int, int] = {}
    for i in dependent:
        members = {owners[i]}
        if independent and cols:
            coeffs, *_ = np.linalg.lstsq(indep_matrix, jac[i], rcond=None)
            cutoff = 1e-8 * max(1.0, float(np.max(np.abs(coeffs))))
            members.update(owners[independent[k]] for k in np.flatnonzero(np.abs(coeffs) > cutoff))
        ids = {constraints[m].id for m in members}
        diagnosis.groups.append(ids)
        if all(satisfied[m] for m in members):
            redundant_rows[owners[i]] = redundant_rows.get(owners[i], 0) + 1
        else:
            diagnosis.conflicting_ids.update(ids)

    for position, count in redundant_rows.items():
        constraint = constraints[position]
        if constraint.id in diagnosis.conflicting_ids:
            continue
        if count >= constraint.size:
            diagnosis.redundant_ids.add(constraint.id)
        else:
            diagnosis.partially_redundant_ids.add(constraint.id)

    tag_of = {c.id: c.tag for c in constraints}
    diagnosis.conflicting = {tag_of[i] for i in diagnosis.conflicting_ids}
    diagnosis.redundant = {tag_of[i] for i in diagnosis.redundant_ids}
    diagnosis.partially_redundant = {tag_of[i] for i in diagnosis.partially_redundant_ids}
    logger.debug(
        "Diagnosis rank=%d dof=%d groups=%d conflicting=%s redundant=%s partial=%s",
        diagnosis.rank,
        diagnosis.dof,
        len(diagnosis.groups),
        sorted(diagnosis.conflicting_ids),
        sorted(diagnosis.redundant_ids),
        sorted(diagnosis.partially_redundant_ids),
    )
    return diagnosis


__all__ = ["Diagnosis", "diagnose"]
