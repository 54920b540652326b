"""Flat parameter store backing every geometric degree of freedom."""

from __future__ import annotations

import logging
import math
from typing import Iterable, List, Sequence

import numpy as np

from .errors import IndexOutOfRange

logger = logging.getLogger(__name__)

_INITIAL_CAPACITY = 16


class ParameterStore:
    """Append-only arena of scalar slots with fixed flags and allocation tags.

    Slots are addressed by integer indices handed out by :meth:`push`.  Indices
    are never recycled: the only way to release slots is :meth:`clear`, which
    drops all of them at once and bumps :attr:`generation`.
    """

    def __init__(self, capacity: int = _INITIAL_CAPACITY) -> None:
        capacity = max(int(capacity), 1)
        self._values = np.zeros(capacity, dtype=float)
        self._fixed = np.zeros(capacity, dtype=bool)
        self._tags = np.zeros(capacity, dtype=np.int64)
        self._retired: set[int] = set()
        self._size = 0
        self.generation = 0

    # ------------------------------------------------------------------
    # Allocation

    def _grow(self, needed: int) -> None:
        capacity = self._values.shape[0]
        if needed <= capacity:
            return
        while capacity < needed:
            capacity *= 2
        for name in ("_values", "_fixed", "_tags"):
            old = getattr(self, name)
            new = np.zeros(capacity, dtype=old.dtype)
            new[: self._size] = old[: self._size]
            setattr(self, name, new)

    def push(self, value: float, fixed: bool = False, tag: int = 0) -> int:
        value = _finite(value)
        self._grow(self._size + 1)
        index = self._size
        self._values[index] = value
        self._fixed[index] = bool(fixed)
        self._tags[index] = int(tag)
        self._size += 1
        return index

    def push_many(self, values: Iterable[float], fixed: bool = False, tag: int = 0) -> List[int]:
        """Append a block of slots; nothing is written unless every value is finite."""

        checked = [_finite(value) for value in values]
        self._grow(self._size + len(checked))
        start = self._size
        end = start + len(checked)
        self._values[start:end] = checked
        self._fixed[start:end] = bool(fixed)
        self._tags[start:end] = int(tag)
        self._size = end
        return list(range(start, end))

    def clear(self) -> None:
        logger.debug("Clearing parameter store with %d slots", self._size)
        self._values = np.zeros(_INITIAL_CAPACITY, dtype=float)
        self._fixed = np.zeros(_INITIAL_CAPACITY, dtype=bool)
        self._tags = np.zeros(_INITIAL_CAPACITY, dtype=np.int64)
        self._retired.clear()
        self._size = 0
        self.generation += 1

    # ------------------------------------------------------------------
    # Access

    def check(self, index: int) -> int:
        if isinstance(index, bool) or not isinstance(index, (int, np.integer)):
            raise TypeError(f"parameter index must be an int, got {type(index).__name__}")
        index = int(index)
        if index < 0 or index >= self._size:
            raise IndexOutOfRange(index, self._size)
        return index

    def get(self, index: int) -> float:
        return float(self._values[self.check(index)])

    def set(self, index: int, value: float, fixed: bool) -> None:
        index = self.check(index)
        value = _finite(value)
        self._values[index] = value
        self._fixed[index] = bool(fixed)

    def is_fixed(self, index: int) -> bool:
        return bool(self._fixed[self.check(index)])

    def tag_of(self, index: int) -> int:
        return int(self._tags[self.check(index)])

    def is_retired(self, index: int) -> bool:
        return self.check(index) in self._retired

    def size(self) -> int:
        return self._size

    def __len__(self) -> int:
        return self._size

    def snapshot(self) -> np.ndarray:
        return self._values[: self._size].copy()

    def free_indices(self) -> np.ndarray:
        return np.flatnonzero(~self._fixed[: self._size])

    # ------------------------------------------------------------------
    # Bulk operations used by the solver

    def update(self, indices: Sequence[int], values: Iterable[float]) -> int:
        """Write ``values`` into the free slots among ``indices``.

        Fixed slots are skipped.  Every index is validated before anything is
        written.  Returns the number of slots updated.
        """

        checked = [self.check(i) for i in indices]
        vals = np.asarray(list(values), dtype=float)
        if vals.shape[0] != len(checked):
            raise ValueError(f"expected {len(checked)} values, got {vals.shape[0]}")
        if not np.all(np.isfinite(vals)):
            raise ValueError("refusing to store non-finite parameter values")
        written = 0
        for index, value in zip(checked, vals):
            if self._fixed[index]:
                continue
            self._values[index] = value
            written += 1
        return written

    def retire(self, tag: int) -> List[int]:
        """Pin every parameter allocated with ``tag`` and mark it retired."""

        hits = np.flatnonzero(self._tags[: self._size] == int(tag))
        retired = [int(i) for i in hits if int(i) not in self._retired]
        for index in retired:
            self._fixed[index] = True
            self._retired.add(index)
        if retired:
            logger.debug("Retired %d parameter(s) with tag=%d", len(retired), tag)
        return retired

    def __repr__(self) -> str:
        return f"ParameterStore(size={self._size}, free={int(self.free_indices().size)})"


def _finite(value: float) -> float:
    value = float(value)
    if not math.isfinite(value):
        raise ValueError(f"parameter value must be finite, got {value!r}")
    return value


__all__ = ["ParameterStore"]
