from __future__ import annotations

from typing import Callable

import numpy as np

VectorFunc = Callable[[np.ndarray], np.ndarray]


def numeric_jacobian(func: VectorFunc, x: np.ndarray, step: float) -> np.ndarray:
    """Central-difference Jacobian of ``func`` at ``x`` (rows = outputs)."""

    x = np.asarray(x, dtype=float)
    base = np.atleast_1d(np.asarray(func(x), dtype=float))
    jac = np.zeros((base.shape[0], x.shape[0]), dtype=float)
    if base.shape[0] == 0:
        return jac
    probe = x.copy()
    for j in range(x.shape[0]):
        h = step * max(1.0, abs(x[j]))
        probe[j] = x[j] + h
        forward = np.atleast_1d(np.asarray(func(probe), dtype=float))
        probe[j] = x[j] - h
        backward = np.atleast_1d(np.asarray(func(probe), dtype=float))
        probe[j] = x[j]
        jac[:, j] = (forward - backward) / (2.0 * h)
    return jac


def max_abs(values: np.ndarray) -> float:
    return float(np.max(np.abs(values))) if np.size(values) else 0.0


def pad_rows(values: np.ndarray, rows: int) -> np.ndarray:
    """Pad a residual vector with zeros up to ``rows`` entries."""

    if values.shape[0] >= rows:
        return values
    return np.concatenate([values, np.zeros(rows - values.shape[0], dtype=float)])


__all__ = ["max_abs", "numeric_jacobian", "pad_rows"]
