"""Debug tracing helpers shared by the registry and the solver."""

from __future__ import annotations

import logging
import reprlib
from functools import wraps
from typing import Any, Callable, Mapping, Sequence, TypeVar, cast

import numpy as np

F = TypeVar("F", bound=Callable[..., Any])

_short = reprlib.Repr()
_short.maxlist = 6
_short.maxtuple = 6
_short.maxstring = 60
_short.maxother = 120

_MAX_INLINE = 6


def summarize(value: Any) -> str:
    """One-line rendering for log records.

    Arrays show shape and range, geometry views show their kind and own
    block, everything else goes through a size-capped ``reprlib``.
    """

    if isinstance(value, np.ndarray):
        if value.size == 0:
            return f"array{tuple(value.shape)}"
        if value.size <= _MAX_INLINE:
            return f"array({np.array2string(value, precision=6, separator=', ')})"
        return f"array{tuple(value.shape)}[{float(np.min(value)):.4g}..{float(np.max(value)):.4g}]"
    kind = getattr(value, "kind", None)
    own = getattr(value, "own_indices", None)
    if kind is not None and callable(own):
        block = own()
        head = ",".join(str(i) for i in block[:_MAX_INLINE])
        tail = ",..." if len(block) > _MAX_INLINE else ""
        return f"<{getattr(kind, 'value', kind)} [{head}{tail}]>"
    if isinstance(value, (list, tuple)) and len(value) <= _MAX_INLINE:
        inner = ", ".join(summarize(item) for item in value)
        return f"({inner})" if isinstance(value, tuple) else f"[{inner}]"
    return _short.repr(value)


def _call_summary(args: Sequence[Any], kwargs: Mapping[str, Any]) -> str:
    rendered = [summarize(arg) for arg in args]
    rendered.extend(f"{key}={summarize(val)}" for key, val in kwargs.items())
    return ", ".join(rendered)


def debug_log_call(logger: logging.Logger, name: str = "", log_result: bool = True) -> Callable[[F], F]:
    """Decorator tracing calls of ``func`` on ``logger`` at DEBUG.

    Bound methods are traced without ``self``.  Exceptions are logged with
    their message and re-raised untouched.
    """

    def decorator(func: F) -> F:
        label = name or func.__qualname__

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any):
            if not logger.isEnabledFor(logging.DEBUG):
                return func(*args, **kwargs)
            shown = args[1:] if args and hasattr(args[0], func.__name__) else args
            logger.debug("%s(%s)", label, _call_summary(shown, kwargs))
            try:
                result = func(*args, **kwargs)
            except Exception as exc:
                logger.debug("%s failed: %s: %s", label, type(exc).__name__, exc)
                raise
            logger.debug("%s -> %s", label, summarize(result) if log_result else "done")
            return result

        return cast(F, wrapper)

    return decorator


class IterationTracer:
    """Wrap a residual function and log every evaluation.

    ``enabled`` is decided once by the caller; a disabled tracer only counts
    evaluations.
    """

    def __init__(self, logger: logging.Logger, label: str, *, enabled: bool = False) -> None:
        self.logger = logger
        self.label = label
        self.enabled = enabled
        self.evaluations = 0

    def wrap(self, func: Callable[[np.ndarray], np.ndarray]) -> Callable[[np.ndarray], np.ndarray]:
        @wraps(func)
        def traced(vec: np.ndarray) -> np.ndarray:
            values = func(vec)
            self.evaluations += 1
            if self.enabled:
                norm = float(np.linalg.norm(values)) if np.size(values) else 0.0
                self.logger.info(
                    "%s evaluation %d: |r|=%.6e x=%s", self.label, self.evaluations, norm, summarize(vec)
                )
            return values

        return traced


__all__ = ["IterationTracer", "debug_log_call", "summarize"]
