"""Error types raised by the sketch solver core."""

from __future__ import annotations


class GcsError(Exception):
    """Base class for all solver core errors."""


class IndexOutOfRange(GcsError, IndexError):
    """Raised when a parameter index was never allocated in the store."""

    def __init__(self, index: int, size: int, reason: str = ""):
        message = f"parameter index {index} out of range (store size {size})"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.index = index
        self.size = size


class UnknownProperty(GcsError, LookupError):
    """Raised when a property name is not addressable for a geometry kind."""

    def __init__(self, kind: str, prop: str, reason: str = ""):
        message = f"Unknown property {prop!r} for primitive <{kind}>"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.kind = kind
        self.prop = prop


class UnresolvedReference(GcsError, LookupError):
    """Raised when a constraint references a missing or later object."""


class UnknownKind(GcsError, ValueError):
    """Raised for out-of-range geometry, constraint, algorithm or debug kinds."""


class InvalidConstraint(GcsError, ValueError):
    """Raised when constraint operands or modifiers do not fit the kind."""


class OverlappingBlock(GcsError, ValueError):
    """Raised when two geometries claim the same own parameter."""


__all__ = [
    "GcsError",
    "IndexOutOfRange",
    "UnknownProperty",
    "UnresolvedReference",
    "UnknownKind",
    "InvalidConstraint",
    "OverlappingBlock",
]
