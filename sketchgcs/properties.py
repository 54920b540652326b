"""Property addressing: map ``{geometry, property}`` to a parameter offset.

Each geometry kind lays its own scalar parameters out in a canonical block
(see :meth:`GeometryView.own_indices`).  Fixed-arity kinds have a static
offset table.  B-splines are variable-arity: their start/end coordinates sit
after the poles, weights and knots, so the offset depends on the instance.
"""

from __future__ import annotations

from typing import Callable, Dict, Mapping, Optional, Tuple, Union

from .errors import UnknownProperty
from .geometry import BSplineShape, GeometryKind, GeometryView

ShapeLike = Union[BSplineShape, GeometryView, None]

PROPERTY_OFFSETS: Mapping[GeometryKind, Mapping[str, int]] = {
    GeometryKind.POINT: {"x": 0, "y": 1},
    GeometryKind.LINE: {},
    GeometryKind.CIRCLE: {"radius": 0},
    GeometryKind.ARC: {"start_angle": 0, "end_angle": 1, "radius": 2},
    GeometryKind.ELLIPSE: {"radmin": 0},
    GeometryKind.ARC_OF_ELLIPSE: {"start_angle": 0, "end_angle": 1, "radmin": 2},
    GeometryKind.HYPERBOLA: {"radmin": 0},
    GeometryKind.ARC_OF_HYPERBOLA: {"start_angle": 0, "end_angle": 1, "radmin": 2},
    GeometryKind.PARABOLA: {},
    GeometryKind.ARC_OF_PARABOLA: {"start_angle": 0, "end_angle": 1},
}

# relative to the end of poles + weights + knots
_BSPLINE_TAIL_OFFSETS: Mapping[str, int] = {"start_x": 0, "start_y": 1, "end_x": 2, "end_y": 3}


def _static_offset(kind: GeometryKind, shape: ShapeLike, prop: str) -> int:
    offsets = PROPERTY_OFFSETS[kind]
    if prop not in offsets:
        raise UnknownProperty(kind.value, prop)
    return offsets[prop]


def _bspline_offset(kind: GeometryKind, shape: ShapeLike, prop: str) -> int:
    if prop not in _BSPLINE_TAIL_OFFSETS:
        raise UnknownProperty(kind.value, prop)
    if isinstance(shape, GeometryView):
        shape = shape.shape()
    if not isinstance(shape, BSplineShape):
        raise UnknownProperty(kind.value, prop, "offset needs the instance shape")
    counts = (shape.num_control_points, shape.num_weights, shape.num_knots)
    if any(count < 0 for count in counts):
        raise UnknownProperty(kind.value, prop, f"inconsistent shape {shape}")
    if shape.num_weights != shape.num_control_points:
        raise UnknownProperty(kind.value, prop, f"inconsistent shape {shape}: one weight per control point")
    base = 2 * shape.num_control_points + shape.num_weights + shape.num_knots
    return base + _BSPLINE_TAIL_OFFSETS[prop]


_RESOLVERS: Dict[GeometryKind, Callable[[GeometryKind, ShapeLike, str], int]] = {
    kind: _static_offset for kind in PROPERTY_OFFSETS
}
_RESOLVERS[GeometryKind.BSPLINE] = _bspline_offset


def resolve_offset(kind: Union[GeometryKind, str], shape: ShapeLike, property_name: str) -> int:
    """Return the offset of ``property_name`` inside the kind's own block."""

    kind = GeometryKind.parse(kind)
    if not isinstance(property_name, str):
        raise UnknownProperty(kind.value, repr(property_name))
    return _RESOLVERS[kind](kind, shape, property_name)


def properties_of(kind: Union[GeometryKind, str]) -> Tuple[str, ...]:
    kind = GeometryKind.parse(kind)
    if kind is GeometryKind.BSPLINE:
        return tuple(_BSPLINE_TAIL_OFFSETS)
    return tuple(PROPERTY_OFFSETS[kind])


def property_index(view: GeometryView, property_name: str, shape: Optional[BSplineShape] = None) -> int:
    """Return the store index addressed by ``property_name`` on ``view``.

    A ``shape`` passed explicitly must match the instance's own shape.
    """

    declared = view.shape()
    if shape is not None and shape != declared:
        raise UnknownProperty(
            view.kind.value, property_name, f"shape {shape} does not match the instance shape {declared}"
        )
    offset = resolve_offset(view.kind, declared, property_name)
    block = view.own_indices()
    if offset >= len(block):
        raise UnknownProperty(
            view.kind.value,
            property_name,
            f"offset {offset} outside block of {len(block)} parameter(s)",
        )
    return block[offset]


__all__ = ["PROPERTY_OFFSETS", "properties_of", "property_index", "resolve_offset"]
