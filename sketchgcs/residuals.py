"""Catalog of constraint kinds and the residual functions they produce.

The built-in kinds live in the read-only :data:`CATALOG`.  Each session works
on its own :class:`ConstraintCatalog` copy, where new kinds are added by
naming their operand slots and a builder.  A builder receives the resolved
operands (geometry views for geometry slots, store indices for ``scalar``
slots) and returns a function mapping the full parameter vector to a block of
residual rows.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Dict, FrozenSet, Iterator, Mapping, Optional, Tuple

import numpy as np

from .errors import InvalidConstraint, UnknownKind
from .geometry import (
    Arc,
    ArcOfEllipse,
    ArcOfParabola,
    BSpline,
    GeometryKind,
    GeometryView,
    Line,
    Parabola,
    Point,
)

logger = logging.getLogger(__name__)

ResidualFunc = Callable[[np.ndarray], np.ndarray]

_DENOM_EPS = 1e-12

SCALAR = "scalar"

SLOT_KINDS: Mapping[str, FrozenSet[GeometryKind]] = {
    "point": frozenset({GeometryKind.POINT}),
    "line": frozenset({GeometryKind.LINE}),
    "circle": frozenset({GeometryKind.CIRCLE, GeometryKind.ARC}),
    "arc": frozenset({GeometryKind.ARC}),
    "ellipse": frozenset({GeometryKind.ELLIPSE, GeometryKind.ARC_OF_ELLIPSE}),
    "arc_of_ellipse": frozenset({GeometryKind.ARC_OF_ELLIPSE}),
    "hyperbola": frozenset({GeometryKind.HYPERBOLA, GeometryKind.ARC_OF_HYPERBOLA}),
    "arc_of_hyperbola": frozenset({GeometryKind.ARC_OF_HYPERBOLA}),
    "parabola": frozenset({GeometryKind.PARABOLA, GeometryKind.ARC_OF_PARABOLA}),
    "arc_of_parabola": frozenset({GeometryKind.ARC_OF_PARABOLA}),
    "bspline": frozenset({GeometryKind.BSPLINE}),
}


@dataclass
class ResidualSpec:
    """Residual block contributed by one constraint."""

    key: str
    func: ResidualFunc
    size: int
    kind: str
    source: Optional[int] = None


@dataclass(frozen=True)
class ConstraintKind:
    name: str
    slots: Tuple[str, ...]
    build: Callable[..., ResidualFunc]
    size: int

    @property
    def value_slot(self) -> Optional[int]:
        """Position of the trailing scalar slot measured by non-driving use."""

        for position in range(len(self.slots) - 1, -1, -1):
            if self.slots[position] == SCALAR:
                return position
        return None


_BUILTIN_KINDS: Dict[str, ConstraintKind] = {}

CATALOG: Mapping[str, ConstraintKind] = MappingProxyType(_BUILTIN_KINDS)


def _check_slots(name: str, slots: Tuple[str, ...]) -> None:
    for slot in slots:
        if slot != SCALAR and slot not in SLOT_KINDS:
            raise UnknownKind(f"unknown operand slot {slot!r} for constraint kind {name!r}")


def _builtin(name: str, *slots: str, size: int = 1):
    _check_slots(name, slots)

    def decorator(build: Callable[..., ResidualFunc]) -> Callable[..., ResidualFunc]:
        _BUILTIN_KINDS[name] = ConstraintKind(name=name, slots=tuple(slots), build=build, size=size)
        return build

    return decorator


class ConstraintCatalog:
    """Constraint kinds known to one session.

    Starts as a copy of the built-in :data:`CATALOG`; kinds registered here
    stay local to the owning session.  Existing names cannot be redefined.
    """

    def __init__(self, base: Mapping[str, ConstraintKind] = CATALOG) -> None:
        self._kinds: Dict[str, ConstraintKind] = dict(base)

    def register(self, name: str, *slots: str, size: int = 1):
        if not isinstance(name, str) or not name:
            raise InvalidConstraint(f"constraint kind name must be a non-empty string, got {name!r}")
        if name in self._kinds:
            raise InvalidConstraint(f"constraint kind {name!r} is already defined")
        if int(size) < 1:
            raise InvalidConstraint(f"constraint kind {name!r} needs at least one residual row, got {size}")
        _check_slots(name, slots)

        def decorator(build: Callable[..., ResidualFunc]) -> Callable[..., ResidualFunc]:
            self._kinds[name] = ConstraintKind(name=name, slots=tuple(slots), build=build, size=int(size))
            logger.debug("Registered constraint kind %s%s", name, tuple(slots))
            return build

        return decorator

    def lookup(self, name: str) -> ConstraintKind:
        try:
            return self._kinds[name]
        except (KeyError, TypeError):
            raise UnknownKind(f"unknown constraint kind {name!r}") from None

    def __contains__(self, name: object) -> bool:
        return name in self._kinds

    def __iter__(self) -> Iterator[str]:
        return iter(self._kinds)

    def __len__(self) -> int:
        return len(self._kinds)


def lookup_kind(name: str) -> ConstraintKind:
    """Look up a built-in constraint kind."""

    try:
        return CATALOG[name]
    except (KeyError, TypeError):
        raise UnknownKind(f"unknown constraint kind {name!r}") from None


# ---------------------------------------------------------------------------
# Vector helpers


def _xy(x: np.ndarray, p: Point) -> np.ndarray:
    return np.array([x[p.x], x[p.y]], dtype=float)


def _cross(u: np.ndarray, v: np.ndarray) -> float:
    return float(u[0] * v[1] - u[1] * v[0])


def _norm(v: np.ndarray) -> float:
    return math.sqrt(max(float(v[0] * v[0] + v[1] * v[1]), 0.0))


def _safe_norm(v: np.ndarray) -> float:
    return max(_norm(v), _DENOM_EPS)


def _wrap_angle(value: float) -> float:
    return math.atan2(math.sin(value), math.cos(value))


def _line_dir(x: np.ndarray, line: Line) -> Tuple[np.ndarray, np.ndarray]:
    a = _xy(x, line.p1)
    return a, _xy(x, line.p2) - a


def _rows(*values: float) -> np.ndarray:
    return np.array(values, dtype=float)


def _conic_frame(x: np.ndarray, center: Point, focus1: Point) -> Tuple[np.ndarray, np.ndarray, np.ndarray, float]:
    c = _xy(x, center)
    axis = _xy(x, focus1) - c
    focal = _norm(axis)
    if focal <= _DENOM_EPS:
        u = np.array([1.0, 0.0])
    else:
        u = axis / focal
    v = np.array([-u[1], u[0]])
    return c, u, v, focal


# ---------------------------------------------------------------------------
# Scalar relations


@_builtin("equal", SCALAR, SCALAR)
def _build_equal(a: int, b: int) -> ResidualFunc:
    return lambda x: _rows(x[a] - x[b])


@_builtin("difference", SCALAR, SCALAR, SCALAR)
def _build_difference(a: int, b: int, d: int) -> ResidualFunc:
    return lambda x: _rows(x[b] - x[a] - x[d])


@_builtin("proportional", SCALAR, SCALAR, SCALAR)
def _build_proportional(a: int, b: int, ratio: int) -> ResidualFunc:
    return lambda x: _rows(x[b] - x[ratio] * x[a])


@_builtin("coordinate_x", "point", SCALAR)
def _build_coordinate_x(p: Point, value: int) -> ResidualFunc:
    return lambda x: _rows(x[p.x] - x[value])


@_builtin("coordinate_y", "point", SCALAR)
def _build_coordinate_y(p: Point, value: int) -> ResidualFunc:
    return lambda x: _rows(x[p.y] - x[value])


# ---------------------------------------------------------------------------
# Points and lines


@_builtin("p2p_coincident", "point", "point", size=2)
def _build_p2p_coincident(p1: Point, p2: Point) -> ResidualFunc:
    return lambda x: _rows(x[p1.x] - x[p2.x], x[p1.y] - x[p2.y])


@_builtin("p2p_distance", "point", "point", SCALAR)
def _build_p2p_distance(p1: Point, p2: Point, distance: int) -> ResidualFunc:
    def func(x: np.ndarray) -> np.ndarray:
        return _rows(_norm(_xy(x, p2) - _xy(x, p1)) - x[distance])

    return func


@_builtin("p2p_angle", "point", "point", SCALAR)
def _build_p2p_angle(p1: Point, p2: Point, angle: int) -> ResidualFunc:
    def func(x: np.ndarray) -> np.ndarray:
        d = _xy(x, p2) - _xy(x, p1)
        return _rows(_wrap_angle(math.atan2(d[1], d[0]) - x[angle]))

    return func


@_builtin("p2l_distance", "point", "line", SCALAR)
def _build_p2l_distance(p: Point, line: Line, distance: int) -> ResidualFunc:
    def func(x: np.ndarray) -> np.ndarray:
        a, d = _line_dir(x, line)
        return _rows(abs(_cross(d, _xy(x, p) - a)) / _safe_norm(d) - x[distance])

    return func


@_builtin("point_on_line", "point", "line")
def _build_point_on_line(p: Point, line: Line) -> ResidualFunc:
    def func(x: np.ndarray) -> np.ndarray:
        a, d = _line_dir(x, line)
        return _rows(_cross(d, _xy(x, p) - a) / _safe_norm(d))

    return func


@_builtin("point_on_perp_bisector", "point", "line")
def _build_point_on_perp_bisector(p: Point, line: Line) -> ResidualFunc:
    def func(x: np.ndarray) -> np.ndarray:
        q = _xy(x, p)
        return _rows(_norm(q - _xy(x, line.p1)) - _norm(q - _xy(x, line.p2)))

    return func


@_builtin("parallel", "line", "line")
def _build_parallel(l1: Line, l2: Line) -> ResidualFunc:
    def func(x: np.ndarray) -> np.ndarray:
        _, u = _line_dir(x, l1)
        _, v = _line_dir(x, l2)
        return _rows(_cross(u, v) / (_safe_norm(u) * _safe_norm(v)))

    return func


@_builtin("perpendicular", "line", "line")
def _build_perpendicular(l1: Line, l2: Line) -> ResidualFunc:
    def func(x: np.ndarray) -> np.ndarray:
        _, u = _line_dir(x, l1)
        _, v = _line_dir(x, l2)
        return _rows(float(np.dot(u, v)) / (_safe_norm(u) * _safe_norm(v)))

    return func


@_builtin("l2l_angle", "line", "line", SCALAR)
def _build_l2l_angle(l1: Line, l2: Line, angle: int) -> ResidualFunc:
    def func(x: np.ndarray) -> np.ndarray:
        _, u = _line_dir(x, l1)
        _, v = _line_dir(x, l2)
        measured = math.atan2(_cross(u, v), float(np.dot(u, v)))
        return _rows(_wrap_angle(measured - x[angle]))

    return func


@_builtin("midpoint_on_line", "line", "line")
def _build_midpoint_on_line(l1: Line, l2: Line) -> ResidualFunc:
    def func(x: np.ndarray) -> np.ndarray:
        mid = 0.5 * (_xy(x, l1.p1) + _xy(x, l1.p2))
        a, d = _line_dir(x, l2)
        return _rows(_cross(d, mid - a) / _safe_norm(d))

    return func


@_builtin("horizontal_line", "line")
def _build_horizontal_line(line: Line) -> ResidualFunc:
    return lambda x: _rows(x[line.p1.y] - x[line.p2.y])


@_builtin("vertical_line", "line")
def _build_vertical_line(line: Line) -> ResidualFunc:
    return lambda x: _rows(x[line.p1.x] - x[line.p2.x])


@_builtin("horizontal_points", "point", "point")
def _build_horizontal_points(p1: Point, p2: Point) -> ResidualFunc:
    return lambda x: _rows(x[p1.y] - x[p2.y])


@_builtin("vertical_points", "point", "point")
def _build_vertical_points(p1: Point, p2: Point) -> ResidualFunc:
    return lambda x: _rows(x[p1.x] - x[p2.x])


@_builtin("equal_length", "line", "line")
def _build_equal_length(l1: Line, l2: Line) -> ResidualFunc:
    def func(x: np.ndarray) -> np.ndarray:
        _, u = _line_dir(x, l1)
        _, v = _line_dir(x, l2)
        return _rows(_norm(u) - _norm(v))

    return func


# ---------------------------------------------------------------------------
# Circles and arcs


@_builtin("point_on_circle", "point", "circle")
def _build_point_on_circle(p: Point, circle) -> ResidualFunc:
    def func(x: np.ndarray) -> np.ndarray:
        return _rows(_norm(_xy(x, p) - _xy(x, circle.center)) - x[circle.radius])

    return func


@_builtin("circle_radius", "circle", SCALAR)
def _build_circle_radius(circle, radius: int) -> ResidualFunc:
    return lambda x: _rows(x[circle.radius] - x[radius])


@_builtin("circle_diameter", "circle", SCALAR)
def _build_circle_diameter(circle, diameter: int) -> ResidualFunc:
    return lambda x: _rows(2.0 * x[circle.radius] - x[diameter])


@_builtin("equal_radius", "circle", "circle")
def _build_equal_radius(c1, c2) -> ResidualFunc:
    return lambda x: _rows(x[c1.radius] - x[c2.radius])


@_builtin("tangent_line_circle", "line", "circle")
def _build_tangent_line_circle(line: Line, circle) -> ResidualFunc:
    def func(x: np.ndarray) -> np.ndarray:
        a, d = _line_dir(x, line)
        dist = abs(_cross(d, _xy(x, circle.center) - a)) / _safe_norm(d)
        return _rows(dist - x[circle.radius])

    return func


@_builtin("tangent_circle_circle_external", "circle", "circle")
def _build_tangent_external(c1, c2) -> ResidualFunc:
    def func(x: np.ndarray) -> np.ndarray:
        dist = _norm(_xy(x, c2.center) - _xy(x, c1.center))
        return _rows(dist - (x[c1.radius] + x[c2.radius]))

    return func


@_builtin("tangent_circle_circle_internal", "circle", "circle")
def _build_tangent_internal(c1, c2) -> ResidualFunc:
    def func(x: np.ndarray) -> np.ndarray:
        dist = _norm(_xy(x, c2.center) - _xy(x, c1.center))
        return _rows(dist - abs(x[c1.radius] - x[c2.radius]))

    return func


@_builtin("arc_length", "arc", SCALAR)
def _build_arc_length(arc: Arc, length: int) -> ResidualFunc:
    return lambda x: _rows(x[arc.radius] * (x[arc.end_angle] - x[arc.start_angle]) - x[length])


@_builtin("arc_rules", "arc", size=4)
def _build_arc_rules(arc: Arc) -> ResidualFunc:
    def func(x: np.ndarray) -> np.ndarray:
        cx, cy = x[arc.center.x], x[arc.center.y]
        r = x[arc.radius]
        a0, a1 = x[arc.start_angle], x[arc.end_angle]
        return _rows(
            cx + r * math.cos(a0) - x[arc.start.x],
            cy + r * math.sin(a0) - x[arc.start.y],
            cx + r * math.cos(a1) - x[arc.end.x],
            cy + r * math.sin(a1) - x[arc.end.y],
        )

    return func


# ---------------------------------------------------------------------------
# Conics


@_builtin("point_on_ellipse", "point", "ellipse")
def _build_point_on_ellipse(p: Point, ellipse) -> ResidualFunc:
    def func(x: np.ndarray) -> np.ndarray:
        c = _xy(x, ellipse.center)
        f1 = _xy(x, ellipse.focus1)
        f2 = 2.0 * c - f1
        b = x[ellipse.radmin]
        a = math.sqrt(b * b + _norm(f1 - c) ** 2)
        q = _xy(x, p)
        return _rows(_norm(q - f1) + _norm(q - f2) - 2.0 * a)

    return func


def _conic_arc_rules(arc: ArcOfEllipse, hyperbolic: bool) -> ResidualFunc:
    def func(x: np.ndarray) -> np.ndarray:
        c, u, v, focal = _conic_frame(x, arc.center, arc.focus1)
        b = x[arc.radmin]
        if hyperbolic:
            a = math.sqrt(max(focal * focal - b * b, 0.0))
            along, across = math.cosh, math.sinh
        else:
            a = math.sqrt(b * b + focal * focal)
            along, across = math.cos, math.sin
        rows = []
        for t, p in ((x[arc.start_angle], arc.start), (x[arc.end_angle], arc.end)):
            expected = c + a * along(t) * u + b * across(t) * v
            rows.extend(expected - _xy(x, p))
        return np.asarray(rows, dtype=float)

    return func


@_builtin("arc_of_ellipse_rules", "arc_of_ellipse", size=4)
def _build_arc_of_ellipse_rules(arc: ArcOfEllipse) -> ResidualFunc:
    return _conic_arc_rules(arc, hyperbolic=False)


@_builtin("point_on_hyperbola", "point", "hyperbola")
def _build_point_on_hyperbola(p: Point, hyperbola) -> ResidualFunc:
    def func(x: np.ndarray) -> np.ndarray:
        c = _xy(x, hyperbola.center)
        f1 = _xy(x, hyperbola.focus1)
        f2 = 2.0 * c - f1
        b = x[hyperbola.radmin]
        a = math.sqrt(max(_norm(f1 - c) ** 2 - b * b, 0.0))
        q = _xy(x, p)
        return _rows(abs(_norm(q - f1) - _norm(q - f2)) - 2.0 * a)

    return func


@_builtin("arc_of_hyperbola_rules", "arc_of_hyperbola", size=4)
def _build_arc_of_hyperbola_rules(arc: ArcOfEllipse) -> ResidualFunc:
    return _conic_arc_rules(arc, hyperbolic=True)


@_builtin("point_on_parabola", "point", "parabola")
def _build_point_on_parabola(p: Point, parabola: Parabola) -> ResidualFunc:
    def func(x: np.ndarray) -> np.ndarray:
        vertex, u, _, focal = _conic_frame(x, parabola.vertex, parabola.focus1)
        q = _xy(x, p)
        to_focus = _norm(q - _xy(x, parabola.focus1))
        return _rows(to_focus - (float(np.dot(q - vertex, u)) + focal))

    return func


@_builtin("arc_of_parabola_rules", "arc_of_parabola", size=4)
def _build_arc_of_parabola_rules(arc: ArcOfParabola) -> ResidualFunc:
    def func(x: np.ndarray) -> np.ndarray:
        vertex, u, v, focal = _conic_frame(x, arc.vertex, arc.focus1)
        focal = max(focal, _DENOM_EPS)
        rows = []
        for t, p in ((x[arc.start_angle], arc.start), (x[arc.end_angle], arc.end)):
            expected = vertex + (t * t / (4.0 * focal)) * u + t * v
            rows.extend(expected - _xy(x, p))
        return np.asarray(rows, dtype=float)

    return func


# ---------------------------------------------------------------------------
# B-splines


@_builtin("bspline_end_rules", "bspline", size=4)
def _build_bspline_end_rules(spline: BSpline) -> ResidualFunc:
    first = spline.control_points[0]
    last = spline.control_points[-1]

    def func(x: np.ndarray) -> np.ndarray:
        return _rows(
            x[spline.start.x] - x[first.x],
            x[spline.start.y] - x[first.y],
            x[spline.end.x] - x[last.x],
            x[spline.end.y] - x[last.y],
        )

    return func


def describe_operand(operand: object) -> str:
    if isinstance(operand, GeometryView):
        return f"<{operand.kind.value}>"
    return f"p{operand}"


__all__ = [
    "CATALOG",
    "ConstraintCatalog",
    "ConstraintKind",
    "ResidualFunc",
    "ResidualSpec",
    "SCALAR",
    "SLOT_KINDS",
    "describe_operand",
    "lookup_kind",
]
