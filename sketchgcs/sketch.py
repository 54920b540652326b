"""Solving session bundling the store, geometry table, registry and solver."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Set, Tuple, Union

from .constraints import ConstraintRegistry, Modifiers
from .geometry import (
    Arc,
    ArcOfEllipse,
    ArcOfHyperbola,
    ArcOfParabola,
    BSpline,
    Ellipse,
    GeometryBuilder,
    GeometryTable,
    GeometryView,
    Hyperbola,
    Parabola,
    Point,
    validate_bspline_shape,
)
from .params import ParameterStore
from .properties import property_index
from .solver import Algorithm, SolveOptions, SolverBackend, SolverFacade, SolveStatus

logger = logging.getLogger(__name__)

Coord = Tuple[float, float]


class Sketch:
    """One independent solving session.

    Geometry ``add_*`` methods allocate the geometry's own parameter block in
    canonical order, build the view and register it.  Arc-like geometries get
    their companion rules constraint through the ordinary registration path,
    with the geometry's tag.
    """

    def __init__(self, options: Optional[SolveOptions] = None, backend: Optional[SolverBackend] = None) -> None:
        self.params = ParameterStore()
        self.geometries = GeometryTable()
        self.builder = GeometryBuilder(self.params)
        self.constraints = ConstraintRegistry(self.params, self.geometries)
        self.solver = SolverFacade(self.params, self.constraints, options, backend)

    # ------------------------------------------------------------------
    # Parameters

    def add_param(self, name: str, value: float, fixed: bool = False, tag: int = 0) -> int:
        return self.constraints.define_param(name, value, fixed, tag)

    def param(self, name: str) -> float:
        return self.params.get(self.constraints.param_index(name))

    def _push(self, values: Sequence[float], fixed: bool, tag: int) -> List[int]:
        return self.params.push_many(values, fixed, tag)

    # ------------------------------------------------------------------
    # Geometry

    def geometry(self, object_id: int) -> GeometryView:
        return self.geometries.get(object_id)

    def _point(self, object_id: Union[int, Point]) -> Point:
        if isinstance(object_id, Point):
            return self.builder.check(object_id)
        view = self.geometries.get(object_id)
        if not isinstance(view, Point):
            raise TypeError(f"geometry #{object_id} is <{view.kind.value}>, expected a point")
        return view

    def add_point(self, x: float, y: float, fixed: bool = False, tag: int = 0) -> int:
        ix, iy = self._push((x, y), fixed, tag)
        return self.geometries.add(self.builder.make_point(ix, iy), tag)

    def add_line(self, p1: Union[int, Point], p2: Union[int, Point], tag: int = 0) -> int:
        return self.geometries.add(self.builder.make_line(self._point(p1), self._point(p2)), tag)

    def add_circle(self, center: Union[int, Point], radius: float, fixed: bool = False, tag: int = 0) -> int:
        center_view = self._point(center)
        (ir,) = self._push((radius,), fixed, tag)
        return self.geometries.add(self.builder.make_circle(center_view, ir), tag)

    def add_arc(
        self,
        center: Union[int, Point],
        start: Union[int, Point],
        end: Union[int, Point],
        start_angle: float,
        end_angle: float,
        radius: float,
        fixed: bool = False,
        tag: int = 0,
    ) -> int:
        points = (self._point(center), self._point(start), self._point(end))
        block = self._push((start_angle, end_angle, radius), fixed, tag)
        arc: Arc = self.builder.make_arc(*points, *block)
        object_id = self.geometries.add(arc, tag)
        self.add_constraint("arc_rules", object_id, tag=tag)
        return object_id

    def add_ellipse(
        self, center: Union[int, Point], focus1: Union[int, Point], radmin: float, fixed: bool = False, tag: int = 0
    ) -> int:
        center_view, focus_view = self._point(center), self._point(focus1)
        (ib,) = self._push((radmin,), fixed, tag)
        ellipse: Ellipse = self.builder.make_ellipse(center_view, focus_view, ib)
        return self.geometries.add(ellipse, tag)

    def add_arc_of_ellipse(
        self,
        center: Union[int, Point],
        focus1: Union[int, Point],
        start: Union[int, Point],
        end: Union[int, Point],
        start_angle: float,
        end_angle: float,
        radmin: float,
        fixed: bool = False,
        tag: int = 0,
    ) -> int:
        points = tuple(self._point(p) for p in (center, focus1, start, end))
        block = self._push((start_angle, end_angle, radmin), fixed, tag)
        arc: ArcOfEllipse = self.builder.make_arc_of_ellipse(*points, *block)
        object_id = self.geometries.add(arc, tag)
        self.add_constraint("arc_of_ellipse_rules", object_id, tag=tag)
        return object_id

    def add_hyperbola(
        self, center: Union[int, Point], focus1: Union[int, Point], radmin: float, fixed: bool = False, tag: int = 0
    ) -> int:
        center_view, focus_view = self._point(center), self._point(focus1)
        (ib,) = self._push((radmin,), fixed, tag)
        hyperbola: Hyperbola = self.builder.make_hyperbola(center_view, focus_view, ib)
        return self.geometries.add(hyperbola, tag)

    def add_arc_of_hyperbola(
        self,
        center: Union[int, Point],
        focus1: Union[int, Point],
        start: Union[int, Point],
        end: Union[int, Point],
        start_angle: float,
        end_angle: float,
        radmin: float,
        fixed: bool = False,
        tag: int = 0,
    ) -> int:
        points = tuple(self._point(p) for p in (center, focus1, start, end))
        block = self._push((start_angle, end_angle, radmin), fixed, tag)
        arc: ArcOfHyperbola = self.builder.make_arc_of_hyperbola(*points, *block)
        object_id = self.geometries.add(arc, tag)
        self.add_constraint("arc_of_hyperbola_rules", object_id, tag=tag)
        return object_id

    def add_parabola(self, vertex: Union[int, Point], focus1: Union[int, Point], tag: int = 0) -> int:
        parabola: Parabola = self.builder.make_parabola(self._point(vertex), self._point(focus1))
        return self.geometries.add(parabola, tag)

    def add_arc_of_parabola(
        self,
        vertex: Union[int, Point],
        focus1: Union[int, Point],
        start: Union[int, Point],
        end: Union[int, Point],
        start_angle: float,
        end_angle: float,
        fixed: bool = False,
        tag: int = 0,
    ) -> int:
        points = tuple(self._point(p) for p in (vertex, focus1, start, end))
        block = self._push((start_angle, end_angle), fixed, tag)
        arc: ArcOfParabola = self.builder.make_arc_of_parabola(*points, *block)
        object_id = self.geometries.add(arc, tag)
        self.add_constraint("arc_of_parabola_rules", object_id, tag=tag)
        return object_id

    def add_bspline(
        self,
        control_points: Sequence[Coord],
        weights: Sequence[float],
        knots: Sequence[float],
        multiplicities: Sequence[int],
        degree: int,
        periodic: bool = False,
        start: Optional[Coord] = None,
        end: Optional[Coord] = None,
        fixed: bool = False,
        tag: int = 0,
    ) -> int:
        """Allocate poles, weights, knots, then start and end coordinates.

        The whole block is validated before the first slot is pushed.
        """

        validate_bspline_shape(len(control_points), len(weights), len(knots), len(multiplicities), degree)
        start = start if start is not None else control_points[0]
        end = end if end is not None else control_points[-1]
        coords = [tuple(item) for item in (*control_points, start, end)]
        for item in coords:
            if len(item) != 2:
                raise ValueError(f"bspline coordinates must be (x, y) pairs, got {item!r}")
        values: List[float] = [c for pole in coords[:-2] for c in pole]
        values.extend(weights)
        values.extend(knots)
        values.extend(coords[-2] + coords[-1])
        block = self._push(values, fixed, tag)

        npoles = len(control_points)
        poles = [self.builder.make_point(block[2 * i], block[2 * i + 1]) for i in range(npoles)]
        offset = 2 * npoles
        weight_ids = block[offset : offset + len(weights)]
        offset += len(weights)
        knot_ids = block[offset : offset + len(knots)]
        start_view = self.builder.make_point(block[-4], block[-3])
        end_view = self.builder.make_point(block[-2], block[-1])
        spline: BSpline = self.builder.make_bspline(
            start_view, end_view, poles, weight_ids, knot_ids, multiplicities, degree, periodic
        )
        object_id = self.geometries.add(spline, tag)
        if not periodic:
            self.add_constraint("bspline_end_rules", object_id, tag=tag)
        return object_id

    # ------------------------------------------------------------------
    # Values

    def value_of(self, object_id: int, prop: str) -> float:
        return self.params.get(property_index(self.geometries.get(object_id), prop))

    def point_coords(self, object_id: Union[int, Point]) -> Coord:
        point = self._point(object_id)
        return (self.params.get(point.x), self.params.get(point.y))

    # ------------------------------------------------------------------
    # Constraints

    def add_constraint(
        self,
        kind: str,
        *operands: object,
        driving: bool = True,
        temporary: bool = False,
        scale: float = 1.0,
        tag: int = 0,
    ) -> int:
        modifiers = Modifiers(driving=driving, temporary=temporary, scale=scale)
        return self.constraints.add(kind, operands, modifiers, tag)

    def register_kind(self, name: str, *slots: str, size: int = 1):
        """Decorator adding a constraint kind to this session only."""

        return self.constraints.register_kind(name, *slots, size=size)

    def remove_by_tag(self, tag: int) -> List[int]:
        removed = self.constraints.remove_by_tag(tag)
        self.geometries.remove_by_tag(tag)
        return removed

    # ------------------------------------------------------------------
    # Solving

    def solve(self, algorithm: Union[Algorithm, str, int] = Algorithm.DOGLEG) -> SolveStatus:
        return self.solver.solve(algorithm)

    def apply(self, best_effort: bool = False) -> bool:
        return self.solver.apply(best_effort)

    def degrees_of_freedom(self) -> int:
        return self.solver.degrees_of_freedom()

    def has_conflicting(self) -> bool:
        return self.solver.has_conflicting()

    def has_redundant(self) -> bool:
        return self.solver.has_redundant()

    def has_partially_redundant(self) -> bool:
        return self.solver.has_partially_redundant()

    def conflicting(self) -> Set[int]:
        return self.solver.conflicting()

    def redundant(self) -> Set[int]:
        return self.solver.redundant()

    def partially_redundant(self) -> Set[int]:
        return self.solver.partially_redundant()

    def clear(self) -> None:
        logger.info(
            "Clearing sketch: %d parameter(s), %d geometry(ies), %d constraint(s)",
            self.params.size(),
            len(self.geometries),
            len(self.constraints),
        )
        self.constraints.clear()
        self.geometries.clear()
        self.params.clear()
        self.solver.reset()


__all__ = ["Sketch"]
