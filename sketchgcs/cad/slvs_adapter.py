"""SolveSpace cross-check adapter for sketches."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Mapping, Optional, Tuple, Union

from python_solvespace import slvs

from ..constraints import Constraint
from ..geometry import Circle, GeometryKind, Line, Point

if TYPE_CHECKING:
    from ..sketch import Sketch

logger = logging.getLogger(__name__)

Point2D = Tuple[float, float]
_IndexPair = Tuple[int, int]

# Mapping table documenting how sketch entities are emitted.
CAD_MAPPING_TABLE: Mapping[str, Mapping[str, str]] = {
    "entities": {
        "point": "point #id -> add_point_2d(x, y) (dragged when both coordinates are fixed)",
        "line": "line #id -> add_line_2d(p1, p2)",
        "circle": "circle #id -> add_circle(normal, center, radius) (+ diameter when radius fixed)",
    },
    "constraints": {
        "p2p_coincident": "coincident(p1, p2)",
        "p2p_distance": "distance(p1, p2, d)",
        "point_on_line": "coincident(p, line)",
        "point_on_circle": "coincident(p, circle)",
        "parallel": "parallel(l1, l2)",
        "perpendicular": "perpendicular(l1, l2)",
        "l2l_angle": "angle(l1, l2, degrees(a))",
        "equal_length": "length_diff(l1, l2, 0)",
    },
}


@dataclass
class SlvsAdapterOptions:
    """Options controlling the SolveSpace adapter."""

    drag_fixed: bool = True
    skip_unsupported: bool = True


@dataclass
class AdapterOK:
    """Successful SolveSpace solve; ``coords`` is keyed by point geometry id."""

    coords: Dict[int, Point2D]
    dof: int
    unsupported: List[int] = field(default_factory=list)


@dataclass
class AdapterFail:
    """Failure information when SolveSpace cannot satisfy the constraints.

    ``failures`` holds the sketch constraint ids SolveSpace reported, or
    ``-1`` when the solver failed without naming a constraint.
    """

    failures: List[int]
    dof: int
    unsupported: List[int] = field(default_factory=list)


AdapterResult = Union[AdapterOK, AdapterFail]


class _EntityMap:
    """Deduplicates SolveSpace entities for sketch geometry."""

    def __init__(self, sketch: "Sketch", system: slvs.SolverSystem, wp: slvs.Entity, drag_fixed: bool) -> None:
        self._sketch = sketch
        self._system = system
        self._wp = wp
        self._drag_fixed = drag_fixed
        self.points: Dict[_IndexPair, slvs.Entity] = {}
        self.lines: Dict[int, slvs.Entity] = {}
        self.circles: Dict[int, slvs.Entity] = {}
        self.constraint_count = 0

    def point(self, view: Point) -> slvs.Entity:
        key = (view.x, view.y)
        entity = self.points.get(key)
        if entity is not None:
            return entity
        store = self._sketch.params
        entity = self._system.add_point_2d(wp=self._wp, u=store.get(view.x), v=store.get(view.y))
        if self._drag_fixed and store.is_fixed(view.x) and store.is_fixed(view.y):
            self._system.dragged(entity, self._wp)
            self.constraint_count += 1
        self.points[key] = entity
        return entity

    def line(self, object_id: int, view: Line) -> slvs.Entity:
        entity = self.lines.get(object_id)
        if entity is None:
            entity = self._system.add_line_2d(wp=self._wp, p1=self.point(view.p1), p2=self.point(view.p2))
            self.lines[object_id] = entity
        return entity

    def circle(self, object_id: int, view: Circle) -> slvs.Entity:
        entity = self.circles.get(object_id)
        if entity is not None:
            return entity
        store = self._sketch.params
        radius = store.get(view.radius)
        normal = self._system.add_normal_2d(wp=self._wp)
        entity = self._system.add_circle(wp=self._wp, nm=normal, ct=self.point(view.center), radius=radius)
        if store.is_fixed(view.radius):
            self._system.diameter(entity, 2.0 * radius, self._wp)
            self.constraint_count += 1
        self.circles[object_id] = entity
        return entity


class SlvsAdapter:
    """Mirrors the point/line/circle subset of a sketch into SolveSpace."""

    def solve_sketch(self, sketch: "Sketch", options: Optional[SlvsAdapterOptions] = None) -> AdapterResult:
        options = options or SlvsAdapterOptions()
        system = slvs.SolverSystem()
        wp = system.create_2d_base()
        entities = _EntityMap(sketch, system, wp, options.drag_fixed)

        point_ids: Dict[int, _IndexPair] = {}
        for object_id, view in sketch.geometries:
            if view.kind is GeometryKind.POINT:
                entities.point(view)
                point_ids[object_id] = (view.x, view.y)
            elif view.kind is GeometryKind.LINE:
                entities.line(object_id, view)
            elif view.kind is GeometryKind.CIRCLE:
                entities.circle(object_id, view)

        # SolveSpace numbers constraints from 1 in creation order; dragged
        # points and fixed radii take handles too
        emitted: Dict[int, int] = {}
        unsupported: List[int] = []
        for constraint in sketch.constraints:
            if not constraint.driving or constraint.temporary:
                continue
            if not self._emit(sketch, system, wp, entities, constraint):
                unsupported.append(constraint.id)
                continue
            entities.constraint_count += 1
            emitted[entities.constraint_count] = constraint.id

        if unsupported:
            logger.info("SolveSpace adapter skipped unsupported constraint(s): %s", unsupported)
            if not options.skip_unsupported:
                return AdapterFail([], system.dof(), unsupported)

        result = system.solve()
        failures = list(system.failures())
        logger.debug(
            "SolveSpace result=%s failures=%s dof=%d constraints=%d",
            result,
            failures,
            system.dof(),
            entities.constraint_count,
        )
        if failures or result != slvs.ResultFlag.OKAY:
            mapped = sorted({emitted.get(int(handle), -1) for handle in failures}) or [-1]
            return AdapterFail(mapped, system.dof(), unsupported)

        coords: Dict[int, Point2D] = {}
        for object_id, key in point_ids.items():
            params = system.params(entities.points[key].params)
            coords[object_id] = (float(params[0]), float(params[1]))
        return AdapterOK(coords=coords, dof=system.dof(), unsupported=unsupported)

    def _emit(
        self,
        sketch: "Sketch",
        system: slvs.SolverSystem,
        wp: slvs.Entity,
        entities: _EntityMap,
        constraint: Constraint,
    ) -> bool:
        kind = constraint.kind
        ops = constraint.operands
        store = sketch.params

        def line_of(view: Line) -> slvs.Entity:
            for object_id, candidate in sketch.geometries:
                if candidate == view:
                    return entities.line(object_id, candidate)
            return system.add_line_2d(wp=wp, p1=entities.point(view.p1), p2=entities.point(view.p2))

        def circle_of(view) -> Optional[slvs.Entity]:
            if view.kind is not GeometryKind.CIRCLE:
                return None
            for object_id, candidate in sketch.geometries:
                if candidate == view:
                    return entities.circle(object_id, candidate)
            return None

        if kind == "p2p_coincident":
            system.coincident(entities.point(ops[0]), entities.point(ops[1]), wp)
        elif kind == "p2p_distance":
            system.distance(entities.point(ops[0]), entities.point(ops[1]), store.get(ops[2]), wp)
        elif kind == "point_on_line":
            system.coincident(entities.point(ops[0]), line_of(ops[1]), wp)
        elif kind == "point_on_circle":
            circle = circle_of(ops[1])
            if circle is None:
                return False
            system.coincident(entities.point(ops[0]), circle, wp)
        elif kind == "parallel":
            system.parallel(line_of(ops[0]), line_of(ops[1]), wp)
        elif kind == "perpendicular":
            system.perpendicular(line_of(ops[0]), line_of(ops[1]), wp)
        elif kind == "l2l_angle":
            system.angle(line_of(ops[0]), line_of(ops[1]), math.degrees(store.get(ops[2])), wp)
        elif kind == "equal_length":
            system.length_diff(line_of(ops[0]), line_of(ops[1]), 0.0, wp)
        else:
            return False
        return True


__all__ = [
    "AdapterFail",
    "AdapterOK",
    "AdapterResult",
    "CAD_MAPPING_TABLE",
    "SlvsAdapter",
    "SlvsAdapterOptions",
]
