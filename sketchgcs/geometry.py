"""Typed geometry views over indices into a :class:`ParameterStore`."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Dict, Iterator, List, Optional, Sequence, Tuple, Union

from .errors import IndexOutOfRange, OverlappingBlock, UnknownKind, UnresolvedReference
from .params import ParameterStore

logger = logging.getLogger(__name__)


class GeometryKind(str, Enum):
    POINT = "point"
    LINE = "line"
    CIRCLE = "circle"
    ARC = "arc"
    ELLIPSE = "ellipse"
    ARC_OF_ELLIPSE = "arc_of_ellipse"
    HYPERBOLA = "hyperbola"
    ARC_OF_HYPERBOLA = "arc_of_hyperbola"
    PARABOLA = "parabola"
    ARC_OF_PARABOLA = "arc_of_parabola"
    BSPLINE = "bspline"

    @classmethod
    def parse(cls, value: Union["GeometryKind", str]) -> "GeometryKind":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.lower())
            except ValueError:
                pass
        valid = ", ".join(kind.value for kind in cls)
        raise UnknownKind(f"unknown geometry kind {value!r} (expected one of: {valid})")


@dataclass(frozen=True)
class BSplineShape:
    """Runtime sizes that determine a B-spline's parameter block layout."""

    num_control_points: int
    num_weights: int
    num_knots: int

    @property
    def block_size(self) -> int:
        return 2 * self.num_control_points + self.num_weights + self.num_knots + 4


class GeometryView:
    """Common interface for all geometry views."""

    kind: GeometryKind

    def own_indices(self) -> Tuple[int, ...]:
        """Indices of this geometry's own block in canonical order."""

        raise NotImplementedError

    def indices(self) -> Tuple[int, ...]:
        """Every index the view references, own block included."""

        return self.own_indices()

    def shape(self) -> Optional[BSplineShape]:
        return None


@dataclass(frozen=True)
class Point(GeometryView):
    x: int
    y: int
    kind = GeometryKind.POINT

    def own_indices(self) -> Tuple[int, ...]:
        return (self.x, self.y)


@dataclass(frozen=True)
class Line(GeometryView):
    p1: Point
    p2: Point
    kind = GeometryKind.LINE

    def own_indices(self) -> Tuple[int, ...]:
        return ()

    def indices(self) -> Tuple[int, ...]:
        return self.p1.indices() + self.p2.indices()


@dataclass(frozen=True)
class Circle(GeometryView):
    center: Point
    radius: int
    kind = GeometryKind.CIRCLE

    def own_indices(self) -> Tuple[int, ...]:
        return (self.radius,)

    def indices(self) -> Tuple[int, ...]:
        return self.center.indices() + self.own_indices()


@dataclass(frozen=True)
class Arc(GeometryView):
    center: Point
    start: Point
    end: Point
    start_angle: int
    end_angle: int
    radius: int
    kind = GeometryKind.ARC

    def own_indices(self) -> Tuple[int, ...]:
        return (self.start_angle, self.end_angle, self.radius)

    def indices(self) -> Tuple[int, ...]:
        return self.center.indices() + self.start.indices() + self.end.indices() + self.own_indices()


@dataclass(frozen=True)
class Ellipse(GeometryView):
    center: Point
    focus1: Point
    radmin: int
    kind = GeometryKind.ELLIPSE

    def own_indices(self) -> Tuple[int, ...]:
        return (self.radmin,)

    def indices(self) -> Tuple[int, ...]:
        return self.center.indices() + self.focus1.indices() + self.own_indices()


@dataclass(frozen=True)
class ArcOfEllipse(GeometryView):
    center: Point
    focus1: Point
    start: Point
    end: Point
    start_angle: int
    end_angle: int
    radmin: int
    kind = GeometryKind.ARC_OF_ELLIPSE

    def own_indices(self) -> Tuple[int, ...]:
        return (self.start_angle, self.end_angle, self.radmin)

    def indices(self) -> Tuple[int, ...]:
        return (
            self.center.indices()
            + self.focus1.indices()
            + self.start.indices()
            + self.end.indices()
            + self.own_indices()
        )


@dataclass(frozen=True)
class Hyperbola(Ellipse):
    kind = GeometryKind.HYPERBOLA


@dataclass(frozen=True)
class ArcOfHyperbola(ArcOfEllipse):
    kind = GeometryKind.ARC_OF_HYPERBOLA


@dataclass(frozen=True)
class Parabola(GeometryView):
    vertex: Point
    focus1: Point
    kind = GeometryKind.PARABOLA

    def own_indices(self) -> Tuple[int, ...]:
        return ()

    def indices(self) -> Tuple[int, ...]:
        return self.vertex.indices() + self.focus1.indices()


@dataclass(frozen=True)
class ArcOfParabola(GeometryView):
    vertex: Point
    focus1: Point
    start: Point
    end: Point
    start_angle: int
    end_angle: int
    kind = GeometryKind.ARC_OF_PARABOLA

    def own_indices(self) -> Tuple[int, ...]:
        return (self.start_angle, self.end_angle)

    def indices(self) -> Tuple[int, ...]:
        return (
            self.vertex.indices()
            + self.focus1.indices()
            + self.start.indices()
            + self.end.indices()
            + self.own_indices()
        )


@dataclass(frozen=True)
class BSpline(GeometryView):
    start: Point
    end: Point
    control_points: Tuple[Point, ...]
    weights: Tuple[int, ...]
    knots: Tuple[int, ...]
    multiplicities: Tuple[int, ...]
    degree: int
    periodic: bool = False
    kind = GeometryKind.BSPLINE

    def own_indices(self) -> Tuple[int, ...]:
        block: List[int] = []
        for pole in self.control_points:
            block.extend((pole.x, pole.y))
        block.extend(self.weights)
        block.extend(self.knots)
        block.extend((self.start.x, self.start.y, self.end.x, self.end.y))
        return tuple(block)

    def shape(self) -> BSplineShape:
        return BSplineShape(len(self.control_points), len(self.weights), len(self.knots))


AnyGeometry = Union[
    Point, Line, Circle, Arc, Ellipse, ArcOfEllipse, Hyperbola, ArcOfHyperbola, Parabola, ArcOfParabola, BSpline
]


def _parts(view: GeometryView) -> Iterator[GeometryView]:
    yield view
    for item in fields(view):
        value = getattr(view, item.name)
        if isinstance(value, GeometryView):
            yield value
        elif isinstance(value, tuple):
            yield from (part for part in value if isinstance(part, GeometryView))


def check_view(store: ParameterStore, view: GeometryView) -> GeometryView:
    """Validate every index of ``view`` against ``store``.

    Views produced by a :class:`GeometryBuilder` remember the store and store
    generation they were bound in; such a view is rejected once that store is
    cleared or when it is handed to a different store.
    """

    for part in _parts(view):
        origin = getattr(part, "_origin", None)
        if origin is None:
            continue
        bound_store, generation = origin
        if bound_store is not store or generation != store.generation:
            indices = part.indices()
            raise IndexOutOfRange(
                indices[0] if indices else -1,
                store.size(),
                f"<{part.kind.value}> view belongs to another or already cleared store",
            )
    for index in view.indices():
        store.check(index)
    return view


def validate_bspline_shape(
    num_control_points: int, num_weights: int, num_knots: int, num_multiplicities: int, degree: int
) -> None:
    if num_control_points < 2:
        raise ValueError(f"bspline needs at least 2 control points, got {num_control_points}")
    if num_weights != num_control_points:
        raise ValueError(
            f"bspline needs one weight per control point ({num_weights} weights, "
            f"{num_control_points} control points)"
        )
    if num_multiplicities != num_knots:
        raise ValueError(f"bspline needs one multiplicity per knot ({num_multiplicities} vs {num_knots})")
    if int(degree) < 1:
        raise ValueError(f"bspline degree must be >= 1, got {degree}")


class GeometryBuilder:
    """Bind already-allocated store indices into typed geometry views.

    The builder never allocates parameters; every index it receives must
    already exist in the store.
    """

    def __init__(self, store: ParameterStore) -> None:
        self.store = store

    def check(self, view: GeometryView) -> GeometryView:
        return check_view(self.store, view)

    def _checked(self, view: GeometryView) -> GeometryView:
        check_view(self.store, view)
        object.__setattr__(view, "_origin", (self.store, self.store.generation))
        return view

    def make_point(self, x: int, y: int) -> Point:
        return self._checked(Point(int(x), int(y)))

    def make_line(self, p1: Point, p2: Point) -> Line:
        return self._checked(Line(p1, p2))

    def make_circle(self, center: Point, radius: int) -> Circle:
        return self._checked(Circle(center, int(radius)))

    def make_arc(
        self, center: Point, start: Point, end: Point, start_angle: int, end_angle: int, radius: int
    ) -> Arc:
        return self._checked(Arc(center, start, end, int(start_angle), int(end_angle), int(radius)))

    def make_ellipse(self, center: Point, focus1: Point, radmin: int) -> Ellipse:
        return self._checked(Ellipse(center, focus1, int(radmin)))

    def make_arc_of_ellipse(
        self,
        center: Point,
        focus1: Point,
        start: Point,
        end: Point,
        start_angle: int,
        end_angle: int,
        radmin: int,
    ) -> ArcOfEllipse:
        return self._checked(
            ArcOfEllipse(center, focus1, start, end, int(start_angle), int(end_angle), int(radmin))
        )

    def make_hyperbola(self, center: Point, focus1: Point, radmin: int) -> Hyperbola:
        return self._checked(Hyperbola(center, focus1, int(radmin)))

    def make_arc_of_hyperbola(
        self,
        center: Point,
        focus1: Point,
        start: Point,
        end: Point,
        start_angle: int,
        end_angle: int,
        radmin: int,
    ) -> ArcOfHyperbola:
        return self._checked(
            ArcOfHyperbola(center, focus1, start, end, int(start_angle), int(end_angle), int(radmin))
        )

    def make_parabola(self, vertex: Point, focus1: Point) -> Parabola:
        return self._checked(Parabola(vertex, focus1))

    def make_arc_of_parabola(
        self, vertex: Point, focus1: Point, start: Point, end: Point, start_angle: int, end_angle: int
    ) -> ArcOfParabola:
        return self._checked(ArcOfParabola(vertex, focus1, start, end, int(start_angle), int(end_angle)))

    def make_bspline(
        self,
        start: Point,
        end: Point,
        control_points: Sequence[Point],
        weights: Sequence[int],
        knots: Sequence[int],
        multiplicities: Sequence[int],
        degree: int,
        periodic: bool = False,
    ) -> BSpline:
        validate_bspline_shape(len(control_points), len(weights), len(knots), len(multiplicities), degree)
        view = BSpline(
            start=start,
            end=end,
            control_points=tuple(control_points),
            weights=tuple(int(w) for w in weights),
            knots=tuple(int(k) for k in knots),
            multiplicities=tuple(int(m) for m in multiplicities),
            degree=int(degree),
            periodic=bool(periodic),
        )
        return self._checked(view)


@dataclass
class _Entry:
    view: GeometryView
    tag: int


@dataclass
class GeometryTable:
    """Registered geometry views keyed by object id.

    Object ids come from one sequence shared with constraints, so a lower id
    always means "constructed earlier".
    """

    _entries: Dict[int, _Entry] = field(default_factory=dict)
    _owners: Dict[int, int] = field(default_factory=dict)
    _next_id: int = 0

    def reserve_id(self) -> int:
        object_id = self._next_id
        self._next_id += 1
        return object_id

    @property
    def next_id(self) -> int:
        return self._next_id

    def add(self, view: GeometryView, tag: int = 0) -> int:
        for index in view.own_indices():
            owner = self._owners.get(index)
            if owner is not None:
                raise OverlappingBlock(
                    f"parameter {index} already belongs to geometry #{owner} "
                    f"<{self._entries[owner].view.kind.value}>"
                )
        object_id = self.reserve_id()
        self._entries[object_id] = _Entry(view, int(tag))
        for index in view.own_indices():
            self._owners[index] = object_id
        logger.debug("Registered geometry #%d <%s> tag=%d", object_id, view.kind.value, tag)
        return object_id

    def get(self, object_id: int) -> GeometryView:
        try:
            return self._entries[object_id].view
        except KeyError:
            raise UnresolvedReference(f"geometry #{object_id} does not exist") from None

    def __contains__(self, object_id: object) -> bool:
        return object_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Tuple[int, GeometryView]]:
        for object_id, entry in self._entries.items():
            yield object_id, entry.view

    def remove_by_tag(self, tag: int) -> List[int]:
        removed = [oid for oid, entry in self._entries.items() if entry.tag == tag]
        for object_id in removed:
            entry = self._entries.pop(object_id)
            for index in entry.view.own_indices():
                self._owners.pop(index, None)
        return removed

    def clear(self) -> None:
        self._entries.clear()
        self._owners.clear()


__all__ = [
    "AnyGeometry",
    "Arc",
    "ArcOfEllipse",
    "ArcOfHyperbola",
    "ArcOfParabola",
    "BSpline",
    "BSplineShape",
    "Circle",
    "Ellipse",
    "GeometryBuilder",
    "GeometryKind",
    "GeometryTable",
    "GeometryView",
    "Hyperbola",
    "Line",
    "Parabola",
    "Point",
    "check_view",
    "validate_bspline_shape",
]
