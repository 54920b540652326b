"""Built-in demo scenes used by the CLI and the examples."""

from __future__ import annotations

import math
from typing import Callable, Dict, Optional

from .solver import SolveOptions
from .sketch import Sketch

SceneBuilder = Callable[[Sketch], None]


def coincident(sketch: Sketch) -> None:
    """Two free points pulled together."""

    a = sketch.add_point(10.0, 10.0)
    b = sketch.add_point(20.0, 20.0)
    sketch.add_constraint("p2p_coincident", a, b)


def triangle(sketch: Sketch) -> None:
    """3-4-5 right triangle anchored at the origin."""

    a = sketch.add_point(0.0, 0.0, fixed=True)
    b = sketch.add_point(2.5, 0.3)
    c = sketch.add_point(0.4, 3.5)
    ab = sketch.add_line(a, b)
    ac = sketch.add_line(a, c)
    sketch.add_line(b, c)
    sketch.add_constraint("horizontal_line", ab)
    sketch.add_constraint("perpendicular", ab, ac)
    sketch.add_constraint("p2p_distance", a, b, 3.0)
    sketch.add_constraint("p2p_distance", a, c, 4.0)
    # reports the hypotenuse without driving it
    sketch.add_constraint("p2p_distance", b, c, 0.0, driving=False)


def arc(sketch: Sketch) -> None:
    """Quarter arc of radius 5 with its start on the x axis."""

    center = sketch.add_point(0.0, 0.0, fixed=True)
    start = sketch.add_point(4.0, 1.0)
    end = sketch.add_point(0.5, 4.5)
    arc_id = sketch.add_arc(center, start, end, 0.1, 1.4, 4.0)
    sketch.add_constraint("circle_radius", arc_id, 5.0)
    sketch.add_constraint("coordinate_y", start, 0.0)
    sketch.add_constraint("arc_length", arc_id, 5.0 * math.pi / 2.0)


def tangent(sketch: Sketch) -> None:
    """Circle kept tangent to a horizontal line."""

    p1 = sketch.add_point(-5.0, 0.0, fixed=True)
    p2 = sketch.add_point(5.0, 0.0, fixed=True)
    line = sketch.add_line(p1, p2)
    center = sketch.add_point(1.0, 3.0)
    circle = sketch.add_circle(center, 2.0)
    sketch.add_constraint("coordinate_x", center, 1.0)
    sketch.add_constraint("tangent_line_circle", line, circle)


def conflicting(sketch: Sketch) -> None:
    """Same point pair asked to be 3 and 4 apart; tags 1 and 2."""

    a = sketch.add_point(0.0, 0.0, fixed=True)
    b = sketch.add_point(3.0, 0.0)
    sketch.add_constraint("coordinate_y", b, 0.0)
    sketch.add_constraint("p2p_distance", a, b, 3.0, tag=1)
    sketch.add_constraint("p2p_distance", a, b, 4.0, tag=2)


def redundant(sketch: Sketch) -> None:
    """Horizontality stated twice; the second copy is tag 2."""

    a = sketch.add_point(0.0, 0.0, fixed=True)
    b = sketch.add_point(4.0, 1.0)
    line = sketch.add_line(a, b)
    sketch.add_constraint("horizontal_line", line, tag=1)
    sketch.add_constraint("horizontal_points", a, b, tag=2)


def drag(sketch: Sketch) -> None:
    """Point on a fixed circle, dragged towards (10, 10)."""

    center = sketch.add_point(0.0, 0.0, fixed=True)
    circle = sketch.add_circle(center, 5.0, fixed=True)
    p = sketch.add_point(5.0, 0.0)
    sketch.add_constraint("point_on_circle", p, circle)
    sketch.add_constraint("coordinate_x", p, 10.0, temporary=True, tag=9)
    sketch.add_constraint("coordinate_y", p, 10.0, temporary=True, tag=9)


SCENES: Dict[str, SceneBuilder] = {
    "coincident": coincident,
    "triangle": triangle,
    "arc": arc,
    "tangent": tangent,
    "conflicting": conflicting,
    "redundant": redundant,
    "drag": drag,
}


def build_scene(name: str, options: Optional[SolveOptions] = None) -> Sketch:
    try:
        builder = SCENES[name]
    except KeyError:
        raise KeyError(f"unknown demo scene {name!r}; choose from {', '.join(SCENES)}") from None
    sketch = Sketch(options)
    builder(sketch)
    return sketch


def run(name: str = "triangle") -> None:
    sketch = build_scene(name)
    status = sketch.solve()
    print(f"Scene: {name}")
    print(f"Status: {status}")
    sketch.apply(best_effort=True)
    for object_id, view in sketch.geometries:
        if view.kind.value == "point":
            x, y = sketch.point_coords(object_id)
            print(f"  #{object_id}: ({x:.6f}, {y:.6f})")


if __name__ == "__main__":
    run()
