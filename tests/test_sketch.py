import math

import pytest

from sketchgcs import GeometryKind, IndexOutOfRange, Sketch, UnresolvedReference


def test_arc_family_registers_companion_rules_with_geometry_tag():
    sketch = Sketch()
    center = sketch.add_point(0.0, 0.0)
    focus = sketch.add_point(1.0, 0.0)
    start = sketch.add_point(2.0, 0.0)
    end = sketch.add_point(0.0, 2.0)

    sketch.add_arc(center, start, end, 0.0, math.pi / 2, 2.0, tag=4)
    sketch.add_arc_of_ellipse(center, focus, start, end, 0.0, 1.0, 1.0, tag=5)
    sketch.add_arc_of_hyperbola(center, focus, start, end, 0.0, 1.0, 0.5, tag=6)
    sketch.add_arc_of_parabola(center, focus, start, end, 0.0, 1.0, tag=7)

    kinds = {c.kind: c.tag for c in sketch.constraints}
    assert kinds == {
        "arc_rules": 4,
        "arc_of_ellipse_rules": 5,
        "arc_of_hyperbola_rules": 6,
        "arc_of_parabola_rules": 7,
    }


def test_full_conics_have_no_companion_rules():
    sketch = Sketch()
    center = sketch.add_point(0.0, 0.0)
    focus = sketch.add_point(1.0, 0.0)
    sketch.add_ellipse(center, focus, 1.0)
    sketch.add_hyperbola(center, focus, 0.5)
    sketch.add_parabola(center, focus)

    assert len(sketch.constraints) == 0
    assert len(sketch.geometries) == 5


def test_bspline_end_rules_only_for_open_splines():
    sketch = Sketch()
    poles = [(0.0, 0.0), (1.0, 2.0), (3.0, 2.0), (4.0, 0.0)]
    open_id = sketch.add_bspline(poles, [1.0] * 4, [0.0, 1.0], [4, 4], degree=3)
    sketch.add_bspline(poles, [1.0] * 4, [0.0, 0.5, 1.0], [1, 1, 1], degree=3, periodic=True)

    (rules,) = list(sketch.constraints)
    assert rules.kind == "bspline_end_rules"
    assert rules.operands[0] == sketch.geometry(open_id)
    assert rules.evaluate(sketch.params.snapshot()) == pytest.approx([0.0] * 4)


def test_geometry_blocks_are_allocated_in_canonical_order():
    sketch = Sketch()
    center = sketch.add_point(0.0, 0.0)
    start = sketch.add_point(1.0, 0.0)
    end = sketch.add_point(0.0, 1.0)
    first = sketch.params.size()
    arc = sketch.geometry(sketch.add_arc(center, start, end, 0.0, 1.5, 1.0))

    assert arc.kind is GeometryKind.ARC
    assert arc.own_indices() == (first, first + 1, first + 2)
    assert sketch.params.get(arc.end_angle) == 1.5


def test_add_line_requires_points():
    sketch = Sketch()
    p = sketch.add_point(0.0, 0.0)
    circle = sketch.add_circle(p, 1.0)

    with pytest.raises(TypeError):
        sketch.add_line(p, circle)
    with pytest.raises(UnresolvedReference):
        sketch.add_line(p, 99)


def test_clear_invalidates_ids_and_indices():
    sketch = Sketch()
    p = sketch.add_point(1.0, 1.0)
    view = sketch.geometry(p)
    sketch.add_param("k", 2.0)

    sketch.clear()

    assert sketch.params.size() == 0
    with pytest.raises(UnresolvedReference):
        sketch.geometry(p)
    with pytest.raises(IndexOutOfRange):
        sketch.params.get(view.x)
    with pytest.raises(UnresolvedReference):
        sketch.param("k")
    assert sketch.add_point(0.0, 0.0) > p


def test_remove_by_tag_drops_geometry_and_rules():
    sketch = Sketch()
    center = sketch.add_point(0.0, 0.0)
    start = sketch.add_point(1.0, 0.0)
    end = sketch.add_point(0.0, 1.0)
    arc = sketch.add_arc(center, start, end, 0.0, math.pi / 2, 1.0, tag=3)

    removed = sketch.remove_by_tag(3)

    assert len(removed) == 1
    assert arc not in sketch.geometries
    assert len(sketch.constraints) == 0
    assert sketch.solve().converged


def test_rejected_bspline_leaves_store_untouched():
    sketch = Sketch()
    sketch.add_point(0.0, 0.0, fixed=True)
    size = sketch.params.size()
    poles = [(0.0, 0.0), (1.0, 1.0), (2.0, 0.0)]

    with pytest.raises(ValueError):
        sketch.add_bspline(poles, [1.0, 1.0], [0.0, 1.0], [3, 3], degree=2)
    with pytest.raises(ValueError):
        sketch.add_bspline(poles, [1.0] * 3, [0.0, 1.0], [3, 3], degree=0)
    with pytest.raises(ValueError):
        sketch.add_bspline(poles, [1.0] * 3, [0.0, 1.0], [3, 3], degree=2, start=(0.0,))
    with pytest.raises(ValueError):
        sketch.add_bspline(poles, [1.0, 1.0, math.inf], [0.0, 1.0], [3, 3], degree=2)

    assert sketch.params.size() == size
    assert len(sketch.geometries) == 1
    sketch.solve()
    assert sketch.degrees_of_freedom() == 0


def test_non_finite_coordinate_allocates_nothing():
    sketch = Sketch()

    with pytest.raises(ValueError):
        sketch.add_point(1.0, math.nan)
    center = sketch.add_point(0.0, 0.0)
    start = sketch.add_point(1.0, 0.0)
    end = sketch.add_point(0.0, 1.0)
    size = sketch.params.size()
    with pytest.raises(ValueError):
        sketch.add_arc(center, start, end, 0.0, math.inf, 1.0)

    assert sketch.params.size() == size == 6
    assert list(sketch.params.free_indices()) == list(range(6))


def test_stale_views_fail_fast_after_clear():
    sketch = Sketch()
    old = sketch.geometry(sketch.add_point(1.0, 1.0))
    sketch.clear()
    q = sketch.add_point(2.0, 2.0)
    sketch.add_point(3.0, 3.0)

    with pytest.raises(IndexOutOfRange):
        sketch.add_constraint("p2p_coincident", old, q)
    with pytest.raises(IndexOutOfRange):
        sketch.add_line(old, q)
    with pytest.raises(IndexOutOfRange):
        sketch.point_coords(old)
    assert len(sketch.constraints) == 0


def test_views_from_another_session_are_rejected():
    first, second = Sketch(), Sketch()
    foreign = first.geometry(first.add_point(0.0, 0.0))
    second.add_point(5.0, 5.0)
    own = second.add_point(6.0, 6.0)

    with pytest.raises(IndexOutOfRange):
        second.add_constraint("p2p_coincident", foreign, own)


def test_unknown_named_parameter_is_unresolved():
    sketch = Sketch()

    with pytest.raises(UnresolvedReference):
        sketch.param("missing")
