import math

import numpy as np
import pytest

from sketchgcs import CATALOG, ConstraintCatalog, InvalidConstraint, Sketch, UnknownKind, lookup_kind
from sketchgcs.residuals import SCALAR


def _residual(sketch, constraint_id):
    constraint = sketch.constraints.get(constraint_id)
    return constraint.evaluate(sketch.params.snapshot())


def test_catalog_contains_core_kinds():
    for name in (
        "equal",
        "p2p_coincident",
        "p2p_distance",
        "point_on_line",
        "parallel",
        "perpendicular",
        "point_on_circle",
        "tangent_line_circle",
        "arc_rules",
        "bspline_end_rules",
    ):
        assert name in CATALOG
    assert lookup_kind("p2p_coincident").size == 2
    with pytest.raises(UnknownKind):
        lookup_kind("no_such_kind")


def test_distance_and_coincidence_rows():
    sketch = Sketch()
    a = sketch.add_point(0.0, 0.0)
    b = sketch.add_point(3.0, 4.0)
    dist = sketch.add_constraint("p2p_distance", a, b, 5.0)
    coinc = sketch.add_constraint("p2p_coincident", a, b)

    assert _residual(sketch, dist) == pytest.approx([0.0])
    assert _residual(sketch, coinc) == pytest.approx([-3.0, -4.0])


def test_point_on_line_is_signed_distance():
    sketch = Sketch()
    p1 = sketch.add_point(0.0, 0.0)
    p2 = sketch.add_point(2.0, 0.0)
    line = sketch.add_line(p1, p2)
    p = sketch.add_point(1.0, 3.0)
    cid = sketch.add_constraint("point_on_line", p, line)

    assert abs(_residual(sketch, cid)[0]) == pytest.approx(3.0)


def test_parallel_and_perpendicular():
    sketch = Sketch()
    o = sketch.add_point(0.0, 0.0)
    ex = sketch.add_point(1.0, 0.0)
    ey = sketch.add_point(0.0, 2.0)
    lx = sketch.add_line(o, ex)
    ly = sketch.add_line(o, ey)

    assert _residual(sketch, sketch.add_constraint("perpendicular", lx, ly)) == pytest.approx([0.0])
    assert abs(_residual(sketch, sketch.add_constraint("parallel", lx, ly))[0]) == pytest.approx(1.0)


def test_l2l_angle_wraps():
    sketch = Sketch()
    o = sketch.add_point(0.0, 0.0)
    ex = sketch.add_point(1.0, 0.0)
    ey = sketch.add_point(0.0, 1.0)
    cid = sketch.add_constraint("l2l_angle", sketch.add_line(o, ex), sketch.add_line(o, ey), math.pi / 2 + 2 * math.pi)

    assert _residual(sketch, cid) == pytest.approx([0.0], abs=1e-12)


def test_arc_rules_hold_for_consistent_arc():
    sketch = Sketch()
    center = sketch.add_point(0.0, 0.0)
    start = sketch.add_point(2.0, 0.0)
    end = sketch.add_point(0.0, 2.0)
    sketch.add_arc(center, start, end, 0.0, math.pi / 2, 2.0)
    (rules,) = list(sketch.constraints)

    assert rules.kind == "arc_rules"
    assert rules.evaluate(sketch.params.snapshot()) == pytest.approx([0.0] * 4, abs=1e-12)


def test_point_on_ellipse_at_vertex():
    sketch = Sketch()
    center = sketch.add_point(0.0, 0.0)
    focus = sketch.add_point(3.0, 0.0)
    ellipse = sketch.add_ellipse(center, focus, 4.0)
    # major radius 5 for focal distance 3 and minor radius 4
    on = sketch.add_point(5.0, 0.0)
    off = sketch.add_point(6.0, 0.0)

    assert _residual(sketch, sketch.add_constraint("point_on_ellipse", on, ellipse)) == pytest.approx([0.0], abs=1e-9)
    assert abs(_residual(sketch, sketch.add_constraint("point_on_ellipse", off, ellipse))[0]) > 0.1


def test_scale_multiplies_rows():
    sketch = Sketch()
    b = sketch.add_point(1.0, 0.0)
    cid = sketch.add_constraint("coordinate_x", b, 3.0, scale=10.0)

    assert _residual(sketch, cid) == pytest.approx([-20.0])


def test_registered_kind_stays_in_its_session():
    sketch = Sketch()

    @sketch.register_kind("sum_is_zero", SCALAR, SCALAR)
    def _build(a, b):
        return lambda x: np.array([x[a] + x[b]])

    sketch.add_param("u", 1.0)
    sketch.add_param("v", 2.0)
    cid = sketch.add_constraint("sum_is_zero", "u", "v")
    assert _residual(sketch, cid) == pytest.approx([3.0])

    other = Sketch()
    other.add_param("u", 1.0)
    with pytest.raises(UnknownKind):
        other.add_constraint("sum_is_zero", "u", "u")
    assert "sum_is_zero" not in CATALOG


def test_existing_kinds_cannot_be_redefined():
    catalog = ConstraintCatalog()

    with pytest.raises(InvalidConstraint):
        catalog.register("arc_rules", "arc", size=4)
    with pytest.raises(UnknownKind):
        catalog.register("on_torus", "torus")
    with pytest.raises(TypeError):
        CATALOG["arc_rules"] = CATALOG["equal"]
    assert catalog.lookup("arc_rules") is CATALOG["arc_rules"]
    assert len(catalog) == len(CATALOG)
