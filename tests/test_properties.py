import pytest

from sketchgcs import BSplineShape, GeometryKind, Sketch, UnknownProperty, property_index, resolve_offset
from sketchgcs.properties import PROPERTY_OFFSETS, properties_of


@pytest.mark.parametrize("shape", [None, BSplineShape(4, 4, 8), BSplineShape(0, 0, 0)])
def test_point_offsets_ignore_shape(shape):
    assert resolve_offset(GeometryKind.POINT, shape, "x") == 0
    assert resolve_offset("point", shape, "y") == 1


def test_static_offsets():
    assert resolve_offset("circle", None, "radius") == 0
    assert resolve_offset("arc", None, "start_angle") == 0
    assert resolve_offset("arc", None, "end_angle") == 1
    assert resolve_offset("arc", None, "radius") == 2
    assert resolve_offset("ellipse", None, "radmin") == 0
    assert resolve_offset("arc_of_hyperbola", None, "radmin") == 2
    assert resolve_offset("arc_of_parabola", None, "end_angle") == 1


def test_bspline_offsets_follow_instance_shape():
    shape = BSplineShape(num_control_points=4, num_weights=4, num_knots=8)

    assert resolve_offset("bspline", shape, "start_x") == 20
    assert resolve_offset("bspline", shape, "start_y") == 21
    assert resolve_offset("bspline", shape, "end_x") == 22
    assert resolve_offset("bspline", shape, "end_y") == 23


def test_bspline_offset_needs_shape():
    with pytest.raises(UnknownProperty):
        resolve_offset("bspline", None, "start_x")
    with pytest.raises(UnknownProperty):
        resolve_offset("bspline", BSplineShape(-1, 0, 0), "end_y")


@pytest.mark.parametrize("kind", list(GeometryKind))
def test_unknown_property_fails_for_every_kind(kind):
    shape = BSplineShape(2, 2, 2)
    with pytest.raises(UnknownProperty) as excinfo:
        resolve_offset(kind, shape, "no_such_property")
    assert kind.value in str(excinfo.value)


def test_properties_without_parameters():
    assert properties_of("line") == ()
    assert properties_of("parabola") == ()
    for prop in ("x", "radius", "start_x"):
        with pytest.raises(UnknownProperty):
            resolve_offset("line", None, prop)
    assert set(PROPERTY_OFFSETS) == set(GeometryKind) - {GeometryKind.BSPLINE}


def test_property_index_addresses_store_slots():
    sketch = Sketch()
    center = sketch.add_point(1.0, 2.0)
    circle = sketch.add_circle(center, 3.0)
    spline = sketch.add_bspline(
        [(0.0, 0.0), (1.0, 1.0), (2.0, 1.0), (3.0, 0.0)],
        weights=[1.0, 1.0, 1.0, 1.0],
        knots=[0.0, 1.0],
        multiplicities=[4, 4],
        degree=3,
    )

    assert sketch.value_of(center, "y") == 2.0
    assert sketch.value_of(circle, "radius") == 3.0
    assert sketch.value_of(spline, "end_x") == 3.0
    view = sketch.geometry(spline)
    assert property_index(view, "start_x") == view.own_indices()[2 * 4 + 4 + 2]


def test_bspline_shape_needs_one_weight_per_pole():
    with pytest.raises(UnknownProperty):
        resolve_offset("bspline", BSplineShape(4, 3, 8), "start_x")


def test_property_index_rejects_foreign_shape():
    sketch = Sketch()
    spline = sketch.add_bspline(
        [(0.0, 0.0), (1.0, 1.0), (2.0, 1.0), (3.0, 0.0)],
        weights=[1.0] * 4,
        knots=[0.0, 0.25, 0.5, 0.75, 1.0, 1.25, 1.5, 2.0],
        multiplicities=[1] * 8,
        degree=3,
    )
    view = sketch.geometry(spline)
    point = sketch.geometry(sketch.add_point(1.0, 2.0))

    assert property_index(view, "start_x", view.shape()) == view.own_indices()[20]
    with pytest.raises(UnknownProperty):
        property_index(view, "start_x", BSplineShape(2, 2, 2))
    with pytest.raises(UnknownProperty):
        property_index(point, "x", BSplineShape(4, 4, 8))
