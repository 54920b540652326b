import pytest

from sketchgcs import (
    GeometryBuilder,
    GeometryKind,
    GeometryTable,
    IndexOutOfRange,
    OverlappingBlock,
    ParameterStore,
    UnknownKind,
    UnresolvedReference,
)


def _point(store, builder, x, y):
    return builder.make_point(store.push(x), store.push(y))


def test_builder_binds_existing_indices():
    store = ParameterStore()
    builder = GeometryBuilder(store)
    p1 = _point(store, builder, 0.0, 0.0)
    p2 = _point(store, builder, 1.0, 1.0)
    line = builder.make_line(p1, p2)
    circle = builder.make_circle(p1, store.push(2.0))

    assert line.kind is GeometryKind.LINE
    assert line.own_indices() == ()
    assert line.indices() == (0, 1, 2, 3)
    assert circle.own_indices() == (4,)
    assert circle.indices() == (0, 1, 4)


def test_builder_rejects_unallocated_index():
    store = ParameterStore()
    builder = GeometryBuilder(store)
    store.push(0.0)

    with pytest.raises(IndexOutOfRange):
        builder.make_point(0, 1)


def test_builder_arc_block_order():
    store = ParameterStore()
    builder = GeometryBuilder(store)
    center = _point(store, builder, 0.0, 0.0)
    start = _point(store, builder, 1.0, 0.0)
    end = _point(store, builder, 0.0, 1.0)
    block = [store.push(v) for v in (0.0, 1.5, 1.0)]
    arc = builder.make_arc(center, start, end, *block)

    assert arc.own_indices() == tuple(block)


def test_builder_bspline_layout_and_validation():
    store = ParameterStore()
    builder = GeometryBuilder(store)
    poles = [_point(store, builder, float(i), 0.0) for i in range(3)]
    weights = [store.push(1.0) for _ in range(3)]
    knots = [store.push(float(k)) for k in (0.0, 1.0)]
    start = _point(store, builder, 0.0, 0.0)
    end = _point(store, builder, 2.0, 0.0)

    spline = builder.make_bspline(start, end, poles, weights, knots, [3, 3], degree=2)

    assert spline.shape().block_size == 2 * 3 + 3 + 2 + 4
    assert spline.own_indices()[:6] == (0, 1, 2, 3, 4, 5)
    assert spline.own_indices()[-4:] == (start.x, start.y, end.x, end.y)

    with pytest.raises(ValueError):
        builder.make_bspline(start, end, poles, weights[:2], knots, [3, 3], degree=2)
    with pytest.raises(ValueError):
        builder.make_bspline(start, end, poles, weights, knots, [3], degree=2)
    with pytest.raises(ValueError):
        builder.make_bspline(start, end, poles, weights, knots, [3, 3], degree=0)


def test_table_rejects_overlapping_own_blocks():
    store = ParameterStore()
    builder = GeometryBuilder(store)
    table = GeometryTable()
    p = _point(store, builder, 0.0, 0.0)
    table.add(p)

    with pytest.raises(OverlappingBlock):
        table.add(builder.make_point(p.x, p.y))
    # lines reference point coordinates without owning them
    table.add(builder.make_line(p, p))


def test_table_ids_are_monotonic_across_clear():
    store = ParameterStore()
    builder = GeometryBuilder(store)
    table = GeometryTable()
    first = table.add(_point(store, builder, 0.0, 0.0))
    table.clear()
    second = table.add(_point(store, builder, 1.0, 1.0))

    assert second > first
    with pytest.raises(UnresolvedReference):
        table.get(first)


def test_table_remove_by_tag():
    store = ParameterStore()
    builder = GeometryBuilder(store)
    table = GeometryTable()
    kept = table.add(_point(store, builder, 0.0, 0.0), tag=1)
    dropped = table.add(_point(store, builder, 1.0, 1.0), tag=2)

    assert table.remove_by_tag(2) == [dropped]
    assert kept in table
    assert dropped not in table
    assert len(table) == 1


def test_geometry_kind_parse():
    assert GeometryKind.parse("arc_of_ellipse") is GeometryKind.ARC_OF_ELLIPSE
    with pytest.raises(UnknownKind):
        GeometryKind.parse("spiral")


def test_builder_rejects_views_bound_before_clear():
    store = ParameterStore()
    builder = GeometryBuilder(store)
    stale = _point(store, builder, 0.0, 0.0)
    store.clear()
    fresh = _point(store, builder, 1.0, 1.0)

    with pytest.raises(IndexOutOfRange):
        builder.make_line(stale, fresh)
    assert stale == fresh
