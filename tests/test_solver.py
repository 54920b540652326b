import logging
import math

import pytest

from sketchgcs import Algorithm, SolveOptions, Sketch
from sketchgcs.demo import build_scene


def test_coincident_points_converge():
    sketch = Sketch()
    a = sketch.add_point(10.0, 10.0)
    b = sketch.add_point(20.0, 20.0)
    sketch.add_constraint("p2p_coincident", a, b)

    status = sketch.solve()

    assert status.converged
    assert status.algorithm is Algorithm.DOGLEG
    assert status.max_residual <= 1e-10
    assert sketch.apply()
    ax, ay = sketch.point_coords(a)
    bx, by = sketch.point_coords(b)
    assert abs(ax - bx) <= 1e-10
    assert abs(ay - by) <= 1e-10
    assert status.dof == 2


def test_fixed_point_never_moves():
    sketch = Sketch()
    a = sketch.add_point(10.0, 10.0, fixed=True)
    b = sketch.add_point(20.0, 20.0)
    sketch.add_constraint("p2p_coincident", a, b)

    assert sketch.solve().converged
    assert sketch.apply()
    assert sketch.point_coords(a) == (10.0, 10.0)
    assert sketch.point_coords(b) == pytest.approx((10.0, 10.0), abs=1e-10)


@pytest.mark.parametrize("algorithm", [Algorithm.LEVENBERG_MARQUARDT, "DogLeg", 1, 2])
def test_least_squares_algorithms_solve_triangle(algorithm):
    sketch = build_scene("triangle")

    status = sketch.solve(algorithm)

    assert status.converged
    assert sketch.apply()
    hypotenuse = [c for c in sketch.constraints if not c.driving][0]
    assert sketch.params.get(hypotenuse.value_index) == pytest.approx(5.0, abs=1e-8)


def test_bfgs_reduces_residual():
    sketch = Sketch()
    a = sketch.add_point(0.0, 0.0, fixed=True)
    b = sketch.add_point(2.0, 1.0)
    sketch.add_constraint("coordinate_x", b, 1.0)
    sketch.add_constraint("coordinate_y", b, 0.5)

    status = sketch.solve(Algorithm.BFGS)

    assert status.algorithm is Algorithm.BFGS
    assert status.max_residual < 1e-5
    assert sketch.point_coords(a) == (0.0, 0.0)


def test_temporary_constraints_force_sqp(caplog):
    sketch = build_scene("drag")

    with caplog.at_level(logging.INFO, logger="sketchgcs.solver.facade"):
        status = sketch.solve(Algorithm.LEVENBERG_MARQUARDT)

    assert status.algorithm is Algorithm.SQP
    assert any("overriding algorithm" in record.getMessage() for record in caplog.records)
    assert status.converged
    assert sketch.apply()
    p = [oid for oid, view in sketch.geometries if view.kind.value == "point"][-1]
    x, y = sketch.point_coords(p)
    assert math.hypot(x, y) == pytest.approx(5.0, abs=1e-8)
    assert x == pytest.approx(5.0 / math.sqrt(2.0), abs=1e-4)
    assert y == pytest.approx(5.0 / math.sqrt(2.0), abs=1e-4)


def test_removing_temporary_tag_restores_requested_algorithm():
    sketch = build_scene("drag")
    sketch.remove_by_tag(9)

    status = sketch.solve(Algorithm.LEVENBERG_MARQUARDT)

    assert not sketch.constraints.has_temporary()
    assert status.algorithm is Algorithm.LEVENBERG_MARQUARDT


def test_sqp_cannot_be_requested():
    sketch = build_scene("coincident")
    with pytest.raises(ValueError):
        sketch.solve(Algorithm.SQP)


def test_apply_without_solve_is_a_noop():
    sketch = build_scene("coincident")
    before = sketch.params.snapshot()

    assert not sketch.apply()
    assert sketch.params.snapshot().tolist() == before.tolist()


def test_failed_solve_applies_only_with_best_effort():
    sketch = build_scene("conflicting")

    status = sketch.solve()

    assert not status.converged
    assert not status
    assert not sketch.apply()
    assert sketch.apply(best_effort=True)


def test_apply_after_clear_is_a_noop():
    sketch = build_scene("coincident")
    sketch.solve()
    sketch.clear()

    assert not sketch.apply()
    assert sketch.params.size() == 0
    assert len(sketch.constraints) == 0


def test_empty_sketch_is_trivially_converged():
    sketch = Sketch()
    sketch.add_point(1.0, 2.0)

    status = sketch.solve()

    assert status.converged
    assert status.dof == 2


def test_arc_scene_solves_quarter_arc():
    sketch = build_scene("arc")

    assert sketch.solve().converged
    assert sketch.apply()
    arc_id = [oid for oid, view in sketch.geometries if view.kind.value == "arc"][0]
    assert sketch.value_of(arc_id, "radius") == pytest.approx(5.0, abs=1e-8)
    sweep = sketch.value_of(arc_id, "end_angle") - sketch.value_of(arc_id, "start_angle")
    assert sweep == pytest.approx(math.pi / 2.0, abs=1e-8)


def test_iteration_debug_mode_logs_evaluations(caplog):
    sketch = build_scene("coincident", SolveOptions(debug_mode="IterationLevel"))

    with caplog.at_level(logging.INFO, logger="sketchgcs.solver.facade"):
        sketch.solve()

    assert any("Solve finished" in record.getMessage() for record in caplog.records)
