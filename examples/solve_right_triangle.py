"""Example: build a right triangle with literal dimensions and solve it."""

from sketchgcs import Algorithm, Sketch


def main() -> None:
    sketch = Sketch()
    a = sketch.add_point(0.0, 0.0, fixed=True)
    b = sketch.add_point(2.0, 0.5)
    c = sketch.add_point(0.5, 2.0)
    ab = sketch.add_line(a, b)
    ac = sketch.add_line(a, c)
    sketch.add_constraint("horizontal_line", ab)
    sketch.add_constraint("perpendicular", ab, ac)
    sketch.add_constraint("p2p_distance", a, b, 4.0)
    sketch.add_constraint("p2p_distance", a, c, 3.0)
    hypotenuse = sketch.add_constraint("p2p_distance", b, c, 0.0, driving=False)

    status = sketch.solve(Algorithm.LEVENBERG_MARQUARDT)
    print("Converged:", status.converged)
    print("Max residual:", status.max_residual)
    print("DOF:", status.dof)
    sketch.apply()

    for name, object_id in (("A", a), ("B", b), ("C", c)):
        x, y = sketch.point_coords(object_id)
        print(f"{name}: ({x:.6f}, {y:.6f})")
    value_index = sketch.constraints.get(hypotenuse).value_index
    print(f"|BC| = {sketch.params.get(value_index):.6f}")


if __name__ == "__main__":
    main()
