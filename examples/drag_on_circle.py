"""Example: drag a point constrained to a circle with temporary constraints."""

from sketchgcs import Sketch

DRAG_TAG = 100


def main() -> None:
    sketch = Sketch()
    center = sketch.add_point(0.0, 0.0, fixed=True)
    circle = sketch.add_circle(center, 5.0, fixed=True)
    handle = sketch.add_point(5.0, 0.0)
    sketch.add_constraint("point_on_circle", handle, circle)

    for target in ((10.0, 10.0), (-3.0, 8.0), (0.0, -20.0)):
        sketch.add_constraint("coordinate_x", handle, target[0], temporary=True, tag=DRAG_TAG)
        sketch.add_constraint("coordinate_y", handle, target[1], temporary=True, tag=DRAG_TAG)
        status = sketch.solve()
        sketch.apply()
        sketch.remove_by_tag(DRAG_TAG)
        x, y = sketch.point_coords(handle)
        print(f"drag to {target}: algorithm={status.algorithm.value} -> ({x:.4f}, {y:.4f})")


if __name__ == "__main__":
    main()
