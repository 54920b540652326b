"""Example: compare the native solve with a SolveSpace run of the same sketch."""

from sketchgcs.cad import AdapterOK, SlvsAdapter
from sketchgcs.demo import build_scene


def main() -> None:
    sketch = build_scene("triangle")
    result = SlvsAdapter().solve_sketch(sketch)
    status = sketch.solve()
    sketch.apply()

    print("Native converged:", status.converged, "dof:", status.dof)
    print("SolveSpace ok:", isinstance(result, AdapterOK), "dof:", result.dof)
    if result.unsupported:
        print("Not mirrored in SolveSpace:", result.unsupported)
    if isinstance(result, AdapterOK):
        for object_id, (x, y) in result.coords.items():
            nx, ny = sketch.point_coords(object_id)
            print(f"#{object_id}: native=({nx:.6f}, {ny:.6f}) slvs=({x:.6f}, {y:.6f})")


if __name__ == "__main__":
    main()
