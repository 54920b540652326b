import argparse
import logging
import sys
from typing import Optional, Sequence

from sketchgcs import Algorithm, SolveOptions
from sketchgcs.demo import SCENES, build_scene
from sketchgcs.geometry import GeometryKind

logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(levelname)s:%(name)s:%(message)s",
    )


def _selector(value: str):
    return int(value) if value.strip().isdigit() else value


def _run_cad(sketch) -> None:
    from sketchgcs.cad import AdapterOK, SlvsAdapter

    result = SlvsAdapter().solve_sketch(sketch)
    print("CAD status:")
    print(f"  ok: {isinstance(result, AdapterOK)}")
    print(f"  dof: {result.dof}")
    if result.unsupported:
        print(f"  unsupported: {result.unsupported}")
    if isinstance(result, AdapterOK):
        for object_id, (x, y) in result.coords.items():
            print(f"  #{object_id}: ({x:.6f}, {y:.6f})")
    else:
        print(f"  failures: {result.failures}")


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Solve built-in sketch scenes")
    parser.add_argument("scene", nargs="?", help="Name of the demo scene to solve")
    parser.add_argument(
        "--list",
        action="store_true",
        help="List available scenes and exit",
    )
    parser.add_argument(
        "--algorithm",
        default="DogLeg",
        help="Solver algorithm: DogLeg, LevenbergMarquardt, BFGS or legacy code 0-2 (default: DogLeg)",
    )
    parser.add_argument(
        "--max-iterations",
        type=int,
        default=100,
        help="Iteration budget passed to the backend (default: 100)",
    )
    parser.add_argument(
        "--convergence",
        type=float,
        default=1e-10,
        help="Max absolute residual accepted as converged (default: 1e-10)",
    )
    parser.add_argument(
        "--debug-mode",
        default="None",
        help="Solver debug mode: None, Minimal or IterationLevel (default: None)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--cad",
        choices=["slvs"],
        help="Cross-check the scene with a CAD solver",
    )
    args = parser.parse_args(argv)

    _configure_logging(args.log_level)

    if args.list:
        for name, builder in SCENES.items():
            summary = (builder.__doc__ or "").strip().splitlines()
            print(f"{name}: {summary[0] if summary else ''}")
        return
    if not args.scene:
        parser.error("a scene name is required (use --list to see them)")
    if args.scene not in SCENES:
        logger.error("Unknown scene %r", args.scene)
        raise SystemExit(1)

    try:
        options = SolveOptions.from_mapping(
            {
                "max_iterations": args.max_iterations,
                "convergence": args.convergence,
                "debug_mode": _selector(args.debug_mode),
            }
        )
        algorithm = Algorithm.parse_request(_selector(args.algorithm))
    except ValueError as exc:
        logger.error("%s", exc)
        raise SystemExit(2)

    sketch = build_scene(args.scene, options)
    logger.info(
        "Scene %s: %d parameter(s), %d geometry(ies), %d constraint(s)",
        args.scene,
        sketch.params.size(),
        len(sketch.geometries),
        len(sketch.constraints),
    )
    status = sketch.solve(algorithm)
    applied = sketch.apply(best_effort=True)

    print(f"Scene: {args.scene}")
    print(f"Algorithm: {status.algorithm.value}")
    print(f"Converged: {status.converged}")
    print(f"Applied: {applied}")
    print(f"Max residual: {status.max_residual:.3e}")
    print(f"DOF: {status.dof}")
    print(f"Conflicting: {sorted(status.conflicting)}")
    print(f"Redundant: {sorted(status.redundant)}")
    print(f"Partially redundant: {sorted(status.partially_redundant)}")
    print("Points:")
    for object_id, view in sketch.geometries:
        if view.kind is GeometryKind.POINT:
            x, y = sketch.point_coords(object_id)
            print(f"  #{object_id}: ({x:.6f}, {y:.6f})")

    if args.cad:
        _run_cad(sketch)


if __name__ == "__main__":
    main(sys.argv[1:])
