import argparse
import json
import logging
import sys

from .config import DEFAULT_MAX_ITERATIONS, SolverOptions
from .errors import InvalidProblemError
from .serialization import load_problem, solution_to_dict
from .solver import solve
from .testpack import run_pack


def fmt_out(x: float) -> str:
    # integers without the trailing .0, everything else in short form
    if abs(x - round(x)) < 1e-9:
        return str(int(round(x)))
    return f"{x:.10g}"


def _options(args) -> SolverOptions:
    max_iter = args.max_iterations if args.max_iterations > 0 else None
    return SolverOptions(max_iterations=max_iter, force_phase_one=args.force_phase_one, trace=args.trace)


def cmd_solve(args) -> int:
    maximize = None if args.sense is None else args.sense == "max"
    problem = load_problem(args.json, maximize=maximize)
    res = solve(problem, _options(args))

    if args.as_json:
        print(json.dumps(solution_to_dict(res), indent=2))
        return 0

    print("\n=== Result ===")
    print("Status:", res.status)
    if res.is_optimal:
        print("Optimal value:", fmt_out(res.optimal_value))
        for name, value in res.by_name().items():
            print(f"  {name} = {fmt_out(value)}")
    print("Iterations:", res.iterations)
    if res.details.get("phase_one"):
        print("Phase I pivots:", res.details.get("phase_one_iterations"))
    return 0


def cmd_check(args) -> int:
    failed = 0
    total = 0
    for pack in args.packs:
        for case, ok, actual in run_pack(pack, lambda p: solve(p, _options(args))):
            total += 1
            if not ok:
                failed += 1
            print(f"{'ok  ' if ok else 'FAIL'} {case}: {actual.status}"
                  + (f" {fmt_out(actual.optimal_value)}" if actual.is_optimal else ""))
    print(f"\n{total - failed}/{total} cases passed")
    return 1 if failed else 0


def main(argv=None) -> int:
    # solver options, accepted after either subcommand
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--max-iterations", type=int, default=DEFAULT_MAX_ITERATIONS,
                        help="Pivot cap per simplex phase (0 disables the cap)")
    common.add_argument("--force-phase-one", action="store_true",
                        help="Always go through the auxiliary phase I tableau")
    common.add_argument("--trace", action="store_true", help="Log every pivot and tableau")
    common.add_argument("-v", "--verbose", action="store_true", help="Log solver progress")

    p = argparse.ArgumentParser(prog="lpsolver", description="Two-phase tableau simplex for general linear programs")
    sub = p.add_subparsers(dest="command", required=True)

    ps = sub.add_parser("solve", parents=[common], help="Solve a problem described by a JSON file")
    ps.add_argument("json", help="Path to JSON file describing the LP")
    ps.add_argument("--sense", choices=["max", "min"], default=None,
                    help="Objective sense (default: use JSON or max)")
    ps.add_argument("--json", dest="as_json", action="store_true", help="Print the result as JSON")
    ps.set_defaults(func=cmd_solve)

    pc = sub.add_parser("check", parents=[common], help="Run test packs (directories or .zip archives)")
    pc.add_argument("packs", nargs="+")
    pc.set_defaults(func=cmd_check)

    args = p.parse_args(argv)

    level = logging.DEBUG if args.trace else (logging.INFO if args.verbose else logging.WARNING)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    try:
        return args.func(args)
    except InvalidProblemError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
