"""
Accelerator Validation
======================

Times the Barnes-Hut accelerator against the direct sum over a growing
schedule of body counts and checks the normalised L2 discrepancy.

Usage:
    python -m tools.validate                       # Default schedule, fmm mode
    python -m tools.validate --levels 12           # First 12 levels only
    python -m tools.validate --mode tree --theta 0.7
    python -m tools.validate --max-bodies 5000 -o timings.dat

Output:
    One line per level (space separated):
    level bodies accel_s direct_s speedup error build_s walk_s tree_nodes
"""

import argparse
import sys

from config import nbody as config
from nbody import BarnesHutSolver, ForceMode
from nbody.validation import body_count_schedule, run_validation, write_timings


def build_parser() -> argparse.ArgumentParser:
    cfg = config.VALIDATION
    parser = argparse.ArgumentParser(description="Validate the tree accelerator against direct summation")
    parser.add_argument("--levels", type=int, default=cfg["levels"], help="Number of schedule levels")
    parser.add_argument("--offset", type=float, default=cfg["offset"], help="Schedule exponent offset")
    parser.add_argument("--divisor", type=float, default=cfg["divisor"], help="Schedule exponent divisor")
    parser.add_argument("--max-bodies", type=int, default=cfg["max_bodies"],
                        help="Skip levels above this body count (0 = no limit)")
    parser.add_argument("--mode", type=str, default=cfg["mode"], choices=["tree", "fmm"])
    parser.add_argument("--theta", type=float, help="Opening angle override for the selected mode")
    parser.add_argument("--tolerance", type=float, default=cfg["tolerance"], help="Maximum accepted error")
    parser.add_argument("--seed", type=int, default=cfg["seed"], help="Random seed for the bodies")
    parser.add_argument("-o", "--output", type=str, default=cfg["timings_file"], help="Timings file")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    mode = ForceMode(args.mode)

    counts = body_count_schedule(args.levels, args.offset, args.divisor)
    if args.max_bodies > 0:
        skipped = [n for n in counts if n > args.max_bodies]
        counts = [n for n in counts if n <= args.max_bodies]
        if skipped:
            print(f"[Validate] Skipping {len(skipped)} levels above {args.max_bodies:,} bodies")

    if mode == ForceMode.FMM:
        solver = BarnesHutSolver(fmm_theta=args.theta)
    else:
        solver = BarnesHutSolver(theta=args.theta)

    print(f"\n{'='*60}")
    print(f"  ACCELERATOR VALIDATION")
    print(f"{'='*60}")
    print(f"  Mode:      {mode.value} (θ={solver.theta_for(mode)})")
    print(f"  Levels:    {len(counts)} ({counts[0] if counts else 0:,} - {counts[-1] if counts else 0:,} bodies)")
    print(f"  Tolerance: {args.tolerance:g}")
    print(f"{'='*60}\n")

    levels = run_validation(solver, counts, mode=mode, seed=args.seed)
    path = write_timings(args.output, levels)

    failures = [row for row in levels if not row.error < args.tolerance]

    print(f"\n{'='*60}")
    print(f"  {'N':>9s} {'accel':>10s} {'direct':>10s} {'speedup':>8s} {'error':>10s}")
    for row in levels:
        status = "PASS" if row.error < args.tolerance else "FAIL"
        print(f"  {row.bodies:>9,} {row.accel_seconds:>10.4g} {row.direct_seconds:>10.4g} "
              f"{row.speedup:>8.2f} {row.error:>10.3g} {status}")
    print(f"{'='*60}")
    print(f"[Validate] Timings written to {path}")

    if failures:
        print(f"[Validate] {len(failures)} level(s) above tolerance {args.tolerance:g}")
        return 1
    print("[Validate] ✓ All levels within tolerance")
    return 0


if __name__ == "__main__":
    sys.exit(main())
