# run_toy.py

import argparse
import logging

import pandas as pd

from ensemble_matching.allocation.solve import conflicts_of, solve
from ensemble_matching.config import DEFAULT_CAPACITIES, DEFAULT_SEED, NUM_CANDIDATES_DEFAULT
from ensemble_matching.data_generation.pool_loader import load_candidate_pool
from ensemble_matching.data_generation.toy_pool import make_toy_pool
from ensemble_matching.logging_utils import configure_logging
from ensemble_matching.models import AssignmentRequest
from ensemble_matching.reporting import solution_frames
from ensemble_matching.store import SolutionStore


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Solve a cast & crew assignment on a toy or CSV pool.")
    parser.add_argument("--csv", help="Candidate pool CSV (otherwise a toy pool is generated).")
    parser.add_argument("--candidates", type=int, default=NUM_CANDIDATES_DEFAULT)
    parser.add_argument("--seed", type=int, default=DEFAULT_SEED)
    parser.add_argument(
        "--capacity",
        action="append",
        default=[],
        metavar="CODE=N",
        help="Override a target capacity, e.g. --capacity crew_stage=4 (repeatable).",
    )
    parser.add_argument("--audit-optimality", action="store_true")
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.INFO)

    capacities = dict(DEFAULT_CAPACITIES)
    for item in args.capacity:
        code, _, value = item.partition("=")
        capacities[code.strip()] = int(value)

    if args.csv:
        pool = load_candidate_pool(args.csv)
    else:
        pool = make_toy_pool(num_candidates=args.candidates, seed=args.seed)

    request = AssignmentRequest(capacities=capacities, audit_optimality=args.audit_optimality)
    solution = solve(request, pool)

    store = SolutionStore()
    store.put(solution)

    # ============================
    #  PRINT SOLUTION (PANDAS)
    # ============================
    frames = solution_frames(solution)
    with pd.option_context("display.max_rows", 200, "display.width", 160):
        print("\n=== Demand vs capacity ===")
        print(frames["demand"].to_string(index=False))

        print("\n=== Placements ===")
        print(frames["placements"].to_string(index=False))

        print("\n=== Fairness ===")
        print(frames["fairness"].to_string(index=False))

    print(f"\n=== Conflicts for solution {solution.id} ===")
    for c in conflicts_of(solution.id, store):
        ids = ", ".join(f"{p.candidate_id} ({p.score:.3f})" for p in c.candidates)
        print(f"  [{c.reason}] {c.target_label}: {c.note} -> {ids}")

    print("\n=== Audit ===")
    for msg in solution.audit.messages:
        print(f"  - {msg}")
    print(f"  {solution.audit.suggestion}")


if __name__ == "__main__":
    main()
