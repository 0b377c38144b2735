# ensemble_matching/allocation/solve.py
from __future__ import annotations

import hashlib
import json
import logging
import uuid
from dataclasses import asdict
from datetime import datetime
from typing import Optional, Sequence, Tuple

from ..config import MAX_FAIRNESS_SWAPS, NEAR_TIE_THRESHOLD, SWAP_SCORE_EPSILON
from ..models import AssignmentRequest, Candidate, ConflictEntry, Solution
from ..store import SolutionStore
from ..validation import validate_request
from .diagnostics import (
    analyze_solution,
    build_target_assignments,
    demand_vs_capacity,
    detect_conflicts,
    verify_ranks,
    verify_solution,
)
from .fairness import evaluate_fairness, rebalance, target_shares
from .graph_builder import build_preference_graph
from .greedy import solve_capacitated
from .milp_model import solve_optimal_total
from .scoring import score_graph

logger = logging.getLogger(__name__)


def solution_digest(request: AssignmentRequest, pool: Sequence[Candidate]) -> str:
    """
    Stable id for a (request, pool) pair. Identical inputs give the same
    solution, so they share an id; any change to either gives a new one.
    """
    payload = {
        "request": request.to_dict(),
        "pool": [asdict(c) for c in sorted(pool, key=lambda c: c.id)],
    }
    blob = json.dumps(payload, sort_keys=True, default=str, ensure_ascii=False)
    return str(uuid.UUID(hex=hashlib.sha256(blob.encode("utf-8")).hexdigest()[:32]))


def solve(
    request: AssignmentRequest,
    pool: Sequence[Candidate],
    *,
    now: Optional[datetime] = None,
    near_tie_threshold: float = NEAR_TIE_THRESHOLD,
    swap_epsilon: float = SWAP_SCORE_EPSILON,
    max_swaps: int = MAX_FAIRNESS_SWAPS,
) -> Solution:
    """
    Builder -> Scorer -> Solver -> Rebalancer -> Reporter.

    Raises AssignmentValidationError for bad input and EngineInvariantError
    if a computed assignment breaks capacity or per-domain uniqueness.
    """
    validate_request(request, pool)
    logger.info(
        "Solving assignment for %d candidates over %d targets",
        len(pool), len(request.capacities),
    )

    graph = build_preference_graph(request, pool)
    scored = score_graph(graph)

    drafts = solve_capacitated(graph.targets, scored)
    verify_solution(drafts)

    shares = target_shares(graph.eligible, request.fairness)
    drafts, swaps = rebalance(drafts, shares, max_swaps=max_swaps, epsilon=swap_epsilon)
    verify_solution(drafts)

    solution_id = solution_digest(request, pool)

    targets = build_target_assignments(drafts, graph.demand)
    verify_ranks(targets)
    fairness = evaluate_fairness(drafts, shares)
    conflicts = detect_conflicts(
        solution_id, drafts, graph.demand, swaps, near_tie_threshold=near_tie_threshold,
    )

    total_score = sum(e.score for d in drafts for e in d.assigned)
    optimal_score = None
    if request.audit_optimality:
        status, optimal_score = solve_optimal_total(graph.targets, scored)
        logger.info("Optimal reference model status: %s", status)
        if status not in ("Optimal", "Feasible"):
            optimal_score = None

    audit = analyze_solution(
        targets,
        fairness,
        conflicts,
        eligible_candidates=len(graph.eligible),
        filtered_out=graph.filtered_out,
        swaps=len(swaps),
        total_score=total_score,
        optimal_score=optimal_score,
    )

    logger.info(
        "Solution %s: %d assigned, %d conflicts, %d swaps",
        solution_id, sum(len(t.assigned) for t in targets), len(conflicts), len(swaps),
    )

    return Solution(
        id=solution_id,
        generated_at=now.isoformat() if now is not None else None,
        config=request,
        targets=targets,
        demand_vs_capacity=demand_vs_capacity(targets),
        fairness=fairness,
        conflicts=conflicts,
        audit=audit,
    )


def conflicts_of(solution_id: str, store: SolutionStore) -> Tuple[ConflictEntry, ...]:
    """Pass-through read of a stored solution's conflicts; no computation."""
    return store.conflicts_of(solution_id)
