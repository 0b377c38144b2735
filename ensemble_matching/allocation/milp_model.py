# ensemble_matching/allocation/milp_model.py
from __future__ import annotations

from typing import Dict, Tuple

import pulp

from ..models import Edge, Target


def build_optimal_assignment_model(
    targets: Tuple[Target, ...],
    scored: Dict[str, Tuple[Edge, ...]],
) -> Tuple[pulp.LpProblem, Dict[Tuple[str, str], pulp.LpVariable], Dict[Tuple[str, str], float]]:
    """
    Reference MILP for the best achievable total score.

    Variables:
        x[c, t] = 1 if candidate c is assigned to target t.

    Rules encoded:

      1) Target capacity:
           ∀t: sum_c x[c,t] ≤ capacity[t]

      2) At most one assignment per candidate per domain:
           ∀c, ∀d: sum_{t in d} x[c,t] ≤ 1

    Objective:
        maximize sum score[c,t] * x[c,t]

    Only used to audit the greedy pass; the solution itself never comes
    from this model.
    """
    prob = pulp.LpProblem("Ensemble_Optimal_Assignment", pulp.LpMaximize)

    x: Dict[Tuple[str, str], pulp.LpVariable] = {}
    score: Dict[Tuple[str, str], float] = {}
    by_candidate_domain: Dict[Tuple[str, str], list] = {}

    for j, target in enumerate(targets):
        for i, edge in enumerate(scored.get(target.code, ())):
            key = (edge.candidate_id, target.code)
            x[key] = pulp.LpVariable(f"x_{j}_{i}", lowBound=0, upBound=1, cat="Binary")
            score[key] = edge.score
            by_candidate_domain.setdefault((edge.candidate_id, target.domain), []).append(x[key])

    # ---------- Objective ----------
    prob += pulp.lpSum(score[k] * var for k, var in x.items()), "Maximize_Total_Score"

    # ---------- Constraints ----------

    # (1) Capacity per target
    for j, target in enumerate(targets):
        members = [var for (c, code), var in x.items() if code == target.code]
        if members:
            prob += (pulp.lpSum(members) <= target.capacity, f"Capacity_t{j}")

    # (2) One target per candidate per domain
    for n, (key, members) in enumerate(sorted(by_candidate_domain.items())):
        if len(members) > 1:
            prob += (pulp.lpSum(members) <= 1, f"OnePerDomain_{n}")

    return prob, x, score


def solve_optimal_total(
    targets: Tuple[Target, ...],
    scored: Dict[str, Tuple[Edge, ...]],
) -> Tuple[str, float]:
    """
    Solve the reference MILP and return (status, optimal total score).
    """
    if not any(scored.get(t.code) for t in targets):
        return "Optimal", 0.0

    prob, x, score = build_optimal_assignment_model(targets, scored)

    solver = pulp.PULP_CBC_CMD(msg=False)
    prob.solve(solver)

    status = pulp.LpStatus[prob.status]

    total = 0.0
    if status in ("Optimal", "Feasible"):
        for key, var in x.items():
            val = var.varValue
            if val is not None and val > 0.5:
                total += score[key]

    return status, total
