# ensemble_matching/reporting.py
from __future__ import annotations

from typing import Dict

import pandas as pd

from .models import Solution

PLACEMENT_COLUMNS = [
    "target", "label", "domain", "list", "rank", "candidate_id", "name", "score", "confidence",
]


def placements_frame(solution: Solution) -> pd.DataFrame:
    """One row per candidate appearance, assigned rows first within a target."""
    rows = []
    for t in solution.targets:
        for kind, placements in (("assigned", t.assigned), ("alternative", t.alternatives)):
            for p in placements:
                rows.append({
                    "target": t.code,
                    "label": t.label,
                    "domain": t.domain,
                    "list": kind,
                    "rank": p.rank,
                    "candidate_id": p.candidate_id,
                    "name": p.name,
                    "score": p.score,
                    "confidence": p.confidence,
                })
    return pd.DataFrame(rows, columns=PLACEMENT_COLUMNS)


def demand_frame(solution: Solution) -> pd.DataFrame:
    df = pd.DataFrame(
        [row.to_dict() for row in solution.demand_vs_capacity],
        columns=["code", "label", "domain", "capacity", "assigned", "demand", "fillRate"],
    )
    return df.rename(columns={"fillRate": "fill_rate"})


def fairness_frame(solution: Solution) -> pd.DataFrame:
    rows = []
    for s in solution.fairness:
        for m in s.metrics:
            rows.append({
                "dimension": s.dimension,
                "status": s.status,
                "category": m.label,
                "observed": m.observed_share,
                "target": m.target_share,
            })
    return pd.DataFrame(rows, columns=["dimension", "status", "category", "observed", "target"])


def conflicts_frame(solution: Solution) -> pd.DataFrame:
    rows = [
        {
            "id": c.id,
            "target": c.target_code,
            "reason": c.reason,
            "note": c.note,
            "candidates": ", ".join(p.candidate_id for p in c.candidates),
        }
        for c in solution.conflicts
    ]
    return pd.DataFrame(rows, columns=["id", "target", "reason", "note", "candidates"])


def solution_frames(solution: Solution) -> Dict[str, pd.DataFrame]:
    return {
        "placements": placements_frame(solution),
        "demand": demand_frame(solution),
        "fairness": fairness_frame(solution),
        "conflicts": conflicts_frame(solution),
    }
