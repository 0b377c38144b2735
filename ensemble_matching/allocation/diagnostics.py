# ensemble_matching/allocation/diagnostics.py
from __future__ import annotations

import logging
import uuid
from collections import Counter
from typing import Dict, List, Optional, Sequence, Tuple

from ..config import CONFLICT_CONTEXT_SIZE, NEAR_TIE_THRESHOLD, REPORT_PRECISION
from ..errors import EngineInvariantError
from ..models import (
    CandidatePlacement,
    ConflictEntry,
    DemandRow,
    Edge,
    FairnessSignal,
    FairnessSwap,
    SolutionAudit,
    TargetAssignment,
)
from .greedy import TargetDraft

logger = logging.getLogger(__name__)

CONFLICT_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_DNS, "ensemble-matching.conflicts")

_EPS = 1e-9


def _r(value: float) -> float:
    return round(value, REPORT_PRECISION)


def to_placement(edge: Edge, rank: int) -> CandidatePlacement:
    c = edge.candidate
    return CandidatePlacement(
        candidate_id=c.id,
        name=c.name,
        email=c.email,
        focus=c.focus,
        gender=c.gender,
        age=c.age,
        age_bucket=c.age_bucket,
        background=c.background,
        tenure_year=c.tenure_year,
        document_status=c.document_status,
        score=_r(edge.score),
        normalized_weight=_r(edge.normalized_weight),
        quality_factor=_r(edge.quality_factor),
        confidence=_r(edge.confidence),
        reasons=edge.reasons,
        rank=rank,
    )


def _ranked(edges: Sequence[Edge]) -> Tuple[CandidatePlacement, ...]:
    return tuple(to_placement(e, i + 1) for i, e in enumerate(edges))


def summarize_scores(edges: Sequence[Edge]) -> Tuple[float, float]:
    """(average, median) of edge scores; (0, 0) for an empty list."""
    if not edges:
        return 0.0, 0.0
    scores = sorted(e.score for e in edges)
    mid = len(scores) // 2
    median = scores[mid] if len(scores) % 2 else (scores[mid - 1] + scores[mid]) / 2
    return sum(scores) / len(scores), median


def build_target_assignments(
    drafts: Sequence[TargetDraft],
    demand: Dict[str, int],
) -> Tuple[TargetAssignment, ...]:
    out: List[TargetAssignment] = []
    for d in drafts:
        average, median = summarize_scores(d.assigned)
        out.append(TargetAssignment(
            code=d.code,
            label=d.target.label,
            domain=d.domain,
            capacity=d.target.capacity,
            demand=demand.get(d.code, 0),
            assigned=_ranked(d.assigned),
            alternatives=_ranked(d.alternatives),
            average_score=_r(average),
            median_score=_r(median),
        ))
    return tuple(out)


def demand_vs_capacity(targets: Sequence[TargetAssignment]) -> Tuple[DemandRow, ...]:
    return tuple(
        DemandRow(
            code=t.code,
            label=t.label,
            domain=t.domain,
            capacity=t.capacity,
            assigned=len(t.assigned),
            demand=t.demand,
            fill_rate=round(len(t.assigned) / t.capacity, 2) if t.capacity > 0 else 0.0,
        )
        for t in targets
    )


# ======================================================================
#  Conflicts
# ======================================================================

def _conflict_id(solution_id: str, code: str, reason: str, n: int) -> str:
    return str(uuid.uuid5(CONFLICT_NAMESPACE, f"{solution_id}:{code}:{reason}:{n}"))


def detect_conflicts(
    solution_id: str,
    drafts: Sequence[TargetDraft],
    demand: Dict[str, int],
    swaps: Sequence[FairnessSwap],
    near_tie_threshold: float = NEAR_TIE_THRESHOLD,
    context_size: int = CONFLICT_CONTEXT_SIZE,
) -> Tuple[ConflictEntry, ...]:
    """
    Per target, in order:
      - over-demand:        demand > capacity
      - near-tie:           lowest assigned vs best alternative within threshold
      - fairness-override:  one entry per swap on that target
    Purely additive; nothing here changes the assignment.
    """
    entries: List[ConflictEntry] = []

    for d in drafts:
        target = d.target
        wanted = demand.get(d.code, 0)
        cut_line = [to_placement(d.assigned[-1], len(d.assigned))] if d.assigned else []

        def entry(reason: str, note: str, candidates: List[CandidatePlacement], n: int = 0) -> ConflictEntry:
            return ConflictEntry(
                id=_conflict_id(solution_id, d.code, reason, n),
                target_code=d.code,
                target_label=target.label,
                domain=d.domain,
                reason=reason,
                note=note,
                candidates=tuple(candidates),
            )

        if wanted > target.capacity:
            context = [to_placement(e, i + 1) for i, e in enumerate(d.alternatives[:context_size])]
            entries.append(entry(
                "over-demand",
                f"Nachfrage {wanted} übersteigt Kapazität {target.capacity}",
                cut_line + context,
            ))

        if d.assigned and d.alternatives:
            lowest = d.assigned[-1].score
            close = [
                to_placement(e, i + 1)
                for i, e in enumerate(d.alternatives)
                if lowest - e.score <= near_tie_threshold + _EPS
            ]
            if close:
                entries.append(entry(
                    "near-tie",
                    "Enges Scoring – manuelle Entscheidung empfohlen",
                    cut_line + close,
                ))

        for n, swap in enumerate(s for s in swaps if s.target_code == d.code):
            displaced_rank = next(
                (i + 1 for i, e in enumerate(d.alternatives) if e.candidate_id == swap.displaced.candidate_id),
                0,
            )
            placed_rank = next(
                (i + 1 for i, e in enumerate(d.assigned) if e.candidate_id == swap.placed.candidate_id),
                0,
            )
            entries.append(entry(
                "fairness-override",
                f"Fairness-Ausgleich ({swap.dimension}): {swap.displaced.candidate_id} "
                f"ersetzt durch {swap.placed.candidate_id}, Scoreverlust {swap.score_loss:.3f}",
                [to_placement(swap.displaced, displaced_rank), to_placement(swap.placed, placed_rank)],
                n,
            ))

    return tuple(entries)


# ======================================================================
#  Invariants
# ======================================================================

def verify_solution(drafts: Sequence[TargetDraft]) -> None:
    """
    Abort the solve call if the drafts break a guarantee:
      - len(assigned) <= capacity
      - a candidate is assigned at most once per domain
      - assigned and alternatives are disjoint within a target
    """
    problems: List[str] = []
    per_domain: Counter = Counter()

    for d in drafts:
        if len(d.assigned) > d.target.capacity:
            problems.append(f"{d.code}: {len(d.assigned)} assigned exceeds capacity {d.target.capacity}")
        assigned_ids = [e.candidate_id for e in d.assigned]
        alt_ids = [e.candidate_id for e in d.alternatives]
        if len(set(assigned_ids)) != len(assigned_ids) or len(set(alt_ids)) != len(alt_ids):
            problems.append(f"{d.code}: candidate listed twice")
        overlap = set(assigned_ids) & set(alt_ids)
        if overlap:
            problems.append(f"{d.code}: {sorted(overlap)} both assigned and alternative")
        for cid in set(assigned_ids):
            per_domain[(d.domain, cid)] += 1

    for (domain, cid), n in sorted(per_domain.items()):
        if n > 1:
            problems.append(f"{cid} assigned {n} times in domain {domain}")

    if problems:
        logger.error("Solution invariant violated: %s", "; ".join(problems))
        raise EngineInvariantError("; ".join(problems))


def verify_ranks(targets: Sequence[TargetAssignment]) -> None:
    """Ranks in every assigned and alternatives list must run 1..n."""
    problems: List[str] = []
    for t in targets:
        for name, placements in (("assigned", t.assigned), ("alternatives", t.alternatives)):
            ranks = [p.rank for p in placements]
            if ranks != list(range(1, len(ranks) + 1)):
                problems.append(f"{t.code}: {name} ranks {ranks} are not contiguous from 1")

    if problems:
        logger.error("Solution invariant violated: %s", "; ".join(problems))
        raise EngineInvariantError("; ".join(problems))


# ======================================================================
#  Audit
# ======================================================================

def analyze_solution(
    targets: Sequence[TargetAssignment],
    fairness: Sequence[FairnessSignal],
    conflicts: Sequence[ConflictEntry],
    eligible_candidates: int,
    filtered_out: int,
    swaps: int,
    total_score: float,
    optimal_score: Optional[float] = None,
) -> SolutionAudit:
    """
    Human-readable diagnostics over a finished solution.

    Returns a SolutionAudit whose `messages` list every point an operator
    should look at and whose `suggestion` sums them up in one line.
    """
    messages: List[str] = []

    over = [t for t in targets if t.demand > t.capacity]
    for t in over:
        messages.append(
            f"Target {t.code} is over-subscribed: demand {t.demand} for capacity {t.capacity}."
        )

    unfilled = [t for t in targets if len(t.assigned) < t.capacity]
    for t in unfilled:
        messages.append(
            f"Target {t.code} has {t.capacity - len(t.assigned)} unfilled slot(s) "
            f"({len(t.assigned)}/{t.capacity})."
        )

    critical = [s for s in fairness if s.status == "critical"]
    for s in critical:
        messages.append(
            f"Fairness dimension {s.dimension} is critical (deviation {s.deviation:.3f}) "
            f"and no swap within the score tolerance could fix it."
        )

    ties = sorted({c.target_code for c in conflicts if c.reason == "near-tie"})
    if ties:
        messages.append(f"Cut line is contested for: {', '.join(ties)}.")

    if swaps:
        messages.append(f"{swaps} fairness swap(s) overrode the score order; see conflicts.")

    gap = None
    if optimal_score is not None:
        gap = _r(max(0.0, optimal_score - total_score))
        if gap > 0:
            messages.append(
                f"Greedy placement scores {total_score:.3f}; the best possible total is "
                f"{optimal_score:.3f} (gap {gap:.3f})."
            )

    ok = len(messages) == 0

    if ok:
        suggestion = "No capacity, fairness or cut-line issues detected."
    else:
        suggestion = "Review needed. "
        if over:
            suggestion += "Consider raising capacity on over-subscribed targets. "
        if unfilled:
            suggestion += "Consider recruiting for or shrinking unfilled targets. "
        if critical:
            suggestion += "Consider adjusting fairness targets or widening the candidate pool. "
        if ties or swaps:
            suggestion += "Confirm contested and overridden placements manually."
        suggestion = suggestion.strip()

    return SolutionAudit(
        ok=ok,
        messages=tuple(messages),
        suggestion=suggestion,
        total_score=_r(total_score),
        eligible_candidates=eligible_candidates,
        filtered_out=filtered_out,
        swaps=swaps,
        optimal_score=_r(optimal_score) if optimal_score is not None else None,
        optimality_gap=gap,
    )
