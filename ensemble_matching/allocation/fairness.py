# ensemble_matching/allocation/fairness.py
from __future__ import annotations

import logging
from collections import Counter
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from ..config import (
    AGE_BUCKETS,
    DOCUMENT_STATUSES,
    FAIRNESS_DIMENSIONS,
    FAIRNESS_THRESHOLDS,
    FOCUSES,
    GENDERS,
    MAX_FAIRNESS_SWAPS,
    REPORT_PRECISION,
    SCORE_PRECISION,
    SWAP_SCORE_EPSILON,
)
from ..models import Candidate, Edge, FairnessMetric, FairnessSignal, FairnessSwap
from .greedy import TargetDraft, assigned_in_domain
from .scoring import rank_edges

logger = logging.getLogger(__name__)

# dimension -> ordered (category, label)
CATEGORY_LABELS: Dict[str, Tuple[Tuple[str, str], ...]] = {
    "focus": tuple(zip(FOCUSES, ("Schauspiel", "Technik", "Beides"))),
    "age": tuple((b[0], b[1]) for b in AGE_BUCKETS) + (("unknown", "Unbekannt"),),
    "experience": (("experienced", "Erfahren"), ("newcomer", "Neu")),
    "documents": tuple(zip(DOCUMENT_STATUSES, ("Vollständig", "Ausstehend", "Fehlend"))),
    "gender": tuple(zip(GENDERS, (
        "Weiblich", "Männlich", "Divers", "Keine Angabe", "Selbst beschrieben", "Unbekannt",
    ))),
}

SUMMARIES = {
    "focus": "Verteilung der Schwerpunkte (Schauspiel/Technik) unter den Besetzten",
    "age": "Altersstruktur der Besetzten im Vergleich zum Ziel",
    "experience": "Balance zwischen erfahrenen und neuen Teilnehmenden",
    "documents": "Dokumentenstand der Besetzten",
    "gender": "Vergleich zwischen Ziel- und Ist-Geschlechterverteilung",
}

_EPS = 1e-9


def category_of(candidate: Candidate, dimension: str) -> str:
    if dimension == "focus":
        return candidate.focus
    if dimension == "age":
        return candidate.age_bucket or "unknown"
    if dimension == "experience":
        return candidate.experience
    if dimension == "documents":
        return candidate.document_status
    if dimension == "gender":
        return candidate.gender
    raise ValueError(f"Unknown fairness dimension {dimension!r}.")


def _normalize(values: Mapping[str, float]) -> Dict[str, float]:
    kept = {k: float(values[k]) for k in sorted(values) if values[k] >= 0}
    total = sum(kept.values())
    if total <= 0:
        return {k: 1.0 / len(kept) for k in kept} if kept else {}
    return {k: v / total for k, v in kept.items()}


def target_shares(
    eligible: Sequence[Candidate],
    fairness: Mapping[str, Mapping[str, float]],
) -> Dict[str, Dict[str, float]]:
    """
    Per dimension: the eligible pool's own shares, overridden by any shares
    the caller supplied, renormalized to sum to 1.
    """
    out: Dict[str, Dict[str, float]] = {}
    total = max(1, len(eligible))
    for dimension in FAIRNESS_DIMENSIONS:
        counts = Counter(category_of(c, dimension) for c in eligible)
        observed = {k: counts[k] / total for k in sorted(counts)}
        merged = dict(observed)
        merged.update(fairness.get(dimension, {}))
        out[dimension] = _normalize(merged)
    return out


def _deviation(counts: Mapping[str, int], targets: Mapping[str, float]) -> float:
    total = sum(counts.values())
    if total == 0:
        return 0.0
    categories = set(counts) | set(targets)
    return max(abs(counts.get(k, 0) / total - targets.get(k, 0.0)) for k in categories)


def _status(dimension: str, deviation: float) -> str:
    warning, critical = FAIRNESS_THRESHOLDS[dimension]
    if deviation < warning:
        return "good"
    if deviation < critical:
        return "warning"
    return "critical"


def _assigned_counts(drafts: Sequence[TargetDraft], dimension: str) -> Counter:
    return Counter(category_of(e.candidate, dimension) for d in drafts for e in d.assigned)


def evaluate_fairness(
    drafts: Sequence[TargetDraft],
    targets: Mapping[str, Mapping[str, float]],
) -> Tuple[FairnessSignal, ...]:
    """One signal per tracked dimension over all assigned placements."""
    signals: List[FairnessSignal] = []
    for dimension in FAIRNESS_DIMENSIONS:
        counts = _assigned_counts(drafts, dimension)
        total = sum(counts.values())
        wanted = targets.get(dimension, {})
        metrics: List[FairnessMetric] = []
        if total:
            for category, label in CATEGORY_LABELS[dimension]:
                observed = counts.get(category, 0) / total
                target = wanted.get(category, 0.0)
                if observed == 0 and target == 0:
                    continue
                metrics.append(FairnessMetric(
                    label=label,
                    observed_share=round(observed, REPORT_PRECISION),
                    target_share=round(target, REPORT_PRECISION),
                ))
        deviation = _deviation(counts, wanted)
        signals.append(FairnessSignal(
            dimension=dimension,
            status=_status(dimension, deviation),
            summary=SUMMARIES[dimension],
            metrics=tuple(metrics),
            deviation=round(deviation, REPORT_PRECISION),
        ))
    return tuple(signals)


def _best_swap(
    drafts: Sequence[TargetDraft],
    dimension: str,
    wanted: Mapping[str, float],
    touched: set,
    epsilon: float,
) -> Optional[Tuple[int, Edge, Edge, float]]:
    counts = _assigned_counts(drafts, dimension)
    total = sum(counts.values())
    if total == 0:
        return None
    current = _deviation(counts, wanted)
    gap = {k: counts.get(k, 0) / total - wanted.get(k, 0.0) for k in set(counts) | set(wanted)}

    best = None
    best_key = None
    for idx, draft in enumerate(drafts):
        taken = assigned_in_domain(list(drafts), draft.domain)
        for a in draft.assigned:
            cat_a = category_of(a.candidate, dimension)
            if a.candidate_id in touched or gap.get(cat_a, 0.0) <= _EPS:
                continue
            for b in draft.alternatives:
                cat_b = category_of(b.candidate, dimension)
                if b.candidate_id in touched or b.candidate_id in taken:
                    continue
                if gap.get(cat_b, 0.0) >= -_EPS:
                    continue
                loss = round(a.score - b.score, SCORE_PRECISION)
                if loss > epsilon + _EPS:
                    continue
                trial = Counter(counts)
                trial[cat_a] -= 1
                trial[cat_b] += 1
                if _deviation(trial, wanted) >= current - _EPS:
                    continue
                key = (loss, idx, a.candidate_id, b.candidate_id)
                if best_key is None or key < best_key:
                    best_key = key
                    best = (idx, a, b, loss)
    return best


def rebalance(
    drafts: Sequence[TargetDraft],
    targets: Mapping[str, Mapping[str, float]],
    max_swaps: int = MAX_FAIRNESS_SWAPS,
    epsilon: float = SWAP_SCORE_EPSILON,
) -> Tuple[List[TargetDraft], List[FairnessSwap]]:
    """
    Bounded, score-loss-limited swaps between a target's assigned and
    alternate lists to pull off-target dimensions back towards their
    target shares. Works on copies; every swap is returned for reporting.
    """
    work = [TargetDraft(d.target, list(d.assigned), list(d.alternatives)) for d in drafts]
    swaps: List[FairnessSwap] = []
    touched: set = set()

    while len(swaps) < max_swaps:
        signals = evaluate_fairness(work, targets)
        order = {dim: i for i, dim in enumerate(FAIRNESS_DIMENSIONS)}
        offending = sorted(
            (s for s in signals if s.status != "good"),
            key=lambda s: (-s.deviation, order[s.dimension]),
        )
        found = None
        for signal in offending:
            found = _best_swap(work, signal.dimension, targets.get(signal.dimension, {}), touched, epsilon)
            if found is not None:
                found = (signal.dimension,) + found
                break
        if found is None:
            break

        dimension, idx, a, b, loss = found
        draft = work[idx]
        draft.assigned = rank_edges([e for e in draft.assigned if e is not a] + [b])
        draft.alternatives = rank_edges([e for e in draft.alternatives if e is not b] + [a])
        touched.update((a.candidate_id, b.candidate_id))
        swaps.append(FairnessSwap(
            target_code=draft.code,
            domain=draft.domain,
            dimension=dimension,
            displaced=a,
            placed=b,
            score_loss=loss,
        ))
        logger.info(
            "Fairness swap on %s (%s): %s -> %s, score loss %.4f",
            draft.code, dimension, a.candidate_id, b.candidate_id, loss,
        )

    for s in evaluate_fairness(work, targets):
        if s.status == "critical":
            logger.warning("Fairness dimension %s stays critical (deviation %.3f)", s.dimension, s.deviation)

    return work, swaps
