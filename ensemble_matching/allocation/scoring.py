# ensemble_matching/allocation/scoring.py
from __future__ import annotations

from dataclasses import replace
from typing import Dict, List, Tuple

from ..config import (
    DOMAIN_FOCUS,
    GUARDIAN_DOCUMENT_DOMAINS,
    HIGH_WEIGHT_THRESHOLD,
    MAX_PREFERENCE_WEIGHT,
    QUALITY_BASE,
    QUALITY_DOCUMENT_COMPLETE_BONUS,
    QUALITY_DOCUMENT_MISSING_PENALTY,
    QUALITY_FOCUS_MATCH_BONUS,
    QUALITY_FOCUS_MISMATCH_PENALTY,
    QUALITY_PROFILE_COMPLETE_BONUS,
    QUALITY_TENURE_BONUS,
    SCORE_PRECISION,
)
from ..models import Candidate, Edge
from .graph_builder import PreferenceGraph

DOCUMENT_RANK = {"complete": 0, "pending": 1, "missing": 2}


def quality_factor(candidate: Candidate, domain: str) -> Tuple[float, List[str]]:
    """
    Secondary signals folded into one multiplier:
    tenure, profile completeness, document readiness and focus alignment.
    """
    factor = QUALITY_BASE
    reasons: List[str] = []

    if candidate.tenure_year is not None:
        factor += QUALITY_TENURE_BONUS
        reasons.append(f"Mitglied seit {candidate.tenure_year}")
    else:
        reasons.append("Neu im Ensemble")

    if candidate.profile_complete:
        factor += QUALITY_PROFILE_COMPLETE_BONUS
        reasons.append("Onboarding abgeschlossen")

    if candidate.document_status == "complete":
        factor += QUALITY_DOCUMENT_COMPLETE_BONUS
        reasons.append("Dokument vollständig")
    elif candidate.document_status == "missing" and candidate.is_minor and domain in GUARDIAN_DOCUMENT_DOMAINS:
        factor -= QUALITY_DOCUMENT_MISSING_PENALTY
        reasons.append("Erziehungsberechtigten-Dokument fehlt")
    elif candidate.document_status == "pending":
        reasons.append("Dokument ausstehend")

    if candidate.focus in DOMAIN_FOCUS[domain]:
        factor += QUALITY_FOCUS_MATCH_BONUS
        reasons.append("Fokus auf Schauspiel" if domain == "acting" else "Fokus auf Technik/Gewerke")
    else:
        factor -= QUALITY_FOCUS_MISMATCH_PENALTY[domain]
        reasons.append(
            "Primärer Fokus außerhalb Schauspiel" if domain == "acting" else "Primärer Fokus außerhalb Technik"
        )

    return factor, reasons


def tie_break_key(candidate: Candidate, domain: str) -> Tuple[int, int, int]:
    """
    (a) earlier tenure first, unknown tenure last;
    (b) document readiness, only where the domain needs guardian paperwork.
    Candidate id is appended by Edge.sort_key as the final key.
    """
    tenure = (0, candidate.tenure_year) if candidate.tenure_year is not None else (1, 0)
    docs = DOCUMENT_RANK[candidate.document_status] if domain in GUARDIAN_DOCUMENT_DOMAINS else 0
    return tenure + (docs,)


def weight_reason(weight: float) -> str:
    if weight >= HIGH_WEIGHT_THRESHOLD:
        return "hohe Präferenzgewichtung"
    return f"Präferenzgewicht {round(weight)} %"


def score_edge(edge: Edge) -> Edge:
    normalized = edge.raw_weight / MAX_PREFERENCE_WEIGHT
    factor, reasons = quality_factor(edge.candidate, edge.domain)
    return replace(
        edge,
        normalized_weight=normalized,
        quality_factor=round(factor, SCORE_PRECISION),
        score=round(normalized * factor, SCORE_PRECISION),
        tie_break=tie_break_key(edge.candidate, edge.domain),
        reasons=(weight_reason(edge.raw_weight),) + tuple(reasons),
    )


def rank_edges(edges: List[Edge]) -> List[Edge]:
    return sorted(edges, key=lambda e: e.sort_key)


def with_confidence(ranked: List[Edge]) -> List[Edge]:
    """
    confidence = margin to the next-lower edge, relative to own score,
    clipped to [0, 1]. The last edge is measured against zero.
    """
    out: List[Edge] = []
    for i, e in enumerate(ranked):
        below = ranked[i + 1].score if i + 1 < len(ranked) else 0.0
        margin = (e.score - below) / e.score if e.score > 0 else 0.0
        out.append(replace(e, confidence=round(min(1.0, max(0.0, margin)), SCORE_PRECISION)))
    return out


def score_graph(graph: PreferenceGraph) -> Dict[str, Tuple[Edge, ...]]:
    """target code -> scored edges in ranking order."""
    scored: Dict[str, Tuple[Edge, ...]] = {}
    for code, edges in graph.edges_by_target.items():
        ranked = rank_edges([score_edge(e) for e in edges])
        scored[code] = tuple(with_confidence(ranked))
    return scored
