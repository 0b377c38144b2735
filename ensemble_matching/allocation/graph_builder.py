# ensemble_matching/allocation/graph_builder.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set, Tuple

from ..config import DOMAINS, GUARDIAN_DOCUMENT_DOMAINS, TARGET_CATALOGUE
from ..models import AssignmentFilters, AssignmentRequest, Candidate, Edge, Target

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreferenceGraph:
    """
    Bipartite candidate x target structure for one solve run.

      targets:          resolved targets, ordered by (domain, code)
      edges_by_target:  target code -> unscored edges (weight > 0 only)
      demand:           target code -> number of positive-weight edges
      eligible:         candidates that survived filtering with >= 1 edge
      filtered_out:     candidates removed by the request filters
    """

    targets: Tuple[Target, ...]
    edges_by_target: Dict[str, Tuple[Edge, ...]]
    demand: Dict[str, int]
    eligible: Tuple[Candidate, ...]
    filtered_out: int


def declared_target_domains(pool: Sequence[Candidate]) -> Dict[str, Set[str]]:
    """target code -> domains named by any preference pointing at it."""
    declared: Dict[str, Set[str]] = {}
    for c in pool:
        for p in c.preferences:
            declared.setdefault(p.target_code, set()).add(p.domain)
    return declared


def resolve_target_domain(code: str, declared: Dict[str, Set[str]]) -> Optional[str]:
    """
    Catalogue first, then what the preferences say, then the code prefix
    (`acting_lead` -> acting).
    """
    if code in TARGET_CATALOGUE:
        return TARGET_CATALOGUE[code][1]
    named = sorted(declared.get(code, set()) & set(DOMAINS))
    if named:
        return named[0]
    prefix = code.split("_", 1)[0]
    return prefix if prefix in DOMAINS else None


def label_for_target(code: str) -> str:
    if code in TARGET_CATALOGUE:
        return TARGET_CATALOGUE[code][0]
    return " ".join(part.capitalize() for part in code.split("_") if part)


def resolve_targets(request: AssignmentRequest, pool: Sequence[Candidate]) -> Tuple[Target, ...]:
    declared = declared_target_domains(pool)
    targets: List[Target] = []
    for code, capacity in request.capacities.items():
        domain = resolve_target_domain(code, declared)
        if domain is None:
            raise ValueError(f"Target {code} has no resolvable domain; validate the request first.")
        targets.append(Target(code=code, label=label_for_target(code), domain=domain, capacity=int(capacity)))
    targets.sort(key=lambda t: (t.domain, t.code))
    return tuple(targets)


def matches_filters(candidate: Candidate, filters: AssignmentFilters) -> bool:
    """AND across filter dimensions, OR within one dimension's values."""
    if filters.focuses and candidate.focus not in filters.focuses:
        return False
    if filters.age_buckets:
        bucket = candidate.age_bucket
        if bucket is None or bucket not in filters.age_buckets:
            return False
    if filters.backgrounds:
        wanted = {b.lower() for b in filters.backgrounds}
        if (candidate.background or "").lower() not in wanted:
            return False
    if filters.document_statuses and candidate.document_status not in filters.document_statuses:
        return False
    return True


def apply_filters(pool: Sequence[Candidate], filters: AssignmentFilters) -> List[Candidate]:
    if not filters.active:
        return list(pool)
    return [c for c in pool if matches_filters(c, filters)]


def guardian_document_blocked(candidate: Candidate, domain: str) -> bool:
    """Minor without guardian paperwork for a domain that needs it."""
    return (
        domain in GUARDIAN_DOCUMENT_DOMAINS
        and candidate.is_minor
        and candidate.document_status == "missing"
    )


def build_preference_graph(
    request: AssignmentRequest,
    pool: Sequence[Candidate],
) -> PreferenceGraph:
    """
    Filter the pool and emit one edge per positive-weight preference whose
    target was requested. Candidates left without edges are dropped quietly;
    being absent from every target is not a fault.
    """
    targets = resolve_targets(request, pool)
    target_domain = {t.code: t.domain for t in targets}

    survivors = apply_filters(pool, request.filters)
    filtered_out = len(pool) - len(survivors)

    edges: Dict[str, List[Edge]] = {t.code: [] for t in targets}
    eligible: List[Candidate] = []

    for c in survivors:
        emitted = 0
        for p in c.preferences:
            if p.weight <= 0 or p.target_code not in target_domain:
                continue
            domain = target_domain[p.target_code]
            if request.require_guardian_documents and guardian_document_blocked(c, domain):
                continue
            edges[p.target_code].append(
                Edge(candidate=c, target_code=p.target_code, domain=domain, raw_weight=p.weight)
            )
            emitted += 1
        if emitted:
            eligible.append(c)

    demand = {code: len(lst) for code, lst in edges.items()}
    logger.debug(
        "Preference graph: %d candidates eligible, %d filtered out, demand=%s",
        len(eligible), filtered_out, demand,
    )

    return PreferenceGraph(
        targets=targets,
        edges_by_target={code: tuple(lst) for code, lst in edges.items()},
        demand=demand,
        eligible=tuple(eligible),
        filtered_out=filtered_out,
    )
