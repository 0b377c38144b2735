# ensemble_matching/allocation/greedy.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Set, Tuple

from ..models import Edge, Target
from .scoring import rank_edges

logger = logging.getLogger(__name__)


@dataclass
class TargetDraft:
    """Working lists for one target; only lives inside a solve call."""

    target: Target
    assigned: List[Edge] = field(default_factory=list)
    alternatives: List[Edge] = field(default_factory=list)

    @property
    def code(self) -> str:
        return self.target.code

    @property
    def domain(self) -> str:
        return self.target.domain


def assign_target(target: Target, ranked: List[Edge]) -> TargetDraft:
    """Top `capacity` edges are assigned, the rest become alternatives."""
    cut = max(0, target.capacity)
    return TargetDraft(target=target, assigned=list(ranked[:cut]), alternatives=list(ranked[cut:]))


def solve_capacitated(
    targets: Tuple[Target, ...],
    scored: Dict[str, Tuple[Edge, ...]],
) -> List[TargetDraft]:
    """
    One pass per domain. Within a domain, targets go in ascending code
    order and a candidate placed in an earlier target is removed from the
    later targets' lists before they are cut.

    Returns drafts in (domain, code) order.
    """
    placed: Dict[str, Set[str]] = {}
    drafts: List[TargetDraft] = []

    for target in sorted(targets, key=lambda t: (t.domain, t.code)):
        taken = placed.setdefault(target.domain, set())
        pool = [e for e in scored.get(target.code, ()) if e.candidate_id not in taken]
        draft = assign_target(target, rank_edges(pool))
        taken.update(e.candidate_id for e in draft.assigned)
        drafts.append(draft)
        logger.debug(
            "Target %s (%s): capacity=%d assigned=%d alternatives=%d",
            target.code, target.domain, target.capacity,
            len(draft.assigned), len(draft.alternatives),
        )

    return drafts


def assigned_in_domain(drafts: List[TargetDraft], domain: str) -> Set[str]:
    return {e.candidate_id for d in drafts if d.domain == domain for e in d.assigned}
