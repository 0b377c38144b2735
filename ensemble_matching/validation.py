# ensemble_matching/validation.py
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict
from typing import Any, Dict, List, Sequence, Set

from .config import DOMAINS, TARGET_CATALOGUE
from .errors import AssignmentValidationError
from .models import AssignmentRequest, Candidate
from .schemas import CandidateSchema, RequestSchema, schema_issues
from .allocation.graph_builder import declared_target_domains, resolve_target_domain


def _plain(value: Any) -> Any:
    return dict(value) if isinstance(value, Mapping) else value


def _request_payload(request: AssignmentRequest) -> Dict[str, Any]:
    f = request.filters
    fairness = request.fairness
    if isinstance(fairness, Mapping):
        fairness = {dim: _plain(shares) for dim, shares in fairness.items()}
    return {
        "capacities": _plain(request.capacities),
        "filters": {
            "focuses": f.focuses,
            "age_buckets": f.age_buckets,
            "backgrounds": f.backgrounds,
            "document_statuses": f.document_statuses,
        },
        "fairness": fairness,
        "require_guardian_documents": request.require_guardian_documents,
        "audit_optimality": request.audit_optimality,
    }


def request_issues(request: AssignmentRequest) -> List[str]:
    """Problems in the request itself (capacities, filters, fairness targets)."""
    return schema_issues(RequestSchema, _request_payload(request))


def pool_issues(pool: Sequence[Candidate]) -> List[str]:
    """Problems in the candidate snapshot."""
    issues: List[str] = []
    seen: Set[str] = set()

    for c in pool:
        if c.id in seen:
            issues.append(f"Duplicate candidate id {c.id}.")
        seen.add(c.id)

        issues += schema_issues(CandidateSchema, asdict(c), prefix=f"Candidate {c.id}: ")

        codes: Set[str] = set()
        for p in c.preferences:
            if p.target_code in codes:
                issues.append(f"Candidate {c.id} has more than one preference for {p.target_code}.")
            codes.add(p.target_code)

    return issues


def target_issues(request: AssignmentRequest, pool: Sequence[Candidate]) -> List[str]:
    """Every requested target needs exactly one resolvable domain."""
    issues: List[str] = []
    declared = declared_target_domains(pool)

    for code in sorted(c for c in request.capacities if isinstance(c, str)):
        domains = declared.get(code, set()) & set(DOMAINS)
        if code in TARGET_CATALOGUE:
            expected = TARGET_CATALOGUE[code][1]
            for d in sorted(domains - {expected}):
                issues.append(f"Preferences name domain {d!r} for {code}, which belongs to {expected!r}.")
            continue
        if len(domains) > 1:
            issues.append(f"Preferences disagree on the domain of {code}: {sorted(domains)}.")
        elif resolve_target_domain(code, declared) is None:
            issues.append(f"Cannot resolve the domain of target {code}.")

    return issues


def validate_request(request: AssignmentRequest, pool: Sequence[Candidate]) -> None:
    """
    Raise AssignmentValidationError listing every problem, or return None.
    Nothing is clamped or repaired here.
    """
    issues = request_issues(request) + pool_issues(pool)
    if not issues:
        issues = target_issues(request, pool)
    if issues:
        raise AssignmentValidationError(issues)
