# ensemble_matching/models.py
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from .config import AGE_BUCKETS, MINOR_MAX_AGE
from .schemas import CandidateSchema, FiltersSchema, PreferenceSchema, RequestSchema, parse


def resolve_age_bucket(age: Optional[int]) -> Optional[str]:
    if age is None:
        return None
    for bucket_id, _label, lo, hi in AGE_BUCKETS:
        if (lo is None or age >= lo) and (hi is None or age <= hi):
            return bucket_id
    return AGE_BUCKETS[-1][0]


def _frozen_mapping(value: Any) -> Any:
    # non-mappings are left for validation to report
    if isinstance(value, Mapping):
        return MappingProxyType(dict(value))
    return value


# ======================================================================
#  Inputs
# ======================================================================

@dataclass(frozen=True)
class Preference:
    target_code: str
    domain: str
    weight: float

    @classmethod
    def from_schema(cls, schema: PreferenceSchema) -> "Preference":
        return cls(target_code=schema.target_code, domain=schema.domain, weight=schema.weight)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Preference":
        return cls.from_schema(parse(PreferenceSchema, data))

    def to_dict(self) -> Dict[str, Any]:
        return {"targetCode": self.target_code, "domain": self.domain, "weight": self.weight}


@dataclass(frozen=True)
class Candidate:
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    focus: str = "acting"
    age: Optional[int] = None
    tenure_year: Optional[int] = None   # year first joined
    document_status: str = "missing"
    preferences: Tuple[Preference, ...] = ()
    gender: str = "unknown"
    background: Optional[str] = None
    profile_complete: bool = False

    @property
    def age_bucket(self) -> Optional[str]:
        return resolve_age_bucket(self.age)

    @property
    def is_minor(self) -> bool:
        return self.age is not None and self.age <= MINOR_MAX_AGE

    @property
    def experience(self) -> str:
        return "experienced" if self.tenure_year is not None else "newcomer"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Candidate":
        """Parse one pool entry; raises AssignmentValidationError."""
        s = parse(CandidateSchema, data)
        return cls(
            id=s.id,
            name=s.name,
            email=s.email,
            focus=s.focus,
            age=s.age,
            tenure_year=s.tenure_year,
            document_status=s.document_status,
            preferences=tuple(Preference.from_schema(p) for p in s.preferences),
            gender=s.gender,
            background=s.background,
            profile_complete=s.profile_complete,
        )


@dataclass(frozen=True)
class AssignmentFilters:
    """Optional allow-lists; an empty list means no restriction."""

    focuses: Tuple[str, ...] = ()
    age_buckets: Tuple[str, ...] = ()
    backgrounds: Tuple[str, ...] = ()
    document_statuses: Tuple[str, ...] = ()

    def __post_init__(self):
        for name in ("focuses", "age_buckets", "backgrounds", "document_statuses"):
            value = getattr(self, name)
            if isinstance(value, (list, tuple)):
                object.__setattr__(self, name, tuple(value))

    @property
    def active(self) -> bool:
        return bool(self.focuses or self.age_buckets or self.backgrounds or self.document_statuses)

    @classmethod
    def from_schema(cls, schema: FiltersSchema) -> "AssignmentFilters":
        return cls(
            focuses=tuple(schema.focuses),
            age_buckets=tuple(schema.age_buckets),
            backgrounds=tuple(schema.backgrounds),
            document_statuses=tuple(schema.document_statuses),
        )

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "AssignmentFilters":
        return cls.from_schema(parse(FiltersSchema, data or {}, prefix="filters."))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "focuses": list(self.focuses),
            "ageBuckets": list(self.age_buckets),
            "backgrounds": list(self.backgrounds),
            "documentStatuses": list(self.document_statuses),
        }


@dataclass(frozen=True)
class AssignmentRequest:
    capacities: Mapping[str, int]
    filters: AssignmentFilters = field(default_factory=AssignmentFilters)
    # dimension -> {category: target share}
    fairness: Mapping[str, Mapping[str, float]] = field(default_factory=dict)
    require_guardian_documents: bool = False
    audit_optimality: bool = False

    def __post_init__(self):
        # private read-only copies; later edits to the caller's dicts don't leak in
        object.__setattr__(self, "capacities", _frozen_mapping(self.capacities))
        fairness = self.fairness
        if isinstance(fairness, Mapping):
            fairness = {dim: _frozen_mapping(shares) for dim, shares in fairness.items()}
        object.__setattr__(self, "fairness", _frozen_mapping(fairness))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AssignmentRequest":
        """
        Parse the HTTP body `{capacities, filters?, fairness?,
        requireGuardianDocuments?, auditOptimality?}`.

        Malformed bodies raise AssignmentValidationError listing every
        problem; cross-field checks happen later in `validate_request`.
        """
        s = parse(RequestSchema, data)
        return cls(
            capacities=s.capacities,
            filters=AssignmentFilters.from_schema(s.filters),
            fairness=s.fairness,
            require_guardian_documents=s.require_guardian_documents,
            audit_optimality=s.audit_optimality,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "capacities": {code: self.capacities[code] for code in sorted(self.capacities)},
            "filters": self.filters.to_dict(),
            "fairness": {
                dim: {cat: shares[cat] for cat in sorted(shares)}
                for dim, shares in sorted(self.fairness.items())
            },
            "requireGuardianDocuments": self.require_guardian_documents,
            "auditOptimality": self.audit_optimality,
        }


# ======================================================================
#  Derived, per solve run
# ======================================================================

@dataclass(frozen=True)
class Target:
    code: str
    label: str
    domain: str
    capacity: int


@dataclass(frozen=True)
class Edge:
    candidate: Candidate
    target_code: str
    domain: str
    raw_weight: float
    normalized_weight: float = 0.0
    quality_factor: float = 1.0
    score: float = 0.0
    confidence: float = 0.0
    tie_break: Tuple[Any, ...] = ()
    reasons: Tuple[str, ...] = ()

    @property
    def candidate_id(self) -> str:
        return self.candidate.id

    @property
    def sort_key(self) -> Tuple[Any, ...]:
        return (-self.score,) + self.tie_break + (self.candidate.id,)


# ======================================================================
#  Outputs
# ======================================================================

@dataclass(frozen=True)
class CandidatePlacement:
    candidate_id: str
    name: Optional[str]
    email: Optional[str]
    focus: str
    gender: str
    age: Optional[int]
    age_bucket: Optional[str]
    background: Optional[str]
    tenure_year: Optional[int]
    document_status: str
    score: float
    normalized_weight: float
    quality_factor: float
    confidence: float
    reasons: Tuple[str, ...]
    rank: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "candidateId": self.candidate_id,
            "name": self.name,
            "email": self.email,
            "focus": self.focus,
            "gender": self.gender,
            "age": self.age,
            "ageBucket": self.age_bucket,
            "background": self.background,
            "tenureYear": self.tenure_year,
            "documentStatus": self.document_status,
            "score": self.score,
            "normalizedWeight": self.normalized_weight,
            "qualityFactor": self.quality_factor,
            "confidence": self.confidence,
            "reasons": list(self.reasons),
            "rank": self.rank,
        }


@dataclass(frozen=True)
class TargetAssignment:
    code: str
    label: str
    domain: str
    capacity: int
    demand: int
    assigned: Tuple[CandidatePlacement, ...]
    alternatives: Tuple[CandidatePlacement, ...]
    average_score: float
    median_score: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "label": self.label,
            "domain": self.domain,
            "capacity": self.capacity,
            "demand": self.demand,
            "assigned": [p.to_dict() for p in self.assigned],
            "alternatives": [p.to_dict() for p in self.alternatives],
            "averageScore": self.average_score,
            "medianScore": self.median_score,
        }


@dataclass(frozen=True)
class DemandRow:
    code: str
    label: str
    domain: str
    capacity: int
    assigned: int
    demand: int
    fill_rate: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "label": self.label,
            "domain": self.domain,
            "capacity": self.capacity,
            "assigned": self.assigned,
            "demand": self.demand,
            "fillRate": self.fill_rate,
        }


@dataclass(frozen=True)
class FairnessMetric:
    label: str
    observed_share: float
    target_share: float

    def to_dict(self) -> Dict[str, Any]:
        return {"label": self.label, "value": self.observed_share, "target": self.target_share}


@dataclass(frozen=True)
class FairnessSignal:
    dimension: str
    status: str   # good | warning | critical
    summary: str
    metrics: Tuple[FairnessMetric, ...]
    deviation: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dimension": self.dimension,
            "status": self.status,
            "summary": self.summary,
            "metrics": [m.to_dict() for m in self.metrics],
            "deviation": self.deviation,
        }


@dataclass(frozen=True)
class FairnessSwap:
    target_code: str
    domain: str
    dimension: str
    displaced: Edge
    placed: Edge
    score_loss: float


@dataclass(frozen=True)
class ConflictEntry:
    id: str
    target_code: str
    target_label: str
    domain: str
    reason: str   # over-demand | near-tie | fairness-override
    note: str
    candidates: Tuple[CandidatePlacement, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "targetCode": self.target_code,
            "targetLabel": self.target_label,
            "domain": self.domain,
            "reason": self.reason,
            "note": self.note,
            "candidates": [c.to_dict() for c in self.candidates],
        }


@dataclass(frozen=True)
class SolutionAudit:
    ok: bool
    messages: Tuple[str, ...]
    suggestion: str
    total_score: float
    eligible_candidates: int
    filtered_out: int
    swaps: int
    optimal_score: Optional[float] = None
    optimality_gap: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "messages": list(self.messages),
            "suggestion": self.suggestion,
            "totalScore": self.total_score,
            "eligibleCandidates": self.eligible_candidates,
            "filteredOut": self.filtered_out,
            "swaps": self.swaps,
            "optimalScore": self.optimal_score,
            "optimalityGap": self.optimality_gap,
        }


@dataclass(frozen=True)
class Solution:
    id: str
    generated_at: Optional[str]
    config: AssignmentRequest
    targets: Tuple[TargetAssignment, ...]
    demand_vs_capacity: Tuple[DemandRow, ...]
    fairness: Tuple[FairnessSignal, ...]
    conflicts: Tuple[ConflictEntry, ...]
    audit: SolutionAudit

    def target(self, code: str) -> TargetAssignment:
        for t in self.targets:
            if t.code == code:
                return t
        raise KeyError(code)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "generatedAt": self.generated_at,
            "config": self.config.to_dict(),
            "targets": [t.to_dict() for t in self.targets],
            "demandVsCapacity": [row.to_dict() for row in self.demand_vs_capacity],
            "fairness": [s.to_dict() for s in self.fairness],
            "conflicts": [c.to_dict() for c in self.conflicts],
            "audit": self.audit.to_dict(),
        }
