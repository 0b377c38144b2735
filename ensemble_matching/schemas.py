# ensemble_matching/schemas.py
"""Inbound request and candidate schemas (camelCase HTTP body or snake_case)."""

from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Type, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from .config import (
    AGE_BUCKETS,
    DOCUMENT_STATUSES,
    DOMAINS,
    FAIRNESS_DIMENSIONS,
    FOCUSES,
    GENDERS,
    MAX_PREFERENCE_WEIGHT,
)
from .errors import AssignmentValidationError

AGE_BUCKET_IDS = tuple(b[0] for b in AGE_BUCKETS)

FAIRNESS_CATEGORIES: Dict[str, tuple] = {
    "focus": FOCUSES,
    "age": AGE_BUCKET_IDS + ("unknown",),
    "experience": ("experienced", "newcomer"),
    "documents": DOCUMENT_STATUSES,
    "gender": GENDERS,
}

Domain = Literal[DOMAINS]
Focus = Literal[FOCUSES]
DocumentStatus = Literal[DOCUMENT_STATUSES]
Gender = Literal[GENDERS]
AgeBucket = Literal[AGE_BUCKET_IDS]
FairnessDimension = Literal[FAIRNESS_DIMENSIONS]

TargetCode = Annotated[str, Field(min_length=1)]
Capacity = Annotated[int, Field(strict=True, ge=0)]
Share = Annotated[float, Field(strict=True, ge=0)]

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class _Schema(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class PreferenceSchema(_Schema):
    target_code: TargetCode = Field(validation_alias=AliasChoices("targetCode", "code", "target_code"))
    domain: Domain
    weight: float = Field(strict=True, ge=0, le=MAX_PREFERENCE_WEIGHT)


class CandidateSchema(_Schema):
    id: str = Field(min_length=1)
    name: Optional[str] = None
    email: Optional[str] = None
    focus: Focus = "acting"
    age: Optional[int] = Field(None, strict=True, ge=0)
    tenure_year: Optional[int] = Field(
        None, strict=True, validation_alias=AliasChoices("tenureYear", "memberSinceYear", "tenure_year"),
    )
    document_status: DocumentStatus = Field(
        "missing", validation_alias=AliasChoices("documentStatus", "document_status"),
    )
    preferences: List[PreferenceSchema] = Field(default_factory=list)
    gender: Gender = "unknown"
    background: Optional[str] = None
    profile_complete: bool = Field(False, validation_alias=AliasChoices("profileComplete", "profile_complete"))

    @field_validator("id", mode="before")
    @classmethod
    def _int_id_as_text(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("gender", mode="before")
    @classmethod
    def _blank_gender(cls, value: Any) -> Any:
        return "unknown" if value in (None, "") else value

    @field_validator("preferences", mode="before")
    @classmethod
    def _no_preferences(cls, value: Any) -> Any:
        return [] if value is None else value


class FiltersSchema(_Schema):
    focuses: List[Focus] = Field(default_factory=list)
    age_buckets: List[AgeBucket] = Field(default_factory=list, validation_alias=AliasChoices("ageBuckets", "age_buckets"))
    backgrounds: List[str] = Field(default_factory=list)
    document_statuses: List[DocumentStatus] = Field(
        default_factory=list, validation_alias=AliasChoices("documentStatuses", "document_statuses"),
    )

    @field_validator("focuses", "age_buckets", "backgrounds", "document_statuses", mode="before")
    @classmethod
    def _null_list(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("backgrounds")
    @classmethod
    def _no_blank_background(cls, value: List[str]) -> List[str]:
        if any(not bg.strip() for bg in value):
            raise ValueError("background filter values must be non-empty strings")
        return value


class RequestSchema(_Schema):
    capacities: Dict[TargetCode, Capacity]
    filters: FiltersSchema = Field(default_factory=FiltersSchema)
    # dimension -> {category: target share}
    fairness: Dict[FairnessDimension, Dict[str, Share]] = Field(default_factory=dict)
    require_guardian_documents: bool = Field(
        False, validation_alias=AliasChoices("requireGuardianDocuments", "require_guardian_documents"),
    )
    audit_optimality: bool = Field(False, validation_alias=AliasChoices("auditOptimality", "audit_optimality"))

    @field_validator("filters", "fairness", mode="before")
    @classmethod
    def _null_mapping(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("fairness")
    @classmethod
    def _known_categories(cls, value: Dict[str, Dict[str, float]]) -> Dict[str, Dict[str, float]]:
        problems = []
        for dimension, shares in value.items():
            allowed = FAIRNESS_CATEGORIES[dimension]
            unknown = sorted(set(shares) - set(allowed))
            if unknown:
                problems.append(f"unknown {dimension} categories {unknown}; expected one of {list(allowed)}")
            elif shares and sum(shares.values()) <= 0:
                problems.append(f"Fairness shares for {dimension} must not all be zero")
        if problems:
            raise ValueError("; ".join(problems))
        return value


def issues_from(exc: ValidationError, prefix: str = "") -> List[str]:
    """One line per pydantic error: `<prefix><dotted.location>: <message>`."""
    out: List[str] = []
    for err in exc.errors():
        where = ".".join(str(part) for part in err["loc"])
        out.append(f"{prefix}{where}: {err['msg']}" if where else f"{prefix}{err['msg']}")
    return out


def schema_issues(schema: Type[BaseModel], data: Any, prefix: str = "") -> List[str]:
    try:
        schema.model_validate(data)
    except ValidationError as exc:
        return issues_from(exc, prefix)
    return []


def parse(schema: Type[SchemaT], data: Any, prefix: str = "") -> SchemaT:
    """Validate `data` against `schema`, raising AssignmentValidationError on failure."""
    try:
        return schema.model_validate(data)
    except ValidationError as exc:
        raise AssignmentValidationError(issues_from(exc, prefix)) from exc
