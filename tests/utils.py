# tests/utils.py
from __future__ import annotations

from typing import Dict, Optional

from ensemble_matching.config import TARGET_CATALOGUE
from ensemble_matching.models import Candidate, Preference


def domain_of(code: str) -> str:
    if code in TARGET_CATALOGUE:
        return TARGET_CATALOGUE[code][1]
    return code.split("_", 1)[0]


def make_candidate(
    cid: str,
    weights: Dict[str, float],
    focus: str = "tech",
    age: Optional[int] = 30,
    tenure_year: Optional[int] = None,
    document_status: str = "pending",
    gender: str = "female",
    background: Optional[str] = None,
    profile_complete: bool = False,
) -> Candidate:
    """
    Defaults give a crew quality factor of exactly 1.2
    (base 1.0 + focus match 0.2), so score = weight / 100 * 1.2.
    """
    return Candidate(
        id=cid,
        name=f"Name {cid}",
        email=f"{cid}@example.org",
        focus=focus,
        age=age,
        tenure_year=tenure_year,
        document_status=document_status,
        preferences=tuple(Preference(code, domain_of(code), w) for code, w in weights.items()),
        gender=gender,
        background=background,
        profile_complete=profile_complete,
    )


def ids(placements) -> list:
    return [p.candidate_id for p in placements]
