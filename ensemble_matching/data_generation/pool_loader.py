# ensemble_matching/data_generation/pool_loader.py
from __future__ import annotations

from pathlib import Path
from typing import Any, List, Optional, Union

import pandas as pd

from ..config import TARGET_CATALOGUE
from ..models import Candidate, Preference

PREF_PREFIX = "pref:"


def _clean(value: Any) -> Any:
    return None if pd.isna(value) else value


def _opt_int(value: Any) -> Optional[int]:
    value = _clean(value)
    return int(value) if value is not None else None


def _domain_for(code: str) -> str:
    if code in TARGET_CATALOGUE:
        return TARGET_CATALOGUE[code][1]
    return code.split("_", 1)[0]


def frame_to_pool(df: pd.DataFrame) -> List[Candidate]:
    """
    Expected columns:
        id, name, email, focus, age, tenure_year, document_status,
        gender, background, profile_complete,
        pref:<target_code> ...   (weight 0..100, blank = no preference)
    """
    if "id" not in df.columns:
        raise ValueError("Candidate pool is missing the 'id' column.")

    pref_cols = [c for c in df.columns if c.startswith(PREF_PREFIX)]
    pool: List[Candidate] = []

    for _, row in df.iterrows():
        prefs = []
        for col in pref_cols:
            weight = _clean(row[col])
            if weight is None:
                continue
            code = col[len(PREF_PREFIX):]
            prefs.append(Preference(code, _domain_for(code), float(weight)))

        pool.append(Candidate(
            id=str(row["id"]),
            name=_clean(row.get("name")),
            email=_clean(row.get("email")),
            focus=_clean(row.get("focus")) or "acting",
            age=_opt_int(row.get("age")),
            tenure_year=_opt_int(row.get("tenure_year")),
            document_status=_clean(row.get("document_status")) or "missing",
            preferences=tuple(prefs),
            gender=_clean(row.get("gender")) or "unknown",
            background=_clean(row.get("background")),
            profile_complete=bool(_clean(row.get("profile_complete")) or False),
        ))

    return pool


def load_candidate_pool(path: Union[str, Path]) -> List[Candidate]:
    """Read a candidate pool from CSV. The engine itself never does this."""
    df = pd.read_csv(path, dtype={"id": str})
    return frame_to_pool(df)
