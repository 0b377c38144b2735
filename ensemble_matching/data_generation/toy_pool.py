# ensemble_matching/data_generation/toy_pool.py
from __future__ import annotations

import random
from typing import List, Optional, Sequence

from ..config import (
    DEFAULT_SEED,
    DOMAIN_FOCUS,
    FOCUSES,
    GENDERS,
    NUM_CANDIDATES_DEFAULT,
    TARGET_CATALOGUE,
)
from ..models import Candidate, Preference

BACKGROUNDS = ["Schule", "Ausbildung", "Studium", "Beruf"]
FIRST_NAMES = [
    "Anna", "Ben", "Clara", "David", "Elif", "Finn", "Greta", "Hannes",
    "Ida", "Jonas", "Kira", "Luca", "Mila", "Noah", "Olga", "Paul",
]


def _codes_for(domain: str, target_codes: Sequence[str]) -> List[str]:
    return sorted(c for c in target_codes if TARGET_CATALOGUE.get(c, ("", c.split("_", 1)[0]))[1] == domain)


def make_toy_candidate(
    idx: int,
    rng: random.Random,
    target_codes: Sequence[str],
    current_year: int = 2026,
) -> Candidate:
    """
    Random but plausible member profile. Candidates mostly ask for targets
    in their own focus domain; a few add a low-weight off-focus wish.
    """
    focus = rng.choice(FOCUSES)
    age: Optional[int] = rng.randint(12, 60) if rng.random() > 0.1 else None
    tenure = rng.randint(current_year - 15, current_year - 1) if rng.random() < 0.6 else None
    document_status = rng.choices(["complete", "pending", "missing"], weights=[6, 3, 1])[0]

    prefs: List[Preference] = []
    for domain in ("acting", "crew"):
        codes = _codes_for(domain, target_codes)
        if not codes:
            continue
        if focus in DOMAIN_FOCUS[domain]:
            picked = rng.sample(codes, k=min(len(codes), rng.randint(1, 3)))
            prefs += [Preference(code, domain, rng.randrange(5, 101, 5)) for code in picked]
        elif rng.random() < 0.2:
            prefs.append(Preference(rng.choice(codes), domain, rng.randrange(0, 40, 5)))

    name = f"{rng.choice(FIRST_NAMES)} {chr(ord('A') + idx % 26)}."
    return Candidate(
        id=f"C{idx:03d}",
        name=name,
        email=f"c{idx:03d}@example.org",
        focus=focus,
        age=age,
        tenure_year=tenure,
        document_status=document_status,
        preferences=tuple(prefs),
        gender=rng.choices(GENDERS, weights=[45, 40, 5, 5, 2, 3])[0],
        background=rng.choice(BACKGROUNDS),
        profile_complete=rng.random() < 0.7,
    )


def make_toy_pool(
    num_candidates: int = NUM_CANDIDATES_DEFAULT,
    seed: int = DEFAULT_SEED,
    target_codes: Optional[Sequence[str]] = None,
) -> List[Candidate]:
    """Reproducible candidate pool for demos and tests."""
    if num_candidates < 0:
        raise ValueError(f"num_candidates must be >= 0, got {num_candidates}.")
    rng = random.Random(seed)
    codes = list(target_codes) if target_codes is not None else sorted(TARGET_CATALOGUE)
    return [make_toy_candidate(i, rng, codes) for i in range(1, num_candidates + 1)]
