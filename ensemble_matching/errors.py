# ensemble_matching/errors.py
from __future__ import annotations

from typing import Iterable, List


class AssignmentValidationError(ValueError):
    """
    Request or candidate pool rejected before any computation.

    `issues` holds one human-readable line per problem found, so the
    calling layer can answer a 4xx with the whole list at once.
    """

    def __init__(self, issues: Iterable[str]):
        self.issues: List[str] = list(issues)
        super().__init__("; ".join(self.issues) or "invalid assignment request")


class EngineInvariantError(RuntimeError):
    """A computed solution broke a capacity or uniqueness guarantee."""
