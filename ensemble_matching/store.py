# ensemble_matching/store.py
from __future__ import annotations

import threading
from collections import OrderedDict
from typing import Optional, Tuple

from .config import SOLUTION_STORE_SIZE
from .models import ConflictEntry, Solution


class SolutionStore:
    """
    Keeps the most recent solutions in memory for conflict lookup.

    This is a caller-side collaborator: the engine never reads it. Oldest
    entries are evicted once `max_size` is exceeded.
    """

    def __init__(self, max_size: int = SOLUTION_STORE_SIZE):
        if max_size < 1:
            raise ValueError(f"max_size must be >= 1, got {max_size}.")
        self.max_size = max_size
        self._solutions: "OrderedDict[str, Solution]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._solutions)

    def __contains__(self, solution_id: str) -> bool:
        with self._lock:
            return solution_id in self._solutions

    def put(self, solution: Solution) -> None:
        with self._lock:
            self._solutions[solution.id] = solution
            self._solutions.move_to_end(solution.id)
            while len(self._solutions) > self.max_size:
                self._solutions.popitem(last=False)

    def get(self, solution_id: str) -> Optional[Solution]:
        with self._lock:
            return self._solutions.get(solution_id)

    def conflicts_of(self, solution_id: str) -> Tuple[ConflictEntry, ...]:
        solution = self.get(solution_id)
        return solution.conflicts if solution is not None else ()
