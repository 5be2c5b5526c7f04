from __future__ import annotations

import random
from abc import ABC, abstractmethod

from .coverage import IndexAssignment, SessionCoverage, current_bits
from .errors import CoverageExhausted


class SelectionStrategy(ABC):
    @abstractmethod
    def pick_next(self, coverage: SessionCoverage, assignment: IndexAssignment) -> str:
        raise NotImplementedError


class UnvisitedSelection(SelectionStrategy):
    """Uniform choice among candidates whose coverage bit is unset.

    Walks the assignment order, never store iteration order, and leaves the
    coverage untouched; marking happens separately when a candidate is shown.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng: random.Random = rng or random.SystemRandom()

    def pick_next(self, coverage: SessionCoverage, assignment: IndexAssignment) -> str:
        visited = current_bits(coverage, assignment)
        remaining = [
            slug for index, slug in enumerate(assignment.slugs) if not visited >> index & 1
        ]
        if not remaining:
            raise CoverageExhausted(f"all {len(assignment)} candidates visited")
        return self._rng.choice(remaining)
