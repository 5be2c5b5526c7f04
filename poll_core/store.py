from __future__ import annotations

from .errors import CandidateNotFound
from .schemas import Candidate, VoteDirection


def _require_count(value: int, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{field} must be an int")
    if value < 0:
        raise ValueError(f"{field} must be non-negative")
    return value


class CandidateStore:
    """Slug-keyed candidate mapping.

    Performs no locking of its own; ``PollEngine`` serializes every call.
    Reads hand out copies so callers never hold a reference into the mapping.
    """

    def __init__(self) -> None:
        self._candidates: dict[str, Candidate] = {}

    def __len__(self) -> int:
        return len(self._candidates)

    def __contains__(self, slug: object) -> bool:
        return slug in self._candidates

    def get(self, slug: str) -> Candidate:
        candidate = self._candidates.get(slug)
        if candidate is None:
            raise CandidateNotFound(slug)
        return candidate.model_copy(deep=True)

    def upsert(self, candidate: Candidate) -> bool:
        """Insert ``candidate`` or replace the details of the existing entry.

        Existing hot/not counters are kept. Returns True when the slug is new.
        """
        existing = self._candidates.get(candidate.slug)
        if existing is None:
            self._candidates[candidate.slug] = candidate.model_copy(deep=True)
            return True
        existing.details = candidate.details.model_copy(deep=True)
        return False

    def list(self) -> list[Candidate]:
        return [self._candidates[slug].model_copy(deep=True) for slug in self.slugs()]

    def slugs(self) -> list[str]:
        return sorted(self._candidates)

    def set_tally(self, slug: str, hot: int, not_: int) -> None:
        hot = _require_count(hot, "hot")
        not_ = _require_count(not_, "not")
        candidate = self._candidates.get(slug)
        if candidate is None:
            # placeholder until a merge supplies the details
            candidate = Candidate(slug=slug)
            self._candidates[slug] = candidate
        candidate.hot = hot
        candidate.not_ = not_

    def increment(self, slug: str, direction: VoteDirection) -> Candidate:
        candidate = self._candidates.get(slug)
        if candidate is None:
            raise CandidateNotFound(slug)
        if direction is VoteDirection.HOT:
            candidate.hot += 1
        else:
            candidate.not_ += 1
        return candidate.model_copy(deep=True)
