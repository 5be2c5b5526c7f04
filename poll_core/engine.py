"""
Poll state engine: the single owner of candidate data.

Every store access runs under one non-reentrant lock held for the whole
read-modify-write sequence. Network fetches happen before the lock is taken;
only the in-memory merge runs while holding it.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable

from datasource.base import BaseDataSource, FetchError
from snapshots import SnapshotError, TallyFile, format_records, parse_records

from . import coverage as tracker
from .coverage import COVERAGE_BITS, IndexAssignment, SessionCoverage, compute_assignment
from .errors import CapacityError, CoverageExhausted
from .merge import MergeReport, incoming_slugs, merge
from .schemas import Candidate, CandidateDetails, CandidateSummary, VoteDirection
from .selection import SelectionStrategy, UnvisitedSelection
from .store import CandidateStore

logger = logging.getLogger(__name__)


class PollEngine:
    def __init__(
        self,
        tally_file: TallyFile | None = None,
        *,
        capacity: int = COVERAGE_BITS,
        selection: SelectionStrategy | None = None,
    ) -> None:
        self._store: CandidateStore = CandidateStore()
        self._lock: threading.Lock = threading.Lock()
        self._tally_file: TallyFile | None = tally_file
        self._capacity: int = capacity
        self._selection: SelectionStrategy = selection or UnvisitedSelection()
        self._assignment: IndexAssignment = compute_assignment((), capacity=capacity)

    @property
    def assignment(self) -> IndexAssignment:
        with self._lock:
            return self._assignment

    @property
    def tally_file(self) -> TallyFile | None:
        return self._tally_file

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    # Caller holds the lock for both helpers below.
    def _check_capacity(self, incoming: Iterable[str]) -> None:
        projected = set(self._store.slugs()) | set(incoming)
        if len(projected) > self._capacity:
            raise CapacityError(
                f"{len(projected)} candidates exceed the {self._capacity}-bit coverage capacity"
            )

    def _refresh_assignment(self) -> None:
        previous = self._assignment
        self._assignment = compute_assignment(self._store.slugs(), previous, self._capacity)
        if self._assignment is not previous:
            logger.info(
                f"Index assignment v{self._assignment.version}: "
                f"{len(self._assignment)} candidates"
            )

    def get_candidate(self, slug: str) -> Candidate:
        with self._lock:
            return self._store.get(slug)

    def list_candidates(self) -> list[Candidate]:
        with self._lock:
            return self._store.list()

    def summaries(self) -> list[CandidateSummary]:
        return [candidate.summary() for candidate in self.list_candidates()]

    def reload(self, fetched: Iterable[CandidateDetails]) -> MergeReport:
        """Merge an already-fetched batch; rejected whole if it would overflow capacity."""
        batch = list(fetched)
        with self._lock:
            self._check_capacity(incoming_slugs(batch))
            report = merge(self._store, batch)
            self._refresh_assignment()
        logger.info(
            f"Merged {len(batch)} fetched candidates: "
            f"{len(report.inserted)} new, {len(report.updated)} updated"
        )
        return report

    def refresh(self, source: BaseDataSource) -> MergeReport:
        """Fetch from ``source`` outside the lock, then merge. Failures leave the store as is."""
        try:
            fetched = source.fetch()
        except FetchError as exc:
            logger.error(f"Reload from {source.source_id} failed, keeping current candidates: {exc}")
            raise
        return self.reload(fetched)

    def cast_vote(self, slug: str, direction: VoteDirection | str) -> Candidate:
        direction = VoteDirection(direction)
        with self._lock:
            return self._store.increment(slug, direction)

    def new_coverage(self) -> SessionCoverage:
        return tracker.new_coverage(self.assignment.version)

    def mark_visited(self, coverage: SessionCoverage, slug: str) -> SessionCoverage:
        return tracker.mark_visited(coverage, slug, self.assignment)

    def is_fully_visited(self, coverage: SessionCoverage) -> bool:
        return tracker.is_fully_visited(coverage, self.assignment)

    def pick_next(self, coverage: SessionCoverage) -> str:
        return self._selection.pick_next(coverage, self.assignment)

    def next_for_session(self, coverage: SessionCoverage) -> tuple[str, SessionCoverage]:
        """Pick for a session, resetting a stale or exhausted coverage first.

        Raises ``CoverageExhausted`` only when there is nothing to pick at all.
        """
        assignment = self.assignment
        if tracker.is_stale(coverage, assignment):
            coverage = tracker.new_coverage(assignment.version)
        try:
            return self._selection.pick_next(coverage, assignment), coverage
        except CoverageExhausted:
            coverage = tracker.new_coverage(assignment.version)
        return self._selection.pick_next(coverage, assignment), coverage

    def _require_tally_file(self) -> TallyFile:
        if self._tally_file is None:
            raise SnapshotError("No snapshot file configured")
        return self._tally_file

    def save_snapshot(self) -> int:
        tally_file = self._require_tally_file()
        with self._lock:
            candidates = self._store.list()
            tally_file.write(format_records(candidates))
        logger.info(f"Saved tallies for {len(candidates)} candidates to {tally_file.path}")
        return len(candidates)

    def load_snapshot(self) -> int:
        tally_file = self._require_tally_file()
        text = tally_file.read()
        if text is None:
            logger.info(f"No snapshot at {tally_file.path}; starting from zero tallies")
            return 0
        records = parse_records(text)
        with self._lock:
            self._check_capacity(record.slug for record in records)
            for record in records:
                self._store.set_tally(record.slug, record.hot, record.not_)
            self._refresh_assignment()
        logger.info(f"Loaded tallies for {len(records)} candidates from {tally_file.path}")
        return len(records)
