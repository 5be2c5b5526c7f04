import random
from collections import Counter

import pytest

from poll_core.coverage import compute_assignment, mark_visited, new_coverage
from poll_core.errors import CoverageExhausted
from poll_core.selection import UnvisitedSelection


def test_pick_next_never_returns_visited_slug() -> None:
    assignment = compute_assignment(["a", "b", "c", "d"])
    coverage = new_coverage(assignment.version)
    for slug in ["a", "c", "d"]:
        coverage = mark_visited(coverage, slug, assignment)

    selection = UnvisitedSelection(rng=random.Random(0))
    assert {selection.pick_next(coverage, assignment) for _ in range(50)} == {"b"}


def test_pick_next_has_no_side_effect() -> None:
    assignment = compute_assignment(["a", "b"])
    coverage = new_coverage(assignment.version)
    selection = UnvisitedSelection(rng=random.Random(1))

    _ = selection.pick_next(coverage, assignment)

    assert coverage.bits == 0


def test_exhausted_then_reset_makes_all_selectable() -> None:
    assignment = compute_assignment(["a", "b", "c"])
    coverage = new_coverage(assignment.version)
    selection = UnvisitedSelection(rng=random.Random(2))

    seen = []
    for _ in range(3):
        slug = selection.pick_next(coverage, assignment)
        seen.append(slug)
        coverage = mark_visited(coverage, slug, assignment)

    assert sorted(seen) == ["a", "b", "c"]
    with pytest.raises(CoverageExhausted):
        _ = selection.pick_next(coverage, assignment)

    coverage = new_coverage(assignment.version)
    picks = {selection.pick_next(coverage, assignment) for _ in range(200)}
    assert picks == {"a", "b", "c"}


def test_stale_coverage_treated_as_empty() -> None:
    old = compute_assignment(["a"])
    coverage = mark_visited(new_coverage(old.version), "a", old)
    live = compute_assignment(["a", "b"], previous=old)

    selection = UnvisitedSelection(rng=random.Random(3))
    picks = {selection.pick_next(coverage, live) for _ in range(200)}
    assert picks == {"a", "b"}


def test_empty_assignment_is_exhausted() -> None:
    assignment = compute_assignment([])
    with pytest.raises(CoverageExhausted):
        _ = UnvisitedSelection().pick_next(new_coverage(assignment.version), assignment)


def test_selection_is_roughly_uniform() -> None:
    assignment = compute_assignment(["a", "b", "c", "d"])
    coverage = new_coverage(assignment.version)
    selection = UnvisitedSelection(rng=random.Random(42))

    counts = Counter(selection.pick_next(coverage, assignment) for _ in range(4000))

    assert set(counts) == {"a", "b", "c", "d"}
    assert all(800 < count < 1200 for count in counts.values())
