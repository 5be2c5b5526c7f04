"""
Stable bit positions for candidates and per-session visited bitsets.

Positions come from the lexicographic slug order and carry a version that
moves whenever membership changes. Each process starts its versions at a
random epoch so a restart is unlikely to reissue an earlier version. A
session coverage recorded against any other version is treated as empty
rather than reinterpreted.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from .errors import CandidateNotFound, CapacityError

logger = logging.getLogger(__name__)

COVERAGE_BITS = 128
EPOCH_BITS = 48


@dataclass(frozen=True)
class IndexAssignment:
    slugs: tuple[str, ...]
    version: int
    capacity: int = COVERAGE_BITS
    positions: Mapping[str, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        positions = {slug: index for index, slug in enumerate(self.slugs)}
        object.__setattr__(self, "positions", MappingProxyType(positions))

    def __len__(self) -> int:
        return len(self.slugs)

    def position(self, slug: str) -> int:
        position = self.positions.get(slug)
        if position is None:
            raise CandidateNotFound(slug)
        return position

    @property
    def full_mask(self) -> int:
        return (1 << len(self.slugs)) - 1


@dataclass(frozen=True)
class SessionCoverage:
    bits: int = 0
    version: int = 0

    def to_token(self) -> str:
        return f"{self.version}:{self.bits:x}"

    @classmethod
    def from_token(cls, token: object) -> "SessionCoverage":
        """Decode a session token; anything unreadable becomes an empty version-0 coverage."""
        if not isinstance(token, str):
            return cls()
        version_text, separator, bits_text = token.partition(":")
        if not separator:
            return cls()
        try:
            version = int(version_text)
            bits = int(bits_text, 16)
        except ValueError:
            return cls()
        if version < 0 or bits < 0:
            return cls()
        return cls(bits=bits, version=version)


def new_epoch() -> int:
    """Random odd starting version; session cookies outlive the process."""
    return secrets.randbits(EPOCH_BITS) | 1


def compute_assignment(
    slugs: Iterable[str],
    previous: IndexAssignment | None = None,
    capacity: int = COVERAGE_BITS,
    *,
    first_version: int | None = None,
) -> IndexAssignment:
    if capacity <= 0:
        raise ValueError("capacity must be positive")
    ordered = tuple(sorted(set(slugs)))
    if len(ordered) > capacity:
        raise CapacityError(
            f"{len(ordered)} candidates exceed the {capacity}-bit coverage capacity"
        )
    if previous is None:
        version = new_epoch() if first_version is None else first_version
        if version < 1:
            raise ValueError("first_version must be positive")
        return IndexAssignment(slugs=ordered, version=version, capacity=capacity)
    if previous.slugs == ordered and previous.capacity == capacity:
        return previous
    return IndexAssignment(slugs=ordered, version=previous.version + 1, capacity=capacity)


def new_coverage(version: int) -> SessionCoverage:
    return SessionCoverage(bits=0, version=version)


def is_stale(coverage: SessionCoverage, assignment: IndexAssignment) -> bool:
    return coverage.version != assignment.version


def current_bits(coverage: SessionCoverage, assignment: IndexAssignment) -> int:
    """Visited bits valid under ``assignment``; zero for a stale coverage."""
    if is_stale(coverage, assignment):
        return 0
    return coverage.bits & assignment.full_mask


def mark_visited(
    coverage: SessionCoverage, slug: str, assignment: IndexAssignment
) -> SessionCoverage:
    position = assignment.position(slug)
    if is_stale(coverage, assignment):
        logger.debug(
            f"Resetting coverage at version {coverage.version}; "
            f"live assignment is version {assignment.version}"
        )
        coverage = new_coverage(assignment.version)
    return SessionCoverage(bits=coverage.bits | (1 << position), version=assignment.version)


def is_fully_visited(coverage: SessionCoverage, assignment: IndexAssignment) -> bool:
    return current_bits(coverage, assignment) == assignment.full_mask


def visited_slugs(coverage: SessionCoverage, assignment: IndexAssignment) -> list[str]:
    bits = current_bits(coverage, assignment)
    return [slug for index, slug in enumerate(assignment.slugs) if bits >> index & 1]
