"""Exceptions raised by the poll state engine."""

from __future__ import annotations


class PollError(Exception):
    """Base class for poll engine errors."""


class CandidateNotFound(PollError, KeyError):
    def __init__(self, slug: str) -> None:
        super().__init__(slug)
        self.slug: str = slug

    def __str__(self) -> str:
        return f"Unknown candidate: {self.slug}"


class CoverageExhausted(PollError):
    """Every live candidate is already marked in the session coverage."""


class CapacityError(PollError):
    """The candidate set no longer fits in the coverage bitset."""
