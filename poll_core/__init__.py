"""
Poll Core Module

In-memory poll state for hot-or-not voting.

This module implements:
- The slug-keyed candidate store with upsert-only merging
- Vote casting under a single engine-wide lock
- Stable bit-indexed visited tracking per session
- Uniform without-replacement selection of the next candidate
"""

__version__ = "0.1.0"

from .errors import CandidateNotFound, CapacityError, CoverageExhausted, PollError
from .schemas import Candidate, CandidateDetails, VoteDirection, slugify

__all__ = [
    "Candidate",
    "CandidateDetails",
    "CandidateNotFound",
    "CapacityError",
    "CoverageExhausted",
    "PollError",
    "VoteDirection",
    "slugify",
]
