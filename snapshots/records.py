"""Line codec for the tally snapshot: one ``slug,hot,not`` record per line."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)


class _Tallied(Protocol):
    slug: str
    hot: int
    not_: int


@dataclass(frozen=True)
class TallyRecord:
    slug: str
    hot: int
    not_: int


def format_records(candidates: Iterable[_Tallied]) -> str:
    return "".join(
        f"{candidate.slug},{candidate.hot},{candidate.not_}\n" for candidate in candidates
    )


def _parse_count(text: str) -> int | None:
    text = text.strip()
    if not (text.isascii() and text.isdigit()):
        return None
    return int(text)


def parse_line(line: str) -> TallyRecord | None:
    fields = line.split(",")
    if len(fields) != 3:
        return None
    slug = fields[0].strip()
    if not slug or any(char.isspace() for char in slug):
        return None
    hot = _parse_count(fields[1])
    not_ = _parse_count(fields[2])
    if hot is None or not_ is None:
        return None
    return TallyRecord(slug=slug, hot=hot, not_=not_)


def parse_records(text: str) -> list[TallyRecord]:
    """Parse snapshot text, skipping malformed lines with a warning."""
    records: list[TallyRecord] = []
    for line_number, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        record = parse_line(line)
        if record is None:
            logger.warning(f"Skipping malformed tally line {line_number}: {line!r}")
            continue
        records.append(record)
    return records
