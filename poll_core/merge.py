from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from .schemas import Candidate, CandidateDetails
from .store import CandidateStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MergeReport:
    inserted: tuple[str, ...] = ()
    updated: tuple[str, ...] = ()

    @property
    def membership_changed(self) -> bool:
        return bool(self.inserted)


def incoming_slugs(fetched: Iterable[CandidateDetails]) -> set[str]:
    return {details.slug for details in fetched if details.slug}


def merge(store: CandidateStore, fetched: Iterable[CandidateDetails]) -> MergeReport:
    """Upsert a fetched batch into ``store``.

    Existing slugs get their details replaced and keep their hot/not counters;
    new slugs start at zero. Slugs missing from the batch are left alone.
    """
    inserted: list[str] = []
    updated: list[str] = []
    for details in fetched:
        slug = details.slug
        if not slug:
            logger.warning("Skipping fetched candidate without a name")
            continue
        if store.upsert(Candidate(slug=slug, details=details)):
            inserted.append(slug)
        elif slug not in inserted and slug not in updated:
            updated.append(slug)
    return MergeReport(inserted=tuple(inserted), updated=tuple(updated))
