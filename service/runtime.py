"""Startup wiring: build the engine, pull candidates, restore tallies."""

from __future__ import annotations

import logging

from datasource.base import BaseDataSource, FetchError
from datasource.providers import create_source
from poll_core.engine import PollEngine
from snapshots import TallyFile

from .config import ServiceConfig

logger = logging.getLogger(__name__)


def build_engine(
    config: ServiceConfig,
    source: BaseDataSource | None = None,
) -> tuple[PollEngine, BaseDataSource]:
    """Create and populate an engine.

    A failed initial fetch is logged and the service starts from the snapshot
    alone. ``CapacityError`` propagates: it must stop startup.
    """
    source = source or create_source(config.data_source)
    engine = PollEngine(TallyFile(config.save_file), capacity=config.coverage_bits)
    try:
        _ = engine.refresh(source)
    except FetchError:
        logger.warning("Starting without fresh candidate data")
    _ = engine.load_snapshot()
    return engine, source
