"""
Snapshots Module

Durable vote tallies for the poll engine.

This module provides:
- The ``slug,hot,not`` line codec with skip-and-warn parsing
- An atomically replaced snapshot file
- A background saver running on a fixed interval
"""

__version__ = "0.1.0"

from .files import SnapshotError, TallyFile
from .records import TallyRecord, format_records, parse_records
from .scheduler import PeriodicSaver

__all__ = [
    "PeriodicSaver",
    "SnapshotError",
    "TallyFile",
    "TallyRecord",
    "format_records",
    "parse_records",
]
