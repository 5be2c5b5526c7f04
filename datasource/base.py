"""Base data source interface for candidate payloads."""

from __future__ import annotations

from abc import ABC, abstractmethod

from poll_core.schemas import CandidateDetails


class FetchError(Exception):
    """Fetching or decoding candidate data from the upstream source failed."""


class BaseDataSource(ABC):
    """Abstract interface for candidate data sources."""

    source_id: str

    def __init__(self, source_id: str) -> None:
        self.source_id = source_id
        self._metrics = {
            "calls": 0,
            "errors": 0,
            "records": 0,
            "total_latency_ms": 0.0,
        }

    @abstractmethod
    def fetch(self) -> list[CandidateDetails]:
        """Return the current candidate batch; raise FetchError on failure."""

    @abstractmethod
    def get_source_info(self) -> dict[str, object]:
        """Return metadata about the source."""

    def get_metrics(self) -> dict[str, object]:
        metrics: dict[str, object] = dict(self._metrics)
        calls = int(self._metrics["calls"])
        if calls > 0:
            metrics["avg_latency_ms"] = float(self._metrics["total_latency_ms"]) / calls
        else:
            metrics["avg_latency_ms"] = 0.0
        return metrics

    def reset_metrics(self) -> None:
        self._metrics = {
            "calls": 0,
            "errors": 0,
            "records": 0,
            "total_latency_ms": 0.0,
        }
