"""Data source implementations."""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping, Sequence
from typing import cast

import httpx
from pydantic import ValidationError

from poll_core.schemas import CandidateDetails, DataSourceConfig

from .base import BaseDataSource, FetchError
from .retry import RetryPolicy

logger = logging.getLogger(__name__)

_MAX_PAGES = 50


def parse_record(item: object) -> CandidateDetails | None:
    """Decode one upstream record; None (with a warning) when it cannot be used."""
    if not isinstance(item, Mapping):
        logger.warning("Skipping upstream record that is not an object")
        return None
    typed_item = cast(Mapping[str, object], item)
    record_id = typed_item.get("id", "<no id>")
    fields = typed_item.get("fields")
    if not isinstance(fields, Mapping):
        logger.warning(f"Skipping record {record_id}: no fields")
        return None
    try:
        details = CandidateDetails.from_dict(cast(Mapping[str, object], fields))
    except ValidationError as exc:
        logger.warning(f"Skipping record {record_id}: {exc.error_count()} invalid fields")
        return None
    if not details.name.strip():
        logger.warning(f"Skipping record {record_id}: missing Name")
        return None
    return details


def parse_page(payload: object) -> tuple[list[CandidateDetails], str | None]:
    if not isinstance(payload, Mapping):
        raise FetchError("Unexpected response body: expected an object")
    typed_payload = cast(Mapping[str, object], payload)
    records = typed_payload.get("records")
    if not isinstance(records, list):
        raise FetchError("Unexpected response body: missing records list")
    details: list[CandidateDetails] = []
    for item in cast(list[object], records):
        parsed = parse_record(item)
        if parsed is not None:
            details.append(parsed)
    offset = typed_payload.get("offset")
    return details, offset if isinstance(offset, str) and offset else None


class AirtableSource(BaseDataSource):
    """Reads candidate rows from an Airtable table view, following pagination."""

    def __init__(
        self,
        source_id: str,
        data_load_uri: str,
        api_key: str | None = None,
        *,
        timeout_seconds: float = 10.0,
        max_response_bytes: int = 250_000,
        retry_policy: RetryPolicy | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        super().__init__(source_id=source_id)
        if not data_load_uri:
            raise ValueError("data_load_uri is required for an Airtable source")
        self.data_load_uri: str = data_load_uri
        self.timeout_seconds: float = timeout_seconds
        self.max_response_bytes: int = max_response_bytes
        self._api_key: str | None = api_key
        self._retry_policy: RetryPolicy = retry_policy or RetryPolicy()
        self._transport: httpx.BaseTransport | None = transport

    def _headers(self) -> dict[str, str]:
        headers = {"User-Agent": "hotpolls/0.1"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _get_page(self, client: httpx.Client, offset: str | None) -> object:
        params = {"offset": offset} if offset else None
        response = client.get(self.data_load_uri, params=params)
        _ = response.raise_for_status()
        if len(response.content) > self.max_response_bytes:
            raise FetchError(
                f"Response of {len(response.content)} bytes exceeds {self.max_response_bytes}"
            )
        return response.json()

    def _fetch_all(self) -> list[CandidateDetails]:
        details: list[CandidateDetails] = []
        offset: str | None = None
        with httpx.Client(
            timeout=self.timeout_seconds,
            headers=self._headers(),
            transport=self._transport,
        ) as client:
            for _ in range(_MAX_PAGES):
                payload = self._retry_policy.execute(lambda: self._get_page(client, offset))
                page, offset = parse_page(payload)
                details.extend(page)
                if offset is None:
                    return details
        raise FetchError(f"Gave up after {_MAX_PAGES} pages")

    def fetch(self) -> list[CandidateDetails]:  # pyright: ignore[reportImplicitOverride]
        logger.info(f"Calling Airtable API for {self.source_id}")
        start = time.perf_counter()
        self._metrics["calls"] += 1
        try:
            details = self._fetch_all()
        except FetchError:
            self._metrics["errors"] += 1
            raise
        except (httpx.HTTPError, ValueError) as exc:
            self._metrics["errors"] += 1
            raise FetchError(f"Could not get data from {self.source_id}: {exc}") from exc
        finally:
            self._metrics["total_latency_ms"] += (time.perf_counter() - start) * 1000.0
        self._metrics["records"] += len(details)
        return details

    def get_source_info(self) -> dict[str, object]:  # pyright: ignore[reportImplicitOverride]
        return {
            "source_id": self.source_id,
            "source_type": "airtable",
            "data_load_uri": self.data_load_uri,
            "timeout_seconds": self.timeout_seconds,
        }


class StaticSource(BaseDataSource):
    """Deterministic in-memory source for offline runs and tests."""

    call_count: int

    def __init__(self, source_id: str, records: Sequence[Mapping[str, object]] = ()) -> None:
        super().__init__(source_id=source_id)
        self._records: list[dict[str, object]] = [dict(record) for record in records]
        self.call_count = 0

    def set_records(self, records: Sequence[Mapping[str, object]]) -> None:
        self._records = [dict(record) for record in records]

    def fetch(self) -> list[CandidateDetails]:  # pyright: ignore[reportImplicitOverride]
        self.call_count += 1
        self._metrics["calls"] += 1
        details, _ = parse_page({"records": [{"fields": record} for record in self._records]})
        self._metrics["records"] += len(details)
        return details

    def get_source_info(self) -> dict[str, object]:  # pyright: ignore[reportImplicitOverride]
        return {
            "source_id": self.source_id,
            "source_type": "static",
            "records": len(self._records),
        }


def create_source(
    config: DataSourceConfig,
    retry_policy: RetryPolicy | None = None,
) -> BaseDataSource:
    source_type = config.source_type.lower()
    if source_type == "airtable":
        policy = retry_policy or RetryPolicy(max_retries=config.max_retries)
        return AirtableSource(
            source_id=config.source_id,
            data_load_uri=config.data_load_uri,
            api_key=config.api_key,
            timeout_seconds=config.timeout_seconds,
            max_response_bytes=config.max_response_bytes,
            retry_policy=policy,
        )
    if source_type == "static":
        return StaticSource(source_id=config.source_id, records=config.static_records)
    raise ValueError(f"Unsupported source type: {config.source_type}")
