"""Casemap Backend - Data Loading (geographic document + case sheet)

Both sources are fetched concurrently and joined before anything is parsed or
aggregated. A load attempt either returns a complete DatasetSnapshot or raises;
RetryPolicy re-runs failed attempts sequentially up to a fixed budget.
"""

import asyncio
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import httpx

from config import (
    PROJECT_ROOT, FETCH_TIMEOUT, GEO_OBJECT_NAME,
    LOAD_MAX_RETRIES, LOAD_RETRY_DELAY, LOAD_FAILED_MESSAGE,
)
from models import DatasetSnapshot
from record_parser import parse_case_records
from region_index import GeoDataError, build_region_index
from aggregator import aggregate

logger = logging.getLogger("casemap.fetchers")

# Shared async HTTP client
client = httpx.AsyncClient(timeout=FETCH_TIMEOUT, follow_redirects=True)


class DataFetchError(Exception):
    """A source could not be fetched or decoded. Retryable."""


class DataLoadError(Exception):
    """The retry budget is exhausted. ``user_message`` is safe to show end users."""

    def __init__(self, detail: str, *, attempts: int, user_message: str = LOAD_FAILED_MESSAGE):
        super().__init__(detail)
        self.attempts = attempts
        self.user_message = user_message


RETRYABLE_ERRORS = (DataFetchError, GeoDataError)


# ─────────────────────────── Fetching ───────────────────────────

def _is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def _resolve_path(source: str) -> Path:
    path = Path(source)
    return path if path.is_absolute() else PROJECT_ROOT / path


async def fetch_source(source: str, http_client: Optional[httpx.AsyncClient] = None) -> str:
    """Return the text behind a URL or a local file path."""
    if _is_url(source):
        http = http_client or client
        try:
            r = await http.get(source)
        except httpx.HTTPError as e:
            raise DataFetchError(f"GET {source} failed: {e}") from e
        if r.status_code != 200:
            raise DataFetchError(f"GET {source} returned HTTP {r.status_code}")
        # Published sheets are UTF-8 even when the header says otherwise
        return r.content.decode("utf-8-sig", errors="replace")

    path = _resolve_path(source)
    try:
        return await asyncio.to_thread(path.read_text, encoding="utf-8-sig")
    except OSError as e:
        raise DataFetchError(f"Cannot read {path}: {e}") from e


async def fetch_geo_document(source: str, http_client: Optional[httpx.AsyncClient] = None) -> dict[str, Any]:
    text = await fetch_source(source, http_client)
    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise DataFetchError(f"Geographic document at {source} is not valid JSON: {e}") from e
    if not isinstance(document, dict):
        raise DataFetchError(f"Geographic document at {source} is not a JSON object")
    return document


async def fetch_case_sheet(source: str, http_client: Optional[httpx.AsyncClient] = None) -> str:
    return await fetch_source(source, http_client)


# ─────────────────────────── One Load Attempt ───────────────────

async def load_snapshot(
    geo_source: str,
    cases_source: str,
    *,
    version: int = 1,
    object_name: str = GEO_OBJECT_NAME,
    http_client: Optional[httpx.AsyncClient] = None,
) -> DatasetSnapshot:
    """Fetch both sources concurrently, then index, parse and aggregate."""
    geo_document, sheet_text = await asyncio.gather(
        fetch_geo_document(geo_source, http_client),
        fetch_case_sheet(cases_source, http_client),
    )

    regions = build_region_index(geo_document, object_name)
    records = parse_case_records(sheet_text)
    aggregates, stats = aggregate(regions, records)

    return DatasetSnapshot(
        version=version,
        loadedAt=datetime.now(timezone.utc).isoformat(),
        regions=regions,
        aggregates=aggregates,
        stats=stats,
        geo=geo_document,
    )


# ─────────────────────────── Retry Policy ───────────────────────

class RetryPolicy:
    """Run an async operation up to ``max_attempts`` times with a fixed delay.

    Attempts never overlap: each one finishes (or fails) before the delay and
    the next attempt start. Only RETRYABLE_ERRORS are retried; anything else
    propagates immediately.
    """

    def __init__(
        self,
        max_attempts: int = LOAD_MAX_RETRIES,
        delay: float = LOAD_RETRY_DELAY,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.delay = delay
        self._sleep = sleep

    async def run(self, operation: Callable[[], Awaitable[Any]], *, label: str = "load"):
        last_error: Optional[BaseException] = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await operation()
            except RETRYABLE_ERRORS as e:
                last_error = e
                logger.warning(f"{label} attempt {attempt}/{self.max_attempts} failed: {e}")
                if attempt < self.max_attempts:
                    await self._sleep(self.delay)

        logger.error(f"{label} gave up after {self.max_attempts} attempts: {last_error}")
        raise DataLoadError(
            f"{label} failed after {self.max_attempts} attempts: {last_error}",
            attempts=self.max_attempts,
        ) from last_error
