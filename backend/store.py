"""Casemap Backend - In-memory Dataset Store

Holds the current DatasetSnapshot. Readers only ever see ``None`` (nothing
loaded yet) or a fully aggregated snapshot: a reload builds its snapshot off to
the side and publishes it with a single reference swap.
"""

import asyncio
import logging
import threading
from typing import Awaitable, Callable, Optional

from cachetools import LRUCache

from config import GEO_DATA_SOURCE, CASES_DATA_SOURCE, QUERY_CACHE_SIZE
from data_fetchers import DataLoadError, RetryPolicy, load_snapshot
from models import CaseRecord, DatasetSnapshot, RegionAggregate, ViewState
from query_engine import query

logger = logging.getLogger("casemap.store")

SnapshotLoader = Callable[[int], Awaitable[DatasetSnapshot]]


class DatasetStore:
    def __init__(
        self,
        geo_source: str = GEO_DATA_SOURCE,
        cases_source: str = CASES_DATA_SOURCE,
        *,
        retry_policy: Optional[RetryPolicy] = None,
        loader: Optional[SnapshotLoader] = None,
        cache_size: int = QUERY_CACHE_SIZE,
    ):
        self.geo_source = geo_source
        self.cases_source = cases_source
        self.retry_policy = retry_policy or RetryPolicy()
        self._loader = loader or self._load_from_sources
        self._snapshot: Optional[DatasetSnapshot] = None
        self._reload_lock = asyncio.Lock()
        self._query_cache: LRUCache = LRUCache(maxsize=cache_size)
        self._cache_lock = threading.Lock()
        self.last_error: Optional[DataLoadError] = None

    async def _load_from_sources(self, version: int) -> DatasetSnapshot:
        return await load_snapshot(self.geo_source, self.cases_source, version=version)

    @property
    def snapshot(self) -> Optional[DatasetSnapshot]:
        return self._snapshot

    @property
    def is_loaded(self) -> bool:
        return self._snapshot is not None

    @property
    def version(self) -> int:
        return self._snapshot.version if self._snapshot else 0

    def publish(self, snapshot: DatasetSnapshot) -> None:
        """Make ``snapshot`` the current dataset."""
        self._snapshot = snapshot
        self.last_error = None
        logger.info(
            f"Dataset v{snapshot.version} published: {len(snapshot.regions)} regions, "
            f"{snapshot.stats.totalCases} cases"
        )

    async def reload(self) -> DatasetSnapshot:
        """Rebuild the dataset from its sources under the retry policy.

        Concurrent callers queue on a lock, so at most one load runs at a time.
        On DataLoadError the previous snapshot (if any) stays published.
        """
        async with self._reload_lock:
            next_version = self.version + 1
            try:
                snapshot = await self.retry_policy.run(
                    lambda: self._loader(next_version), label="Dataset load"
                )
            except DataLoadError as e:
                self.last_error = e
                raise
            self.publish(snapshot)
            return snapshot

    def region(self, name: str) -> RegionAggregate:
        """Return the aggregate for ``name``. Raises KeyError for unknown regions."""
        snapshot = self._snapshot
        if snapshot is None:
            raise LookupError("Dataset not loaded")
        return snapshot.aggregates[name]

    def query(self, view: ViewState) -> list[CaseRecord]:
        """Run the query engine for the view's selected region (cached per dataset version)."""
        snapshot = self._snapshot
        if snapshot is None or view.selectedRegion is None:
            return []
        aggregate = snapshot.aggregates[view.selectedRegion]

        key = (snapshot.version, view)
        with self._cache_lock:
            cached = self._query_cache.get(key)
        if cached is not None:
            return list(cached)

        results = query(aggregate, view)
        with self._cache_lock:
            self._query_cache[key] = tuple(results)
        return results
