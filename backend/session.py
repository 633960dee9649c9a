"""Casemap Backend - View Session

In-process consumer API for presenters that hold state themselves (desktop or
notebook front ends); the HTTP API is stateless and passes a ViewState per
request instead.

One user's ViewState plus the re-query wiring around it. Discrete controls
(region click, case-type dropdown, sort dropdown) re-query immediately; the
search box is debounced so typing does not run a query per keystroke.
"""

import asyncio
import logging
from typing import Any, Callable, Optional

from config import SEARCH_DEBOUNCE_SECONDS
from models import CaseRecord, CaseTypeFilter, SortOrder, ViewState
from store import DatasetStore

logger = logging.getLogger("casemap.session")

ResultListener = Callable[[ViewState, list[CaseRecord]], Any]


class Debouncer:
    """Call ``callback`` once ``delay`` seconds pass without a new trigger."""

    def __init__(self, delay: float, callback: Callable[..., Any]):
        self.delay = delay
        self._callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self, *args) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire, args)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, args: tuple) -> None:
        self._handle = None
        self._callback(*args)


class ViewSession:
    def __init__(
        self,
        store: DatasetStore,
        listener: ResultListener,
        *,
        debounce_seconds: float = SEARCH_DEBOUNCE_SECONDS,
    ):
        self.store = store
        self.view = ViewState()
        self._listener = listener
        self._search = Debouncer(debounce_seconds, self._apply_search)

    def _results(self, view: ViewState) -> Optional[list[CaseRecord]]:
        if view.selectedRegion is None or not self.store.is_loaded:
            return None
        return self.store.query(view)

    def _update(self, **changes) -> None:
        current = self.view.selectedRegion
        snapshot = self.store.snapshot
        if (
            "selectedRegion" not in changes
            and current is not None
            and snapshot is not None
            and current not in snapshot.aggregates
        ):
            logger.warning(f"Region {current!r} is gone from dataset v{snapshot.version}; clearing selection")
            changes["selectedRegion"] = None

        view = self.view.model_copy(update=changes)
        # KeyError for an unknown region leaves the current view in place
        results = self._results(view)
        self.view = view
        if results is not None:
            self._listener(view, results)

    def select_region(self, name: str) -> None:
        """Switch region. Search, type filter and sort order carry over.

        Raises KeyError (view unchanged) when the loaded dataset has no such region.
        """
        self._update(selectedRegion=name)

    def set_case_type(self, case_type: CaseTypeFilter) -> None:
        self._update(caseTypeFilter=CaseTypeFilter(case_type))

    def set_sort_order(self, order: SortOrder) -> None:
        self._update(sortOrder=SortOrder(order))

    def set_search(self, term: str) -> None:
        """Debounced; must be called from inside a running event loop."""
        self._search.trigger(term)

    def flush_search(self, term: str) -> None:
        """Apply a search term right away, dropping any pending keystroke."""
        self._search.cancel()
        self._apply_search(term)

    def _apply_search(self, term: str) -> None:
        logger.debug(f"Search applied: {term!r}")
        self._update(searchTerm=term)
