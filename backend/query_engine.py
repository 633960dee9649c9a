"""Casemap Backend - Region Case Query

Filters and orders one region's cases for the detail panel. Steps always run
in this order: case-type filter, free-text search, stable sort. The aggregate
is only read; every call returns a fresh list holding the same record objects.
"""

import locale
import logging
import re
from datetime import date
from functools import lru_cache
from typing import Iterable, Optional

from config import COLLATE_LOCALE
from models import CaseRecord, CaseTypeFilter, RegionAggregate, SortOrder, ViewState

logger = logging.getLogger("casemap.query")

EPOCH = date(1970, 1, 1)

# Minguo (ROC) calendar: Gregorian year = ROC year + 1911
_ROC_OFFSET = 1911

_YMD_RE = re.compile(r"^(\d{2,4})\s*[-/.年]\s*(\d{1,2})\s*[-/.月]\s*(\d{1,2})\s*日?(?:$|[\sT])")
_COMPACT_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})$")
_MDY_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})(?:$|\s)")


@lru_cache(maxsize=4096)
def parse_case_date(value: Optional[str]) -> date:
    """Parse a free-form sheet date. Absent or unparsable values give EPOCH."""
    if not value:
        return EPOCH
    text = value.strip()

    m = _YMD_RE.match(text) or _COMPACT_RE.match(text)
    if m:
        year, month, day = (int(g) for g in m.groups())
    else:
        m = _MDY_RE.match(text)
        if not m:
            return EPOCH
        month, day, year = (int(g) for g in m.groups())

    if year < 1000:
        year += _ROC_OFFSET
    try:
        return date(year, month, day)
    except ValueError:
        return EPOCH


def configure_collation(name: str = COLLATE_LOCALE) -> str:
    """Set LC_COLLATE for name sorting and return the locale actually in effect.

    An empty name takes the locale from the environment (LC_ALL, LC_COLLATE,
    LANG). An unavailable locale is logged and the current collation is kept.
    """
    try:
        return locale.setlocale(locale.LC_COLLATE, name)
    except locale.Error as e:
        current = locale.setlocale(locale.LC_COLLATE)
        logger.warning(f"Collation locale {name!r} unavailable ({e}); keeping {current!r}")
        return current


def _name_key(record: CaseRecord) -> str:
    return locale.strxfrm(record.caseName or "")


def _matches_search(record: CaseRecord, needle: str) -> bool:
    for field in (record.caseName, record.description, record.victimAge):
        if field and needle in field.lower():
            return True
    return False


def filter_by_type(records: Iterable[CaseRecord], case_type: CaseTypeFilter) -> list[CaseRecord]:
    if case_type is CaseTypeFilter.ALL:
        return list(records)
    return [r for r in records if r.category.value == case_type.value]


def filter_by_search(records: Iterable[CaseRecord], term: str) -> list[CaseRecord]:
    needle = (term or "").lower()
    if not needle:
        return list(records)
    return [r for r in records if _matches_search(r, needle)]


def sort_records(records: Iterable[CaseRecord], order: SortOrder) -> list[CaseRecord]:
    # sorted() is stable, including with reverse=True
    if order is SortOrder.NAME_ASC:
        return sorted(records, key=_name_key)
    if order is SortOrder.DATE_ASC:
        return sorted(records, key=lambda r: parse_case_date(r.date))
    return sorted(records, key=lambda r: parse_case_date(r.date), reverse=True)


def query(aggregate: RegionAggregate, view: ViewState) -> list[CaseRecord]:
    """Return the region's cases filtered by type and search, then sorted."""
    results = filter_by_type(aggregate.cases, view.caseTypeFilter)
    results = filter_by_search(results, view.searchTerm)
    results = sort_records(results, view.sortOrder)
    logger.debug(
        f"Query {view.selectedRegion!r}: {len(results)}/{aggregate.total} "
        f"(type={view.caseTypeFilter.value}, search={view.searchTerm!r}, sort={view.sortOrder.value})"
    )
    return results
