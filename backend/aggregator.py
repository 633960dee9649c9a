"""Casemap Backend - Region Aggregation

Joins case records to regions. The join is best-effort: a record whose trimmed
county is not exactly a known region name is dropped from the per-region
rollup without raising. Global totals are computed over every input record,
matched or not.
"""

import logging
from collections import Counter
from typing import Iterable, Sequence

from models import CaseCategory, CaseRecord, GlobalStats, RegionAggregate

logger = logging.getLogger("casemap.aggregator")


def compute_global_stats(records: Iterable[CaseRecord]) -> GlobalStats:
    """Single-pass totals over all records, independent of the region join."""
    total = abuse = juvenile = 0
    for record in records:
        total += 1
        category = record.category
        if category is CaseCategory.CHILD_ABUSE:
            abuse += 1
        elif category is CaseCategory.JUVENILE:
            juvenile += 1
    return GlobalStats(totalCases=total, totalAbuse=abuse, totalJuvenile=juvenile)


def aggregate(
    regions: Iterable[str],
    records: Sequence[CaseRecord],
) -> tuple[dict[str, RegionAggregate], GlobalStats]:
    """Build one RegionAggregate per region plus dataset-wide GlobalStats.

    Every region gets an aggregate, including regions with no cases. Cases keep
    source order within a region.
    """
    buckets: dict[str, list[CaseRecord]] = {name: [] for name in regions}
    counts: dict[str, Counter] = {name: Counter() for name in buckets}
    dropped: Counter = Counter()

    for record in records:
        county = record.county.strip() if record.county else ""
        cases = buckets.get(county)
        if cases is None:
            dropped[county] += 1
            continue
        cases.append(record)
        counts[county][record.category] += 1

    aggregates = {
        name: RegionAggregate(
            total=len(cases),
            childAbuseCount=counts[name][CaseCategory.CHILD_ABUSE],
            juvenileCount=counts[name][CaseCategory.JUVENILE],
            cases=tuple(cases),
        )
        for name, cases in buckets.items()
    }

    if dropped:
        logger.debug(
            f"Dropped {sum(dropped.values())} record(s) with unmatched county: "
            + ", ".join(f"{name or '<blank>'}×{n}" for name, n in dropped.most_common(10))
        )

    stats = compute_global_stats(records)
    matched = sum(a.total for a in aggregates.values())
    logger.info(f"Aggregated {matched}/{stats.totalCases} records into {len(aggregates)} regions")
    return aggregates, stats
