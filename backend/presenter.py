"""Casemap Backend - Map & Detail Panel View Models

Plain data for the browser layer: choropleth colors, layer styles, tooltips
and the case cards shown in the detail panel.
"""

from typing import Sequence

from config import COLOR_BINS, NO_DATA_COLOR
from models import (
    CaseCategory, CaseCard, CaseRecord, DetailPanel,
    RegionAggregate, RegionSummary,
)

UNTITLED = "無標題"
NO_SUMMARY = "無摘要"
NO_CASES_MESSAGE = "此地區目前沒有記錄在案的案件。"
NO_MATCHES_MESSAGE = "沒有符合篩選條件的案件。"

BASE_STYLE = {
    "weight": 2,
    "opacity": 1,
    "color": "white",
    "dashArray": "3",
    "fillOpacity": 0.7,
}

# Applied on mouse-over, reset to the base style on mouse-out
HIGHLIGHT_STYLE = {
    "weight": 4,
    "color": "#666",
    "dashArray": "",
    "fillOpacity": 0.9,
}


def color_for_count(count: int) -> str:
    for threshold, color in COLOR_BINS:
        if count > threshold:
            return color
    return NO_DATA_COLOR


def region_style(total: int) -> dict:
    return {"fillColor": color_for_count(total), **BASE_STYLE}


def tooltip_lines(name: str, aggregate: RegionAggregate) -> list[str]:
    return [
        name,
        f"虐童案: {aggregate.childAbuseCount} 件",
        f"總計: {aggregate.total} 件",
    ]


def region_summary(name: str, aggregate: RegionAggregate) -> RegionSummary:
    return RegionSummary(
        name=name,
        total=aggregate.total,
        childAbuseCount=aggregate.childAbuseCount,
        juvenileCount=aggregate.juvenileCount,
        fillColor=color_for_count(aggregate.total),
        tooltip=tooltip_lines(name, aggregate),
    )


def case_card(record: CaseRecord) -> CaseCard:
    return CaseCard(
        title=record.caseName or UNTITLED,
        summary=record.description or NO_SUMMARY,
        victimAge=record.victimAge,
        injury=record.injury,
        date=record.date or "",
        newsLink=record.newsLink,
        juvenile=record.category is CaseCategory.JUVENILE,
    )


def detail_panel(name: str, aggregate: RegionAggregate, results: Sequence[CaseRecord]) -> DetailPanel:
    """Build the detail panel for a region from an already-filtered result list."""
    if aggregate.total == 0:
        empty = NO_CASES_MESSAGE
    elif not results:
        empty = NO_MATCHES_MESSAGE
    else:
        empty = ""
    return DetailPanel(
        region=name,
        heading=f"{name} - 案件列表 ({len(results)} 件)",
        total=aggregate.total,
        count=len(results),
        cards=[case_card(r) for r in results],
        emptyMessage=empty,
    )
