"""Casemap Backend - Pydantic Models"""

from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, computed_field

from config import CHILD_ABUSE_LABELS, JUVENILE_LABELS


class CaseCategory(str, Enum):
    CHILD_ABUSE = "child-abuse"
    JUVENILE = "juvenile"
    OTHER = "other"


class CaseTypeFilter(str, Enum):
    ALL = "all"
    CHILD_ABUSE = "child-abuse"
    JUVENILE = "juvenile"


class SortOrder(str, Enum):
    DATE_DESC = "date-desc"
    DATE_ASC = "date-asc"
    NAME_ASC = "name-asc"


def classify_case_type(case_type: Optional[str]) -> CaseCategory:
    """Map a verbatim caseType label to its category by exact match."""
    if case_type in CHILD_ABUSE_LABELS:
        return CaseCategory.CHILD_ABUSE
    if case_type in JUVENILE_LABELS:
        return CaseCategory.JUVENILE
    return CaseCategory.OTHER


# ─────────────────────────── Core Data ──────────────────────────

class CaseRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    county: str = ""
    caseType: Optional[str] = None
    caseName: Optional[str] = None
    description: Optional[str] = None
    victimAge: Optional[str] = None
    injury: Optional[str] = None
    date: Optional[str] = None  # free-form, parsed lazily by the query engine
    newsLink: Optional[str] = None

    @computed_field
    @property
    def category(self) -> CaseCategory:
        return classify_case_type(self.caseType)


class RegionAggregate(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int = 0
    childAbuseCount: int = 0
    juvenileCount: int = 0
    cases: tuple[CaseRecord, ...] = ()


class GlobalStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    totalCases: int = 0
    totalAbuse: int = 0
    totalJuvenile: int = 0


class ViewState(BaseModel):
    model_config = ConfigDict(frozen=True)

    selectedRegion: Optional[str] = None
    searchTerm: str = ""
    caseTypeFilter: CaseTypeFilter = CaseTypeFilter.ALL
    sortOrder: SortOrder = SortOrder.DATE_DESC


class DatasetSnapshot(BaseModel):
    """One complete load result. Published whole, never edited afterwards."""

    model_config = ConfigDict(frozen=True)

    version: int
    loadedAt: str
    regions: list[str]
    aggregates: dict[str, RegionAggregate]
    stats: GlobalStats
    geo: dict[str, Any] = Field(default_factory=dict, repr=False)


# ─────────────────────────── API Responses ──────────────────────

class RegionSummary(BaseModel):
    name: str
    total: int
    childAbuseCount: int
    juvenileCount: int
    fillColor: str
    tooltip: list[str]


class RegionsResponse(BaseModel):
    version: int
    loadedAt: str
    stats: GlobalStats
    regions: list[RegionSummary]


class CaseCard(BaseModel):
    title: str
    summary: str
    victimAge: Optional[str] = None
    injury: Optional[str] = None
    date: str = ""
    newsLink: Optional[str] = None
    juvenile: bool = False


class DetailPanel(BaseModel):
    region: str
    heading: str
    total: int          # unfiltered case count for the region
    count: int          # cases left after filters
    cards: list[CaseCard]
    emptyMessage: str = ""


class ReloadResponse(BaseModel):
    version: int
    loadedAt: str
    regionCount: int
    totalCases: int
