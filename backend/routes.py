"""Casemap Backend - FastAPI Routes"""

import logging

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from config import ALLOWED_ORIGINS, NOT_LOADED_MESSAGE
from data_fetchers import DataLoadError, client
from models import (
    CaseTypeFilter, SortOrder, ViewState,
    DatasetSnapshot, DetailPanel, GlobalStats,
    RegionsResponse, ReloadResponse,
)
from presenter import detail_panel, region_summary
from store import DatasetStore

logger = logging.getLogger("casemap")


# ─────────────────────────── App Setup ──────────────────────────

app = FastAPI(title="Casemap API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(ALLOWED_ORIGINS),
    allow_credentials=False,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

store = DatasetStore()


def _require_snapshot() -> DatasetSnapshot:
    snapshot = store.snapshot
    if snapshot is None:
        detail = store.last_error.user_message if store.last_error else NOT_LOADED_MESSAGE
        raise HTTPException(status_code=503, detail=detail)
    return snapshot


# ─────────────────────────── Startup / Shutdown ─────────────────

@app.on_event("startup")
async def startup_event():
    """Load the dataset once; the API answers 503 until a load succeeds."""
    try:
        await store.reload()
    except DataLoadError as e:
        logger.error(f"Initial dataset load failed after {e.attempts} attempts: {e}")


@app.on_event("shutdown")
async def shutdown_event():
    await client.aclose()


# ─────────────────────────── Map Data ───────────────────────────

@app.get("/api/regions", response_model=RegionsResponse)
async def get_regions():
    """Per-region counts and choropleth colors, in map order."""
    snapshot = _require_snapshot()
    return RegionsResponse(
        version=snapshot.version,
        loadedAt=snapshot.loadedAt,
        stats=snapshot.stats,
        regions=[region_summary(name, snapshot.aggregates[name]) for name in snapshot.regions],
    )


@app.get("/api/stats", response_model=GlobalStats)
async def get_stats():
    return _require_snapshot().stats


@app.get("/api/geo")
async def get_geo():
    """The geographic document exactly as loaded, for the browser to draw."""
    return _require_snapshot().geo


# ─────────────────────────── Detail Panel ───────────────────────

@app.get("/api/regions/{name}/cases", response_model=DetailPanel)
async def get_region_cases(
    name: str,
    search: str = "",
    caseType: CaseTypeFilter = CaseTypeFilter.ALL,
    sort: SortOrder = SortOrder.DATE_DESC,
):
    """Filtered, sorted case list for one region."""
    snapshot = _require_snapshot()
    aggregate = snapshot.aggregates.get(name)
    if aggregate is None:
        raise HTTPException(status_code=404, detail=f"Unknown region: {name}")

    view = ViewState(selectedRegion=name, searchTerm=search, caseTypeFilter=caseType, sortOrder=sort)
    results = store.query(view)
    return detail_panel(name, aggregate, results)


# ─────────────────────────── Maintenance ────────────────────────

@app.post("/api/reload", response_model=ReloadResponse)
async def reload_dataset():
    """Re-fetch both sources and rebuild every aggregate."""
    try:
        snapshot = await store.reload()
    except DataLoadError as e:
        logger.warning(f"Reload failed: {e}")
        raise HTTPException(status_code=502, detail=e.user_message)
    return ReloadResponse(
        version=snapshot.version,
        loadedAt=snapshot.loadedAt,
        regionCount=len(snapshot.regions),
        totalCases=snapshot.stats.totalCases,
    )


@app.get("/api/health")
async def health():
    return {"status": "ok", "loaded": store.is_loaded, "version": store.version}
