"""Load the map + case sheet once and write the aggregated dataset to JSON.

The output is what the API serves from /api/regions plus every region's full
case list, so a static page can render the map without running the backend.

Usage:
  python scripts/export_snapshot.py                                  # sources from .env
  python scripts/export_snapshot.py --geo datasets/taiwan.json --cases datasets/cases.csv
  python scripts/export_snapshot.py --out public/data.json --retries 5 --delay 3
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT_DIR / "backend"))

from config import GEO_DATA_SOURCE, CASES_DATA_SOURCE, LOAD_MAX_RETRIES, LOAD_RETRY_DELAY  # noqa: E402
from data_fetchers import DataLoadError, RetryPolicy, client, load_snapshot  # noqa: E402
from presenter import region_summary  # noqa: E402
from query_engine import configure_collation  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("snapshot_export")

DEFAULT_OUT = ROOT_DIR / "datasets" / "snapshot.json"


def build_export(snapshot) -> dict:
    return {
        "version": snapshot.version,
        "loadedAt": snapshot.loadedAt,
        "stats": snapshot.stats.model_dump(),
        "regions": [
            {
                **region_summary(name, snapshot.aggregates[name]).model_dump(),
                "cases": [c.model_dump(mode="json") for c in snapshot.aggregates[name].cases],
            }
            for name in snapshot.regions
        ],
    }


async def run(args) -> int:
    policy = RetryPolicy(max_attempts=args.retries, delay=args.delay)
    try:
        snapshot = await policy.run(lambda: load_snapshot(args.geo, args.cases), label="Snapshot load")
    except DataLoadError as e:
        logger.error(f"Export aborted: {e}")
        return 1
    finally:
        await client.aclose()

    out = Path(args.out)
    out.parent.mkdir(parents=True, exist_ok=True)
    with open(out, "w", encoding="utf-8") as f:
        json.dump(build_export(snapshot), f, ensure_ascii=False, indent=2)
    logger.info(
        f"Wrote {out} ({len(snapshot.regions)} regions, {snapshot.stats.totalCases} cases, "
        f"{sum(a.total for a in snapshot.aggregates.values())} matched)"
    )
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Export the aggregated case map dataset to JSON")
    parser.add_argument("--geo", default=GEO_DATA_SOURCE, help="TopoJSON/GeoJSON URL or path")
    parser.add_argument("--cases", default=CASES_DATA_SOURCE, help="Case sheet CSV URL or path")
    parser.add_argument("--out", default=str(DEFAULT_OUT), help="Output JSON file")
    parser.add_argument("--retries", type=int, default=LOAD_MAX_RETRIES, help="Max load attempts")
    parser.add_argument("--delay", type=float, default=LOAD_RETRY_DELAY, help="Seconds between attempts")
    args = parser.parse_args()
    configure_collation()
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
