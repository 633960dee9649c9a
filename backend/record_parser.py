"""Casemap Backend - CSV Case Record Parser

Turns the published case sheet (header row + data rows) into CaseRecords.

Rows are parsed best-effort: a row shorter than the header leaves its trailing
fields absent, surplus cells are discarded, and fully blank lines are skipped.
Blank or whitespace-only cells become None; other cells are kept verbatim,
except county, which is trimmed. Columns that are not CaseRecord fields are
ignored.
"""

import csv
import io
import logging
from typing import Optional

from models import CaseRecord

logger = logging.getLogger("casemap.parser")

CASE_FIELDS = tuple(CaseRecord.model_fields)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value if value.strip() else None


def parse_case_records(text: str) -> list[CaseRecord]:
    """Parse delimited text into CaseRecords, one per data row, in source order."""
    if not text:
        return []

    reader = csv.reader(io.StringIO(text.lstrip("\ufeff"), newline=""))
    header = next(reader, None)
    if not header:
        return []

    columns = [(i, name.strip()) for i, name in enumerate(header) if name.strip() in CASE_FIELDS]
    if "county" not in {name for _, name in columns}:
        logger.warning(f"Case sheet has no 'county' column (header: {header})")

    records: list[CaseRecord] = []
    ragged = 0
    for row in reader:
        if not any(cell.strip() for cell in row):
            continue
        if len(row) != len(header):
            ragged += 1
        values = {name: _clean(row[i]) if i < len(row) else None for i, name in columns}
        values["county"] = (values.get("county") or "").strip()
        records.append(CaseRecord(**values))

    if ragged:
        logger.debug(f"{ragged} row(s) had a field count different from the header")
    logger.info(f"Parsed {len(records)} case records")
    return records
