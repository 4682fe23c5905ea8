"""Helpers for reading lineage exports into normalized flow records."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence, Union

import pandas as pd

from ..models import FlowRecord
from .normalizer import (
    COL_CDP_TABLES,
    COL_DOWNSTREAM_APP,
    COL_DOWNSTREAM_EIM_ID,
    COL_GBGF,
    COL_SHARED_TABLES,
    COL_SOURCE_APP,
    COL_SOURCE_EIM_ID,
    COL_SOURCE_SYSTEM,
    COL_SOURCE_TABLES,
    COL_SUB_SYS_CODE,
    COL_SYS_CODE,
    normalize_rows,
)

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = [
    COL_SOURCE_SYSTEM,
    COL_SOURCE_EIM_ID,
    COL_SOURCE_APP,
    COL_SYS_CODE,
    COL_SUB_SYS_CODE,
    COL_DOWNSTREAM_APP,
    COL_DOWNSTREAM_EIM_ID,
    COL_GBGF,
    COL_SOURCE_TABLES,
    COL_CDP_TABLES,
    COL_SHARED_TABLES,
]

# Older exports carry a longer header for the CDP count
RENAME_MAP = {
    "Total CDP Table Count(Include Daliy/Monthly Table)": COL_CDP_TABLES,
}


class ValidationError(ValueError):
    """Raised when a dataset cannot be loaded because required columns are missing."""

    def __init__(self, missing_columns: Sequence[str]):
        self.missing_columns = list(missing_columns)
        super().__init__(f"Missing required columns: {', '.join(self.missing_columns)}")


def validate_columns(rows: Sequence[Mapping[str, Any]]) -> None:
    """
    Check the first row carries every required column.

    An empty dataset passes: there is no row to be malformed.
    """
    if not rows:
        return
    first = rows[0]
    missing = [col for col in REQUIRED_COLUMNS if col not in first]
    if missing:
        raise ValidationError(missing)


def _rename_columns(row: Mapping[str, Any]) -> Dict[str, Any]:
    """Apply RENAME_MAP, keeping an existing target column when both are present."""
    renamed = dict(row)
    for source, target in RENAME_MAP.items():
        if source in renamed:
            value = renamed.pop(source)
            renamed.setdefault(target, value)
    return renamed


def read_rows_from_csv(path: Union[str, Path]) -> List[Dict[str, Any]]:
    """Read a lineage CSV into row dicts, keeping every cell as text."""
    path = Path(path)
    logger.info(f"Loading CSV: {path}")
    df = pd.read_csv(path, dtype=str, keep_default_na=False, skip_blank_lines=True, encoding="utf-8-sig")
    df.columns = [str(c).strip() for c in df.columns]
    # Rows where every cell is blank are spreadsheet padding
    if not df.empty:
        blank = df.apply(lambda col: col.str.strip().eq("")).all(axis=1)
        df = df[~blank.astype(bool)]
    logger.info(f"Read {len(df)} rows, {len(df.columns)} columns")
    return df.to_dict(orient="records")


def load_records(rows: Sequence[Mapping[str, Any]]) -> List[FlowRecord]:
    """Validate then normalize a full dataset. Raises ValidationError on missing columns."""
    prepared = [_rename_columns(row) for row in rows]
    validate_columns(prepared)
    records = normalize_rows(prepared)
    logger.info(f"Normalized {len(records)} records")
    return records


def load_records_from_file(path: Union[str, Path]) -> List[FlowRecord]:
    """Read and normalize a lineage CSV export."""
    return load_records(read_rows_from_csv(path))
