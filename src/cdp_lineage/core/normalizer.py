"""
Record Normalizer
-----------------
Raw spreadsheet row → typed ``FlowRecord``.

Never raises: missing or malformed fields fall back to defaults so a single
bad row cannot abort a load. GB/GF is split into a tag set here and nowhere
else.
"""

import logging
from typing import Any, Iterable, List, Mapping

from ..models import UNKNOWN, FlowRecord
from .type_safety import safe_count, safe_string, split_tags

logger = logging.getLogger(__name__)

# Column names of the lineage export
COL_SOURCE_SYSTEM = "Source system"
COL_SOURCE_EIM_ID = "Source EIM ID"
COL_SOURCE_APP = "Source Application Name"
COL_SYS_CODE = "SYS_CODE"
COL_SUB_SYS_CODE = "SUB_SYS_CODE"
COL_DOWNSTREAM_APP = "Downstream Application Name"
COL_DOWNSTREAM_EIM_ID = "Downstream EIM ID"
COL_GBGF = "GB/GF"
COL_SOURCE_TABLES = "Source File/Table Count"
COL_CDP_TABLES = "Total CDP Table Count"
COL_SHARED_TABLES = "Share to Downstream Table Count"


def normalize_row(row: Mapping[str, Any]) -> FlowRecord:
    """Convert one raw row into a ``FlowRecord``, defaulting anything missing."""
    if not isinstance(row, Mapping):
        logger.debug(f"Non-mapping row {type(row).__name__} replaced by an empty record")
        return FlowRecord()

    get = row.get
    return FlowRecord(
        source_system_id=safe_string(get(COL_SOURCE_SYSTEM), UNKNOWN),
        source_application_name=safe_string(get(COL_SOURCE_APP), UNKNOWN),
        source_eim_id=safe_string(get(COL_SOURCE_EIM_ID), UNKNOWN),
        sys_code=safe_string(get(COL_SYS_CODE)),
        sub_sys_code=safe_string(get(COL_SUB_SYS_CODE)),
        downstream_application_name=safe_string(get(COL_DOWNSTREAM_APP), UNKNOWN),
        downstream_eim_id=safe_string(get(COL_DOWNSTREAM_EIM_ID), UNKNOWN),
        gbgf_tags=split_tags(get(COL_GBGF)),
        source_table_count=safe_count(get(COL_SOURCE_TABLES), COL_SOURCE_TABLES),
        cdp_table_count=safe_count(get(COL_CDP_TABLES), COL_CDP_TABLES),
        shared_table_count=safe_count(get(COL_SHARED_TABLES), COL_SHARED_TABLES),
    )


def normalize_rows(rows: Iterable[Mapping[str, Any]]) -> List[FlowRecord]:
    """Normalize rows in order."""
    return [normalize_row(row) for row in rows]
