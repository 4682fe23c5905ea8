"""
Dashboard Statistics
--------------------
KPI summary of the filtered record set: entity counts, table totals, per-GBGF
tag totals and the top source systems / downstream applications.

Totals are taken from the same aggregation pass that feeds the graph, so the
KPI cards and the rendered hub always agree.
"""

import logging
from dataclasses import asdict
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from ..models import DashboardStats, FilterState, FlowRecord, TagTotals
from .aggregator import aggregate
from .bucketing import rank
from .filters import filter_records

logger = logging.getLogger(__name__)

DEFAULT_TOP_N = 10


def _records_frame(records: Sequence[FlowRecord]) -> pd.DataFrame:
    rows = [asdict(r) for r in records]
    if not rows:
        return pd.DataFrame(columns=[
            "source_eim_id", "downstream_eim_id", "gbgf_tags",
            "source_table_count", "cdp_table_count", "shared_table_count",
        ])
    df = pd.DataFrame(rows)
    df["gbgf_tags"] = df["gbgf_tags"].map(sorted)
    return df


def _tag_totals(df: pd.DataFrame) -> Dict[str, TagTotals]:
    if df.empty:
        return {}
    exploded = df.explode("gbgf_tags").dropna(subset=["gbgf_tags"])
    if exploded.empty:
        return {}
    grouped = exploded.groupby("gbgf_tags").agg(
        records=("gbgf_tags", "size"),
        cdp_tables=("cdp_table_count", "sum"),
        shared_tables=("shared_table_count", "sum"),
    )
    return {
        str(tag): TagTotals(
            records=int(row["records"]),
            cdp_tables=int(row["cdp_tables"]),
            shared_tables=int(row["shared_tables"]),
        )
        for tag, row in grouped.sort_index().iterrows()
    }


def compute_dashboard_stats(
    records: Sequence[FlowRecord],
    filter_state: Optional[FilterState] = None,
    top_n: int = DEFAULT_TOP_N,
) -> DashboardStats:
    """
    Compute KPIs for the records passing ``filter_state``.

    Args:
        records: Normalized flow records
        filter_state: Current selection; ``None`` means no filtering
        top_n: Length of the top source / downstream lists

    Returns:
        DashboardStats (all zeros for an empty selection)
    """
    state = filter_state or FilterState()
    filtered = filter_records(records, state)
    result = aggregate(filtered)
    df = _records_frame(filtered)

    sources = rank(result.source_aggregates.values(), lambda a: a.total_cdp_tables, lambda a: a.id)
    downstream = rank(result.downstream_aggregates.values(), lambda a: a.total_shared_tables, lambda a: a.id)

    top_sources: List[Dict[str, Any]] = [
        {"id": a.id, "source_tables": a.total_source_tables, "cdp_tables": a.total_cdp_tables,
         "eim_ids": len(a.details)}
        for a in sources[:top_n]
    ]
    top_downstream: List[Dict[str, Any]] = [
        {"id": a.id, "eim_id": a.eim_id, "shared_tables": a.total_shared_tables, "sources": len(a.details)}
        for a in downstream[:top_n]
    ]

    stats = DashboardStats(
        record_count=result.record_count,
        source_system_count=len(result.source_aggregates),
        downstream_application_count=len(result.downstream_aggregates),
        source_eim_id_count=int(df["source_eim_id"].nunique()),
        downstream_eim_id_count=int(df["downstream_eim_id"].nunique()),
        total_source_tables=sum(a.total_source_tables for a in sources),
        total_cdp_tables=sum(a.total_cdp_tables for a in sources),
        total_shared_tables=sum(a.total_shared_tables for a in downstream),
        tags=_tag_totals(df),
        top_sources=top_sources,
        top_downstream=top_downstream,
        warnings=result.warnings,
    )
    logger.info(
        f"Stats: {stats.record_count} records, {stats.total_cdp_tables} CDP tables, "
        f"{stats.total_shared_tables} shared tables"
    )
    return stats
