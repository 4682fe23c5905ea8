"""
Aggregator
----------
Filtered flow records → per-source-system and per-downstream-application
aggregates.

Pure: the same records and filter state always produce an equal result, and
the inputs are never modified. Identity conflicts (one application name seen
with two EIM IDs, one source EIM ID seen with two application names) keep the
first-seen value and are reported as warnings rather than failing the pass.
"""

import logging
from typing import Iterable, List, Optional, Set, Tuple

from ..models import (
    AggregationResult,
    DownstreamAppAggregate,
    DownstreamDetail,
    FilterState,
    FlowRecord,
    SourceDetail,
    SourceSystemAggregate,
)
from .filters import record_matches

logger = logging.getLogger(__name__)


class _WarningSink:
    """Collects each distinct conflict message once, in first-seen order."""

    def __init__(self):
        self.messages: List[str] = []
        self._seen: Set[Tuple[str, ...]] = set()

    def conflict(self, key: Tuple[str, ...], message: str) -> None:
        if key in self._seen:
            return
        self._seen.add(key)
        self.messages.append(message)
        logger.warning(message)


def _add_source(agg: SourceSystemAggregate, record: FlowRecord, sink: _WarningSink) -> None:
    agg.total_source_tables += record.source_table_count
    agg.total_cdp_tables += record.cdp_table_count

    detail = agg.details.get(record.source_eim_id)
    if detail is None:
        agg.details[record.source_eim_id] = SourceDetail(
            application_name=record.source_application_name,
            sys_code=record.sys_code,
            sub_sys_code=record.sub_sys_code,
            tables=record.source_table_count,
            cdp_tables=record.cdp_table_count,
            gbgf_tags=record.gbgf_tags,
        )
        return

    detail.tables += record.source_table_count
    detail.cdp_tables += record.cdp_table_count
    if not record.gbgf_tags <= detail.gbgf_tags:
        detail.gbgf_tags = detail.gbgf_tags | record.gbgf_tags

    if record.source_application_name != detail.application_name:
        sink.conflict(
            ("source_app", agg.id, record.source_eim_id, record.source_application_name),
            f"Source EIM ID {record.source_eim_id!r} of {agg.id!r} seen with application "
            f"{record.source_application_name!r}; keeping {detail.application_name!r}",
        )
    if (record.sys_code, record.sub_sys_code) != (detail.sys_code, detail.sub_sys_code):
        sink.conflict(
            ("sys_code", agg.id, record.source_eim_id, record.sys_code, record.sub_sys_code),
            f"Source EIM ID {record.source_eim_id!r} of {agg.id!r} seen with SYS_CODE "
            f"{record.sys_code}:{record.sub_sys_code}; keeping {detail.sys_code}:{detail.sub_sys_code}",
        )


def _add_downstream(agg: DownstreamAppAggregate, record: FlowRecord, sink: _WarningSink) -> None:
    agg.total_shared_tables += record.shared_table_count

    if record.downstream_eim_id != agg.eim_id:
        sink.conflict(
            ("downstream_eim", agg.id, record.downstream_eim_id),
            f"Downstream application {agg.id!r} seen with EIM ID {record.downstream_eim_id!r}; "
            f"keeping {agg.eim_id!r}",
        )

    key = (record.source_eim_id, record.downstream_eim_id)
    detail = agg.details.get(key)
    if detail is None:
        agg.details[key] = DownstreamDetail(
            source_system=record.source_system_id,
            source_application_name=record.source_application_name,
            shared_tables=record.shared_table_count,
        )
        return

    detail.shared_tables += record.shared_table_count
    seen = (record.source_system_id, record.source_application_name)
    if seen != (detail.source_system, detail.source_application_name):
        sink.conflict(
            ("downstream_source", agg.id, *key, *seen),
            f"Source EIM ID {record.source_eim_id!r} feeding {agg.id!r} seen as {seen[0]!r}/{seen[1]!r}; "
            f"keeping {detail.source_system!r}/{detail.source_application_name!r}",
        )


def aggregate(records: Iterable[FlowRecord], filter_state: Optional[FilterState] = None) -> AggregationResult:
    """
    Group the records passing ``filter_state`` by source system and downstream application.

    Args:
        records: Normalized flow records (never modified)
        filter_state: Current selection; ``None`` means no filtering

    Returns:
        AggregationResult with both aggregate maps and any conflict warnings
    """
    state = filter_state or FilterState()
    sink = _WarningSink()
    result = AggregationResult()

    sources = result.source_aggregates
    downstream = result.downstream_aggregates

    for record in records:
        if not record_matches(record, state):
            continue
        result.record_count += 1

        src = sources.get(record.source_system_id)
        if src is None:
            src = sources[record.source_system_id] = SourceSystemAggregate(id=record.source_system_id)
        _add_source(src, record, sink)

        dst = downstream.get(record.downstream_application_name)
        if dst is None:
            dst = downstream[record.downstream_application_name] = DownstreamAppAggregate(
                id=record.downstream_application_name, eim_id=record.downstream_eim_id
            )
        _add_downstream(dst, record, sink)

    result.warnings = sink.messages
    logger.info(
        f"Aggregated {result.record_count} records: {len(sources)} source systems, "
        f"{len(downstream)} downstream applications, {len(result.warnings)} warnings"
    )
    return result

