"""
Detail Flow Builder
-------------------
Drill-down flow for one downstream application: its contributing sources →
hub → the application itself, optionally followed by an info node carrying
the application's EIM ID.

Contributing sources are the application's (source EIM ID, downstream EIM
ID) details, bucketed like an overview tier. Every link in the flow carries a
share of the application's ``total_shared_tables``, so the sum over kept and
overflow sources equals the value the user clicked on.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ..models import (
    OTHER_SOURCES,
    AggregationResult,
    DetailFlowModel,
    DownstreamAppAggregate,
    GraphLink,
    GraphNode,
    OverflowMember,
)
from .bucketing import bucket
from .graph_builder import (
    HUB_ID,
    OTHER_SOURCES_ID,
    aggregate_id_from_node,
    downstream_node_id,
    hub_node,
    layout_tier,
    link_width,
    source_node_id,
)
from .settings import DashboardSettings

logger = logging.getLogger(__name__)

INFO_PREFIX = "info:"

# Horizontal position (fraction of canvas width) of the single-node tiers
TARGET_X = 0.72
INFO_X = 0.92


@dataclass
class ContributingSource:
    """One ranked contributor of a downstream application."""
    id: str
    name: str
    source_system: str
    source_eim_id: str
    value: int
    members: List[OverflowMember] = field(default_factory=list)


def contributing_sources(aggregate: DownstreamAppAggregate) -> List[ContributingSource]:
    """Each (source EIM ID, downstream EIM ID) detail as a contributor, keyed by the JSON-encoded pair."""
    return [
        ContributingSource(
            id=json.dumps([source_eim, downstream_eim]),
            name=detail.source_application_name,
            source_system=detail.source_system,
            source_eim_id=source_eim,
            value=detail.shared_tables,
        )
        for (source_eim, downstream_eim), detail in aggregate.details.items()
    ]


def _merge(remainder: List[ContributingSource], members: List[OverflowMember]) -> ContributingSource:
    return ContributingSource(
        id=OTHER_SOURCES, name=OTHER_SOURCES, source_system="", source_eim_id="",
        value=sum(c.value for c in remainder), members=members,
    )


def build_detail_flow(
    aggregate: DownstreamAppAggregate, settings: Optional[DashboardSettings] = None
) -> DetailFlowModel:
    """
    Build the drill-down flow of one downstream application.

    Raises:
        ValueError: if the application has no shared tables (it is never shown
            on the overview, so it cannot be drilled into)
    """
    settings = settings or DashboardSettings()
    if aggregate.total_shared_tables <= 0:
        raise ValueError(f"Downstream application {aggregate.id!r} has no shared tables")

    ranked = bucket(
        contributing_sources(aggregate),
        settings.detail_overflow_limit,
        value_of=lambda c: c.value,
        id_of=lambda c: c.id,
        merge=_merge,
        name_of=lambda c: c.name,
    )

    source_entries = [
        (source_node_id(c.id), c.name, c.value, c.source_eim_id or None, []) for c in ranked.kept
    ]
    if ranked.other is not None:
        source_entries.append((OTHER_SOURCES_ID, ranked.other.name, ranked.other.value, None, ranked.members))
    nodes = layout_tier("source", source_entries, settings)

    links: List[GraphLink] = [
        GraphLink(source=node_id, target=HUB_ID, value=value, width=link_width(value, settings))
        for node_id, _, value, _, _ in source_entries
        if value > 0
    ]
    hub_value = sum(link.value for link in links)
    nodes.append(hub_node(hub_value, settings))

    width, height = settings.canvas_width, settings.canvas_height
    target_id = downstream_node_id(aggregate.id)
    total = aggregate.total_shared_tables
    nodes.append(GraphNode(
        id=target_id, name=aggregate.id, tier="downstream", value=total,
        size=settings.node_size_scale, x=round(width * TARGET_X, 2), y=round(height / 2, 2),
        eim_id=aggregate.eim_id,
    ))
    links.append(GraphLink(source=HUB_ID, target=target_id, value=total, width=link_width(total, settings)))

    if settings.include_info_tier:
        info_id = f"{INFO_PREFIX}{aggregate.id}"
        nodes.append(GraphNode(
            id=info_id, name=f"EIM ID: {aggregate.eim_id}", tier="info", value=total,
            size=settings.min_node_size, x=round(width * INFO_X, 2), y=round(height / 2, 2),
            eim_id=aggregate.eim_id,
        ))
        links.append(GraphLink(source=target_id, target=info_id, value=total, width=link_width(total, settings)))

    logger.info(
        f"Built detail flow for {aggregate.id!r}: {len(ranked.kept)} sources"
        f"{' + overflow' if ranked.other is not None else ''}, value {total}"
    )
    return DetailFlowModel(nodes=nodes, links=links, selected_node_id=target_id, selected_name=aggregate.id)


def build_detail_for_node(
    result: AggregationResult, node_id: str, settings: Optional[DashboardSettings] = None
) -> Optional[DetailFlowModel]:
    """Detail flow for an overview node id, or None when the node cannot be drilled into."""
    aggregate_id = aggregate_id_from_node(node_id)
    if aggregate_id is None:
        return None
    aggregate = result.downstream_aggregates.get(aggregate_id)
    if aggregate is None or aggregate.total_shared_tables <= 0:
        return None
    return build_detail_flow(aggregate, settings)
