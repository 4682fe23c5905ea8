"""
Graph Builder
-------------
Aggregates → three-tier overview graph (sources → hub → downstream).

Design: the hub value is the sum of its inbound links, and every overflow
bucket carries the exact remainder, so tier totals are conserved from raw
records through to the rendered graph. Layout is a pure function of tier,
index and count; the same data always renders identically.
"""

import json
import logging
import math
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from ..models import (
    AggregationResult,
    FilterState,
    FlowRecord,
    GraphLink,
    GraphModel,
    GraphNode,
    OverflowMember,
)
from .aggregator import aggregate
from .bucketing import bucket_downstream, bucket_sources
from .settings import DashboardSettings

logger = logging.getLogger(__name__)

HUB_ID = "hub"
# Overflow ids live outside the "source:" and "downstream:" namespaces
OTHER_SOURCES_ID = "source-other"
OTHER_DOWNSTREAM_ID = "downstream-other"

# Horizontal band (fraction of canvas width) for each outer tier
TIER_BANDS: Dict[str, Tuple[float, float]] = {
    "source": (0.03, 0.38),
    "downstream": (0.62, 0.97),
}


def source_node_id(aggregate_id: str) -> str:
    return f"source:{aggregate_id}"


def downstream_node_id(aggregate_id: str) -> str:
    return f"downstream:{aggregate_id}"


def aggregate_id_from_node(node_id: str) -> Optional[str]:
    """Inverse of ``downstream_node_id``; None for every other tier, overflow included."""
    prefix = "downstream:"
    if not node_id.startswith(prefix):
        return None
    return node_id[len(prefix):]


# ==================== LAYOUT ====================

def grid_shape(count: int) -> Tuple[int, int]:
    """(rows, cols) of the staggered grid for ``count`` nodes."""
    if count <= 0:
        return 0, 0
    rows = math.ceil(math.sqrt(1.5 * count))
    cols = math.ceil(count / rows)
    return rows, cols


def grid_position(tier: str, index: int, count: int, width: float, height: float) -> Tuple[float, float]:
    """
    Position of node ``index`` of ``count`` in a tier.

    Nodes fill a row-major grid inside the tier's band; odd rows shift right
    by half a cell so labels on neighbouring rows do not line up.
    """
    if tier == "hub":
        return round(width / 2, 2), round(height / 2, 2)

    rows, cols = grid_shape(count)
    row, col = divmod(index, cols)
    left, right = TIER_BANDS[tier]
    cell_w = (right - left) * width / cols
    cell_h = height / rows

    x = left * width + (col + 0.5) * cell_w
    if row % 2 == 1:
        x += cell_w / 2
    y = (row + 0.5) * cell_h
    return round(x, 2), round(y, 2)


def node_size(value: int, max_value: int, settings: DashboardSettings) -> float:
    """Square-root scaled size, floored at ``min_node_size``."""
    if max_value <= 0 or value <= 0:
        return settings.min_node_size
    return round(max(settings.min_node_size, math.sqrt(value / max_value) * settings.node_size_scale), 2)


def link_width(value: int, settings: DashboardSettings) -> float:
    """Log-scaled width; at least 1 for any positive value."""
    if value <= 0:
        return 0.0
    return round(min(settings.max_link_width, max(1.0, math.log(value))), 3)


def layout_tier(
    tier: str,
    entries: Sequence[Tuple[str, str, int, Optional[str], List[OverflowMember]]],
    settings: DashboardSettings,
) -> List[GraphNode]:
    """Size and position a tier; entries are (id, name, value, eim_id, members) in display order."""
    max_value = max((value for _, _, value, _, _ in entries), default=0)
    nodes = []
    for index, (node_id, name, value, eim_id, members) in enumerate(entries):
        x, y = grid_position(tier, index, len(entries), settings.canvas_width, settings.canvas_height)
        nodes.append(GraphNode(
            id=node_id, name=name, tier=tier, value=value,
            size=node_size(value, max_value, settings), x=x, y=y,
            eim_id=eim_id, members=members,
        ))
    return nodes


def hub_node(value: int, settings: DashboardSettings) -> GraphNode:
    x, y = grid_position("hub", 0, 1, settings.canvas_width, settings.canvas_height)
    return GraphNode(id=HUB_ID, name=settings.hub_name, tier="hub", value=value, size=settings.hub_node_size, x=x, y=y)


# ==================== OVERVIEW ====================

def build_overview(result: AggregationResult, settings: Optional[DashboardSettings] = None) -> GraphModel:
    """Build the overview graph from one aggregation pass."""
    settings = settings or DashboardSettings()
    if result.is_empty:
        logger.info("No records after filtering, returning empty graph")
        return GraphModel()

    sources = bucket_sources(result.source_aggregates.values(), settings.overflow_limit)
    positive = [a for a in result.downstream_aggregates.values() if a.total_shared_tables > 0]
    downstream = bucket_downstream(positive, settings.overflow_limit)

    source_entries = [
        (source_node_id(a.id), a.id, a.total_source_tables, None, []) for a in sources.kept
    ]
    if sources.other is not None:
        source_entries.append(
            (OTHER_SOURCES_ID, sources.other.id, sources.other.total_source_tables, None, sources.members)
        )

    downstream_entries = [
        (downstream_node_id(a.id), a.id, a.total_shared_tables, a.eim_id, []) for a in downstream.kept
    ]
    if downstream.other is not None:
        downstream_entries.append(
            (OTHER_DOWNSTREAM_ID, downstream.other.id, downstream.other.total_shared_tables, None, downstream.members)
        )

    links: List[GraphLink] = []
    for agg, (node_id, *_rest) in zip(sources.entries, source_entries):
        if agg.total_cdp_tables > 0:
            links.append(GraphLink(source=node_id, target=HUB_ID, value=agg.total_cdp_tables,
                                   width=link_width(agg.total_cdp_tables, settings)))
    hub_value = sum(link.value for link in links)

    for agg, (node_id, *_rest) in zip(downstream.entries, downstream_entries):
        links.append(GraphLink(source=HUB_ID, target=node_id, value=agg.total_shared_tables,
                               width=link_width(agg.total_shared_tables, settings)))

    nodes = (
        layout_tier("source", source_entries, settings)
        + [hub_node(hub_value, settings)]
        + layout_tier("downstream", downstream_entries, settings)
    )
    logger.info(
        f"Built overview: {len(source_entries)} source nodes, {len(downstream_entries)} downstream nodes, "
        f"{len(links)} links, hub value {hub_value}"
    )
    return GraphModel(nodes=nodes, links=links)


def build_overview_graph(
    records: Sequence[FlowRecord],
    filter_state: Optional[FilterState] = None,
    settings: Optional[DashboardSettings] = None,
) -> GraphModel:
    """Aggregate then build, in one call."""
    return build_overview(aggregate(records, filter_state), settings)


def export_graph_to_json(graph: GraphModel, output_path: Path) -> None:
    """Export a graph (overview or detail flow) to JSON."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(graph.model_dump(mode='json'), f, indent=2)
    logger.info(f"Exported to {output_path}")
