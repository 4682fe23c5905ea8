"""
CDP Lineage Dashboard
---------------------
Source systems → CDP hub → downstream applications, as a filterable,
drill-down flow graph.

Key Design Principles:
1. Every derived view is rebuilt from the current records and filters
2. Tier totals are conserved through aggregation and overflow bucketing
3. Layout is deterministic: the same data always renders identically

Usage:
    # Option 1: CLI (API server)
    python -m cdp_lineage serve --file exports/cdp_lineage.csv

    # Option 2: Import (programmatic)
    from cdp_lineage import DashboardSession
    session = DashboardSession()
    session.load_file("exports/cdp_lineage.csv")
    graph = session.overview()

    # Option 3: Statistics only
    python -m cdp_lineage summary --file exports/cdp_lineage.csv --gbgf GBM
"""

__version__ = "1.0.0"

from .models import (
    ALL, FilterField, FilterState, FlowRecord, GraphModel, GraphNode, GraphLink,
    DetailFlowModel, DashboardStats,
)
from .core.data_loader import ValidationError, load_records, load_records_from_file
from .core.filters import FilterEngine
from .core.aggregator import aggregate
from .core.graph_builder import build_overview, build_overview_graph, export_graph_to_json
from .core.detail_flow import build_detail_flow
from .core.settings import DashboardSettings, load_settings
from .core.session import DashboardSession
from .core.statistics import compute_dashboard_stats
from .server import run_server

__all__ = [
    # Server
    "run_server",
    # Session
    "DashboardSession",
    "DashboardSettings",
    "load_settings",
    # Engine
    "load_records",
    "load_records_from_file",
    "ValidationError",
    "FilterEngine",
    "aggregate",
    "build_overview",
    "build_overview_graph",
    "build_detail_flow",
    "export_graph_to_json",
    "compute_dashboard_stats",
    # Models
    "ALL",
    "FilterField",
    "FilterState",
    "FlowRecord",
    "GraphModel",
    "GraphNode",
    "GraphLink",
    "DetailFlowModel",
    "DashboardStats",
]
