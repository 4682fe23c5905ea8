"""
Lineage Data Models
-------------------
Typed records, aggregates and graph output models for the CDP lineage engine.

Records and aggregates are plain dataclasses (built in tight loops over tens
of thousands of rows); the graph models handed to the rendering layer are
Pydantic models so they serialize straight to JSON.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

ALL = "ALL"
UNKNOWN = "Unknown"

OTHER_SOURCES = "Other Sources"
OTHER_DOWNSTREAM = "Other Downstream Systems"

Tier = Literal["source", "hub", "downstream", "info"]


# ==================== RECORDS ====================

@dataclass(frozen=True)
class FlowRecord:
    """One normalized lineage row: a source system feeding one downstream application via the hub."""
    source_system_id: str = UNKNOWN
    source_application_name: str = UNKNOWN
    source_eim_id: str = UNKNOWN
    sys_code: str = ""
    sub_sys_code: str = ""
    downstream_application_name: str = UNKNOWN
    downstream_eim_id: str = UNKNOWN
    gbgf_tags: FrozenSet[str] = frozenset()
    source_table_count: int = 0
    cdp_table_count: int = 0
    shared_table_count: int = 0


# ==================== FILTERS ====================

class FilterField(str, Enum):
    """Filterable record dimensions."""
    GBGF = "gbgf"
    EIM_ID = "eim_id"
    APPLICATION_NAME = "application_name"


class FilterState(BaseModel):
    """Current filter selection. Immutable; use ``with_value`` to derive a new state."""
    model_config = ConfigDict(frozen=True)

    gbgf: str = ALL
    eim_id: str = ALL
    application_name: str = ALL

    def value_of(self, field_name: "FilterField | str") -> str:
        return getattr(self, FilterField(field_name).value)

    def with_value(self, field_name: "FilterField | str", value: str) -> "FilterState":
        return self.model_copy(update={FilterField(field_name).value: value})

    @property
    def is_unfiltered(self) -> bool:
        return self.gbgf == ALL and self.eim_id == ALL and self.application_name == ALL


class FilterUpdate(BaseModel):
    """Request body for changing one filter field. The field name is checked by the filter engine."""
    field: str
    value: str


# ==================== AGGREGATES ====================

@dataclass
class SourceDetail:
    """Per source-EIM-ID breakdown inside a source system aggregate."""
    application_name: str
    sys_code: str
    sub_sys_code: str
    tables: int = 0
    cdp_tables: int = 0
    gbgf_tags: FrozenSet[str] = frozenset()


@dataclass
class SourceSystemAggregate:
    """All filtered records of one source system."""
    id: str
    total_source_tables: int = 0
    total_cdp_tables: int = 0
    details: Dict[str, SourceDetail] = field(default_factory=dict)
    # Populated only on the synthetic overflow aggregate
    members: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def value(self) -> int:
        return self.total_cdp_tables


@dataclass
class DownstreamDetail:
    """One contributing (source EIM ID, downstream EIM ID) pair of a downstream application."""
    source_system: str
    source_application_name: str
    shared_tables: int = 0


@dataclass
class DownstreamAppAggregate:
    """All filtered records shared to one downstream application."""
    id: str
    total_shared_tables: int = 0
    eim_id: str = UNKNOWN
    details: Dict[Tuple[str, str], DownstreamDetail] = field(default_factory=dict)
    members: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def value(self) -> int:
        return self.total_shared_tables


@dataclass
class AggregationResult:
    """Output of a single aggregation pass."""
    source_aggregates: Dict[str, SourceSystemAggregate] = field(default_factory=dict)
    downstream_aggregates: Dict[str, DownstreamAppAggregate] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    record_count: int = 0

    @property
    def is_empty(self) -> bool:
        return self.record_count == 0


# ==================== GRAPH OUTPUT ====================

class OverflowMember(BaseModel):
    """Summary of an aggregate merged into an overflow bucket."""
    id: str
    name: str
    value: int


class GraphNode(BaseModel):
    """A positioned node handed to the rendering layer."""
    id: str
    name: str
    tier: Tier
    value: int
    size: float
    x: float
    y: float
    eim_id: Optional[str] = None
    members: List[OverflowMember] = Field(default_factory=list, description="Set on overflow nodes only")


class GraphLink(BaseModel):
    """A weighted edge between two node ids."""
    source: str
    target: str
    value: int
    width: float


class GraphModel(BaseModel):
    """Three-tier overview graph: sources, hub, downstream applications."""
    nodes: List[GraphNode] = Field(default_factory=list)
    links: List[GraphLink] = Field(default_factory=list)

    def nodes_in_tier(self, tier: str) -> List[GraphNode]:
        return [n for n in self.nodes if n.tier == tier]

    def node(self, node_id: str) -> Optional[GraphNode]:
        return next((n for n in self.nodes if n.id == node_id), None)

    @property
    def is_empty(self) -> bool:
        return not self.nodes


class DetailFlowModel(GraphModel):
    """Drill-down flow for one downstream application."""
    selected_node_id: str
    selected_name: str


# ==================== STATISTICS ====================

class TagTotals(BaseModel):
    records: int = 0
    cdp_tables: int = 0
    shared_tables: int = 0


class DashboardStats(BaseModel):
    """KPI summary of the filtered record set."""
    record_count: int
    source_system_count: int
    downstream_application_count: int
    source_eim_id_count: int
    downstream_eim_id_count: int
    total_source_tables: int
    total_cdp_tables: int
    total_shared_tables: int
    tags: Dict[str, TagTotals]
    top_sources: List[Dict[str, Any]]
    top_downstream: List[Dict[str, Any]]
    warnings: List[str] = Field(default_factory=list)
