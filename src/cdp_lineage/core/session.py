"""
Dashboard Session
-----------------
Caller-owned state of one dashboard: the current record set, the filter
selection and the view (overview or drill-down).

Nothing derived is cached. Graphs, options and statistics are rebuilt from
the current inputs on every call, and a new record set replaces the old one
in a single assignment only after it has been fully validated and
normalized.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from ..models import DashboardStats, DetailFlowModel, FilterField, FilterState, FlowRecord, GraphModel
from .aggregator import aggregate
from .data_loader import load_records, read_rows_from_csv
from .detail_flow import build_detail_for_node
from .filters import FilterChange, FilterEngine
from .fixtures import FixtureProvider
from .graph_builder import build_overview
from .settings import DashboardSettings
from .statistics import compute_dashboard_stats
from .view_state import OVERVIEW, ViewState

logger = logging.getLogger(__name__)


class SessionError(RuntimeError):
    """Operation not possible in the session's current state."""


class DashboardSession:
    """
    One dashboard's records, filters and view.

    Usage:
        session = DashboardSession(settings)
        session.load_file("exports/cdp_lineage.csv")
        session.set_filter(FilterField.GBGF, "GBM")
        graph = session.overview()
    """

    def __init__(self, settings: Optional[DashboardSettings] = None, fixture_provider: Optional[FixtureProvider] = None):
        self.settings = settings or DashboardSettings()
        self.fixture_provider = fixture_provider
        self._records: List[FlowRecord] = []
        self._engine = FilterEngine(self._records)
        self._view: ViewState = OVERVIEW
        self.data_source: Optional[str] = None

    # ==================== LOADING ====================

    def _replace_records(self, records: List[FlowRecord], data_source: str) -> int:
        self._records = records
        self._engine.set_records(records)
        self._view = OVERVIEW
        self.data_source = data_source
        logger.info(f"Loaded {len(records)} records from {data_source}")
        return len(records)

    def load_rows(self, rows: Sequence[Mapping[str, Any]], data_source: str = "rows") -> int:
        """
        Replace the record set with ``rows``.

        Raises:
            ValidationError: required columns missing; the current records are kept
        """
        records = load_records(rows)
        return self._replace_records(records, data_source)

    def load_file(self, path: Union[str, Path]) -> int:
        path = Path(path)
        return self.load_rows(read_rows_from_csv(path), data_source=str(path))

    def load_fixture(self) -> int:
        if self.fixture_provider is None:
            raise SessionError("No fixture provider configured")
        return self.load_rows(self.fixture_provider.rows(), data_source=type(self.fixture_provider).__name__)

    def reload(self) -> int:
        """Reload from the configured data file, falling back to the fixture provider."""
        if self.settings.data_file:
            return self.load_file(self.settings.data_file)
        if self.fixture_provider is not None:
            return self.load_fixture()
        raise SessionError("No data file or fixture provider configured")

    # ==================== STATE ====================

    @property
    def records(self) -> List[FlowRecord]:
        return self._records

    @property
    def record_count(self) -> int:
        return len(self._records)

    @property
    def filter_state(self) -> FilterState:
        return self._engine.state

    @property
    def view(self) -> ViewState:
        return self._view

    def set_filter(self, filter_field: Union[FilterField, str], value: str) -> FilterChange:
        """Apply one filter change; always returns the view to the overview."""
        change = self._engine.set_filter(filter_field, value)
        self._view = self._view.filter_changed()
        return change

    def reset_filters(self) -> FilterChange:
        change = self._engine.reset()
        self._view = self._view.filter_changed()
        return change

    def options(self, filter_field: Union[FilterField, str]) -> List[str]:
        return self._engine.get_available_options(FilterField(filter_field))

    def all_options(self) -> Dict[str, List[str]]:
        return {f.value: self.options(f) for f in FilterField}

    # ==================== VIEWS ====================

    def overview(self) -> GraphModel:
        return build_overview(aggregate(self._records, self.filter_state), self.settings)

    def detail(self) -> Optional[DetailFlowModel]:
        """Drill-down flow of the selected node, or None while on the overview."""
        if not self._view.is_detail:
            return None
        flow = build_detail_for_node(aggregate(self._records, self.filter_state), self._view.node_id, self.settings)
        if flow is None:
            logger.warning(f"Selected node {self._view.node_id!r} is no longer drillable, returning to overview")
            self._view = OVERVIEW
        return flow

    def select(self, node_id: str) -> ViewState:
        self._view = self._view.select(self.overview(), node_id)
        return self._view

    def back(self) -> ViewState:
        self._view = self._view.back()
        return self._view

    def stats(self) -> DashboardStats:
        return compute_dashboard_stats(self._records, self.filter_state)
