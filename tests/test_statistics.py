"""
Tests for dashboard statistics.
"""

from cdp_lineage.core.data_loader import load_records
from cdp_lineage.core.graph_builder import HUB_ID, build_overview_graph
from cdp_lineage.core.statistics import compute_dashboard_stats
from cdp_lineage.models import FilterState


class TestComputeDashboardStats:
    """Tests for compute_dashboard_stats."""

    def test_counts_and_totals(self, sample_records):
        stats = compute_dashboard_stats(sample_records)
        assert stats.record_count == 5
        assert stats.source_system_count == 3
        assert stats.downstream_application_count == 3
        assert stats.source_eim_id_count == 4
        assert stats.downstream_eim_id_count == 3
        assert stats.total_source_tables == 1280
        assert stats.total_cdp_tables == 1145
        assert stats.total_shared_tables == 165
        assert stats.warnings == []

    def test_cdp_total_matches_hub(self, sample_records):
        """The KPI card and the rendered hub agree."""
        stats = compute_dashboard_stats(sample_records)
        assert stats.total_cdp_tables == build_overview_graph(sample_records).node(HUB_ID).value

    def test_tag_totals(self, sample_records):
        tags = compute_dashboard_stats(sample_records).tags
        assert sorted(tags) == ["CMB", "GBM", "GF-Finance", "WPB"]
        assert tags["GBM"].records == 2
        assert tags["GBM"].cdp_tables == 125
        assert tags["GBM"].shared_tables == 80
        assert tags["WPB"].cdp_tables == 970

    def test_top_lists(self, sample_records):
        stats = compute_dashboard_stats(sample_records, top_n=2)
        assert [s["id"] for s in stats.top_sources] == ["Payments", "CRM"]
        assert stats.top_sources[0]["cdp_tables"] == 970
        assert [d["id"] for d in stats.top_downstream] == ["Risk Hub", "Finance Mart"]
        assert stats.top_downstream[0]["sources"] == 2

    def test_filtered(self, sample_records):
        stats = compute_dashboard_stats(sample_records, FilterState(eim_id="9002"))
        assert stats.record_count == 2
        assert stats.downstream_application_count == 1
        assert stats.total_shared_tables == 65

    def test_empty_selection(self, sample_records):
        stats = compute_dashboard_stats(sample_records, FilterState(gbgf="WPB", application_name="GL Ledger"))
        assert stats.record_count == 0
        assert stats.source_eim_id_count == 0
        assert stats.total_cdp_tables == 0
        assert stats.tags == {}
        assert stats.top_sources == []

    def test_untagged_records(self, row_factory):
        stats = compute_dashboard_stats(load_records([row_factory(gbgf="")]))
        assert stats.record_count == 1
        assert stats.tags == {}

    def test_warnings_reported(self, row_factory):
        records = load_records([
            row_factory("A", "X", downstream_eim="E1"),
            row_factory("B", "X", downstream_eim="E2"),
        ])
        assert len(compute_dashboard_stats(records).warnings) == 1

    def test_json_serializable(self, sample_records):
        data = compute_dashboard_stats(sample_records).model_dump(mode="json")
        assert data["tags"]["CMB"] == {"records": 1, "cdp_tables": 100, "shared_tables": 60}
