"""
Tests for the overflow bucketer.
"""

import pytest

from cdp_lineage.core.bucketing import bucket, bucket_downstream, bucket_sources, rank
from cdp_lineage.models import OTHER_DOWNSTREAM, OTHER_SOURCES, DownstreamAppAggregate, SourceSystemAggregate


def _sources(count: int):
    return [
        SourceSystemAggregate(id=f"S{i:02d}", total_source_tables=i + 1, total_cdp_tables=i + 1)
        for i in range(count)
    ]


class TestRank:

    def test_value_desc_then_id_asc(self):
        items = [("b", 5), ("a", 5), ("c", 9), ("d", 1)]
        ranked = rank(items, value_of=lambda i: i[1], id_of=lambda i: i[0])
        assert [i[0] for i in ranked] == ["c", "a", "b", "d"]


class TestBucket:
    """Tests for the generic bucket()."""

    def test_limit_must_be_positive(self):
        with pytest.raises(ValueError, match="at least 1"):
            bucket([], 0, value_of=lambda i: i, id_of=str, merge=lambda rest, members: sum(rest))

    def test_under_limit_has_no_overflow(self):
        result = bucket_sources(_sources(5), limit=30)
        assert len(result.kept) == 5
        assert result.other is None
        assert result.members == []
        assert len(result.entries) == 5

    def test_exactly_at_limit(self):
        result = bucket_sources(_sources(30), limit=30)
        assert len(result.kept) == 30
        assert result.other is None

    def test_overflow_sums_remainder(self):
        """35 sources, limit 30: the 5 lowest are merged into Other Sources."""
        result = bucket_sources(_sources(35), limit=30)
        assert len(result.kept) == 30
        assert result.other.id == OTHER_SOURCES
        assert result.other.total_cdp_tables == 1 + 2 + 3 + 4 + 5
        assert result.other.total_source_tables == 15
        assert [m.id for m in result.members] == ["S04", "S03", "S02", "S01", "S00"]
        assert len(result.other.members) == 5

    def test_totals_conserved(self):
        items = _sources(50)
        result = bucket_sources(items, limit=7)
        assert sum(a.total_cdp_tables for a in result.entries) == sum(a.total_cdp_tables for a in items)

    def test_tie_break_at_cut(self):
        """Equal values at the cut keep the lexicographically smaller id."""
        items = [SourceSystemAggregate(id=name, total_cdp_tables=10) for name in ("b", "a", "c")]
        result = bucket_sources(items, limit=2)
        assert [a.id for a in result.kept] == ["a", "b"]
        assert result.members[0].id == "c"

    def test_downstream_overflow(self):
        items = [DownstreamAppAggregate(id=f"D{i}", total_shared_tables=i + 1, eim_id=f"E{i}") for i in range(4)]
        result = bucket_downstream(items, limit=2)
        assert [a.id for a in result.kept] == ["D3", "D2"]
        assert result.other.id == OTHER_DOWNSTREAM
        assert result.other.total_shared_tables == 3

    def test_input_order_irrelevant(self):
        items = _sources(40)
        forward = bucket_sources(items, limit=10)
        backward = bucket_sources(list(reversed(items)), limit=10)
        assert [a.id for a in forward.entries] == [a.id for a in backward.entries]
