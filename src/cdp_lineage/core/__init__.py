"""Lineage engine: loading, filtering, aggregation, bucketing and graph building."""
