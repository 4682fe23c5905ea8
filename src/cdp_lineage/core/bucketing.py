"""
Overflow Bucketer
-----------------
Caps a tier at ``limit`` entries. Everything ranked below the cut is merged
into one synthetic "Other" entry whose value is the exact sum of what it
absorbed, so totals are identical before and after bucketing.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Generic, Iterable, List, Optional, TypeVar

from ..models import (
    OTHER_DOWNSTREAM,
    OTHER_SOURCES,
    DownstreamAppAggregate,
    OverflowMember,
    SourceSystemAggregate,
)

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 30

T = TypeVar("T")


@dataclass
class BucketResult(Generic[T]):
    """Top entries in display order plus the optional overflow entry."""
    kept: List[T] = field(default_factory=list)
    other: Optional[T] = None
    members: List[OverflowMember] = field(default_factory=list)

    @property
    def entries(self) -> List[T]:
        return self.kept + ([self.other] if self.other is not None else [])


def rank(items: Iterable[T], value_of: Callable[[T], int], id_of: Callable[[T], str]) -> List[T]:
    """Value descending, id ascending on ties."""
    return sorted(items, key=lambda item: (-value_of(item), id_of(item)))


def bucket(
    items: Iterable[T],
    limit: int,
    value_of: Callable[[T], int],
    id_of: Callable[[T], str],
    merge: Callable[[List[T], List[OverflowMember]], T],
    name_of: Optional[Callable[[T], str]] = None,
) -> BucketResult[T]:
    """
    Keep the ``limit`` highest-valued items and merge the rest.

    Args:
        items: Entries to rank
        limit: Maximum entries kept before the overflow entry
        value_of: Ranking value of an entry
        id_of: Stable identifier, used for tie-breaking and member summaries
        merge: Builds the overflow entry from the remainder and its member summaries
        name_of: Display name for member summaries (defaults to ``id_of``)

    Raises:
        ValueError: if ``limit`` < 1
    """
    if limit < 1:
        raise ValueError(f"Overflow limit must be at least 1, got {limit}")
    name_of = name_of or id_of

    ranked = rank(items, value_of, id_of)
    kept, remainder = ranked[:limit], ranked[limit:]
    if not remainder:
        return BucketResult(kept=kept)

    members = [OverflowMember(id=id_of(i), name=name_of(i), value=value_of(i)) for i in remainder]
    other = merge(remainder, members)
    logger.debug(f"Bucketed {len(remainder)} of {len(ranked)} entries, overflow value {value_of(other)}")
    return BucketResult(kept=kept, other=other, members=members)


def _merge_sources(remainder: List[SourceSystemAggregate], members: List[OverflowMember]) -> SourceSystemAggregate:
    return SourceSystemAggregate(
        id=OTHER_SOURCES,
        total_source_tables=sum(a.total_source_tables for a in remainder),
        total_cdp_tables=sum(a.total_cdp_tables for a in remainder),
        members=[m.model_dump() for m in members],
    )


def _merge_downstream(remainder: List[DownstreamAppAggregate], members: List[OverflowMember]) -> DownstreamAppAggregate:
    return DownstreamAppAggregate(
        id=OTHER_DOWNSTREAM,
        total_shared_tables=sum(a.total_shared_tables for a in remainder),
        eim_id="",
        members=[m.model_dump() for m in members],
    )


def bucket_sources(aggregates: Iterable[SourceSystemAggregate], limit: int = DEFAULT_LIMIT) -> BucketResult[SourceSystemAggregate]:
    """Source tier, ranked by CDP tables (the hub-bound value)."""
    return bucket(aggregates, limit, value_of=lambda a: a.total_cdp_tables, id_of=lambda a: a.id, merge=_merge_sources)


def bucket_downstream(
    aggregates: Iterable[DownstreamAppAggregate], limit: int = DEFAULT_LIMIT
) -> BucketResult[DownstreamAppAggregate]:
    """Downstream tier, ranked by shared tables."""
    return bucket(aggregates, limit, value_of=lambda a: a.total_shared_tables, id_of=lambda a: a.id, merge=_merge_downstream)
