"""
Filter Engine
-------------
Multi-field record filtering with mutually consistent option lists.

The option list of a field is computed with every *other* selected field
applied, so a user can always switch a field to any value that still yields
records under the remaining selections.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Set

from ..models import ALL, FilterField, FilterState, FlowRecord

logger = logging.getLogger(__name__)


def field_values(record: FlowRecord, filter_field: FilterField) -> Iterable[str]:
    """Values a record exposes for one filter field."""
    if filter_field is FilterField.GBGF:
        return record.gbgf_tags
    if filter_field is FilterField.EIM_ID:
        return (record.source_eim_id, record.downstream_eim_id)
    return (record.source_application_name, record.downstream_application_name)


def record_matches(record: FlowRecord, state: FilterState) -> bool:
    """Inclusion predicate shared by filtering, option lists and aggregation."""
    if state.gbgf != ALL and state.gbgf not in record.gbgf_tags:
        return False
    if state.eim_id != ALL and state.eim_id not in (record.source_eim_id, record.downstream_eim_id):
        return False
    if state.application_name != ALL and state.application_name not in (
        record.source_application_name,
        record.downstream_application_name,
    ):
        return False
    return True


def filter_records(records: Iterable[FlowRecord], state: FilterState) -> List[FlowRecord]:
    """Records passing the current selection, in input order."""
    if state.is_unfiltered:
        return list(records)
    return [r for r in records if record_matches(r, state)]


def compute_options(records: Iterable[FlowRecord], state: FilterState, filter_field: FilterField) -> List[str]:
    """
    Sorted values observable for ``filter_field`` under every other selection.

    Always starts with the ``ALL`` sentinel, even for an empty dataset.
    """
    filter_field = FilterField(filter_field)
    others_only = state.with_value(filter_field, ALL)
    values: Set[str] = set()
    for record in records:
        if record_matches(record, others_only):
            values.update(field_values(record, filter_field))
    values.discard(ALL)
    return [ALL] + sorted(values)


@dataclass
class FilterChange:
    """Outcome of a single filter update."""
    filter_field: FilterField
    value: str
    previous: FilterState
    state: FilterState
    reset_fields: List[FilterField] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.previous != self.state


class FilterEngine:
    """
    Holds the filter selection for one record set.

    The record set itself is owned by the caller and passed in; replacing it
    resets the selection.
    """

    def __init__(self, records: Sequence[FlowRecord] = (), state: Optional[FilterState] = None):
        self._records: Sequence[FlowRecord] = records
        self._state = state or FilterState()

    @property
    def state(self) -> FilterState:
        return self._state

    def set_records(self, records: Sequence[FlowRecord]) -> None:
        self._records = records
        self._state = FilterState()

    def get_available_options(self, filter_field: FilterField) -> List[str]:
        return compute_options(self._records, self._state, filter_field)

    def observed_values(self, filter_field: FilterField) -> List[str]:
        """Options with no selection applied at all."""
        return compute_options(self._records, FilterState(), filter_field)

    def filtered_records(self) -> List[FlowRecord]:
        return filter_records(self._records, self._state)

    def set_filter(self, filter_field: FilterField, value: str) -> FilterChange:
        """
        Change one field and silently reset the others that no longer fit.

        Raises:
            ValueError: unknown field, or a value never observed in the data
        """
        try:
            filter_field = FilterField(filter_field)
        except ValueError:
            raise ValueError(f"Unknown filter field: {filter_field!r}") from None

        if value != ALL and value not in self.observed_values(filter_field):
            raise ValueError(f"Unknown {filter_field.value} value: {value!r}")

        previous = self._state
        # Other fields are re-applied one at a time in field order, each checked
        # against the new value and the fields kept before it
        state = FilterState().with_value(filter_field, value)

        reset_fields = []
        for other in FilterField:
            kept_value = previous.value_of(other)
            if other is filter_field or kept_value == ALL:
                continue
            if kept_value in compute_options(self._records, state, other):
                state = state.with_value(other, kept_value)
            else:
                logger.info(f"Filter {other.value}={kept_value!r} no longer available, reset to {ALL}")
                reset_fields.append(other)

        self._state = state
        logger.info(f"Filter {filter_field.value} set to {value!r}")
        return FilterChange(
            filter_field=filter_field, value=value, previous=previous, state=state, reset_fields=reset_fields
        )

    def reset(self) -> FilterChange:
        previous = self._state
        self._state = FilterState()
        return FilterChange(filter_field=FilterField.GBGF, value=ALL, previous=previous, state=self._state)
