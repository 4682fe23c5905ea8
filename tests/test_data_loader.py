"""
Tests for the data loader: column validation, CSV reading and the legacy
CDP column alias.
"""

import pandas as pd
import pytest

from cdp_lineage.core.data_loader import (
    REQUIRED_COLUMNS,
    ValidationError,
    load_records,
    load_records_from_file,
    read_rows_from_csv,
    validate_columns,
)


class TestValidateColumns:
    """Tests for validate_columns."""

    def test_complete_row_passes(self, row_factory):
        validate_columns([row_factory()])

    def test_missing_columns_listed(self, row_factory):
        row = row_factory()
        del row["GB/GF"]
        del row["Downstream EIM ID"]
        with pytest.raises(ValidationError) as exc_info:
            validate_columns([row])
        assert exc_info.value.missing_columns == ["Downstream EIM ID", "GB/GF"]
        assert "GB/GF" in str(exc_info.value)

    def test_validation_error_is_value_error(self):
        assert issubclass(ValidationError, ValueError)

    def test_empty_dataset_passes(self):
        validate_columns([])

    def test_only_first_row_checked(self, row_factory):
        """Later rows missing fields are defaulted by the normalizer, not rejected."""
        validate_columns([row_factory(), {"Source system": "partial"}])


class TestLoadRecords:

    def test_load_sample(self, sample_rows):
        records = load_records(sample_rows)
        assert len(records) == 5
        assert records[3].source_table_count == 1000
        assert records[3].shared_table_count == 0

    def test_legacy_cdp_column_renamed(self, row_factory):
        row = row_factory(cdp_tables=77)
        row["Total CDP Table Count(Include Daliy/Monthly Table)"] = row.pop("Total CDP Table Count")
        records = load_records([row])
        assert records[0].cdp_table_count == 77

    def test_current_column_wins_over_legacy(self, row_factory):
        row = row_factory(cdp_tables=5)
        row["Total CDP Table Count(Include Daliy/Monthly Table)"] = 99
        assert load_records([row])[0].cdp_table_count == 5

    def test_missing_column_raises(self, row_factory):
        row = row_factory()
        del row["Share to Downstream Table Count"]
        with pytest.raises(ValidationError):
            load_records([row])

    def test_input_rows_not_modified(self, row_factory):
        row = row_factory()
        row["Total CDP Table Count(Include Daliy/Monthly Table)"] = row.pop("Total CDP Table Count")
        snapshot = dict(row)
        load_records([row])
        assert row == snapshot


class TestReadRowsFromCsv:
    """Tests for CSV reading."""

    def test_round_trip_sample(self, sample_csv):
        rows = read_rows_from_csv(sample_csv)
        assert len(rows) == 5
        assert set(REQUIRED_COLUMNS) <= set(rows[0])
        # Everything is read as text; coercion is the normalizer's job
        assert rows[0]["Source File/Table Count"] == "120"
        assert rows[3]["Share to Downstream Table Count"] == "n/a"

    def test_headers_stripped_and_blank_rows_dropped(self, tmp_path, row_factory):
        path = tmp_path / "padded.csv"
        df = pd.DataFrame([row_factory("A"), {c: "" for c in REQUIRED_COLUMNS}, row_factory("B")])
        df.columns = [f" {c} " for c in df.columns]
        df.to_csv(path, index=False)

        rows = read_rows_from_csv(path)
        assert [r["Source system"] for r in rows] == ["A", "B"]

    def test_header_only_file(self, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text(",".join(REQUIRED_COLUMNS) + "\n", encoding="utf-8")
        assert read_rows_from_csv(path) == []

    def test_load_records_from_file(self, sample_csv):
        records = load_records_from_file(sample_csv)
        assert [r.source_system_id for r in records] == ["CRM", "CRM", "Payments", "Payments", "Ledger"]
        assert records[0].gbgf_tags == frozenset({"GBM", "CMB"})

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_rows_from_csv(tmp_path / "nope.csv")

    def test_na_text_survives_load(self, tmp_path, row_factory):
        path = tmp_path / "na.csv"
        pd.DataFrame([row_factory("NA", "None", gbgf="NA")]).to_csv(path, index=False)
        record = load_records_from_file(path)[0]
        assert (record.source_system_id, record.downstream_application_name) == ("NA", "None")
        assert record.gbgf_tags == frozenset({"NA"})
