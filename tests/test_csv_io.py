"""CSV rows: formatting, header aliases and batch validation."""

import pytest

from ies_batch.csv_io import (
    CSV_COLUMNS,
    ensure_ies_suffix,
    from_rows,
    parse_csv_updates,
    read_csv,
    row_to_update,
    rows_frame,
    rows_to_csv,
    to_row,
)
from ies_batch.errors import ValidationError


class TestToRow:

    def test_formatting(self, sample_doc):
        row = to_row(sample_doc)
        assert list(row) == CSV_COLUMNS
        assert row["filename"] == "sample.ies"
        assert row["wattage"] == "10.00"
        assert row["lumens"] == "1000"
        assert row["length"] == "1.000"
        assert row["width"] == "0.050"
        assert row["unit"] == "meters"
        assert row["cct"] == "4000"
        assert row["nearField"] == "linear"
        assert row["update_file_name"] == ""

    def test_fractional_lumens_kept(self, sample_doc):
        p = sample_doc.photometric.updated(lumens_per_lamp=1000.4)
        assert to_row(sample_doc.with_photometric(p))["lumens"] == "1000.4"

    def test_absent_metadata_is_empty_cell(self, sample_doc):
        assert to_row(sample_doc)["testDate"] == ""


class TestReadCsv:

    def test_header_aliases(self):
        rows = read_csv("File Name,LUMCAT,Watts,Length (m),Ignored\nsample.ies,L-2,12,1.5,x\n")
        assert rows == [{
            "filename": "sample.ies",
            "luminaireCatalogNumber": "L-2",
            "wattage": "12",
            "length": "1.5",
        }]

    def test_empty_cells_are_empty_strings(self):
        rows = read_csv("filename,other\nsample.ies,\n")
        assert rows == [{"filename": "sample.ies", "other": ""}]

    def test_bare_multiplier_is_not_cct_multiplier(self):
        rows = read_csv("filename,multiplier,CCT Multiplier\na.ies,2,0.9\n")
        assert rows == [{"filename": "a.ies", "cctMultiplier": "0.9"}]

    def test_empty_text(self):
        with pytest.raises(ValidationError, match="No data rows"):
            read_csv("")

    def test_frame_and_csv_text(self, sample_doc):
        frame = rows_frame([to_row(sample_doc)])
        assert list(frame.columns) == CSV_COLUMNS
        text = rows_to_csv([to_row(sample_doc)])
        assert text.splitlines()[0] == ",".join(CSV_COLUMNS)
        assert read_csv(text) == [to_row(sample_doc)]


class TestRowToUpdate:

    def test_present_empty_clears_absent_untouched(self):
        update, errors = row_to_update({"filename": "a.ies", "other": ""})
        assert errors == []
        assert update.metadata == {"other": ""}
        update, _ = row_to_update({"filename": "a.ies"})
        assert "other" not in update.metadata

    def test_numbers(self):
        update, errors = row_to_update({"filename": "a.ies", "wattage": "12.5", "lumens": "", "cctMultiplier": "0.9"})
        assert errors == []
        assert update.wattage == 12.5
        assert update.lumens is None
        assert update.cct_multiplier == 0.9

    @pytest.mark.parametrize("raw", ["abc", "0", "-1", "nan", "inf"])
    def test_bad_numbers(self, raw):
        _, errors = row_to_update({"filename": "a.ies", "wattage": raw}, label="Row 3")
        assert len(errors) == 1
        assert errors[0].startswith("Row 3: wattage")

    def test_zero_dimensions_allowed(self):
        update, errors = row_to_update({"filename": "flat.ies", "height": "0.000", "width": "0"})
        assert errors == []
        assert update.height == 0.0
        assert update.width == 0.0

    def test_negative_dimension(self):
        _, errors = row_to_update({"filename": "a.ies", "length": "-1"}, label="Row 2")
        assert errors == ["Row 2: length must not be negative (got -1)"]

    def test_near_field_enum(self):
        update, errors = row_to_update({"filename": "a.ies", "nearField": "Area"})
        assert errors == []
        assert update.metadata["near_field"] == "area"
        _, errors = row_to_update({"filename": "a.ies", "nearField": "volume"})
        assert "nearField" in errors[0]

    def test_cct(self):
        update, _ = row_to_update({"filename": "a.ies", "cct": "3000K"})
        assert update.metadata["color_temperature"] == 3000.0
        update, _ = row_to_update({"filename": "a.ies", "cct": ""})
        assert update.metadata["color_temperature"] is None

    def test_unit_and_rename(self):
        update, _ = row_to_update({"filename": "a.ies", "unit": "FT", "update_file_name": "b"})
        assert update.unit == "feet"
        assert update.new_file_name == "b.ies"
        update, _ = row_to_update({"filename": "a.ies"})
        assert update.unit == "meters"
        assert update.new_file_name is None
        assert update.is_empty()


class TestFromRows:

    def test_collects_all_errors(self):
        rows = [
            {"filename": "a.ies", "wattage": "x"},
            {"filename": ""},
            {"filename": "a.ies"},
            {"filename": "zzz.ies"},
            {"filename": "b.ies", "lumens": "1200"},
        ]
        updates, errors = from_rows(rows, known_filenames={"a.ies", "b.ies"})
        assert len(errors) == 4
        assert any("missing filename" in e for e in errors)
        assert any("duplicate filename 'a.ies'" in e for e in errors)
        assert any("unknown filename 'zzz.ies'" in e for e in errors)
        assert list(updates) == ["b.ies"]

    def test_missing_filename_column(self):
        _, errors = from_rows([{"wattage": "10"}])
        assert errors == ["Missing required column: filename"]

    def test_no_rows(self):
        _, errors = from_rows([])
        assert errors == ["No data rows found"]

    def test_without_known_names_everything_matches(self):
        updates, errors = from_rows([{"filename": "anything.ies", "test": "T"}])
        assert errors == []
        assert updates["anything.ies"].metadata == {"test": "T"}


class TestParseCsvUpdates:

    def test_all_or_nothing(self):
        text = "filename,wattage\na.ies,20\nb.ies,-3\n"
        with pytest.raises(ValidationError) as exc:
            parse_csv_updates(text, {"a.ies", "b.ies"})
        assert exc.value.messages == ["Row 2: wattage must be greater than 0 (got -3)"]

    def test_valid_batch(self):
        updates = parse_csv_updates("filename,wattage\na.ies,20\n", {"a.ies"})
        assert updates["a.ies"].wattage == 20.0


def test_ensure_ies_suffix():
    assert ensure_ies_suffix("x") == "x.ies"
    assert ensure_ies_suffix("x.IES") == "x.IES"
    assert ensure_ies_suffix("  ") == ""
