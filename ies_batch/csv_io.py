# File: ies_batch/csv_io.py
"""Document <-> flat string rows for the batch CSV boundary.

Rows are plain ``Dict[str, str]``. A key that is missing from a row means the
column was not in the CSV at all ("don't touch"); a key mapped to "" means the
cell was present and empty ("clear" for metadata).
"""
from __future__ import annotations

import io
import math
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import pandas as pd

from .errors import ValidationError
from .model import NEAR_FIELD_TYPES, BatchRecord, Document, ProposedUpdate
from .units import parse_unit, unit_name

CSV_COLUMNS: List[str] = [
    "filename", "manufacturer", "luminaireCatalogNumber", "lampCatalogNumber",
    "test", "testLab", "testDate", "issueDate", "lampPosition", "other", "nearField",
    "cct", "wattage", "lumens", "length", "width", "height", "unit", "update_file_name",
]

# CSV column -> Metadata field
CSV_TO_METADATA: Dict[str, str] = {
    "manufacturer": "manufacturer",
    "luminaireCatalogNumber": "luminaire_catalog_number",
    "lampCatalogNumber": "lamp_catalog_number",
    "test": "test",
    "testLab": "test_lab",
    "testDate": "test_date",
    "issueDate": "issue_date",
    "lampPosition": "lamp_position",
    "other": "other",
    "nearField": "near_field",
    "cct": "color_temperature",
}

POSITIVE_NUMERIC = ("wattage", "lumens", "cctMultiplier")
# flat emitters carry a 0 height or width; scaling from or to 0 is rejected later, per file
NON_NEGATIVE_NUMERIC = ("length", "width", "height")

HEADER_ALIASES: Dict[str, str] = {
    "filename": "filename", "file name": "filename",
    "manufacturer": "manufacturer", "manufac": "manufacturer",
    "luminairecatalognumber": "luminaireCatalogNumber", "lumcat": "luminaireCatalogNumber",
    "lampcatalognumber": "lampCatalogNumber", "lampcat": "lampCatalogNumber",
    "test": "test",
    "testlab": "testLab", "test laboratory": "testLab",
    "testdate": "testDate", "test date": "testDate",
    "issuedate": "issueDate", "issue date": "issueDate",
    "lampposition": "lampPosition", "lamp position": "lampPosition",
    "other": "other",
    "nearfield": "nearField", "near field": "nearField", "near-field": "nearField",
    "wattage": "wattage", "watts": "wattage", "power": "wattage",
    "lumens": "lumens", "total lumens": "lumens",
    "cct": "cct", "cct (k)": "cct", "colortemperature": "cct", "color temperature": "cct",
    "cctmultiplier": "cctMultiplier", "cct multiplier": "cctMultiplier",
    "length": "length", "length (m)": "length", "length (ft)": "length",
    "width": "width", "width (m)": "width", "width (ft)": "width",
    "height": "height", "height (m)": "height", "height (ft)": "height",
    "unit": "unit", "units": "unit", "dimension unit": "unit", "dimension units": "unit",
    "update_file_name": "update_file_name", "update file name": "update_file_name",
}

CSVRow = Dict[str, str]


# ===================== Small utils =====================
def ensure_ies_suffix(name: str) -> str:
    name = (name or "").strip()
    if name and not name.lower().endswith(".ies"):
        name = f"{name}.ies"
    return name

def _num_text(val: Optional[float]) -> str:
    if val is None:
        return ""
    s = f"{float(val):.3f}".rstrip("0").rstrip(".")
    return s or "0"

def _to_float(raw: str) -> float:
    x = float(raw)
    if not math.isfinite(x):
        raise ValueError(raw)
    return x


# ===================== Document -> row =====================
def to_row(item: Union[Document, BatchRecord]) -> CSVRow:
    doc = item.document if isinstance(item, BatchRecord) else item
    md = doc.metadata
    p = doc.photometric
    row: CSVRow = {"filename": doc.file_name}
    for col, name in CSV_TO_METADATA.items():
        val = getattr(md, name)
        row[col] = _num_text(val) if name == "color_temperature" else (val or "")
    row.update({
        "wattage": f"{p.input_watts:.2f}",
        "lumens": _num_text(p.total_lumens),
        "length": f"{p.length:.3f}",
        "width": f"{p.width:.3f}",
        "height": f"{p.height:.3f}",
        "unit": unit_name(p.units_type),
        "update_file_name": "",
    })
    return {c: row[c] for c in CSV_COLUMNS}


# ===================== CSV text <-> rows =====================
def read_csv(text: str) -> List[CSVRow]:
    """Parse CSV text into rows keyed by canonical column names; unknown columns are dropped."""
    try:
        df = pd.read_csv(io.StringIO(text), dtype=str, keep_default_na=False, skip_blank_lines=True)
    except pd.errors.EmptyDataError:
        raise ValidationError(["No data rows found"]) from None
    except pd.errors.ParserError as e:
        raise ValidationError([f"Malformed CSV: {e}"]) from None

    keep: Dict[str, str] = {}
    for col in df.columns:
        canon = HEADER_ALIASES.get(str(col).strip().lower())
        if canon and canon not in keep.values():
            keep[col] = canon
    df = df[list(keep)].rename(columns=keep)
    return [{k: str(v).strip() for k, v in rec.items()} for rec in df.to_dict(orient="records")]

def rows_frame(rows: Iterable[Mapping[str, str]], columns: Optional[List[str]] = None) -> pd.DataFrame:
    cols = columns or CSV_COLUMNS
    return pd.DataFrame([{c: r.get(c, "") for c in cols} for r in rows], columns=cols)

def rows_to_csv(rows: Iterable[Mapping[str, str]], columns: Optional[List[str]] = None) -> str:
    return rows_frame(rows, columns).to_csv(index=False, lineterminator="\n")


# ===================== Rows -> proposed updates =====================
def row_to_update(row: Mapping[str, str], label: str = "Row") -> Tuple[ProposedUpdate, List[str]]:
    """Validate one row. Returns the update and any per-field error messages."""
    errors: List[str] = []
    md: Dict[str, Any] = {}
    for col, name in CSV_TO_METADATA.items():
        if col not in row:
            continue
        raw = row[col]
        if col == "cct":
            if raw == "":
                md[name] = None
                continue
            try:
                md[name] = _to_float(raw.rstrip("Kk"))
            except ValueError:
                errors.append(f"{label}: cct '{raw}' is not a number")
            continue
        if col == "nearField" and raw and raw.lower() not in NEAR_FIELD_TYPES:
            errors.append(f"{label}: nearField '{raw}' must be one of {', '.join(NEAR_FIELD_TYPES)}")
            continue
        md[name] = raw.lower() if col == "nearField" else raw

    nums: Dict[str, Optional[float]] = {}
    for col in POSITIVE_NUMERIC + NON_NEGATIVE_NUMERIC:
        raw = row.get(col, "")
        if raw == "":
            nums[col] = None
            continue
        try:
            val = _to_float(raw)
        except ValueError:
            errors.append(f"{label}: {col} '{raw}' is not a number")
            continue
        if col in POSITIVE_NUMERIC and val <= 0:
            errors.append(f"{label}: {col} must be greater than 0 (got {raw})")
            continue
        if val < 0:
            errors.append(f"{label}: {col} must not be negative (got {raw})")
            continue
        nums[col] = val

    new_name = ensure_ies_suffix(row.get("update_file_name", "")) or None
    update = ProposedUpdate(
        metadata=md,
        wattage=nums.get("wattage"),
        lumens=nums.get("lumens"),
        length=nums.get("length"),
        width=nums.get("width"),
        height=nums.get("height"),
        unit=parse_unit(row.get("unit")),
        cct_multiplier=nums.get("cctMultiplier"),
        new_file_name=new_name,
    )
    return update, errors

def from_rows(
    rows: List[Mapping[str, str]],
    known_filenames: Optional[Iterable[str]] = None,
) -> Tuple[Dict[str, ProposedUpdate], List[str]]:
    """Validate rows into proposed updates keyed by the row's filename.

    Problems are collected, not raised; callers decide whether a non-empty
    error list rejects the batch.
    """
    errors: List[str] = []
    updates: Dict[str, ProposedUpdate] = {}
    if not rows:
        return updates, ["No data rows found"]
    if not any("filename" in r for r in rows):
        return updates, ["Missing required column: filename"]

    known = set(known_filenames) if known_filenames is not None else None
    seen: Dict[str, int] = {}
    for i, row in enumerate(rows, 1):
        label = f"Row {i}"
        name = (row.get("filename") or "").strip()
        if not name:
            errors.append(f"{label}: missing filename")
            continue
        if name in seen:
            errors.append(f"{label}: duplicate filename '{name}' (first seen in row {seen[name]})")
            continue
        seen[name] = i
        if known is not None and name not in known:
            errors.append(f"{label}: unknown filename '{name}'")
            continue
        update, row_errors = row_to_update(row, label)
        errors.extend(row_errors)
        if not row_errors:
            updates[name] = update
    return updates, errors

def parse_csv_updates(
    text: str,
    known_filenames: Optional[Iterable[str]] = None,
) -> Dict[str, ProposedUpdate]:
    """All-or-nothing: raise ValidationError if any row has a problem."""
    updates, errors = from_rows(read_csv(text), known_filenames)
    if errors:
        raise ValidationError(errors)
    return updates


__all__ = [
    "CSV_COLUMNS",
    "CSVRow",
    "to_row",
    "read_csv",
    "rows_frame",
    "rows_to_csv",
    "row_to_update",
    "from_rows",
    "parse_csv_updates",
    "ensure_ies_suffix",
]
